"""Tests for randtext.weighted module."""

import random
from collections import Counter

import pytest

from randtext.weighted import pick, weight_of


class Item:
    def __init__(self, name, weight):
        self.name = name
        self.weight = weight


class FixedRng:
    """randrange always returns r."""

    def __init__(self, r):
        self.r = r

    def randrange(self, n):
        assert 0 <= self.r < n
        return self.r


class TestWeightOf:
    """Tests for the default weight function."""

    def test_weight_attribute(self):
        assert weight_of(Item("a", 4)) == 4

    def test_missing_weight_is_one(self):
        assert weight_of("plain") == 1

    def test_negative_weight_is_zero(self):
        assert weight_of(Item("a", -3)) == 0


class TestPick:
    """Tests for weighted selection."""

    def test_empty(self):
        assert pick([]) is None

    def test_all_zero_weights(self):
        assert pick(["a", "b"], weight=lambda _: 0) is None

    def test_all_negative_weights(self):
        assert pick([Item("a", -1), Item("b", -5)]) is None

    def test_single_positive_weight_always_returned(self):
        items = [Item("a", 0), Item("b", 3), Item("c", -2)]
        rng = random.Random(1)
        for _ in range(200):
            assert pick(items, rng=rng).name == "b"

    def test_walk_order(self):
        """Items are walked in order, subtracting weights until r < 0."""
        items = [Item("a", 1), Item("b", 2), Item("c", 3)]
        expected = ["a", "b", "b", "c", "c", "c"]
        for r, name in enumerate(expected):
            assert pick(items, rng=FixedRng(r)).name == name

    def test_zero_weight_skipped_in_walk(self):
        items = [Item("a", 0), Item("b", 1)]
        assert pick(items, rng=FixedRng(0)).name == "b"

    def test_custom_weight_function(self):
        items = ["x", "yy", "zzz"]
        assert pick(items, weight=len, rng=FixedRng(5)) == "zzz"

    def test_frequencies_converge(self):
        items = [Item("a", 1), Item("b", 2), Item("c", 7)]
        rng = random.Random(12345)
        n = 10000
        counts = Counter(pick(items, rng=rng).name for _ in range(n))
        assert counts["a"] / n == pytest.approx(0.1, abs=0.02)
        assert counts["b"] / n == pytest.approx(0.2, abs=0.02)
        assert counts["c"] / n == pytest.approx(0.7, abs=0.02)

    def test_uses_module_rng_by_default(self):
        from randtext import state
        saved = state.RNG.getstate()
        try:
            state.seed(99)
            a = [pick(["x", "y", "z"]) for _ in range(20)]
            state.seed(99)
            b = [pick(["x", "y", "z"]) for _ in range(20)]
        finally:
            state.RNG.setstate(saved)
        assert a == b
        assert state.get_rng() is state.RNG
