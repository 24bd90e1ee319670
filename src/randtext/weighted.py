# -------------------------------------
# weighted random selection
# -------------------------------------
"""
Draw one element from a weighted collection.

Items without a weight attribute weigh 1; negative weights count as 0.
"""
from collections.abc import Callable, Iterable
from typing import Any, TypeVar
import random

from . import state

T = TypeVar("T")


def weight_of(item: Any) -> int:
    """Return the draw weight of item (its `weight` attribute, or 1)."""
    w = getattr(item, "weight", 1)
    return max(0, int(w))


def pick(
    items: Iterable[T],
    weight: Callable[[T], int] | None = None,
    rng: random.Random | None = None,
) -> T | None:
    """
    Pick one item at random, proportionally to its weight.

    Args:
        items: candidates, walked in their given order
        weight: weight function (defaults to weight_of)
        rng: random generator (defaults to state.get_rng())

    Returns:
        The chosen item, or None if the total weight is 0.
    """
    weight = weight or weight_of
    rng = rng or state.get_rng()

    pairs: list[tuple[T, int]] = []
    total = 0
    for item in items:
        w = max(0, int(weight(item)))
        pairs.append((item, w))
        total += w
    if total == 0:
        return None

    r = rng.randrange(total)
    for item, w in pairs:
        r -= w
        if r < 0:
            return item
    return None
