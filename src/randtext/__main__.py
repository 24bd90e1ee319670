# -------------------------------------
# randtext CLI entry point
# -------------------------------------
"""
CLI entry point.

Usage:
    python -m randtext rules/ Character --count 5 --seed 42
    python -m randtext rules/ Character --id 2 --attribute name
    python -m randtext rules/ --check
"""
import argparse
import logging
import sys

from . import state
from .errors import EvaluationFailure, GeneratorError
from .generator import Generator


def _main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="randtext",
        description="Generate random texts from rule tables.",
    )
    p.add_argument("path", help="Directory of rule files (or one rule file)")
    p.add_argument("rule", nargs="?", help="Rule to generate from")
    p.add_argument("--id", type=int, default=None, help="Entity id (default: weighted pick)")
    p.add_argument("--attribute", "-a", default="value", help="Attribute to expand (default: value)")
    p.add_argument("--count", "-n", type=int, default=1, help="Number of texts to generate")
    p.add_argument("--seed", default=None, help="RNG seed (default: OS entropy)")
    p.add_argument("--check", action="store_true", help="Print static diagnostics and exit")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state.seed(args.seed)

    g = Generator.from_path(args.path)
    if args.check or g.failed:
        for m in g.messages:
            print(m, file=sys.stderr)
        return 1 if g.failed else 0

    if not args.rule:
        p.error("a rule is required unless --check is given")

    status = 0
    for _ in range(args.count):
        try:
            print(g.generate(args.rule, args.id, args.attribute))
        except (EvaluationFailure, GeneratorError) as e:
            print(f"error: {e}", file=sys.stderr)
            status = 1
    return status


if __name__ == "__main__":
    raise SystemExit(_main())
