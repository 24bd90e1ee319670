# -------------------------------------
# randtext shared state
# -------------------------------------
"""
Shared state for the expansion engine:
- RNG: single source of randomness
- MAX_ATTEMPTS: attempts allowed for one sequence batch
- SELF, GLOBAL_PREFIX: reserved symbol and global variable marker
- ALLOWED_OPS, COMPARE_OPS: simpleeval operator whitelists
"""
import ast
import operator as op
import random
import secrets

# ============================================================
# Evaluation settings
# ============================================================

# total attempts of a sequence batch (variant parts, argument lists)
MAX_ATTEMPTS = 5

# symbol bound to the entity owning the evaluated attribute
SELF = "self"

# variables starting with this prefix always merge back into a parent context
GLOBAL_PREFIX = "$"

def is_global(name: str) -> bool:
    """Return True if name follows the global variable convention."""
    return name.startswith(GLOBAL_PREFIX)


# ============================================================
# Expression evaluation (simpleeval)
# ============================================================

# Operators whitelist for calc()
ALLOWED_OPS = {
    ast.Add: op.add,
    ast.Sub: op.sub,
    ast.Mult: op.mul,
    ast.Div: op.truediv,
    ast.Pow: op.pow,
    ast.USub: op.neg,
    ast.UAdd: op.pos,
    ast.FloorDiv: op.floordiv,
    ast.Mod: op.mod,
}

# pick expressions also compare
COMPARE_OPS = {
    **ALLOWED_OPS,
    ast.Eq: op.eq,
    ast.NotEq: op.ne,
    ast.Lt: op.lt,
    ast.LtE: op.le,
    ast.Gt: op.gt,
    ast.GtE: op.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Not: op.not_,
}


# ============================================================
# Random number generator
# ============================================================

_DEFAULT_SEED = secrets.randbits(128)
RNG = random.Random(_DEFAULT_SEED)

def seed(x: int | str | None = None) -> int:
    """
    Set the random seed for the expansion RNG.

    Args:
        x: Seed value. If None or "auto"/"rand"/"random"/"entropy",
           reseeds from OS entropy. Otherwise uses int(x).

    Returns:
        The seed that was used.
    """
    if x is None or str(x).lower() in ("auto", "rand", "random", "entropy"):
        s = secrets.randbits(128)
    else:
        s = int(x)
    RNG.seed(s)
    return s

def get_rng() -> random.Random:
    """Return the RNG instance."""
    return RNG
