# -------------------------------------
# randtext: random text generation from rule tables
# -------------------------------------
"""
Procedural text generation from relational rule tables.

Rules are tables of entities whose Text attributes are templates in a small
expansion language (alternation, optional parts, variables, entity picking,
function and method calls). See generator for the entry points.

Imports are lazy to avoid RuntimeWarning when running submodules as scripts.
Use: from randtext import Generator, Rule, function, etc.
"""

__all__ = [
    # generator
    "Generator",
    # rules and entities
    "Rule",
    "HasMany",
    "Entity",
    "load_rules",
    # functions
    "Function",
    "ResultPair",
    "function",
    # errors
    "EvaluationFailure",
    "ParseError",
    "RuleError",
    "GeneratorError",
    # randomness
    "seed",
]

# Lazy import mapping: attribute -> (module, name)
_LAZY_IMPORTS = {
    # generator
    "Generator": (".generator", "Generator"),
    # rules and entities
    "Rule": (".rule", "Rule"),
    "HasMany": (".rule", "HasMany"),
    "Entity": (".entity", "Entity"),
    "load_rules": (".loader", "load_rules"),
    # functions
    "Function": (".function", "Function"),
    "ResultPair": (".function", "ResultPair"),
    "function": (".function", "function"),
    # errors
    "EvaluationFailure": (".errors", "EvaluationFailure"),
    "ParseError": (".errors", "ParseError"),
    "RuleError": (".errors", "RuleError"),
    "GeneratorError": (".errors", "GeneratorError"),
    # randomness
    "seed": (".state", "seed"),
}


def __getattr__(name: str):
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        from importlib import import_module
        module = import_module(module_name, __package__)
        return getattr(module, attr_name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
