"""
Scenario Module
===============

Reference operator context: operator sequences, shortlex hashing, word
enumeration and the per-context word-list cache.

Modules:
--------
- operator_sequence: SequenceSign, ShortlexHasher and OperatorSequence
- context: the generic free-algebra Context and its overridable hooks
- dictionary: OperatorSequenceGenerator and the Dictionary cache
"""

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .context import Context
    from .dictionary import Dictionary, OperatorSequenceGenerator
    from .operator_sequence import OperatorSequence, SequenceSign, ShortlexHasher

MODULE_DESCRIPTION = "Operator sequences, contexts and word enumeration."

_LAZY_IMPORTS = {
    "SequenceSign": (".operator_sequence", "SequenceSign"),
    "ShortlexHasher": (".operator_sequence", "ShortlexHasher"),
    "OperatorSequence": (".operator_sequence", "OperatorSequence"),
    "Context": (".context", "Context"),
    "OperatorSequenceGenerator": (".dictionary", "OperatorSequenceGenerator"),
    "Dictionary": (".dictionary", "Dictionary"),
}

def __getattr__(name: str) -> Any:
    """Lazily import classes."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path, package=__name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))

__all__ = list(_LAZY_IMPORTS.keys())
