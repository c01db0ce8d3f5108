"""
System Module
=============

The matrix system orchestrator and the multithreading policy.

Modules:
--------
- matrix_system: MatrixSystem and its matrix indices
- multithreading: MultiThreadPolicy, parallel_map, ReadWriteLock and LazyValue
"""

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .matrix_system import LocalizingMatrixIndex, MatrixSystem, PolynomialLMIndex, SubstitutedMatrixIndex
    from .multithreading import LazyValue, MultiThreadPolicy, ReadWriteLock, parallel_map

MODULE_DESCRIPTION = "Matrix system orchestration and multithreading policy."

_LAZY_IMPORTS = {
    "MatrixSystem": (".matrix_system", "MatrixSystem"),
    "LocalizingMatrixIndex": (".matrix_system", "LocalizingMatrixIndex"),
    "PolynomialLMIndex": (".matrix_system", "PolynomialLMIndex"),
    "SubstitutedMatrixIndex": (".matrix_system", "SubstitutedMatrixIndex"),
    "MultiThreadPolicy": (".multithreading", "MultiThreadPolicy"),
    "parallel_map": (".multithreading", "parallel_map"),
    "ReadWriteLock": (".multithreading", "ReadWriteLock"),
    "LazyValue": (".multithreading", "LazyValue"),
}

def __getattr__(name: str) -> Any:
    """Lazily import classes and functions."""
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path, package=__name__)
        return getattr(module, attr_name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__():
    return sorted(list(globals().keys()) + list(_LAZY_IMPORTS.keys()))

__all__ = list(_LAZY_IMPORTS.keys())
