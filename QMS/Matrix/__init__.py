"""
Matrix Module
=============

Symbolic matrices and their numeric bases.

Modules:
--------
- matrix: Matrix, MonomialMatrix and PolynomialMatrix
- operator_matrix: OperatorMatrix, the operator-sequence grid before symbol registration
- matrix_basis: MatrixBasis, the eight lazily-built numeric bases
- basis_kernels: numba kernels used by the basis export
"""

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .matrix import Matrix, MatrixType, MonomialMatrix, PolynomialMatrix
    from .matrix_basis import BasisStorage, MatrixBasis
    from .operator_matrix import OperatorMatrix

MODULE_DESCRIPTION = "Operator, monomial and polynomial matrices with lazily-built numeric bases."

_LAZY_IMPORTS = {
    "Matrix": (".matrix", "Matrix"),
    "MatrixType": (".matrix", "MatrixType"),
    "MonomialMatrix": (".matrix", "MonomialMatrix"),
    "PolynomialMatrix": (".matrix", "PolynomialMatrix"),
    "OperatorMatrix": (".operator_matrix", "OperatorMatrix"),
    "MatrixBasis": (".matrix_basis", "MatrixBasis"),
    "BasisStorage": (".matrix_basis", "BasisStorage"),
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
