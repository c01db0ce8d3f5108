"""
Symbolic Module
===============

Symbol registry and the polynomial algebra over it.

Modules:
--------
- symbol: Symbol, the canonical identity of a sequence up to conjugation
- symbol_table: SymbolTable and its real/imaginary basis view
- monomial: Monomial (symbol id, factor, conjugation)
- polynomial: Polynomial, canonically ordered sums of monomials
- polynomial_factory: ordering policies (by symbol id or by operator hash)
- basis_vector: conversion between polynomials and basis vectors
- Rules: moment substitution rules and rulebooks
"""

import importlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .basis_vector import BasisVecToPolynomial, PolynomialToBasisVec
    from .monomial import Monomial
    from .polynomial import Polynomial
    from .polynomial_factory import HashPolynomialFactory, IdPolynomialFactory, PolynomialFactory
    from .symbol import Symbol
    from .symbol_table import SymbolTable

MODULE_DESCRIPTION = "Symbol registry, monomials, polynomials and basis vectors."

_LAZY_IMPORTS = {
    "Symbol": (".symbol", "Symbol"),
    "SymbolTable": (".symbol_table", "SymbolTable"),
    "Monomial": (".monomial", "Monomial"),
    "Polynomial": (".polynomial", "Polynomial"),
    "PolynomialFactory": (".polynomial_factory", "PolynomialFactory"),
    "IdPolynomialFactory": (".polynomial_factory", "IdPolynomialFactory"),
    "HashPolynomialFactory": (".polynomial_factory", "HashPolynomialFactory"),
    "PolynomialToBasisVec": (".basis_vector", "PolynomialToBasisVec"),
    "BasisVecToPolynomial": (".basis_vector", "BasisVecToPolynomial"),
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
