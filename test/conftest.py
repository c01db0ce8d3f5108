"""
Shared fixtures for the QMS test-suite.

- ``context``        : free algebra of two Hermitian operators (X1, X2);
- ``symbols``        : symbol table of that context with three blank complex symbols (#2, #3, #4);
- ``factory``        : id-ordered polynomial factory over ``symbols``;
- ``mixed_symbols``  : table with a complex (#2), a Hermitian (#3) and an antihermitian (#4) symbol.
"""

import pytest

from QMS.Scenario.context import Context
from QMS.Symbolic.polynomial_factory import IdPolynomialFactory
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.qms_globals import get_settings, set_settings

@pytest.fixture
def context():
    return Context(2)

@pytest.fixture
def symbols(context):
    table = SymbolTable(context)
    table.create(3)
    return table

@pytest.fixture
def factory(symbols):
    return IdPolynomialFactory(symbols, zero_tolerance=100.0)

@pytest.fixture
def mixed_symbols(context):
    table = SymbolTable(context)
    table.create(1)
    table.create(1, has_real=True, has_imaginary=False)
    table.create(1, has_real=False, has_imaginary=True)
    return table

@pytest.fixture
def mixed_factory(mixed_symbols):
    return IdPolynomialFactory(mixed_symbols, zero_tolerance=100.0)

@pytest.fixture
def restore_settings():
    ''' Restores the global settings after a test that changes them. '''
    previous = get_settings()
    yield previous
    set_settings(previous)

# ----------------------------------------------------------------------------------------------------
#! End of conftest.py
# ----------------------------------------------------------------------------------------------------
