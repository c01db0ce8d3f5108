"""
Polynomial factories: canonical construction of polynomials under a fixed order.

A factory binds a `SymbolTable`, a zero tolerance and a term order. Every
polynomial it produces is sorted under that order, has redundant conjugates
of Hermitian and antihermitian symbols removed, and has near-zero terms
pruned. Two orders are provided:

- `IdPolynomialFactory`   : by symbol id, plain before conjugated;
- `HashPolynomialFactory` : by the forward hash of each symbol's operator sequence
  (so rules orient towards shorter words), plain before conjugated.

----------------------------------------------------------
Description     : Order-aware polynomial construction.
----------------------------------------------------------
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from QMS.Scenario.operator_sequence import OperatorSequence
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.errors import UnregisteredOperatorSequenceError
from QMS.qms_globals import get_settings

RawPolynomial = Sequence[Tuple[OperatorSequence, complex]]

####################################################################################################

class PolynomialFactory(ABC):
    """
    Base class of order-aware polynomial constructors.

    Parameters
    ----------
    symbols : SymbolTable
        Table used for conjugation information (and registration).
    zero_tolerance : float, optional
        Multiplier of machine epsilon; defaults to the global setting.
    """

    def __init__(self, symbols: SymbolTable, zero_tolerance: Optional[float] = None):
        self.symbols        = symbols
        self.zero_tolerance = float(zero_tolerance if zero_tolerance is not None else get_settings().zero_tolerance)

    # ----------------------------------------------------------------
    #! Order
    # ----------------------------------------------------------------

    @abstractmethod
    def key(self, monomial: Monomial) -> tuple:
        ''' Sort key of a term. '''

    @property
    @abstractmethod
    def name(self) -> str:
        ''' Short description of the order. '''

    def rank(self, symbol_id: int) -> tuple:
        ''' Sort key of the plain term of a symbol. '''
        return self.key(Monomial(symbol_id, 1.0, False))

    def less(self, lhs: Monomial, rhs: Monomial) -> bool:
        return self.key(lhs) < self.key(rhs)

    def presort_data(self, data: List[Monomial]) -> List[Monomial]:
        data.sort(key=self.key)
        return data

    # ----------------------------------------------------------------
    #! Construction
    # ----------------------------------------------------------------

    def __call__(self, data: Iterable[Monomial] = ()) -> Polynomial:
        fixed = [self.symbols.make_canonical(m) if m.id != 0 else m for m in data]
        return Polynomial(fixed, self.zero_tolerance, self.key)

    def monomial(self, symbol_id: int, factor: complex = 1.0, conjugated: bool = False) -> Polynomial:
        return self([Monomial(symbol_id, factor, conjugated)])

    def scalar(self, value: complex) -> Polynomial:
        return self([Monomial(1, value)])

    def construct(self, raw: RawPolynomial) -> Polynomial:
        '''
        Build a polynomial from (operator sequence, coefficient) pairs. Every sequence
        must already be registered.

        Raises
        ------
        UnregisteredOperatorSequenceError
            If a sequence is not in the symbol table.
        '''
        data = []
        for sequence, coefficient in raw:
            term = self.symbols.to_symbol(sequence)
            if term.id == SymbolTable.NOT_FOUND:
                raise UnregisteredOperatorSequenceError(str(sequence))
            data.append(term * coefficient)
        return self(data)

    def register_and_construct(self, raw: RawPolynomial) -> Polynomial:
        ''' As `construct`, registering unknown sequences first. '''
        for sequence, _ in raw:
            self.symbols.merge_in(sequence)
        return self.construct(raw)

    # ----------------------------------------------------------------
    #! Algebra
    # ----------------------------------------------------------------

    def append(self, lhs: Polynomial, rhs: Polynomial) -> Polynomial:
        return lhs.append(rhs, self.key, self.zero_tolerance)

    def sum(self, lhs: Polynomial, rhs: Polynomial) -> Polynomial:
        return lhs.copy().append(rhs, self.key, self.zero_tolerance)

    def scale(self, poly: Polynomial, factor: complex) -> Polynomial:
        return poly.copy().scale(factor, self.zero_tolerance)

    def conjugate(self, poly: Polynomial) -> Polynomial:
        return poly.conjugate(self.symbols, self.key)

    def is_hermitian(self, poly: Polynomial) -> bool:
        return poly.is_hermitian(self.symbols, self.zero_tolerance, self.key)

    def is_antihermitian(self, poly: Polynomial) -> bool:
        return poly.is_antihermitian(self.symbols, self.zero_tolerance, self.key)

    def fix_cc(self, poly: Polynomial) -> Polynomial:
        return poly.fix_cc_in_place(self.symbols, True, self.zero_tolerance, self.key)

    def Real(self, poly: Polynomial) -> Polynomial:
        return poly.Real(self)

    def Imaginary(self, poly: Polynomial) -> Polynomial:
        return poly.Imaginary(self)

    def maximum_degree(self, poly: Polynomial) -> int:
        ''' Longest operator word among the symbols of a polynomial (0 if none carry a word). '''
        degree = 0
        for term in poly:
            symbol = self.symbols[term.id]
            if symbol.sequence is not None:
                degree = max(degree, len(symbol.sequence))
        return degree

    def __str__(self) -> str:
        return f"{self.name} polynomial factory (tolerance {self.zero_tolerance:g} eps)"

####################################################################################################

class IdPolynomialFactory(PolynomialFactory):
    """Orders terms by symbol id."""

    def key(self, monomial: Monomial) -> tuple:
        return monomial.id, monomial.conjugated

    @property
    def name(self) -> str:
        return "Symbol id"

class HashPolynomialFactory(PolynomialFactory):
    """Orders terms by the forward hash of their symbol's operator sequence."""

    def key(self, monomial: Monomial) -> tuple:
        symbol = self.symbols[monomial.id]
        if symbol.hash is None:
            # Symbols without a word go after every hashed one, by id
            return 1, monomial.id, monomial.conjugated
        return 0, symbol.hash, monomial.conjugated

    @property
    def name(self) -> str:
        return "Operator hash"

####################################################################################################
#! End of polynomial factory
####################################################################################################
