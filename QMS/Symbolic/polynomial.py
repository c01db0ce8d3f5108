"""
Polynomials: canonical sparse linear combinations of symbols.

A `Polynomial` is a list of `Monomial` terms kept in canonical form:

- sorted under a total order on (symbol, conjugation), by default ascending id
  with the plain term of a symbol before its conjugated term;
- no two terms share (id, conjugation);
- no term has a factor within tolerance of zero, and id 0 never appears
  (so the zero polynomial is the empty list).

The order is passed as a key function on monomials and kept by the polynomial,
so copies, conjugates and sums stay sorted under it. Operations that need
symbol information (conjugation, Hermiticity, real and imaginary parts)
take the `SymbolTable` or are reached through a `PolynomialFactory`.

----------------------------------------------------------
Description     : Polynomial algebra over symbol ids.
----------------------------------------------------------
"""

from __future__ import annotations
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, TYPE_CHECKING

from QMS.Symbolic.float_utils import approximately_zero, real_or_imaginary_if_close
from QMS.Symbolic.monomial import Monomial
from QMS.errors import NotMonomialError

if TYPE_CHECKING:
    from QMS.Symbolic.symbol_table import SymbolTable

OrderKey = Callable[[Monomial], tuple]

def id_order(monomial: Monomial) -> tuple:
    ''' Default order: ascending id, plain before conjugated. '''
    return monomial.id, monomial.conjugated

####################################################################################################

class Polynomial:
    """
    Canonical sum of monomials.

    Parameters
    ----------
    data : iterable of Monomial
        Raw terms, in any order, possibly with duplicates and zeros.
    tolerance : float
        Zero tolerance (multiplier of machine epsilon) used to prune terms.
    order : callable, optional
        Key function defining the term order (default `id_order`).
    """

    __slots__ = ("_data", "_order")

    def __init__(self, data: Iterable[Monomial] = (), tolerance: float = 1.0, order: Optional[OrderKey] = None):
        self._data: List[Monomial] = []
        order       = order or id_order
        self._order = order
        raw     = sorted((m.copy() for m in data if m.id != 0), key=order)

        # Merge adjacent duplicates, then prune
        for term in raw:
            if self._data and self._data[-1].id == term.id and self._data[-1].conjugated == term.conjugated:
                self._data[-1].factor += term.factor
            else:
                self._data.append(term)
        self._data = [m for m in self._data if not approximately_zero(m.factor, tolerance)]

    @classmethod
    def _from_canonical(cls, data: List[Monomial], order: Optional[OrderKey] = None) -> "Polynomial":
        output          = cls.__new__(cls)
        output._data    = data
        output._order   = order or id_order
        return output

    # ----------------------------------------------------------------
    #! Named constructors
    # ----------------------------------------------------------------

    @classmethod
    def Zero(cls) -> "Polynomial":
        return cls._from_canonical([])

    @classmethod
    def Scalar(cls, value: complex, tolerance: float = 1.0) -> "Polynomial":
        return cls([Monomial(1, value)], tolerance)

    # ----------------------------------------------------------------
    #! Container protocol
    # ----------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Monomial]:
        return iter(self._data)

    def __getitem__(self, index: int) -> Monomial:
        return self._data[index]

    def __bool__(self) -> bool:
        return bool(self._data)

    def empty(self) -> bool:
        return not self._data

    def copy(self) -> "Polynomial":
        return Polynomial._from_canonical([m.copy() for m in self._data], self._order)

    @property
    def order(self) -> OrderKey:
        ''' Key function the terms are sorted under. '''
        return self._order

    def back(self) -> Monomial:
        return self._data[-1]

    def pop_back(self) -> Monomial:
        return self._data.pop()

    def first_id(self) -> int:
        return self._data[0].id if self._data else 0

    def last_id(self) -> int:
        return self._data[-1].id if self._data else 0

    def contains(self, symbol_id: int) -> bool:
        return any(m.id == symbol_id for m in self._data)

    def find(self, symbol_id: int, conjugated: Optional[bool] = None) -> int:
        ''' Index of the first term with this symbol (and conjugation, if given), or -1. '''
        for index, term in enumerate(self._data):
            if term.id == symbol_id and (conjugated is None or term.conjugated == conjugated):
                return index
        return -1

    # ----------------------------------------------------------------
    #! Classification
    # ----------------------------------------------------------------

    def is_scalar(self) -> bool:
        return not self._data or (len(self._data) == 1 and self._data[0].id == 1)

    def is_monomial(self) -> bool:
        return len(self._data) <= 1

    def as_monomial(self) -> Monomial:
        if not self._data:
            return Monomial(0, 0.0)
        if len(self._data) != 1:
            raise NotMonomialError(str(self), str(self))
        return self._data[0].copy()

    def sorted_by(self, order: Optional[OrderKey] = None) -> "Polynomial":
        ''' This polynomial under another term order (itself if the order is unchanged). '''
        if order is None or order == self._order:
            return self
        return Polynomial._from_canonical(sorted((m.copy() for m in self._data), key=order), order)

    def is_hermitian(self, symbols: "SymbolTable", tolerance: float = 1.0, order: Optional[OrderKey] = None) -> bool:
        target = self.sorted_by(order)
        return target.conjugate(symbols).approximately_equals(target, tolerance)

    def is_antihermitian(self, symbols: "SymbolTable", tolerance: float = 1.0,
                         order: Optional[OrderKey] = None) -> bool:
        target = self.sorted_by(order)
        return target.conjugate(symbols).approximately_equals(-target, tolerance)

    def is_conjugate(self, symbols: "SymbolTable", other: "Polynomial", tolerance: float = 1.0,
                     order: Optional[OrderKey] = None) -> bool:
        order = order or self._order
        return self.sorted_by(order).conjugate(symbols).approximately_equals(other.sorted_by(order), tolerance)

    # ----------------------------------------------------------------
    #! In-place algebra
    # ----------------------------------------------------------------

    def append(self, rhs: "Polynomial", order: Optional[OrderKey] = None, tolerance: float = 1.0) -> "Polynomial":
        '''
        Add another canonical polynomial in place, merging under this polynomial's order.
        '''
        order       = order or self._order
        rhs         = rhs.sorted_by(order)
        lhs         = self.sorted_by(order)._data
        self._order = order
        output  : List[Monomial] = []
        i = j   = 0
        while i < len(lhs) and j < len(rhs._data):
            left, right = lhs[i], rhs._data[j]
            key_l, key_r = order(left), order(right)
            if key_l < key_r:
                output.append(left)
                i += 1
            elif key_r < key_l:
                output.append(right.copy())
                j += 1
            else:
                total = left.factor + right.factor
                if not approximately_zero(total, tolerance):
                    output.append(Monomial(left.id, total, left.conjugated))
                i += 1
                j += 1
        output.extend(lhs[i:])
        output.extend(m.copy() for m in rhs._data[j:])
        self._data = output
        return self

    def scale(self, factor: complex, tolerance: float = 1.0) -> "Polynomial":
        factor = complex(factor)
        if approximately_zero(factor, tolerance):
            self._data = []
            return self
        for term in self._data:
            term.factor *= factor
        self._data = [m for m in self._data if not approximately_zero(m.factor, tolerance)]
        return self

    def conjugate_in_place(self, symbols: "SymbolTable", order: Optional[OrderKey] = None) -> "Polynomial":
        '''
        Complex-conjugate every term, then restore canonical form.
        '''
        order       = order or self._order
        self._order = order
        for term in self._data:
            symbol      = symbols[term.id]
            term.factor = term.factor.conjugate()
            if symbol.hermitian:
                continue
            if symbol.antihermitian:
                term.factor = -term.factor
                continue
            term.conjugated = not term.conjugated
        self._data.sort(key=order)
        return self

    def fix_cc_in_place(self, symbols: "SymbolTable", canonicalize: bool = True,
                        tolerance: float = 1.0, order: Optional[OrderKey] = None) -> "Polynomial":
        '''
        Rewrite k X* as k X for Hermitian X, and as -k X for antihermitian X.
        '''
        changed = False
        for term in self._data:
            if not term.conjugated:
                continue
            symbol = symbols[term.id]
            if symbol.hermitian:
                term.conjugated = False
                changed         = True
            elif symbol.antihermitian:
                term.conjugated = False
                term.factor     = -term.factor
                changed         = True
        if changed and canonicalize:
            self._order = order or self._order
            self._data  = Polynomial(self._data, tolerance, self._order)._data
        return self

    def real_or_imaginary_if_close(self, tolerance: float = 1.0) -> "Polynomial":
        for term in self._data:
            term.factor = real_or_imaginary_if_close(term.factor, tolerance)
        return self

    # ----------------------------------------------------------------
    #! Derived polynomials
    # ----------------------------------------------------------------

    def conjugate(self, symbols: "SymbolTable", order: Optional[OrderKey] = None) -> "Polynomial":
        return self.copy().conjugate_in_place(symbols, order)

    def _split_terms(self, imaginary: bool) -> List[Monomial]:
        # Re(kX) = (k X + conj(k) X*) / 2,  Im(kX) = (k X - conj(k) X*) / 2i
        output = []
        for term in self._data:
            k = term.factor
            if imaginary:
                output.append(Monomial(term.id, k / 2j, term.conjugated))
                output.append(Monomial(term.id, -k.conjugate() / 2j, not term.conjugated))
            else:
                output.append(Monomial(term.id, k / 2, term.conjugated))
                output.append(Monomial(term.id, k.conjugate() / 2, not term.conjugated))
        return output

    def Real(self, factory) -> "Polynomial":
        ''' Real part of the polynomial, canonicalised by the factory. '''
        return factory(self._split_terms(imaginary=False))

    def Imaginary(self, factory) -> "Polynomial":
        ''' Imaginary part of the polynomial, canonicalised by the factory. '''
        return factory(self._split_terms(imaginary=True))

    # ----------------------------------------------------------------
    #! Operators (order of the left operand)
    # ----------------------------------------------------------------

    def __neg__(self) -> "Polynomial":
        return Polynomial._from_canonical([-m for m in self._data], self._order)

    def __mul__(self, factor) -> "Polynomial":
        return self.copy().scale(factor)

    __rmul__ = __mul__

    def __add__(self, other: "Polynomial") -> "Polynomial":
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.copy().append(other)

    def __sub__(self, other: "Polynomial") -> "Polynomial":
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.copy().append(-other)

    # ----------------------------------------------------------------
    #! Comparison and display
    # ----------------------------------------------------------------

    def approximately_equals(self, other: "Polynomial", tolerance: float = 1.0) -> bool:
        if len(self._data) != len(other._data):
            return False
        return all(a.approximately_equals(b, tolerance) for a, b in zip(self._data, other._data))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.approximately_equals(other)

    __hash__ = None

    def as_string(self, symbols: Optional["SymbolTable"] = None) -> str:
        if not self._data:
            return "0"
        parts = []
        for term in self._data:
            if symbols is not None and term.id > 1:
                body    = symbols.format_symbol(term.id, term.conjugated)
                mono    = Monomial(1, term.factor).as_string()
                text    = body if mono == "1" else ("-" + body if mono == "-1" else f"{mono} {body}")
            else:
                text    = term.as_string()
            parts.append(text)
        output = parts[0]
        for part in parts[1:]:
            output += f" - {part[1:]}" if part.startswith("-") else f" + {part}"
        return output

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"Polynomial([{', '.join(repr(m) for m in self._data)}])"

####################################################################################################
#! End of polynomial
####################################################################################################
