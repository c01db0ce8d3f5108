"""
Moment rules: oriented substitutions ``X -> P`` derived from constraints ``Q == 0``.

The highest-ordered symbol X of Q becomes the left-hand side. Depending on how
X and its conjugate appear in Q, the constraint is one of

- `Trivial`           : Q is empty, nothing to do;
- `Contradiction`     : Q is a non-zero scalar (1 == 0);
- `Simple`            : X appears without X*, solve for X directly;
- `NeedsReorienting`  : a X + b X* with |a| != |b|, eliminate X* using conj(Q) == 0;
- `NonorientableRule` : a X + b X* with |a| == |b|, only one real combination of
  Re(X) and Im(X) is fixed. The rule is then *partial*: its direction d
  (|d| == 1) marks the fixed combination Re(conj(d) X) = R, and the RHS is the
  projection ``d R + X/2 - d^2 X*/2`` (idempotent under substitution).

A full rule whose RHS cannot have the Hermiticity of X (e.g. X Hermitian, RHS
complex) is split: the RHS keeps the compatible part and the remainder is
returned by `split()` as a new constraint.

----------------------------------------------------------
Description     : Rule construction, orientation, splitting and merging.
----------------------------------------------------------
"""

from __future__ import annotations
import cmath
from enum import Enum
from typing import List, Optional, Tuple

from QMS.Symbolic.float_utils import (
    approximately_equal, approximately_imaginary, approximately_real,
    approximately_same_norm, real_or_imaginary_if_close
)
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.errors import InvalidMomentRuleError, NonorientableRuleError

####################################################################################################

class PolynomialDifficulty(Enum):
    Unknown             = 0
    Trivial             = 1
    Contradiction       = 2
    Simple              = 3
    NeedsReorienting    = 4
    NonorientableRule   = 5

class MatchType(Enum):
    NoMatch             = 0
    Plain               = 1
    Conjugated          = 2

####################################################################################################

class MomentRule:
    """
    Substitution of a symbol by a polynomial.

    Parameters
    ----------
    factory : PolynomialFactory
        Factory defining the order (and hence the orientation) of the rule.
    rule : Polynomial
        Polynomial constrained to be zero.

    Raises
    ------
    InvalidMomentRuleError
        If the polynomial is a non-zero scalar.
    """

    def __init__(self, factory, rule: Optional[Polynomial] = None):
        self.factory    = factory
        self.lhs        : int               = 0
        self.rhs        : Polynomial        = Polynomial.Zero()
        self.partial    : bool              = False
        self.direction  : complex           = 0.0j
        self._split     : Optional[Polynomial] = None
        self.difficulty = PolynomialDifficulty.Unknown
        if rule is None:
            return

        rule            = rule.copy()
        self.difficulty = self.get_difficulty(rule)
        if self.difficulty == PolynomialDifficulty.Trivial:
            return
        if self.difficulty == PolynomialDifficulty.Contradiction:
            raise InvalidMomentRuleError(1, f"Rule \"{rule.as_string(factory.symbols)} == 0\" implies 1 == 0.")

        self.lhs = rule.last_id()
        if self.difficulty == PolynomialDifficulty.Simple:
            self.rhs = self._pop_back_and_normalize(rule)
        elif self.difficulty == PolynomialDifficulty.NeedsReorienting:
            self.rhs = self._reorient(rule)
        else:
            self._resolve_nonorientable(rule)

        if not self.partial:
            self._split_regular_rule()

    # ----------------------------------------------------------------
    #! Named constructors
    # ----------------------------------------------------------------

    @classmethod
    def substitution(cls, factory, lhs: int, rhs: Polynomial) -> "MomentRule":
        ''' Full rule ``lhs -> rhs`` given directly. '''
        output              = cls(factory)
        output.lhs          = int(lhs)
        output.rhs          = rhs.copy()
        output.difficulty   = PolynomialDifficulty.Simple
        return output

    @classmethod
    def partial_rule(cls, factory, lhs: int, direction: complex, rhs: Polynomial) -> "MomentRule":
        '''
        Partial rule fixing Re(conj(direction) X) to the (real-valued) polynomial ``rhs``.
        '''
        output              = cls(factory)
        output.lhs          = int(lhs)
        output.partial      = True
        output.difficulty   = PolynomialDifficulty.NonorientableRule
        output.direction    = real_or_imaginary_if_close(direction, factory.zero_tolerance)
        rhs                 = factory.scale(rhs, output.direction)
        output.rhs          = output._append_projection(rhs, output.direction)
        return output

    # ----------------------------------------------------------------
    #! Classification
    # ----------------------------------------------------------------

    @staticmethod
    def get_difficulty(rule: Polynomial) -> PolynomialDifficulty:
        if rule.empty():
            return PolynomialDifficulty.Trivial
        if rule.last_id() == 1:
            return PolynomialDifficulty.Contradiction
        if len(rule) <= 1:
            return PolynomialDifficulty.Simple
        last, second = rule[-1], rule[-2]
        if last.id != second.id:
            return PolynomialDifficulty.Simple
        if not approximately_same_norm(last.factor, second.factor):
            return PolynomialDifficulty.NeedsReorienting
        return PolynomialDifficulty.NonorientableRule

    def is_trivial(self) -> bool:
        return self.lhs == 0

    def is_partial(self) -> bool:
        return self.partial

    def split(self) -> Optional[Polynomial]:
        ''' Residual constraint produced when the rule was built, if any. '''
        return self._split

    # ----------------------------------------------------------------
    #! Construction helpers
    # ----------------------------------------------------------------

    def _pop_and_scale(self, rule: Polynomial) -> Tuple[Monomial, Polynomial]:
        leading     = rule.pop_back()
        prefactor   = -1.0 / leading.factor
        if not approximately_equal(prefactor, 1.0):
            rule.scale(prefactor, self.factory.zero_tolerance)
        return leading, rule

    def _pop_back_and_normalize(self, rule: Polynomial) -> Polynomial:
        # k X + Q == 0  ->  X = -Q / k  (conjugated if the leading term is X*)
        leading, rule = self._pop_and_scale(rule)
        if leading.conjugated:
            rule = self.factory.conjugate(rule)
        return rule.real_or_imaginary_if_close(self.factory.zero_tolerance)

    def _reorient(self, rule: Polynomial) -> Polynomial:
        # Solve both Q and conj(Q) for X*, then eliminate X* between them.
        conj_rule       = self.factory.conjugate(rule)
        _, rule         = self._pop_and_scale(rule)
        _, conj_rule    = self._pop_and_scale(conj_rule)
        combined        = self.factory.sum(rule, conj_rule.scale(-1.0))
        return self._pop_back_and_normalize(combined)

    def _append_projection(self, rhs: Polynomial, direction: complex) -> Polynomial:
        # rhs + X/2 - d^2 X*/2
        projection = self.factory([Monomial(self.lhs, 0.5, False),
                                   Monomial(self.lhs, -0.5 * direction * direction, True)])
        rhs = self.factory.sum(rhs, projection)
        return rhs.real_or_imaginary_if_close(self.factory.zero_tolerance)

    def _resolve_nonorientable(self, rule: Polynomial) -> None:
        factory     = self.factory
        k           = rule[-2].factor
        ratio       = rule[-1].factor / k
        if approximately_real(ratio, factory.zero_tolerance):
            direction = 1.0 + 0.0j if ratio.real > 0 else 1.0j
        else:
            direction = cmath.sqrt(ratio)
            if direction.imag < 0:
                direction = -direction
        direction   = real_or_imaginary_if_close(direction, factory.zero_tolerance)

        # a (X + d^2 X*) = -Q  ->  Re(conj(d) X) = -conj(d) Q / 2a
        rule.pop_back()
        rule.pop_back()
        rule.scale(-direction.conjugate() / (2.0 * k), factory.zero_tolerance)
        imaginary   = factory.Imaginary(rule)
        if not imaginary.empty():
            self._split = imaginary
            rule        = factory.Real(rule)

        self.partial    = True
        self.direction  = direction
        self.rhs        = self._append_projection(rule.scale(direction, factory.zero_tolerance), direction)

    def _split_regular_rule(self) -> None:
        if self.lhs <= 1:
            return
        factory = self.factory
        symbol  = factory.symbols[self.lhs]
        if symbol.hermitian and not factory.is_hermitian(self.rhs):
            self._split = factory.Imaginary(self.rhs)
            self.rhs    = factory.Real(self.rhs)
        elif symbol.antihermitian and not factory.is_antihermitian(self.rhs):
            self._split = factory.Real(self.rhs)
            self.rhs    = factory.scale(factory.Imaginary(self.rhs), 1.0j)
        else:
            return
        if self._split.empty():
            self._split = None

    # ----------------------------------------------------------------
    #! Merging
    # ----------------------------------------------------------------

    def merge_partial(self, other: "MomentRule") -> None:
        '''
        Combine this partial rule with a partial rule on the same symbol whose direction
        is orthogonal, giving a full rule.

        Raises
        ------
        NonorientableRuleError
            If the directions are not orthogonal.
        '''
        if not (self.partial and other.partial) or self.lhs != other.lhs:
            raise NonorientableRuleError(self.lhs, "Only partial rules on the same symbol can be merged.")
        relative = self.direction.conjugate() * other.direction
        if not approximately_imaginary(relative, self.factory.zero_tolerance):
            raise NonorientableRuleError(
                self.lhs, f"Partial rules on symbol #{self.lhs} with directions {self.direction} "
                          f"and {other.direction} cannot be merged.")

        # X = d Re(conj(d) X) + d' Re(conj(d') X) for orthogonal d, d'
        mine    = self.factory([m for m in self.rhs if m.id != self.lhs])
        theirs  = self.factory([m for m in other.rhs if m.id != other.lhs])
        self.rhs        = self.factory.sum(mine, theirs).real_or_imaginary_if_close(self.factory.zero_tolerance)
        self.partial    = False
        self.direction  = 0.0j
        self.difficulty = PolynomialDifficulty.Simple

    # ----------------------------------------------------------------
    #! Application
    # ----------------------------------------------------------------

    def match_info(self, poly: Polynomial) -> Tuple[MatchType, int]:
        ''' Whether (and where) the LHS symbol first appears in a polynomial. '''
        for index, term in enumerate(poly):
            if term.id == self.lhs:
                return (MatchType.Conjugated if term.conjugated else MatchType.Plain), index
        return MatchType.NoMatch, -1

    def matches(self, poly: Polynomial) -> bool:
        return self.match_info(poly)[0] != MatchType.NoMatch

    def append_transformed(self, output: List[Monomial], term: Monomial) -> None:
        ''' Append the image of a single LHS term (k X or k X*) to a raw term list. '''
        for source in self.rhs:
            if term.conjugated:
                output.append(Monomial(source.id, term.factor * source.factor.conjugate(), not source.conjugated))
            else:
                output.append(Monomial(source.id, term.factor * source.factor, source.conjugated))

    def apply(self, poly: Polynomial) -> Polynomial:
        ''' Substitute every occurrence of the LHS symbol in a polynomial. '''
        raw = []
        for term in poly:
            if term.id == self.lhs:
                self.append_transformed(raw, term)
            else:
                raw.append(term)
        return self.factory(raw)

    def rhs_contains(self, symbol_id: int) -> bool:
        return self.rhs.contains(symbol_id)

    def as_polynomial(self) -> Polynomial:
        ''' The constraint RHS - LHS == 0 expressed by this rule. '''
        if self.is_trivial():
            return Polynomial.Zero()
        output = self.factory.sum(self.rhs, self.factory([Monomial(self.lhs, -1.0)]))
        return output.real_or_imaginary_if_close(self.factory.zero_tolerance)

    # ----------------------------------------------------------------
    #! Comparison and display
    # ----------------------------------------------------------------

    def approximately_equals(self, other: "MomentRule") -> bool:
        if self.lhs != other.lhs or self.partial != other.partial:
            return False
        if self.partial and not approximately_equal(self.direction, other.direction, self.factory.zero_tolerance):
            return False
        return self.rhs.approximately_equals(other.rhs, self.factory.zero_tolerance)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MomentRule):
            return NotImplemented
        return self.approximately_equals(other)

    __hash__ = None

    def as_string(self) -> str:
        symbols = self.factory.symbols
        lhs     = symbols.format_symbol(self.lhs) if self.lhs > 1 else f"#{self.lhs}"
        text    = f"{lhs} -> {self.rhs.as_string(symbols)}"
        if self.partial:
            text += f" (partial, direction {self.direction})"
        return text

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"MomentRule(#{self.lhs} -> {self.rhs!r}, partial={self.partial})"

####################################################################################################
#! End of moment rule
####################################################################################################
