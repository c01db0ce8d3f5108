"""
Operator sequences: hashed words of operators with a phase.

An `OperatorSequence` is an immutable word of operator indices, bound to the
`Context` that defines how words simplify and hash, together with a phase in
{1, i, -1, -i}. A special zero sequence represents the additive zero.

Hashes follow the context's shortlex numbering: the zero sequence hashes to 0,
the empty word (identity) to 1, and longer words hash higher.

----------------------------------------------------------
Description     : Operator words, phases and the shortlex hasher.
----------------------------------------------------------
"""

from __future__ import annotations
from enum import IntEnum
from typing import Iterable, Iterator, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from QMS.Scenario.context import Context

####################################################################################################
#! Phases
####################################################################################################

_SIGN_FACTORS = (1.0 + 0.0j, 1.0j, -1.0 + 0.0j, -1.0j)

class SequenceSign(IntEnum):
    """
    Phase of an operator sequence, stored as the power k of i (phase = i^k).
    """
    Positive            = 0
    Imaginary           = 1
    Negative            = 2
    NegativeImaginary   = 3

    @property
    def factor(self) -> complex:
        return _SIGN_FACTORS[self.value]

    def conjugate(self) -> "SequenceSign":
        return SequenceSign((-self.value) % 4)

    def __mul__(self, other: "SequenceSign") -> "SequenceSign":
        return SequenceSign((self.value + int(other)) % 4)

    def negate(self) -> "SequenceSign":
        return SequenceSign((self.value + 2) % 4)

    def is_real(self) -> bool:
        return self.value % 2 == 0

####################################################################################################
#! Hasher
####################################################################################################

class ShortlexHasher:
    """
    Bijective base-``radix`` numbering of words: shorter words hash lower,
    words of the same length hash in lexicographic order, the empty word hashes to 1.
    """

    def __init__(self, radix: int):
        self.radix = max(1, int(radix))

    def __call__(self, operators: Sequence[int]) -> int:
        value   = 1
        stride  = 1
        for op in reversed(operators):
            value  += (op + 1) * stride
            stride *= self.radix
        return value

    def offset(self, word_length: int) -> int:
        ''' Hash of the first word of the given length. '''
        total = 1
        power = 1
        for _ in range(word_length):
            total += power
            power *= self.radix
        return total

####################################################################################################
#! Sequences
####################################################################################################

class OperatorSequence:
    """
    Immutable, hashed, context-bound word of operators with a phase.

    Parameters
    ----------
    operators : iterable of int
        Operator indices, from left to right.
    context : Context
        The context that simplifies and hashes the word.
    sign : SequenceSign
        Phase of the sequence.
    simplify : bool
        If True, the context's simplification is applied at construction.
    """

    __slots__ = ("_operators", "_context", "_sign", "_hash", "_zero")

    def __init__(self,
                 operators  : Iterable[int] = (),
                 context    : "Context"     = None,
                 sign       : SequenceSign  = SequenceSign.Positive,
                 simplify   : bool          = True,
                 zero       : bool          = False):
        if context is None:
            raise ValueError("An operator sequence requires a context.")
        ops             = tuple(int(op) for op in operators)
        sign            = SequenceSign(sign)
        if not zero and simplify:
            ops, sign, zero = context.additional_simplification(ops, sign)
        if zero:
            ops         = ()
            sign        = SequenceSign.Positive
        self._operators = ops
        self._context   = context
        self._sign      = sign
        self._zero      = bool(zero)
        self._hash      = 0 if self._zero else context.hash(ops)

    # ----------------------------------------------------------------
    #! Named constructors
    # ----------------------------------------------------------------

    @classmethod
    def Zero(cls, context: "Context") -> "OperatorSequence":
        return cls((), context, zero=True)

    @classmethod
    def Identity(cls, context: "Context", sign: SequenceSign = SequenceSign.Positive) -> "OperatorSequence":
        return cls((), context, sign=sign)

    # ----------------------------------------------------------------
    #! Properties
    # ----------------------------------------------------------------

    @property
    def operators(self) -> Tuple[int, ...]:
        return self._operators

    @property
    def context(self) -> "Context":
        return self._context

    @property
    def sign(self) -> SequenceSign:
        return self._sign

    @property
    def hash(self) -> int:
        return self._hash

    @property
    def zero(self) -> bool:
        return self._zero

    @property
    def negated(self) -> bool:
        return self._sign in (SequenceSign.Negative, SequenceSign.NegativeImaginary)

    @property
    def factor(self) -> complex:
        ''' Scalar phase as a complex number (0 for the zero sequence). '''
        return 0.0j if self._zero else self._sign.factor

    def empty(self) -> bool:
        return not self._operators

    def __len__(self) -> int:
        return len(self._operators)

    def __iter__(self) -> Iterator[int]:
        return iter(self._operators)

    def __getitem__(self, index: int) -> int:
        return self._operators[index]

    # ----------------------------------------------------------------
    #! Algebra
    # ----------------------------------------------------------------

    def conjugate(self) -> "OperatorSequence":
        return self._context.conjugate(self)

    def __mul__(self, other: "OperatorSequence") -> "OperatorSequence":
        if not isinstance(other, OperatorSequence):
            return NotImplemented
        return self._context.multiply(self, other)

    def __neg__(self) -> "OperatorSequence":
        return OperatorSequence(self._operators, self._context, self._sign.negate(),
                                simplify=False, zero=self._zero)

    def with_sign(self, sign: SequenceSign) -> "OperatorSequence":
        return OperatorSequence(self._operators, self._context, sign, simplify=False, zero=self._zero)

    @staticmethod
    def compare_same_negation(lhs: "OperatorSequence", rhs: "OperatorSequence") -> int:
        '''
        Returns 1 if sequences are identical, -1 if they differ only by a factor of -1, 0 otherwise.
        '''
        if lhs._hash != rhs._hash or lhs._operators != rhs._operators:
            return 0
        if lhs._sign == rhs._sign:
            return 1
        if lhs._sign == rhs._sign.negate():
            return -1
        return 0

    # ----------------------------------------------------------------
    #! Comparison and display
    # ----------------------------------------------------------------

    def __eq__(self, other) -> bool:
        if not isinstance(other, OperatorSequence):
            return NotImplemented
        return (self._hash == other._hash and self._zero == other._zero
                and self._operators == other._operators and self._sign == other._sign)

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __hash__(self) -> int:
        return hash((self._hash, int(self._sign)))

    def __lt__(self, other: "OperatorSequence") -> bool:
        return self._hash < other._hash

    def __str__(self) -> str:
        return self._context.format_sequence(self)

    def __repr__(self) -> str:
        return f"OperatorSequence({list(self._operators)}, sign={self._sign.name}, hash={self._hash})"

####################################################################################################
#! End of operator sequences
####################################################################################################
