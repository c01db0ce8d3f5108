"""
Operator context: the rules by which operator words simplify, conjugate and hash.

The base `Context` describes a free algebra of Hermitian operators: no two
words simplify to each other, and the conjugate of a word is its reverse with
a conjugated phase. Scenario-specific algebras override the hooks:

- `additional_simplification(operators, sign)` : rewrite a raw word into canonical form
- `simplify_as_moment(sequence)`               : identify words that share an expectation value
- `is_sequence_null(sequence)`                 : whether Re/Im of the expectation value are forced to zero
- `format_sequence(sequence)`                  : display string

----------------------------------------------------------
Description     : Base scenario context with shortlex hashing and a word-list cache.
----------------------------------------------------------
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from QMS.Scenario.operator_sequence import OperatorSequence, SequenceSign, ShortlexHasher

####################################################################################################

class Context:
    """
    Generic operator context over ``operator_count`` Hermitian operators.

    Parameters
    ----------
    operator_count : int
        Number of fundamental operators.
    names : sequence of str, optional
        Display names of the operators (default X1, X2, ...).
    """

    def __init__(self, operator_count: int, names: Optional[Sequence[str]] = None):
        # Local import: the dictionary module needs the sequence types defined above.
        from QMS.Scenario.dictionary import Dictionary

        self.operator_count = int(operator_count)
        self.hasher         = ShortlexHasher(self.operator_count)
        if names is None:
            names = [f"X{idx + 1}" for idx in range(self.operator_count)]
        if len(names) != self.operator_count:
            raise ValueError("Number of operator names must match the operator count.")
        self.names          = list(names)
        self.word_list      = Dictionary(self)

    # ----------------------------------------------------------------
    #! Basic properties
    # ----------------------------------------------------------------

    def __len__(self) -> int:
        return self.operator_count

    def empty(self) -> bool:
        return self.operator_count == 0

    def can_be_nonhermitian(self) -> bool:
        return True

    def can_have_aliases(self) -> bool:
        ''' True if distinct canonical words may share an expectation value. '''
        return False

    # ----------------------------------------------------------------
    #! Hooks
    # ----------------------------------------------------------------

    def additional_simplification(self, operators: Tuple[int, ...],
                                  sign: SequenceSign) -> Tuple[Tuple[int, ...], SequenceSign, bool]:
        '''
        Rewrite a raw word. Returns (operators, sign, is_zero). The base context does nothing.
        '''
        return operators, sign, False

    def simplify_as_moment(self, sequence: OperatorSequence) -> OperatorSequence:
        return sequence

    def can_be_simplified_as_moment(self, sequence: OperatorSequence) -> bool:
        if not self.can_have_aliases():
            return False
        return self.simplify_as_moment(sequence).hash != sequence.hash

    def is_sequence_null(self, sequence: OperatorSequence) -> Tuple[bool, bool]:
        '''
        Returns (real part is zero, imaginary part is zero) for the expectation value of the sequence.
        '''
        return False, False

    # ----------------------------------------------------------------
    #! Algebra
    # ----------------------------------------------------------------

    def hash(self, operators) -> int:
        if isinstance(operators, OperatorSequence):
            return 0 if operators.zero else self.hasher(operators.operators)
        return self.hasher(operators)

    def conjugate(self, sequence: OperatorSequence) -> OperatorSequence:
        if sequence.zero:
            return OperatorSequence.Zero(self)
        return OperatorSequence(tuple(reversed(sequence.operators)), self, sequence.sign.conjugate())

    def multiply(self, lhs: OperatorSequence, rhs: OperatorSequence) -> OperatorSequence:
        if lhs.zero or rhs.zero:
            return OperatorSequence.Zero(self)
        return OperatorSequence(lhs.operators + rhs.operators, self, lhs.sign * rhs.sign)

    def sequence(self, operators: Sequence[int] = (), sign: SequenceSign = SequenceSign.Positive) -> OperatorSequence:
        ''' Construct (and simplify) a sequence in this context. '''
        return OperatorSequence(operators, self, sign)

    def get_if_canonical(self, raw: Sequence[int]) -> Optional[OperatorSequence]:
        '''
        Returns the sequence if the raw word is already in canonical form, otherwise None.
        '''
        raw     = tuple(raw)
        output  = OperatorSequence(raw, self)
        if output.zero or len(output) != len(raw):
            return None
        if output.hash != self.hash(raw):
            return None
        return output

    # ----------------------------------------------------------------
    #! Word lists
    # ----------------------------------------------------------------

    def operator_sequence_generator(self, word_length: int, conjugated: bool = False):
        '''
        Returns the (cached) generator of all canonical words up to ``word_length``.
        '''
        pair = self.word_list.level(word_length)
        return pair.conjugate if conjugated else pair.forward

    def new_osg(self, word_length: int):
        from QMS.Scenario.dictionary import OperatorSequenceGenerator
        return OperatorSequenceGenerator(self, word_length)

    # ----------------------------------------------------------------
    #! Display
    # ----------------------------------------------------------------

    def format_sequence(self, sequence: OperatorSequence) -> str:
        if sequence.zero:
            return "0"
        prefix = {SequenceSign.Positive: "", SequenceSign.Imaginary: "i",
                  SequenceSign.Negative: "-", SequenceSign.NegativeImaginary: "-i"}[sequence.sign]
        if sequence.empty():
            return {SequenceSign.Positive: "1", SequenceSign.Imaginary: "i",
                    SequenceSign.Negative: "-1", SequenceSign.NegativeImaginary: "-i"}[sequence.sign]
        return prefix + "<" + " ".join(self.names[op] for op in sequence.operators) + ">"

    def __str__(self) -> str:
        return f"{type(self).__name__} with {self.operator_count} operators: {', '.join(self.names)}."

####################################################################################################
#! End of context
####################################################################################################
