"""
Tests for operator sequences, the shortlex hasher, contexts and word enumeration.
"""

import pytest

from QMS.Scenario.context import Context
from QMS.Scenario.operator_sequence import OperatorSequence, SequenceSign, ShortlexHasher

@pytest.mark.parametrize(
    "word, expected",
    [
        ((), 1),
        ((0,), 2),
        ((1,), 3),
        ((0, 0), 4),
        ((0, 1), 5),
        ((1, 0), 6),
        ((1, 1), 7),
        ((0, 0, 0), 8),
    ],
)
def test_shortlex_hash(word, expected):
    ''' Test that shorter words hash lower and equal lengths hash lexicographically. '''
    assert ShortlexHasher(2)(word) == expected

def test_shortlex_offset():
    ''' Test that the offset is the hash of the first word of each length. '''
    hasher = ShortlexHasher(3)
    for length in range(4):
        assert hasher.offset(length) == hasher((0,) * length)

@pytest.mark.parametrize(
    "lhs, rhs, product",
    [
        (SequenceSign.Imaginary, SequenceSign.Imaginary, SequenceSign.Negative),
        (SequenceSign.Negative, SequenceSign.NegativeImaginary, SequenceSign.Imaginary),
        (SequenceSign.Positive, SequenceSign.Imaginary, SequenceSign.Imaginary),
    ],
)
def test_sign_multiplication(lhs, rhs, product):
    ''' Test that phases multiply as powers of i. '''
    assert lhs * rhs is product
    assert (lhs * rhs).factor == pytest.approx(lhs.factor * rhs.factor)

def test_sign_conjugation():
    ''' Test that conjugation flips the imaginary phases only. '''
    assert SequenceSign.Imaginary.conjugate() is SequenceSign.NegativeImaginary
    assert SequenceSign.Negative.conjugate() is SequenceSign.Negative
    assert SequenceSign.Negative.is_real()
    assert not SequenceSign.Imaginary.is_real()

def test_sequence_conjugate_reverses(context):
    ''' Test that the conjugate of a word is its reverse with conjugated phase. '''
    # Arrange
    sequence = context.sequence((0, 1), SequenceSign.Imaginary)

    # Act
    conj = sequence.conjugate()

    # Assert
    assert conj.operators == (1, 0)
    assert conj.sign is SequenceSign.NegativeImaginary
    assert conj.hash == 6
    assert conj.conjugate() == sequence

def test_sequence_multiplication(context):
    ''' Test that products concatenate words and multiply phases. '''
    lhs = context.sequence((0,), SequenceSign.Imaginary)
    rhs = context.sequence((1, 0), SequenceSign.Imaginary)
    out = lhs * rhs
    assert out.operators == (0, 1, 0)
    assert out.sign is SequenceSign.Negative
    assert out.negated

def test_zero_sequence_absorbs(context):
    ''' Test that the zero sequence hashes to 0 and absorbs products. '''
    zero = OperatorSequence.Zero(context)
    word = context.sequence((0, 1))
    assert zero.hash == 0
    assert zero.factor == 0
    assert (zero * word).zero
    assert (word * zero).zero
    assert OperatorSequence.Identity(context).hash == 1

def test_compare_same_negation(context):
    ''' Test equality up to a sign of -1. '''
    word = context.sequence((0, 1))
    assert OperatorSequence.compare_same_negation(word, word) == 1
    assert OperatorSequence.compare_same_negation(word, -word) == -1
    assert OperatorSequence.compare_same_negation(word, word.with_sign(SequenceSign.Imaginary)) == 0
    assert OperatorSequence.compare_same_negation(word, context.sequence((1, 0))) == 0

def test_sequence_requires_context():
    ''' Test that a sequence cannot be created without a context. '''
    with pytest.raises(ValueError):
        OperatorSequence((0, 1))

def test_generator_lists_words_in_hash_order(context):
    ''' Test that the word generator lists all 1 + 2 + 4 words up to length 2, identity first. '''
    # Act
    generator = context.operator_sequence_generator(2)

    # Assert
    assert len(generator) == 7
    assert [seq.hash for seq in generator] == list(range(1, 8))
    assert generator[0].empty()

def test_conjugate_generator_matches_forward(context):
    ''' Test that the conjugate generator lists conjugates in the same order. '''
    forward     = context.operator_sequence_generator(2)
    conjugate   = context.operator_sequence_generator(2, conjugated=True)
    assert [seq.conjugate() for seq in forward] == list(conjugate)

def test_dictionary_caches_levels(context):
    ''' Test that the word list is generated once per length. '''
    first   = context.operator_sequence_generator(1)
    second  = context.operator_sequence_generator(1)
    assert first is second
    assert 1 in context.word_list
    assert 3 not in context.word_list

class _NilpotentContext(Context):
    """Context in which X1 X1 = 0."""

    def additional_simplification(self, operators, sign):
        for left, right in zip(operators, operators[1:]):
            if left == right == 0:
                return (), sign, True
        return operators, sign, False

def test_simplification_hook_prunes_words():
    ''' Test that words simplifying to zero are excluded from enumeration. '''
    context = _NilpotentContext(2)
    assert context.sequence((0, 0)).zero
    assert context.get_if_canonical((0, 0)) is None
    words = [seq.operators for seq in context.operator_sequence_generator(2)]
    assert (0, 0) not in words
    assert len(words) == 6

def test_format_sequence():
    ''' Test the display form of sequences. '''
    context = Context(2, names=["A", "B"])
    assert str(context.sequence((0, 1))) == "<A B>"
    assert str(context.sequence((0,), SequenceSign.Negative)) == "-<A>"
    assert str(OperatorSequence.Identity(context)) == "1"
    assert str(OperatorSequence.Zero(context)) == "0"
    with pytest.raises(ValueError):
        Context(2, names=["A"])

# ----------------------------------------------------------------------------------------------------
#! End of test_scenario.py
# ----------------------------------------------------------------------------------------------------
