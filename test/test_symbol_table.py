"""
Tests for the symbol registry: seeding, merging, lookup, nullity and basis bookkeeping.
"""

import pytest

from QMS.Scenario.context import Context
from QMS.Scenario.operator_sequence import OperatorSequence, SequenceSign
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.symbol import Symbol
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.errors import UnknownBasisElementError, UnknownSymbolError, ZeroSymbolError

def test_fresh_table_is_seeded(context):
    ''' Test that a new table holds exactly zero and identity. '''
    table = SymbolTable(context)
    assert len(table) == 2
    assert table[0].hermitian and table[0].antihermitian
    assert table[0].basis_key() == (-1, -1)
    assert table[1].hermitian and not table[1].antihermitian
    assert table[1].basis_key() == (0, -1)

def test_merge_in_sequences(context):
    ''' Test ids handed out for identity, zero, a new word and its conjugate. '''
    # Arrange
    table   = SymbolTable(context)
    word    = context.sequence((0, 1))

    # Act
    identity_id = table.merge_in(OperatorSequence.Identity(context))
    zero_id     = table.merge_in(OperatorSequence.Zero(context))
    word_id     = table.merge_in(word)
    again_id    = table.merge_in(word.conjugate())

    # Assert
    assert (identity_id, zero_id, word_id, again_id) == (1, 0, 2, 2)
    assert table.where(word) == (2, False)
    assert table.where(word.conjugate()) == (2, True)
    assert len(table) == 3

def test_merge_in_iterable_returns_ids(context):
    ''' Test the batch form of merge_in. '''
    table = SymbolTable(context)
    ids = table.merge_in([context.sequence((0,)), context.sequence((1,)), context.sequence((0,))])
    assert ids == [2, 3, 2]

def test_hermitian_and_complex_words(context):
    ''' Test the Hermiticity flags and basis keys of palindromic and generic words. '''
    table       = SymbolTable(context)
    palindrome  = table.merge_in(context.sequence((0, 1, 0)))
    generic     = table.merge_in(context.sequence((0, 1)))

    assert table[palindrome].hermitian
    assert table[palindrome].basis_key() == (1, -1)
    assert not table[generic].hermitian and not table[generic].antihermitian
    assert table[generic].basis_key() == (2, 0)
    assert table.basis.real_symbol_count == 3
    assert table.basis.imaginary_symbol_count == 1

def test_lower_hash_is_forward_direction(context):
    ''' Test that merging the higher-hash direction first still stores the lower-hash word. '''
    table       = SymbolTable(context)
    symbol_id   = table.merge_in(context.sequence((1, 0)))
    symbol      = table[symbol_id]
    assert symbol.sequence.operators == (0, 1)
    assert symbol.sequence_conj.operators == (1, 0)
    assert symbol.hash < symbol.hash_conj

@pytest.mark.parametrize(
    "operators, sign, expected_factor, expected_conj",
    [
        ((0, 1), SequenceSign.Positive, 1.0, False),
        ((0, 1), SequenceSign.Imaginary, 1.0j, False),
        ((1, 0), SequenceSign.Negative, -1.0, True),
        ((1, 0), SequenceSign.NegativeImaginary, -1.0j, True),
    ],
)
def test_to_symbol_carries_phase(context, operators, sign, expected_factor, expected_conj):
    ''' Test that phases become monomial factors and reversed words become conjugates. '''
    # Arrange
    table = SymbolTable(context)
    table.merge_in(context.sequence((0, 1)))

    # Act
    monomial = table.to_symbol(context.sequence(operators, sign))

    # Assert
    assert monomial.id == 2
    assert monomial.factor == pytest.approx(expected_factor)
    assert monomial.conjugated is expected_conj

def test_to_symbol_unknown_and_zero(context):
    ''' Test the not-found sentinel and the zero sequence. '''
    table = SymbolTable(context)
    assert table.to_symbol(context.sequence((1, 1))).id == SymbolTable.NOT_FOUND
    assert table.hash_to_index(12345) == (SymbolTable.NOT_FOUND, False)
    assert table.to_symbol(OperatorSequence.Zero(context)).id == 0

def test_make_canonical(mixed_symbols):
    ''' Test that conjugates of Hermitian and antihermitian symbols are rewritten. '''
    assert mixed_symbols.make_canonical(Monomial(2, 2.0, True)).conjugated
    hermitian = mixed_symbols.make_canonical(Monomial(3, 2.0, True))
    assert (hermitian.conjugated, hermitian.factor) == (False, 2.0)
    anti = mixed_symbols.make_canonical(Monomial(4, 2.0, True))
    assert (anti.conjugated, anti.factor) == (False, -2.0)

def test_out_of_range_lookup(symbols):
    ''' Test that unknown ids raise UnknownSymbolError. '''
    with pytest.raises(UnknownSymbolError):
        symbols[len(symbols)]
    with pytest.raises(UnknownSymbolError):
        symbols[-1]
    assert 4 in symbols
    assert 5 not in symbols

def test_create_blank_symbols(context):
    ''' Test creation of symbols without sequences. '''
    table = SymbolTable(context)
    first = table.create(2, has_real=True, has_imaginary=False)
    assert first == 2
    assert table[3].hermitian
    assert table[3].sequence is None
    with pytest.raises(ZeroSymbolError):
        table.create(1, has_real=False, has_imaginary=False)

def test_fill_to_word_length(context):
    ''' Test that filling registers every word up to length two once. '''
    table = SymbolTable(context)
    added = table.fill_to_word_length(2)
    # X1, X2, X1X1, X1X2 (with X2X1), X2X2
    assert added == 5
    assert table.fill_to_word_length(2) == 0

def test_merge_nullity_renumbers_basis(symbols):
    ''' Test that nulling the imaginary part makes a symbol Hermitian and shrinks the basis. '''
    # Arrange
    assert symbols.basis.imaginary_symbol_count == 3

    # Act
    changed = symbols.merge_nullity(3, imaginary_is_zero=True)

    # Assert
    assert changed
    assert symbols[3].hermitian
    assert symbols[3].img_index == -1
    assert symbols[4].img_index == 1
    assert symbols.basis.imaginary_symbols == [2, 4]
    assert not symbols.merge_nullity(3, imaginary_is_zero=True)

@pytest.mark.parametrize(
    "symbol_id, real_zero, imaginary_zero",
    [(2, True, True), (3, True, False), (4, False, True)],
)
def test_merge_nullity_rejects_zero_symbols(mixed_symbols, symbol_id, real_zero, imaginary_zero):
    ''' Test that nullity contradicting the symbol type raises ZeroSymbolError. '''
    with pytest.raises(ZeroSymbolError):
        mixed_symbols.merge_nullity(symbol_id, real_zero, imaginary_zero)

class _NullContext(Context):
    """Context in which <X1 X2> has no real part and <X2 X2> vanishes."""

    def is_sequence_null(self, sequence):
        if sequence.operators == (0, 1):
            return True, False
        if sequence.operators == (1, 1):
            return True, True
        return False, False

def test_context_nullity_applied_on_merge():
    ''' Test that context-declared nullity shapes new symbols. '''
    context = _NullContext(2)
    table   = SymbolTable(context)
    word_id = table.merge_in(context.sequence((0, 1)))
    assert table[word_id].antihermitian
    with pytest.raises(ZeroSymbolError):
        table.merge_in(context.sequence((1, 1)))

def test_basis_view_lookups(symbols):
    ''' Test the cross references between the real and imaginary bases. '''
    basis = symbols.basis
    assert basis.real_symbols == [1, 2, 3, 4]
    assert basis.imaginary_symbols == [2, 3, 4]
    assert basis.im_of_real(2) == 1
    assert basis.re_of_imaginary(1) == 2
    assert basis.symbol_of(True, 0) == 1
    with pytest.raises(UnknownBasisElementError) as info:
        basis.symbol_of(False, 3)
    assert info.value.is_real is False
    assert info.value.index == 3

def test_zero_sequence_maps_to_zero_symbol(context):
    ''' Test that the zero sequence maps onto the zero symbol. '''
    symbol = Symbol.from_sequence(OperatorSequence.Zero(context))
    assert symbol.id == 0
    assert symbol.hermitian and symbol.antihermitian

# ----------------------------------------------------------------------------------------------------
#! End of test_symbol_table.py
# ----------------------------------------------------------------------------------------------------
