"""
Tests for monomials, canonical polynomials and the order-aware polynomial factories.
"""

import pytest

from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial, id_order
from QMS.Symbolic.polynomial_factory import HashPolynomialFactory, IdPolynomialFactory
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.errors import NotMonomialError, UnregisteredOperatorSequenceError

# ----------------------------------------------------------------------------------------------------
#! Monomials
# ----------------------------------------------------------------------------------------------------

@pytest.mark.parametrize(
    "text, symbol_id, factor, conjugated",
    [
        ("#3",          3, 1.0,         False),
        ("-#3*",        3, -1.0,        True),
        ("2.5#3",       3, 2.5,         False),
        ("(1+2j)#3*",   3, 1.0 + 2.0j,  True),
        ("5",           1, 5.0,         False),
        ("0",           0, 0.0,         False),
    ],
)
def test_monomial_string_forms(text, symbol_id, factor, conjugated):
    ''' Test parsing of the monomial string form and that formatting gives it back. '''
    # Act
    monomial = Monomial.from_string(text)

    # Assert
    assert monomial.id == symbol_id
    assert monomial.factor == pytest.approx(factor)
    assert monomial.conjugated is conjugated
    assert monomial.as_string() == text

def test_monomial_rejects_empty_string():
    ''' Test that an empty string is not a monomial. '''
    with pytest.raises(ValueError):
        Monomial.from_string("   ")

def test_monomial_zero_and_scaling():
    ''' Test the zero test, negation and scalar multiplication. '''
    monomial = Monomial(3, 2.0)
    assert not monomial.is_zero()
    assert Monomial(0, 5.0).is_zero()
    assert (-monomial).negated()
    assert (monomial * 1j).complex_factor()
    assert Monomial(0, 1.0) == Monomial(0, 7.0)

# ----------------------------------------------------------------------------------------------------
#! Canonical polynomials
# ----------------------------------------------------------------------------------------------------

def test_polynomial_merges_and_prunes():
    ''' Test that construction sorts, merges duplicates and drops cancelled terms. '''
    # Arrange
    raw = [Monomial(3, 1.0), Monomial(2, 2.0), Monomial(3, -1.0), Monomial(2, 1.0, True), Monomial(0, 4.0)]

    # Act
    poly = Polynomial(raw)

    # Assert
    assert len(poly) == 2
    assert (poly[0].id, poly[0].conjugated, poly[0].factor) == (2, False, 2.0)
    assert (poly[1].id, poly[1].conjugated, poly[1].factor) == (2, True, 1.0)
    assert not poly.contains(3)

def test_polynomial_append_and_scale(factory):
    ''' Test in-place addition and scaling of canonical polynomials. '''
    lhs = factory([Monomial(2, 1.0)])
    rhs = factory([Monomial(3, 1.0), Monomial(2, -1.0)])
    factory.append(lhs, rhs)
    assert lhs == factory.monomial(3)
    assert factory.scale(lhs, 0.0).empty()
    assert factory.scale(lhs, 2.0) == factory.monomial(3, 2.0)

def test_polynomial_arithmetic_operators():
    ''' Test +, - and scalar * on polynomials. '''
    lhs = Polynomial([Monomial(2, 1.0), Monomial(1, 3.0)])
    rhs = Polynomial([Monomial(2, 1.0)])
    assert (lhs - rhs) == Polynomial.Scalar(3.0)
    assert (lhs + rhs).find(2) == 1
    assert (2 * rhs)[0].factor == 2.0
    assert (lhs - lhs).empty()

def test_polynomial_as_string(symbols):
    ''' Test the display form with and without symbol names. '''
    poly = Polynomial([Monomial(2, 1.0), Monomial(3, -2.0, True)])
    assert poly.as_string() == "#2 - 2#3*"
    assert Polynomial.Zero().as_string() == "0"
    assert poly.as_string(symbols) == "#2 - 2 #3*"

def test_as_monomial():
    ''' Test conversion of single-term polynomials to monomials. '''
    assert Polynomial.Zero().as_monomial().id == 0
    assert Polynomial([Monomial(4, 2.0)]).as_monomial().factor == 2.0
    with pytest.raises(NotMonomialError):
        Polynomial([Monomial(2, 1.0), Monomial(3, 1.0)]).as_monomial()

def test_conjugate_respects_symbol_type(mixed_factory):
    ''' Test conjugation of complex, Hermitian and antihermitian symbols. '''
    # Arrange
    poly = mixed_factory([Monomial(2, 1j), Monomial(3, 2.0), Monomial(4, 1.0)])

    # Act
    conj = mixed_factory.conjugate(poly)

    # Assert
    assert conj == mixed_factory([Monomial(2, -1j, True), Monomial(3, 2.0), Monomial(4, -1.0)])
    assert not mixed_factory.is_hermitian(poly)
    assert mixed_factory.is_hermitian(mixed_factory.monomial(3, 2.0))
    assert mixed_factory.is_hermitian(mixed_factory.monomial(4, 1j))

@pytest.mark.parametrize(
    "terms",
    [
        [(2, 1.0 + 2.0j), (3, 2.0), (4, 1j)],
        [(2, 1.0, True), (2, -3j)],
        [(1, 5j), (4, 2.0)],
        [(2, 0.5j, True), (3, -1.0), (4, -2.0)],
    ],
)
def test_conjugation_is_an_involution(mixed_factory, terms):
    ''' Test that conjugating twice gives back the original polynomial. '''
    poly = mixed_factory([Monomial(*term) for term in terms])
    assert mixed_factory.conjugate(mixed_factory.conjugate(poly)) == poly
    assert poly.is_conjugate(mixed_factory.symbols, mixed_factory.conjugate(poly))

def test_fix_cc_rewrites_redundant_conjugates(mixed_factory):
    ''' Test that conjugates of Hermitian and antihermitian symbols become plain terms. '''
    raw = Polynomial([Monomial(3, 2.0, True), Monomial(4, 1.0, True)])
    mixed_factory.fix_cc(raw)
    assert raw == Polynomial([Monomial(3, 2.0), Monomial(4, -1.0)])

@pytest.mark.parametrize(
    "symbol_id, factor, expected_real, expected_imaginary",
    [
        (3, 3j,     [],                             [(3, 3.0, False)]),
        (3, 2.0,    [(3, 2.0, False)],              []),
        (2, 1.0,    [(2, 0.5, False), (2, 0.5, True)], [(2, -0.5j, False), (2, 0.5j, True)]),
    ],
)
def test_real_and_imaginary_parts(mixed_factory, symbol_id, factor, expected_real, expected_imaginary):
    ''' Test Re and Im of single terms over Hermitian and complex symbols. '''
    # Arrange
    poly = mixed_factory.monomial(symbol_id, factor)

    # Act
    real_part       = mixed_factory.Real(poly)
    imaginary_part  = mixed_factory.Imaginary(poly)

    # Assert
    assert real_part == mixed_factory([Monomial(*term) for term in expected_real])
    assert imaginary_part == mixed_factory([Monomial(*term) for term in expected_imaginary])

# ----------------------------------------------------------------------------------------------------
#! Factories
# ----------------------------------------------------------------------------------------------------

def test_factory_orders(context):
    ''' Test that id order and hash order disagree when ids were handed out out of hash order. '''
    # Arrange
    table       = SymbolTable(context)
    long_id     = table.merge_in(context.sequence((1, 1)))
    short_id    = table.merge_in(context.sequence((0,)))
    terms       = [Monomial(long_id, 1.0), Monomial(short_id, 1.0)]

    # Act
    by_id   = IdPolynomialFactory(table)(terms)
    by_hash = HashPolynomialFactory(table)(terms)

    # Assert
    assert (long_id, short_id) == (2, 3)
    assert [term.id for term in by_id] == [2, 3]
    assert [term.id for term in by_hash] == [3, 2]
    assert HashPolynomialFactory(table).less(Monomial(3), Monomial(2))

def test_hash_order_survives_conjugation_and_sums(context):
    ''' Test Hermiticity checks and sums of polynomials sorted by hash rather than id. '''
    # Arrange: #2 = <X2 X2> (hash 7), #3 = <X1> (hash 2), #4 = <X1 X2>
    table   = SymbolTable(context)
    x2x2    = table.merge_in(context.sequence((1, 1)))
    x1      = table.merge_in(context.sequence((0,)))
    x1x2    = table.merge_in(context.sequence((0, 1)))
    by_hash = HashPolynomialFactory(table)

    # Act
    hermitian   = by_hash([Monomial(x2x2, 1.0), Monomial(x1, 1.0)])
    complex_    = by_hash([Monomial(x2x2, 2.0), Monomial(x1x2, 1j)])
    conj        = by_hash.conjugate(complex_)
    total       = hermitian + by_hash.monomial(x2x2)

    # Assert
    assert [term.id for term in hermitian] == [x1, x2x2]
    assert hermitian.order == by_hash.key
    assert by_hash.is_hermitian(hermitian)
    assert hermitian.is_hermitian(table)
    assert hermitian.is_hermitian(table, order=id_order)
    assert by_hash.is_antihermitian(by_hash.scale(hermitian, 1j))
    assert not by_hash.is_hermitian(complex_)
    assert complex_.is_conjugate(table, conj)
    assert by_hash.is_hermitian(by_hash.sum(complex_, conj))
    assert [term.id for term in total] == [x1, x2x2]
    assert total == by_hash([Monomial(x1, 1.0), Monomial(x2x2, 2.0)])

def test_construct_requires_registered_sequences(context, factory):
    ''' Test that constructing from an unknown word raises. '''
    with pytest.raises(UnregisteredOperatorSequenceError):
        factory.construct([(context.sequence((0, 1)), 1.0)])

def test_register_and_construct(context, factory):
    ''' Test that registration then construction pairs a word with its reverse. '''
    # Arrange
    word = context.sequence((0, 1))

    # Act
    poly = factory.register_and_construct([(word, 2.0), (word.conjugate(), 1.0)])

    # Assert
    assert len(poly) == 2
    assert (poly[0].id, poly[0].conjugated, poly[0].factor) == (5, False, 2.0)
    assert (poly[1].id, poly[1].conjugated, poly[1].factor) == (5, True, 1.0)
    assert factory.maximum_degree(poly) == 2
    assert factory.maximum_degree(factory.monomial(3)) == 0

def test_factory_prunes_with_its_tolerance(symbols):
    ''' Test that terms below the factory tolerance disappear. '''
    loose = IdPolynomialFactory(symbols, zero_tolerance=1e6)
    tight = IdPolynomialFactory(symbols, zero_tolerance=1.0)
    tiny  = [Monomial(2, 1e-12)]
    assert loose(tiny).empty()
    assert len(tight(tiny)) == 1

# ----------------------------------------------------------------------------------------------------
#! End of test_polynomial.py
# ----------------------------------------------------------------------------------------------------
