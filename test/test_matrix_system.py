"""
Tests for the matrix system: find-or-create of matrices, rulebook ownership and hooks.
"""

import threading
import time

import pytest

from QMS.Matrix.matrix import MatrixType, MonomialMatrix, PolynomialMatrix
from QMS.Scenario.context import Context
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.Rules.moment_rulebook import MomentRulebook
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.Symbolic.polynomial_factory import HashPolynomialFactory, IdPolynomialFactory
from QMS.System.matrix_system import LocalizingMatrixIndex, MatrixSystem, PolynomialLMIndex
from QMS.errors import MissingComponentError

@pytest.fixture
def system():
    return MatrixSystem(Context(2), zero_tolerance=100.0, mt_policy="never")

class _RecordingSystem(MatrixSystem):
    """Matrix system that records every hook call."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.events = []

    def on_new_moment_matrix(self, level, offset, matrix):
        self.events.append(("moment", level, offset))

    def on_new_localizing_matrix(self, index, offset, matrix):
        self.events.append(("localizing", index.level, offset))

    def on_new_polynomial_localizing_matrix(self, index, offset, matrix):
        self.events.append(("polynomial", index.level, offset))

    def on_new_substituted_matrix(self, index, offset, matrix):
        self.events.append(("substituted", index.source, index.rulebook, offset))

    def on_dictionary_generated(self, word_length, new_symbols):
        self.events.append(("dictionary", word_length, new_symbols))

    def on_rulebook_added(self, index, rulebook, is_new):
        self.events.append(("rulebook", index, is_new))

# ----------------------------------------------------------------------------------------------------
#! Moment and localizing matrices
# ----------------------------------------------------------------------------------------------------

def test_moment_matrix_find_or_create(system):
    ''' Test that asking twice for a moment matrix returns the same offset and object. '''
    # Arrange
    assert system.find_moment_matrix(1) is None

    # Act
    first_offset, first     = system.moment_matrix(1)
    second_offset, second   = system.moment_matrix(1)

    # Assert
    assert first_offset == second_offset == 0
    assert first is second
    assert system.find_moment_matrix(1) == 0
    assert system[0] is first
    assert len(system) == 1
    assert isinstance(first, MonomialMatrix)
    assert len(system.symbols) == 7

def test_concurrent_creation_gives_one_matrix(system):
    ''' Test that threads racing for the same moment matrix all receive one offset. '''
    # Arrange
    offsets = []
    threads = [threading.Thread(target=lambda: offsets.append(system.moment_matrix(2)[0])) for _ in range(6)]

    # Act
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    # Assert
    assert offsets == [0] * 6
    assert len(system) == 1

def test_lookup_under_read_lock_while_creation_waits(system):
    ''' Test that a reader may look up matrices while another thread waits to create one. '''
    # Arrange
    found   = []
    creator = threading.Thread(target=lambda: system.moment_matrix(1), daemon=True)

    def _reader():
        with system.read_lock():
            creator.start()
            time.sleep(0.1)
            found.append(system.find_moment_matrix(1))

    reader = threading.Thread(target=_reader, daemon=True)

    # Act
    reader.start()
    reader.join(timeout=5)
    creator.join(timeout=30)

    # Assert
    assert not reader.is_alive()
    assert found == [None]
    assert system.find_moment_matrix(1) == 0

def test_missing_components(system):
    ''' Test lookups of matrices and rulebooks that do not exist. '''
    with pytest.raises(MissingComponentError):
        system[0]
    with pytest.raises(MissingComponentError):
        system.rulebook(0)
    with pytest.raises(MissingComponentError):
        system.substituted_matrix(0, 0)
    assert system.find_substituted_matrix(0, 0) is None
    assert system.rulebook_count == 0

def test_localizing_matrix(system):
    ''' Test find-or-create of a localizing matrix indexed by its word. '''
    # Arrange
    context = system.context
    index   = LocalizingMatrixIndex(1, context.sequence((0,)))
    assert system.find_localizing_matrix(index) is None

    # Act
    offset, matrix      = system.localizing_matrix(index)
    again, _            = system.localizing_matrix(LocalizingMatrixIndex(1, context.sequence((0,))))

    # Assert
    assert offset == again == 0
    assert matrix.dimension == 3
    assert matrix.hermitian
    x1 = system.symbols.to_symbol(context.sequence((0,)))
    assert matrix[0, 0] == x1

def test_polynomial_localizing_matrix(system):
    ''' Test the localizing matrix of X1 + 2 as a weighted sum of word localizing matrices. '''
    # Arrange
    system.moment_matrix(1)
    factory = system.factory
    poly    = factory([Monomial(2, 1.0), Monomial(1, 2.0)])
    index   = PolynomialLMIndex(1, poly)

    # Act
    offset, matrix  = system.polynomial_localizing_matrix(index)
    again, _        = system.polynomial_localizing_matrix(PolynomialLMIndex(1, poly.copy()))

    # Assert
    assert offset == again
    assert system.find_polynomial_localizing_matrix(index) == offset
    assert isinstance(matrix, PolynomialMatrix)
    assert matrix[0, 0] == factory([Monomial(1, 2.0), Monomial(2, 1.0)])
    assert matrix.hermitian

def test_polynomial_localizing_matrix_edge_cases(system):
    ''' Test the zero polynomial and a symbol without an operator sequence. '''
    zero_offset, zero_matrix = system.polynomial_localizing_matrix(PolynomialLMIndex(1, Polynomial.Zero()))
    assert all(cell.empty() for cell in zero_matrix)
    assert system.find_moment_matrix(1) is not None

    blank = system.symbols.create(1)
    with pytest.raises(MissingComponentError):
        system.polynomial_localizing_matrix(PolynomialLMIndex(1, system.factory.monomial(blank)))

# ----------------------------------------------------------------------------------------------------
#! Rulebooks
# ----------------------------------------------------------------------------------------------------

def test_substituted_matrix(system):
    ''' Test that substituting X1 -> 1/2 rewrites the moment matrix once. '''
    # Arrange
    source, _   = system.moment_matrix(1)
    book        = MomentRulebook(system.factory, name="Fix X1")
    book.add_raw_rules({2: 0.5})
    book.complete()
    rules       = system.add_rulebook(book)

    # Act
    offset, matrix  = system.substituted_matrix(source, rules)
    again, _        = system.substituted_matrix(source, rules)

    # Assert
    assert offset == again == 1
    assert system.find_substituted_matrix(source, rules) == offset
    assert matrix[0, 1] == Monomial(1, 0.5)
    assert matrix[1, 0] == Monomial(1, 0.5)
    assert matrix[1, 2] == system[source][1, 2]
    assert book.in_use()

def test_add_and_merge_rulebooks(system):
    ''' Test rulebook ownership checks and merging into an existing rulebook. '''
    # Arrange
    system.moment_matrix(1)
    first = MomentRulebook(system.factory)
    first.add_raw_rules({2: 0.5})
    first.complete()
    index = system.add_rulebook(first)

    second = MomentRulebook(system.factory)
    second.add_raw_rules({3: 1.0})

    # Act
    merged = system.merge_rulebooks(index, second)

    # Assert
    assert merged == index
    assert len(system.rulebook(index)) == 2
    assert system.rulebook_count == 1

    foreign = MomentRulebook(IdPolynomialFactory(SymbolTable(system.context)))
    with pytest.raises(ValueError):
        system.add_rulebook(foreign)

def test_hash_ordered_rulebook_keeps_hermiticity():
    ''' Test that X1X1 -> X1 + X2 under the hash order is Hermitian when ids and hashes disagree. '''
    # Arrange: X2 is registered before X1, so X2 has the lower id but the higher hash
    system  = MatrixSystem(Context(2), zero_tolerance=100.0, mt_policy="never", factory_type=HashPolynomialFactory)
    context = system.context
    system.localizing_matrix(LocalizingMatrixIndex(1, context.sequence((1,))))
    source, moment = system.moment_matrix(1)
    x1      = system.symbols.to_symbol(context.sequence((0,))).id
    x2      = system.symbols.to_symbol(context.sequence((1,))).id
    x1x1    = system.symbols.to_symbol(context.sequence((0, 0))).id
    factory = system.factory
    total   = factory([Monomial(x1, 1.0), Monomial(x2, 1.0)])
    assert x2 < x1
    assert [term.id for term in total] == [x1, x2]

    # Act
    book    = MomentRulebook(factory)
    book.add_raw_rule(factory([Monomial(x1x1, 1.0), Monomial(x1, -1.0), Monomial(x2, -1.0)]))
    book.complete()
    rules   = system.add_rulebook(book)
    _, matrix = system.substituted_matrix(source, rules)

    # Assert
    assert factory.is_hermitian(total)
    assert book[x1x1].rhs == total
    assert book[x1x1].split() is None
    assert book.is_hermitian()
    assert matrix.hermitian
    assert moment.matrix_type is MatrixType.Hermitian
    assert matrix.matrix_type is MatrixType.Hermitian

def test_generate_dictionary(system):
    ''' Test that generating the dictionary registers every word once. '''
    generator = system.generate_dictionary(2)
    assert len(generator) == 7
    assert len(system.symbols) == 7
    system.generate_dictionary(2)
    assert len(system.symbols) == 7

def test_hooks_are_called():
    ''' Test that each kind of new component reaches its hook. '''
    # Arrange
    system = _RecordingSystem(Context(2), mt_policy="never")

    # Act
    system.moment_matrix(1)
    system.moment_matrix(1)
    system.localizing_matrix(LocalizingMatrixIndex(1, system.context.sequence((1,))))
    system.polynomial_localizing_matrix(PolynomialLMIndex(1, system.factory.monomial(3)))
    book = MomentRulebook(system.factory)
    book.add_raw_rules({2: 0.5})
    book.complete()
    rules = system.add_rulebook(book)
    system.substituted_matrix(0, rules)
    system.generate_dictionary(1)

    # Assert
    assert system.events == [
        ("moment", 1, 0),
        ("localizing", 1, 1),
        ("polynomial", 1, 2),
        ("rulebook", 0, True),
        ("substituted", 0, 0, 3),
        ("dictionary", 1, 0),
    ]

# ----------------------------------------------------------------------------------------------------
#! End of test_matrix_system.py
# ----------------------------------------------------------------------------------------------------
