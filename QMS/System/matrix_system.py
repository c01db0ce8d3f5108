"""
Matrix system: the owner of a symbol table and of every matrix built over it.

A `MatrixSystem` ties one operator context to one symbol table and one
polynomial factory, and keeps the matrices and rulebooks created for them:

- moment matrices, indexed by hierarchy level;
- localizing matrices, indexed by (level, word);
- polynomial localizing matrices, indexed by (level, polynomial);
- substituted matrices, indexed by (source matrix, rulebook).

Every ``*_matrix`` method is find-or-create and returns ``(offset, matrix)``,
where the offset is the matrix's position in the system. Creation holds the
exclusive lock for its whole duration, so concurrent callers asking for the
same matrix receive the same object; plain lookups only take the shared lock.

Subclasses can react to new components by overriding the ``on_*`` hooks,
which run while the exclusive lock is still held.

----------------------------------------------------------
Description     : Lock-protected creation and lookup of symbolic matrices.
----------------------------------------------------------
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from QMS.Matrix.matrix import Matrix, PolynomialMatrix
from QMS.Matrix.operator_matrix import OperatorMatrix
from QMS.Scenario.operator_sequence import OperatorSequence
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.polynomial_factory import IdPolynomialFactory, PolynomialFactory
from QMS.Symbolic.Rules.moment_rulebook import MomentRulebook
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.System.multithreading import MultiThreadPolicy, ReadWriteLock
from QMS.errors import MissingComponentError
from QMS.qms_globals import get_logger, get_settings

####################################################################################################
#! Indices
####################################################################################################

@dataclass(frozen=True)
class LocalizingMatrixIndex:
    """Localizing matrix of ``word`` at hierarchy ``level``."""
    level   : int
    word    : OperatorSequence

    def key(self) -> tuple:
        return self.level, self.word.hash, int(self.word.sign)

    def __str__(self) -> str:
        return f"Localizing matrix, level {self.level}, word {self.word}"

@dataclass(frozen=True)
class PolynomialLMIndex:
    """Localizing matrix of a polynomial (sum of weighted words) at hierarchy ``level``."""
    level       : int
    polynomial  : Polynomial = field(compare=False)

    def key(self) -> tuple:
        terms = tuple((m.id, bool(m.conjugated), complex(m.factor)) for m in self.polynomial)
        return self.level, terms

    def __str__(self) -> str:
        return f"Polynomial localizing matrix, level {self.level}, polynomial {self.polynomial}"

@dataclass(frozen=True)
class SubstitutedMatrixIndex:
    """Matrix at offset ``source`` rewritten by the rulebook at index ``rulebook``."""
    source      : int
    rulebook    : int

####################################################################################################
#! System
####################################################################################################

class MatrixSystem:
    """
    Owner of a context, its symbol table and all matrices built over them.

    Parameters
    ----------
    context : Context
        The operator context.
    zero_tolerance : float, optional
        Multiplier of machine epsilon for polynomial arithmetic (default from settings).
    mt_policy : MultiThreadPolicy or str, optional
        Multithreading policy for matrix creation (default from settings).
    factory_type : type, optional
        Polynomial factory class (default `IdPolynomialFactory`).
    """

    def __init__(self, context, zero_tolerance: Optional[float] = None, mt_policy=None,
                 factory_type: Type[PolynomialFactory] = IdPolynomialFactory):
        settings                = get_settings()
        self.context            = context
        self.zero_tolerance     = settings.zero_tolerance if zero_tolerance is None else float(zero_tolerance)
        self.mt_policy          = MultiThreadPolicy.resolve(mt_policy)
        self.symbols            = SymbolTable(context)
        self.factory            = factory_type(self.symbols, self.zero_tolerance)
        self._lock              = ReadWriteLock()
        self._log               = get_logger()

        self._matrices          : List[Matrix]              = []
        self._rulebooks         : List[MomentRulebook]      = []
        self._moment_matrices   : Dict[int, int]            = {}
        self._localizing        : Dict[tuple, int]          = {}
        self._polynomial_lm     : Dict[tuple, int]          = {}
        self._substituted       : Dict[Tuple[int, int], int] = {}

    # ----------------------------------------------------------------
    #! Locks
    # ----------------------------------------------------------------

    def read_lock(self):
        ''' Context manager holding the shared lock. '''
        return self._lock.read()

    def write_lock(self):
        ''' Context manager holding the exclusive lock. '''
        return self._lock.write()

    # ----------------------------------------------------------------
    #! Access
    # ----------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._matrices)

    def __getitem__(self, offset: int) -> Matrix:
        with self._lock.read():
            if offset < 0 or offset >= len(self._matrices):
                raise MissingComponentError(f"Matrix at offset {offset} does not exist "
                                            f"(system has {len(self._matrices)} matrices).")
            return self._matrices[offset]

    def rulebook(self, index: int) -> MomentRulebook:
        with self._lock.read():
            if index < 0 or index >= len(self._rulebooks):
                raise MissingComponentError(f"Rulebook {index} does not exist "
                                            f"(system has {len(self._rulebooks)} rulebooks).")
            return self._rulebooks[index]

    @property
    def rulebook_count(self) -> int:
        with self._lock.read():
            return len(self._rulebooks)

    def _push_back(self, matrix: Matrix) -> int:
        self._matrices.append(matrix)
        return len(self._matrices) - 1

    def _found(self, offset: Optional[int]) -> Optional[Tuple[int, Matrix]]:
        return None if offset is None else (offset, self._matrices[offset])

    # ----------------------------------------------------------------
    #! Moment matrices
    # ----------------------------------------------------------------

    def find_moment_matrix(self, level: int) -> Optional[int]:
        with self._lock.read():
            return self._moment_matrices.get(int(level))

    def create_moment_matrix(self, level: int) -> Matrix:
        operators = OperatorMatrix.moment_matrix(self.context, level, self.mt_policy)
        return operators.to_monomial_matrix(self.symbols, self.factory, require_hermitian=True,
                                            mt_policy=self.mt_policy)

    def moment_matrix(self, level: int) -> Tuple[int, Matrix]:
        '''
        Find or create the moment matrix of the given level.

        Raises
        ------
        HermitianFailureError
            If the generated matrix is not Hermitian (a broken context).
        '''
        level = int(level)
        with self._lock.write():
            found = self._found(self._moment_matrices.get(level))
            if found is not None:
                return found
            matrix = self.create_moment_matrix(level)
            offset = self._push_back(matrix)
            self._moment_matrices[level] = offset
            self._log.info(f"Created moment matrix of level {level} ({matrix.dimension}x{matrix.dimension}) "
                           f"at offset {offset}.")
            self.on_new_moment_matrix(level, offset, matrix)
            return offset, matrix

    # ----------------------------------------------------------------
    #! Localizing matrices
    # ----------------------------------------------------------------

    def find_localizing_matrix(self, index: LocalizingMatrixIndex) -> Optional[int]:
        with self._lock.read():
            return self._localizing.get(index.key())

    def create_localizing_matrix(self, index: LocalizingMatrixIndex) -> Matrix:
        operators = OperatorMatrix.localizing_matrix(self.context, index.level, index.word, self.mt_policy)
        return operators.to_monomial_matrix(self.symbols, self.factory, mt_policy=self.mt_policy)

    def localizing_matrix(self, index: LocalizingMatrixIndex) -> Tuple[int, Matrix]:
        ''' Find or create the localizing matrix of a word. '''
        with self._lock.write():
            found = self._found(self._localizing.get(index.key()))
            if found is not None:
                return found
            matrix = self.create_localizing_matrix(index)
            offset = self._push_back(matrix)
            self._localizing[index.key()] = offset
            self._log.info(f"Created {index} at offset {offset}.")
            self.on_new_localizing_matrix(index, offset, matrix)
            return offset, matrix

    def find_polynomial_localizing_matrix(self, index: PolynomialLMIndex) -> Optional[int]:
        with self._lock.read():
            return self._polynomial_lm.get(index.key())

    def create_polynomial_localizing_matrix(self, index: PolynomialLMIndex) -> Matrix:
        '''
        Weighted sum of the localizing matrices of the polynomial's words.

        Raises
        ------
        MissingComponentError
            If a term's symbol has no operator sequence to localize with.
        '''
        terms = []
        for term in index.polynomial:
            symbol      = self.symbols[term.id]
            sequence    = symbol.sequence_conj if term.conjugated else symbol.sequence
            if sequence is None:
                raise MissingComponentError(f"Symbol #{term.id} has no operator sequence to localize with.")
            _, matrix = self.localizing_matrix(LocalizingMatrixIndex(index.level, sequence))
            terms.append((matrix, term.factor))
        if not terms:
            _, matrix = self.moment_matrix(index.level)
            terms.append((matrix, 0.0))
        return PolynomialMatrix.from_linear_combination(self.context, self.symbols, self.factory, terms, str(index))

    def polynomial_localizing_matrix(self, index: PolynomialLMIndex) -> Tuple[int, Matrix]:
        ''' Find or create the localizing matrix of a polynomial. '''
        with self._lock.write():
            found = self._found(self._polynomial_lm.get(index.key()))
            if found is not None:
                return found
            matrix = self.create_polynomial_localizing_matrix(index)
            offset = self._push_back(matrix)
            self._polynomial_lm[index.key()] = offset
            self._log.info(f"Created {index} at offset {offset}.")
            self.on_new_polynomial_localizing_matrix(index, offset, matrix)
            return offset, matrix

    # ----------------------------------------------------------------
    #! Substituted matrices
    # ----------------------------------------------------------------

    def find_substituted_matrix(self, source: int, rulebook: int) -> Optional[int]:
        with self._lock.read():
            return self._substituted.get((int(source), int(rulebook)))

    def substituted_matrix(self, source: int, rulebook: int) -> Tuple[int, Matrix]:
        '''
        Find or create the matrix at offset ``source`` rewritten by rulebook ``rulebook``.

        Raises
        ------
        MissingComponentError
            If either the source matrix or the rulebook does not exist.
        '''
        index = SubstitutedMatrixIndex(int(source), int(rulebook))
        with self._lock.write():
            found = self._found(self._substituted.get((index.source, index.rulebook)))
            if found is not None:
                return found
            source_matrix   = self[index.source]
            rules           = self.rulebook(index.rulebook)
            matrix          = rules.create_substituted_matrix(source_matrix, self.mt_policy)
            offset          = self._push_back(matrix)
            self._substituted[(index.source, index.rulebook)] = offset
            self._log.info(f"Created matrix {index.source} substituted by rulebook {index.rulebook} "
                           f"at offset {offset}.")
            self.on_new_substituted_matrix(index, offset, matrix)
            return offset, matrix

    # ----------------------------------------------------------------
    #! Dictionary and rulebooks
    # ----------------------------------------------------------------

    def generate_dictionary(self, word_length: int):
        '''
        Register every canonical word up to ``word_length`` and return their generator.
        '''
        with self._lock.write():
            added = self.symbols.fill_to_word_length(word_length)
            self._log.debug(f"Dictionary of word length {word_length}: {added} new symbols.")
            self.on_dictionary_generated(word_length, added)
            return self.context.operator_sequence_generator(word_length)

    def add_rulebook(self, rulebook: MomentRulebook) -> int:
        '''
        Take ownership of a rulebook over this system's symbol table. Returns its index.
        '''
        if rulebook.symbols is not self.symbols:
            raise ValueError(f"Rulebook \"{rulebook.name}\" refers to a different symbol table.")
        with self._lock.write():
            self._rulebooks.append(rulebook)
            index = len(self._rulebooks) - 1
            self._log.info(f"Added rulebook \"{rulebook.name}\" as index {index}.")
            self.on_rulebook_added(index, rulebook, True)
            return index

    def merge_rulebooks(self, existing: int, rulebook: MomentRulebook) -> int:
        '''
        Merge the rules of ``rulebook`` into the rulebook at index ``existing`` and complete it.
        Returns ``existing``.
        '''
        with self._lock.write():
            target  = self.rulebook(existing)
            added   = target.combine_and_complete(rulebook)
            self._log.info(f"Merged \"{rulebook.name}\" into rulebook {existing}: {added:+d} rules.")
            self.on_rulebook_added(existing, target, False)
            return existing

    def renumerate_bases(self) -> None:
        ''' Refresh the basis bookkeeping of every matrix after the symbol table's basis changed. '''
        with self._lock.write():
            self.symbols.renumerate_bases()
            for matrix in self._matrices:
                matrix.renumerate_bases(self.symbols)

    # ----------------------------------------------------------------
    #! Hooks
    # ----------------------------------------------------------------

    def on_new_moment_matrix(self, level: int, offset: int, matrix: Matrix) -> None:
        pass

    def on_new_localizing_matrix(self, index: LocalizingMatrixIndex, offset: int, matrix: Matrix) -> None:
        pass

    def on_new_polynomial_localizing_matrix(self, index: PolynomialLMIndex, offset: int, matrix: Matrix) -> None:
        pass

    def on_new_substituted_matrix(self, index: SubstitutedMatrixIndex, offset: int, matrix: Matrix) -> None:
        pass

    def on_dictionary_generated(self, word_length: int, new_symbols: int) -> None:
        pass

    def on_rulebook_added(self, index: int, rulebook: MomentRulebook, is_new: bool) -> None:
        pass

    def __str__(self) -> str:
        return (f"Matrix system over {self.context}\n"
                f"{len(self._matrices)} matrices, {len(self._rulebooks)} rulebooks, {len(self.symbols)} symbols.")

####################################################################################################
#! End of matrix system
####################################################################################################
