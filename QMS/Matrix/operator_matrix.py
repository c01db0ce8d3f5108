"""
Operator matrices: square grids of operator sequences, before symbol registration.

`OperatorMatrix` is the builder stage of a symbolic matrix. It generates the
sequence grid of a moment matrix (cell (i, j) = w_i^* w_j over the words w of a
given length) or of a localizing matrix (cell (i, j) = w_i^* v w_j for a fixed
word v), checks its Hermiticity, and converts it into a `MonomialMatrix` by
registering each distinct sequence with the symbol table.

If the context allows aliases (distinct words sharing an expectation value),
every cell is first passed through the context's moment simplification; the
resulting matrix keeps both the raw and the aliased operator matrix.

----------------------------------------------------------
Description     : Operator-sequence grids and their conversion to symbols.
----------------------------------------------------------
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from QMS.Matrix.matrix import MonomialMatrix, grid_from_flat, object_grid
from QMS.Scenario.operator_sequence import OperatorSequence
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.symbol import Symbol
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.System.multithreading import MultiThreadPolicy, parallel_map, should_multithread_matrix_creation
from QMS.errors import HermitianFailureError, UnregisteredOperatorSequenceError
from QMS.qms_globals import get_logger

####################################################################################################

class OperatorMatrix:
    """
    Square grid of operator sequences.

    Parameters
    ----------
    context : Context
        Context of the sequences.
    cells : numpy.ndarray or nested list of OperatorSequence
        The grid.
    description : str
        Human-readable description.
    """

    def __init__(self, context, cells, description: str = "Operator matrix"):
        self.context        = context
        self.cells          = object_grid(cells)
        self.dimension      = int(self.cells.shape[0])
        self.description    = description
        self.hermitian, self.nonhermitian_index = self._test_hermitian()

    # ----------------------------------------------------------------
    #! Generation
    # ----------------------------------------------------------------

    @classmethod
    def _generate(cls, context, level: int, middle: Optional[OperatorSequence], description: str,
                  mt_policy=None) -> "OperatorMatrix":
        columns     = context.operator_sequence_generator(level)
        rows        = context.operator_sequence_generator(level, conjugated=True)
        dimension   = len(columns)
        if middle is not None:
            columns = [middle * column for column in columns]
        multi       = should_multithread_matrix_creation(MultiThreadPolicy.resolve(mt_policy), dimension * dimension)

        def _row(row_index: int) -> List[OperatorSequence]:
            left = rows[row_index]
            return [left * column for column in columns]

        grid = parallel_map(_row, list(range(dimension)), multithread=multi)
        return cls(context, grid_from_flat([cell for row in grid for cell in row], dimension), description)

    @classmethod
    def moment_matrix(cls, context, level: int, mt_policy=None) -> "OperatorMatrix":
        ''' Grid of w_i^* w_j over all words w of length at most ``level``. '''
        return cls._generate(context, level, None, f"Moment matrix, level {level}", mt_policy)

    @classmethod
    def localizing_matrix(cls, context, level: int, word: OperatorSequence, mt_policy=None) -> "OperatorMatrix":
        ''' Grid of w_i^* v w_j over all words w of length at most ``level``, for the word v. '''
        return cls._generate(context, level, word, f"Localizing matrix, level {level}, word {word}", mt_policy)

    # ----------------------------------------------------------------
    #! Analysis
    # ----------------------------------------------------------------

    def _test_hermitian(self) -> Tuple[bool, Optional[Tuple[int, int]]]:
        for row in range(self.dimension):
            for col in range(row, self.dimension):
                if self.cells[row, col] != self.cells[col, row].conjugate():
                    return False, (row, col)
        return True, None

    def is_hermitian(self) -> bool:
        return self.hermitian

    def __getitem__(self, index: Tuple[int, int]) -> OperatorSequence:
        row, col = index
        return self.cells[row, col]

    def aliased(self) -> "OperatorMatrix":
        ''' Copy with every cell replaced by its moment-simplified form. '''
        flat = [self.context.simplify_as_moment(cell) for cell in self.cells.ravel()]
        return OperatorMatrix(self.context, grid_from_flat(flat, self.dimension), f"{self.description} (aliased)")

    def unique_sequences(self) -> List[Symbol]:
        '''
        Distinct symbols (up to conjugation) among the cells, zero and identity first.
        Only the upper triangle is scanned when the grid is Hermitian.
        '''
        zero, identity  = Symbol.Zero(self.context), Symbol.Identity(self.context)
        output          : Dict[int, Symbol] = {zero.hash: zero, identity.hash: identity}
        for row in range(self.dimension):
            for col in range(row if self.hermitian else 0, self.dimension):
                sequence = self.cells[row, col]
                if sequence.zero:
                    continue
                symbol = Symbol.from_sequence(sequence)
                if symbol.hash not in output and symbol.hash_conj not in output:
                    output[symbol.hash] = symbol
        return list(output.values())

    # ----------------------------------------------------------------
    #! Conversion
    # ----------------------------------------------------------------

    def _cell_to_monomial(self, symbols: SymbolTable, row: int, col: int) -> Monomial:
        sequence    = self.cells[row, col]
        output      = symbols.to_symbol(sequence)
        if output.id == SymbolTable.NOT_FOUND:
            raise UnregisteredOperatorSequenceError(str(sequence), row, col)
        return output

    def to_monomial_matrix(self, symbols: SymbolTable, factory=None, require_hermitian: bool = False,
                           mt_policy=None) -> MonomialMatrix:
        '''
        Register the distinct sequences and build the symbolic matrix.

        Raises
        ------
        HermitianFailureError
            If ``require_hermitian`` and the grid is not Hermitian.
        '''
        log = get_logger()
        if require_hermitian and not self.hermitian:
            row, col = self.nonhermitian_index
            raise HermitianFailureError(row, col, f"({self.description})")

        source = self.aliased() if self.context.can_have_aliases() else self
        for symbol in source.unique_sequences():
            if symbol.id not in (0, 1):
                symbols.merge_in(symbol.sequence)

        dimension   = self.dimension
        multi       = should_multithread_matrix_creation(MultiThreadPolicy.resolve(mt_policy), dimension * dimension)

        def _row(row: int) -> List[Optional[Monomial]]:
            start = row if source.hermitian else 0
            return [None] * start + [source._cell_to_monomial(symbols, row, col) for col in range(start, dimension)]

        rows = parallel_map(_row, list(range(dimension)), multithread=multi)
        if source.hermitian:
            for row in range(dimension):
                for col in range(row):
                    upper = rows[col][row]
                    rows[row][col] = symbols.make_canonical(
                        Monomial(upper.id, upper.factor.conjugate(), not upper.conjugated)) if upper.id != 0 \
                        else Monomial(0, 0.0)

        matrix = MonomialMatrix(self.context, symbols, grid_from_flat([m for row in rows for m in row], dimension),
                                source.hermitian, factory, self.description)
        matrix.operator_matrix = self
        if source is not self:
            matrix.aliased_operator_matrix = source
        log.debug(f"{self.description}: {dimension}x{dimension}, {len(matrix.included_symbols)} distinct symbols.")
        return matrix

    def __str__(self) -> str:
        lines = [f"{self.description} ({self.dimension}x{self.dimension}):"]
        for row in range(self.dimension):
            lines.append("[" + ", ".join(str(self.cells[row, col]) for col in range(self.dimension)) + "]")
        return "\n".join(lines)

####################################################################################################
#! End of operator matrix
####################################################################################################
