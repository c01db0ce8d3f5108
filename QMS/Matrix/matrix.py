"""
Symbolic matrices: square grids of monomials or polynomials over a symbol table.

`Matrix` holds what every symbolic matrix shares (context, symbol table,
dimension, Hermiticity, the symbols it mentions and its lazily-built numeric
bases). It comes in two variants, distinguished by cell type:

- `MonomialMatrix`   : each cell is a single `Monomial`;
- `PolynomialMatrix` : each cell is a `Polynomial`.

Cells are stored in a ``(dimension, dimension)`` numpy object array. Matrices
do not change once built, except through `renumerate_bases` after the symbol
table's real/imaginary basis changed.

----------------------------------------------------------
Description     : Monomial and polynomial symbolic matrices.
----------------------------------------------------------
"""

from __future__ import annotations
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Set, Tuple

import numpy as np

from QMS.Matrix.matrix_basis import MatrixBasis
from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.polynomial_factory import IdPolynomialFactory
from QMS.errors import QMSLogicError

####################################################################################################

def grid_from_flat(flat: Sequence, dimension: int) -> np.ndarray:
    ''' Square object array from row-major cells (cells are never unpacked as sequences). '''
    if len(flat) != dimension * dimension:
        raise ValueError(f"Expected {dimension * dimension} cells, got {len(flat)}.")
    grid = np.empty((dimension, dimension), dtype=object)
    for index, cell in enumerate(flat):
        grid[index // dimension, index % dimension] = cell
    return grid

def object_grid(cells) -> np.ndarray:
    ''' Square object array from a nested list (or an existing object array). '''
    if isinstance(cells, np.ndarray) and cells.dtype == object:
        return cells
    rows        = [list(row) for row in cells]
    dimension   = len(rows)
    if any(len(row) != dimension for row in rows):
        raise ValueError("Matrix cells must form a square grid.")
    return grid_from_flat([cell for row in rows for cell in row], dimension)

class MatrixType(Enum):
    Unknown     = 0
    Real        = 1
    Symmetric   = 2
    Complex     = 3
    Hermitian   = 4

####################################################################################################

class Matrix:
    """
    Shared metadata of symbolic matrices.

    Parameters
    ----------
    context : Context
        Operator context of the matrix.
    symbols : SymbolTable
        Table the cells refer to.
    cells : numpy.ndarray
        Square object array of cells.
    hermitian : bool or None
        Whether the matrix equals its conjugate transpose; None to test it.
    factory : PolynomialFactory, optional
        Factory for polynomial arithmetic (default orders by symbol id).
    description : str
        Human-readable description.
    """

    def __init__(self, context, symbols, cells: np.ndarray, hermitian: Optional[bool] = None,
                 factory=None, description: str = "Symbolic matrix"):
        cells = object_grid(cells)
        if cells.ndim != 2 or cells.shape[0] != cells.shape[1]:
            raise ValueError(f"Matrix cells must form a square grid, got shape {cells.shape}.")
        self.context                = context
        self.symbols                = symbols
        self.factory                = factory if factory is not None else IdPolynomialFactory(symbols)
        self.cells                  = cells
        self.dimension              = int(cells.shape[0])
        self.description            = description
        self.operator_matrix        = None
        self.aliased_operator_matrix = None

        self.included_symbols       : Set[int]  = set()
        self.real_entries           : List[int] = []
        self.imaginary_entries      : List[int] = []
        self.complex_coefficients   = False
        self.hermitian              = self._test_hermitian() if hermitian is None else bool(hermitian)
        self._identify_symbols_and_basis_indices()
        self.basis                  = MatrixBasis(self)

    # ----------------------------------------------------------------
    #! Variant interface
    # ----------------------------------------------------------------

    def is_monomial(self) -> bool:
        raise NotImplementedError

    def is_polynomial(self) -> bool:
        return not self.is_monomial()

    def _cell_terms(self, cell) -> Sequence[Monomial]:
        raise NotImplementedError

    def _conjugate_cell(self, cell):
        raise NotImplementedError

    def _cells_equal(self, lhs, rhs) -> bool:
        raise NotImplementedError

    def _canonical_cell(self, cell):
        raise NotImplementedError

    # ----------------------------------------------------------------
    #! Properties
    # ----------------------------------------------------------------

    @property
    def element_count(self) -> int:
        return self.dimension * self.dimension

    def is_hermitian(self) -> bool:
        return self.hermitian

    def has_complex_basis(self) -> bool:
        ''' True if any cell mentions a symbol with an imaginary part. '''
        return bool(self.imaginary_entries)

    def real_coefficients(self) -> bool:
        return not self.complex_coefficients

    @property
    def matrix_type(self) -> MatrixType:
        if self.has_complex_basis():
            return MatrixType.Hermitian if self.hermitian else MatrixType.Complex
        return MatrixType.Symmetric if self.hermitian else MatrixType.Real

    def __getitem__(self, index: Tuple[int, int]):
        row, col = index
        return self.cells[row, col]

    def __iter__(self) -> Iterator:
        return iter(self.cells.ravel())

    # ----------------------------------------------------------------
    #! Analysis
    # ----------------------------------------------------------------

    def _test_hermitian(self) -> bool:
        for row in range(self.dimension):
            for col in range(row, self.dimension):
                if not self._cells_equal(self.cells[row, col], self._conjugate_cell(self.cells[col, row])):
                    return False
        return True

    def _identify_symbols_and_basis_indices(self) -> None:
        included    = set()
        complex_f   = False
        for cell in self.cells.ravel():
            for term in self._cell_terms(cell):
                included.add(term.id)
                complex_f = complex_f or term.complex_factor()
        if any(symbol_id >= len(self.symbols) for symbol_id in included):
            raise QMSLogicError(f"{self.description} refers to symbols beyond the symbol table.")

        real_entries, imaginary_entries = set(), set()
        for symbol_id in included:
            symbol = self.symbols[symbol_id]
            if symbol.real_index >= 0:
                real_entries.add(symbol.real_index)
            if symbol.img_index >= 0:
                imaginary_entries.add(symbol.img_index)
        self.included_symbols       = included
        self.real_entries           = sorted(real_entries)
        self.imaginary_entries      = sorted(imaginary_entries)
        self.complex_coefficients   = complex_f

    def basis_terms(self) -> Iterator[Tuple[int, int, Monomial]]:
        ''' Yields (row, col, term) for every term, over the upper triangle only if Hermitian. '''
        for row in range(self.dimension):
            for col in range(row if self.hermitian else 0, self.dimension):
                for term in self._cell_terms(self.cells[row, col]):
                    yield row, col, term

    def renumerate_bases(self, symbols=None) -> None:
        '''
        Canonicalise conjugation flags and refresh basis bookkeeping after the symbol
        table's real/imaginary basis changed. Cached numeric bases are discarded.
        '''
        if symbols is not None:
            self.symbols = symbols
        flat        = [self._canonical_cell(cell) for cell in self.cells.ravel()]
        self.cells  = grid_from_flat(flat, self.dimension)
        self._identify_symbols_and_basis_indices()
        self.basis.reset()

    # ----------------------------------------------------------------
    #! Display
    # ----------------------------------------------------------------

    def _format_cell(self, cell) -> str:
        return str(cell)

    def __str__(self) -> str:
        lines = [f"{self.description} ({self.dimension}x{self.dimension}, {self.matrix_type.name}):"]
        for row in range(self.dimension):
            lines.append("[" + ", ".join(self._format_cell(self.cells[row, col]) for col in range(self.dimension)) + "]")
        return "\n".join(lines)

####################################################################################################
#! Variants
####################################################################################################

class MonomialMatrix(Matrix):
    """Matrix whose cells are single monomials."""

    def is_monomial(self) -> bool:
        return True

    def _cell_terms(self, cell: Monomial) -> Sequence[Monomial]:
        return () if cell.id == 0 or cell.factor == 0 else (cell,)

    def _conjugate_cell(self, cell: Monomial) -> Monomial:
        if cell.id == 0:
            return Monomial(0, 0.0)
        return self.symbols.make_canonical(Monomial(cell.id, cell.factor.conjugate(), not cell.conjugated))

    def _cells_equal(self, lhs: Monomial, rhs: Monomial) -> bool:
        return self.symbols.make_canonical(lhs).approximately_equals(rhs, self.factory.zero_tolerance)

    def _canonical_cell(self, cell: Monomial) -> Monomial:
        return self.symbols.make_canonical(cell)

    def _format_cell(self, cell: Monomial) -> str:
        return cell.as_string()

    def to_polynomial_matrix(self) -> "PolynomialMatrix":
        flat = [self.factory([cell]) for cell in self.cells.ravel()]
        return PolynomialMatrix(self.context, self.symbols, grid_from_flat(flat, self.dimension),
                                self.hermitian, self.factory, self.description)

class PolynomialMatrix(Matrix):
    """Matrix whose cells are polynomials."""

    def is_monomial(self) -> bool:
        return False

    def _cell_terms(self, cell: Polynomial) -> Sequence[Monomial]:
        return list(cell)

    def _conjugate_cell(self, cell: Polynomial) -> Polynomial:
        return self.factory.conjugate(cell)

    def _cells_equal(self, lhs: Polynomial, rhs: Polynomial) -> bool:
        return lhs.approximately_equals(rhs, self.factory.zero_tolerance)

    def _canonical_cell(self, cell: Polynomial) -> Polynomial:
        return self.factory.fix_cc(cell.copy())

    def _format_cell(self, cell: Polynomial) -> str:
        return cell.as_string(self.symbols)

    @classmethod
    def from_linear_combination(cls, context, symbols, factory,
                                terms: Sequence[Tuple[Matrix, complex]],
                                description: str = "Linear combination") -> "PolynomialMatrix":
        '''
        Build sum_k w_k M_k from matrices of equal dimension.
        '''
        if not terms:
            raise ValueError("A linear combination needs at least one matrix.")
        dimension = terms[0][0].dimension
        if any(matrix.dimension != dimension for matrix, _ in terms):
            raise ValueError("All matrices of a linear combination must have the same dimension.")
        flat = []
        for index in range(dimension * dimension):
            raw = []
            for matrix, weight in terms:
                cell = matrix.cells.flat[index]
                raw.extend(term * weight for term in matrix._cell_terms(cell))
            flat.append(factory(raw))
        return cls(context, symbols, grid_from_flat(flat, dimension), None, factory, description)

####################################################################################################
#! End of matrix
####################################################################################################
