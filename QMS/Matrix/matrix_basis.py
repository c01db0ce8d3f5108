"""
Lazily-built numeric bases of symbolic matrices.

A symbolic matrix M decomposes as M = sum_a a * R_a + sum_b b * I_b over the
real basis elements a and imaginary basis elements b of the symbol table.
`MatrixBasis` exposes the coefficient matrices in eight forms:

=============================  =========  ================  ================
accessor                       storage    real-basis dtype  layout
=============================  =========  ================  ================
dense                          numpy      float             one matrix per element
dense_complex                  numpy      complex           one matrix per element
sparse                         csr        float             one matrix per element
sparse_complex                 csr        complex           one matrix per element
dense_monolithic               numpy      float             rows = elements
dense_monolithic_complex       numpy      complex           rows = elements
sparse_monolithic              csr        float             rows = elements
sparse_monolithic_complex      csr        complex           rows = elements
=============================  =========  ================  ================

Imaginary-basis coefficients are always complex. Monolithic forms flatten each
coefficient matrix column-major into one row. Each accessor returns the pair
(real basis, imaginary basis) and builds it on first use only; concurrent
callers wait for the single build. Real-valued forms of a matrix with complex
coefficients raise `BadBasisError`.
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, List, Tuple, TYPE_CHECKING

import numpy as np
import scipy.sparse as sp

from QMS.Matrix.basis_kernels import expand_terms, scatter_dense
from QMS.System.multithreading import LazyValue
from QMS.errors import BadBasisError
from QMS.qms_globals import get_logger

if TYPE_CHECKING:
    from QMS.Matrix.matrix import Matrix

####################################################################################################

class BasisStorage(Enum):
    Dense   = "dense"
    Sparse  = "sparse"

class MatrixBasis:
    """
    Cache of the eight numeric bases of one matrix.
    """

    def __init__(self, matrix: "Matrix"):
        self.matrix     = matrix
        self._log       = get_logger()
        self._lazy      : Dict[Tuple[BasisStorage, bool, bool], LazyValue] = {}
        for storage in BasisStorage:
            for complex_valued in (False, True):
                self._lazy[(storage, complex_valued, False)] = LazyValue(
                    lambda s=storage, c=complex_valued: self._build_cellular(s, c))
                self._lazy[(storage, complex_valued, True)] = LazyValue(
                    lambda s=storage, c=complex_valued: self._build_monolithic(s, c))

    # ----------------------------------------------------------------
    #! Accessors
    # ----------------------------------------------------------------

    def get(self, storage: BasisStorage, complex_valued: bool, monolithic: bool):
        return self._lazy[(BasisStorage(storage), bool(complex_valued), bool(monolithic))].get()

    def dense(self):
        return self.get(BasisStorage.Dense, False, False)

    def dense_complex(self):
        return self.get(BasisStorage.Dense, True, False)

    def sparse(self):
        return self.get(BasisStorage.Sparse, False, False)

    def sparse_complex(self):
        return self.get(BasisStorage.Sparse, True, False)

    def dense_monolithic(self):
        return self.get(BasisStorage.Dense, False, True)

    def dense_monolithic_complex(self):
        return self.get(BasisStorage.Dense, True, True)

    def sparse_monolithic(self):
        return self.get(BasisStorage.Sparse, False, True)

    def sparse_monolithic_complex(self):
        return self.get(BasisStorage.Sparse, True, True)

    def built(self, storage: BasisStorage, complex_valued: bool, monolithic: bool) -> bool:
        return self._lazy[(BasisStorage(storage), bool(complex_valued), bool(monolithic))].ready

    def reset(self) -> None:
        ''' Drop every cached basis, e.g. after the symbol table's basis was renumbered. '''
        for lazy in self._lazy.values():
            lazy.reset()

    # ----------------------------------------------------------------
    #! Builders
    # ----------------------------------------------------------------

    def _triplets(self):
        matrix      = self.matrix
        symbols     = matrix.symbols
        rows, cols, re_ids, im_ids, factors, conj = [], [], [], [], [], []
        for row, col, term in matrix.basis_terms():
            symbol = symbols[term.id]
            rows.append(row)
            cols.append(col)
            re_ids.append(symbol.real_index)
            im_ids.append(symbol.img_index)
            factors.append(term.factor)
            conj.append(term.conjugated)
        return expand_terms(np.array(rows, dtype=np.int64), np.array(cols, dtype=np.int64),
                            np.array(re_ids, dtype=np.int64), np.array(im_ids, dtype=np.int64),
                            np.array(factors, dtype=np.complex128), np.array(conj, dtype=np.bool_),
                            bool(matrix.hermitian), bool(matrix.has_complex_basis()))

    def _build_cellular(self, storage: BasisStorage, complex_valued: bool):
        matrix = self.matrix
        if not complex_valued and matrix.complex_coefficients:
            raise BadBasisError(BadBasisError.MSG_COMPLEX_COEFFICIENTS.format(what=storage.value))

        dim         = matrix.dimension
        basis       = matrix.symbols.basis
        n_re, n_im  = basis.real_symbol_count, basis.imaginary_symbol_count
        re_k, re_r, re_c, re_v, im_k, im_r, im_c, im_v = self._triplets()
        re_dtype    = np.complex128 if complex_valued else np.float64
        re_v        = re_v if complex_valued else re_v.real.copy()

        self._log.debug(f"Building {storage.value}{' complex' if complex_valued else ''} basis "
                        f"of {matrix.description} ({n_re} real, {n_im} imaginary elements).")
        if storage == BasisStorage.Dense:
            real = scatter_dense(re_k, re_r, re_c, re_v, np.zeros((n_re, dim, dim), dtype=re_dtype))
            imag = scatter_dense(im_k, im_r, im_c, im_v, np.zeros((n_im, dim, dim), dtype=np.complex128))
            return real, imag
        return (self._sparse_stack(re_k, re_r, re_c, re_v, n_re, dim, re_dtype),
                self._sparse_stack(im_k, im_r, im_c, im_v, n_im, dim, np.complex128))

    @staticmethod
    def _sparse_stack(index, rows, cols, values, count: int, dim: int, dtype) -> List[sp.csr_matrix]:
        order   = np.argsort(index, kind="stable")
        index, rows, cols, values = index[order], rows[order], cols[order], values[order]
        bounds  = np.searchsorted(index, np.arange(count + 1))
        output  = []
        for k in range(count):
            lo, hi = bounds[k], bounds[k + 1]
            output.append(sp.csr_matrix((values[lo:hi].astype(dtype), (rows[lo:hi], cols[lo:hi])),
                                        shape=(dim, dim), dtype=dtype))
        return output

    def _build_monolithic(self, storage: BasisStorage, complex_valued: bool):
        real, imag  = self.get(storage, complex_valued, False)
        length      = self.matrix.dimension ** 2
        if storage == BasisStorage.Dense:
            # Column-major flattening of each basis matrix into one row
            return (real.transpose(0, 2, 1).reshape(real.shape[0], length),
                    imag.transpose(0, 2, 1).reshape(imag.shape[0], length))
        return self._sparse_monolith(real, length), self._sparse_monolith(imag, length)

    @staticmethod
    def _sparse_monolith(cells: List[sp.csr_matrix], length: int) -> sp.csr_matrix:
        dtype = cells[0].dtype if cells else np.float64
        if not cells:
            return sp.csr_matrix((0, length), dtype=dtype)
        rows, cols, values = [], [], []
        for k, cell in enumerate(cells):
            coo = cell.tocoo()
            rows.append(np.full(coo.nnz, k, dtype=np.int64))
            cols.append(coo.col.astype(np.int64) * cell.shape[0] + coo.row)
            values.append(coo.data)
        return sp.csr_matrix((np.concatenate(values), (np.concatenate(rows), np.concatenate(cols))),
                             shape=(len(cells), length), dtype=dtype)

####################################################################################################
#! End of matrix basis
####################################################################################################
