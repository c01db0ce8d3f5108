"""
Conversion between polynomials and vectors over the global real/imaginary basis.

Every symbol X with real basis element a and imaginary basis element b stands
for X = a + i b and X* = a - i b. A polynomial sum_X (k X + k' X*) therefore
equals

    sum_X (k + k') a  +  i (k - k') b,

which gives the complex export (c_a, c_b) = (k + k', i (k - k')). The real and
imaginary functionals give real coefficient vectors of Re(p) and Im(p):

    Re(p) : a -> Re(k + k'),   b -> Im(k') - Im(k)
    Im(p) : a -> Im(k + k'),   b -> Re(k - k')

Vectors are `scipy.sparse` row vectors of length ``real_symbol_count`` and
``imaginary_symbol_count``.
"""

from __future__ import annotations
from typing import Dict, Tuple

import numpy as np
import scipy.sparse as sp

from QMS.Symbolic.monomial import Monomial
from QMS.Symbolic.polynomial import Polynomial
from QMS.Symbolic.symbol_table import SymbolTable
from QMS.Symbolic.float_utils import approximately_zero

VecPair     = Tuple[sp.csr_matrix, sp.csr_matrix]

####################################################################################################

def _to_sparse(entries: Dict[int, complex], length: int, dtype, tolerance: float) -> sp.csr_matrix:
    cols    = [idx for idx, val in entries.items() if not approximately_zero(val, tolerance)]
    values  = np.array([entries[idx] for idx in cols], dtype=dtype)
    rows    = np.zeros(len(cols), dtype=np.int64)
    return sp.csr_matrix((values, (rows, np.array(cols, dtype=np.int64))), shape=(1, length), dtype=dtype)

class PolynomialToBasisVec:
    """
    Projects polynomials onto the real and imaginary basis of a symbol table.
    """

    def __init__(self, symbols: SymbolTable, zero_tolerance: float = 1.0):
        self.symbols        = symbols
        self.zero_tolerance = zero_tolerance

    def _pair_factors(self, poly: Polynomial):
        ''' Yields (symbol, k, k') where the polynomial contains k X + k' X*. '''
        index = 0
        data  = list(poly)
        while index < len(data):
            term    = data[index]
            symbol  = self.symbols[term.id]
            if term.conjugated:
                yield symbol, 0.0j, term.factor
                index += 1
                continue
            if index + 1 < len(data) and data[index + 1].id == term.id and data[index + 1].conjugated:
                yield symbol, term.factor, data[index + 1].factor
                index += 2
                continue
            yield symbol, term.factor, 0.0j
            index += 1

    def _accumulate(self, poly: Polynomial, mode: str):
        real_entries : Dict[int, complex] = {}
        im_entries   : Dict[int, complex] = {}
        for symbol, k, k_cc in self._pair_factors(poly):
            if mode == "complex":
                coef_a, coef_b = k + k_cc, 1j * (k - k_cc)
            elif mode == "real":
                coef_a, coef_b = (k + k_cc).real, k_cc.imag - k.imag
            else:
                coef_a, coef_b = (k + k_cc).imag, (k - k_cc).real
            if symbol.real_index >= 0:
                real_entries[symbol.real_index] = real_entries.get(symbol.real_index, 0.0) + coef_a
            if symbol.img_index >= 0:
                im_entries[symbol.img_index] = im_entries.get(symbol.img_index, 0.0) + coef_b
        return real_entries, im_entries

    def _export(self, poly: Polynomial, mode: str, dtype) -> VecPair:
        real_entries, im_entries = self._accumulate(poly, mode)
        basis = self.symbols.basis
        return (_to_sparse(real_entries, basis.real_symbol_count, dtype, self.zero_tolerance),
                _to_sparse(im_entries, basis.imaginary_symbol_count, dtype, self.zero_tolerance))

    def __call__(self, poly: Polynomial) -> VecPair:
        ''' Complex coefficients (c_a, c_b) of the polynomial. '''
        return self._export(poly, "complex", np.complex128)

    def real_functional(self, poly: Polynomial) -> VecPair:
        ''' Real coefficient vectors of Re(poly). '''
        return self._export(poly, "real", np.float64)

    def imaginary_functional(self, poly: Polynomial) -> VecPair:
        ''' Real coefficient vectors of Im(poly). '''
        return self._export(poly, "imaginary", np.float64)

    def add_triplet_row(self, poly: Polynomial, real_row: int, imaginary_row: int, triplets: list) -> None:
        '''
        Append (row, column, value) triplets of Re(poly) to ``real_row`` and of Im(poly) to
        ``imaginary_row`` (rows < 0 are skipped). Columns index the stacked basis
        [real elements, imaginary elements].
        '''
        offset = self.symbols.basis.real_symbol_count
        for row, mode in ((real_row, "real"), (imaginary_row, "imaginary")):
            if row < 0:
                continue
            real_entries, im_entries = self._accumulate(poly, mode)
            for col, value in real_entries.items():
                if not approximately_zero(value, self.zero_tolerance):
                    triplets.append((row, col, float(value)))
            for col, value in im_entries.items():
                if not approximately_zero(value, self.zero_tolerance):
                    triplets.append((row, offset + col, float(value)))

####################################################################################################

class BasisVecToPolynomial:
    """
    Inverse of the complex export of `PolynomialToBasisVec`.

    Parameters
    ----------
    factory : PolynomialFactory
        Factory that orders and canonicalises the result.
    """

    def __init__(self, factory):
        self.factory = factory
        self.symbols = factory.symbols

    @staticmethod
    def _entries(vector) -> Dict[int, complex]:
        if vector is None:
            return {}
        if sp.issparse(vector):
            coo = sp.coo_matrix(vector)
            idx = coo.col if coo.shape[0] == 1 else coo.row
            return {int(i): complex(v) for i, v in zip(idx, coo.data)}
        dense = np.asarray(vector).ravel()
        return {int(i): complex(dense[i]) for i in np.flatnonzero(dense)}

    def __call__(self, real_vec, imaginary_vec=None) -> Polynomial:
        '''
        Rebuild a polynomial from complex basis coefficients.

        Raises
        ------
        UnknownBasisElementError
            If a coefficient refers to a basis element outside of the table.
        '''
        basis   = self.symbols.basis
        a_coefs = self._entries(real_vec)
        b_coefs = self._entries(imaginary_vec)

        per_symbol : Dict[int, list] = {}
        for index, value in a_coefs.items():
            symbol_id = basis.symbol_of(True, index)
            per_symbol.setdefault(symbol_id, [0.0j, 0.0j])[0] += value
        for index, value in b_coefs.items():
            symbol_id = basis.symbol_of(False, index)
            per_symbol.setdefault(symbol_id, [0.0j, 0.0j])[1] += value

        data = []
        for symbol_id, (c_a, c_b) in per_symbol.items():
            symbol = self.symbols[symbol_id]
            if symbol.hermitian:
                data.append(Monomial(symbol_id, c_a))
            elif symbol.antihermitian:
                data.append(Monomial(symbol_id, -1j * c_b))
            else:
                data.append(Monomial(symbol_id, 0.5 * (c_a - 1j * c_b), False))
                data.append(Monomial(symbol_id, 0.5 * (c_a + 1j * c_b), True))
        return self.factory(data)

####################################################################################################
#! End of basis vectors
####################################################################################################
