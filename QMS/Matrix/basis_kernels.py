"""
Numba kernels for matrix basis export.

A symbolic matrix is first flattened into parallel arrays of terms
(row, column, real basis index, imaginary basis index, factor, conjugated).
`expand_terms` turns these into (basis element, row, column, value) triplets
for the real and the imaginary basis, mirroring off-diagonal terms when the
matrix is Hermitian (only its upper triangle is then passed in):

    real[a](i, j) += k            real[a](j, i) += conj(k)
    im[b](i, j)   += i s k        im[b](j, i)   += -i s conj(k)

with s = -1 for conjugated terms and +1 otherwise. `scatter_dense` adds
triplets into a dense stack of basis matrices.
"""

from __future__ import annotations

import numba
import numpy as np

####################################################################################################

@numba.njit(cache=True, nogil=True)
def expand_terms(rows: np.ndarray, cols: np.ndarray, re_ids: np.ndarray, im_ids: np.ndarray,
                 factors: np.ndarray, conjugated: np.ndarray, symmetric: bool, with_imaginary: bool):
    n       = rows.shape[0]
    re_k    = np.empty(2 * n, dtype=np.int64)
    re_r    = np.empty(2 * n, dtype=np.int64)
    re_c    = np.empty(2 * n, dtype=np.int64)
    re_v    = np.empty(2 * n, dtype=np.complex128)
    im_k    = np.empty(2 * n, dtype=np.int64)
    im_r    = np.empty(2 * n, dtype=np.int64)
    im_c    = np.empty(2 * n, dtype=np.int64)
    im_v    = np.empty(2 * n, dtype=np.complex128)
    n_re    = 0
    n_im    = 0

    for t in range(n):
        row     = rows[t]
        col     = cols[t]
        factor  = factors[t]
        mirror  = symmetric and row != col

        if re_ids[t] >= 0:
            re_k[n_re] = re_ids[t]
            re_r[n_re] = row
            re_c[n_re] = col
            re_v[n_re] = factor
            n_re += 1
            if mirror:
                re_k[n_re] = re_ids[t]
                re_r[n_re] = col
                re_c[n_re] = row
                re_v[n_re] = np.conj(factor)
                n_re += 1

        if with_imaginary and im_ids[t] >= 0:
            sign = -1.0 if conjugated[t] else 1.0
            im_k[n_im] = im_ids[t]
            im_r[n_im] = row
            im_c[n_im] = col
            im_v[n_im] = 1j * sign * factor
            n_im += 1
            if mirror:
                im_k[n_im] = im_ids[t]
                im_r[n_im] = col
                im_c[n_im] = row
                im_v[n_im] = -1j * sign * np.conj(factor)
                n_im += 1

    return (re_k[:n_re], re_r[:n_re], re_c[:n_re], re_v[:n_re],
            im_k[:n_im], im_r[:n_im], im_c[:n_im], im_v[:n_im])

@numba.njit(cache=True, nogil=True)
def scatter_dense(index: np.ndarray, rows: np.ndarray, cols: np.ndarray, values: np.ndarray, out: np.ndarray):
    for t in range(index.shape[0]):
        out[index[t], rows[t], cols[t]] += values[t]
    return out

####################################################################################################
#! End of basis kernels
####################################################################################################
