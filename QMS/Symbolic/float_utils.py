"""
Tolerance-aware comparisons of (complex) floating point numbers.

All tolerances are multipliers of machine epsilon: a value is "approximately
zero" if its magnitude is below ``tolerance * eps``. Equality is relative to
the larger magnitude of the operands (floored at one).
"""

from __future__ import annotations
import numpy as np

EPS = float(np.finfo(np.float64).eps)

def approximately_zero(value, tolerance: float = 1.0) -> bool:
    return abs(value) < tolerance * EPS

def approximately_equal(lhs, rhs, tolerance: float = 1.0) -> bool:
    scale = max(abs(lhs), abs(rhs), 1.0)
    return abs(lhs - rhs) <= tolerance * EPS * scale

def approximately_real(value, tolerance: float = 1.0) -> bool:
    value = complex(value)
    return abs(value.imag) <= tolerance * EPS * max(abs(value.real), 1.0)

def approximately_imaginary(value, tolerance: float = 1.0) -> bool:
    value = complex(value)
    return abs(value.real) <= tolerance * EPS * max(abs(value.imag), 1.0)

def approximately_same_norm(lhs, rhs, tolerance: float = 1.0) -> bool:
    return approximately_equal(abs(lhs), abs(rhs), tolerance)

def real_or_imaginary_if_close(value, tolerance: float = 1.0) -> complex:
    '''
    Snap a complex number onto the real or imaginary axis if it is within tolerance of it.
    '''
    value = complex(value)
    if value.imag != 0.0 and approximately_real(value, tolerance):
        return complex(value.real, 0.0)
    if value.real != 0.0 and approximately_imaginary(value, tolerance):
        return complex(0.0, value.imag)
    return value
