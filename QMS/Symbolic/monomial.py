"""
Monomials: a symbol id, a complex factor and a conjugation flag.

Id 0 is the zero monomial whatever its factor; id 1 is the scalar identity.
String form: ``#3``, ``-#3*``, ``2.5#3``, ``(1+2j)#3*`` and plain numbers for
scalars (``5`` is ``5 * #1``).
"""

from __future__ import annotations
import re

from QMS.Symbolic.float_utils import (
    approximately_equal, approximately_real, approximately_zero
)

_PATTERN = re.compile(r"^\s*(?P<factor>[^#]*?)\s*#\s*(?P<id>\d+)\s*(?P<conj>\*?)\s*$")

####################################################################################################

class Monomial:
    """
    A single symbol with a complex scalar factor and a conjugation flag.
    """

    __slots__ = ("id", "factor", "conjugated")

    def __init__(self, symbol_id: int = 0, factor: complex = 1.0, conjugated: bool = False):
        self.id         = int(symbol_id)
        self.factor     = complex(factor)
        self.conjugated = bool(conjugated)

    # ----------------------------------------------------------------

    def complex_factor(self) -> bool:
        ''' True if the factor has a non-negligible imaginary part. '''
        return not approximately_real(self.factor)

    def negated(self) -> bool:
        return self.factor.real < 0 and approximately_real(self.factor)

    def is_zero(self, tolerance: float = 1.0) -> bool:
        return self.id == 0 or approximately_zero(self.factor, tolerance)

    def copy(self) -> "Monomial":
        return Monomial(self.id, self.factor, self.conjugated)

    def __neg__(self) -> "Monomial":
        return Monomial(self.id, -self.factor, self.conjugated)

    def __mul__(self, scalar) -> "Monomial":
        return Monomial(self.id, self.factor * complex(scalar), self.conjugated)

    __rmul__ = __mul__

    # ----------------------------------------------------------------

    def approximately_equals(self, other: "Monomial", tolerance: float = 1.0) -> bool:
        if self.id != other.id:
            return False
        if self.id == 0:
            return True
        return self.conjugated == other.conjugated and approximately_equal(self.factor, other.factor, tolerance)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Monomial):
            return NotImplemented
        return self.approximately_equals(other)

    __hash__ = None

    # ----------------------------------------------------------------
    #! String conversion
    # ----------------------------------------------------------------

    @staticmethod
    def _format_factor(factor: complex) -> str:
        if approximately_real(factor):
            value = factor.real
            return f"{int(value)}" if float(value).is_integer() else f"{value:g}"
        return f"({factor.real:g}{factor.imag:+g}j)"

    def as_string(self) -> str:
        if self.id == 0 or self.factor == 0:
            return "0"
        if self.id == 1:
            return self._format_factor(self.factor)
        star = "*" if self.conjugated else ""
        if approximately_equal(self.factor, 1.0):
            return f"#{self.id}{star}"
        if approximately_equal(self.factor, -1.0):
            return f"-#{self.id}{star}"
        return f"{self._format_factor(self.factor)}#{self.id}{star}"

    def __str__(self) -> str:
        return self.as_string()

    def __repr__(self) -> str:
        return f"Monomial({self.id}, {self.factor}, {self.conjugated})"

    @classmethod
    def from_string(cls, text: str) -> "Monomial":
        '''
        Parse the string form produced by ``as_string``.

        Raises
        ------
        ValueError
            If the string is not a monomial.
        '''
        text = text.strip()
        if not text:
            raise ValueError("Empty string is not a monomial.")
        match = _PATTERN.match(text)
        if match is None:
            # Plain scalar: multiple of the identity
            value = complex(text.replace("i", "j")) if text not in ("0",) else 0.0
            return cls(1 if value != 0 else 0, value)
        factor_str  = match.group("factor").strip()
        if factor_str in ("", "+"):
            factor  = 1.0
        elif factor_str == "-":
            factor  = -1.0
        else:
            factor_str = factor_str.rstrip("*").strip()
            factor  = complex(factor_str.replace("i", "j"))
        return cls(int(match.group("id")), factor, bool(match.group("conj")))

####################################################################################################
#! End of monomial
####################################################################################################
