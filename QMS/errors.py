"""
Error taxonomy for the QMS package.

Two families are distinguished:

- ``QMSError`` subclasses signal conditions a caller can trigger and is
  expected to handle (missing index, bad basis request, contradictory rules).
- ``QMSLogicError`` subclasses signal a broken internal invariant (e.g. a
  hash that should have been registered was not). These indicate a bug
  rather than bad input.

All errors are raised synchronously at the point of violation and are never
retried internally.

----------------------------------------------------------
Description     : Exceptions raised by the symbolic moment engine.
----------------------------------------------------------
"""

from __future__ import annotations
from typing import Optional

####################################################################################################
#! Base classes
####################################################################################################

class QMSError(Exception):
    """
    Base class of all recoverable QMS errors.
    """

class QMSLogicError(QMSError, RuntimeError):
    """
    Base class of internal invariant violations.
    """

####################################################################################################
#! Symbol registry
####################################################################################################

class UnknownSymbolError(QMSError, KeyError):
    """
    A symbol id outside of the registry's current range was referenced.
    """
    MSG_OUT_OF_RANGE = "Symbol {id} is out of range (table has {size} symbols)."
    MSG_NOT_FOUND    = "Symbol {id} could not be found."

    def __init__(self, symbol_id: int, table_size: Optional[int] = None):
        self.id     = symbol_id
        if table_size is None:
            msg = self.MSG_NOT_FOUND.format(id=symbol_id)
        else:
            msg = self.MSG_OUT_OF_RANGE.format(id=symbol_id, size=table_size)
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return self.args[0]

class ZeroSymbolError(QMSError, ValueError):
    """
    Merging nullity information would force a symbol to be identically zero.
    """
    MSG_FORCED_ZERO = "Symbol {id} would be forced to zero: {reason}"

    def __init__(self, symbol_id: int, reason: str = "both real and imaginary parts are null."):
        self.id = symbol_id
        super().__init__(self.MSG_FORCED_ZERO.format(id=symbol_id, reason=reason))

class UnknownBasisElementError(QMSError, KeyError):
    """
    A real or imaginary basis index outside of the registry's basis was referenced.
    """
    MSG_UNKNOWN = "Unknown {kind} basis element {index}."

    def __init__(self, is_real: bool, index: int):
        self.is_real    = is_real
        self.index      = index
        super().__init__(self.MSG_UNKNOWN.format(kind="real" if is_real else "imaginary", index=index))

    def __str__(self) -> str:
        return self.args[0]

####################################################################################################
#! Matrices and systems
####################################################################################################

class MissingComponentError(QMSError, LookupError):
    """
    A requested matrix, rulebook or auxiliary object does not exist (yet).
    """

class BadBasisError(QMSError, TypeError):
    """
    A basis was requested in a representation incompatible with the matrix.
    """
    MSG_COMPLEX_COEFFICIENTS = "Cannot export a real-valued {what} basis: matrix has complex coefficients."

class HermitianFailureError(QMSError, ValueError):
    """
    A matrix that must be Hermitian by construction failed the Hermiticity check.
    """
    MSG_NOT_HERMITIAN = "Matrix is not Hermitian: element [{row},{col}] is not the conjugate of [{col},{row}]."

    def __init__(self, row: int, col: int, detail: str = ""):
        self.row    = row
        self.col    = col
        msg         = self.MSG_NOT_HERMITIAN.format(row=row, col=col)
        super().__init__(f"{msg} {detail}".strip())

####################################################################################################
#! Rules
####################################################################################################

class InvalidMomentRuleError(QMSError, ValueError):
    """
    A raw constraint cannot be turned into a valid rule (e.g. it implies 1 == 0).
    """

    def __init__(self, lhs: int, message: str):
        self.lhs = lhs
        super().__init__(message)

class NonorientableRuleError(InvalidMomentRuleError):
    """
    Two partial rules on the same symbol cannot be reconciled.
    """

class ReductionDidNotConvergeError(InvalidMomentRuleError, QMSLogicError):
    """
    Rule reduction exceeded its sweep bound, implying a cycle in the rule set.
    """

class NotMonomialError(QMSError, ValueError):
    """
    A monomial-only reduction produced a polynomial.
    """
    MSG_NOT_MONOMIAL = "Could not reduce expression \"{expr}\" as result \"{result}\" was not monomial."

    def __init__(self, expr: str, result: str):
        self.expr   = expr
        self.result = result
        super().__init__(self.MSG_NOT_MONOMIAL.format(expr=expr, result=result))

class AlreadyInUseError(QMSError, RuntimeError):
    """
    Rules were added to a rulebook already applied to a matrix, outside expansion mode.
    """

####################################################################################################
#! Internal invariant violations
####################################################################################################

class UnregisteredOperatorSequenceError(QMSLogicError):
    """
    An operator sequence that should have been registered could not be found.
    """
    MSG_UNREGISTERED = "Operator sequence \"{seq}\" at index [{row},{col}] was not found in the symbol table."

    def __init__(self, sequence: str, row: int = -1, col: int = -1):
        self.sequence = sequence
        super().__init__(self.MSG_UNREGISTERED.format(seq=sequence, row=row, col=col))

####################################################################################################

__all__ = [
    "QMSError",
    "QMSLogicError",
    "UnknownSymbolError",
    "ZeroSymbolError",
    "UnknownBasisElementError",
    "MissingComponentError",
    "BadBasisError",
    "HermitianFailureError",
    "InvalidMomentRuleError",
    "NonorientableRuleError",
    "ReductionDidNotConvergeError",
    "NotMonomialError",
    "AlreadyInUseError",
    "UnregisteredOperatorSequenceError",
]

# ----------------------------------------------------------------
#! End of QMS errors
