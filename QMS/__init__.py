"""
QMS package initialization
==========================

Quantum Moment Symbolics (QMS): symbolic moment and localizing matrices for
semidefinite relaxations over noncommutative operator sequences.

This is the top-level package for QMS. It provides unified access to the
subpackages, the global singletons, the session API and the core classes.

Usage
-----
Import QMS and its core classes:

    import QMS
    from QMS import Context, MatrixSystem

    with QMS.run(mt_policy='never'):
        system              = MatrixSystem(Context(2))
        offset, matrix      = system.moment_matrix(1)
        real, imaginary     = matrix.basis.dense()

----------------------------------------------------------
Description     : Quantum Moment Symbolics: symbol registry, polynomial rules and moment matrices.
----------------------------------------------------------
"""

__version__         = "0.1.0"
__license__         = "CC-BY-4.0"
__description__     = "Quantum Moment Symbolics: symbolic moment matrices for noncommutative SDP relaxations"

__all__ = [
    # Discovery utilities
    "list_modules",
    "describe_module",
    "locate",
    # Session
    "QMSSession",
    "run",
    # --- Convenience API exports (lazy) ---
    # Scenario
    "Context",
    "OperatorSequence",
    "SequenceSign",
    # Symbolic
    "SymbolTable",
    "Monomial",
    "Polynomial",
    "IdPolynomialFactory",
    "HashPolynomialFactory",
    "MomentRule",
    "MomentRulebook",
    # Matrices
    "OperatorMatrix",
    "MonomialMatrix",
    "PolynomialMatrix",
    # System
    "MatrixSystem",
    "LocalizingMatrixIndex",
    "PolynomialLMIndex",
    "MultiThreadPolicy",
    # Global accessor re-exports
    "get_logger",
    "get_settings",
    "set_settings",
    # Meta
    "__version__",
    "__license__",
    "__description__",
]

####################################################################################################

import importlib
from typing import Dict, Any

# Centralized globals (lazy singletons)
from .qms_globals import get_logger, get_settings, set_settings

# Lightweight registry utilities
from .registry import describe_module, list_modules, locate

# Session API
from .session import QMSSession, run

# ----------------------------------------------------------------------------
# Lazy access to top-level subpackages and common classes (keeps `import QMS` light)
# ----------------------------------------------------------------------------

# Top-level packages accessible as `QMS.Submodule`
_SUBMODULES: Dict[str, str] = {
    'Scenario'          : 'QMS.Scenario',
    'Symbolic'          : 'QMS.Symbolic',
    'Matrix'            : 'QMS.Matrix',
    'System'            : 'QMS.System',
    'errors'            : 'QMS.errors',
}

# Specific classes/functions accessible as `from QMS import Object` or `QMS.Object`
_API_EXPORTS: Dict[str, str] = {
    # Scenario
    'Context'               : 'QMS.Scenario.context',
    'OperatorSequence'      : 'QMS.Scenario.operator_sequence',
    'SequenceSign'          : 'QMS.Scenario.operator_sequence',
    # Symbolic
    'SymbolTable'           : 'QMS.Symbolic.symbol_table',
    'Monomial'              : 'QMS.Symbolic.monomial',
    'Polynomial'            : 'QMS.Symbolic.polynomial',
    'IdPolynomialFactory'   : 'QMS.Symbolic.polynomial_factory',
    'HashPolynomialFactory' : 'QMS.Symbolic.polynomial_factory',
    'MomentRule'            : 'QMS.Symbolic.Rules.moment_rule',
    'MomentRulebook'        : 'QMS.Symbolic.Rules.moment_rulebook',
    # Matrices
    'OperatorMatrix'        : 'QMS.Matrix.operator_matrix',
    'MonomialMatrix'        : 'QMS.Matrix.matrix',
    'PolynomialMatrix'      : 'QMS.Matrix.matrix',
    # System
    'MatrixSystem'          : 'QMS.System.matrix_system',
    'LocalizingMatrixIndex' : 'QMS.System.matrix_system',
    'PolynomialLMIndex'     : 'QMS.System.matrix_system',
    'MultiThreadPolicy'     : 'QMS.System.multithreading',
}

def __getattr__(name: str) -> Any:  # PEP 562
    if name in _SUBMODULES:
        return importlib.import_module(_SUBMODULES[name])
    if name in _API_EXPORTS:
        mod = importlib.import_module(_API_EXPORTS[name])
        return getattr(mod, name)
    raise AttributeError(f"module 'QMS' has no attribute {name!r}")

# -------------------------------------------------------------------------------------------------
#! End of QMS package initialization
# -------------------------------------------------------------------------------------------------
