"""
Centralized global singletons for the QMS package.

Motivation
==========
Several components (the matrix system, rulebooks, basis builders, the
session object) need a shared logger and a shared view of the numerical
settings (zero tolerance, multithreading policy, worker cap). Creating these
on import leads to duplicated handlers and to settings that silently differ
between components.

This module provides a SINGLE authoritative place where these shared objects
are created exactly once per Python process. All other code should import
the accessors defined here instead of constructing new instances.

Provided Singletons
-------------------
- Global logger        : via `get_logger()` (a `logging.Logger` named "QMS")
- Global settings      : via `get_settings()` / `set_settings()`

Usage Pattern
-------------
    from QMS.qms_globals import get_logger, get_settings

    log         = get_logger()
    settings    = get_settings()
    tol         = settings.zero_tolerance

Design Notes
------------
Environment variables are read the first time the settings are requested:

- QMS_LOG_LEVEL      : logging level name (default INFO)
- QMS_ZERO_TOLERANCE : multiplier of machine epsilon (default 1.0)
- QMS_MT_POLICY      : never / optional / always (default optional)
- QMS_NUM_THREADS    : maximum worker threads (default min(cpu_count, 8))

!IMPORTANT: Do NOT perform side effects at module import other than creating
!lightweight sentinels; initialization is deferred until first access.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Any
import logging
import os
import threading

# Lock guarding creation of the singletons
_LOCK               = threading.Lock()

# Internal storage for singletons
_LOGGER: Any        = None
_SETTINGS: Any      = None

_LOGGER_NAME        = "QMS"
_LOG_FORMAT         = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_MAX_THREADS= 8

def get_logger(**kwargs) -> logging.Logger:
    """
    Return the process-global logger instance.

    Parameters
    ----------
    **kwargs : dict
        Optional keyword arguments used the first time the logger is created.
        Recognised: ``level`` (int or level name) and ``stream``.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER
    with _LOCK:
        if _LOGGER is None:
            _LOGGER = _make_logger(**kwargs)
    return _LOGGER

def _make_logger(level=None, stream=None) -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if level is None:
        level = os.environ.get("QMS_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False
    return logger

# ----------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    """
    Numerical and scheduling configuration shared by all components.

    Attributes
    ----------
    zero_tolerance : float
        Multiplier of machine epsilon below which a coefficient is treated as zero.
    mt_policy : str
        Default multithreading policy name ('never', 'optional' or 'always').
    max_workers : int
        Upper bound on the number of worker threads.
    """
    zero_tolerance  : float = 1.0
    mt_policy       : str   = "optional"
    max_workers     : int   = _DEFAULT_MAX_THREADS

    @staticmethod
    def from_environment() -> "Settings":
        cpu             = os.cpu_count() or 1
        max_workers     = int(os.environ.get("QMS_NUM_THREADS", min(cpu, _DEFAULT_MAX_THREADS)))
        return Settings(
            zero_tolerance  = float(os.environ.get("QMS_ZERO_TOLERANCE", 1.0)),
            mt_policy       = os.environ.get("QMS_MT_POLICY", "optional").lower(),
            max_workers     = max(1, max_workers),
        )

def get_settings() -> Settings:
    """Return the process-global settings, reading the environment on first access."""
    global _SETTINGS
    if _SETTINGS is not None:
        return _SETTINGS
    with _LOCK:
        if _SETTINGS is None:
            _SETTINGS = Settings.from_environment()
    return _SETTINGS

def set_settings(settings: Optional[Settings] = None, **changes) -> Settings:
    """
    Replace the process-global settings.

    Either pass a complete ``Settings`` object, or keyword changes applied to
    the current settings. Returns the previous settings, so callers can restore them.
    """
    global _SETTINGS
    previous = get_settings()
    with _LOCK:
        if settings is None:
            settings = replace(previous, **changes)
        _SETTINGS = settings
    return previous

# ----------------------------------------------------------------

__all__ = [
    "get_logger",
    "get_settings",
    "set_settings",
    "Settings",
]

# ----------------------------------------------------------------
#! End of QMS global singletons
