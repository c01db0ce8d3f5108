"""
QMS Session Management
======================

This module provides a high-level API for configuring a QMS session. It
sets the numerical zero tolerance, the default multithreading policy, the
worker-thread cap and the log level in a unified way, and restores the
previous configuration when the session ends.

Usage
-----
    import QMS

    # Using context manager (recommended)
    with QMS.run(zero_tolerance=10.0, mt_policy='never') as session:
        system = QMS.MatrixSystem(context)
        ...

    # Or creating a session object
    session = QMS.QMSSession(max_workers=4)
    session.start()
    # ...
    session.stop()
"""

from typing import Optional, Union

from .qms_globals import Settings, get_logger, get_settings, set_settings
from .System.multithreading import MultiThreadPolicy

class QMSSession:
    """
    Manages the configuration of a QMS session.

    Parameters
    ----------
    zero_tolerance : float, optional
        Multiplier of machine epsilon below which coefficients are treated as zero.
        Default is 1.0.
    mt_policy : str or MultiThreadPolicy, optional
        Default multithreading policy ('never', 'optional' or 'always').
        Default is 'optional'.
    max_workers : int, optional
        Cap on worker threads. If None, keeps the current cap.
    log_level : int or str, optional
        Level of the QMS logger. If None, leaves it unchanged.

    Examples
    --------
    >>> session = QMSSession(mt_policy='always', max_workers=2)
    >>> session.start()
    >>> # ... run code ...
    >>> session.stop()
    """

    def __init__(self,
                 zero_tolerance : float                              = 1.0,
                 mt_policy      : Union[str, MultiThreadPolicy]      = 'optional',
                 max_workers    : Optional[int]                      = None,
                 log_level      : Optional[Union[int, str]]          = None):
        if zero_tolerance < 0:
            raise ValueError(f"Zero tolerance must be non-negative, got {zero_tolerance}.")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"At least one worker thread is required, got {max_workers}.")
        self._zero_tolerance    = float(zero_tolerance)
        self._mt_policy         = MultiThreadPolicy.resolve(mt_policy)
        self._max_workers       = max_workers
        self._log_level         = log_level
        self._log               = get_logger()
        self._previous          : Optional[Settings] = None
        self._previous_level    : Optional[int]      = None

    @property
    def active(self) -> bool:
        return self._previous is not None

    def start(self) -> 'QMSSession':
        """
        Apply the session configuration to the global settings.

        Returns
        -------
        QMSSession
            The started session instance.
        """
        if self.active:
            raise RuntimeError("QMSSession has already been started.")
        if self._log_level is not None:
            self._previous_level = self._log.level
            self._log.setLevel(self._log_level.upper() if isinstance(self._log_level, str) else self._log_level)

        changes = {"zero_tolerance": self._zero_tolerance, "mt_policy": self._mt_policy.name.lower()}
        if self._max_workers is not None:
            changes["max_workers"] = int(self._max_workers)
        self._previous = set_settings(**changes)

        self._log.info(f"Starting QMSSession(zero_tolerance={self._zero_tolerance}, "
                       f"mt_policy={self._mt_policy.name}, max_workers={get_settings().max_workers})")
        return self

    def stop(self):
        """
        End the session, restoring the settings (and log level) found at ``start``.
        """
        if not self.active:
            return
        self._log.info("Stopping QMSSession")
        set_settings(self._previous)
        self._previous = None
        if self._previous_level is not None:
            self._log.setLevel(self._previous_level)
            self._previous_level = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

def run(zero_tolerance  : float                         = 1.0,
        mt_policy       : Union[str, MultiThreadPolicy] = 'optional',
        max_workers     : Optional[int]                 = None,
        log_level       : Optional[Union[int, str]]     = None) -> QMSSession:
    """
    Context manager to run a block of code with a specific QMS configuration.

    This is the recommended entry point for configuring a QMS workflow. It ensures
    parameters are set before the code block runs and restored after it.

    Parameters
    ----------
    zero_tolerance : float, optional
        Multiplier of machine epsilon. Default 1.0.
    mt_policy : str or MultiThreadPolicy, optional
        Multithreading policy. Default 'optional'.
    max_workers : int, optional
        Cap on worker threads.
    log_level : int or str, optional
        Level of the QMS logger.

    Returns
    -------
    QMSSession
        The (not yet started) session object; entering it starts it.

    Examples
    --------
    >>> import QMS
    >>> with QMS.run(mt_policy='never'):
    ...     # Code runs single-threaded
    ...     pass
    """
    return QMSSession(zero_tolerance=zero_tolerance, mt_policy=mt_policy,
                      max_workers=max_workers, log_level=log_level)
