"""Exceptions raised by the scan and kill operations."""


class PortManagerError(Exception):
    """Base class; the message is meant to be shown to the user."""


class ScanError(PortManagerError):
    pass


class ScanLaunchError(ScanError):
    """lsof could not be started or reported an error without producing output."""


class ScanTimeoutError(ScanError):
    """lsof did not finish within the configured timeout."""


class KillError(PortManagerError):
    pass


class InvalidPidError(KillError):
    pass


class KillLaunchError(KillError):
    """kill could not be started or did not finish in time."""


class KillExecutionError(KillError):
    """kill ran but reported failure (no such process, permission denied)."""
