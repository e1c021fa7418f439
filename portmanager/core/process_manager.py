"""Process termination."""

import subprocess
from typing import Optional

from .errors import InvalidPidError, KillExecutionError, KillLaunchError
from .. import config
from ..utils.logging_config import get_logger

logger = get_logger('process_manager')


class ProcessManager:
    """Kills processes by PID using the kill utility."""

    def __init__(self, kill_path: Optional[str] = None, timeout: Optional[float] = None):
        self.kill_path = kill_path or config.KILL_PATH
        self.timeout = timeout if timeout is not None else config.COMMAND_TIMEOUT_SECONDS
        logger.debug(f"ProcessManager initialized (kill={self.kill_path})")

    def kill_process(self, pid: int) -> str:
        """
        Force kill a process with SIGKILL.

        Args:
            pid: Process ID to kill.

        Returns:
            A message describing what was done.

        Raises:
            InvalidPidError: If pid is not a positive integer.
            KillLaunchError: If kill could not be run.
            KillExecutionError: If kill reported failure.
        """
        if isinstance(pid, bool) or not isinstance(pid, int) or pid <= 0:
            raise InvalidPidError(f"Invalid PID: {pid!r}")

        logger.info(f"Attempting to kill process PID={pid}")
        cmd = [self.kill_path, '-9', str(pid)]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.error(f"kill timed out for PID={pid}")
            raise KillLaunchError(f"Failed to kill process: kill did not finish within {self.timeout} seconds")
        except OSError as e:
            logger.error(f"Could not run {self.kill_path}: {e}")
            raise KillLaunchError(f"Failed to kill process: {e}")

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            logger.error(f"kill failed for PID={pid}: {detail}")
            raise KillExecutionError(f"Failed to kill process {pid}: {detail}")

        logger.info(f"Force killed process PID={pid}")
        return f"Force killed process (PID: {pid})"
