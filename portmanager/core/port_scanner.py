"""Port scanning by running lsof."""

import subprocess
from typing import Optional

from .errors import ScanError, ScanLaunchError, ScanTimeoutError
from .lsof_parser import LsofParser, OutputFormat
from .models import PortRecord, Protocol
from .. import config
from ..utils.logging_config import get_logger, timed, PerfTimer

logger = get_logger('port_scanner')


class PortScanner:
    """Scans the local host for bound TCP and UDP ports."""

    # Numeric hosts and ports; never resolve names
    NUMERIC_ARGS = ['-n', '-P']

    PROTOCOL_ARGS = {
        Protocol.TCP: ['-iTCP', '-sTCP:LISTEN'],
        Protocol.UDP: ['-iUDP'],
    }

    def __init__(self, lsof_path: Optional[str] = None, timeout: Optional[float] = None,
                 output_format: Optional[OutputFormat] = None):
        self.lsof_path = lsof_path or config.LSOF_PATH
        # lsof can hang on stale network mounts, so every call is bounded
        self.timeout = timeout if timeout is not None else config.COMMAND_TIMEOUT_SECONDS
        self.parser = LsofParser(output_format)

    def build_command(self, protocol: Protocol) -> list[str]:
        """Build the lsof argument list for one protocol."""
        return [self.lsof_path, *self.PROTOCOL_ARGS[protocol], *self.NUMERIC_ARGS,
                *self.parser.format_args]

    @timed
    def scan(self) -> list[PortRecord]:
        """
        Scan TCP listening sockets, then UDP sockets.

        Returns:
            All records sorted by port number.

        Raises:
            ScanError: If the TCP sub-scan fails. UDP failures are only logged.
        """
        ports = self.scan_protocol(Protocol.TCP)
        logger.debug(f"TCP sub-scan found {len(ports)} ports")

        try:
            udp_ports = self.scan_protocol(Protocol.UDP)
        except ScanError as e:
            logger.warning(f"UDP sub-scan failed, continuing with TCP only: {e}")
        else:
            logger.debug(f"UDP sub-scan found {len(udp_ports)} ports")
            ports.extend(udp_ports)

        # sorted() is stable, so TCP stays ahead of UDP on equal ports
        ports = sorted(ports, key=lambda p: p.port)
        logger.info(f"Scan found {len(ports)} ports")
        return ports

    def scan_protocol(self, protocol: Protocol) -> list[PortRecord]:
        """Run a single lsof sub-scan and parse its output."""
        cmd = self.build_command(protocol)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            with PerfTimer(f"lsof {protocol.value}", logger):
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    errors='replace',
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired:
            raise ScanTimeoutError(
                f"Error scanning ports: lsof did not finish within {self.timeout} seconds"
            )
        except OSError as e:
            raise ScanLaunchError(f"Error scanning ports: could not run {self.lsof_path}: {e}")

        stderr = result.stderr.strip()
        if stderr:
            logger.debug(f"{protocol.value} lsof stderr: {stderr}")

        records = self.parser.parse(result.stdout, protocol)

        # lsof exits 1 when nothing matches and warns on stderr about unreadable
        # mounts, so neither the exit status nor stderr makes the scan fail
        if result.returncode != 0:
            logger.debug(f"{protocol.value} lsof exited with status {result.returncode}")

        return records

    def get_port_info(self, port: int) -> list[PortRecord]:
        """Get all bindings for a specific port."""
        return [p for p in self.scan() if p.port == port]

    def find_process_by_port(self, port: int) -> Optional[PortRecord]:
        """Find the record holding a port (listening TCP preferred)."""
        records = self.get_port_info(port)
        for record in records:
            if record.is_listening:
                return record
        return records[0] if records else None
