"""Parsing of lsof output into PortRecord objects."""

from enum import Enum
from typing import Optional, Union

from .models import PortRecord, Protocol
from .. import config
from ..utils.logging_config import get_logger

logger = get_logger('lsof_parser')


class OutputFormat(Enum):
    TAGGED = "tagged"      # lsof -F pcn: one field per line, first char is the tag
    COLUMNAR = "columnar"  # default lsof table with a header line


def split_address(value: str) -> tuple[str, Optional[int]]:
    """
    Split an lsof NAME value into (address, port).

    Splits on the last colon so IPv6 literals keep their colons. Returns a
    port of None when the port part is missing, a wildcard or not a number.

    >>> split_address("[::1]:8080")
    ('[::1]', 8080)
    >>> split_address("*:53")
    ('*', 53)
    """
    # Connected UDP sockets report "local->remote"; only the local side matters
    local = value.split("->", 1)[0].strip()

    address, sep, port_str = local.rpartition(":")
    if not sep:
        return _normalize_address(""), None

    address = _normalize_address(address)
    if not port_str.isascii() or not port_str.isdigit():
        return address, None

    port = int(port_str)
    if port > 65535:
        return address, None
    return address, port


def _normalize_address(address: str) -> str:
    if not address or address == config.ANY_ADDRESS:
        return config.ANY_ADDRESS
    return address


def _parse_pid(value: str) -> Optional[int]:
    value = value.strip()
    if not value.isascii() or not value.isdigit():
        return None
    pid = int(value)
    return pid if pid > 0 else None


class LsofParser:
    """Turns the text printed by lsof into PortRecords for one protocol."""

    TAGGED_ARGS = ['-F', 'pcn']

    # COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME [(STATE)]
    NAME_COLUMN = 8
    STATE_COLUMN = 9
    MIN_COLUMNS = NAME_COLUMN + 1

    def __init__(self, output_format: Union[OutputFormat, str, None] = None):
        if output_format is None:
            output_format = config.OUTPUT_FORMAT
        self.output_format = OutputFormat(output_format)

    @property
    def format_args(self) -> list[str]:
        """Extra lsof arguments that make it print the expected shape."""
        if self.output_format is OutputFormat.TAGGED:
            return list(self.TAGGED_ARGS)
        return []

    def parse(self, output: str, protocol: Protocol) -> list[PortRecord]:
        """Parse raw lsof output. Lines that cannot be resolved are skipped."""
        if self.output_format is OutputFormat.TAGGED:
            records = self._parse_tagged(output, protocol)
        else:
            records = self._parse_columnar(output, protocol)
        logger.debug(f"Parsed {len(records)} {protocol.value} records ({self.output_format.value})")
        return records

    def _parse_tagged(self, output: str, protocol: Protocol) -> list[PortRecord]:
        records: list[PortRecord] = []
        current_pid: Optional[int] = None
        current_command: Optional[str] = None

        for line in output.splitlines():
            if not line:
                continue

            tag, value = line[0], line[1:]

            if tag == 'p':
                # New process set; the command belongs to the previous one
                current_pid = _parse_pid(value)
                current_command = None
                logger.debug(f"Found PID: {value}")
            elif tag == 'c':
                current_command = value
                logger.debug(f"Found command: {value}")
            elif tag == 'n':
                if current_pid is None or current_command is None:
                    logger.debug(f"Skipping {value!r} - missing pid or command")
                    continue
                record = self._make_record(value, protocol, current_pid, current_command)
                if record is not None:
                    records.append(record)

        return records

    def _parse_columnar(self, output: str, protocol: Protocol) -> list[PortRecord]:
        records: list[PortRecord] = []
        header_seen = False

        for line in output.splitlines():
            tokens = line.split()
            if not tokens:
                continue

            if not header_seen:
                header_seen = True
                continue

            if len(tokens) < self.MIN_COLUMNS:
                logger.debug(f"Skipping short line ({len(tokens)} columns): {line!r}")
                continue

            pid = _parse_pid(tokens[1])
            if pid is None:
                logger.debug(f"Skipping line with bad PID {tokens[1]!r}")
                continue

            state = None
            if len(tokens) > self.STATE_COLUMN:
                state = tokens[self.STATE_COLUMN].strip('()') or None

            record = self._make_record(tokens[self.NAME_COLUMN], protocol, pid, tokens[0], state)
            if record is not None:
                records.append(record)

        return records

    def _make_record(self, name: str, protocol: Protocol, pid: int, command: str,
                     state: Optional[str] = None) -> Optional[PortRecord]:
        address, port = split_address(name)
        if port is None:
            logger.debug(f"  Failed to parse port from: {name!r}")
            return None

        if protocol is Protocol.UDP:
            state = config.UDP_STATE
        elif not state:
            state = config.TCP_DEFAULT_STATE

        logger.debug(f"  Parsed {protocol.value} port {port} ({command}, PID {pid}, {address})")
        return PortRecord(
            port=port,
            protocol=protocol,
            state=state,
            process_name=command,
            pid=pid,
            local_address=address,
        )
