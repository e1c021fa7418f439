"""Data models for PortManager."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class Protocol(Enum):
    TCP = "TCP"
    UDP = "UDP"


@dataclass(frozen=True)
class PortRecord:
    """One socket binding observed during a single scan."""
    port: int
    protocol: Protocol
    state: str
    process_name: str
    pid: int
    local_address: str = "*"

    @property
    def display_port(self) -> str:
        return str(self.port)

    @property
    def display_process(self) -> str:
        return f"{self.process_name} (PID: {self.pid})"

    @property
    def is_listening(self) -> bool:
        return self.state == "LISTEN"


@dataclass(frozen=True)
class PortSnapshot:
    """
    Published scan state.

    Replaced as a whole on every update so observers never see new ports
    together with a stale error message.
    """
    ports: tuple[PortRecord, ...] = ()
    is_scanning: bool = False
    error_message: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.error_message is not None

    @property
    def is_empty(self) -> bool:
        """True for a finished, successful scan that found nothing."""
        return not self.ports and not self.is_scanning and not self.has_error


def filter_ports(ports: Iterable[PortRecord], query: str) -> list[PortRecord]:
    """Filter records by port, pid or (case-insensitive) process name."""
    query = query.strip()
    if not query:
        return list(ports)

    needle = query.lower()
    return [
        p for p in ports
        if query in str(p.port)
        or query in str(p.pid)
        or needle in p.process_name.lower()
    ]
