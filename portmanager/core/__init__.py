from .models import Protocol, PortRecord, PortSnapshot, filter_ports
from .errors import (
    PortManagerError, ScanError, ScanLaunchError, ScanTimeoutError,
    KillError, InvalidPidError, KillLaunchError, KillExecutionError
)
from .lsof_parser import LsofParser, OutputFormat, split_address
from .port_scanner import PortScanner
from .process_manager import ProcessManager
from .controller import PortController

__all__ = [
    'Protocol', 'PortRecord', 'PortSnapshot', 'filter_ports',
    'PortManagerError', 'ScanError', 'ScanLaunchError', 'ScanTimeoutError',
    'KillError', 'InvalidPidError', 'KillLaunchError', 'KillExecutionError',
    'LsofParser', 'OutputFormat', 'split_address',
    'PortScanner', 'ProcessManager', 'PortController'
]
