"""
PortManager Configuration
"""

import shutil
from pathlib import Path

from . import __version__

APP_NAME = "PortManager"
APP_VERSION = __version__

# External tools
LSOF_PATH = shutil.which("lsof") or "/usr/sbin/lsof"
KILL_PATH = shutil.which("kill") or "/bin/kill"

# lsof output shape: "tagged" (-F pcn) or "columnar" (default lsof table)
OUTPUT_FORMAT = "tagged"

# Upper bound for every lsof / kill invocation, in seconds
COMMAND_TIMEOUT_SECONDS = 10

# Delay between a successful kill and the follow-up scan
RESCAN_DELAY_MS = 500

# Optional timer-driven refresh
AUTO_REFRESH_MS = 5000

# State labels
TCP_DEFAULT_STATE = "LISTEN"
UDP_STATE = "UDP"

# Wildcard / any-address marker
ANY_ADDRESS = "*"

# Timestamped log files are written here
LOG_DIR = Path.home() / ".portmanager" / "logs"
