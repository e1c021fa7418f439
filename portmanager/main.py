#!/usr/bin/env python3
"""
PortManager - Port Inspection Tool

Lists the TCP and UDP ports bound on this machine together with the process
holding each one, and can force kill a process by PID.

Usage:
    portmanager                  # scan and print all bound ports
    portmanager --filter 8080    # only rows matching port, PID or process name
    portmanager --kill 1234      # kill -9 PID 1234, then print a fresh scan
"""

import argparse
import logging
import sys
from typing import Iterable, Optional

from PyQt6.QtCore import QCoreApplication, QTimer

from . import config
from .core import PortController, PortRecord, PortSnapshot, filter_ports
from .utils.logging_config import setup_logging

COLUMNS = ['PORT', 'PROTO', 'STATE', 'PROCESS', 'PID', 'ADDRESS']


def format_table(ports: Iterable[PortRecord]) -> str:
    """Render records as a plain text table."""
    rows = [
        [p.display_port, p.protocol.value, p.state, p.process_name, str(p.pid), p.local_address]
        for p in ports
    ]
    if not rows:
        return "No ports in use"

    widths = [max(len(row[i]) for row in rows + [COLUMNS]) for i in range(len(COLUMNS))]
    lines = ["  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
             for row in [COLUMNS] + rows]
    lines.append(f"{len(rows)} port(s) in use")
    return "\n".join(lines)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="portmanager", description=__doc__.strip().splitlines()[0])
    parser.add_argument("--kill", type=int, metavar="PID", help="force kill PID, then rescan")
    parser.add_argument("--filter", default="", metavar="TEXT",
                        help="show only ports whose port, PID or process name matches")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to stderr")
    parser.add_argument("--version", action="version", version=f"{config.APP_NAME} {config.APP_VERSION}")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None):
    """Main entry point for PortManager."""
    args = parse_args(argv)

    # Initialize logging FIRST
    logger = setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)
    logger.info("=" * 60)
    logger.info("PortManager starting up")
    logger.info("=" * 60)

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName(config.APP_NAME)
    app.setApplicationVersion(config.APP_VERSION)

    controller = PortController()

    def on_state_changed(snapshot: PortSnapshot):
        if snapshot.is_scanning:
            return
        if snapshot.has_error:
            print(f"Error: {snapshot.error_message}", file=sys.stderr)
            app.exit(1)
            return
        print(format_table(filter_ports(snapshot.ports, args.filter)))
        app.exit(0)

    controller.state_changed.connect(on_state_changed)

    if args.kill is not None:
        controller.process_killed.connect(lambda pid: print(f"Killed PID {pid}", file=sys.stderr))
        QTimer.singleShot(0, lambda: controller.kill(args.kill))
    else:
        QTimer.singleShot(0, controller.scan)

    exit_code = app.exec()
    controller.shutdown()

    logger.info(f"PortManager shutting down (exit code: {exit_code})")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
