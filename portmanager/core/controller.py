"""Background scan/kill orchestration and the published port state."""

from dataclasses import replace
from typing import Optional

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal, pyqtSlot

from .errors import PortManagerError
from .models import PortSnapshot
from .port_scanner import PortScanner
from .process_manager import ProcessManager
from .. import config
from ..utils.logging_config import get_logger

logger = get_logger('controller')


class ScanWorker(QObject):
    """Worker thread for port scanning."""
    finished = pyqtSignal(list)  # Emits list of PortRecord
    error = pyqtSignal(str)

    def __init__(self, scanner: PortScanner):
        super().__init__()
        self.scanner = scanner

    def run(self):
        """Run the scan in background thread."""
        try:
            logger.info("ScanWorker starting scan")
            ports = self.scanner.scan()
            logger.info(f"ScanWorker completed: {len(ports)} ports found")
            self.finished.emit(ports)
        except PortManagerError as e:
            logger.error(f"ScanWorker failed: {e}")
            self.error.emit(str(e))
        except Exception as e:
            logger.exception("ScanWorker error")
            self.error.emit(f"Error scanning ports: {e}")


class KillWorker(QObject):
    """Worker thread for killing one process."""
    finished = pyqtSignal(int, str)  # (pid, message)
    error = pyqtSignal(int, str)  # (pid, message)

    def __init__(self, process_manager: ProcessManager, pid: int):
        super().__init__()
        self.process_manager = process_manager
        self.pid = pid

    def run(self):
        try:
            message = self.process_manager.kill_process(self.pid)
            self.finished.emit(self.pid, message)
        except PortManagerError as e:
            self.error.emit(self.pid, str(e))
        except Exception as e:
            logger.exception(f"KillWorker error for PID={self.pid}")
            self.error.emit(self.pid, f"Failed to kill process: {e}")


class PortController(QObject):
    """
    Owns the published PortSnapshot and runs scans and kills off-thread.

    Results are delivered back through queued signals, so the snapshot is
    only ever written from the thread the controller lives in. At most one
    scan runs at a time; a scan requested meanwhile is coalesced into a
    single follow-up scan.
    """

    state_changed = pyqtSignal(object)  # Emits PortSnapshot
    process_killed = pyqtSignal(int)  # Emitted after a successful kill

    def __init__(self, scanner: Optional[PortScanner] = None,
                 process_manager: Optional[ProcessManager] = None,
                 rescan_delay_ms: Optional[int] = None,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self.scanner = scanner or PortScanner()
        self.process_manager = process_manager or ProcessManager()
        self._snapshot = PortSnapshot()
        self._closed = False

        # Threading
        self._scan_thread: Optional[QThread] = None
        self._scan_worker: Optional[ScanWorker] = None
        self._scan_pending = False
        self._kill_jobs: dict[int, tuple[QThread, KillWorker]] = {}

        # Delayed rescan after a kill, gives the OS time to release the port
        self._rescan_timer = QTimer(self)
        self._rescan_timer.setSingleShot(True)
        self._rescan_timer.setInterval(
            rescan_delay_ms if rescan_delay_ms is not None else config.RESCAN_DELAY_MS
        )
        self._rescan_timer.timeout.connect(self.scan)

        self._refresh_timer = QTimer(self)
        self._refresh_timer.timeout.connect(self.scan)

    @property
    def snapshot(self) -> PortSnapshot:
        return self._snapshot

    @property
    def is_scanning(self) -> bool:
        return self._scan_thread is not None

    def _publish(self, snapshot: PortSnapshot):
        self._snapshot = snapshot
        self.state_changed.emit(snapshot)

    @pyqtSlot()
    def scan(self):
        """Start a scan in a background thread."""
        if self._closed:
            return

        if self._scan_thread is not None:
            logger.debug("Scan already in progress, queueing a follow-up scan")
            self._scan_pending = True
            return

        logger.info("Starting port scan")
        self._publish(replace(self._snapshot, is_scanning=True, error_message=None))

        self._scan_thread = QThread()
        self._scan_worker = ScanWorker(self.scanner)
        self._scan_worker.moveToThread(self._scan_thread)

        self._scan_thread.started.connect(self._scan_worker.run)
        self._scan_worker.finished.connect(self._on_scan_finished)
        self._scan_worker.error.connect(self._on_scan_error)
        self._scan_worker.finished.connect(self._scan_thread.quit)
        self._scan_worker.error.connect(self._scan_thread.quit)

        self._scan_thread.start()

    @pyqtSlot(list)
    def _on_scan_finished(self, ports: list):
        logger.info(f"Scan finished with {len(ports)} ports")
        self._cleanup_scan()
        if self._closed:
            return
        self._publish(PortSnapshot(ports=tuple(ports), is_scanning=False, error_message=None))
        self._run_pending_scan()

    @pyqtSlot(str)
    def _on_scan_error(self, error_msg: str):
        logger.error(f"Scan error: {error_msg}")
        self._cleanup_scan()
        if self._closed:
            return
        self._publish(PortSnapshot(ports=(), is_scanning=False, error_message=error_msg))
        self._run_pending_scan()

    def _cleanup_scan(self):
        if self._scan_thread is not None:
            self._scan_thread.quit()
            self._scan_thread.wait()
        self._scan_thread = None
        self._scan_worker = None

    def _run_pending_scan(self):
        if self._scan_pending:
            self._scan_pending = False
            self.scan()

    @pyqtSlot(int)
    def kill(self, pid: int):
        """Kill a process in a background thread, then rescan after a short delay."""
        if self._closed:
            return

        if pid in self._kill_jobs:
            logger.warning(f"Kill of PID={pid} already in progress, ignoring request")
            return

        logger.info(f"Requesting kill of PID={pid}")
        thread = QThread()
        worker = KillWorker(self.process_manager, pid)
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.finished.connect(self._on_kill_finished)
        worker.error.connect(self._on_kill_error)
        worker.finished.connect(thread.quit)
        worker.error.connect(thread.quit)

        self._kill_jobs[pid] = (thread, worker)
        thread.start()

    @pyqtSlot(int, str)
    def _on_kill_finished(self, pid: int, message: str):
        logger.info(message)
        self._cleanup_kill(pid)
        if self._closed:
            return
        self.process_killed.emit(pid)
        # Restarting an active timer keeps it to a single rescan
        self._rescan_timer.start()

    @pyqtSlot(int, str)
    def _on_kill_error(self, pid: int, error_msg: str):
        logger.error(f"Kill error: {error_msg}")
        self._cleanup_kill(pid)
        if self._closed:
            return
        # Keep the displayed ports, only surface the message
        self._publish(replace(self._snapshot, error_message=error_msg))

    def _cleanup_kill(self, pid: int):
        job = self._kill_jobs.pop(pid, None)
        if job is not None:
            thread, _worker = job
            thread.quit()
            thread.wait()

    def start_auto_refresh(self, interval_ms: Optional[int] = None):
        """Rescan periodically; each tick is still a one-shot scan."""
        interval = interval_ms if interval_ms is not None else config.AUTO_REFRESH_MS
        logger.debug(f"Auto refresh every {interval}ms")
        self._refresh_timer.start(interval)

    def stop_auto_refresh(self):
        self._refresh_timer.stop()

    def shutdown(self):
        """Stop timers and wait for running workers; later results are dropped."""
        logger.debug("PortController shutting down")
        self._closed = True
        self._scan_pending = False
        self._rescan_timer.stop()
        self._refresh_timer.stop()

        threads = [thread for thread, _worker in self._kill_jobs.values()]
        if self._scan_thread is not None:
            threads.append(self._scan_thread)
        for thread in threads:
            thread.quit()
            thread.wait()
