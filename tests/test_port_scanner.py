"""
Unit tests for PortScanner.

subprocess.run is patched so no real lsof is needed; each test queues the
TCP result first and the UDP result second.
"""
import subprocess
from unittest.mock import patch

import pytest

from portmanager.core import (
    OutputFormat, PortScanner, Protocol, ScanLaunchError, ScanTimeoutError
)

from conftest import TCP_TAGGED_OUTPUT, UDP_TAGGED_OUTPUT, completed


@pytest.fixture
def scanner():
    return PortScanner(lsof_path="/usr/sbin/lsof", timeout=3, output_format=OutputFormat.TAGGED)


@pytest.fixture
def mock_run():
    with patch("portmanager.core.port_scanner.subprocess.run") as run:
        yield run


class TestCommands:

    def test_tcp_command(self, scanner):
        assert scanner.build_command(Protocol.TCP) == [
            "/usr/sbin/lsof", "-iTCP", "-sTCP:LISTEN", "-n", "-P", "-F", "pcn"
        ]

    def test_udp_command_has_no_state_filter(self, scanner):
        assert scanner.build_command(Protocol.UDP) == [
            "/usr/sbin/lsof", "-iUDP", "-n", "-P", "-F", "pcn"
        ]

    def test_columnar_command_has_no_field_args(self):
        scanner = PortScanner(lsof_path="lsof", output_format=OutputFormat.COLUMNAR)
        assert scanner.build_command(Protocol.TCP) == ["lsof", "-iTCP", "-sTCP:LISTEN", "-n", "-P"]

    def test_timeout_is_passed(self, scanner, mock_run):
        mock_run.return_value = completed()

        scanner.scan_protocol(Protocol.TCP)

        assert mock_run.call_args.kwargs["timeout"] == 3
        assert mock_run.call_args.kwargs["capture_output"] is True


class TestScan:

    def test_merges_and_sorts_by_port(self, scanner, mock_run):
        tcp = "p1\ncweb\nn*:443\nn*:80\n"
        udp = "p2\ncdns\nn*:53\n"
        mock_run.side_effect = [completed(tcp), completed(udp)]

        ports = scanner.scan()

        assert [p.port for p in ports] == [53, 80, 443]
        assert [p.protocol for p in ports] == [Protocol.UDP, Protocol.TCP, Protocol.TCP]

    def test_tcp_runs_before_udp(self, scanner, mock_run):
        mock_run.side_effect = [completed(TCP_TAGGED_OUTPUT), completed(UDP_TAGGED_OUTPUT)]

        scanner.scan()

        first, second = (c.args[0] for c in mock_run.call_args_list)
        assert "-iTCP" in first
        assert "-iUDP" in second

    def test_udp_launch_failure_keeps_tcp_results(self, scanner, mock_run):
        mock_run.side_effect = [completed(TCP_TAGGED_OUTPUT), OSError("spawn failed")]

        ports = scanner.scan()

        assert len(ports) == 4
        assert all(p.protocol is Protocol.TCP for p in ports)

    def test_udp_timeout_keeps_tcp_results(self, scanner, mock_run):
        mock_run.side_effect = [
            completed(TCP_TAGGED_OUTPUT),
            subprocess.TimeoutExpired(cmd="lsof", timeout=3),
        ]

        assert len(scanner.scan()) == 4

    def test_tcp_launch_failure_raises(self, scanner, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file or directory: '/usr/sbin/lsof'")

        with pytest.raises(ScanLaunchError, match="Error scanning ports"):
            scanner.scan()

        # UDP is never attempted after a fatal TCP failure
        assert mock_run.call_count == 1

    def test_tcp_timeout_raises(self, scanner, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="lsof", timeout=3)

        with pytest.raises(ScanTimeoutError):
            scanner.scan()

    def test_nonzero_exit_with_output_is_accepted(self, scanner, mock_run):
        mock_run.side_effect = [
            completed(TCP_TAGGED_OUTPUT, stderr="lsof: WARNING: can't stat() fuse", returncode=1),
            completed(returncode=1),
        ]

        assert len(scanner.scan()) == 4

    def test_nonzero_exit_without_output_is_empty(self, scanner, mock_run):
        # lsof exits 1 when nothing is listening
        mock_run.side_effect = [completed(returncode=1), completed(returncode=1)]

        assert scanner.scan() == []

    def test_nonzero_exit_with_stderr_warning_and_no_output_is_empty(self, scanner, mock_run):
        # Hosts with FUSE mounts get this warning even when nothing is listening
        warning = "lsof: WARNING: can't stat() fuse.gvfsd-fuse file system /run/user/1000/gvfs"
        mock_run.side_effect = [completed(stderr=warning, returncode=1), completed(returncode=1)]

        assert scanner.scan() == []

    def test_garbled_output_is_zero_results(self, scanner, mock_run):
        mock_run.side_effect = [completed("garbage\nmore garbage\n"), completed()]

        assert scanner.scan() == []

    def test_repeated_scans_are_set_equal(self, scanner, mock_run):
        mock_run.side_effect = [
            completed(TCP_TAGGED_OUTPUT), completed(UDP_TAGGED_OUTPUT),
            completed(TCP_TAGGED_OUTPUT), completed(UDP_TAGGED_OUTPUT),
        ]

        assert set(scanner.scan()) == set(scanner.scan())


class TestLookups:

    def test_find_process_by_port(self, scanner, mock_run):
        mock_run.side_effect = [completed(TCP_TAGGED_OUTPUT), completed(UDP_TAGGED_OUTPUT)]

        record = scanner.find_process_by_port(5432)

        assert record.process_name == "postgres"
        assert record.pid == 1201

    def test_find_process_by_unused_port(self, scanner, mock_run):
        mock_run.side_effect = [completed(TCP_TAGGED_OUTPUT), completed(UDP_TAGGED_OUTPUT)]

        assert scanner.find_process_by_port(9999) is None
