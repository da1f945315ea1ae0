"""Tests for port probing and allocation."""

import socket
from unittest.mock import MagicMock

import pytest

from jumpbridge.containers.compose import ComposeCommand
from jumpbridge.errors import ConfigurationError, PortUnavailableError
from jumpbridge.executors.base import CommandResult
from jumpbridge.ports import (
    ContainerPortProbe,
    HostPortProbe,
    PortProbe,
    PortRange,
    PortScope,
    find_free_port,
    parse_port,
    scan_ports,
)


class FakeProbe(PortProbe):
    """Probe with a fixed set of busy ports that records what it checks."""

    def __init__(self, busy: set[int], scope: PortScope = PortScope.HOST) -> None:
        self.busy = busy
        self.scope = scope
        self.checked: list[int] = []

    def is_free(self, port: int) -> bool:
        self.checked.append(port)
        return port not in self.busy


RANGE = PortRange(3000, 3010)


class TestPortRange:
    """Tests for PortRange and parse_port."""

    def test_iterates_inclusive(self) -> None:
        """Test the range includes both ends."""
        assert list(PortRange(3000, 3002)) == [3000, 3001, 3002]
        assert str(PortRange(3000, 3002)) == "3000-3002"

    def test_rejects_inverted_and_out_of_range(self) -> None:
        """Test invalid ranges are configuration errors."""
        with pytest.raises(ConfigurationError):
            PortRange(3010, 3000)
        with pytest.raises(ConfigurationError):
            PortRange(0, 10)

    def test_parse_port(self) -> None:
        """Test ports parse from strings and ints within 1-65535."""
        assert parse_port(" 3001 ") == 3001
        assert parse_port(8080) == 8080
        for bad in ("abc", "0", "65536", ""):
            with pytest.raises(ConfigurationError):
                parse_port(bad)


class TestFindFreePort:
    """Tests for find_free_port."""

    def test_picks_lowest_free_port(self) -> None:
        """Test 3000-3005 busy yields 3006."""
        probe = FakeProbe(busy=set(range(3000, 3006)))
        selection = find_free_port(probe, RANGE)

        assert selection.port == 3006
        assert selection.scope is PortScope.HOST
        assert probe.checked == list(range(3000, 3007))

    def test_explicit_free_port(self) -> None:
        """Test an explicit free port is returned as-is."""
        probe = FakeProbe(busy=set())
        assert find_free_port(probe, RANGE, explicit=4000).port == 4000
        assert probe.checked == [4000]

    def test_explicit_busy_port_is_not_substituted(self) -> None:
        """Test a busy explicit port fails instead of falling back."""
        probe = FakeProbe(busy={3000})
        with pytest.raises(PortUnavailableError) as exc_info:
            find_free_port(probe, RANGE, explicit=3000)

        assert exc_info.value.port == 3000
        assert exc_info.value.scope == "host"
        assert probe.checked == [3000]

    def test_exhausted_range_reports_occupancy(self) -> None:
        """Test a fully busy range lists every checked port."""
        probe = FakeProbe(busy=set(RANGE))
        with pytest.raises(PortUnavailableError) as exc_info:
            find_free_port(probe, RANGE)

        message = str(exc_info.value)
        assert "3000-3010" in message
        assert "3000:used" in message
        assert "3010:used" in message

    def test_start_offsets_scan(self) -> None:
        """Test the scan may begin above the range start."""
        probe = FakeProbe(busy={3004}, scope=PortScope.CONTAINER)
        selection = find_free_port(probe, RANGE, start=3004)

        assert selection.port == 3005
        assert selection.scope is PortScope.CONTAINER
        assert probe.checked == [3004, 3005]

    def test_scan_ports(self) -> None:
        """Test scan_ports reports every port in order."""
        probe = FakeProbe(busy={3001})
        assert scan_ports(probe, PortRange(3000, 3002)) == [
            (3000, True),
            (3001, False),
            (3002, True),
        ]


class TestHostPortProbe:
    """Tests for the real host probe."""

    def test_bound_port_is_busy(self) -> None:
        """Test a port held by a listener is reported busy."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
            holder.bind(("127.0.0.1", 0))
            holder.listen(1)
            port = holder.getsockname()[1]
            assert HostPortProbe("127.0.0.1").is_free(port) is False

    def test_unbound_port_is_free(self) -> None:
        """Test a released ephemeral port is reported free."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as tmp:
            tmp.bind(("127.0.0.1", 0))
            port = tmp.getsockname()[1]
        assert HostPortProbe("127.0.0.1").is_free(port) is True


class TestContainerPortProbe:
    """Tests for the in-container probe."""

    def _probe(self, result: CommandResult) -> tuple[ContainerPortProbe, MagicMock]:
        executor = MagicMock()
        executor.capture.return_value = result
        return ContainerPortProbe(executor, ComposeCommand(), "mobile-web"), executor

    def test_runs_php_inside_service(self) -> None:
        """Test the probe runs a PHP socket check via compose exec."""
        probe, executor = self._probe(CommandResult((), 0, stdout="free\n"))
        assert probe.is_free(3001) is True

        args = executor.capture.call_args.args[0]
        assert args[:5] == ["docker", "compose", "exec", "-T", "mobile-web"]
        assert args[5:7] == ["php", "-r"]
        assert "tcp://0.0.0.0:3001" in args[7]

    def test_used_output_is_busy(self) -> None:
        """Test 'used' output means busy."""
        probe, _ = self._probe(CommandResult((), 0, stdout="used"))
        assert probe.is_free(3001) is False

    def test_failed_probe_is_busy(self) -> None:
        """Test a failing exec is treated as busy."""
        probe, _ = self._probe(CommandResult((), 1, stderr="no such service"))
        assert probe.is_free(3001) is False

    def test_simulated_probe_is_free(self) -> None:
        """Test dry-run answers count as free."""
        probe, _ = self._probe(CommandResult((), 0, simulated=True))
        assert probe.is_free(3001) is True
