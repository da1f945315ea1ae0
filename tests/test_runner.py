"""Tests for the Jump session pipeline."""

from collections.abc import Mapping, Sequence
from unittest.mock import MagicMock, patch

import pytest

from jumpbridge.config.envfile import EnvConfig
from jumpbridge.config.schema import BridgeSettings
from jumpbridge.errors import ConfigurationError, PortUnavailableError
from jumpbridge.executors.base import CommandResult, Executor
from jumpbridge.executors.dry_run import DryRunExecutor
from jumpbridge.network.interfaces import score_candidate
from jumpbridge.network.resolver import HostIpSource
from jumpbridge.ports import PortProbe, PortScope
from jumpbridge.runner import JumpOptions, resolve_plan, run_jump, validate_options
from jumpbridge.session import summary_lines

PATCHED_ROUTER = "$strip = ['upgrade', 'transfer-encoding'];\n"


class FakeProbe(PortProbe):
    scope = PortScope.HOST

    def __init__(self, busy: set[int] | None = None) -> None:
        self.busy = busy or set()

    def is_free(self, port: int) -> bool:
        return port not in self.busy


class ScriptedExecutor(Executor):
    """Answers compose and adb queries like a healthy lab."""

    name = "scripted"

    def __init__(self, busy_in_container: set[int] | None = None) -> None:
        self.busy_in_container = busy_in_container or set()
        self.calls: list[list[str]] = []

    def run(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
        input: str | None = None,
    ) -> CommandResult:
        self.calls.append(list(args))
        return CommandResult(tuple(args), 0)

    def capture(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        self.calls.append(list(args))
        if "ps" in args:
            return CommandResult(tuple(args), 0, stdout="backend-api\nmobile-web\n")
        if "-r" in args:
            script = args[-1]
            used = any(f":{port}\"" in script for port in self.busy_in_container)
            return CommandResult(tuple(args), 0, stdout="used" if used else "free")
        if "sh" in args:
            return CommandResult(tuple(args), 0, stdout=PATCHED_ROUTER)
        if args[-1] == "devices":
            return CommandResult(tuple(args), 0, stdout="List of devices attached\nA1\tdevice\n")
        return CommandResult(tuple(args), 0)

    def handoff(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
    ) -> int:
        self.calls.append(list(args))
        return 0

    def which(self, name: str) -> str | None:
        return f"/usr/bin/{name}"


ETH0 = score_candidate("eth0", "192.168.1.42", default_interface="eth0")


def _env(**values: str) -> EnvConfig:
    return EnvConfig([], environ=values)


def _run(
    options: JumpOptions,
    executor: Executor,
    env: EnvConfig | None = None,
    host_busy: set[int] | None = None,
) -> MagicMock:
    with patch("jumpbridge.runner.launch", return_value=0) as mock_launch:
        code = run_jump(
            options,
            BridgeSettings(),
            env or _env(),
            executor,
            interactive=False,
            candidates=lambda: [ETH0],
            host_probe=FakeProbe(host_busy),
        )
    assert code == 0
    return mock_launch


class TestValidateOptions:
    """Tests for option validation."""

    def test_usb_on_ios_is_rejected(self) -> None:
        """Test USB mode is android only."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_options(JumpOptions(platform="ios", usb=True))
        assert exc_info.value.hint is not None

    def test_unknown_platform_and_mode(self) -> None:
        """Test unknown platform or IP mode values are rejected."""
        with pytest.raises(ConfigurationError):
            validate_options(JumpOptions(platform="windows"))
        with pytest.raises(ConfigurationError):
            validate_options(JumpOptions(platform="android", ip_mode="guess"))


class TestResolvePlan:
    """Tests for side-effect free resolution."""

    def test_scans_host_ports(self) -> None:
        """Test the first free host port is chosen."""
        plan = resolve_plan(
            JumpOptions(platform="android"),
            BridgeSettings(),
            _env(),
            candidates=lambda: [ETH0],
            host_probe=FakeProbe(set(range(3000, 3006))),
        )
        assert plan.host_http.port == 3006
        assert plan.explicit_http is False
        assert plan.host_ip.address == "192.168.1.42"
        assert plan.ws_port == 8081
        assert plan.proxy_port == 8080

    def test_env_ports_override_settings(self) -> None:
        """Test configured env ports win over settings."""
        plan = resolve_plan(
            JumpOptions(platform="android"),
            BridgeSettings(),
            _env(
                LAB_JUMP_HTTP_PORT="3003",
                LAB_JUMP_WS_PORT="9001",
                NATIVEPHP_LARAVEL_PORT="8000",
            ),
            candidates=lambda: [ETH0],
            host_probe=FakeProbe(),
        )
        assert plan.host_http.port == 3003
        assert plan.explicit_http is True
        assert plan.ws_port == 9001
        assert plan.proxy_port == 8000

    def test_http_and_ws_collision(self) -> None:
        """Test the HTTP port may not equal the WS port."""
        with pytest.raises(ConfigurationError):
            resolve_plan(
                JumpOptions(platform="android"),
                BridgeSettings(),
                _env(LAB_JUMP_WS_PORT="3000"),
                candidates=lambda: [ETH0],
                host_probe=FakeProbe(),
            )

    def test_usb_resolves_loopback(self) -> None:
        """Test USB sessions use the loopback address."""
        plan = resolve_plan(
            JumpOptions(platform="android", usb=True),
            BridgeSettings(),
            _env(),
            host_probe=FakeProbe(),
        )
        assert plan.host_ip.address == "127.0.0.1"
        assert plan.host_ip.source is HostIpSource.USB_FORCED


class TestRunJump:
    """Tests for the full pipeline."""

    def test_busy_explicit_port_fails_before_any_command(self) -> None:
        """Test nothing is run when the requested port is taken."""
        executor = MagicMock()
        with pytest.raises(PortUnavailableError):
            run_jump(
                JumpOptions(platform="android", http_port=3000),
                BridgeSettings(),
                _env(),
                executor,
                candidates=lambda: [ETH0],
                host_probe=FakeProbe({3000}),
            )
        executor.run.assert_not_called()
        executor.capture.assert_not_called()
        executor.handoff.assert_not_called()

    def test_usb_ios_fails_before_any_command(self) -> None:
        """Test invalid combinations fail before any effect."""
        executor = MagicMock()
        with pytest.raises(ConfigurationError):
            run_jump(JumpOptions(platform="ios", usb=True), BridgeSettings(), _env(), executor)
        executor.run.assert_not_called()

    def test_live_session(self) -> None:
        """Test services start before the container port is negotiated."""
        executor = ScriptedExecutor()
        mock_launch = _run(JumpOptions(platform="android"), executor)

        session = mock_launch.call_args.args[0]
        assert session.http_port == 3000
        assert session.host_ip.address == "192.168.1.42"
        assert executor.calls[0][-4:] == ["up", "-d", "backend-api", "mobile-web"]
        assert "ps" in executor.calls[1]

    def test_container_port_shift(self) -> None:
        """Test a port busy inside the bridge service moves the session up."""
        executor = ScriptedExecutor(busy_in_container={3000})
        mock_launch = _run(JumpOptions(platform="android"), executor)

        session = mock_launch.call_args.args[0]
        assert session.host_http.port == 3000
        assert session.http_port == 3001

    def test_explicit_port_busy_in_container(self) -> None:
        """Test an explicit port is not substituted inside the container."""
        executor = ScriptedExecutor(busy_in_container={3002})
        with pytest.raises(PortUnavailableError) as exc_info:
            _run(JumpOptions(platform="android", http_port=3002), executor)
        assert exc_info.value.scope == "container"

    def test_usb_session_reverses_ports(self) -> None:
        """Test USB sessions create adb reverse mappings."""
        executor = ScriptedExecutor()
        _run(JumpOptions(platform="android", usb=True), executor)

        reverses = [c for c in executor.calls if "reverse" in c]
        assert reverses == [
            ["adb", "-s", "A1", "reverse", "tcp:3000", "tcp:3000"],
            ["adb", "-s", "A1", "reverse", "tcp:8081", "tcp:8081"],
        ]

    def test_dry_run_matches_live_summary(self) -> None:
        """Test a dry run resolves the same session as a live run."""
        live = _run(JumpOptions(platform="android"), ScriptedExecutor())
        dry_executor = DryRunExecutor()
        dry = _run(JumpOptions(platform="android", dry_run=True), dry_executor)

        settings = BridgeSettings()
        live_session = live.call_args.args[0]
        dry_session = dry.call_args.args[0]
        assert summary_lines(dry_session, settings) == summary_lines(live_session, settings)
        assert dry_session.dry_run is True
        assert dry_executor.commands[0][-4:] == ("up", "-d", "backend-api", "mobile-web")
