"""Tests for settings schema and config file loading."""

from pathlib import Path
from unittest.mock import patch

import yaml

from jumpbridge.config.loader import (
    config_path,
    load_settings,
    read_settings_file,
    resolve_project_root,
    save_settings,
)
from jumpbridge.config.schema import DEFAULT_SETTINGS, BridgeSettings


class TestBridgeSettings:
    """Tests for BridgeSettings dataclass."""

    def test_default_values(self) -> None:
        """Test that DEFAULT_SETTINGS has expected values."""
        assert DEFAULT_SETTINGS.bridge_service == "mobile-web"
        assert DEFAULT_SETTINGS.app_service == "backend-api"
        assert DEFAULT_SETTINGS.port_range_start == 3000
        assert DEFAULT_SETTINGS.port_range_end == 3010
        assert DEFAULT_SETTINGS.env_files == (".env", "mobile-app/.env")
        assert DEFAULT_SETTINGS.router_path.endswith("/jump/router.php")

    def test_overlay_applies_known_keys(self) -> None:
        """Test overlay applies and coerces known keys."""
        settings = DEFAULT_SETTINGS.overlay(
            {"ws_port": "9001", "bridge_service": "web", "env_files": ["a.env"]}
        )
        assert settings.ws_port == 9001
        assert settings.bridge_service == "web"
        assert settings.env_files == ("a.env",)

    def test_overlay_ignores_unknown_and_invalid_keys(self) -> None:
        """Test unknown keys and uncoercible values leave defaults intact."""
        settings = DEFAULT_SETTINGS.overlay(
            {"nonsense": 1, "ws_port": "not-a-number", "proxy_port": True}
        )
        assert settings == DEFAULT_SETTINGS

    def test_overlay_allows_clearing_optional_fields(self) -> None:
        """Test optional fields accept None."""
        base = BridgeSettings(compose_file="compose.yaml")
        assert base.overlay({"compose_file": None}).compose_file is None

    def test_to_dict_excludes_none_and_lists_tuples(self) -> None:
        """Test to_dict output is YAML friendly."""
        data = DEFAULT_SETTINGS.to_dict()
        assert "compose_file" not in data
        assert data["env_files"] == [".env", "mobile-app/.env"]

    def test_from_dict_round_trips(self) -> None:
        """Test from_dict restores settings written by to_dict."""
        settings = BridgeSettings(compose_file="docker-compose.yml", ws_port=9000)
        assert BridgeSettings.from_dict(settings.to_dict()) == settings


class TestConfigLoader:
    """Tests for YAML loading and layering."""

    def test_home_config_path(self, tmp_path: Path) -> None:
        """Test global config lives under ~/.jumpbridge."""
        with patch("jumpbridge.config.loader.Path.home", return_value=tmp_path):
            assert config_path("home") == tmp_path / ".jumpbridge" / "config.yaml"

    def test_local_config_path(self, tmp_path: Path) -> None:
        """Test local config lives under ./.jumpbridge."""
        with patch("jumpbridge.config.loader.Path.cwd", return_value=tmp_path):
            path = config_path("local")
            assert path == tmp_path / ".jumpbridge" / "config.yaml"

    def test_read_settings_file_returns_none_for_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file yields None."""
        assert read_settings_file(tmp_path / "missing.yaml") is None

    def test_read_settings_file_returns_none_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Test broken YAML yields None."""
        path = tmp_path / "config.yaml"
        path.write_text("key: [unclosed", encoding="utf-8")
        assert read_settings_file(path) is None

    def test_read_settings_file_returns_none_for_non_mapping(self, tmp_path: Path) -> None:
        """Test a YAML list is not treated as config."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert read_settings_file(path) is None

    def test_local_overrides_home(self, tmp_path: Path) -> None:
        """Test precedence is defaults, then global, then local."""
        home = tmp_path / "home" / ".jumpbridge" / "config.yaml"
        home.parent.mkdir(parents=True)
        home.write_text("ws_port: 9001\nbridge_service: home-web\n", encoding="utf-8")
        local = tmp_path / "project" / ".jumpbridge" / "config.yaml"
        local.parent.mkdir(parents=True)
        local.write_text("bridge_service: local-web\n", encoding="utf-8")

        with (
            patch("jumpbridge.config.loader.Path.home", return_value=tmp_path / "home"),
            patch("jumpbridge.config.loader.Path.cwd", return_value=tmp_path / "project"),
        ):
            settings = load_settings()

        assert settings.ws_port == 9001
        assert settings.bridge_service == "local-web"
        assert settings.proxy_port == DEFAULT_SETTINGS.proxy_port

    def test_read_settings_file_ignores_undecodable_file(self, tmp_path: Path) -> None:
        """Test a settings file that is not UTF-8 is skipped."""
        path = tmp_path / "config.yaml"
        path.write_bytes(b"ws_port: \xff\n")
        assert read_settings_file(path) is None

    def test_save_settings_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Test save_settings writes a readable YAML file."""
        path = tmp_path / ".jumpbridge" / "config.yaml"
        save_settings(BridgeSettings(ws_port=9100), path)

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["ws_port"] == 9100
        assert data["env_files"] == [".env", "mobile-app/.env"]

    def test_resolve_project_root_defaults_to_cwd(self, tmp_path: Path) -> None:
        """Test project root falls back to the working directory."""
        with patch("jumpbridge.config.loader.Path.cwd", return_value=tmp_path):
            assert resolve_project_root(DEFAULT_SETTINGS) == tmp_path

    def test_resolve_project_root_uses_project_dir(self, tmp_path: Path) -> None:
        """Test project_dir wins over the working directory."""
        settings = BridgeSettings(project_dir=str(tmp_path))
        assert resolve_project_root(settings) == tmp_path.resolve()
