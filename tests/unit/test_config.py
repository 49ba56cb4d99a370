"""Tests for GateConfig."""

from pathlib import Path

import pytest

from quality_gate.config import CONFIG_RELPATH, DEFAULT_EXCLUDE, GateConfig
from quality_gate.errors import ConfigError


def write_config(root: Path, text: str) -> Path:
    """Helper to write .quality-gate/config.yaml."""
    path = root / CONFIG_RELPATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestGateConfigLoad:
    """Tests for loading config files."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        """Missing default config should yield defaults."""
        config = GateConfig.load(tmp_path)

        assert config.lookback_seconds == 60.0
        assert config.max_depth == 8
        assert config.tool_timeout_seconds == 10.0
        assert config.max_preview == 3
        assert config.color is None
        assert config.exclude == list(DEFAULT_EXCLUDE)
        assert config.root == tmp_path
        assert config.config_path is None

    def test_load_file(self, tmp_path: Path) -> None:
        """Values from the YAML file should be applied."""
        path = write_config(
            tmp_path,
            """
lookback_seconds: 30
max_preview: 5
color: false
timing: true
extra_exclude: ["generated"]
tools:
  pyright: false
  ruff:
    timeout_seconds: 20
""",
        )

        config = GateConfig.load(tmp_path)

        assert config.lookback_seconds == 30.0
        assert config.max_preview == 5
        assert config.color is False
        assert config.timing is True
        assert "generated" in config.exclude
        assert "node_modules" in config.exclude
        assert config.tools == {"pyright": False, "ruff": {"timeout_seconds": 20}}
        assert config.config_path == path

    def test_exclude_replaces_defaults(self) -> None:
        """An explicit exclude list should replace the default globs."""
        config = GateConfig.from_dict({"exclude": ["tmp"]})
        assert config.exclude == ["tmp"]

    def test_unknown_keys_ignored(self) -> None:
        """Unknown keys should not raise."""
        config = GateConfig.from_dict({"not_a_setting": 1})
        assert config.lookback_seconds == 60.0

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty config file means defaults."""
        write_config(tmp_path, "")
        assert GateConfig.load(tmp_path).max_depth == 8

    def test_explicit_missing_path_raises(self, tmp_path: Path) -> None:
        """A config path given explicitly must exist."""
        with pytest.raises(ConfigError, match="Config not found"):
            GateConfig.load(tmp_path, tmp_path / "nope.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        """Broken YAML should raise ConfigError."""
        write_config(tmp_path, "lookback_seconds: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            GateConfig.load(tmp_path)

    def test_non_mapping_raises(self, tmp_path: Path) -> None:
        """Config must be a mapping."""
        write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            GateConfig.load(tmp_path)

    @pytest.mark.parametrize(
        "data",
        [
            {"lookback_seconds": "soon"},
            {"lookback_seconds": -1},
            {"max_depth": True},
            {"color": "sometimes"},
            {"tools": ["ruff"]},
            {"exclude": 3},
            {"timing": "false"},
            {"verbose": "yes"},
            {"timing": 1},
        ],
    )
    def test_wrong_types_raise(self, data: dict) -> None:
        """Wrong value types should raise ConfigError."""
        with pytest.raises(ConfigError):
            GateConfig.from_dict(data)

    def test_color_auto(self) -> None:
        """color: auto defers to terminal detection."""
        assert GateConfig.from_dict({"color": "auto"}).color is None

    def test_quoted_false_is_rejected(self, tmp_path: Path) -> None:
        """A quoted "false" is a string, never silently truthy."""
        write_config(tmp_path, "timing: \"false\"\n")
        with pytest.raises(ConfigError, match="'timing' must be true or false"):
            GateConfig.load(tmp_path)


class TestGateConfigEnv:
    """Tests for environment overrides."""

    def test_env_overrides(self) -> None:
        """QUALITY_GATE_* variables should override file values."""
        config = GateConfig.from_dict({"lookback_seconds": 30}).with_env(
            {
                "QUALITY_GATE_LOOKBACK_SECONDS": "120",
                "QUALITY_GATE_TIMEOUT": "4.5",
                "QUALITY_GATE_VERBOSE": "1",
                "QUALITY_GATE_TIMING": "yes",
            }
        )

        assert config.lookback_seconds == 120.0
        assert config.tool_timeout_seconds == 4.5
        assert config.verbose is True
        assert config.timing is True

    def test_no_color(self) -> None:
        """NO_COLOR disables color regardless of config."""
        config = GateConfig.from_dict({"color": True}).with_env({"NO_COLOR": "1"})
        assert config.color is False

    def test_empty_env_returns_same(self) -> None:
        """No overrides should leave config untouched."""
        config = GateConfig()
        assert config.with_env({}) is config

    def test_invalid_flag_raises(self) -> None:
        """Unrecognized flag values should raise."""
        with pytest.raises(ConfigError, match="QUALITY_GATE_VERBOSE"):
            GateConfig().with_env({"QUALITY_GATE_VERBOSE": "maybe"})

    def test_invalid_number_raises(self) -> None:
        """Non-numeric overrides should raise."""
        with pytest.raises(ConfigError, match="QUALITY_GATE_TIMEOUT"):
            GateConfig().with_env({"QUALITY_GATE_TIMEOUT": "fast"})
