"""Tests for configuration file loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gitpushy.config import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    discover_config_path,
    load_config,
)
from gitpushy.config.loader import expand_env_vars

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture
def isolated_discovery(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every discovery location at an empty temporary directory."""
    monkeypatch.delenv("GITPUSHY_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "xdg"))
    monkeypatch.chdir(temp_dir)
    return temp_dir


class TestLoadConfig:
    def test_loads_camel_case_yaml(
        self,
        write_config: Callable[..., Path],
        sample_config: dict,
    ) -> None:
        config = load_config(write_config(sample_config))

        assert config.auth.token == "ghp_test_token"
        assert config.targets[0].full_name == "acme/widgets"
        assert config.targets[0].label == "Widgets"
        assert config.limits.max_per_repo == 10

    def test_empty_file_yields_defaults(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.yaml"
        path.write_text("")

        config = load_config(path)

        assert config.targets == []
        assert config.refresh.update_interval_ms == 300000

    def test_expands_environment_variables(
        self,
        write_config: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("WIDGETS_OWNER", "acme")
        path = write_config({"targets": [{"owner": "${WIDGETS_OWNER}", "repo": "widgets"}]})

        assert load_config(path).targets[0].owner == "acme"

    def test_missing_environment_variable(
        self,
        write_config: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("GITPUSHY_UNSET_VAR", raising=False)
        path = write_config({"auth": {"token": "${GITPUSHY_UNSET_VAR}"}})

        with pytest.raises(EnvironmentVariableError) as exc_info:
            load_config(path)

        assert exc_info.value.var_name == "GITPUSHY_UNSET_VAR"
        assert exc_info.value.path == path.resolve()

    def test_invalid_values_are_reported(self, write_config: Callable[..., Path]) -> None:
        path = write_config(
            {
                "limits": {"maxTotal": "lots"},
                "targets": [{"owner": "acme"}],
            }
        )

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        assert "Config validation failed" in str(exc_info.value)
        assert len(exc_info.value.validation_errors) >= 2

    def test_invalid_yaml(self, temp_dir: Path) -> None:
        path = temp_dir / "broken.yaml"
        path.write_text("targets: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML syntax"):
            load_config(path)

    def test_non_mapping_document(self, temp_dir: Path) -> None:
        path = temp_dir / "list.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="YAML mapping"):
            load_config(path)


class TestDiscovery:
    def test_explicit_path_missing(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigNotFoundError):
            discover_config_path(temp_dir / "nope.yaml")

    def test_environment_variable(
        self,
        isolated_discovery: Path,
        write_config: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        path = write_config({}, "custom.yaml")
        monkeypatch.setenv("GITPUSHY_CONFIG", str(path))

        assert discover_config_path() == path.resolve()

    def test_current_directory(self, isolated_discovery: Path) -> None:
        local = isolated_discovery / "gitpushy.yaml"
        local.write_text("{}\n")

        assert discover_config_path().resolve() == local.resolve()

    def test_xdg_config_home(self, isolated_discovery: Path) -> None:
        xdg_path = isolated_discovery / "xdg" / "gitpushy" / "config.yaml"
        xdg_path.parent.mkdir(parents=True)
        xdg_path.write_text("{}\n")

        assert discover_config_path() == xdg_path

    def test_nothing_found(self, isolated_discovery: Path) -> None:
        with pytest.raises(ConfigNotFoundError, match="Searched locations"):
            discover_config_path()


class TestExpandEnvVars:
    def test_nested_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BRANCH", "main")
        value = {"targets": [{"baseBranches": ["${BRANCH}", "dev"]}], "n": 3}

        assert expand_env_vars(value) == {"targets": [{"baseBranches": ["main", "dev"]}], "n": 3}

    def test_non_strict_leaves_reference(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITPUSHY_UNSET_VAR", raising=False)
        assert expand_env_vars("${GITPUSHY_UNSET_VAR}", strict=False) == "${GITPUSHY_UNSET_VAR}"
