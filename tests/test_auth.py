"""Tests for GitHub credential resolution."""

from __future__ import annotations

import pytest

from gitpushy.config import AuthConfig
from gitpushy.github.auth import (
    AuthenticationError,
    mask_token,
    missing_token_error,
    resolve_token,
)


class TestResolveToken:
    def test_explicit_token_wins(self) -> None:
        auth = AuthConfig(token="  ghp_explicit  ")
        assert resolve_token(auth, {"GITHUB_TOKEN": "ghp_env"}) == "ghp_explicit"

    def test_blank_token_falls_back_to_environment(self) -> None:
        auth = AuthConfig(token="   ")
        assert resolve_token(auth, {"GITHUB_TOKEN": "ghp_env"}) == "ghp_env"

    def test_custom_environment_variable(self) -> None:
        auth = AuthConfig(token_env_var="WORK_TOKEN")
        environ = {"GITHUB_TOKEN": "ghp_wrong", "WORK_TOKEN": "ghp_work"}
        assert resolve_token(auth, environ) == "ghp_work"

    @pytest.mark.parametrize("environ", [{}, {"GITHUB_TOKEN": ""}, {"GITHUB_TOKEN": "  "}])
    def test_no_credential(self, environ: dict[str, str]) -> None:
        assert resolve_token(AuthConfig(), environ) is None

    def test_unset_environment_variable_name(self) -> None:
        auth = AuthConfig(token_env_var=None)
        assert resolve_token(auth, {"GITHUB_TOKEN": "ghp_env"}) is None

    def test_defaults_to_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITPUSHY_TEST_TOKEN", "ghp_process")
        auth = AuthConfig(token_env_var="GITPUSHY_TEST_TOKEN")
        assert resolve_token(auth) == "ghp_process"


def test_missing_token_error_names_variable() -> None:
    error = missing_token_error(AuthConfig(token_env_var="WORK_TOKEN"))

    assert isinstance(error, AuthenticationError)
    assert str(error) == "Missing GitHub token (set auth.token or env var WORK_TOKEN)."
    assert error.token_env_var == "WORK_TOKEN"


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        (None, "<none>"),
        ("", "<none>"),
        ("short", "***"),
        ("ghp_1234567890abcd", "ghp_...abcd"),
    ],
)
def test_mask_token(token: str | None, expected: str) -> None:
    assert mask_token(token) == expected
