"""GitHub credential resolution."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitpushy.config.schema import AuthConfig


class AuthenticationError(Exception):
    """Raised when no usable GitHub credential can be resolved."""

    def __init__(self, message: str, *, token_env_var: str | None = None) -> None:
        """Initialize authentication error.

        Args:
            message: Error description.
            token_env_var: Environment variable that was consulted, if any.
        """
        super().__init__(message)
        self.token_env_var = token_env_var


def resolve_token(
    auth: AuthConfig,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Resolve the bearer credential for API calls.

    Resolution order:
    1. The explicit ``auth.token`` if it is non-empty after trimming
    2. The environment variable named by ``auth.token_env_var``
    3. No credential

    Args:
        auth: Auth section of the configuration.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        The credential, or None if none is configured.
    """
    if auth.token and auth.token.strip():
        return auth.token.strip()

    env = os.environ if environ is None else environ
    if auth.token_env_var:
        token = env.get(auth.token_env_var, "").strip()
        if token:
            return token
    return None


def missing_token_error(auth: AuthConfig) -> AuthenticationError:
    """Build the error reported when no credential is available."""
    env_var = auth.token_env_var or "GITHUB_TOKEN"
    return AuthenticationError(
        f"Missing GitHub token (set auth.token or env var {env_var}).",
        token_env_var=auth.token_env_var,
    )


def mask_token(token: str | None) -> str:
    """Mask a token for safe logging.

    Args:
        token: Token to mask.

    Returns:
        Masked token showing first 4 and last 4 characters.
    """
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "***"
    return f"{token[:4]}...{token[-4:]}"
