"""Shared pytest fixtures for gitpushy tests.

This module provides common fixtures for:
- Temporary config files
- A controllable clock
- A scripted GitHub API (httpx.MockTransport)
- Sample GitHub API payloads
"""

from __future__ import annotations

import asyncio
import json
import tempfile
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import freezegun
import httpx
import pytest
import yaml

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

API = "https://api.github.com"

# freezegun skips modules whose names start with "gi" (PyGObject), which
# covers every gitpushy module.
freezegun.configure(
    default_ignore_list=[
        module for module in freezegun.config.DEFAULT_IGNORE_LIST if module != "gi"
    ]
)


# ============================================================================
# Time Fixtures
# ============================================================================


@dataclass
class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    now: float = 1_768_059_000.0  # 2026-01-10T15:30:00Z

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Return a controllable clock starting at 2026-01-10T15:30:00Z."""
    return FakeClock()


@pytest.fixture
def frozen_time() -> datetime:
    """Return a fixed datetime for deterministic tests.

    Use with freezegun's freeze_time decorator:

        @freeze_time("2026-01-10T15:30:00Z")
        def test_something(frozen_time):
            assert datetime.now(UTC) == frozen_time
    """
    return datetime(2026, 1, 10, 15, 30, 0, tzinfo=UTC)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config() -> dict[str, Any]:
    """Return a sample configuration with one default-branch target."""
    return {
        "auth": {"token": "ghp_test_token"},
        "targets": [
            {"owner": "acme", "repo": "widgets", "displayName": "Widgets"},
        ],
        "query": {"state": "open", "includeDrafts": True},
        "limits": {"maxTotal": 20, "maxPerRepo": 10},
        "refresh": {"updateIntervalMs": 300000, "backoffOnRateLimit": True},
    }


@pytest.fixture
def write_config(temp_dir: Path) -> Callable[..., Path]:
    """Factory fixture to write config files."""

    def _write(config: dict[str, Any], filename: str = "config.yaml") -> Path:
        path = temp_dir / filename
        with path.open("w") as f:
            yaml.safe_dump(config, f)
        return path

    return _write


# ============================================================================
# GitHub API Fixtures
# ============================================================================


def json_response(
    data: Any,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build a mock httpx.Response with JSON body."""
    all_headers = {"content-type": "application/json"}
    if headers:
        all_headers.update(headers)
    return httpx.Response(
        status_code=status_code,
        content=json.dumps(data).encode(),
        headers=all_headers,
    )


@dataclass
class Route:
    path: str
    params: dict[str, str]
    responses: list[httpx.Response | Callable[[httpx.Request], httpx.Response]]

    def matches(self, request: httpx.Request) -> bool:
        if request.url.path != self.path:
            return False
        return all(request.url.params.get(k) == v for k, v in self.params.items())


@dataclass
class FakeGitHub:
    """Scripted GitHub API served through httpx.MockTransport.

    Routes match on path plus a subset of query parameters. Each route
    replays its responses in order and keeps repeating the last one.
    Routes registered later take precedence.
    """

    delay: float = 0.0
    routes: list[Route] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def on(
        self,
        path: str,
        *responses: httpx.Response | Callable[[httpx.Request], httpx.Response],
        **params: str,
    ) -> None:
        self.routes.insert(0, Route(path, params, list(responses)))

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        for route in self.routes:
            if route.matches(request):
                response = route.responses[0]
                if len(route.responses) > 1:
                    route.responses.pop(0)
                if callable(response):
                    return response(request)
                return httpx.Response(
                    status_code=response.status_code,
                    headers=response.headers,
                    content=response.content,
                )
        return json_response({"message": "Not Found"}, status_code=404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Return an empty scripted GitHub API."""
    return FakeGitHub()


def make_pull(
    number: int,
    *,
    updated_at: str = "2026-01-10T14:00:00Z",
    draft: bool = False,
    base: str = "main",
    login: str | None = "contributor",
) -> dict[str, Any]:
    """Build a list-view pull request payload."""
    return {
        "number": number,
        "title": f"Pull request {number}",
        "state": "open",
        "draft": draft,
        "html_url": f"https://github.com/acme/widgets/pull/{number}",
        "created_at": "2026-01-08T09:00:00Z",
        "updated_at": updated_at,
        "user": (
            {"login": login, "avatar_url": f"https://avatars.example/{login}"}
            if login
            else None
        ),
        "base": {"ref": base},
    }


def make_details(
    number: int,
    *,
    additions: int = 10,
    deletions: int = 2,
    changed_files: int = 3,
    login: str = "detail-author",
) -> dict[str, Any]:
    """Build a detail-view pull request payload."""
    return {
        "number": number,
        "additions": additions,
        "deletions": deletions,
        "changed_files": changed_files,
        "user": {"login": login, "avatar_url": f"https://avatars.example/{login}"},
    }


@pytest.fixture
def github_repo_response() -> dict[str, Any]:
    """Return a sample GitHub repository API response."""
    return {
        "id": 1296269,
        "name": "widgets",
        "full_name": "acme/widgets",
        "default_branch": "main",
        "html_url": "https://github.com/acme/widgets",
    }
