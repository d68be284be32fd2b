"""Per-instance polling scheduler.

Each display instance registers a configuration and gets one periodic task
that triggers an aggregation run every ``refresh.update_interval_ms``.
Results (or errors paired with the last good result) are delivered to the
signal sink.

Overlap policy: a trigger arriving while the same instance's run is still
in progress is skipped. Runs of different instances interleave freely.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from gitpushy.config.schema import merge_config
from gitpushy.engine.aggregator import RATE_LIMIT_MESSAGE, PullRequestAggregator
from gitpushy.engine.branches import BranchResolver
from gitpushy.engine.signals import DataSignal, ErrorKind, ErrorSignal, format_error
from gitpushy.github.auth import missing_token_error, resolve_token
from gitpushy.github.cache import HttpCache, RepoMetadataCache
from gitpushy.github.client import GitHubClient
from gitpushy.github.ratelimit import RateLimitError, RateLimitGuard
from gitpushy.logging import get_logger, log_fetch_cycle, log_rate_limit

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from gitpushy.config.schema import Config
    from gitpushy.engine.aggregator import PullRequestRecord
    from gitpushy.engine.signals import Signal, SignalSink

log = get_logger(__name__)


@dataclass
class InstanceRegistration:
    """State kept for one display instance.

    Attributes:
        config: Active configuration
        last_good: Last successful result, shown alongside errors
        timer: Periodic task triggering runs
        interval_ms: Interval the timer was created with
        running: Whether a run is in progress
        skipped: Number of triggers skipped because a run was in progress
    """

    config: Config
    last_good: list[PullRequestRecord] = field(default_factory=list)
    timer: asyncio.Task[None] | None = None
    interval_ms: int | None = None
    running: bool = False
    skipped: int = 0


class InstanceScheduler:
    """Owns the shared caches, the rate-limit guard and one timer per instance.

    Example:
        >>> async def sink(signal):
        ...     print(signal)
        >>> scheduler = InstanceScheduler(sink=sink)
        >>> await scheduler.fetch("main", {"targets": [{"owner": "acme", "repo": "widgets"}]})
        >>> await scheduler.shutdown()
    """

    def __init__(
        self,
        *,
        sink: SignalSink,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize scheduler.

        Args:
            sink: Receives data and error signals for every instance.
            http_client: Optional shared httpx client (created lazily if None).
            clock: Returns the current time in epoch seconds.
            environ: Environment used for credential lookup (os.environ if None).
        """
        self._sink = sink
        self._http = http_client
        self._owns_http = http_client is None
        self._clock = clock
        self._environ = environ
        self._cache = HttpCache()
        self._guard = RateLimitGuard()
        self._resolver = BranchResolver(RepoMetadataCache(), clock=clock)
        self._instances: dict[str, InstanceRegistration] = {}
        self._runs: set[asyncio.Task[bool]] = set()

    @property
    def cache(self) -> HttpCache:
        """Get the shared conditional-request cache."""
        return self._cache

    @property
    def guard(self) -> RateLimitGuard:
        """Get the shared rate-limit guard."""
        return self._guard

    def get_instance(self, instance_id: str) -> InstanceRegistration | None:
        """Get the registration of an instance, if any."""
        return self._instances.get(instance_id)

    async def register(
        self,
        instance_id: str,
        raw_config: Mapping[str, Any] | Config | None,
    ) -> InstanceRegistration:
        """Register or update an instance's configuration.

        Keeps exactly one timer per instance: it is recreated only when the
        interval changed, otherwise left running untouched.

        Args:
            instance_id: Display instance identifier.
            raw_config: Configuration supplied by the instance.

        Returns:
            The instance registration.
        """
        config = merge_config(raw_config)
        registration = self._instances.get(instance_id)
        if registration is None:
            registration = InstanceRegistration(config=config)
            self._instances[instance_id] = registration
            log.info("instance_registered", instance_id=instance_id, targets=len(config.targets))
        else:
            registration.config = config

        interval_ms = config.refresh.update_interval_ms
        if registration.timer is None or registration.interval_ms != interval_ms:
            if registration.timer is not None:
                registration.timer.cancel()
                log.info(
                    "instance_interval_changed",
                    instance_id=instance_id,
                    old_interval_ms=registration.interval_ms,
                    new_interval_ms=interval_ms,
                )
            registration.timer = asyncio.create_task(
                self._poll_loop(instance_id, interval_ms / 1000),
                name=f"gitpushy-poll-{instance_id}",
            )
            registration.interval_ms = interval_ms

        return registration

    async def fetch(
        self,
        instance_id: str,
        raw_config: Mapping[str, Any] | Config | None,
    ) -> bool:
        """Register the configuration, then run a fetch immediately.

        Returns:
            False if the fetch was skipped because a run was in progress.
        """
        await self.register(instance_id, raw_config)
        return await self.trigger(instance_id)

    async def trigger(self, instance_id: str) -> bool:
        """Run one fetch for an instance and deliver its signal.

        Args:
            instance_id: Display instance identifier.

        Returns:
            False if the instance is unknown or a run was already in progress.
        """
        registration = self._instances.get(instance_id)
        if registration is None:
            return False

        if registration.running:
            registration.skipped += 1
            log.info(
                "fetch_skipped_in_progress",
                instance_id=instance_id,
                skipped=registration.skipped,
            )
            return False

        registration.running = True
        try:
            await self._fetch_and_send(instance_id, registration)
        finally:
            registration.running = False
        return True

    async def shutdown(self) -> None:
        """Cancel every timer, in-flight run and branch lookup, then close the owned transport."""
        tasks: list[asyncio.Task[Any]] = []
        for registration in self._instances.values():
            if registration.timer is not None:
                registration.timer.cancel()
                tasks.append(registration.timer)
                registration.timer = None
        for run in list(self._runs):
            run.cancel()
            tasks.append(run)
        await asyncio.gather(*tasks, return_exceptions=True)
        await self._resolver.aclose()

        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def _poll_loop(self, instance_id: str, interval: float) -> None:
        # Runs are spawned rather than awaited so that cancelling the timer
        # never cancels a run in flight.
        while True:
            await asyncio.sleep(interval)
            run = asyncio.create_task(self.trigger(instance_id))
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
            self._owns_http = True
        return self._http

    async def _fetch_and_send(self, instance_id: str, registration: InstanceRegistration) -> None:
        config = registration.config

        if config.refresh.backoff_on_rate_limit and self._guard.is_limited(self._clock()):
            log_rate_limit(instance_id, self._reset_iso())
            await self._send(
                ErrorSignal(
                    instance_id=instance_id,
                    message=RATE_LIMIT_MESSAGE,
                    kind=ErrorKind.RATE_LIMITED,
                    prs=list(registration.last_good),
                )
            )
            return

        token = resolve_token(config.auth, self._environ)
        if token is None and config.alerts.show_on_auth_error:
            error = missing_token_error(config.auth)
            log.warning("missing_token", instance_id=instance_id, token_env_var=error.token_env_var)
            await self._send(
                ErrorSignal(
                    instance_id=instance_id,
                    message=str(error),
                    kind=ErrorKind.AUTH,
                    prs=list(registration.last_good),
                )
            )
            return

        client = GitHubClient(
            token,
            base_url=config.auth.api_base_url,
            cache=self._cache,
            guard=self._guard,
            honor_rate_limit=config.refresh.backoff_on_rate_limit,
            client=self._http_client(),
            clock=self._clock,
        )
        aggregator = PullRequestAggregator(client, self._resolver, clock=self._clock)

        started = time.monotonic()
        try:
            prs = await aggregator.run(config)
        except RateLimitError as e:
            log_rate_limit(instance_id, self._reset_iso())
            await self._send(
                ErrorSignal(
                    instance_id=instance_id,
                    message=format_error(e),
                    kind=ErrorKind.RATE_LIMITED,
                    prs=list(registration.last_good),
                )
            )
            return
        except Exception as e:
            log.exception("fetch_failed", instance_id=instance_id, requests=client.request_count)
            await self._send(
                ErrorSignal(
                    instance_id=instance_id,
                    message=format_error(e),
                    kind=ErrorKind.API,
                    prs=list(registration.last_good),
                )
            )
            return

        registration.last_good = prs
        log_fetch_cycle(
            instance_id=instance_id,
            targets=len(config.targets),
            prs=len(prs),
            requests=client.request_count,
            duration_ms=(time.monotonic() - started) * 1000,
        )
        await self._send(DataSignal(instance_id=instance_id, prs=list(prs)))

    async def _send(self, signal: Signal) -> None:
        await self._sink(signal)

    def _reset_iso(self) -> str | None:
        reset = self._guard.suppressed_until
        if reset is None:
            return None
        return datetime.fromtimestamp(reset, tz=UTC).isoformat()
