"""
Background monitoring, one server at a time.

Design:
- AvailabilityProber retries a TCP connect to one address:port at a fixed interval
  until it succeeds. It never reports failure: a refused or timed-out attempt is the
  expected steady state while a server is closed.
- WatchOrchestrator walks the resolved watch list in order. For each target:
    1) mark it PROBING and hand it to the prober (returns only once it is reachable),
    2) fire the notifier exactly once (failures are logged, never raised),
    3) mark it NOTIFIED and move on.
  When the list is done it logs a per-slot summary from the WatchRepo.
- Target i+1 is never probed before target i has been notified.
- There is no per-target or global timeout by default (config.PROBE_OVERALL_TIMEOUT is
  None): a server that never opens holds the rest of the list until the process is
  stopped. Passing overall_timeout opts in to a limit, which raises ProbeTimeout.
- Sleeps go through asyncio, so waiting between attempts yields to the event loop.
"""

import asyncio
import logging
import time
from functools import partial
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from .config import CONNECT_TIMEOUT_SEC, PROBE_OVERALL_TIMEOUT
from .errors import ProbeTimeout
from .models import ResolvedTarget, TargetState
from .repository import WatchRepo
from .utils import format_elapsed, parse_ipv4

logger = logging.getLogger(__name__)

ConnectFn = Callable[[str, int], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]

# what counts as "not open yet"
RETRYABLE = (OSError, asyncio.TimeoutError)


class SupportsNotify(Protocol):
    def notify(self, name: str) -> None: ...


async def tcp_connect(host: str, port: int, timeout: Optional[float] = None) -> None:
    """
    Open a TCP connection and release it straight away; reachability is all we want.
    Raises OSError / asyncio.TimeoutError when the server is not accepting connections.
    """
    opening = asyncio.open_connection(host, port)
    if timeout is None:
        _, writer = await opening
    else:
        _, writer = await asyncio.wait_for(opening, timeout=timeout)
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        logger.debug("close after probe of %s:%d failed: %s", host, port, exc)


class AvailabilityProber:
    def __init__(
        self,
        interval: float,
        *,
        connect: Optional[ConnectFn] = None,
        sleep: SleepFn = asyncio.sleep,
        connect_timeout: Optional[float] = CONNECT_TIMEOUT_SEC,
        overall_timeout: Optional[float] = PROBE_OVERALL_TIMEOUT,
    ):
        """
        interval: seconds to wait after each failed attempt (0 still yields).
        connect_timeout: cap on a single attempt; None leaves it to the OS.
        overall_timeout: cap on the whole probe; None (the default) retries forever.
        """
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if overall_timeout is not None and overall_timeout <= 0:
            raise ValueError("overall_timeout must be > 0 or None")
        self.interval = interval
        self.connect_timeout = connect_timeout
        self.overall_timeout = overall_timeout
        self._connect = connect or partial(tcp_connect, timeout=connect_timeout)
        self._sleep = sleep

    async def probe(self, address, port: int, name: Optional[str] = None) -> int:
        """
        Retry until address:port accepts a connection.

        The address is validated once, before the loop (ConfigurationError if bad).
        Returns the number of attempts it took. With the default overall_timeout of
        None there is no failure return; a configured limit raises ProbeTimeout.
        """
        host = str(parse_ipv4(address))
        label = name or f"{host}:{port}"
        logger.info("Watching %s (%s:%d), retry every %s", label, host, port, format_elapsed(self.interval))
        if self.overall_timeout is None:
            return await self._retry(host, port, label)
        try:
            return await asyncio.wait_for(self._retry(host, port, label), timeout=self.overall_timeout)
        except asyncio.TimeoutError as exc:
            raise ProbeTimeout(f"{label} did not open within {format_elapsed(self.overall_timeout)}") from exc

    async def _retry(self, host: str, port: int, label: str) -> int:
        attempt = 0
        while True:
            attempt += 1
            try:
                await self._connect(host, port)
            except RETRYABLE as exc:
                logger.debug("%s attempt %d failed (%s); retrying in %ss", label, attempt, str(exc) or type(exc).__name__, self.interval)
                # interval 0 still awaits, which yields to the loop
                await self._sleep(self.interval)
                continue
            return attempt


class WatchOrchestrator:
    def __init__(self, prober: AvailabilityProber, notifier: SupportsNotify, repo: Optional[WatchRepo] = None):
        self.prober = prober
        self.notifier = notifier
        self.repo = repo or WatchRepo()

    async def run(self, targets: Sequence[ResolvedTarget]) -> int:
        """
        Probe each target in order and notify on each success.
        Returns how many targets were notified (always len(targets) when it returns).
        """
        self.repo.load(targets)
        total = len(targets)
        for index, target in enumerate(targets):
            self.repo.set_state(index, TargetState.PROBING)
            logger.info("[%d/%d] %s: waiting for %s", index + 1, total, target.name, target.endpoint)
            t0 = time.perf_counter()
            attempts = await self.prober.probe(target.address, target.port, name=target.name)
            elapsed = time.perf_counter() - t0
            logger.info(
                "%s (%s) is open after %d attempt(s), %s",
                target.name, target.endpoint, attempts, format_elapsed(elapsed),
            )
            self._notify(target.name)
            self.repo.set_state(index, TargetState.NOTIFIED)
        for line in self.repo.summary_lines():
            logger.info(line)
        return self.repo.count(TargetState.NOTIFIED)

    def _notify(self, name: str) -> None:
        # A missed notification must not stop monitoring of the remaining servers
        try:
            self.notifier.notify(name)
        except Exception:
            logger.exception("Notification for %s failed", name)
