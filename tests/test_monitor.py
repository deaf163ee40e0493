"""Tests for AvailabilityProber and WatchOrchestrator."""

from __future__ import annotations

import asyncio
import logging
import time
from ipaddress import IPv4Address

import pytest

from openmonitor.config import PROBE_OVERALL_TIMEOUT
from openmonitor.errors import ConfigurationError, ProbeTimeout
from openmonitor.models import ResolvedTarget, TargetState
from openmonitor.monitor import AvailabilityProber, WatchOrchestrator, tcp_connect


class FlakyNetwork:
    """Fake connect: each host refuses `failures[host]` times, then accepts."""

    def __init__(self, failures=None, events=None):
        self.failures = dict(failures or {})
        self.events = events if events is not None else []

    async def __call__(self, host: str, port: int) -> None:
        self.events.append(("connect", host, port))
        if self.failures.get(host, 0) > 0:
            self.failures[host] -= 1
            raise ConnectionRefusedError(111, "Connection refused")


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingNotifier:
    def __init__(self, events=None, fail=False):
        self.events = events if events is not None else []
        self.fail = fail

    def notify(self, name: str) -> None:
        self.events.append(("notify", name))
        if self.fail:
            raise RuntimeError("no notification daemon")


class TestAvailabilityProber:
    @pytest.mark.asyncio
    async def test_reachable_first_attempt_without_sleep(self):
        network, sleep = FlakyNetwork(), RecordingSleep()
        prober = AvailabilityProber(0.5, connect=network, sleep=sleep)
        assert await prober.probe("1.2.3.4", 100) == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [1, 2, 5])
    async def test_succeeds_after_k_failures(self, k):
        network, sleep = FlakyNetwork({"1.2.3.4": k}), RecordingSleep()
        prober = AvailabilityProber(0.05, connect=network, sleep=sleep)
        assert await prober.probe("1.2.3.4", 100) == k + 1
        assert sleep.calls == [0.05] * k
        assert len(network.events) == k + 1

    @pytest.mark.asyncio
    async def test_timeouts_are_retried(self):
        calls = []

        async def connect(host, port):
            calls.append(host)
            if len(calls) < 3:
                raise asyncio.TimeoutError()

        prober = AvailabilityProber(0, connect=connect, sleep=RecordingSleep())
        assert await prober.probe(IPv4Address("1.2.3.4"), 100) == 3

    @pytest.mark.asyncio
    async def test_real_sleep_between_attempts(self):
        network = FlakyNetwork({"1.2.3.4": 3})
        prober = AvailabilityProber(0.02, connect=network)
        t0 = time.perf_counter()
        await prober.probe("1.2.3.4", 100)
        assert time.perf_counter() - t0 >= 0.06 * 0.9

    @pytest.mark.asyncio
    async def test_zero_interval_yields_to_event_loop(self):
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        before = ticks
        prober = AvailabilityProber(0, connect=FlakyNetwork({"1.2.3.4": 20}))
        assert await prober.probe("1.2.3.4", 100) == 21
        task.cancel()
        assert ticks > before

    @pytest.mark.asyncio
    async def test_invalid_address_is_fatal(self):
        network = FlakyNetwork()
        prober = AvailabilityProber(0, connect=network, sleep=RecordingSleep())
        with pytest.raises(ConfigurationError):
            await prober.probe("999.1.1.1", 100)
        assert network.events == []

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            AvailabilityProber(-1)

    def test_no_overall_timeout_by_default(self):
        assert PROBE_OVERALL_TIMEOUT is None
        assert AvailabilityProber(0.1).overall_timeout is None

    @pytest.mark.parametrize("limit", [0, -1])
    def test_overall_timeout_must_be_positive(self, limit):
        with pytest.raises(ValueError):
            AvailabilityProber(0.1, overall_timeout=limit)

    @pytest.mark.asyncio
    async def test_overall_timeout_raises_probe_timeout(self):
        prober = AvailabilityProber(0.01, connect=FlakyNetwork({"1.2.3.4": 10_000}), overall_timeout=0.05)
        with pytest.raises(ProbeTimeout, match="A did not open"):
            await prober.probe("1.2.3.4", 100, name="A")

    @pytest.mark.asyncio
    async def test_overall_timeout_not_hit_when_server_opens(self):
        prober = AvailabilityProber(0, connect=FlakyNetwork({"1.2.3.4": 2}), overall_timeout=5)
        assert await prober.probe("1.2.3.4", 100) == 3

    @pytest.mark.asyncio
    async def test_real_tcp_listener(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            prober = AvailabilityProber(0.01, sleep=RecordingSleep())
            assert await prober.probe("127.0.0.1", port) == 1
        finally:
            server.close()
            await server.wait_closed()

    @pytest.mark.asyncio
    async def test_tcp_connect_refused(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()
        with pytest.raises(OSError):
            await tcp_connect("127.0.0.1", port, timeout=2)


class TestWatchOrchestrator:
    @pytest.mark.asyncio
    async def test_notifies_in_watch_list_order(self):
        events = []
        network = FlakyNetwork({"5.6.7.8": 2}, events=events)
        sleep = RecordingSleep()
        notifier = RecordingNotifier(events)
        targets = [
            ResolvedTarget("A", IPv4Address("1.2.3.4"), 100),
            ResolvedTarget("B", IPv4Address("5.6.7.8"), 200),
        ]
        orchestrator = WatchOrchestrator(AvailabilityProber(0.05, connect=network, sleep=sleep), notifier)

        assert await orchestrator.run(targets) == 2
        assert events == [
            ("connect", "1.2.3.4", 100),
            ("notify", "A"),
            ("connect", "5.6.7.8", 200),
            ("connect", "5.6.7.8", 200),
            ("connect", "5.6.7.8", 200),
            ("notify", "B"),
        ]
        assert sleep.calls == [0.05, 0.05]

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_abort_run(self):
        notifier = RecordingNotifier(fail=True)
        targets = [
            ResolvedTarget("A", IPv4Address("1.2.3.4"), 100),
            ResolvedTarget("B", IPv4Address("5.6.7.8"), 200),
        ]
        orchestrator = WatchOrchestrator(AvailabilityProber(0, connect=FlakyNetwork(), sleep=RecordingSleep()), notifier)
        assert await orchestrator.run(targets) == 2
        assert notifier.events == [("notify", "A"), ("notify", "B")]

    @pytest.mark.asyncio
    async def test_duplicate_target_probed_twice(self):
        network = FlakyNetwork()
        notifier = RecordingNotifier()
        target = ResolvedTarget("A", IPv4Address("1.2.3.4"), 100)
        orchestrator = WatchOrchestrator(AvailabilityProber(0, connect=network, sleep=RecordingSleep()), notifier)
        await orchestrator.run([target, target])
        assert len(network.events) == 2
        assert notifier.events == [("notify", "A"), ("notify", "A")]

    @pytest.mark.asyncio
    async def test_states_end_notified(self):
        targets = [ResolvedTarget("A", IPv4Address("1.2.3.4"), 100)]
        orchestrator = WatchOrchestrator(
            AvailabilityProber(0, connect=FlakyNetwork(), sleep=RecordingSleep()), RecordingNotifier()
        )
        await orchestrator.run(targets)
        _, states, last_change = orchestrator.repo.snapshot()
        assert states == [TargetState.NOTIFIED]
        assert last_change[0] is not None

    @pytest.mark.asyncio
    async def test_state_is_probing_while_waiting(self):
        orchestrator = None
        seen = []

        async def connect(host, port):
            seen.append(orchestrator.repo.state(0))

        orchestrator = WatchOrchestrator(AvailabilityProber(0, connect=connect), RecordingNotifier())
        await orchestrator.run([ResolvedTarget("A", IPv4Address("1.2.3.4"), 100)])
        assert seen == [TargetState.PROBING]

    @pytest.mark.asyncio
    async def test_logs_progress_and_summary(self, caplog):
        targets = [
            ResolvedTarget("A", IPv4Address("1.2.3.4"), 100),
            ResolvedTarget("B", IPv4Address("5.6.7.8"), 200),
        ]
        orchestrator = WatchOrchestrator(
            AvailabilityProber(0, connect=FlakyNetwork(), sleep=RecordingSleep()), RecordingNotifier()
        )
        with caplog.at_level(logging.INFO, logger="openmonitor.monitor"):
            await orchestrator.run(targets)
        messages = [r.getMessage() for r in caplog.records]
        assert "[2/2] B: waiting for 5.6.7.8:200" in messages
        assert messages[-2].startswith("[1/2] A (1.2.3.4:100) notified at ")
        assert messages[-1].startswith("[2/2] B (5.6.7.8:200) notified at ")

    @pytest.mark.asyncio
    async def test_empty_list(self):
        orchestrator = WatchOrchestrator(AvailabilityProber(0, connect=FlakyNetwork()), RecordingNotifier())
        assert await orchestrator.run([]) == 0
