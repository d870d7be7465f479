"""Realtime health probing on a disposable broadcast channel."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from idea_pilot.realtime.channel import ChannelStatus, RealtimeClient
from idea_pilot.realtime.exceptions import RealtimeError, SubscriptionTimeout
from idea_pilot.realtime.state import ConnectionHealth

logger = logging.getLogger(__name__)

PROBE_EVENT = "test"

UNSTABLE_WARNING = "Connection to real-time service is unstable. Some messages may be delayed."
UNAVAILABLE_WARNING = "Real-time updates are unavailable. Messages may not appear immediately."


class ProbeOutcome(StrEnum):
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ProbeResult:
    outcome: ProbeOutcome
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == ProbeOutcome.OK


class HealthProber:
    """Checks the transport end to end.

    Each probe subscribes a uniquely named channel, sends itself a ``test``
    broadcast after ``broadcast_delay`` and waits for the echo. An explicit
    channel error ends the probe early; silence until ``timeout`` is reported
    as a timeout. The channel is removed in every case.
    """

    def __init__(
        self,
        client: RealtimeClient,
        *,
        timeout: float = 7.0,
        broadcast_delay: float = 1.0,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._broadcast_delay = broadcast_delay

    async def probe(self) -> ProbeResult:
        loop = asyncio.get_running_loop()
        result: asyncio.Future[ProbeResult] = loop.create_future()
        channel = self._client.channel(f"status_check_{uuid.uuid4().hex}")

        async def on_echo(event: str, payload: dict[str, Any]) -> None:
            if not result.done():
                result.set_result(ProbeResult(ProbeOutcome.OK))

        async def on_status(status: ChannelStatus, error: Exception | None) -> None:
            if status == ChannelStatus.CHANNEL_ERROR and not result.done():
                result.set_result(
                    ProbeResult(ProbeOutcome.ERROR, str(error) if error else "Channel error")
                )

        channel.on_broadcast(PROBE_EVENT, on_echo)
        channel.on_status(on_status)
        try:
            async with asyncio.timeout(self._timeout):
                await channel.subscribe(self._timeout)
                if not result.done():
                    await asyncio.sleep(self._broadcast_delay)
                if not result.done():
                    await channel.send_broadcast(PROBE_EVENT, {"test": True})
                return await result
        except (TimeoutError, SubscriptionTimeout):
            logger.warning("Realtime probe timed out after %.1fs", self._timeout)
            return ProbeResult(ProbeOutcome.TIMEOUT, "Connection timeout")
        except RealtimeError as exc:
            logger.warning("Realtime probe failed: %s", exc)
            return ProbeResult(ProbeOutcome.ERROR, str(exc) or type(exc).__name__)
        finally:
            try:
                await self._client.remove_channel(channel)
            except Exception:
                logger.warning("Failed to remove probe channel %s", channel.name, exc_info=True)


class HealthMonitor:
    """Re-runs the probe every ``interval`` seconds and updates ``health``."""

    def __init__(
        self,
        prober: HealthProber,
        health: ConnectionHealth,
        *,
        interval: float = 30.0,
    ) -> None:
        self._prober = prober
        self._health = health
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self.last_result: ProbeResult | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="realtime-health-monitor")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def check_once(self) -> ProbeResult:
        result = await self._prober.probe()
        self.last_result = result
        if result.ok:
            await self._health.mark_healthy()
        elif result.outcome == ProbeOutcome.TIMEOUT:
            await self._health.mark_degraded(UNSTABLE_WARNING)
        else:
            await self._health.mark_degraded(UNAVAILABLE_WARNING)
        return result

    async def _run(self) -> None:
        while True:
            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Realtime health check failed")
            await asyncio.sleep(self._interval)
