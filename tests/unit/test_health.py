from __future__ import annotations

import pytest

from idea_pilot.domain.value_objects.enums import HealthState
from idea_pilot.realtime.exceptions import SubscriptionError
from idea_pilot.realtime.health import (
    UNAVAILABLE_WARNING,
    UNSTABLE_WARNING,
    HealthMonitor,
    HealthProber,
    ProbeOutcome,
)
from idea_pilot.realtime.state import ConnectionHealth
from tests.conftest import FakeRealtimeClient, wait_until


def _prober(client: FakeRealtimeClient, timeout: float = 0.5) -> HealthProber:
    return HealthProber(client, timeout=timeout, broadcast_delay=0)


@pytest.mark.asyncio
async def test_probe_ok_when_broadcast_echoes():
    client = FakeRealtimeClient()

    result = await _prober(client).probe()

    assert result.ok
    assert result.outcome == ProbeOutcome.OK
    [name] = client.created
    assert name.startswith("status_check_")
    assert client.broadcasts_sent == [(name, "test")]
    assert client.removed == [name]


@pytest.mark.asyncio
async def test_probe_channel_names_are_unique():
    client = FakeRealtimeClient()
    prober = _prober(client)

    await prober.probe()
    await prober.probe()

    assert len(set(client.created)) == 2


@pytest.mark.asyncio
async def test_probe_times_out_without_echo():
    client = FakeRealtimeClient(echo_broadcasts=False)

    result = await _prober(client, timeout=0.05).probe()

    assert result.outcome == ProbeOutcome.TIMEOUT
    assert result.error == "Connection timeout"
    assert client.removed == client.created


@pytest.mark.asyncio
async def test_probe_times_out_when_handshake_hangs():
    client = FakeRealtimeClient(hang_subscribe=True)

    result = await _prober(client, timeout=0.05).probe()

    assert result.outcome == ProbeOutcome.TIMEOUT
    assert client.broadcasts_sent == []
    assert client.removed == client.created


@pytest.mark.asyncio
async def test_probe_error_when_subscription_rejected():
    client = FakeRealtimeClient(probe_errors=[SubscriptionError("refused")])

    result = await _prober(client).probe()

    assert result.outcome == ProbeOutcome.ERROR
    assert result.error == "refused"
    assert client.removed == client.created


@pytest.mark.asyncio
async def test_probe_error_on_channel_error():
    client = FakeRealtimeClient(channel_error_on_broadcast=True)

    result = await _prober(client, timeout=5.0).probe()

    assert result.outcome == ProbeOutcome.ERROR
    assert result.error == "socket closed"
    assert client.removed == client.created


@pytest.mark.asyncio
async def test_monitor_degrades_then_recovers():
    client = FakeRealtimeClient(echo_broadcasts=False)
    health = ConnectionHealth()
    events: list[tuple[HealthState, str | None]] = []

    async def listener(state, warning):
        events.append((state, warning))

    health.add_listener(listener)
    monitor = HealthMonitor(_prober(client, timeout=0.05), health)

    await monitor.check_once()
    await monitor.check_once()
    assert health.degraded
    assert health.warning == UNSTABLE_WARNING

    client.echo_broadcasts = True
    await monitor.check_once()

    assert health.state == HealthState.HEALTHY
    assert health.warning is None
    assert events == [(HealthState.DEGRADED, UNSTABLE_WARNING), (HealthState.HEALTHY, None)]


@pytest.mark.asyncio
async def test_monitor_error_warning():
    client = FakeRealtimeClient(probe_errors=[SubscriptionError("refused")])
    health = ConnectionHealth()
    monitor = HealthMonitor(_prober(client), health)

    result = await monitor.check_once()

    assert result.outcome == ProbeOutcome.ERROR
    assert monitor.last_result is result
    assert health.warning == UNAVAILABLE_WARNING


@pytest.mark.asyncio
async def test_monitor_loop_start_stop():
    client = FakeRealtimeClient()
    health = ConnectionHealth()
    monitor = HealthMonitor(_prober(client), health, interval=0.01)

    monitor.start()
    await wait_until(lambda: len(client.removed) >= 2)
    await monitor.stop()

    assert not monitor.running
    assert health.state == HealthState.HEALTHY
    assert client.channels == {}


@pytest.mark.asyncio
async def test_listener_removal():
    health = ConnectionHealth()
    events = []

    async def listener(state, warning):
        events.append(state)

    remove = health.add_listener(listener)
    remove()
    remove()
    await health.mark_degraded("x")

    assert events == []
