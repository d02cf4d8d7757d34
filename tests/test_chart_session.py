import pytest

from chartpulse.application.dto.chart_dto import DOWN_VOLUME_COLOR, UP_VOLUME_COLOR
from chartpulse.application.services.indicator_service import IndicatorService
from chartpulse.application.state.indicator_registry import IndicatorRegistry
from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.domain.events.domain_events import (
    BarsLoaded,
    BoundaryCheck,
    CandleSealed,
    IndicatorAdded,
    IndicatorRemoved,
    IndicatorUpdated,
    IntervalChanged,
    SignalsReceived,
    TickArrived,
)
from chartpulse.domain.exceptions.domain_errors import ConfigurationError
from chartpulse.infrastructure.external.event_bus import (
    CANDLE_SEALED_TOPIC,
    CHART_SNAPSHOT_TOPIC,
    EventBus,
)
from chartpulse.infrastructure.simulation.random_walk import generate_history
from tests.conftest import BASE


def feed(session, ticks):
    for offset, price, volume in ticks:
        session.on_tick_arrived(price, BASE + offset, volume)


def test_snapshot_after_ticks(session):
    feed(session, [(1, 100, 1), (10, 105, 2), (61, 98, 3)])

    snapshot = session.snapshot()

    assert [c["time"] for c in snapshot.candles] == [BASE, BASE + 60]
    assert snapshot.candles[0] == {
        "time": BASE, "open": 100, "high": 105, "low": 100, "close": 105, "volume": 3,
    }
    assert snapshot.volume == [
        {"time": BASE, "value": 3, "color": UP_VOLUME_COLOR},
        {"time": BASE + 60, "value": 3, "color": DOWN_VOLUME_COLOR},
    ]
    assert snapshot.last_price == 98
    assert snapshot.change == -2.0
    assert snapshot.percent_change == -2.0
    assert snapshot.interval == "1m"
    assert snapshot.is_live is False


def test_zero_volume_candles_are_omitted_from_volume(session):
    feed(session, [(1, 100, 0), (61, 101, 4)])
    assert [v["time"] for v in session.snapshot().volume] == [BASE + 60]


def test_empty_snapshot(session):
    snapshot = session.snapshot().to_dict()
    assert snapshot["candles"] == []
    assert snapshot["last_price"] is None
    assert snapshot["change"] == 0.0


def test_tick_without_time_uses_session_clock(session, clock):
    session.on_tick_arrived(100)
    assert session.aggregator.open_candle.time == BASE
    clock.advance(60)
    assert session.on_tick_arrived(101) is not None


def test_invalid_ticks_never_raise(session):
    assert session.on_tick_arrived("nope", BASE) is None
    assert session.on_tick_arrived(100, "nope") is None
    assert session.stats["dropped_points"] == 2
    assert session.stats["last_tick"] is None


def test_boundary_check_rolls_open_candle(session):
    session.on_tick_arrived(100, BASE + 1)
    sealed = session.on_boundary_check(BASE + 60)
    assert sealed.time == BASE
    assert session.aggregator.open_candle.time == BASE + 60


def test_interval_change_resets_window(session):
    feed(session, [(1, 100, 1), (61, 101, 1)])
    assert session.on_interval_changed("5m") == 0

    assert session.interval == "5m"
    assert session.aggregator.interval_seconds == 300
    assert session.snapshot().candles == []


def test_unknown_interval_raises_and_keeps_state(session):
    session.on_tick_arrived(100, BASE + 1)
    with pytest.raises(ConfigurationError):
        session.on_interval_changed("7m")
    assert session.interval == "1m"
    assert session.aggregator.open_candle is not None


def test_interval_change_reseeds_from_history_provider(clock, rng):
    session = ChartSessionUseCase(
        indicator_service=IndicatorService(IndicatorRegistry()),
        period=20,
        clock=clock,
        history_provider=lambda seconds, now: generate_history(30, seconds, now, rng),
    )
    assert session.on_interval_changed("15m") == 30
    closed = session.aggregator.closed_candles
    assert len(closed) == 20
    assert all(c.time % 900 == 0 for c in closed)


def test_bars_loaded_replace_window(session):
    bars = [{"time": BASE + i * 60, "open": 1, "high": 2, "low": 1, "close": 2} for i in range(5)]
    assert session.on_bars_loaded(bars) == 5
    assert len(session.snapshot().candles) == 5


def test_indicators_appear_in_snapshot(session):
    feed(session, [(i * 60, 100 + i, 1) for i in range(30)])
    instance_id = session.on_indicator_added("sma", {"period": 5})

    traces = session.snapshot().traces
    assert [t.id for t in traces] == [f"{instance_id}:sma"]
    assert len(traces[0].data) == 30 - 5 + 1

    session.on_indicator_updated(instance_id, {"period": 10})
    assert len(session.snapshot().traces[0].data) == 30 - 10 + 1

    session.on_indicator_removed(instance_id)
    assert session.snapshot().traces == []


def test_invalid_indicator_config_surfaces_synchronously(session):
    with pytest.raises(ConfigurationError):
        session.on_indicator_added("sma", {"period": 0})


def test_signals_become_deduplicated_markers(session):
    count = session.on_signals_received([
        {"time": BASE, "type": "buy"},
        {"time": "bad", "type": "sell"},
        {"time": BASE + 60, "type": "hold"},
        {"time": BASE * 1000, "type": "sell", "label": "exit"},
        {"time": BASE + 120, "type": "BUY", "label": "entry"},
    ])

    assert count == 2
    markers = session.snapshot().markers
    assert markers[0] == {
        "time": BASE, "position": "aboveBar", "shape": "arrowDown",
        "color": "#ef5350", "text": "exit", "size": 1.5,
    }
    assert markers[1]["position"] == "belowBar"
    assert markers[1]["text"] == "entry"


def test_handle_dispatches_commands(session):
    session.handle(TickArrived(price=100, at_time=BASE + 1, volume=1))
    session.handle(BoundaryCheck(now=BASE + 60))
    instance_id = session.handle(IndicatorAdded(indicator_id="rsi"))
    session.handle(IndicatorUpdated(instance_id=instance_id, overrides={"period": 3}))
    session.handle(SignalsReceived(signals=[{"time": BASE, "type": "buy"}]))

    assert instance_id == "rsi-1"
    assert len(session.aggregator.closed_candles) == 1
    assert len(session.markers) == 1

    session.handle(IndicatorRemoved(instance_id=instance_id))
    session.handle(BarsLoaded(bars=[]))
    session.handle(IntervalChanged(interval="1h"))
    assert session.interval == "1h"
    assert session.stats["commands_processed"] == 8


def test_handle_rejects_unknown_command(session):
    with pytest.raises(TypeError):
        session.handle(CandleSealed())


async def test_publish_snapshot_sends_sealed_candles_then_snapshot(clock):
    bus = EventBus()
    snapshots = await bus.subscribe(CHART_SNAPSHOT_TOPIC, "test_snapshots")
    sealed = await bus.subscribe(CANDLE_SEALED_TOPIC, "test_sealed")
    session = ChartSessionUseCase(
        indicator_service=IndicatorService(IndicatorRegistry()), event_bus=bus, clock=clock,
    )

    feed(session, [(1, 100, 1), (61, 101, 1), (121, 102, 1)])
    published = await session.publish_snapshot()

    assert sealed.qsize() == 2
    first = sealed.get_nowait()
    assert isinstance(first, CandleSealed)
    assert first.time == BASE
    assert snapshots.get_nowait() is published

    await session.publish_snapshot()
    assert sealed.qsize() == 1
    assert snapshots.qsize() == 1


async def test_publish_snapshot_without_bus_returns_snapshot(session):
    session.on_tick_arrived(100, BASE + 1)
    snapshot = await session.publish_snapshot()
    assert snapshot.last_price == 100
