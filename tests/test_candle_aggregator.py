import math

import pytest

from chartpulse.application.services.candle_aggregator import CandleAggregator
from chartpulse.domain.entities.candle import Candle
from chartpulse.domain.exceptions.domain_errors import ConfigurationError
from tests.conftest import BASE


@pytest.fixture
def aggregator(clock):
    return CandleAggregator(interval_seconds=60, period=100, clock=clock)


def test_ticks_in_one_bucket_build_one_candle(aggregator):
    for offset, price in ((1, 100), (10, 105), (30, 98)):
        assert aggregator.ingest_tick(price, BASE + offset) is None

    candle = aggregator.open_candle
    assert candle == Candle(time=BASE, open=100, high=105, low=98, close=98)
    assert aggregator.closed_candles == []
    assert aggregator.last_tick_price == 98


def test_crossing_the_boundary_seals_and_opens_next(aggregator):
    aggregator.ingest_tick(100, BASE + 1)
    aggregator.ingest_tick(98, BASE + 30)

    sealed = aggregator.ingest_tick(101, BASE + 61)

    assert sealed == Candle(time=BASE, open=100, high=100, low=98, close=98)
    assert aggregator.closed_candles == [sealed]
    assert aggregator.open_candle == Candle(time=BASE + 60, open=98, high=101, low=98, close=101)


def test_volume_accumulates_from_first_tick(aggregator):
    aggregator.ingest_tick(100, BASE + 1, volume=2)
    aggregator.ingest_tick(101, BASE + 2, volume=3)
    assert aggregator.open_candle.volume == 5

    aggregator.ingest_tick(102, BASE + 61, volume=4)
    assert aggregator.closed_candles[-1].volume == 5
    assert aggregator.open_candle.volume == 4


def test_late_tick_is_dropped(aggregator):
    aggregator.ingest_tick(100, BASE + 1)
    aggregator.ingest_tick(101, BASE + 61)
    before = aggregator.series()

    assert aggregator.ingest_tick(50, BASE + 5) is None
    assert aggregator.series() == before
    assert aggregator.dropped_count == 1


@pytest.mark.parametrize("price, at_time", [
    (float("nan"), BASE + 1),
    ("abc", BASE + 1),
    (-1, BASE + 1),
    (100, "garbage"),
    (100, 0),
])
def test_invalid_ticks_are_dropped_without_raising(aggregator, price, at_time):
    assert aggregator.ingest_tick(price, at_time) is None
    assert aggregator.open_candle is None
    assert aggregator.dropped_count == 1


def test_millisecond_ticks_land_in_the_same_bucket(aggregator):
    aggregator.ingest_tick(100, (BASE + 1) * 1000)
    aggregator.ingest_tick(101, BASE + 2)
    assert aggregator.open_candle.time == BASE
    assert aggregator.open_candle.close == 101


def test_window_is_bounded_by_period(clock):
    aggregator = CandleAggregator(interval_seconds=60, period=3, clock=clock)
    for i in range(6):
        aggregator.ingest_tick(100 + i, BASE + i * 60)

    closed = aggregator.closed_candles
    assert len(closed) == 3
    assert [c.time for c in closed] == [BASE + 120, BASE + 180, BASE + 240]


def test_series_is_strictly_ascending_and_respects_ohlc(aggregator, rng):
    t = BASE
    for _ in range(300):
        t += rng.randint(0, 20)
        aggregator.ingest_tick(round(100 + rng.uniform(-5, 5), 2), t)

    series = aggregator.series()
    times = [c.time for c in series]
    assert times == sorted(set(times))
    for c in series:
        assert c.low <= min(c.open, c.close)
        assert c.high >= max(c.open, c.close)
        assert c.time % 60 == 0


def test_roll_if_due_seals_and_opens_flat_candle(aggregator):
    aggregator.ingest_tick(100, BASE + 5, volume=3)

    assert aggregator.roll_if_due(BASE + 59) is None
    sealed = aggregator.roll_if_due(BASE + 60)

    assert sealed.time == BASE
    assert aggregator.open_candle == Candle(time=BASE + 60, open=100, high=100, low=100, close=100, volume=0)


def test_roll_if_due_jumps_to_current_bucket(aggregator):
    aggregator.ingest_tick(100, BASE + 5)
    aggregator.roll_if_due(BASE + 185)
    assert aggregator.open_candle.time == BASE + 180


def test_roll_if_due_uses_clock_when_now_is_omitted(aggregator, clock):
    aggregator.ingest_tick(100, BASE + 5)
    clock.advance(60)
    assert aggregator.roll_if_due() is not None


def test_roll_if_due_without_open_candle_is_noop(aggregator):
    assert aggregator.roll_if_due(BASE + 1000) is None


def test_ingest_batch_sorts_merges_and_normalizes(aggregator):
    bars = [
        {"time": BASE + 120, "open": 3, "high": 4, "low": 2, "close": 3, "volume": 10},
        {"time": BASE * 1000, "open": 1, "high": 2, "low": 1, "close": 2},
        {"time": BASE + 60, "open": 2, "high": 3, "low": 2, "close": 2.5},
        {"time": BASE + 120, "open": 9, "high": 6, "low": 1, "close": 5, "volume": 7},
        {"time": "bad", "open": 1, "high": 1, "low": 1, "close": 1},
        {"time": BASE + 180, "open": 1, "high": None, "low": 1, "close": 1},
    ]
    count = aggregator.ingest_batch(bars, now=BASE + 10_000)

    assert count == 3
    closed = aggregator.closed_candles
    assert [c.time for c in closed] == [BASE, BASE + 60, BASE + 120]
    merged = closed[-1]
    assert (merged.open, merged.high, merged.low, merged.close, merged.volume) == (3, 9, 1, 5, 10)
    assert aggregator.open_candle is None
    assert aggregator.last_tick_price == 5


def test_ingest_batch_widens_inconsistent_high_low(aggregator):
    aggregator.ingest_batch(
        [{"time": BASE, "open": 10, "high": 9, "low": 11, "close": 12}], now=BASE + 10_000,
    )
    candle = aggregator.closed_candles[0]
    assert candle.high == 12
    assert candle.low == 10


def test_ingest_batch_last_bar_in_current_bucket_stays_open(aggregator):
    bars = [
        {"time": BASE - 60, "open": 1, "high": 1, "low": 1, "close": 1},
        {"time": BASE, "open": 1, "high": 2, "low": 1, "close": 2},
    ]
    aggregator.ingest_batch(bars, now=BASE + 30)

    assert [c.time for c in aggregator.closed_candles] == [BASE - 60]
    assert aggregator.open_candle.time == BASE

    aggregator.ingest_tick(3, BASE + 40)
    assert aggregator.open_candle.high == 3


def test_ingest_batch_keeps_only_the_window(clock):
    aggregator = CandleAggregator(interval_seconds=60, period=2, clock=clock)
    bars = [{"time": BASE + i * 60, "open": i, "high": i, "low": i, "close": i} for i in range(1, 6)]
    assert aggregator.ingest_batch(bars, now=BASE + 10_000) == 5
    assert [c.close for c in aggregator.closed_candles] == [4, 5]


def test_tick_after_sealed_window_without_open_candle_is_dropped(aggregator):
    aggregator.ingest_batch(
        [{"time": BASE, "open": 1, "high": 1, "low": 1, "close": 1}], now=BASE + 10_000,
    )
    assert aggregator.ingest_tick(2, BASE + 10) is None
    assert aggregator.dropped_count == 1
    assert aggregator.open_candle is None


def test_reset_clears_state(aggregator):
    aggregator.ingest_tick(100, BASE + 1)
    aggregator.reset()
    assert aggregator.series() == []
    assert aggregator.last_tick_price is None


@pytest.mark.parametrize("interval, period", [(0, 10), (60, 0), (-60, 10)])
def test_invalid_construction(interval, period):
    with pytest.raises(ConfigurationError):
        CandleAggregator(interval_seconds=interval, period=period)


def test_no_nan_ever_reaches_the_series(aggregator):
    aggregator.ingest_tick(100, BASE + 1, volume=float("nan"))
    aggregator.ingest_tick(float("inf"), BASE + 2)
    for c in aggregator.series():
        assert all(math.isfinite(v) for v in (c.open, c.high, c.low, c.close, c.volume))


def test_last_tick_records_accepted_tick(aggregator):
    aggregator.ingest_tick(100, (BASE + 7) * 1000, volume=2)
    aggregator.ingest_tick(float("nan"), BASE + 8)
    tick = aggregator.last_tick
    assert (tick.epoch, tick.price, tick.volume) == (BASE + 7, 100, 2)


def test_sealing_without_open_candle_raises(aggregator):
    with pytest.raises(RuntimeError):
        aggregator._seal()
    assert aggregator.closed_candles == []
