import pytest

from chartpulse.application.dto.chart_dto import FIRST_OSCILLATOR_PANE, PRICE_PANE, VOLUME_PANE
from chartpulse.application.services.indicator_service import (
    IndicatorService,
    default_params,
    histogram_color,
)
from chartpulse.application.state.indicator_registry import IndicatorRegistry
from chartpulse.domain.exceptions.domain_errors import ConfigurationError, UnknownIndicatorError
from chartpulse.domain.value_objects.indicator_config import IndicatorConfig
from chartpulse.shared.config.settings import Settings
from tests.conftest import make_candles


@pytest.fixture
def service():
    return IndicatorService(IndicatorRegistry())


@pytest.fixture
def candles(rng):
    closes = [100 + rng.uniform(-5, 5) for _ in range(60)]
    return make_candles(closes, [c + 1 for c in closes], [c - 1 for c in closes])


# ─── Registro ───────────────────────────────────────────────────────────

def test_instance_ids_are_per_kind_and_not_reused(service):
    assert service.add("sma").instance_id == "sma-1"
    assert service.add("sma", {"period": 50}).instance_id == "sma-2"
    assert service.add("ema").instance_id == "ema-1"
    service.remove("sma-2")
    assert service.add("sma").instance_id == "sma-3"
    assert [e.instance_id for e in service.registry.entries()] == ["sma-1", "ema-1", "sma-3"]


def test_unknown_instance_raises(service):
    with pytest.raises(UnknownIndicatorError):
        service.remove("sma-9")
    with pytest.raises(UnknownIndicatorError):
        service.update("rsi-1", {"period": 3})


def test_registry_rejects_kind_change():
    registry = IndicatorRegistry()
    entry = registry.create(IndicatorConfig.from_request("sma"))
    with pytest.raises(ConfigurationError):
        registry.update(entry.instance_id, IndicatorConfig.from_request("ema"))


def test_invalid_add_leaves_registry_untouched(service):
    with pytest.raises(ConfigurationError):
        service.add("sma", {"period": 0})
    assert len(service.registry) == 0


def test_update_changes_params(service):
    service.add("rsi")
    entry = service.update("rsi-1", {"period": 7})
    assert entry.config.params.period == 7
    assert service.registry.snapshot()[0]["params"] == {"period": 7}


def test_defaults_come_from_settings():
    service = IndicatorService(
        IndicatorRegistry(), defaults=default_params(Settings(sma_period=5, rsi_period=9)),
    )
    assert service.add("sma").config.params.period == 5
    assert service.add("rsi").config.params.period == 9


# ─── Trazas ─────────────────────────────────────────────────────────────

def test_panes_are_assigned_by_kind(service, candles):
    for kind in ("sma", "rsi", "volume", "macd", "bollinger"):
        service.add(kind)

    panes = {t.id: t.pane_index for t in service.build_traces(candles)}

    assert panes["sma-1:sma"] == PRICE_PANE
    assert panes["bollinger-1:upper"] == PRICE_PANE
    assert panes["volume-1:volume"] == VOLUME_PANE
    assert panes["rsi-1:rsi"] == FIRST_OSCILLATOR_PANE
    assert panes["macd-1:macd"] == panes["macd-1:signal"] == panes["macd-1:histogram"] == FIRST_OSCILLATOR_PANE + 1


def test_trace_data_is_sorted_and_unique(service, candles):
    for kind in ("sma", "ema", "bollinger", "macd", "rsi", "stochastic", "volume"):
        service.add(kind)

    for trace in service.build_traces(candles):
        times = [p["time"] for p in trace.data]
        assert times == sorted(set(times)), trace.id
        assert all(p["value"] is not None for p in trace.data)


def test_macd_histogram_points_are_colored(service, candles):
    service.add("macd", {"fast_period": 3, "slow_period": 6, "signal_period": 3})
    histogram = next(t for t in service.build_traces(candles) if t.id == "macd-1:histogram")
    assert histogram.type == "histogram"
    assert histogram.data
    for point in histogram.data:
        assert point["color"] == histogram_color(point["value"])


def test_trace_serialization(service, candles):
    service.add("ema", {"period": 9, "color": "#123456"})
    trace = service.build_traces(candles)[0].to_dict()
    assert trace["id"] == "ema-1:ema"
    assert trace["name"] == "EMA 9"
    assert trace["paneIndex"] == PRICE_PANE
    assert trace["options"]["color"] == "#123456"


def test_empty_window_produces_empty_traces(service):
    service.add("stochastic")
    service.add("macd")
    assert all(t.data == [] for t in service.build_traces([]))


@pytest.mark.parametrize("value, color", [
    (0.1, "#22c55e"), (0.01, "#86efac"), (0.0, "#86efac"), (-0.01, "#fca5a5"), (-0.1, "#ef4444"),
])
def test_histogram_color(value, color):
    assert histogram_color(value) == color
