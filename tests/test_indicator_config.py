import pytest

from chartpulse.domain.exceptions.domain_errors import ConfigurationError
from chartpulse.domain.value_objects.indicator_config import (
    DEFAULT_COLORS,
    INDICATOR_CATALOG,
    BollingerParams,
    IndicatorConfig,
    IndicatorKind,
    MACDParams,
    SMAParams,
)


def test_parse_is_case_insensitive():
    assert IndicatorKind.parse("RSI") is IndicatorKind.RSI


def test_parse_unknown_kind_raises():
    with pytest.raises(ConfigurationError) as exc:
        IndicatorKind.parse("ichimoku")
    assert exc.value.field == "id"


def test_from_request_uses_defaults_and_color():
    config = IndicatorConfig.from_request("sma")
    assert config.params == SMAParams(period=20)
    assert config.color == DEFAULT_COLORS[IndicatorKind.SMA]


def test_from_request_accepts_camel_case_and_color():
    config = IndicatorConfig.from_request("bollinger", {"period": 10, "stdDev": 2.5, "color": "#fff"})
    assert config.params == BollingerParams(period=10, std_dev=2.5)
    assert config.color == "#fff"


def test_from_request_applies_overrides_over_per_kind_defaults():
    defaults = {IndicatorKind.MACD: MACDParams(fast_period=5, slow_period=35, signal_period=5)}
    config = IndicatorConfig.from_request("macd", {"signalPeriod": 7}, defaults)
    assert config.params == MACDParams(fast_period=5, slow_period=35, signal_period=7)


def test_integral_floats_are_accepted():
    assert IndicatorConfig.from_request("rsi", {"period": 14.0}).params.period == 14


@pytest.mark.parametrize("indicator_id, overrides", [
    ("sma", {"period": 0}),
    ("ema", {"period": -3}),
    ("rsi", {"period": 2.5}),
    ("rsi", {"period": True}),
    ("rsi", {"period": "14"}),
    ("bollinger", {"std_dev": 0}),
    ("bollinger", {"stdDev": float("nan")}),
    ("bollinger", {"std_dev": float("inf")}),
    ("macd", {"fast_period": 26, "slow_period": 12}),
    ("macd", {"fastPeriod": 26}),
    ("stochastic", {"smooth_k": 0}),
    ("sma", {"length": 5}),
])
def test_invalid_parameters_raise(indicator_id, overrides):
    with pytest.raises(ConfigurationError):
        IndicatorConfig.from_request(indicator_id, overrides)


def test_with_overrides_revalidates_and_keeps_kind():
    config = IndicatorConfig.from_request("stochastic")
    updated = config.with_overrides({"smoothK": 5})
    assert updated.kind is IndicatorKind.STOCHASTIC
    assert updated.params.smooth_k == 5
    assert updated.color == config.color

    with pytest.raises(ConfigurationError):
        config.with_overrides({"period": -1})


def test_params_must_match_kind():
    with pytest.raises(ConfigurationError):
        IndicatorConfig(kind=IndicatorKind.RSI, params=SMAParams(), color="#000")


def test_to_dict_shape():
    assert IndicatorConfig.from_request("ema", {"period": 9}).to_dict() == {
        "id": "ema",
        "params": {"period": 9},
        "color": DEFAULT_COLORS[IndicatorKind.EMA],
    }


def test_catalog_covers_every_kind():
    assert {item["id"] for item in INDICATOR_CATALOG} == {k.value for k in IndicatorKind}
