import pytest
from fastapi.testclient import TestClient

from chartpulse.container import Container
from chartpulse.main import create_app
from tests.conftest import BASE


@pytest.fixture
def container(test_settings, clock):
    return Container(settings=test_settings, clock=clock)


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as client:
        yield client


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_catalog(client):
    ids = [item["id"] for item in client.get("/api/indicators/catalog").json()["indicators"]]
    assert ids == ["sma", "ema", "bollinger", "macd", "rsi", "stochastic", "volume"]


def test_indicator_lifecycle(client):
    response = client.post("/api/indicators", json={"id": "sma", "config": {"period": 5}})
    assert response.status_code == 200
    body = response.json()
    assert body["indicator"]["instance_id"] == "sma-1"
    assert body["indicator"]["params"] == {"period": 5}

    response = client.put("/api/indicators/sma-1", json={"config": {"period": 8}})
    assert response.json()["indicator"]["params"] == {"period": 8}

    listed = client.get("/api/indicators").json()["indicators"]
    assert [i["instance_id"] for i in listed] == ["sma-1"]

    assert client.delete("/api/indicators/sma-1").json()["removed"] == "sma-1"
    assert client.delete("/api/indicators/sma-1").status_code == 404


@pytest.mark.parametrize("payload", [
    {"id": "ichimoku"},
    {"id": "sma", "config": {"period": 0}},
    {"id": "macd", "config": {"fastPeriod": 30, "slowPeriod": 10}},
])
def test_invalid_indicator_is_400(client, payload):
    response = client.post("/api/indicators", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "CONFIGURATION_ERROR"


def test_non_finite_std_dev_is_400(client):
    response = client.post(
        "/api/indicators",
        content='{"id": "bollinger", "config": {"stdDev": NaN}}',
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["field"] == "std_dev"
    assert client.get("/api/indicators").json()["indicators"] == []


def test_update_unknown_instance_is_404(client):
    response = client.put("/api/indicators/rsi-7", json={"config": {"period": 3}})
    assert response.status_code == 404
    assert response.json()["field"] == "instance_id"


def test_ticks_build_candles(client):
    ticks = [
        {"price": 100, "time": BASE + 1, "volume": 1},
        {"price": 105, "time": BASE + 10},
        {"price": 98, "time": BASE + 61},
        {"price": 99, "time": "not-a-time"},
    ]
    body = client.post("/api/ticks", json={"ticks": ticks}).json()
    assert body["sealed"] == 1

    chart = client.get("/api/chart").json()
    assert [c["time"] for c in chart["candles"]] == [BASE, BASE + 60]
    assert chart["last_price"] == 98


def test_malformed_body_is_422(client):
    assert client.post("/api/ticks", json={"ticks": [{"time": BASE}]}).status_code == 422


def test_bars_and_traces(client):
    bars = [
        {"time": BASE - (30 - i) * 60, "open": 100 + i, "high": 101 + i, "low": 99 + i, "close": 100.5 + i}
        for i in range(30)
    ]
    assert client.post("/api/bars", json={"bars": bars}).json()["loaded"] == 30

    chart = client.post("/api/indicators", json={"id": "rsi"}).json()["chart"]
    rsi = next(t for t in chart["traces"] if t["id"] == "rsi-1:rsi")
    assert rsi["paneIndex"] == 2
    assert len(rsi["data"]) == 30 - 14


def test_interval(client):
    assert client.get("/api/interval").json()["interval"] == "1m"
    assert client.post("/api/interval", json={"interval": "7m"}).status_code == 400

    body = client.post("/api/interval", json={"interval": "5m"}).json()
    assert body["interval"] == "5m"
    assert body["chart"]["interval"] == "5m"


def test_signals(client):
    signals = [
        {"time": BASE, "type": "buy"},
        {"time": BASE, "type": "sell", "label": "exit"},
    ]
    body = client.post("/api/signals", json={"signals": signals}).json()
    assert body["markers"] == 1
    assert body["chart"]["markers"][0]["text"] == "exit"


def test_live_toggle(client):
    assert client.post("/api/live/toggle").json()["state"] == "live"
    assert client.get("/api/status").json()["live"]["state"] == "live"
    assert client.post("/api/live/toggle").json()["state"] == "stopped"


def test_websocket_receives_snapshots(client):
    with client.websocket_connect("/ws/chart") as ws:
        first = ws.receive_json()
        assert first["type"] == "chart_snapshot"
        assert first["data"]["interval"] == "1m"

        client.post("/api/ticks", json={"ticks": [{"price": 100, "time": BASE + 1}]})
        update = ws.receive_json()
        assert update["type"] == "chart_snapshot"
        assert update["data"]["last_price"] == 100


def test_seed_history_on_startup(test_settings, clock):
    cfg = test_settings.model_copy(update={"seed_history": True})
    with TestClient(create_app(Container(settings=cfg, clock=clock))) as client:
        candles = client.get("/api/chart").json()["candles"]
    assert len(candles) == cfg.window_period
