"""
ChartPulse – API Routes (FastAPI)
===================================
Endpoints REST y WebSocket para el renderer.

Endpoints disponibles:
  WS     /ws/chart                       → snapshots en tiempo real
  GET    /api/health                     → health check
  GET    /api/status                     → estado completo del sistema
  GET    /api/chart                      → snapshot actual
  GET    /api/indicators/catalog         → tipos de indicador disponibles
  GET    /api/indicators                 → indicadores seleccionados
  POST   /api/indicators                 → seleccionar un indicador
  PUT    /api/indicators/{instance_id}   → cambiar parámetros
  DELETE /api/indicators/{instance_id}   → quitar un indicador
  GET    /api/interval                   → intervalo activo y disponibles
  POST   /api/interval                   → cambiar intervalo
  POST   /api/live/toggle                → alternar sesión live
  POST   /api/ticks                      → inyectar ticks
  POST   /api/bars                       → carga batch de barras
  POST   /api/signals                    → reemplazar marcadores de señales

Los ConfigurationError se traducen a HTTP en main.py (400 / 404).
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chartpulse import __version__
from chartpulse.application.use_cases.chart_session_usecase import ChartSessionUseCase
from chartpulse.application.use_cases.live_session import LiveSessionController
from chartpulse.domain.value_objects.indicator_config import INDICATOR_CATALOG
from chartpulse.domain.value_objects.interval import INTERVAL_SECONDS
from chartpulse.infrastructure.external.event_bus import CHART_SNAPSHOT_TOPIC, EventBus
from chartpulse.presentation.api.schemas import (
    BarsRequest,
    IndicatorRequest,
    IndicatorUpdateRequest,
    IntervalRequest,
    SignalsRequest,
    TicksRequest,
)
from chartpulse.presentation.websocket.websocket_manager import WebSocketManager
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# Referencias a componentes inyectados desde main.py
_session: Optional[ChartSessionUseCase] = None
_live: Optional[LiveSessionController] = None
_ws_manager: Optional[WebSocketManager] = None
_event_bus: Optional[EventBus] = None


def init_routes(
    session: ChartSessionUseCase,
    live: LiveSessionController,
    ws_manager: WebSocketManager,
    event_bus: EventBus,
) -> None:
    """Inyectar dependencias desde main.py al arrancar."""
    global _session, _live, _ws_manager, _event_bus
    _session = session
    _live = live
    _ws_manager = ws_manager
    _event_bus = event_bus


async def _publish() -> dict:
    """Publicar el snapshot tras una mutación y retornarlo serializado."""
    snapshot = await _session.publish_snapshot()
    return snapshot.to_dict()


# ─── WebSocket endpoint para streaming al renderer ────────────────────

@router.websocket("/ws/chart")
async def chart_stream(websocket: WebSocket) -> None:
    """
    El renderer se conecta aquí. Recibe el snapshot actual al conectar y
    después cada snapshot publicado. El broadcast lo maneja WebSocketManager;
    este handler solo gestiona el ciclo de vida de la conexión.
    """
    if _ws_manager is None or _session is None:
        await websocket.close(code=1011, reason="Server not ready")
        return

    await _ws_manager.connect(websocket)
    try:
        await _ws_manager.send_to(websocket, CHART_SNAPSHOT_TOPIC, _session.snapshot())
        while True:
            data = await websocket.receive_text()
            logger.debug("Mensaje de cliente WS: %s", data[:100])
    except WebSocketDisconnect:
        pass
    finally:
        _ws_manager.disconnect(websocket)


# ─── Estado ───────────────────────────────────────────────────────────

@router.get("/api/health")
async def health_check() -> dict:
    """Health check para monitoreo."""
    return {"status": "ok", "service": "chartpulse", "version": __version__}


@router.get("/api/status")
async def system_status() -> dict:
    return {
        "chart": _session.stats if _session else {},
        "live": _live.stats if _live else {},
        "ws": _ws_manager.stats if _ws_manager else {},
        "event_bus": {
            "subscribers": _event_bus.subscriber_count,
            "dropped": _event_bus.dropped_count,
            "topics": _event_bus.stats,
        } if _event_bus else {},
    }


@router.get("/api/chart")
async def get_chart() -> dict:
    """Snapshot completo: velas, volumen, trazas, marcadores y cambio."""
    return _session.snapshot().to_dict()


# ─── Indicadores ──────────────────────────────────────────────────────

@router.get("/api/indicators/catalog")
async def indicator_catalog() -> dict:
    return {"indicators": INDICATOR_CATALOG}


@router.get("/api/indicators")
async def list_indicators() -> dict:
    return {"indicators": _session.indicators.registry.snapshot()}


@router.post("/api/indicators")
async def add_indicator(body: IndicatorRequest) -> dict:
    instance_id = _session.on_indicator_added(body.id, body.config)
    entry = _session.indicators.registry.get(instance_id)
    return {"indicator": entry.to_dict(), "chart": await _publish()}


@router.put("/api/indicators/{instance_id}")
async def update_indicator(instance_id: str, body: IndicatorUpdateRequest) -> dict:
    _session.on_indicator_updated(instance_id, body.config)
    entry = _session.indicators.registry.get(instance_id)
    return {"indicator": entry.to_dict(), "chart": await _publish()}


@router.delete("/api/indicators/{instance_id}")
async def remove_indicator(instance_id: str) -> dict:
    removed = _session.on_indicator_removed(instance_id)
    return {"removed": removed, "chart": await _publish()}


# ─── Intervalo y sesión live ──────────────────────────────────────────

@router.get("/api/interval")
async def get_interval() -> dict:
    return {"interval": _session.interval, "available": list(INTERVAL_SECONDS)}


@router.post("/api/interval")
async def set_interval(body: IntervalRequest) -> dict:
    """Cambiar intervalo: la ventana se reinicia (y se re-siembra si aplica)."""
    loaded = _session.on_interval_changed(body.interval)
    return {"interval": _session.interval, "loaded": loaded, "chart": await _publish()}


@router.post("/api/live/toggle")
async def toggle_live() -> dict:
    state = _live.toggle()
    return {"state": state.value, "is_live": _live.is_live}


# ─── Ingesta ──────────────────────────────────────────────────────────

@router.post("/api/ticks")
async def push_ticks(body: TicksRequest) -> dict:
    sealed = 0
    for tick in body.ticks:
        if _session.on_tick_arrived(tick.price, tick.time, tick.volume) is not None:
            sealed += 1
    return {"accepted": len(body.ticks), "sealed": sealed, "chart": await _publish()}


@router.post("/api/bars")
async def load_bars(body: BarsRequest) -> dict:
    loaded = _session.on_bars_loaded([bar.model_dump() for bar in body.bars])
    return {"loaded": loaded, "chart": await _publish()}


@router.post("/api/signals")
async def push_signals(body: SignalsRequest) -> dict:
    count = _session.on_signals_received([s.model_dump() for s in body.signals])
    return {"markers": count, "chart": await _publish()}
