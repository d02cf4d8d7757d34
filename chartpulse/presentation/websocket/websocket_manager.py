"""
ChartPulse – WebSocket Manager (broadcast a clientes)
=======================================================
Gestiona las conexiones WebSocket del renderer y les envía cada snapshot
publicado por la sesión de gráfico.

ARQUITECTURA:
  EventBus ──(chart_snapshot)──▸ WSManager._broadcast_loop()
  EventBus ──(candle_sealed)───▸ WSManager._broadcast_loop()
       │
       ▼
  [Cliente WS 1, Cliente WS 2, ...]

NO BLOQUEA EL LOOP PRINCIPAL:
- El broadcast corre como task independiente por tópico.
- Si un cliente se desconecta, se elimina sin afectar a los demás.
- El envío a cada cliente usa asyncio.wait_for con timeout para que un
  cliente lento no congele el broadcast.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Set

from fastapi import WebSocket, WebSocketDisconnect

from chartpulse.infrastructure.external.event_bus import (
    CANDLE_SEALED_TOPIC,
    CHART_SNAPSHOT_TOPIC,
    EventBus,
)
from chartpulse.shared.logging.logger import get_logger

logger = get_logger("ws_manager")

SEND_TIMEOUT_SECONDS = 5.0


def _serialize(event_type: str, data: Any) -> str:
    # to_dict() si el objeto lo tiene (ChartSnapshot, CandleSealed), dict directo si no
    if hasattr(data, "to_dict"):
        payload_data = data.to_dict()
    elif isinstance(data, dict):
        payload_data = data
    else:
        payload_data = str(data)
    return json.dumps({"type": event_type, "data": payload_data})


class WebSocketManager:
    """Gestiona conexiones del renderer y broadcast de snapshots."""

    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus
        self._clients: Set[WebSocket] = set()
        self._broadcast_tasks: list[asyncio.Task] = []
        self._sent = 0

    async def start(self) -> None:
        """Lanzar un loop de broadcast por tópico."""
        snapshot_queue = await self._event_bus.subscribe(
            CHART_SNAPSHOT_TOPIC, "ws_broadcast_snapshot"
        )
        sealed_queue = await self._event_bus.subscribe(
            CANDLE_SEALED_TOPIC, "ws_broadcast_candle_sealed"
        )
        self._broadcast_tasks = [
            asyncio.create_task(
                self._broadcast_loop(snapshot_queue, CHART_SNAPSHOT_TOPIC),
                name="ws-broadcast-snapshot",
            ),
            asyncio.create_task(
                self._broadcast_loop(sealed_queue, CANDLE_SEALED_TOPIC),
                name="ws-broadcast-candle-sealed",
            ),
        ]
        logger.info("WebSocketManager iniciado – broadcast de chart_snapshot y candle_sealed")

    async def stop(self) -> None:
        """Cancelar broadcast y cerrar todos los clientes."""
        for task in self._broadcast_tasks:
            task.cancel()
        if self._broadcast_tasks:
            await asyncio.gather(*self._broadcast_tasks, return_exceptions=True)
        self._broadcast_tasks = []

        for ws in list(self._clients):
            try:
                await ws.close()
            except Exception as e:
                logger.debug("Error cerrando cliente WS: %s", e)
        self._clients.clear()
        logger.info("WebSocketManager detenido")

    async def connect(self, websocket: WebSocket) -> None:
        """Registrar un nuevo cliente WebSocket."""
        await websocket.accept()
        self._clients.add(websocket)
        logger.info("Cliente WS conectado. Total: %d", len(self._clients))

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients.discard(websocket)
        logger.info("Cliente WS desconectado. Total: %d", len(self._clients))

    async def send_to(self, websocket: WebSocket, event_type: str, data: Any) -> None:
        """Envío directo a un cliente (p.ej. snapshot inicial al conectar)."""
        await websocket.send_text(_serialize(event_type, data))

    async def _broadcast_loop(self, queue: asyncio.Queue, event_type: str) -> None:
        """Consumir eventos de la Queue y enviarlos a todos los clientes."""
        try:
            while True:
                data = await queue.get()
                if not self._clients:
                    continue

                try:
                    payload = _serialize(event_type, data)
                except (TypeError, ValueError) as e:
                    logger.error("Evento '%s' no serializable: %s", event_type, e, exc_info=True)
                    continue

                disconnected: list[WebSocket] = []
                await asyncio.gather(*(
                    self._safe_send(ws, payload, disconnected) for ws in list(self._clients)
                ))
                for ws in disconnected:
                    self._clients.discard(ws)
                self._sent += 1
        except asyncio.CancelledError:
            logger.debug("Broadcast loop '%s' cancelado", event_type)

    async def _safe_send(self, ws: WebSocket, payload: str, disconnected: list[WebSocket]) -> None:
        """Enviar con timeout; si falla, marcar el cliente para limpieza."""
        try:
            await asyncio.wait_for(ws.send_text(payload), timeout=SEND_TIMEOUT_SECONDS)
        except (WebSocketDisconnect, asyncio.TimeoutError, RuntimeError) as e:
            logger.debug("Cliente WS descartado en broadcast: %s", e)
            disconnected.append(ws)

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def stats(self) -> dict:
        return {"clients": len(self._clients), "broadcasts": self._sent}
