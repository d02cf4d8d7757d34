"""
ChartPulse – Event Bus de snapshots
====================================
Reparte lo que produce la sesión de gráfico (snapshots completos y velas
selladas) entre quienes lo consumen, sin que la sesión conozca a ninguno.

  ChartSession ──publish("chart_snapshot")──▸ cola WS snapshots
               ──publish("candle_sealed")───▸ cola WS velas, cola de tests

CADA CONSUMIDOR = UNA COLA ACOTADA:
- Un snapshot reemplaza por completo al anterior, así que para un cliente
  lento solo importa el más reciente. Con la cola llena se descarta el
  elemento más viejo de ESA cola y se cuenta por consumidor.
- publish() nunca espera a un consumidor: el timer live no se retrasa.

Todo corre en el mismo event loop; el lock solo ordena altas y bajas.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chartpulse.shared.logging.logger import get_logger

logger = get_logger("event_bus")

# Tópicos publicados por la sesión de gráfico
CHART_SNAPSHOT_TOPIC = "chart_snapshot"
CANDLE_SEALED_TOPIC = "candle_sealed"


@dataclass
class _Subscription:
    consumer: str
    queue: asyncio.Queue
    dropped: int = 0


@dataclass
class _Topic:
    subscriptions: List[_Subscription] = field(default_factory=list)
    published: int = 0


class EventBus:
    """Fan-out por tópico hacia colas asyncio acotadas (drop-oldest)."""

    def __init__(self, max_queue_size: int = 10_000) -> None:
        self._max_queue_size = max_queue_size
        self._topics: Dict[str, _Topic] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, topic: str, consumer_name: str) -> asyncio.Queue:
        """Dar de alta un consumidor y devolverle su cola propia."""
        async with self._lock:
            queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
            entry = self._topics.setdefault(topic, _Topic())
            entry.subscriptions.append(_Subscription(consumer_name, queue))
            logger.info(
                "'%s' escucha '%s' (cola máx. %d)", consumer_name, topic, self._max_queue_size,
            )
            return queue

    async def publish(self, topic: str, data: Any) -> None:
        entry = self._topics.get(topic)
        if entry is None:
            return
        entry.published += 1
        for sub in entry.subscriptions:
            if sub.queue.full():
                # El consumidor va atrasado: se pierde su elemento más viejo
                sub.queue.get_nowait()
                sub.dropped += 1
                logger.warning(
                    "'%s' atrasado en '%s': descartado el más antiguo (total %d)",
                    sub.consumer,
                    topic,
                    sub.dropped,
                )
            sub.queue.put_nowait(data)

    async def unsubscribe_all(self, topic: Optional[str] = None) -> None:
        """Dar de baja los consumidores de un tópico, o de todos al shutdown."""
        async with self._lock:
            if topic is None:
                self._topics.clear()
                logger.info("Event bus vaciado")
            elif self._topics.pop(topic, None) is not None:
                logger.info("Consumidores de '%s' dados de baja", topic)

    @property
    def subscriber_count(self) -> int:
        return sum(len(t.subscriptions) for t in self._topics.values())

    @property
    def dropped_count(self) -> int:
        return sum(s.dropped for t in self._topics.values() for s in t.subscriptions)

    @property
    def stats(self) -> dict:
        return {
            name: {
                "published": entry.published,
                "consumers": {s.consumer: s.dropped for s in entry.subscriptions},
            }
            for name, entry in self._topics.items()
        }
