"""
ChartPulse – Main Application Entry Point
===========================================
Orquesta los componentes: sesión de gráfico + indicadores + sesión live +
broadcast WebSocket.

ARQUITECTURA DE ARRANQUE:
  1. Configurar logging
  2. Crear el contenedor (Event Bus, ChartSession, LiveSession, WS Manager)
  3. FastAPI lifespan startup:
     a. Sembrar la ventana con histórico sintético (si seed_history)
     b. Inyectar dependencias al router
     c. Iniciar WebSocketManager (broadcast al renderer)
  4. FastAPI lifespan shutdown:
     a. Detener todo en orden inverso

FLUJO DE DATOS:
  LiveSession (timers) → ChartSession.on_tick_arrived / on_boundary_check
       → CandleAggregator → IndicatorService → ChartSnapshot
       → EventBus(chart_snapshot) → WebSocketManager → Renderer

  uvicorn chartpulse.main:app --reload --host 0.0.0.0 --port 8888
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chartpulse import __version__
from chartpulse.container import Container, init_container
from chartpulse.domain.exceptions.domain_errors import (
    ConfigurationError,
    DomainError,
    UnknownIndicatorError,
)
from chartpulse.presentation.api.routes import init_routes, router
from chartpulse.shared.config.settings import settings
from chartpulse.shared.logging.logger import get_logger, setup_logging

# ─── Logging ────────────────────────────────────────────────────────────
setup_logging(settings.log_level)
logger = get_logger("main")


def create_app(container: Optional[Container] = None) -> FastAPI:
    """Construir la aplicación FastAPI sobre un contenedor (el global por defecto)."""
    container = container or init_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle de la aplicación."""
        cfg = container.settings
        logger.info("=" * 60)
        logger.info("  ChartPulse v%s", __version__)
        logger.info("  Intervalo: %s  (ventana: %d velas)", cfg.default_interval, cfg.window_period)
        logger.info("  Live: tick=%dms, boundary=%dms", cfg.tick_interval_ms, cfg.boundary_check_ms)
        logger.info("=" * 60)

        session = container.chart_session
        if cfg.seed_history:
            bars = container.history(cfg.interval_seconds, container.clock())
            session.on_bars_loaded(bars)

        init_routes(
            session,
            container.live_session,
            container.ws_manager,
            container.event_bus,
        )
        await container.ws_manager.start()
        logger.info("✓ Todos los componentes iniciados correctamente")

        yield  # ← La app está corriendo aquí

        # ── SHUTDOWN ──
        logger.info("Iniciando shutdown...")
        await container.live_session.shutdown()
        await container.ws_manager.stop()
        await container.event_bus.unsubscribe_all()
        logger.info("✓ Shutdown completo")

    app = FastAPI(
        title="ChartPulse",
        description="Agregación de velas OHLCV en streaming e indicadores técnicos",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS para el renderer local
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        status = 400
        if isinstance(exc, UnknownIndicatorError):
            status = 404
        elif not isinstance(exc, ConfigurationError):
            status = 422
        logger.warning("%s %s → %d: %s", request.method, request.url.path, status, exc.message)
        return JSONResponse(status_code=status, content=exc.to_dict())

    app.include_router(router)
    return app


app = create_app()
