"""
ChartPulse – Presentation Layer
=================================
API HTTP y WebSocket.

Este módulo contiene:
- api/: FastAPI routes y schemas
- websocket/: broadcast de snapshots al renderer

REGLA DE DEPENDENCIA:
Esta capa SOLO llama a use cases de application/.
"""
