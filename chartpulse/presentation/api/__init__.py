"""Rutas HTTP/WS y schemas de request."""
