"""Configuración centralizada."""
