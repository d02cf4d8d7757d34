"""Broadcast WebSocket."""
