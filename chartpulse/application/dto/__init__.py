"""Data Transfer Objects hacia la frontera de render."""
