"""Logging transversal."""
