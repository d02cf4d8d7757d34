"""Simulación de datos de mercado."""
