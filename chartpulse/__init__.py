"""ChartPulse – motor de agregación de velas e indicadores en tiempo real."""

__version__ = "0.1.0"
