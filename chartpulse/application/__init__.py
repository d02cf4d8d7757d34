"""
ChartPulse – Application Layer
================================
Casos de uso, servicios de aplicación, estado en memoria y puertos.

REGLA DE DEPENDENCIA:
Esta capa depende de domain/ y de abstracciones (ports/);
las implementaciones concretas se inyectan desde el Container.
"""
