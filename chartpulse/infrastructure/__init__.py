"""
ChartPulse – Infrastructure Layer
===================================
Implementaciones concretas de los ports de la aplicación:
- external/: EventBus (asyncio.Queue fan-out)
- simulation/: fuente de precios random-walk e histórico sintético
"""
