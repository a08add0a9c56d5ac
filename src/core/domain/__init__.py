"""Modelos, enumeraciones y errores del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2) de la
  suscripción y sus secciones.
- El dominio no conoce HTTP, CLI ni la planificación de asyncio.
"""
