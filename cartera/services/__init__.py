"""
Servicios de dominio de la gestión de cartera.

Cada área de negocio vive en su propio paquete y expone un servicio con
operaciones de clase que retornan ResultadoOperacion:

    from cartera.services.cobranza import CobranzaService
    from cartera.services.gerencia import GerenciaService
"""

from .base import BaseService, ResultadoOperacion, ResultadoValidacion

__all__ = [
    'BaseService',
    'ResultadoOperacion',
    'ResultadoValidacion',
]
