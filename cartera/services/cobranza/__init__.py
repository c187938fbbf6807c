from .service import CobranzaService, MENSAJE_SIN_ACCESO

__all__ = ['CobranzaService', 'MENSAJE_SIN_ACCESO']
