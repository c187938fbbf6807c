from .service import MENSAJE_SIN_ACCESO, MOTIVOS_DECLINACION, MOTIVOS_RECHAZO, SiniestroService

__all__ = ['SiniestroService', 'MENSAJE_SIN_ACCESO', 'MOTIVOS_RECHAZO', 'MOTIVOS_DECLINACION']
