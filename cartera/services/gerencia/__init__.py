from .service import GerenciaService

__all__ = ['GerenciaService']
