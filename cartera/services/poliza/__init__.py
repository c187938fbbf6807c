from .service import PolizaService

__all__ = ['PolizaService']
