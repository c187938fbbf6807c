from .service import ClienteService

__all__ = ['ClienteService']
