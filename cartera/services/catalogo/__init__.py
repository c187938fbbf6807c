from .service import MENSAJE_SIN_PERMISO, CatalogoService

__all__ = ['CatalogoService', 'MENSAJE_SIN_PERMISO']
