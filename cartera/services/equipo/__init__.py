from .service import EquipoService

__all__ = ['EquipoService']
