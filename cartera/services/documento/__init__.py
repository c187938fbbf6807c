from .service import DocumentoService, ENTIDADES
from .storage import sanitizar_nombre_archivo, ruta_final, ruta_temporal

__all__ = ['DocumentoService', 'ENTIDADES', 'sanitizar_nombre_archivo', 'ruta_final', 'ruta_temporal']
