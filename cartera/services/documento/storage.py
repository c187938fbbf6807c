"""
Rutas y operaciones de almacenamiento de documentos.

Los archivos se guardan en ``default_storage`` bajo un prefijo por bucket:

    {bucket}/temp/{usuario}/{sesion}/{ms}-{nombre}   carga temporal
    {bucket}/{entidad}/{ms}-{nombre}                 ruta final

La carga temporal permite subir documentos antes de que exista la entidad
(p. ej. durante el alta de una póliza). Al guardar la entidad los archivos
se mueven a su ruta final.
"""

import logging
import re
import time
import unicodedata
from datetime import timedelta

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone


logger = logging.getLogger(__name__)


BUCKETS = ('polizas-documentos', 'clientes-documentos', 'siniestros-documentos')

PREFIJO_TEMPORAL = 'temp'


def sanitizar_nombre_archivo(nombre: str) -> str:
    """'Póliza Nº 12 (firmada).pdf' -> 'poliza_n_12_firmada.pdf'"""
    texto = unicodedata.normalize('NFD', nombre)
    texto = ''.join(c for c in texto if not unicodedata.combining(c))
    texto = re.sub(r'\s+', '_', texto)
    texto = re.sub(r'[^a-zA-Z0-9._-]', '', texto)
    texto = re.sub(r'_+', '_', texto)
    return texto.lower()


def _marca_tiempo() -> int:
    return int(time.time() * 1000)


def ruta_temporal(usuario_id, sesion_id, nombre: str) -> str:
    return f"{PREFIJO_TEMPORAL}/{usuario_id}/{sesion_id}/{_marca_tiempo()}-{sanitizar_nombre_archivo(nombre)}"


def ruta_final(entidad_id, nombre: str) -> str:
    return f"{entidad_id}/{_marca_tiempo()}-{sanitizar_nombre_archivo(nombre)}"


def clave(bucket: str, ruta: str) -> str:
    """Nombre del archivo dentro de default_storage."""
    return f"{bucket}/{ruta}"


def guardar(bucket: str, ruta: str, archivo) -> str:
    """Guarda el archivo y retorna la ruta relativa al bucket efectivamente usada."""
    if hasattr(archivo, 'seek'):
        archivo.seek(0)
    nombre = default_storage.save(clave(bucket, ruta), archivo)
    return nombre[len(bucket) + 1:]


def mover_a_final(bucket: str, ruta_origen: str, entidad_id, nombre: str) -> str:
    """
    Copia el archivo temporal a su ruta final y elimina el temporal.

    Si la copia falla se conserva la ruta temporal. Si solo falla la
    eliminación del temporal, el archivo final queda en uso y el temporal
    lo purga ``limpiar_temporales``.
    """
    destino = ruta_final(entidad_id, nombre)
    try:
        with default_storage.open(clave(bucket, ruta_origen), 'rb') as origen:
            destino = guardar(bucket, destino, ContentFile(origen.read()))
    except Exception as e:
        logger.error(f"No se pudo mover {ruta_origen} a su ruta final, se conserva la ruta temporal: {e}")
        return ruta_origen

    try:
        default_storage.delete(clave(bucket, ruta_origen))
    except Exception as e:
        logger.warning(f"No se pudo eliminar el archivo temporal {ruta_origen}: {e}")
    return destino


def eliminar(bucket: str, ruta: str) -> None:
    default_storage.delete(clave(bucket, ruta))


def _recorrer(directorio: str):
    """Genera las rutas de todos los archivos bajo ``directorio``."""
    try:
        subdirectorios, archivos = default_storage.listdir(directorio)
    except FileNotFoundError:
        return
    for archivo in archivos:
        yield f"{directorio}/{archivo}"
    for subdirectorio in subdirectorios:
        yield from _recorrer(f"{directorio}/{subdirectorio}")


def limpiar_temporales(horas: int) -> int:
    """Elimina los archivos temporales con más de ``horas`` de antigüedad. Retorna cuántos eliminó."""
    limite = timezone.now() - timedelta(hours=horas)
    eliminados = 0
    for bucket in BUCKETS:
        for nombre in list(_recorrer(f"{bucket}/{PREFIJO_TEMPORAL}")):
            try:
                if default_storage.get_modified_time(nombre) < limite:
                    default_storage.delete(nombre)
                    eliminados += 1
            except Exception as e:
                logger.warning(f"No se pudo evaluar el temporal {nombre}: {e}")
    return eliminados
