"""

Servicio de Documentos.

Responsabilidad única: ciclo de vida de los documentos asociados a pólizas,
clientes y siniestros (carga, descarte, restauración y eliminación).

"""

import logging
from typing import Any, Dict, Iterable, Optional

from django.core.exceptions import ValidationError

from cartera.validators import validar_archivo

from ..base import BaseService, ResultadoOperacion
from . import storage


logger = logging.getLogger(__name__)


ENTIDADES = {
    'poliza': 'polizas-documentos',
    'cliente': 'clientes-documentos',
    'siniestro': 'siniestros-documentos',
}


class DocumentoService(BaseService):
    """

    Servicio para gestión de Documentos.

    USO:

        from cartera.services.documento import DocumentoService

        resultado = DocumentoService.subir_temporal(request.user, session_key, archivo, 'poliza')

        ...

        DocumentoService.adjuntar_temporales(request.user, 'poliza', poliza, [

            {'ruta_temporal': resultado.objeto['ruta'], 'nombre_archivo': 'poliza.pdf',

             'tipo_documento': 'Póliza firmada', 'tamano_bytes': 1024},

        ])

    """

    @staticmethod
    def _serializar(documento) -> Dict[str, Any]:
        return {
            'id': documento.pk,
            'tipo_documento': documento.tipo_documento,
            'nombre_archivo': documento.nombre_archivo,
            'ruta_archivo': documento.ruta_archivo,
            'bucket': documento.bucket,
            'tamano_bytes': documento.tamano_bytes,
            'estado': documento.estado,
            'subido_por': documento.subido_por.username if documento.subido_por else None,
            'fecha_subida': documento.fecha_subida,
        }

    # =========================================================================
    # CARGA
    # =========================================================================

    @classmethod
    def subir_temporal(cls, usuario, sesion_id: str, archivo, entidad: str) -> ResultadoOperacion:
        """Valida el archivo y lo guarda en la ruta temporal del usuario."""
        if entidad not in ENTIDADES:
            return ResultadoOperacion.error(f"Entidad inválida: {entidad}")

        try:
            validar_archivo(archivo)
        except ValidationError as e:
            return ResultadoOperacion.fallo({'archivo': e.messages[0]}, e.messages[0])

        bucket = ENTIDADES[entidad]
        try:
            ruta = storage.guardar(bucket, storage.ruta_temporal(usuario.pk, sesion_id, archivo.name), archivo)
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al subir el archivo")

        return ResultadoOperacion.exito({
            'ruta': ruta,
            'bucket': bucket,
            'nombre_archivo': archivo.name,
            'tamano_bytes': archivo.size,
        })

    @classmethod
    def adjuntar_temporales(cls, usuario, entidad: str, objeto, documentos: Iterable[Dict[str, Any]]):
        """
        Mueve archivos temporales a la ruta final de ``objeto`` y crea sus Documento.

        Best-effort: un archivo que no se puede mover queda registrado con su
        ruta temporal. Retorna la lista de Documento creados.
        """
        from cartera.models import Documento

        bucket = ENTIDADES[entidad]
        creados = []
        for datos in documentos:
            ruta = storage.mover_a_final(bucket, datos['ruta_temporal'], objeto.pk, datos['nombre_archivo'])
            creados.append(Documento.objects.create(
                tipo_documento=datos.get('tipo_documento') or 'Otro',
                nombre_archivo=datos['nombre_archivo'],
                ruta_archivo=ruta,
                bucket=bucket,
                tamano_bytes=datos.get('tamano_bytes') or 0,
                subido_por=usuario,
                **{entidad: objeto},
            ))
        return creados

    @classmethod
    def registrar_documento(cls, usuario, entidad: str, objeto, tipo_documento: str, archivo):
        """Valida y guarda un archivo directamente en la ruta final. Lanza ValidationError si es inválido."""
        from cartera.models import Documento

        validar_archivo(archivo)
        bucket = ENTIDADES[entidad]
        ruta = storage.guardar(bucket, storage.ruta_final(objeto.pk, archivo.name), archivo)
        return Documento.objects.create(
            tipo_documento=tipo_documento,
            nombre_archivo=archivo.name,
            ruta_archivo=ruta,
            bucket=bucket,
            tamano_bytes=archivo.size,
            subido_por=usuario,
            **{entidad: objeto},
        )

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    @classmethod
    def _cambiar_estado(cls, usuario, documento_id, permiso, estado, mensaje_sin_permiso, mensaje_ok):
        from cartera.models import Documento

        denegado = cls._verificar_permiso(usuario, permiso, mensaje_sin_permiso)
        if denegado:
            return denegado

        try:
            documento = Documento.objects.get(pk=documento_id)
        except Documento.DoesNotExist:
            return ResultadoOperacion.error("Documento no encontrado")

        documento.estado = estado
        documento.save(update_fields=['estado'])
        return ResultadoOperacion.exito(documento, mensaje_ok)

    @classmethod
    def descartar_documento(cls, usuario, documento_id: int) -> ResultadoOperacion:
        return cls._cambiar_estado(
            usuario, documento_id, 'documentos.descartar', 'descartado',
            "No tiene permisos para descartar documentos", "Documento descartado",
        )

    @classmethod
    def restaurar_documento(cls, usuario, documento_id: int) -> ResultadoOperacion:
        return cls._cambiar_estado(
            usuario, documento_id, 'documentos.restaurar', 'activo',
            "No tiene permisos para restaurar documentos", "Documento restaurado",
        )

    @classmethod
    def eliminar_documento_permanente(cls, usuario, documento_id: int) -> ResultadoOperacion:
        """Borra el registro y luego el archivo. Si falla el archivo, el registro ya no existe."""
        from cartera.models import Documento

        denegado = cls._verificar_permiso(usuario, 'documentos.eliminar',
                                          "No tiene permisos para eliminar documentos")
        if denegado:
            return denegado

        try:
            documento = Documento.objects.get(pk=documento_id)
        except Documento.DoesNotExist:
            return ResultadoOperacion.error("Documento no encontrado")

        bucket, ruta = documento.bucket, documento.ruta_archivo
        try:
            documento.delete()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al eliminar el documento")

        try:
            storage.eliminar(bucket, ruta)
        except Exception as e:
            logger.error(f"Documento {documento_id} eliminado de BD pero no su archivo {ruta}: {e}")
            return ResultadoOperacion.error("Documento eliminado de BD pero falló la eliminación del archivo")

        logger.info(f"Documento {documento_id} eliminado permanentemente por {usuario.username}")
        return ResultadoOperacion.exito(None, "Documento eliminado permanentemente")

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @classmethod
    def _filtro_entidad(cls, entidad: str, entidad_id) -> Optional[Dict[str, Any]]:
        if entidad not in ENTIDADES:
            return None
        return {f"{entidad}_id": entidad_id}

    @classmethod
    def obtener_documentos_activos(cls, usuario, entidad: str, entidad_id: int) -> ResultadoOperacion:
        from cartera.models import Documento, obtener_rol

        if obtener_rol(usuario) is None:
            return ResultadoOperacion.error("No autenticado")

        filtro = cls._filtro_entidad(entidad, entidad_id)
        if filtro is None:
            return ResultadoOperacion.error(f"Entidad inválida: {entidad}")

        documentos = Documento.objects.filter(estado='activo', **filtro).select_related('subido_por')
        return ResultadoOperacion.exito([cls._serializar(d) for d in documentos])

    @classmethod
    def obtener_todos_documentos(cls, usuario, entidad: str, entidad_id: int) -> ResultadoOperacion:
        """Incluye los descartados; solo administradores."""
        from cartera.models import Documento, obtener_rol

        rol = obtener_rol(usuario)
        if rol is None:
            return ResultadoOperacion.error("No autenticado")
        if rol != 'admin':
            return ResultadoOperacion.error("Solo administradores pueden ver documentos descartados")

        filtro = cls._filtro_entidad(entidad, entidad_id)
        if filtro is None:
            return ResultadoOperacion.error(f"Entidad inválida: {entidad}")

        documentos = Documento.objects.filter(**filtro).select_related('subido_por')
        return ResultadoOperacion.exito([cls._serializar(d) for d in documentos])

    @classmethod
    def limpiar_temporales(cls, horas: Optional[int] = None) -> int:
        if horas is None:
            horas = cls._get_config('HORAS_RETENCION_TEMPORALES', 24)
        return storage.limpiar_temporales(horas)
