"""
Servicio de Validación de Pólizas (Gerencia).

Una póliza nueva queda ``pendiente`` hasta que gerencia la valida
(``activa``) o la rechaza (``rechazada``). El rechazo abre una ventana de
edición para que el responsable corrija la póliza y la reenvíe.

Pueden validar:
    - usuarios con el permiso ``polizas.validar`` (gerencia, admin);
    - el líder de un equipo del que el responsable de la póliza es miembro.
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..base import BaseService, ResultadoOperacion
from ..equipo import EquipoService
from ..permisos import PermisosService


logger = logging.getLogger(__name__)


LONGITUD_MINIMA_MOTIVO = 10


class GerenciaService(BaseService):

    @staticmethod
    def puede_validar(usuario, poliza) -> bool:
        if PermisosService.tiene_permiso(usuario, 'polizas.validar'):
            return True
        return EquipoService.es_lider_de(usuario, poliza.responsable)

    @classmethod
    def obtener_polizas_pendientes(cls, usuario) -> ResultadoOperacion:
        """Pólizas pendientes que el usuario puede validar, de la más reciente a la más antigua."""
        from cartera.models import EquipoMiembro, Poliza, obtener_rol

        if obtener_rol(usuario) is None:
            return ResultadoOperacion.error("No autenticado")

        polizas = Poliza.objects.filter(estado='pendiente').select_related(
            'cliente', 'cliente__natural', 'cliente__juridico', 'cliente__unipersonal',
            'compania', 'ramo', 'categoria', 'responsable', 'creado_por',
        )

        if not PermisosService.tiene_permiso(usuario, 'polizas.validar'):
            equipos = EquipoService.equipos_liderados_por(usuario)
            if not equipos:
                return ResultadoOperacion.error("No tiene permisos para validar pólizas")
            miembros = EquipoMiembro.objects.filter(equipo_id__in=equipos).values_list('usuario_id', flat=True)
            polizas = polizas.filter(Q(responsable_id__in=miembros))

        datos = [
            {
                'id': p.pk,
                'numero_poliza': p.numero_poliza,
                'cliente': p.cliente.nombre_completo,
                'compania': p.compania.nombre,
                'ramo': p.ramo.nombre,
                'categoria': p.categoria.nombre if p.categoria else None,
                'responsable': p.responsable.get_full_name() or p.responsable.username,
                'creado_por': (p.creado_por.get_full_name() or p.creado_por.username) if p.creado_por else None,
                'regional': p.get_regional_display() if p.regional else '',
                'modalidad_pago': p.modalidad_pago,
                'prima_total': p.prima_total,
                'moneda': p.moneda,
                'inicio_vigencia': p.inicio_vigencia,
                'fin_vigencia': p.fin_vigencia,
                'fecha_creacion': p.fecha_creacion,
            }
            for p in polizas.order_by('-fecha_creacion')
        ]
        return ResultadoOperacion.exito(datos)

    @classmethod
    def _obtener_pendiente(cls, usuario, poliza_id, mensaje_sin_permiso):
        """Retorna (poliza, None) o (None, ResultadoOperacion fallido)."""
        from cartera.models import Poliza, obtener_rol

        if obtener_rol(usuario) is None:
            return None, ResultadoOperacion.error("No autenticado")

        try:
            poliza = Poliza.objects.select_for_update().get(pk=poliza_id)
        except Poliza.DoesNotExist:
            return None, ResultadoOperacion.error("Póliza no encontrada")

        if not cls.puede_validar(usuario, poliza):
            return None, ResultadoOperacion.error(mensaje_sin_permiso)

        if poliza.estado != 'pendiente':
            return None, ResultadoOperacion.error("La póliza no está pendiente de validación")

        return poliza, None

    @classmethod
    def validar_poliza(cls, usuario, poliza_id: int) -> ResultadoOperacion:
        try:
            with transaction.atomic():
                poliza, error = cls._obtener_pendiente(usuario, poliza_id, "No tiene permisos para validar pólizas")
                if error:
                    return error

                poliza.estado = 'activa'
                poliza.validado_por = usuario
                poliza.fecha_validacion = timezone.now()
                poliza.save(update_fields=['estado', 'validado_por', 'fecha_validacion', 'fecha_modificacion'])
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al validar la póliza")

        logger.info(f"Póliza {poliza.numero_poliza} validada por {usuario.username}")
        return ResultadoOperacion.exito(poliza, "Póliza validada correctamente")

    @classmethod
    def rechazar_poliza(cls, usuario, poliza_id: int, motivo: str) -> ResultadoOperacion:
        """
        Rechaza una póliza pendiente.

        El motivo (mínimo 10 caracteres) se valida antes de tocar la base de
        datos. El responsable recibe un email con el motivo y el plazo de
        corrección; si el envío falla el rechazo se mantiene.
        """
        from ..notifications import PolizaNotifier

        motivo = (motivo or '').strip()
        if len(motivo) < LONGITUD_MINIMA_MOTIVO:
            return ResultadoOperacion.fallo(
                {'motivo': "El motivo del rechazo es obligatorio (mínimo 10 caracteres)"},
                "El motivo del rechazo es obligatorio (mínimo 10 caracteres)",
            )

        horas = cls._get_config('HORAS_EDICION_POLIZA_RECHAZADA', 24)

        try:
            with transaction.atomic():
                poliza, error = cls._obtener_pendiente(usuario, poliza_id, "No tiene permisos para rechazar pólizas")
                if error:
                    return error

                ahora = timezone.now()
                poliza.estado = 'rechazada'
                poliza.motivo_rechazo = motivo
                poliza.rechazado_por = usuario
                poliza.fecha_rechazo = ahora
                poliza.puede_editar_hasta = ahora + timedelta(hours=horas)
                poliza.save(update_fields=[
                    'estado', 'motivo_rechazo', 'rechazado_por', 'fecha_rechazo',
                    'puede_editar_hasta', 'fecha_modificacion',
                ])
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al rechazar la póliza")

        logger.info(f"Póliza {poliza.numero_poliza} rechazada por {usuario.username}")

        try:
            PolizaNotifier().notificar_rechazo(poliza, usuario=usuario, horas=horas)
        except Exception as e:
            logger.error(f"No se pudo notificar el rechazo de la póliza {poliza.numero_poliza}: {e}")

        return ResultadoOperacion.exito(poliza, "Póliza rechazada correctamente")
