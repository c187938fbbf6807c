from celery import shared_task
from collections import defaultdict
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def enviar_recordatorios_cobranza(self, dias=None):
    from .services.cobranza import CobranzaService
    from .services.notifications import CobranzaNotifier

    try:
        logger.info('Iniciando envío de recordatorios de cobranza')

        notifier = CobranzaNotifier()
        enviados = 0
        errores = 0
        sin_email = 0

        for cuota in CobranzaService.obtener_cuotas_para_recordatorio(dias):
            notificacion = notifier.enviar_recordatorio(cuota)
            if notificacion is None:
                sin_email += 1
            elif notificacion.estado == 'enviado':
                enviados += 1
            else:
                errores += 1

        mensaje = f'Recordatorios: {enviados} enviados, {errores} con error, {sin_email} sin email'
        logger.info(mensaje)

        return {
            'status': 'success',
            'enviados': enviados,
            'errores': errores,
            'sin_email': sin_email,
        }
    except Exception as e:
        logger.error(f'Error al enviar recordatorios de cobranza: {str(e)}')
        raise self.retry(exc=e, countdown=60)


@shared_task(bind=True, max_retries=3)
def notificar_vencimientos_polizas(self, dias=None):
    from .services.poliza import PolizaService

    try:
        logger.info('Iniciando revisión de pólizas por vencer')

        por_responsable = defaultdict(list)
        for poliza in PolizaService.obtener_polizas_por_vencer(dias):
            por_responsable[poliza.responsable.username].append(poliza.numero_poliza)

        total = sum(len(numeros) for numeros in por_responsable.values())
        for responsable, numeros in por_responsable.items():
            logger.info(f'{responsable}: {len(numeros)} póliza(s) por vencer ({", ".join(numeros)})')

        logger.info(f'Total de pólizas por vencer: {total}')

        return {
            'status': 'success',
            'total': total,
            'por_responsable': {r: len(n) for r, n in por_responsable.items()},
        }
    except Exception as e:
        logger.error(f'Error al revisar pólizas por vencer: {str(e)}')
        raise self.retry(exc=e, countdown=60)


@shared_task(bind=True, max_retries=3)
def expirar_ventanas_edicion(self):
    from .services.poliza import PolizaService

    try:
        cerradas = PolizaService.expirar_ventanas_edicion()
        if cerradas:
            logger.info(f'Se cerraron {cerradas} ventanas de edición vencidas')
        return {'status': 'success', 'cerradas': cerradas}
    except Exception as e:
        logger.error(f'Error al expirar ventanas de edición: {str(e)}')
        raise self.retry(exc=e, countdown=60)


@shared_task(bind=True, max_retries=3)
def limpiar_archivos_temporales(self, horas=None):
    from .services.documento import DocumentoService

    try:
        logger.info('Iniciando limpieza de archivos temporales')

        eliminados = DocumentoService.limpiar_temporales(horas)

        logger.info(f'Se eliminaron {eliminados} archivos temporales')

        return {'status': 'success', 'eliminados': eliminados}
    except Exception as e:
        logger.error(f'Error al limpiar archivos temporales: {str(e)}')
        raise self.retry(exc=e, countdown=60)
