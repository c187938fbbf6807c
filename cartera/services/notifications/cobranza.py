"""
Recordatorios de pago de cuotas.
"""

from cartera import formato

from .base import BaseNotifier


class CobranzaNotifier(BaseNotifier):
    """
    Envía al cliente el recordatorio de una cuota próxima a vencer o vencida.

    USO:
        CobranzaNotifier().enviar_recordatorio(cuota)
    """

    def enviar_recordatorio(self, cuota, usuario=None):
        from ..cobranza import CobranzaService

        poliza = cuota.poliza
        destinatario = poliza.cliente.email
        if not destinatario:
            return None

        asunto = f"Recordatorio de pago - Póliza {poliza.numero_poliza} - Cuota {cuota.numero_cuota}"
        contenido_texto = CobranzaService.generar_mensaje_recordatorio(cuota, poliza.cliente.nombre_completo)

        contenido_html = self._renderizar_email(
            titulo=asunto,
            intro=[f"Estimado/a {poliza.cliente.nombre_completo}, le recordamos el vencimiento de su cuota."],
            bloques=[{
                'titulo': 'Detalle de la Cuota',
                'filas': [
                    {'label': 'Póliza', 'valor': poliza.numero_poliza},
                    {'label': 'Cuota', 'valor': cuota.numero_cuota},
                    {'label': 'Monto', 'valor': formato.moneda(cuota.monto, poliza.moneda)},
                    {'label': 'Fecha de vencimiento', 'valor': formato.fecha_larga(cuota.fecha_vencimiento)},
                ],
            }],
            nota='Si ya realizó el pago, por favor ignore este mensaje.',
        )

        notificacion = self._crear_notificacion(
            tipo='recordatorio_pago',
            destinatario=destinatario,
            asunto=asunto,
            contenido=contenido_texto,
            contenido_html=contenido_html,
            poliza=poliza,
            cuota=cuota,
            usuario=usuario,
        )

        self._enviar_email(notificacion)

        return notificacion
