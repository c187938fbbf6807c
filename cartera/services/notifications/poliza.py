"""
Notificaciones relacionadas con pólizas.
Responsabilidad única: avisar al responsable cuando gerencia rechaza su póliza.
"""

from django.utils import timezone

from .base import BaseNotifier


class PolizaNotifier(BaseNotifier):
    """
    Notificador para comunicaciones sobre pólizas.

    USO:
        notifier = PolizaNotifier()
        notifier.notificar_rechazo(poliza, usuario=request.user)
    """

    def notificar_rechazo(self, poliza, usuario=None, horas=24):
        """
        Envía al responsable el motivo del rechazo y el plazo de corrección.

        Returns:
            NotificacionEmail o None si el responsable no tiene email
        """
        destinatario = poliza.responsable.email if poliza.responsable else ''
        if not destinatario:
            return None

        asunto = f"Póliza N° {poliza.numero_poliza} rechazada - Tienes {horas} horas para corregirla"
        limite = timezone.localtime(poliza.puede_editar_hasta).strftime('%d/%m/%Y %H:%M') \
            if poliza.puede_editar_hasta else 'N/A'
        rechazado_por = ''
        if poliza.rechazado_por:
            rechazado_por = poliza.rechazado_por.get_full_name() or poliza.rechazado_por.username

        bloques = [
            {
                'titulo': 'Información de la Póliza',
                'filas': [
                    {'label': 'Número', 'valor': poliza.numero_poliza},
                    {'label': 'Cliente', 'valor': poliza.cliente.nombre_completo},
                    {'label': 'Aseguradora', 'valor': poliza.compania.nombre},
                    {'label': 'Ramo', 'valor': poliza.ramo.nombre},
                ],
            },
            {
                'titulo': 'Rechazo',
                'filas': [
                    {'label': 'Motivo', 'valor': poliza.motivo_rechazo},
                    {'label': 'Rechazada por', 'valor': rechazado_por},
                    {'label': 'Puede editar hasta', 'valor': limite},
                ],
            },
        ]

        contenido_html = self._renderizar_email(
            titulo=asunto,
            intro=['Gerencia rechazó la siguiente póliza. Corríjala y reenvíela a validación dentro del plazo.'],
            bloques=bloques,
            cta_text='Ver póliza',
            cta_url=f"{self._get_site_url()}/polizas/{poliza.pk}/",
            nota='Pasado el plazo la póliza ya no podrá editarse.',
        )

        contenido_texto = (
            f"{asunto}\n\n"
            f"Número: {poliza.numero_poliza}\n"
            f"Cliente: {poliza.cliente.nombre_completo}\n"
            f"Motivo: {poliza.motivo_rechazo}\n"
            f"Puede editar hasta: {limite}\n"
        )

        notificacion = self._crear_notificacion(
            tipo='poliza_rechazada',
            destinatario=destinatario,
            asunto=asunto,
            contenido=contenido_texto,
            contenido_html=contenido_html,
            poliza=poliza,
            usuario=usuario,
        )

        self._enviar_email(notificacion)

        return notificacion
