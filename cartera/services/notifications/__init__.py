"""
Notificadores por email.

Cada notificador cubre un solo tipo de comunicación y persiste lo enviado
como NotificacionEmail:

    from cartera.services.notifications import PolizaNotifier, CobranzaNotifier

    PolizaNotifier().notificar_rechazo(poliza, usuario=request.user)
    CobranzaNotifier().enviar_recordatorio(cuota)

Los envíos son best-effort: un fallo queda registrado en la notificación y
nunca interrumpe la operación que lo originó.
"""

from .base import BaseNotifier
from .cobranza import CobranzaNotifier
from .poliza import PolizaNotifier

__all__ = ['BaseNotifier', 'CobranzaNotifier', 'PolizaNotifier']
