"""
Módulo de Señales Django para la Gestión de Cartera.

Señales Implementadas:
    1. **crear_perfil_usuario**: Todo usuario nuevo recibe un PerfilUsuario.
       Los superusuarios nacen con rol 'admin'; el resto con 'invitado' hasta
       que un administrador les asigne un rol operativo.

Flujo::

    1. Se detecta created=True en post_save de User
    2. Se crea el perfil con get_or_create (idempotente ante cargas de fixtures)
"""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import PerfilUsuario


logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def crear_perfil_usuario(sender, instance, created: bool, raw: bool = False, **kwargs):
    """

    Crea el perfil del usuario recién registrado.

    """

    if not created or raw:

        return

    rol = "admin" if instance.is_superuser else "invitado"

    _, nuevo = PerfilUsuario.objects.get_or_create(usuario=instance, defaults={"rol": rol})

    if nuevo:

        logger.info(f"Perfil creado para {instance.username} con rol '{rol}'")
