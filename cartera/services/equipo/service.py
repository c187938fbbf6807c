"""
Servicio de Equipos.

Los equipos agrupan usuarios bajo uno o más líderes. El líder de un equipo
puede validar o rechazar las pólizas cuyo responsable es miembro de su
equipo (ver GerenciaService).
"""

import logging
from typing import List

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction

from ..base import BaseService, ResultadoOperacion


logger = logging.getLogger(__name__)


MENSAJE_SIN_PERMISO = "No tiene permisos para gestionar equipos"

ROLES_EQUIPO = ('lider', 'miembro')


class EquipoService(BaseService):
    """
    Administración de equipos y sus miembros. Requiere ``admin.equipos``.
    """

    @classmethod
    def _verificar_admin(cls, usuario):
        return cls._verificar_permiso(usuario, 'admin.equipos', MENSAJE_SIN_PERMISO)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @staticmethod
    def equipos_liderados_por(usuario) -> List[int]:
        from cartera.models import EquipoMiembro

        return list(
            EquipoMiembro.objects.filter(usuario=usuario, rol_equipo='lider').values_list('equipo_id', flat=True)
        )

    @classmethod
    def es_lider_de(cls, usuario, responsable) -> bool:
        """True si ``usuario`` lidera algún equipo del que ``responsable`` es miembro."""
        from cartera.models import EquipoMiembro

        if usuario is None or responsable is None:
            return False
        equipos = cls.equipos_liderados_por(usuario)
        if not equipos:
            return False
        return EquipoMiembro.objects.filter(usuario=responsable, equipo_id__in=equipos).exists()

    @staticmethod
    def obtener_lideres_de(usuario) -> List[User]:
        """Líderes de cualquier equipo al que pertenece el usuario."""
        from cartera.models import EquipoMiembro

        equipos = EquipoMiembro.objects.filter(usuario=usuario).values_list('equipo_id', flat=True)
        return list(
            User.objects.filter(
                membresias__equipo_id__in=equipos,
                membresias__rol_equipo='lider',
            ).exclude(pk=usuario.pk).distinct().order_by('username')
        )

    @classmethod
    def obtener_equipos(cls, usuario) -> ResultadoOperacion:
        from cartera.models import Equipo

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        equipos = Equipo.objects.prefetch_related('miembros__usuario').order_by('nombre')
        datos = []
        for equipo in equipos:
            miembros = [
                {
                    'id': m.pk,
                    'usuario_id': m.usuario_id,
                    'username': m.usuario.username,
                    'nombre': m.usuario.get_full_name() or m.usuario.username,
                    'email': m.usuario.email,
                    'rol_equipo': m.rol_equipo,
                }
                for m in equipo.miembros.all()
            ]
            datos.append({
                'id': equipo.pk,
                'nombre': equipo.nombre,
                'descripcion': equipo.descripcion,
                'miembros': miembros,
                'total_miembros': len(miembros),
                'lideres': [m['nombre'] for m in miembros if m['rol_equipo'] == 'lider'],
            })
        return ResultadoOperacion.exito(datos)

    @classmethod
    def obtener_usuarios_disponibles(cls, usuario, equipo_id: int) -> ResultadoOperacion:
        """Usuarios activos que todavía no son miembros del equipo."""
        from cartera.models import EquipoMiembro

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        ocupados = EquipoMiembro.objects.filter(equipo_id=equipo_id).values_list('usuario_id', flat=True)
        usuarios = (
            User.objects.filter(is_active=True)
            .exclude(pk__in=ocupados)
            .exclude(perfil__rol='desactivado')
            .order_by('first_name', 'username')
        )
        return ResultadoOperacion.exito([
            {'id': u.pk, 'username': u.username, 'nombre': u.get_full_name() or u.username, 'email': u.email}
            for u in usuarios
        ])

    # =========================================================================
    # OPERACIONES
    # =========================================================================

    @classmethod
    def crear_equipo(cls, usuario, nombre: str, descripcion: str = "") -> ResultadoOperacion:
        from cartera.models import Equipo

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        nombre = (nombre or '').strip()
        if not nombre:
            return ResultadoOperacion.fallo({'nombre': "El nombre del equipo es requerido"},
                                            "El nombre del equipo es requerido")

        if Equipo.objects.filter(nombre__iexact=nombre).exists():
            return ResultadoOperacion.error(f'Ya existe un equipo con el nombre "{nombre}"')

        try:
            with transaction.atomic():
                equipo = Equipo.objects.create(
                    nombre=nombre,
                    descripcion=(descripcion or '').strip(),
                    creado_por=usuario,
                )
        except IntegrityError:
            return ResultadoOperacion.error(f'Ya existe un equipo con el nombre "{nombre}"')
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al crear el equipo")

        logger.info(f"Equipo '{nombre}' creado por {usuario.username}")
        return ResultadoOperacion.exito(equipo, "Equipo creado correctamente")

    @classmethod
    def eliminar_equipo(cls, usuario, equipo_id: int) -> ResultadoOperacion:
        from cartera.models import Equipo

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        eliminados, _ = Equipo.objects.filter(pk=equipo_id).delete()
        if not eliminados:
            return ResultadoOperacion.error("Equipo no encontrado")
        return ResultadoOperacion.exito(None, "Equipo eliminado correctamente")

    @classmethod
    def agregar_miembro(cls, usuario, equipo_id: int, usuario_id: int, rol_equipo: str = 'miembro') -> ResultadoOperacion:
        from cartera.models import Equipo, EquipoMiembro

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        if rol_equipo not in ROLES_EQUIPO:
            return ResultadoOperacion.error(f"Rol de equipo inválido: {rol_equipo}")
        if not Equipo.objects.filter(pk=equipo_id).exists():
            return ResultadoOperacion.error("Equipo no encontrado")
        if not User.objects.filter(pk=usuario_id).exists():
            return ResultadoOperacion.error("Usuario no encontrado")
        if EquipoMiembro.objects.filter(equipo_id=equipo_id, usuario_id=usuario_id).exists():
            return ResultadoOperacion.error("Este usuario ya es miembro del equipo")

        try:
            with transaction.atomic():
                miembro = EquipoMiembro.objects.create(
                    equipo_id=equipo_id, usuario_id=usuario_id, rol_equipo=rol_equipo
                )
        except IntegrityError:
            return ResultadoOperacion.error("Este usuario ya es miembro del equipo")
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al agregar el miembro")

        return ResultadoOperacion.exito(miembro, "Miembro agregado correctamente")

    @classmethod
    def remover_miembro(cls, usuario, miembro_id: int) -> ResultadoOperacion:
        from cartera.models import EquipoMiembro

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        eliminados, _ = EquipoMiembro.objects.filter(pk=miembro_id).delete()
        if not eliminados:
            return ResultadoOperacion.error("Miembro no encontrado")
        return ResultadoOperacion.exito(None, "Miembro removido correctamente")

    @classmethod
    def cambiar_rol_miembro(cls, usuario, miembro_id: int, rol_equipo: str) -> ResultadoOperacion:
        from cartera.models import EquipoMiembro

        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        if rol_equipo not in ROLES_EQUIPO:
            return ResultadoOperacion.error(f"Rol de equipo inválido: {rol_equipo}")

        actualizados = EquipoMiembro.objects.filter(pk=miembro_id).update(rol_equipo=rol_equipo)
        if not actualizados:
            return ResultadoOperacion.error("Miembro no encontrado")
        return ResultadoOperacion.exito({'id': miembro_id, 'rol_equipo': rol_equipo}, "Rol actualizado correctamente")
