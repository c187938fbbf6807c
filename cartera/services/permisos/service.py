"""
Servicio de Permisos.

El rol admin tiene acceso total y sus permisos no son editables. El resto de
roles obtiene permisos de dos fuentes: los asignados al rol (PermisoRol) y
los otorgados al usuario de forma puntual (PermisoUsuario), que pueden
tener fecha de expiración.
"""

import logging
from typing import Dict, List

from django.db import transaction
from django.utils import timezone

from ..base import BaseService, ResultadoOperacion


logger = logging.getLogger(__name__)


ALL_PERMISSIONS = [
    'polizas.ver',
    'polizas.crear',
    'polizas.editar',
    'polizas.validar',
    'polizas.exportar',
    'clientes.ver',
    'clientes.crear',
    'clientes.editar',
    'clientes.trazabilidad',
    'cobranzas.ver',
    'cobranzas.gestionar',
    'siniestros.ver',
    'siniestros.crear',
    'siniestros.editar',
    'vencimientos.ver',
    'vencimientos.generar',
    'documentos.descartar',
    'documentos.restaurar',
    'documentos.eliminar',
    'admin.usuarios',
    'admin.roles',
    'admin.invitaciones',
    'admin.reportes',
    'admin.permisos',
    'admin.equipos',
]

OPERATIONAL_ROLES = ['admin', 'usuario', 'agente', 'comercial', 'cobranza', 'siniestros']

_PERMISOS_AGENTE = [
    'polizas.ver', 'polizas.crear', 'polizas.editar',
    'clientes.ver', 'clientes.crear', 'clientes.editar',
    'vencimientos.ver', 'vencimientos.generar',
    'cobranzas.ver',
    'documentos.descartar',
]

PERMISOS_POR_ROL: Dict[str, List[str]] = {
    'admin': list(ALL_PERMISSIONS),
    'usuario': [
        'polizas.ver', 'polizas.validar', 'polizas.exportar',
        'clientes.ver', 'clientes.trazabilidad',
        'cobranzas.ver', 'siniestros.ver', 'vencimientos.ver',
    ],
    'agente': list(_PERMISOS_AGENTE),
    'comercial': _PERMISOS_AGENTE + ['siniestros.ver', 'siniestros.crear', 'siniestros.editar'],
    'cobranza': ['cobranzas.ver', 'cobranzas.gestionar', 'polizas.ver', 'clientes.ver'],
    'siniestros': ['siniestros.ver', 'siniestros.crear', 'siniestros.editar', 'polizas.ver', 'clientes.ver',
                   'cobranzas.ver'],
    'invitado': [],
    'desactivado': [],
}

MENSAJE_SIN_PERMISO = "No tiene permisos para gestionar permisos del sistema"


class PermisosService(BaseService):
    """
    Consulta y administración de permisos.

    USO:
        from cartera.services.permisos import PermisosService

        if PermisosService.tiene_permiso(request.user, 'polizas.validar'):
            ...
    """

    @staticmethod
    def tiene_rol(usuario, *roles) -> bool:
        from cartera.models import obtener_rol
        return obtener_rol(usuario) in roles

    @classmethod
    def tiene_permiso(cls, usuario, permiso: str) -> bool:
        from cartera.models import PermisoRol, PermisoUsuario, obtener_rol

        rol = obtener_rol(usuario)
        if rol is None or rol == 'desactivado':
            return False
        if rol == 'admin':
            return True

        if PermisoRol.objects.filter(rol=rol, permiso=permiso).exists():
            return True

        return PermisoUsuario.objects.filter(
            usuario=usuario, permiso=permiso
        ).exclude(expira_en__lte=timezone.now()).exists()

    @classmethod
    def permisos_de(cls, usuario) -> List[str]:
        """Lista efectiva de permisos de un usuario."""
        from cartera.models import PermisoRol, PermisoUsuario, obtener_rol

        rol = obtener_rol(usuario)
        if rol is None or rol == 'desactivado':
            return []
        if rol == 'admin':
            return list(ALL_PERMISSIONS)

        permisos = set(PermisoRol.objects.filter(rol=rol).values_list('permiso', flat=True))
        permisos.update(
            PermisoUsuario.objects.filter(usuario=usuario)
            .exclude(expira_en__lte=timezone.now())
            .values_list('permiso', flat=True)
        )
        return sorted(permisos)

    @classmethod
    def inicializar_permisos_por_rol(cls) -> int:
        """Crea los permisos por defecto de cada rol. Devuelve cuántos se crearon."""
        from cartera.models import PermisoRol

        creados = 0
        for rol, permisos in PERMISOS_POR_ROL.items():
            if rol == 'admin':
                continue
            for permiso in permisos:
                _, nuevo = PermisoRol.objects.get_or_create(rol=rol, permiso=permiso)
                creados += int(nuevo)
        return creados

    @classmethod
    def obtener_matriz_permisos(cls, actor) -> ResultadoOperacion:
        from cartera.models import PermisoRol

        denegado = cls._verificar_permiso(actor, 'admin.permisos', MENSAJE_SIN_PERMISO)
        if denegado:
            return denegado

        asignados = set(PermisoRol.objects.values_list('rol', 'permiso'))
        matriz = []
        for permiso in ALL_PERMISSIONS:
            fila = {'permiso': permiso}
            for rol in OPERATIONAL_ROLES:
                fila[rol] = rol == 'admin' or (rol, permiso) in asignados
            matriz.append(fila)

        return ResultadoOperacion.exito({'roles': OPERATIONAL_ROLES, 'matriz': matriz})

    @classmethod
    def actualizar_permiso_rol(cls, actor, rol: str, permiso: str, habilitado: bool) -> ResultadoOperacion:
        from cartera.models import PermisoRol

        denegado = cls._verificar_permiso(actor, 'admin.permisos', MENSAJE_SIN_PERMISO)
        if denegado:
            return denegado

        if rol == 'admin':
            return ResultadoOperacion.error(
                "No se pueden modificar los permisos del rol admin (tiene bypass permanente)"
            )
        if rol not in PERMISOS_POR_ROL:
            return ResultadoOperacion.error(f"Rol inválido: {rol}")
        if permiso not in ALL_PERMISSIONS:
            return ResultadoOperacion.error(f"Permiso inválido: {permiso}")

        try:
            if habilitado:
                PermisoRol.objects.get_or_create(rol=rol, permiso=permiso)
            else:
                PermisoRol.objects.filter(rol=rol, permiso=permiso).delete()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al actualizar el permiso")

        logger.info(f"{actor.username} {'habilitó' if habilitado else 'deshabilitó'} {permiso} para rol {rol}")
        return ResultadoOperacion.exito({'rol': rol, 'permiso': permiso, 'habilitado': habilitado},
                                        "Permiso actualizado correctamente")

    @classmethod
    def asignar_permiso_usuario(cls, actor, usuario, permiso: str, expira_en=None) -> ResultadoOperacion:
        from cartera.models import PermisoUsuario

        denegado = cls._verificar_permiso(actor, 'admin.permisos', MENSAJE_SIN_PERMISO)
        if denegado:
            return denegado

        if permiso not in ALL_PERMISSIONS:
            return ResultadoOperacion.error(f"Permiso inválido: {permiso}")
        if expira_en is not None and expira_en <= timezone.now():
            return ResultadoOperacion.error("La fecha de expiración debe ser futura")

        try:
            with transaction.atomic():
                registro, _ = PermisoUsuario.objects.update_or_create(
                    usuario=usuario,
                    permiso=permiso,
                    defaults={'otorgado_por': actor, 'expira_en': expira_en},
                )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al asignar el permiso")

        return ResultadoOperacion.exito(registro, "Permiso asignado correctamente")

    @classmethod
    def revocar_permiso_usuario(cls, actor, usuario, permiso: str) -> ResultadoOperacion:
        from cartera.models import PermisoUsuario

        denegado = cls._verificar_permiso(actor, 'admin.permisos', MENSAJE_SIN_PERMISO)
        if denegado:
            return denegado

        eliminados, _ = PermisoUsuario.objects.filter(usuario=usuario, permiso=permiso).delete()
        if not eliminados:
            return ResultadoOperacion.error("El usuario no tiene este permiso asignado")
        return ResultadoOperacion.exito(None, "Permiso revocado correctamente")
