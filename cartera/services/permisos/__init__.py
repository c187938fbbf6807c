"""
Roles y permisos granulares.
"""

from .service import ALL_PERMISSIONS, OPERATIONAL_ROLES, PERMISOS_POR_ROL, PermisosService

__all__ = [
    "ALL_PERMISSIONS",
    "OPERATIONAL_ROLES",
    "PERMISOS_POR_ROL",
    "PermisosService",
]
