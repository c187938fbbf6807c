"""
Servicio de Catálogos de Seguros.

Administra aseguradoras, ramos, productos y categorías. Ningún catálogo se
borra: se desactiva (``activo=False``) y puede reactivarse. La desactivación
se bloquea mientras existan pólizas o registros dependientes activos.
"""

import logging
from typing import Any, Dict, Optional

from django.db import transaction

from cartera.forms import AseguradoraForm, CategoriaForm, ProductoForm, RamoForm, errores_por_campo, primer_error

from ..base import BaseService, ResultadoOperacion


logger = logging.getLogger(__name__)


MENSAJE_SIN_PERMISO = "No tiene permisos de administrador"

ESTADOS_POLIZA_VIGENTE = ('pendiente', 'activa', 'rechazada', 'vencida', 'renovada')


class _Catalogo:
    """Describe un catálogo administrable por CatalogoService."""

    def __init__(self, modelo, formulario, nombre, articulo):
        self.modelo = modelo
        self.formulario = formulario
        self.nombre = nombre
        self.articulo = articulo
        self.sufijo = 'a' if articulo == 'la' else 'o'


def _catalogos():
    from cartera.models import Categoria, CompaniaAseguradora, ProductoAseguradora, Ramo

    return {
        'aseguradora': _Catalogo(CompaniaAseguradora, AseguradoraForm, 'aseguradora', 'la'),
        'ramo': _Catalogo(Ramo, RamoForm, 'ramo', 'el'),
        'producto': _Catalogo(ProductoAseguradora, ProductoForm, 'producto', 'el'),
        'categoria': _Catalogo(Categoria, CategoriaForm, 'categoría', 'la'),
    }


class CatalogoService(BaseService):
    """
    Servicio para catálogos de seguros.

    USO:

        from cartera.services.catalogo import CatalogoService

        CatalogoService.crear(request.user, 'aseguradora', {'nombre': 'Nacional Seguros', 'codigo': 7})
        CatalogoService.desactivar(request.user, 'aseguradora', aseguradora_id)
    """

    @classmethod
    def _verificar_admin(cls, usuario) -> Optional[ResultadoOperacion]:
        return cls._verificar_rol(usuario, ('admin',), MENSAJE_SIN_PERMISO)

    @staticmethod
    def _catalogo(tipo: str) -> Optional[_Catalogo]:
        return _catalogos().get(tipo)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @staticmethod
    def _serializar(tipo: str, objeto) -> Dict[str, Any]:
        datos = {'id': objeto.pk, 'activo': objeto.activo}
        if tipo == 'aseguradora':
            datos.update({'nombre': objeto.nombre, 'codigo': objeto.codigo})
        elif tipo == 'ramo':
            datos.update({
                'codigo': objeto.codigo,
                'nombre': objeto.nombre,
                'descripcion': objeto.descripcion,
                'ramo_padre_id': objeto.ramo_padre_id,
            })
        elif tipo == 'producto':
            datos.update({
                'compania_id': objeto.compania_id,
                'compania': objeto.compania.nombre,
                'ramo_id': objeto.ramo_id,
                'ramo': objeto.ramo.nombre,
                'codigo_producto': objeto.codigo_producto,
                'nombre_producto': objeto.nombre_producto,
                'factor_contado': objeto.factor_contado,
                'factor_credito': objeto.factor_credito,
                'porcentaje_comision': objeto.porcentaje_comision,
                'regional': objeto.regional,
            })
        else:
            datos.update({'nombre': objeto.nombre, 'descripcion': objeto.descripcion})
        return datos

    @classmethod
    def listar(cls, usuario, tipo: str, incluir_inactivos: bool = False, **filtros) -> ResultadoOperacion:
        """
        Lista un catálogo. Para productos acepta ``compania_id`` y ``ramo_id``
        como filtros adicionales.
        """
        from cartera.models import obtener_rol

        if obtener_rol(usuario) is None:
            return ResultadoOperacion.error("No autenticado")

        catalogo = cls._catalogo(tipo)
        if catalogo is None:
            return ResultadoOperacion.error(f"Catálogo inválido: {tipo}")

        qs = catalogo.modelo.objects.all()
        if tipo == 'producto':
            qs = qs.select_related('compania', 'ramo')
            filtros = {k: v for k, v in filtros.items() if k in ('compania_id', 'ramo_id') and v}
            qs = qs.filter(**filtros)
        if not incluir_inactivos:
            qs = qs.filter(activo=True)

        return ResultadoOperacion.exito([cls._serializar(tipo, o) for o in qs])

    @classmethod
    def estadisticas(cls, tipo: str) -> Dict[str, int]:
        modelo = cls._catalogo(tipo).modelo
        total = modelo.objects.count()
        activos = modelo.objects.filter(activo=True).count()
        return {'total': total, 'activos': activos, 'inactivos': total - activos}

    # =========================================================================
    # ALTA Y EDICIÓN
    # =========================================================================

    @classmethod
    def crear(cls, usuario, tipo: str, datos: Dict[str, Any]) -> ResultadoOperacion:
        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        catalogo = cls._catalogo(tipo)
        if catalogo is None:
            return ResultadoOperacion.error(f"Catálogo inválido: {tipo}")

        form = catalogo.formulario(data=datos)
        if not form.is_valid():
            return ResultadoOperacion.fallo(errores_por_campo(form), primer_error(form))

        try:
            objeto = form.save()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, f"Error al crear {catalogo.articulo} {catalogo.nombre}")

        logger.info(f"{catalogo.nombre.capitalize()} {objeto} creado por {usuario.username}")
        return ResultadoOperacion.exito(objeto, f"{catalogo.nombre.capitalize()} cread{catalogo.sufijo} correctamente")

    @classmethod
    def actualizar(cls, usuario, tipo: str, objeto_id: int, datos: Dict[str, Any]) -> ResultadoOperacion:
        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        catalogo = cls._catalogo(tipo)
        if catalogo is None:
            return ResultadoOperacion.error(f"Catálogo inválido: {tipo}")

        objeto = catalogo.modelo.objects.filter(pk=objeto_id).first()
        if objeto is None:
            return ResultadoOperacion.error(f"{catalogo.nombre.capitalize()} no encontrad{catalogo.sufijo}")

        form = catalogo.formulario(data=datos, instance=objeto)
        if not form.is_valid():
            return ResultadoOperacion.fallo(errores_por_campo(form), primer_error(form))

        try:
            objeto = form.save()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(
                e, f"Error al actualizar {catalogo.articulo} {catalogo.nombre}"
            )

        return ResultadoOperacion.exito(objeto, f"{catalogo.nombre.capitalize()} actualizad{catalogo.sufijo} correctamente")

    # =========================================================================
    # DESACTIVACIÓN / REACTIVACIÓN
    # =========================================================================

    @staticmethod
    def _bloqueo_desactivacion(tipo: str, objeto) -> Optional[str]:
        """Mensaje que impide desactivar ``objeto``, o None si puede desactivarse."""
        from cartera.models import Poliza

        if tipo == 'aseguradora':
            polizas = Poliza.objects.filter(compania=objeto, estado__in=ESTADOS_POLIZA_VIGENTE).count()
            if polizas:
                return f"Esta aseguradora tiene {polizas} póliza(s) activa(s). No se puede desactivar."
            productos = objeto.productos.filter(activo=True).count()
            if productos:
                return f"Esta aseguradora tiene {productos} producto(s) activo(s). Desactívelos primero."

        elif tipo == 'ramo':
            hijos = objeto.subramos.filter(activo=True).count()
            if hijos:
                return f"Este ramo tiene {hijos} ramo(s) hijo(s) activo(s). Desactívelos primero."
            productos = objeto.productos.filter(activo=True).count()
            if productos:
                return f"Este ramo tiene {productos} producto(s) activo(s). Desactívelos primero."

        elif tipo == 'producto':
            polizas = Poliza.objects.filter(producto=objeto, estado__in=ESTADOS_POLIZA_VIGENTE).count()
            if polizas:
                return f"Este producto está siendo usado por {polizas} póliza(s) activa(s). No se puede desactivar."

        elif tipo == 'categoria':
            polizas = Poliza.objects.filter(categoria=objeto, estado__in=ESTADOS_POLIZA_VIGENTE).count()
            if polizas:
                return (
                    f"Esta categoría está siendo usada por {polizas} póliza(s) activa(s). No se puede desactivar."
                )

        return None

    @staticmethod
    def _bloqueo_reactivacion(tipo: str, objeto) -> Optional[str]:
        if tipo == 'producto':
            if not objeto.compania.activo:
                return (
                    f'No se puede reactivar porque la aseguradora "{objeto.compania.nombre}" está inactiva. '
                    f'Reactívela primero.'
                )
            if not objeto.ramo.activo:
                return f'No se puede reactivar porque el ramo "{objeto.ramo.nombre}" está inactivo. Reactívelo primero.'
        elif tipo == 'ramo' and objeto.ramo_padre_id and not objeto.ramo_padre.activo:
            return (
                f'No se puede reactivar porque el ramo padre "{objeto.ramo_padre.nombre}" está inactivo. '
                f'Reactívelo primero.'
            )
        return None

    @classmethod
    def _cambiar_activo(cls, usuario, tipo: str, objeto_id: int, activo: bool) -> ResultadoOperacion:
        denegado = cls._verificar_admin(usuario)
        if denegado:
            return denegado

        catalogo = cls._catalogo(tipo)
        if catalogo is None:
            return ResultadoOperacion.error(f"Catálogo inválido: {tipo}")

        accion = "reactivar" if activo else "desactivar"
        try:
            with transaction.atomic():
                objeto = catalogo.modelo.objects.select_for_update().filter(pk=objeto_id).first()
                if objeto is None:
                    return ResultadoOperacion.error(f"{catalogo.nombre.capitalize()} no encontrad{catalogo.sufijo}")

                bloqueo = (
                    cls._bloqueo_reactivacion(tipo, objeto) if activo
                    else cls._bloqueo_desactivacion(tipo, objeto)
                )
                if bloqueo:
                    return ResultadoOperacion.error(bloqueo)

                objeto.activo = activo
                objeto.save(update_fields=['activo'])
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, f"Error al {accion} {catalogo.articulo} {catalogo.nombre}")

        logger.info(f"{catalogo.nombre.capitalize()} {objeto} {'reactivad' if activo else 'desactivad'}{catalogo.sufijo}")
        return ResultadoOperacion.exito(
            objeto, f"{catalogo.nombre.capitalize()} {'reactivad' if activo else 'desactivad'}{catalogo.sufijo} correctamente"
        )

    @classmethod
    def desactivar(cls, usuario, tipo: str, objeto_id: int) -> ResultadoOperacion:
        return cls._cambiar_activo(usuario, tipo, objeto_id, activo=False)

    @classmethod
    def reactivar(cls, usuario, tipo: str, objeto_id: int) -> ResultadoOperacion:
        return cls._cambiar_activo(usuario, tipo, objeto_id, activo=True)
