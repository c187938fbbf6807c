"""
Servicio de Clientes.

Un cliente es natural, jurídico o unipersonal y tiene exactamente un perfil
de su tipo. Los clientes no se eliminan: se pasan a ``inactivo``.
"""

import logging
from typing import Any, Dict, Optional

from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count, Q

from cartera.forms import (
    FORMULARIOS_PERFIL, ClienteForm, ConyugeForm, RepresentanteLegalForm, errores_por_campo, primer_error,
)

from ..base import BaseService, ResultadoOperacion


logger = logging.getLogger(__name__)


def _filtro_busqueda(query: str) -> Q:
    return (
        Q(natural__primer_nombre__icontains=query)
        | Q(natural__segundo_nombre__icontains=query)
        | Q(natural__primer_apellido__icontains=query)
        | Q(natural__segundo_apellido__icontains=query)
        | Q(natural__numero_documento__icontains=query)
        | Q(juridico__razon_social__icontains=query)
        | Q(juridico__nit__icontains=query)
        | Q(unipersonal__razon_social__icontains=query)
        | Q(unipersonal__nit__icontains=query)
        | Q(email__icontains=query)
    )


class ClienteService(BaseService):
    """
    Servicio para gestión de Clientes.

    USO:

        from cartera.services.cliente import ClienteService

        ClienteService.crear_cliente(request.user, 'juridica', {
            'email': 'contacto@empresa.bo',
            'razon_social': 'Importadora Andina SRL',
            'nit': '1020304050',
            'representantes': [{'nombre_completo': 'Ana Rojas', 'numero_documento': '4567890'}],
        })
    """

    @staticmethod
    def _base_qs():
        from cartera.models import Cliente

        return Cliente.objects.select_related('natural', 'juridico', 'unipersonal', 'ejecutivo')

    @staticmethod
    def _serializar(cliente, polizas_activas: Optional[int] = None) -> Dict[str, Any]:
        datos = {
            'id': cliente.pk,
            'tipo_cliente': cliente.tipo_cliente,
            'nombre_completo': cliente.nombre_completo,
            'documento': cliente.documento,
            'estado': cliente.estado,
            'email': cliente.email,
            'telefono': cliente.telefono,
            'celular': cliente.celular,
            'ejecutivo': cliente.ejecutivo.username if cliente.ejecutivo else None,
            'fecha_creacion': cliente.fecha_creacion,
        }
        if polizas_activas is not None:
            datos['polizas_activas'] = polizas_activas
        return datos

    # =========================================================================
    # ALTA
    # =========================================================================

    @classmethod
    def crear_cliente(cls, usuario, tipo: str, datos: Dict[str, Any]) -> ResultadoOperacion:
        """
        Crea el cliente y su perfil en una sola transacción.

        ``datos`` es plano (contacto + perfil). Opcionalmente incluye
        ``conyuge`` (dict, solo naturales casados) y ``representantes``
        (lista, obligatoria para jurídicas).
        """
        from cartera.models import Cliente

        denegado = cls._verificar_permiso(usuario, 'clientes.crear', "No tiene permisos para crear clientes")
        if denegado:
            return denegado

        if tipo not in FORMULARIOS_PERFIL:
            return ResultadoOperacion.error(f"Tipo de cliente inválido: {tipo}")

        form_cliente = ClienteForm(data=datos)
        form_perfil = FORMULARIOS_PERFIL[tipo](data=datos)
        for form in (form_cliente, form_perfil):
            if not form.is_valid():
                return ResultadoOperacion.fallo(errores_por_campo(form), primer_error(form))

        form_conyuge = None
        if tipo == 'natural' and form_perfil.cleaned_data.get('estado_civil') == 'casado' and datos.get('conyuge'):
            form_conyuge = ConyugeForm(data=datos['conyuge'])
            if not form_conyuge.is_valid():
                return ResultadoOperacion.fallo(errores_por_campo(form_conyuge), primer_error(form_conyuge))

        forms_representantes = []
        if tipo == 'juridica':
            representantes = datos.get('representantes') or []
            if not representantes:
                return ResultadoOperacion.fallo(
                    {'representantes': "Debe registrar al menos un representante legal"},
                    "Debe registrar al menos un representante legal",
                )
            for fila in representantes:
                form = RepresentanteLegalForm(data=fila)
                if not form.is_valid():
                    return ResultadoOperacion.fallo(errores_por_campo(form), primer_error(form))
                forms_representantes.append(form)

        try:
            with transaction.atomic():
                cliente = form_cliente.save(commit=False)
                cliente.tipo_cliente = tipo
                cliente.creado_por = usuario
                if cliente.ejecutivo_id is None:
                    cliente.ejecutivo = usuario
                cliente.save()

                perfil = form_perfil.save(commit=False)
                perfil.cliente = cliente
                perfil.save()

                if form_conyuge is not None:
                    conyuge = form_conyuge.save(commit=False)
                    conyuge.cliente_natural = perfil
                    conyuge.save()

                for form in forms_representantes:
                    representante = form.save(commit=False)
                    representante.cliente_juridico = perfil
                    representante.save()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al crear el cliente")

        cliente = Cliente.objects.get(pk=cliente.pk)
        logger.info(f"Cliente {cliente.nombre_completo} ({tipo}) creado por {usuario.username}")
        return ResultadoOperacion.exito(cliente, "Cliente creado correctamente")

    @classmethod
    def cambiar_estado_cliente(cls, usuario, cliente_id: int, estado: str) -> ResultadoOperacion:
        from cartera.models import Cliente

        denegado = cls._verificar_permiso(usuario, 'clientes.editar', "No tiene permisos para editar clientes")
        if denegado:
            return denegado

        if estado not in dict(Cliente.ESTADO_CHOICES):
            return ResultadoOperacion.error(f"Estado inválido: {estado}")

        updated = Cliente.objects.filter(pk=cliente_id).update(estado=estado)
        if not updated:
            return ResultadoOperacion.error("Cliente no encontrado")

        logger.info(f"Cliente {cliente_id} pasó a {estado} por {usuario.username}")
        return ResultadoOperacion.exito({'id': cliente_id, 'estado': estado}, "Estado del cliente actualizado")

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @classmethod
    def obtener_clientes(cls, usuario, query: str = "", estado: Optional[str] = None, pagina: int = 1,
                         por_pagina: int = 20) -> ResultadoOperacion:
        denegado = cls._verificar_permiso(usuario, 'clientes.ver', "No tiene permisos para ver clientes")
        if denegado:
            return denegado

        qs = cls._base_qs().annotate(
            total_polizas_activas=Count('polizas', filter=Q(polizas__estado='activa'))
        ).order_by('-fecha_creacion')
        if estado:
            qs = qs.filter(estado=estado)
        query = (query or '').strip()
        if query:
            qs = qs.filter(_filtro_busqueda(query)).distinct()

        page = Paginator(qs, por_pagina).get_page(pagina)
        return ResultadoOperacion.exito({
            'clientes': [cls._serializar(c, c.total_polizas_activas) for c in page],
            'pagina': page.number,
            'total_paginas': page.paginator.num_pages,
            'total': page.paginator.count,
        })

    @classmethod
    def obtener_cliente(cls, usuario, cliente_id: int) -> ResultadoOperacion:
        from cartera.models import Cliente

        denegado = cls._verificar_permiso(usuario, 'clientes.ver', "No tiene permisos para ver clientes")
        if denegado:
            return denegado

        try:
            cliente = cls._base_qs().get(pk=cliente_id)
        except Cliente.DoesNotExist:
            return ResultadoOperacion.error("Cliente no encontrado")

        detalle = cls._serializar(cliente)
        detalle['direccion'] = cliente.direccion
        perfil = cliente.perfil
        if cliente.tipo_cliente == 'natural' and perfil:
            detalle['perfil'] = {
                'primer_nombre': perfil.primer_nombre,
                'segundo_nombre': perfil.segundo_nombre,
                'primer_apellido': perfil.primer_apellido,
                'segundo_apellido': perfil.segundo_apellido,
                'tipo_documento': perfil.tipo_documento,
                'numero_documento': perfil.numero_documento,
                'extension': perfil.extension,
                'fecha_nacimiento': perfil.fecha_nacimiento,
                'estado_civil': perfil.estado_civil,
                'nacionalidad': perfil.nacionalidad,
                'profesion': perfil.profesion,
            }
            conyuge = getattr(perfil, 'conyuge', None)
            detalle['conyuge'] = {
                'nombre_completo': conyuge.nombre_completo,
                'numero_documento': conyuge.numero_documento,
            } if conyuge else None
        elif cliente.tipo_cliente == 'juridica' and perfil:
            detalle['perfil'] = {
                'razon_social': perfil.razon_social,
                'nit': perfil.nit,
                'matricula_comercio': perfil.matricula_comercio,
                'tipo_sociedad': perfil.tipo_sociedad,
                'actividad_economica': perfil.actividad_economica,
            }
            detalle['representantes'] = [
                {'nombre_completo': r.nombre_completo, 'numero_documento': r.numero_documento, 'cargo': r.cargo}
                for r in perfil.representantes.all()
            ]
        elif perfil:
            detalle['perfil'] = {
                'razon_social': perfil.razon_social,
                'nit': perfil.nit,
                'nombre_propietario': perfil.nombre_propietario,
                'documento_propietario': perfil.documento_propietario,
                'actividad_economica': perfil.actividad_economica,
            }

        detalle['polizas'] = [
            {
                'id': p.pk,
                'numero_poliza': p.numero_poliza,
                'compania': p.compania.nombre,
                'ramo': p.ramo.nombre,
                'estado': p.estado,
                'fin_vigencia': p.fin_vigencia,
            }
            for p in cliente.polizas.select_related('compania', 'ramo').order_by('-fecha_creacion')
        ]
        return ResultadoOperacion.exito(detalle)

    @classmethod
    def buscar_clientes(cls, usuario, query: str, limite: int = 20) -> ResultadoOperacion:
        """Clientes activos por nombre, razón social, CI/NIT o email."""
        denegado = cls._verificar_permiso(usuario, 'clientes.ver', "No tiene permisos para ver clientes")
        if denegado:
            return denegado

        query = (query or '').strip()
        if len(query) < 2:
            return ResultadoOperacion.exito([])

        clientes = cls._base_qs().filter(estado='activo').filter(_filtro_busqueda(query)).distinct()[:limite]
        return ResultadoOperacion.exito([cls._serializar(c) for c in clientes])
