"""
Vistas JSON de la gestión de cartera.

Cada vista traduce la petición a una llamada de servicio y devuelve
``ResultadoOperacion.to_dict()``: ``{"success": true, "data": ...}`` con
estado 200, o ``{"success": false, "error": ..., "details": ...}`` con 400.
Las descargas (Excel y PDF) devuelven el archivo directamente.
"""

import json

from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_GET, require_POST

from . import formato
from .services.catalogo import CatalogoService
from .services.cliente import ClienteService
from .services.cobranza import CobranzaService
from .services.documento import DocumentoService
from .services.equipo import EquipoService
from .services.gerencia import GerenciaService
from .services.permisos import PermisosService
from .services.poliza import PolizaService
from .services.reportes import ExportacionService, PDFReportesService
from .services.siniestro import SiniestroService


# =============================================================================
# HELPERS
# =============================================================================

def _serializar(objeto):
    """Los modelos viajan como {id, descripcion}; el resto tal cual."""
    if isinstance(objeto, models.Model):
        return {'id': objeto.pk, 'descripcion': str(objeto)}
    if isinstance(objeto, (list, tuple)):
        return [_serializar(o) for o in objeto]
    if isinstance(objeto, dict):
        return {k: _serializar(v) for k, v in objeto.items()}
    return objeto


def _respuesta(resultado):
    return JsonResponse(
        resultado.to_dict(_serializar),
        status=200 if resultado.exitoso else 400,
        encoder=DjangoJSONEncoder,
    )


def _descarga(resultado):
    if resultado.exitoso:
        return resultado.objeto
    return _respuesta(resultado)


def _error(mensaje, status=400):
    return JsonResponse({'success': False, 'error': mensaje}, status=status)


def _json(request):
    """Cuerpo JSON de la petición; ValueError si no es un objeto válido."""
    try:
        datos = json.loads(request.body or b'{}')
    except json.JSONDecodeError:
        raise ValueError("JSON inválido")
    if not isinstance(datos, dict):
        raise ValueError("Se esperaba un objeto JSON")
    return datos


def _multipart(request):
    """
    Datos de un formulario con archivos.

    El campo ``datos`` trae el JSON del formulario. Los archivos sueltos
    (cartas de cierre, UIF, PEP...) se agregan con su propio nombre y los
    documentos iniciales llegan como listas paralelas ``documentos`` y
    ``tipos_documento``.
    """
    try:
        datos = json.loads(request.POST.get('datos') or '{}')
    except json.JSONDecodeError:
        raise ValueError("JSON inválido")

    archivos = request.FILES.getlist('documentos')
    tipos = request.POST.getlist('tipos_documento')
    if archivos:
        datos['documentos'] = [
            {'archivo': archivo, 'tipo_documento': tipos[i] if i < len(tipos) else ''}
            for i, archivo in enumerate(archivos)
        ]

    for campo, archivo in request.FILES.items():
        if campo != 'documentos':
            datos[campo] = archivo
    return datos


def _entero(valor, defecto=None):
    try:
        return int(valor)
    except (TypeError, ValueError):
        return defecto


# =============================================================================
# COBRANZAS
# =============================================================================

@login_required
@require_GET
def cobranzas_dashboard(request):
    return _respuesta(CobranzaService.obtener_polizas_con_pendientes(request.user))


@login_required
@require_GET
def cobranzas_cuotas_poliza(request, poliza_id):
    return _respuesta(CobranzaService.obtener_cuotas_pendientes_por_poliza(request.user, poliza_id))


@login_required
@require_POST
def cobranzas_registrar_pago(request, cuota_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    resultado = CobranzaService.registrar_pago(
        request.user,
        cuota_id,
        datos.get('monto_pagado'),
        fecha_pago=datos.get('fecha_pago'),
        observaciones=datos.get('observaciones') or '',
    )
    return _respuesta(resultado)


@login_required
@require_POST
def cobranzas_redistribuir_exceso(request, cuota_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    resultado = CobranzaService.redistribuir_exceso(
        request.user,
        cuota_id,
        datos.get('monto_exceso'),
        datos.get('distribuciones') or [],
    )
    return _respuesta(resultado)


@login_required
@require_GET
def cobranzas_aviso_mora_datos(request, poliza_id):
    return _respuesta(CobranzaService.obtener_datos_aviso_mora(request.user, poliza_id))


@login_required
@require_GET
def cobranzas_aviso_mora_pdf(request, poliza_id):
    return _descarga(PDFReportesService.generar_aviso_mora(request.user, poliza_id))


@login_required
@require_GET
def cobranzas_exportar(request):
    resultado = ExportacionService.exportar_cobranzas_excel(
        request.user,
        request.GET.get('periodo', 'month'),
        request.GET.get('estado', 'all'),
        request.GET.get('desde'),
        request.GET.get('hasta'),
    )
    return _descarga(resultado)


# =============================================================================
# GERENCIA
# =============================================================================

@login_required
@require_GET
def gerencia_pendientes(request):
    return _respuesta(GerenciaService.obtener_polizas_pendientes(request.user))


@login_required
@require_POST
def gerencia_validar(request, poliza_id):
    return _respuesta(GerenciaService.validar_poliza(request.user, poliza_id))


@login_required
@require_POST
def gerencia_rechazar(request, poliza_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(GerenciaService.rechazar_poliza(request.user, poliza_id, datos.get('motivo') or ''))


# =============================================================================
# PÓLIZAS
# =============================================================================

@login_required
@require_GET
def polizas_lista(request):
    resultado = PolizaService.obtener_polizas(
        request.user,
        estado=request.GET.get('estado') or None,
        pagina=_entero(request.GET.get('page'), 1),
    )
    return _respuesta(resultado)


@login_required
@require_GET
def polizas_buscar(request):
    return _respuesta(PolizaService.buscar_polizas(request.user, request.GET.get('q', '')))


@login_required
@require_GET
def poliza_detalle(request, poliza_id):
    return _respuesta(PolizaService.obtener_detalle_poliza(request.user, poliza_id))


@login_required
@require_POST
def poliza_crear(request):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    resultado = PolizaService.crear_poliza(
        request.user,
        datos.get('poliza') or {},
        datos.get('cuotas') or [],
        datos.get('documentos') or (),
    )
    return _respuesta(resultado)


@login_required
@require_POST
def poliza_editar(request, poliza_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(PolizaService.actualizar_poliza(request.user, poliza_id, datos))


@login_required
@require_POST
def poliza_reenviar(request, poliza_id):
    return _respuesta(PolizaService.reenviar_a_validacion(request.user, poliza_id))


@login_required
@require_POST
def poliza_cronograma(request):
    """Cronograma sugerido para el formulario de alta; no guarda nada."""
    try:
        datos = _json(request)
        cronograma = PolizaService.generar_cronograma(
            formato.a_decimal(datos.get('prima_total')),
            formato.a_decimal(datos.get('cuota_inicial') or 0),
            _entero(datos.get('cantidad_cuotas'), 0),
            formato.a_fecha(datos.get('fecha_inicio')),
            datos.get('periodo') or 'mensual',
        )
    except (ValueError, TypeError) as e:
        return _error(str(e))

    return JsonResponse({'success': True, 'data': cronograma}, encoder=DjangoJSONEncoder)


@login_required
@require_GET
def poliza_carta_vencimiento(request, poliza_id):
    return _descarga(PDFReportesService.generar_carta_vencimiento(request.user, poliza_id))


@login_required
@require_GET
def produccion_exportar(request):
    hoy = timezone.localdate()
    resultado = ExportacionService.exportar_produccion_excel(
        request.user,
        _entero(request.GET.get('mes'), hoy.month),
        _entero(request.GET.get('anio'), hoy.year),
        estado_poliza=request.GET.get('estado', 'all'),
        regional=request.GET.get('regional') or None,
        compania_id=_entero(request.GET.get('compania')),
    )
    return _descarga(resultado)


# =============================================================================
# SINIESTROS
# =============================================================================

@login_required
@require_GET
def siniestros_lista(request):
    return _respuesta(SiniestroService.obtener_siniestros(request.user, estado=request.GET.get('estado') or None))


@login_required
@require_GET
def siniestro_detalle(request, siniestro_id):
    return _respuesta(SiniestroService.obtener_detalle(request.user, siniestro_id))


@login_required
@require_POST
def siniestro_registrar(request):
    try:
        datos = _multipart(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(SiniestroService.registrar_siniestro(request.user, datos))


@login_required
@require_POST
def siniestro_observacion(request, siniestro_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(SiniestroService.agregar_observacion(request.user, siniestro_id, datos.get('observacion') or ''))


@login_required
@require_POST
def siniestro_documentos(request, siniestro_id):
    try:
        datos = _multipart(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(SiniestroService.agregar_documentos(request.user, siniestro_id, datos.get('documentos') or []))


@login_required
@require_POST
def siniestro_cerrar(request, siniestro_id):
    try:
        datos = _multipart(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(SiniestroService.cerrar_siniestro(request.user, siniestro_id, datos))


@login_required
@require_GET
def siniestros_polizas_activas(request):
    return _respuesta(SiniestroService.buscar_polizas_activas(request.user, request.GET.get('q', '')))


@login_required
@require_GET
def siniestros_coberturas(request, ramo_id):
    return _respuesta(SiniestroService.obtener_coberturas_por_ramo(request.user, ramo_id))


# =============================================================================
# CATÁLOGOS
# =============================================================================

@login_required
@require_GET
def catalogo_lista(request, tipo):
    resultado = CatalogoService.listar(
        request.user,
        tipo,
        incluir_inactivos=request.GET.get('inactivos') == '1',
        compania_id=_entero(request.GET.get('compania')),
        ramo_id=_entero(request.GET.get('ramo')),
    )
    return _respuesta(resultado)


@login_required
@require_POST
def catalogo_crear(request, tipo):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(CatalogoService.crear(request.user, tipo, datos))


@login_required
@require_POST
def catalogo_editar(request, tipo, objeto_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(CatalogoService.actualizar(request.user, tipo, objeto_id, datos))


@login_required
@require_POST
def catalogo_desactivar(request, tipo, objeto_id):
    return _respuesta(CatalogoService.desactivar(request.user, tipo, objeto_id))


@login_required
@require_POST
def catalogo_reactivar(request, tipo, objeto_id):
    return _respuesta(CatalogoService.reactivar(request.user, tipo, objeto_id))


# =============================================================================
# CLIENTES
# =============================================================================

@login_required
@require_GET
def clientes_lista(request):
    resultado = ClienteService.obtener_clientes(
        request.user,
        query=request.GET.get('q', ''),
        estado=request.GET.get('estado') or None,
        pagina=_entero(request.GET.get('page'), 1),
    )
    return _respuesta(resultado)


@login_required
@require_GET
def clientes_buscar(request):
    return _respuesta(ClienteService.buscar_clientes(request.user, request.GET.get('q', '')))


@login_required
@require_GET
def cliente_detalle(request, cliente_id):
    return _respuesta(ClienteService.obtener_cliente(request.user, cliente_id))


@login_required
@require_POST
def cliente_crear(request):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(ClienteService.crear_cliente(request.user, datos.get('tipo') or '', datos.get('datos') or {}))


@login_required
@require_POST
def cliente_estado(request, cliente_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(ClienteService.cambiar_estado_cliente(request.user, cliente_id, datos.get('estado') or ''))


# =============================================================================
# EQUIPOS
# =============================================================================

@login_required
@require_GET
def equipos_lista(request):
    return _respuesta(EquipoService.obtener_equipos(request.user))


@login_required
@require_POST
def equipo_crear(request):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(EquipoService.crear_equipo(request.user, datos.get('nombre') or '', datos.get('descripcion') or ''))


@login_required
@require_POST
def equipo_eliminar(request, equipo_id):
    return _respuesta(EquipoService.eliminar_equipo(request.user, equipo_id))


@login_required
@require_GET
def equipo_usuarios_disponibles(request, equipo_id):
    return _respuesta(EquipoService.obtener_usuarios_disponibles(request.user, equipo_id))


@login_required
@require_POST
def equipo_agregar_miembro(request, equipo_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    resultado = EquipoService.agregar_miembro(
        request.user, equipo_id, _entero(datos.get('usuario_id')), datos.get('rol_equipo') or 'miembro'
    )
    return _respuesta(resultado)


@login_required
@require_POST
def equipo_remover_miembro(request, miembro_id):
    return _respuesta(EquipoService.remover_miembro(request.user, miembro_id))


@login_required
@require_POST
def equipo_cambiar_rol(request, miembro_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    return _respuesta(EquipoService.cambiar_rol_miembro(request.user, miembro_id, datos.get('rol_equipo') or ''))


# =============================================================================
# PERMISOS
# =============================================================================

@login_required
@require_GET
def permisos_matriz(request):
    return _respuesta(PermisosService.obtener_matriz_permisos(request.user))


@login_required
@require_POST
def permisos_actualizar_rol(request):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    resultado = PermisosService.actualizar_permiso_rol(
        request.user, datos.get('rol') or '', datos.get('permiso') or '', bool(datos.get('habilitado'))
    )
    return _respuesta(resultado)


@login_required
@require_POST
def permisos_asignar_usuario(request, usuario_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    expira_en = parse_datetime(datos['expira_en']) if datos.get('expira_en') else None
    if expira_en is not None and timezone.is_naive(expira_en):
        expira_en = timezone.make_aware(expira_en)

    usuario = get_object_or_404(get_user_model(), pk=usuario_id)
    return _respuesta(PermisosService.asignar_permiso_usuario(request.user, usuario, datos.get('permiso') or '', expira_en))


@login_required
@require_POST
def permisos_revocar_usuario(request, usuario_id):
    try:
        datos = _json(request)
    except ValueError as e:
        return _error(str(e))

    usuario = get_object_or_404(get_user_model(), pk=usuario_id)
    return _respuesta(PermisosService.revocar_permiso_usuario(request.user, usuario, datos.get('permiso') or ''))


# =============================================================================
# DOCUMENTOS
# =============================================================================

@login_required
@require_POST
def documento_subir_temporal(request):
    archivo = request.FILES.get('archivo')
    if archivo is None:
        return _error("Debe adjuntar un archivo")

    resultado = DocumentoService.subir_temporal(
        request.user, request.POST.get('sesion_id') or 'sesion', archivo, request.POST.get('entidad') or ''
    )
    return _respuesta(resultado)


@login_required
@require_GET
def documentos_activos(request, entidad, entidad_id):
    return _respuesta(DocumentoService.obtener_documentos_activos(request.user, entidad, entidad_id))


@login_required
@require_GET
def documentos_todos(request, entidad, entidad_id):
    return _respuesta(DocumentoService.obtener_todos_documentos(request.user, entidad, entidad_id))


@login_required
@require_POST
def documento_descartar(request, documento_id):
    return _respuesta(DocumentoService.descartar_documento(request.user, documento_id))


@login_required
@require_POST
def documento_restaurar(request, documento_id):
    return _respuesta(DocumentoService.restaurar_documento(request.user, documento_id))


@login_required
@require_POST
def documento_eliminar(request, documento_id):
    return _respuesta(DocumentoService.eliminar_documento_permanente(request.user, documento_id))
