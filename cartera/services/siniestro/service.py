"""

Servicio de Siniestros.

Responsabilidad única: ciclo de vida de los siniestros reportados sobre
pólizas activas (registro, seguimiento y cierre).

Un siniestro nace ``abierto`` y se cierra una sola vez por una de tres vías:

    rechazo        -> rechazado
    declinacion    -> declinado
    indemnizacion  -> concluido

"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from cartera import formato
from cartera.validators import emails_invalidos, validar_archivo

from ..base import BaseService, ResultadoOperacion, ResultadoValidacion
from ..calculations import CENTAVO, redondear
from ..documento import DocumentoService


logger = logging.getLogger(__name__)


ROLES_SINIESTROS = ('siniestros', 'comercial', 'admin')

MENSAJE_SIN_ACCESO = "No tiene permisos para acceder al módulo de siniestros"

MOTIVOS_RECHAZO = ('Mora', 'Incumplimiento', 'Sin cobertura', 'No aplicable')

MOTIVOS_DECLINACION = ('Solicitud cliente', 'Pagó otra póliza')

ESTADO_POR_CIERRE = {
    'rechazo': 'rechazado',
    'declinacion': 'declinado',
    'indemnizacion': 'concluido',
}

LONGITUD_MINIMA_LUGAR = 5

LONGITUD_RECOMENDADA_DESCRIPCION = 20


class SiniestroService(BaseService):
    """

    Servicio para gestión de Siniestros.

    USO:

        from cartera.services.siniestro import SiniestroService

        resultado = SiniestroService.registrar_siniestro(request.user, {

            'poliza_id': poliza.pk,

            'fecha_siniestro': date(2026, 3, 1),

            'fecha_reporte': date(2026, 3, 2),

            'lugar_hecho': 'Av. Arce 2020',

            'departamento': 'LP',

            'monto_reserva': Decimal('5000'),

            'moneda': 'Bs',

            'descripcion': 'Colisión frontal en intersección',

            'contactos': ['asegurado@correo.com'],

            'coberturas': [cobertura.pk],

            'documentos': [{'tipo_documento': 'Denuncia', 'archivo': archivo}],

        })

        resultado.advertencias   # avisos no bloqueantes

    """

    @classmethod
    def _verificar_acceso(cls, usuario) -> Optional[ResultadoOperacion]:
        return cls._verificar_rol(usuario, ROLES_SINIESTROS, MENSAJE_SIN_ACCESO)

    # =========================================================================

    # VALIDACIONES

    # =========================================================================

    @staticmethod
    def _fecha(validacion, datos, campo, nombre) -> Any:
        """Lee y valida una fecha obligatoria que no puede ser futura."""

        try:
            fecha = formato.a_fecha(datos.get(campo))
        except ValueError:
            validacion.agregar_error(campo, f"La fecha {nombre} tiene un formato inválido")
            return None

        if fecha is None:
            validacion.agregar_error(campo, f"La fecha {nombre} es obligatoria")
        elif fecha > timezone.localdate():
            validacion.agregar_error(campo, f"La fecha {nombre} no puede ser futura")
        return fecha

    @classmethod
    def validar_detalles(cls, datos: Dict[str, Any]) -> ResultadoValidacion:
        """Fechas, lugar, departamento, reserva, moneda, descripción y contactos."""
        from cartera.models import DEPARTAMENTO_CHOICES, MONEDAS_VALIDAS

        validacion = ResultadoValidacion(es_valido=True)

        fecha_siniestro = cls._fecha(validacion, datos, 'fecha_siniestro', "del siniestro")
        fecha_reporte = cls._fecha(validacion, datos, 'fecha_reporte', "de reporte")
        if fecha_siniestro and fecha_reporte and fecha_reporte < fecha_siniestro:
            validacion.agregar_error(
                'fecha_reporte', "La fecha de reporte no puede ser anterior a la fecha del siniestro"
            )

        lugar = (datos.get('lugar_hecho') or '').strip()
        if not lugar:
            validacion.agregar_error('lugar_hecho', "El lugar del hecho es obligatorio")
        elif len(lugar) < LONGITUD_MINIMA_LUGAR:
            validacion.agregar_error('lugar_hecho', "El lugar del hecho debe tener al menos 5 caracteres")

        if not datos.get('departamento'):
            validacion.agregar_error('departamento', "Debe seleccionar un departamento")
        elif datos['departamento'] not in dict(DEPARTAMENTO_CHOICES):
            validacion.agregar_error('departamento', "Departamento inválido")

        if datos.get('monto_reserva') in (None, ''):
            validacion.agregar_error('monto_reserva', "El monto de reserva es obligatorio")
        else:
            try:
                if redondear(formato.a_decimal(datos['monto_reserva'])) <= 0:
                    validacion.agregar_error('monto_reserva', "El monto de reserva debe ser mayor a 0")
            except ValueError:
                validacion.agregar_error('monto_reserva', "El monto de reserva debe ser numérico")

        if not datos.get('moneda'):
            validacion.agregar_error('moneda', "Debe seleccionar una moneda")
        elif datos['moneda'] not in MONEDAS_VALIDAS:
            validacion.agregar_error('moneda', "Moneda inválida")

        descripcion = (datos.get('descripcion') or '').strip()
        if not descripcion:
            validacion.agregar_error('descripcion', "La descripción del siniestro es obligatoria")
        elif len(descripcion) < LONGITUD_RECOMENDADA_DESCRIPCION:
            validacion.agregar_advertencia("La descripción es muy corta. Se recomienda incluir más detalles")

        contactos = datos.get('contactos') or []
        if not contactos:
            validacion.agregar_advertencia(
                "No se agregaron contactos. Se recomienda agregar al menos un email de contacto"
            )
        else:
            invalidos = emails_invalidos(contactos)
            if invalidos:
                validacion.agregar_error(
                    'contactos', f"Los siguientes emails son inválidos: {', '.join(invalidos)}"
                )

        return validacion

    @classmethod
    def validar_coberturas(cls, datos: Dict[str, Any]) -> ResultadoValidacion:
        validacion = ResultadoValidacion(es_valido=True)

        tiene_catalogo = bool(datos.get('coberturas'))
        nueva = datos.get('nueva_cobertura')

        if not tiene_catalogo and not nueva:
            validacion.agregar_error(
                'coberturas',
                "Debe seleccionar al menos una cobertura del catálogo o agregar una personalizada",
            )

        if nueva:
            nombre = (nueva.get('nombre') or '').strip()
            if not nombre:
                validacion.agregar_error(
                    'nueva_cobertura', "El nombre de la cobertura personalizada es obligatorio"
                )
            elif len(nombre) < 3:
                validacion.agregar_error(
                    'nueva_cobertura', "El nombre de la cobertura personalizada debe tener al menos 3 caracteres"
                )
            if not tiene_catalogo:
                validacion.agregar_advertencia(
                    "Solo se agregó una cobertura personalizada. Considere si alguna del catálogo aplica también"
                )

        return validacion

    @classmethod
    def validar_documentos(cls, documentos: List[Dict[str, Any]]) -> ResultadoValidacion:
        validacion = ResultadoValidacion(es_valido=True)

        if not documentos:
            validacion.agregar_advertencia(
                "No se agregaron documentos iniciales. "
                "Se recomienda subir al menos fotografías o formulario de denuncia"
            )

        for indice, documento in enumerate(documentos or [], start=1):
            if not documento.get('tipo_documento'):
                validacion.agregar_error(
                    f'documento_{indice}_tipo', f"El documento {indice} no tiene tipo especificado"
                )
            archivo = documento.get('archivo')
            if archivo is None:
                validacion.agregar_error(
                    f'documento_{indice}_archivo', f"El documento {indice} no tiene archivo asociado"
                )
                continue
            try:
                validar_archivo(archivo)
            except ValidationError as e:
                validacion.agregar_error(f'documento_{indice}_archivo', f'"{archivo.name}": {e.messages[0]}')

        return validacion

    @classmethod
    def validar_registro(cls, datos: Dict[str, Any]) -> ResultadoValidacion:
        """Formulario completo: póliza, detalles, coberturas y documentos."""
        validacion = ResultadoValidacion(es_valido=True)

        if not datos.get('poliza_id'):
            validacion.agregar_error('poliza_id', "Debe seleccionar una póliza")

        for parcial in (
            cls.validar_detalles(datos),
            cls.validar_coberturas(datos),
            cls.validar_documentos(datos.get('documentos') or []),
        ):
            validacion.fusionar(parcial)

        return validacion

    @staticmethod
    def _validar_archivo_cierre(validacion, datos, campo, nombre) -> None:
        archivo = datos.get(campo)
        if archivo is None:
            validacion.agregar_error(campo, f"Debe adjuntar {nombre}")
            return
        try:
            validar_archivo(archivo)
        except ValidationError as e:
            validacion.agregar_error(campo, e.messages[0])

    @staticmethod
    def _monto_cierre(validacion, datos, campo, nombre, permite_cero=False) -> Optional[Decimal]:
        valor = datos.get(campo)
        if valor in (None, ''):
            validacion.agregar_error(campo, f"{nombre} es obligatorio")
            return None
        try:
            monto = redondear(formato.a_decimal(valor))
        except ValueError:
            validacion.agregar_error(campo, f"{nombre} debe ser numérico")
            return None
        if permite_cero and monto < 0:
            validacion.agregar_error(campo, f"{nombre} no puede ser negativo")
        elif not permite_cero and monto <= 0:
            validacion.agregar_error(campo, f"{nombre} debe ser mayor a 0")
        return monto

    @classmethod
    def validar_cierre(cls, datos_cierre: Dict[str, Any]) -> ResultadoValidacion:
        """
        Valida los datos de cierre según su tipo.

        En la indemnización, un monto pagado mayor al reclamado o distinto de
        ``reclamado - deducible`` solo genera advertencias.
        """
        from cartera.models import MONEDAS_VALIDAS

        validacion = ResultadoValidacion(es_valido=True)
        tipo = datos_cierre.get('tipo_cierre')

        if tipo == 'rechazo':
            if not datos_cierre.get('motivo'):
                validacion.agregar_error('motivo', "Debe seleccionar un motivo de rechazo")
            elif datos_cierre['motivo'] not in MOTIVOS_RECHAZO:
                validacion.agregar_error('motivo', "Motivo de rechazo inválido")
            cls._validar_archivo_cierre(validacion, datos_cierre, 'carta_rechazo', "la carta de rechazo")

        elif tipo == 'declinacion':
            if not datos_cierre.get('motivo'):
                validacion.agregar_error('motivo', "Debe seleccionar un motivo de declinación")
            elif datos_cierre['motivo'] not in MOTIVOS_DECLINACION:
                validacion.agregar_error('motivo', "Motivo de declinación inválido")
            cls._validar_archivo_cierre(validacion, datos_cierre, 'carta_respaldo', "la carta de respaldo")

        elif tipo == 'indemnizacion':
            cls._validar_archivo_cierre(validacion, datos_cierre, 'archivo_uif', "el archivo UIF")
            cls._validar_archivo_cierre(validacion, datos_cierre, 'archivo_pep', "el archivo PEP")

            reclamado = cls._monto_cierre(validacion, datos_cierre, 'monto_reclamado', "El monto reclamado")
            deducible = cls._monto_cierre(validacion, datos_cierre, 'deducible', "El deducible", permite_cero=True)
            pagado = cls._monto_cierre(validacion, datos_cierre, 'monto_pagado', "El monto pagado")

            for campo, nombre in (
                ('moneda_reclamado', "del monto reclamado"),
                ('moneda_deducible', "del deducible"),
                ('moneda_pagado', "del monto pagado"),
            ):
                if datos_cierre.get(campo) not in MONEDAS_VALIDAS:
                    validacion.agregar_error(campo, f"Debe especificar la moneda {nombre}")

            if pagado is not None and reclamado is not None and pagado > reclamado:
                validacion.agregar_advertencia(
                    "El monto pagado es mayor al monto reclamado. Verifique los valores ingresados"
                )
            if None not in (pagado, reclamado, deducible):
                neto = reclamado - deducible
                if abs(pagado - neto) > CENTAVO:
                    validacion.agregar_advertencia(
                        f"El monto pagado ({pagado}) no coincide con el monto neto esperado "
                        f"({neto:.2f} = reclamado - deducible). Verifique los cálculos"
                    )

        else:
            validacion.agregar_error('tipo_cierre', "Tipo de cierre inválido")

        return validacion

    # =========================================================================

    # REGISTRO

    # =========================================================================

    @staticmethod
    def generar_codigo(anio: int) -> str:
        """Siguiente código correlativo del año: ``2026-00001``, ``2026-00002``..."""
        from cartera.models import Siniestro

        prefijo = f"{anio}-"
        ultimo = (
            Siniestro.objects.filter(codigo_siniestro__startswith=prefijo)
            .order_by('-codigo_siniestro')
            .values_list('codigo_siniestro', flat=True)
            .first()
        )
        siguiente = int(ultimo[len(prefijo):]) + 1 if ultimo else 1
        return f"{prefijo}{siguiente:05d}"

    @staticmethod
    def _registrar_historial(siniestro, usuario, accion: str, **detalles) -> None:
        from cartera.models import HistorialSiniestro

        HistorialSiniestro.objects.create(siniestro=siniestro, usuario=usuario, accion=accion, detalles=detalles)

    @classmethod
    def registrar_siniestro(cls, usuario, datos: Dict[str, Any]) -> ResultadoOperacion:
        """
        Registra un siniestro abierto con sus coberturas y documentos iniciales.

        Una cobertura personalizada se agrega primero al catálogo del ramo de
        la póliza (``es_custom=True``). Todo ocurre en una sola transacción.
        """
        from cartera.models import CoberturaCatalogo, Poliza, Siniestro

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        validacion = cls.validar_registro(datos)
        if not validacion.es_valido:
            return ResultadoOperacion.desde_validacion(validacion)

        try:
            poliza = Poliza.objects.get(pk=datos['poliza_id'], estado='activa')
        except Poliza.DoesNotExist:
            return ResultadoOperacion.fallo(
                {'poliza_id': "La póliza no existe o no está activa"}, "La póliza no existe o no está activa"
            )

        try:
            with transaction.atomic():
                fecha_siniestro = formato.a_fecha(datos['fecha_siniestro'])
                siniestro = Siniestro.objects.create(
                    poliza=poliza,
                    codigo_siniestro=cls.generar_codigo(fecha_siniestro.year),
                    fecha_siniestro=fecha_siniestro,
                    fecha_reporte=formato.a_fecha(datos['fecha_reporte']),
                    fecha_reporte_compania=formato.a_fecha(datos.get('fecha_reporte_compania')),
                    lugar_hecho=datos['lugar_hecho'].strip(),
                    departamento=datos['departamento'],
                    monto_reserva=formato.a_decimal(datos['monto_reserva']),
                    moneda=datos['moneda'],
                    descripcion=datos['descripcion'].strip(),
                    contactos=list(datos.get('contactos') or []),
                    responsable_id=datos.get('responsable_id') or usuario.pk,
                    creado_por=usuario,
                )

                coberturas = list(CoberturaCatalogo.objects.filter(pk__in=datos.get('coberturas') or []))
                nueva = datos.get('nueva_cobertura')
                if nueva:
                    coberturas.append(CoberturaCatalogo.objects.create(
                        nombre=nueva['nombre'].strip(),
                        descripcion=(nueva.get('descripcion') or '').strip(),
                        ramo=poliza.ramo,
                        es_custom=True,
                    ))
                siniestro.coberturas.set(coberturas)

                for documento in datos.get('documentos') or []:
                    DocumentoService.registrar_documento(
                        usuario, 'siniestro', siniestro, documento['tipo_documento'], documento['archivo']
                    )

                cls._registrar_historial(
                    siniestro, usuario, 'siniestro_registrado',
                    codigo=siniestro.codigo_siniestro,
                    coberturas=len(coberturas),
                    documentos=len(datos.get('documentos') or []),
                )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al registrar el siniestro")

        logger.info(f"Siniestro {siniestro.codigo_siniestro} registrado por {usuario.username}")
        return ResultadoOperacion.exito(
            {'siniestro_id': siniestro.pk, 'codigo_siniestro': siniestro.codigo_siniestro},
            "Siniestro registrado correctamente",
            advertencias=validacion.advertencias,
        )

    # =========================================================================

    # SEGUIMIENTO

    # =========================================================================

    @classmethod
    def _obtener(cls, siniestro_id):
        from cartera.models import Siniestro

        try:
            return Siniestro.objects.select_related('poliza').get(pk=siniestro_id)
        except Siniestro.DoesNotExist:
            return None

    @classmethod
    def agregar_observacion(cls, usuario, siniestro_id: int, observacion: str) -> ResultadoOperacion:
        from cartera.models import ObservacionSiniestro

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        observacion = (observacion or '').strip()
        if not observacion:
            return ResultadoOperacion.fallo(
                {'observacion': "La observación no puede estar vacía"}, "La observación no puede estar vacía"
            )

        siniestro = cls._obtener(siniestro_id)
        if siniestro is None:
            return ResultadoOperacion.error("Siniestro no encontrado")

        nota = ObservacionSiniestro.objects.create(siniestro=siniestro, observacion=observacion, usuario=usuario)

        try:
            cls._registrar_historial(siniestro, usuario, 'observacion_agregada', observacion_id=nota.pk)
        except Exception as e:
            logger.error(f"No se pudo registrar el historial del siniestro {siniestro.codigo_siniestro}: {e}")

        return ResultadoOperacion.exito(nota, "Observación agregada")

    @classmethod
    def agregar_documentos(cls, usuario, siniestro_id: int, documentos: List[Dict[str, Any]]) -> ResultadoOperacion:
        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        if not documentos:
            return ResultadoOperacion.error("No se enviaron documentos")

        validacion = cls.validar_documentos(documentos)
        if not validacion.es_valido:
            return ResultadoOperacion.desde_validacion(validacion)

        siniestro = cls._obtener(siniestro_id)
        if siniestro is None:
            return ResultadoOperacion.error("Siniestro no encontrado")

        try:
            with transaction.atomic():
                creados = [
                    DocumentoService.registrar_documento(
                        usuario, 'siniestro', siniestro, documento['tipo_documento'], documento['archivo']
                    )
                    for documento in documentos
                ]
                for creado in creados:
                    cls._registrar_historial(
                        siniestro, usuario, 'documento_agregado',
                        documento_id=creado.pk, tipo_documento=creado.tipo_documento,
                        nombre_archivo=creado.nombre_archivo,
                    )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al agregar los documentos")

        return ResultadoOperacion.exito(
            [DocumentoService._serializar(d) for d in creados],
            f"{len(creados)} documento(s) agregado(s)",
        )

    # =========================================================================

    # CIERRE

    # =========================================================================

    @classmethod
    def cerrar_siniestro(cls, usuario, siniestro_id: int, datos_cierre: Dict[str, Any]) -> ResultadoOperacion:
        """
        Cierra un siniestro abierto. El estado final depende del tipo de cierre.

        Los archivos obligatorios del cierre se guardan como documentos del
        siniestro y se registra la acción en el historial.
        """
        from cartera.models import Siniestro

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        validacion = cls.validar_cierre(datos_cierre)
        if not validacion.es_valido:
            return ResultadoOperacion.desde_validacion(validacion)

        tipo = datos_cierre['tipo_cierre']

        try:
            with transaction.atomic():
                try:
                    siniestro = Siniestro.objects.select_for_update().get(pk=siniestro_id)
                except Siniestro.DoesNotExist:
                    return ResultadoOperacion.error("Siniestro no encontrado")

                if siniestro.esta_cerrado:
                    return ResultadoOperacion.error("El siniestro ya está cerrado")

                siniestro.estado = ESTADO_POR_CIERRE[tipo]
                siniestro.tipo_cierre = tipo
                siniestro.fecha_cierre = timezone.now()
                siniestro.cerrado_por = usuario

                if tipo == 'indemnizacion':
                    siniestro.monto_reclamado = formato.a_decimal(datos_cierre['monto_reclamado'])
                    siniestro.moneda_reclamado = datos_cierre['moneda_reclamado']
                    siniestro.deducible = formato.a_decimal(datos_cierre['deducible'])
                    siniestro.moneda_deducible = datos_cierre['moneda_deducible']
                    siniestro.monto_pagado = formato.a_decimal(datos_cierre['monto_pagado'])
                    siniestro.moneda_pagado = datos_cierre['moneda_pagado']
                    siniestro.es_pago_comercial = bool(datos_cierre.get('es_pago_comercial'))
                    archivos = ('archivo_uif', 'archivo_pep')
                else:
                    siniestro.motivo_cierre = datos_cierre['motivo']
                    archivos = ('carta_rechazo',) if tipo == 'rechazo' else ('carta_respaldo',)

                siniestro.save()

                for campo in archivos:
                    DocumentoService.registrar_documento(usuario, 'siniestro', siniestro, campo, datos_cierre[campo])

                cls._registrar_historial(
                    siniestro, usuario, 'siniestro_cerrado',
                    tipo_cierre=tipo,
                    estado=siniestro.estado,
                    motivo=siniestro.motivo_cierre,
                )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al cerrar el siniestro")

        logger.info(f"Siniestro {siniestro.codigo_siniestro} cerrado ({tipo}) por {usuario.username}")
        return ResultadoOperacion.exito(
            {'siniestro_id': siniestro.pk, 'estado_final': siniestro.estado},
            "Siniestro cerrado correctamente",
            advertencias=validacion.advertencias,
        )

    # =========================================================================

    # CONSULTAS

    # =========================================================================

    @staticmethod
    def _serializar(siniestro) -> Dict[str, Any]:
        poliza = siniestro.poliza
        return {
            'id': siniestro.pk,
            'codigo_siniestro': siniestro.codigo_siniestro,
            'numero_poliza': poliza.numero_poliza,
            'cliente': poliza.cliente.nombre_completo,
            'compania': poliza.compania.nombre,
            'ramo': poliza.ramo.nombre,
            'fecha_siniestro': siniestro.fecha_siniestro,
            'fecha_reporte': siniestro.fecha_reporte,
            'departamento': siniestro.departamento,
            'monto_reserva': siniestro.monto_reserva,
            'moneda': siniestro.moneda,
            'estado': siniestro.estado,
            'responsable': siniestro.responsable.username if siniestro.responsable else None,
            'fecha_cierre': siniestro.fecha_cierre,
            'dias_abierto': siniestro.dias_abierto,
        }

    @staticmethod
    def _base_qs():
        from cartera.models import Siniestro

        return Siniestro.objects.select_related(
            'poliza', 'poliza__cliente', 'poliza__cliente__natural', 'poliza__cliente__juridico',
            'poliza__cliente__unipersonal', 'poliza__compania', 'poliza__ramo', 'responsable',
        )

    @classmethod
    def calcular_estadisticas(cls, hoy=None) -> Dict[str, Any]:
        from cartera.models import Siniestro

        hoy = hoy or timezone.localdate()
        inicio_mes = hoy.replace(day=1)
        qs = Siniestro.objects.all()

        por_estado = {estado: 0 for estado, _ in Siniestro.ESTADO_CHOICES}
        for fila in qs.values('estado').annotate(total=Count('id')):
            por_estado[fila['estado']] = fila['total']

        cerrados = qs.filter(fecha_cierre__isnull=False)
        duraciones = [
            (s.fecha_cierre.date() - s.fecha_reporte).days
            for s in cerrados.only('fecha_cierre', 'fecha_reporte')
        ]

        return {
            'total_abiertos': por_estado['abierto'],
            'total_cerrados_mes': cerrados.filter(fecha_cierre__date__gte=inicio_mes).count(),
            'monto_total_reservado': qs.filter(estado='abierto').aggregate(
                total=Sum('monto_reserva'))['total'] or Decimal('0'),
            'promedio_dias_cierre': round(sum(duraciones) / len(duraciones), 1) if duraciones else 0,
            'siniestros_por_estado': por_estado,
            'siniestros_por_ramo': list(
                qs.values('poliza__ramo__nombre').annotate(total=Count('id')).order_by('-total')
            ),
        }

    @classmethod
    def obtener_siniestros(cls, usuario, estado: Optional[str] = None) -> ResultadoOperacion:
        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        qs = cls._base_qs().order_by('-fecha_siniestro')
        if estado:
            qs = qs.filter(estado=estado)

        return ResultadoOperacion.exito({
            'siniestros': [cls._serializar(s) for s in qs],
            'stats': cls.calcular_estadisticas(),
        })

    @classmethod
    def obtener_detalle(cls, usuario, siniestro_id: int) -> ResultadoOperacion:
        from cartera.models import Siniestro

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        try:
            siniestro = cls._base_qs().select_related('cerrado_por', 'creado_por').get(pk=siniestro_id)
        except Siniestro.DoesNotExist:
            return ResultadoOperacion.error("Siniestro no encontrado")

        detalle = cls._serializar(siniestro)
        detalle.update({
            'fecha_reporte_compania': siniestro.fecha_reporte_compania,
            'lugar_hecho': siniestro.lugar_hecho,
            'descripcion': siniestro.descripcion,
            'contactos': siniestro.contactos,
            'tipo_cierre': siniestro.tipo_cierre,
            'motivo_cierre': siniestro.motivo_cierre,
            'monto_reclamado': siniestro.monto_reclamado,
            'moneda_reclamado': siniestro.moneda_reclamado,
            'deducible': siniestro.deducible,
            'moneda_deducible': siniestro.moneda_deducible,
            'monto_pagado': siniestro.monto_pagado,
            'moneda_pagado': siniestro.moneda_pagado,
            'es_pago_comercial': siniestro.es_pago_comercial,
            'cerrado_por': siniestro.cerrado_por.username if siniestro.cerrado_por else None,
            'coberturas': [
                {'id': c.pk, 'nombre': c.nombre, 'es_custom': c.es_custom} for c in siniestro.coberturas.all()
            ],
            'observaciones': [
                {
                    'id': o.pk,
                    'observacion': o.observacion,
                    'usuario': o.usuario.username if o.usuario else None,
                    'fecha': o.fecha_creacion,
                }
                for o in siniestro.observaciones.select_related('usuario')
            ],
            'historial': [
                {
                    'accion': h.accion,
                    'detalles': h.detalles,
                    'usuario': h.usuario.username if h.usuario else None,
                    'fecha': h.fecha_creacion,
                }
                for h in siniestro.historial.select_related('usuario')
            ],
            'documentos': [
                DocumentoService._serializar(d)
                for d in siniestro.documentos.filter(estado='activo').select_related('subido_por')
            ],
        })
        return ResultadoOperacion.exito(detalle)

    @classmethod
    def buscar_polizas_activas(cls, usuario, query: str, limite: int = 20) -> ResultadoOperacion:
        """Pólizas activas por número, nombre o documento del asegurado."""
        from cartera.models import Poliza

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        query = (query or '').strip()
        if len(query) < 2:
            return ResultadoOperacion.exito([])

        filtro = (
            Q(numero_poliza__icontains=query)
            | Q(cliente__natural__numero_documento__icontains=query)
            | Q(cliente__natural__primer_nombre__icontains=query)
            | Q(cliente__natural__segundo_nombre__icontains=query)
            | Q(cliente__natural__primer_apellido__icontains=query)
            | Q(cliente__natural__segundo_apellido__icontains=query)
            | Q(cliente__juridico__nit__icontains=query)
            | Q(cliente__juridico__razon_social__icontains=query)
            | Q(cliente__unipersonal__nit__icontains=query)
            | Q(cliente__unipersonal__razon_social__icontains=query)
        )
        polizas = (
            Poliza.objects.filter(estado='activa')
            .filter(filtro)
            .select_related('cliente', 'cliente__natural', 'cliente__juridico', 'cliente__unipersonal',
                            'compania', 'ramo', 'responsable')
            .distinct()
            .order_by('numero_poliza')[:limite]
        )
        return ResultadoOperacion.exito([
            {
                'id': p.pk,
                'numero_poliza': p.numero_poliza,
                'ramo_id': p.ramo_id,
                'ramo': p.ramo.nombre,
                'cliente': p.cliente.nombre_completo,
                'documento_cliente': p.cliente.documento,
                'compania': p.compania.nombre,
                'inicio_vigencia': p.inicio_vigencia,
                'fin_vigencia': p.fin_vigencia,
                'prima_total': p.prima_total,
                'moneda': p.moneda,
                'responsable': p.responsable.username,
                'siniestros_previos': p.siniestros.count(),
            }
            for p in polizas
        ])

    @classmethod
    def obtener_coberturas_por_ramo(cls, usuario, ramo_id: int) -> ResultadoOperacion:
        from cartera.models import CoberturaCatalogo

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        coberturas = CoberturaCatalogo.objects.filter(ramo_id=ramo_id, activo=True).order_by('nombre')
        return ResultadoOperacion.exito([
            {'id': c.pk, 'nombre': c.nombre, 'descripcion': c.descripcion, 'es_custom': c.es_custom}
            for c in coberturas
        ])

