"""
Servicio de Dominio para Cobranzas.

Gestiona el cobro de las cuotas de las pólizas activas:

    1. **Registro de pagos**: clasifica cada pago como parcial, exacto o con
       exceso comparándolo con el monto de la cuota.
    2. **Redistribución de excesos**: aplica el excedente de una cuota sobre
       otras cuotas pendientes de la misma cartera.
    3. **Panel de cobranzas**: pólizas con cuotas pendientes y estadísticas.
    4. **Avisos y recordatorios**: datos para el aviso de mora y texto de
       recordatorio para email/WhatsApp.

Cada pago o redistribución deja una línea en ``Cuota.observaciones`` y un
``MovimientoCuota`` en la bitácora estructurada. El saldo de una cuota es
``monto - suma(pagos parciales)``.

Ejemplo de Uso::

    from cartera.services.cobranza import CobranzaService

    resultado = CobranzaService.registrar_pago(
        request.user, cuota_id=15, monto_pagado=Decimal('700'), fecha_pago=date.today()
    )
    if resultado.exitoso and resultado.objeto['tipo_pago'] == 'exceso':
        exceso = resultado.objeto['exceso_generado']
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import Prefetch, Sum
from django.utils import timezone

from cartera import formato
from ..base import BaseService, ResultadoOperacion
from ..calculations import CENTAVO, redondear


logger = logging.getLogger(__name__)


ROLES_COBRANZA = ('cobranza', 'admin')

MENSAJE_SIN_ACCESO = "No tiene permisos para acceder al módulo de cobranzas"

MENSAJE_DISTRIBUCION_INVALIDA = "Cada distribución debe indicar cuota_id y monto_a_aplicar"

TIPOS_PAGO = ('pago_parcial', 'pago_completo', 'pago_exceso')

PERIODOS_REPORTE = ('today', 'week', 'month', 'custom')

ETIQUETAS_RECORDATORIO = {
    'vencido': 'VENCIDA',
    'parcial': 'Pago parcial',
    'pendiente': 'Por vencer',
}


def _monto(valor: Decimal) -> str:
    return f"{valor:.2f}"


class CobranzaService(BaseService):
    """
    Servicio para el módulo de cobranzas.

    Solo los roles ``cobranza`` y ``admin`` pueden operar el módulo.
    """

    @classmethod
    def _verificar_acceso(cls, usuario) -> Optional[ResultadoOperacion]:
        return cls._verificar_rol(usuario, ROLES_COBRANZA, MENSAJE_SIN_ACCESO)

    @staticmethod
    def _serializar_cuota(cuota, hoy) -> Dict[str, Any]:
        estado = getattr(cuota, 'estado_calculado', None) or cuota.estado_a_fecha(hoy)
        dias_mora = max(0, (hoy - cuota.fecha_vencimiento).days) if estado != 'pagado' else 0
        return {
            'id': cuota.pk,
            'numero_cuota': cuota.numero_cuota,
            'monto': cuota.monto,
            'fecha_vencimiento': cuota.fecha_vencimiento,
            'fecha_pago': cuota.fecha_pago,
            'estado': estado,
            'saldo_pendiente': cuota.saldo_pendiente,
            'exceso_generado': cuota.exceso_generado,
            'dias_mora': dias_mora,
            'observaciones': cuota.observaciones,
        }

    # =========================================================================
    # PANEL DE COBRANZAS
    # =========================================================================

    @classmethod
    def obtener_polizas_con_pendientes(cls, usuario) -> ResultadoOperacion:
        """
        Pólizas activas con al menos una cuota pendiente, vencida o parcial,
        junto con las estadísticas del panel.
        """
        from cartera.models import Cuota, MovimientoCuota, Poliza

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        hoy = timezone.localdate()
        limite_por_vencer = hoy + timedelta(days=7)

        ids_con_pendientes = (
            Cuota.objects.pendientes(hoy)
            .filter(poliza__estado='activa')
            .values_list('poliza_id', flat=True)
        )
        cuotas_qs = Cuota.objects.con_estado_real(hoy).con_pagos_parciales().order_by('numero_cuota')
        polizas = (
            Poliza.objects.filter(pk__in=ids_con_pendientes)
            .select_related(
                'cliente', 'cliente__natural', 'cliente__juridico', 'cliente__unipersonal',
                'compania', 'responsable',
            )
            .prefetch_related(Prefetch('cuotas', queryset=cuotas_qs))
            .order_by('numero_poliza')
        )

        # Lo cobrado por póliza sale de la bitácora: el exceso redistribuido
        # se descuenta de la póliza de origen y se suma a la de destino.
        cobrado_por_poliza = {}
        movimientos = (
            MovimientoCuota.objects.filter(cuota__poliza_id__in=ids_con_pendientes)
            .values('cuota__poliza_id', 'tipo')
            .annotate(total=Sum('monto'))
        )
        for fila in movimientos:
            signo = -1 if fila['tipo'] == 'redistribucion_origen' else 1
            poliza_id = fila['cuota__poliza_id']
            cobrado_por_poliza[poliza_id] = cobrado_por_poliza.get(poliza_id, Decimal('0.00')) + signo * fila['total']

        resultado = []
        total_cuotas_pendientes = 0
        total_cuotas_vencidas = 0
        monto_total_pendiente = Decimal('0.00')
        por_vencer = 0

        for poliza in polizas:
            cuotas = [cls._serializar_cuota(c, hoy) for c in poliza.cuotas.all()]
            total_pagado = cobrado_por_poliza.get(poliza.pk, Decimal('0.00'))
            total_pendiente = Decimal('0.00')
            pendientes = 0
            vencidas = 0

            for cuota, datos in zip(poliza.cuotas.all(), cuotas):
                if datos['estado'] == 'pagado':
                    continue
                total_pendiente += datos['saldo_pendiente']
                if datos['estado'] == 'vencido':
                    vencidas += 1
                else:
                    pendientes += 1
                if datos['estado'] == 'pendiente' and cuota.fecha_vencimiento <= limite_por_vencer:
                    por_vencer += 1

            total_cuotas_pendientes += pendientes
            total_cuotas_vencidas += vencidas
            monto_total_pendiente += total_pendiente

            resultado.append({
                'id': poliza.pk,
                'numero_poliza': poliza.numero_poliza,
                'cliente': {
                    'id': poliza.cliente_id,
                    'nombre': poliza.cliente.nombre_completo,
                    'documento': poliza.cliente.documento,
                    'email': poliza.cliente.email,
                    'telefono': poliza.cliente.celular or poliza.cliente.telefono,
                },
                'compania': poliza.compania.nombre,
                'responsable': poliza.responsable.get_full_name() or poliza.responsable.username,
                'moneda': poliza.moneda,
                'prima_total': poliza.prima_total,
                'cuotas': cuotas,
                'total_pagado': total_pagado,
                'total_pendiente': total_pendiente,
                'cuotas_pendientes': pendientes,
                'cuotas_vencidas': vencidas,
            })

        pagos = MovimientoCuota.objects.filter(tipo__in=TIPOS_PAGO)
        cobrado_hoy = pagos.filter(fecha=hoy).aggregate(total=Sum('monto'))['total']
        cobrado_mes = pagos.filter(fecha__year=hoy.year, fecha__month=hoy.month).aggregate(
            total=Sum('monto'))['total']

        estadisticas = {
            'total_polizas': len(resultado),
            'total_cuotas_pendientes': total_cuotas_pendientes,
            'total_cuotas_vencidas': total_cuotas_vencidas,
            'monto_total_pendiente': monto_total_pendiente,
            'monto_total_cobrado_hoy': cobrado_hoy or Decimal('0.00'),
            'monto_total_cobrado_mes': cobrado_mes or Decimal('0.00'),
            'cuotas_por_vencer_7dias': por_vencer,
        }

        return ResultadoOperacion.exito({'polizas': resultado, 'estadisticas': estadisticas})

    @classmethod
    def obtener_cuotas_pendientes_por_poliza(cls, usuario, poliza_id: int) -> ResultadoOperacion:
        from cartera.models import Cuota

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        hoy = timezone.localdate()
        cuotas = (
            Cuota.objects.filter(poliza_id=poliza_id)
            .pendientes(hoy)
            .con_pagos_parciales()
            .order_by('numero_cuota')
        )
        return ResultadoOperacion.exito([cls._serializar_cuota(c, hoy) for c in cuotas])

    # =========================================================================
    # REGISTRO DE PAGOS
    # =========================================================================

    @classmethod
    def registrar_pago(
        cls,
        usuario,
        cuota_id: int,
        monto_pagado,
        fecha_pago=None,
        observaciones: str = "",
    ) -> ResultadoOperacion:
        """
        Registra un pago sobre una cuota.

        Con D = monto de la cuota y P = monto pagado:
            P < D  -> parcial, sin fecha de pago
            P == D -> pagado
            P > D  -> pagado, exceso_generado = P - D

        El exceso queda disponible para ``redistribuir_exceso``.
        """
        from cartera.models import Cuota, MovimientoCuota

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        try:
            pagado = redondear(formato.a_decimal(monto_pagado))
            fecha = formato.a_fecha(fecha_pago) or timezone.localdate()
        except ValueError as e:
            return ResultadoOperacion.fallo({'monto_pagado': str(e)}, "Datos de pago inválidos")

        hoy = timezone.localdate()

        try:
            with transaction.atomic():
                try:
                    cuota = Cuota.objects.select_for_update().get(pk=cuota_id)
                except Cuota.DoesNotExist:
                    return ResultadoOperacion.error("Cuota no encontrada")

                estado = cuota.estado_a_fecha(hoy)
                if estado == 'pagado':
                    return ResultadoOperacion.error("Esta cuota ya está marcada como pagada")

                venc = cuota.fecha_vencimiento
                if estado == 'vencido' and (venc.year, venc.month) != (hoy.year, hoy.month):
                    return ResultadoOperacion.error(
                        "No se puede registrar pago fuera del mes de vencimiento. "
                        f"Esta cuota venció en {formato.mes_anio(venc)}"
                    )

                if pagado <= 0:
                    return ResultadoOperacion.fallo(
                        {'monto_pagado': "El monto pagado debe ser mayor a 0"},
                        "El monto pagado debe ser mayor a 0",
                    )

                monto_cuota = cuota.monto
                datos = {'cuotas_actualizadas': [cuota.pk]}

                if pagado < monto_cuota:
                    restante = monto_cuota - pagado
                    cuota.estado = 'parcial'
                    nota = f"[{fecha.isoformat()}] Pago parcial de {_monto(pagado)}. Saldo pendiente: {_monto(restante)}."
                    tipo_movimiento = 'pago_parcial'
                    datos['tipo_pago'] = 'parcial'
                elif pagado == monto_cuota:
                    restante = Decimal('0.00')
                    cuota.estado = 'pagado'
                    cuota.fecha_pago = fecha
                    nota = f"[{fecha.isoformat()}] Pago completo de {_monto(pagado)}."
                    tipo_movimiento = 'pago_completo'
                    datos['tipo_pago'] = 'exacto'
                else:
                    restante = Decimal('0.00')
                    exceso = pagado - monto_cuota
                    cuota.estado = 'pagado'
                    cuota.fecha_pago = fecha
                    cuota.exceso_generado = exceso
                    nota = f"[{fecha.isoformat()}] Pago de {_monto(pagado)}. Exceso generado: {_monto(exceso)}."
                    tipo_movimiento = 'pago_exceso'
                    datos['tipo_pago'] = 'exceso'
                    datos['exceso_generado'] = exceso

                if observaciones and observaciones.strip():
                    nota = f"{nota}\n{observaciones.strip()}"
                cuota.observaciones = f"{cuota.observaciones}\n{nota}".strip()
                cuota.save()

                MovimientoCuota.objects.create(
                    cuota=cuota,
                    tipo=tipo_movimiento,
                    monto=pagado,
                    saldo_resultante=restante,
                    fecha=fecha,
                    detalle=nota.splitlines()[0],
                    usuario=usuario,
                )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al registrar el pago")

        logger.info(f"Pago {datos['tipo_pago']} de {pagado} registrado en cuota {cuota_id} por {usuario.username}")
        return ResultadoOperacion.exito(datos, "Pago registrado correctamente")

    # =========================================================================
    # REDISTRIBUCIÓN DE EXCESOS
    # =========================================================================

    @classmethod
    def _validar_distribuciones(cls, monto_exceso: Decimal, distribuciones) -> Any:
        """Retorna (aplicaciones, total) o un ResultadoOperacion fallido."""
        if not isinstance(distribuciones, (list, tuple)):
            return ResultadoOperacion.error(MENSAJE_DISTRIBUCION_INVALIDA)

        aplicaciones = []
        for item in distribuciones:
            if not isinstance(item, dict):
                return ResultadoOperacion.error(MENSAJE_DISTRIBUCION_INVALIDA)
            try:
                aplicar = redondear(formato.a_decimal(item.get('monto_a_aplicar')))
            except ValueError:
                return ResultadoOperacion.error("Los montos a aplicar deben ser numéricos")
            aplicaciones.append((item.get('cuota_id'), aplicar))

        if any(aplicar < 0 for _, aplicar in aplicaciones):
            return ResultadoOperacion.error("Los montos a aplicar no pueden ser negativos")

        total = sum((aplicar for _, aplicar in aplicaciones), Decimal('0.00'))
        if abs(total - monto_exceso) > CENTAVO:
            return ResultadoOperacion.error(
                f"El monto distribuido ({_monto(total)}) no coincide con el exceso ({_monto(monto_exceso)})"
            )
        return aplicaciones, total

    @classmethod
    def redistribuir_exceso(
        cls,
        usuario,
        cuota_origen_id: int,
        monto_exceso,
        distribuciones: List[Dict[str, Any]],
    ) -> ResultadoOperacion:
        """
        Aplica el exceso de una cuota sobre otras cuotas.

        ``distribuciones`` es una lista de ``{'cuota_id': ..., 'monto_a_aplicar': ...}``.
        Montos negativos, una suma distinta del exceso (tolerancia 0.01) o un
        exceso que no coincide con ``exceso_generado`` de la cuota de origen
        rechazan la operación completa antes de escribir. Todas las
        actualizaciones se aplican dentro de una única transacción.
        """
        from cartera.models import Cuota, MovimientoCuota

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        try:
            exceso = redondear(formato.a_decimal(monto_exceso))
        except ValueError as e:
            return ResultadoOperacion.fallo({'monto_exceso': str(e)}, "Monto de exceso inválido")

        validacion = cls._validar_distribuciones(exceso, distribuciones or [])
        if isinstance(validacion, ResultadoOperacion):
            return validacion
        aplicaciones, total = validacion

        hoy = timezone.localdate()
        actualizadas = 0

        try:
            with transaction.atomic():
                try:
                    origen = Cuota.objects.select_for_update().get(pk=cuota_origen_id)
                except Cuota.DoesNotExist:
                    return ResultadoOperacion.error("Cuota de origen no encontrada")

                if origen.exceso_generado <= 0:
                    return ResultadoOperacion.error("La cuota de origen no tiene exceso disponible para redistribuir")
                if abs(exceso - origen.exceso_generado) > CENTAVO:
                    return ResultadoOperacion.error(
                        f"El exceso indicado ({_monto(exceso)}) no coincide con el exceso disponible "
                        f"de la cuota ({_monto(origen.exceso_generado)})"
                    )

                for cuota_id, aplicar in aplicaciones:
                    if aplicar <= 0:
                        continue
                    try:
                        destino = Cuota.objects.select_for_update().get(pk=cuota_id)
                    except Cuota.DoesNotExist:
                        logger.warning(f"Redistribución: cuota destino {cuota_id} no encontrada, se omite")
                        continue
                    if destino.estado_a_fecha(hoy) == 'pagado':
                        logger.warning(f"Redistribución: cuota destino {cuota_id} ya pagada, se omite")
                        continue

                    nuevo_saldo = destino.monto - aplicar
                    destino.monto = max(Decimal('0.00'), nuevo_saldo)
                    if nuevo_saldo <= CENTAVO:
                        destino.estado = 'pagado'
                        destino.fecha_pago = hoy
                        nota = (f"[{hoy.isoformat()}] Pago completo vía redistribución de exceso. "
                                f"Monto aplicado: {_monto(aplicar)}.")
                    else:
                        destino.estado = 'parcial'
                        nota = (f"[{hoy.isoformat()}] Pago parcial vía redistribución de exceso. "
                                f"Monto aplicado: {_monto(aplicar)}. Saldo: {_monto(nuevo_saldo)}.")
                    destino.observaciones = f"{destino.observaciones}\n{nota}".strip()
                    destino.save()

                    MovimientoCuota.objects.create(
                        cuota=destino,
                        tipo='redistribucion_recibida',
                        monto=aplicar,
                        saldo_resultante=max(Decimal('0.00'), nuevo_saldo),
                        fecha=hoy,
                        detalle=f"Exceso de la cuota N° {origen.numero_cuota}",
                        usuario=usuario,
                    )
                    actualizadas += 1

                nota_origen = f"[{hoy.isoformat()}] Exceso de {_monto(exceso)} redistribuido entre {actualizadas} cuotas."
                origen.observaciones = f"{origen.observaciones}\n{nota_origen}".strip()
                origen.exceso_generado = Decimal('0.00')
                origen.save()

                MovimientoCuota.objects.create(
                    cuota=origen,
                    tipo='redistribucion_origen',
                    monto=total,
                    saldo_resultante=origen.exceso_generado,
                    fecha=hoy,
                    detalle=nota_origen,
                    usuario=usuario,
                )
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al redistribuir el exceso")

        logger.info(f"Exceso {exceso} de cuota {cuota_origen_id} redistribuido en {actualizadas} cuotas")
        return ResultadoOperacion.exito(
            {'cuotas_actualizadas': actualizadas, 'monto_total_distribuido': total},
            "Exceso redistribuido correctamente",
        )

    # =========================================================================
    # RECORDATORIOS Y AVISOS DE MORA
    # =========================================================================

    @classmethod
    def generar_mensaje_recordatorio(cls, cuota, cliente_nombre: str) -> str:
        """Texto del recordatorio de pago para email o WhatsApp."""
        empresa = cls._get_config('NOMBRE_EMPRESA', 'Patria S.A.')
        estado = ETIQUETAS_RECORDATORIO.get(cuota.estado_real, 'Por vencer')
        moneda = cuota.poliza.moneda

        return (
            f"Estimado/a {cliente_nombre},\n\n"
            f"Nos comunicamos con usted para recordarle el vencimiento de la cuota N° {cuota.numero_cuota} "
            f"de su póliza {cuota.poliza.numero_poliza}.\n\n"
            f"Monto: {formato.moneda(cuota.monto, moneda)}\n"
            f"Fecha de vencimiento: {formato.fecha_larga(cuota.fecha_vencimiento)}\n"
            f"Estado: {estado}\n\n"
            "Por favor, realice el pago a la brevedad posible para mantener su cobertura activa.\n\n"
            "Para cualquier consulta, no dude en contactarnos.\n\n"
            "Atentamente,\n"
            f"{empresa}"
        )

    @staticmethod
    def generar_numero_referencia_aviso_mora(numero_poliza: str, fecha=None) -> str:
        fecha = fecha or timezone.localdate()
        return f"AM-{fecha:%Y%m%d}-{numero_poliza}"

    @classmethod
    def obtener_datos_aviso_mora(cls, usuario, poliza_id: int) -> ResultadoOperacion:
        """Datos de la carta de aviso de mora: póliza, cliente, cuotas impagas y totales."""
        from cartera.models import Cuota, Poliza

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        try:
            poliza = Poliza.objects.select_related('cliente', 'compania', 'ramo').get(pk=poliza_id)
        except Poliza.DoesNotExist:
            return ResultadoOperacion.error("Póliza no encontrada")

        hoy = timezone.localdate()
        cuotas = list(
            Cuota.objects.filter(poliza=poliza)
            .pendientes(hoy)
            .con_pagos_parciales()
            .order_by('numero_cuota')
        )
        if not cuotas:
            return ResultadoOperacion.error("La póliza no tiene cuotas pendientes de pago")

        filas = [cls._serializar_cuota(c, hoy) for c in cuotas]
        en_mora = [f['dias_mora'] for f in filas if f['dias_mora'] > 0]
        total = sum((f['saldo_pendiente'] for f in filas), Decimal('0.00'))

        return ResultadoOperacion.exito({
            'numero_referencia': cls.generar_numero_referencia_aviso_mora(poliza.numero_poliza, hoy),
            'fecha_emision': hoy,
            'empresa': cls._get_config('NOMBRE_EMPRESA', 'Patria S.A.'),
            'poliza': {
                'id': poliza.pk,
                'numero_poliza': poliza.numero_poliza,
                'compania': poliza.compania.nombre,
                'ramo': poliza.ramo.nombre,
                'moneda': poliza.moneda,
                'inicio_vigencia': poliza.inicio_vigencia,
                'fin_vigencia': poliza.fin_vigencia,
            },
            'cliente': {
                'tipo_cliente': poliza.cliente.tipo_cliente,
                'nombre': poliza.cliente.nombre_completo,
                'documento': poliza.cliente.documento,
                'direccion': poliza.cliente.direccion,
                'email': poliza.cliente.email,
                'telefono': poliza.cliente.celular or poliza.cliente.telefono,
            },
            'cuotas': filas,
            'totales': {
                'total_adeudado': total,
                'cantidad_cuotas': len(filas),
                'promedio_dias_mora': round(sum(en_mora) / len(en_mora)) if en_mora else 0,
                'max_dias_mora': max(en_mora, default=0),
            },
        })

    @classmethod
    def obtener_cuotas_para_recordatorio(cls, dias: Optional[int] = None):
        """Cuotas de pólizas activas que vencen dentro de ``dias`` (pendientes o parciales)."""
        from cartera.models import Cuota

        if dias is None:
            dias = cls._get_config('DIAS_RECORDATORIO_COBRANZA', 7)
        hoy = timezone.localdate()
        return (
            Cuota.objects.pendientes(hoy)
            .filter(
                poliza__estado='activa',
                fecha_vencimiento__gte=hoy,
                fecha_vencimiento__lte=hoy + timedelta(days=dias),
            )
            .select_related('poliza', 'poliza__cliente')
            .order_by('fecha_vencimiento')
        )

    # =========================================================================
    # REPORTE DE COBRANZAS
    # =========================================================================

    @staticmethod
    def _rango_periodo(periodo: str, fecha_desde, fecha_hasta, hoy):
        if periodo == 'today':
            return hoy, hoy
        if periodo == 'week':
            return hoy - timedelta(days=7), hoy
        if periodo == 'month':
            return hoy - timedelta(days=30), hoy
        return formato.a_fecha(fecha_desde), formato.a_fecha(fecha_hasta)

    @classmethod
    def exportar_reporte(
        cls,
        usuario,
        periodo: str,
        estado_cuota: str = 'all',
        fecha_desde=None,
        fecha_hasta=None,
    ) -> ResultadoOperacion:
        """
        Filas del reporte de cobranzas filtradas por fecha de vencimiento.

        periodo: today | week (últimos 7 días) | month (últimos 30 días) | custom.
        """
        from cartera.models import Cuota

        denegado = cls._verificar_acceso(usuario)
        if denegado:
            return denegado

        if periodo not in PERIODOS_REPORTE:
            return ResultadoOperacion.error(f"Período inválido: {periodo}")

        hoy = timezone.localdate()
        try:
            desde, hasta = cls._rango_periodo(periodo, fecha_desde, fecha_hasta, hoy)
        except ValueError:
            return ResultadoOperacion.error("Formato de fecha inválido")
        if desde is None or hasta is None:
            return ResultadoOperacion.error("Debe indicar fecha desde y hasta para un período personalizado")
        if desde > hasta:
            return ResultadoOperacion.error("La fecha desde no puede ser posterior a la fecha hasta")

        cuotas = (
            Cuota.objects.con_estado_real(hoy)
            .filter(fecha_vencimiento__gte=desde, fecha_vencimiento__lte=hasta)
            .select_related(
                'poliza', 'poliza__cliente', 'poliza__cliente__natural', 'poliza__cliente__juridico',
                'poliza__cliente__unipersonal', 'poliza__compania', 'poliza__ramo',
            )
            .order_by('fecha_vencimiento', 'poliza__numero_poliza', 'numero_cuota')
        )
        if estado_cuota and estado_cuota != 'all':
            cuotas = cuotas.filter(estado_calculado=estado_cuota)

        filas = []
        for cuota in cuotas:
            poliza = cuota.poliza
            estado = cuota.estado_calculado
            filas.append({
                'numero_poliza': poliza.numero_poliza,
                'cliente': poliza.cliente.nombre_completo,
                'ci_nit': poliza.cliente.documento,
                'compania': poliza.compania.nombre,
                'ramo': poliza.ramo.nombre,
                'numero_cuota': cuota.numero_cuota,
                'monto_cuota': cuota.monto,
                'moneda': poliza.moneda,
                'fecha_vencimiento': cuota.fecha_vencimiento,
                'fecha_pago': cuota.fecha_pago,
                'estado': estado,
                'dias_vencido': max(0, (hoy - cuota.fecha_vencimiento).days)
                if estado in ('pendiente', 'vencido') else 0,
                'monto_pagado': cuota.monto if estado == 'pagado' else Decimal('0.00'),
                'observaciones': cuota.observaciones,
            })

        return ResultadoOperacion.exito({'desde': desde, 'hasta': hasta, 'filas': filas})
