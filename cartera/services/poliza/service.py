"""
Servicio de Dominio para Gestión de Pólizas.

Este módulo implementa la capa de servicio para la entidad Póliza, encapsulando
la lógica de negocio del alta y del ciclo de vida de las pólizas de la cartera.

Responsabilidades del Servicio:
    1. **Validación de Datos Básicos**: cliente, aseguradora, producto, fechas
       de vigencia, grupo de producción y moneda.

    2. **Validación de la Modalidad de Pago**: contado (una cuota igual a la
       prima) o crédito (hasta MAX_CUOTAS_CREDITO cuotas que suman la prima).

    3. **Alta Atómica**: la póliza y todas sus cuotas se insertan en una sola
       transacción; los documentos cargados temporalmente se mueven después.

    4. **Ciclo de Rechazo**: una póliza rechazada puede editarse y reenviarse
       a validación mientras su ventana de edición siga abierta.

Patrones de Diseño:
    - Service Layer: Encapsula lógica de negocio fuera del modelo
    - Result Pattern: Retorna ResultadoOperacion en lugar de excepciones
    - Factory Methods: Construcción de resultados (exito/fallo)

Ejemplo de Uso:
    Crear una póliza a crédito::

        from cartera.services.poliza import PolizaService

        resultado = PolizaService.crear_poliza(
            request.user,
            datos={
                'numero_poliza': 'POL-2026-001',
                'cliente_id': cliente.pk,
                'compania_id': compania.pk,
                'producto_id': producto.pk,
                'grupo_produccion': 'generales',
                'inicio_vigencia': date(2026, 1, 1),
                'fin_vigencia': date(2027, 1, 1),
                'modalidad_pago': 'credito',
                'prima_total': Decimal('1200.00'),
                'moneda': 'Bs',
                'cuota_inicial': Decimal('200.00'),
            },
            cuotas=[
                {'monto': Decimal('500.00'), 'fecha_vencimiento': date(2026, 2, 1)},
                {'monto': Decimal('500.00'), 'fecha_vencimiento': date(2026, 3, 1)},
            ],
        )

        if resultado.exitoso:
            poliza = resultado.objeto
        else:
            for campo, error in resultado.errores.items():
                print(f"Error en {campo}: {error}")
"""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from django.contrib.auth.models import User
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from cartera import formato
from ..base import BaseService, ResultadoOperacion, ResultadoValidacion
from ..calculations import CronogramaCalculationService, PrimaCalculationService, redondear


logger = logging.getLogger(__name__)


GRUPOS_PRODUCCION = ('generales', 'personales')

MODALIDADES = ('contado', 'credito')

CAMPOS_EDITABLES = (
    'compania_id', 'producto_id', 'categoria_id', 'responsable_id', 'regional',
    'grupo_produccion', 'inicio_vigencia', 'fin_vigencia', 'fecha_emision_compania',
)


class PolizaService(BaseService):
    """
    Servicio para gestión de Pólizas.

    USO:

        from cartera.services.poliza import PolizaService

        PolizaService.crear_poliza(usuario, datos, cuotas, documentos_temporales)
        PolizaService.reenviar_a_validacion(usuario, poliza_id)
    """

    # =========================================================================
    # VALIDACIONES
    # =========================================================================

    @classmethod
    def validar_datos_basicos(cls, datos: Dict[str, Any], poliza_pk: Optional[int] = None) -> ResultadoValidacion:
        """Valida los datos básicos y resuelve las referencias en ``datos['_refs']``."""
        from cartera.models import (
            MONEDAS_VALIDAS, Categoria, Cliente, CompaniaAseguradora, Poliza, ProductoAseguradora,
        )

        validacion = ResultadoValidacion(es_valido=True)
        refs = {}

        numero = (datos.get('numero_poliza') or '').strip()
        if not numero:
            validacion.agregar_error('numero_poliza', "El número de póliza es obligatorio")
        elif Poliza.objects.filter(numero_poliza=numero).exclude(pk=poliza_pk).exists():
            validacion.agregar_error('numero_poliza', "Ya existe una póliza con este número")

        cliente = Cliente.objects.filter(pk=datos.get('cliente_id')).first()
        if cliente is None:
            validacion.agregar_error('cliente_id', "Asegurado no seleccionado")
        elif cliente.estado != 'activo':
            validacion.agregar_error('cliente_id', "El cliente está inactivo")
        refs['cliente'] = cliente

        compania = CompaniaAseguradora.objects.filter(pk=datos.get('compania_id'), activo=True).first()
        if compania is None:
            validacion.agregar_error('compania_id', "Seleccione una aseguradora activa")
        refs['compania'] = compania

        producto = ProductoAseguradora.objects.select_related('ramo').filter(
            pk=datos.get('producto_id'), activo=True
        ).first()
        if producto is None:
            validacion.agregar_error('producto_id', "Seleccione un producto activo")
        elif compania is not None and producto.compania_id != compania.pk:
            validacion.agregar_error('producto_id', "El producto no pertenece a la aseguradora seleccionada")
        refs['producto'] = producto

        if datos.get('categoria_id'):
            categoria = Categoria.objects.filter(pk=datos['categoria_id'], activo=True).first()
            if categoria is None:
                validacion.agregar_error('categoria_id', "Categoría no encontrada o inactiva")
            refs['categoria'] = categoria

        if datos.get('responsable_id'):
            refs['responsable'] = User.objects.filter(pk=datos['responsable_id'], is_active=True).first()
            if refs['responsable'] is None:
                validacion.agregar_error('responsable_id', "Responsable no encontrado")

        try:
            inicio = formato.a_fecha(datos.get('inicio_vigencia'))
            fin = formato.a_fecha(datos.get('fin_vigencia'))
        except ValueError:
            inicio = fin = None
            validacion.agregar_error('inicio_vigencia', "Formato de fecha inválido")
        if not inicio or not fin:
            validacion.agregar_error('inicio_vigencia', "Las fechas de vigencia son obligatorias")
        elif fin <= inicio:
            validacion.agregar_error('fin_vigencia', "Fecha de fin debe ser posterior a la fecha de inicio")
        refs['inicio_vigencia'], refs['fin_vigencia'] = inicio, fin

        if datos.get('grupo_produccion') not in GRUPOS_PRODUCCION:
            validacion.agregar_error('grupo_produccion', "Grupo de producción inválido")

        if datos.get('moneda') not in MONEDAS_VALIDAS:
            validacion.agregar_error('moneda', "Moneda inválida")

        datos['_refs'] = refs
        return validacion

    @classmethod
    def validar_modalidad_pago(cls, datos: Dict[str, Any], cuotas: List[Dict[str, Any]]) -> ResultadoValidacion:
        """
        Contado: una única cuota igual a la prima total.
        Crédito: 1..MAX_CUOTAS_CREDITO cuotas; cuota inicial + cuotas = prima total.

        Las cuotas normalizadas quedan en ``datos['_cuotas']``.
        """
        from ..calculations import montos_coinciden

        validacion = ResultadoValidacion(es_valido=True)
        modalidad = datos.get('modalidad_pago')
        if modalidad not in MODALIDADES:
            return validacion.agregar_error('modalidad_pago', "Modalidad de pago no definida")

        try:
            prima = redondear(formato.a_decimal(datos.get('prima_total')))
        except ValueError:
            return validacion.agregar_error('prima_total', "La prima total debe ser un número")
        if prima <= 0:
            return validacion.agregar_error('prima_total', "La prima total debe ser mayor a 0")

        normalizadas = []
        for cuota in cuotas or []:
            if not isinstance(cuota, dict):
                return validacion.agregar_error('cuotas', "Cada cuota debe tener un monto y una fecha válidos")
            try:
                monto = redondear(formato.a_decimal(cuota.get('monto')))
                fecha = formato.a_fecha(cuota.get('fecha_vencimiento'))
            except ValueError:
                return validacion.agregar_error('cuotas', "Cada cuota debe tener un monto y una fecha válidos")
            if monto <= 0 or fecha is None:
                return validacion.agregar_error(
                    'cuotas', "Cada cuota debe tener monto mayor a 0 y fecha de vencimiento"
                )
            normalizadas.append({'monto': monto, 'fecha_vencimiento': fecha, 'observaciones': ''})

        inicio = datos.get('_refs', {}).get('inicio_vigencia')

        if modalidad == 'contado':
            if len(normalizadas) != 1 or not montos_coinciden(normalizadas[0]['monto'], prima):
                return validacion.agregar_error(
                    'cuotas', "La modalidad contado requiere una única cuota igual a la prima total"
                )
            datos['_cuotas'] = normalizadas
            return validacion

        max_cuotas = cls._get_config('MAX_CUOTAS_CREDITO', 12)
        if not normalizadas:
            return validacion.agregar_error('cuotas', "Debe definir al menos una cuota de pago")
        if len(normalizadas) > max_cuotas:
            return validacion.agregar_error('cuotas', f"Máximo {max_cuotas} cuotas permitidas")

        try:
            cuota_inicial = redondear(formato.a_decimal(datos.get('cuota_inicial') or 0))
        except ValueError:
            return validacion.agregar_error('cuota_inicial', "La cuota inicial debe ser un número")
        if cuota_inicial < 0:
            return validacion.agregar_error('cuota_inicial', "La cuota inicial no puede ser negativa")

        suma = cuota_inicial + sum(c['monto'] for c in normalizadas)
        if not montos_coinciden(suma, prima):
            return validacion.agregar_error(
                'cuotas', f"La suma de cuotas ({suma:.2f}) no coincide con prima total ({prima:.2f})"
            )

        if cuota_inicial > 0:
            normalizadas.insert(0, {
                'monto': cuota_inicial,
                'fecha_vencimiento': inicio,
                'observaciones': 'Cuota inicial',
            })
        datos['_cuotas'] = normalizadas
        return validacion

    # =========================================================================
    # CÁLCULOS
    # =========================================================================

    @staticmethod
    def generar_cronograma(prima_total, cuota_inicial, cantidad_cuotas: int, fecha_inicio, periodo: str = 'mensual'):
        """Cronograma sugerido de cuotas iguales; ver CronogramaCalculationService."""
        return CronogramaCalculationService.generar_cronograma(
            prima_total=Decimal(prima_total),
            cantidad_cuotas=cantidad_cuotas,
            fecha_inicio=fecha_inicio,
            periodo=periodo,
            cuota_inicial=Decimal(cuota_inicial or 0),
        )

    @classmethod
    def calcular_valores_financieros(cls, poliza) -> Dict[str, Any]:
        """Prima neta y comisiones de la póliza y de cada una de sus cuotas."""
        producto = poliza.producto
        factor = PrimaCalculationService.factor_para(producto, poliza.modalidad_pago, cls._get_config)
        porcentaje = producto.porcentaje_comision if producto else cls._get_config(
            'PORCENTAJE_COMISION_DEFAULT', Decimal('0.15'))
        porcentaje_usuario = cls._get_config('PORCENTAJE_COMISION_USUARIO_DEFAULT', Decimal('0.5'))

        valores = PrimaCalculationService.calcular_valores_poliza(
            poliza.prima_total, factor, porcentaje, porcentaje_usuario
        )
        valores['factor_prima_neta'] = factor
        valores['porcentaje_comision'] = porcentaje
        valores['cuotas'] = [
            dict(numero_cuota=c.numero_cuota,
                 **PrimaCalculationService.calcular_valores_cuota(c.monto, factor, porcentaje))
            for c in poliza.cuotas.all()
        ]
        return valores

    # =========================================================================
    # OPERACIONES
    # =========================================================================

    @classmethod
    def crear_poliza(
        cls,
        usuario,
        datos: Dict[str, Any],
        cuotas: List[Dict[str, Any]],
        documentos_temporales: Iterable[Dict[str, Any]] = (),
    ) -> ResultadoOperacion:
        """
        Crea la póliza en estado ``pendiente`` junto con su cronograma de cuotas.

        La póliza y las cuotas se guardan en una transacción. Los documentos
        temporales se mueven a la ruta final después y sin bloquear el alta.
        """
        from cartera.models import Cuota, Poliza
        from ..documento import DocumentoService

        denegado = cls._verificar_permiso(usuario, 'polizas.crear', "No tiene permisos para crear pólizas")
        if denegado:
            return denegado

        datos = dict(datos)
        validacion = cls.validar_datos_basicos(datos)
        validacion.fusionar(cls.validar_modalidad_pago(datos, cuotas))
        if not validacion.es_valido:
            return ResultadoOperacion.desde_validacion(validacion)

        refs = datos['_refs']
        producto = refs['producto']

        try:
            with transaction.atomic():
                poliza = Poliza.objects.create(
                    numero_poliza=datos['numero_poliza'].strip(),
                    cliente=refs['cliente'],
                    compania=refs['compania'],
                    producto=producto,
                    ramo=producto.ramo,
                    categoria=refs.get('categoria'),
                    responsable=refs.get('responsable') or usuario,
                    regional=datos.get('regional') or producto.regional or '',
                    grupo_produccion=datos['grupo_produccion'],
                    inicio_vigencia=refs['inicio_vigencia'],
                    fin_vigencia=refs['fin_vigencia'],
                    fecha_emision_compania=formato.a_fecha(datos.get('fecha_emision_compania')),
                    modalidad_pago=datos['modalidad_pago'],
                    prima_total=redondear(formato.a_decimal(datos['prima_total'])),
                    moneda=datos['moneda'],
                    estado='pendiente',
                    creado_por=usuario,
                )
                Cuota.objects.bulk_create([
                    Cuota(
                        poliza=poliza,
                        numero_cuota=numero,
                        monto=cuota['monto'],
                        fecha_vencimiento=cuota['fecha_vencimiento'],
                        observaciones=cuota['observaciones'],
                    )
                    for numero, cuota in enumerate(datos['_cuotas'], start=1)
                ])
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al guardar la póliza")

        advertencias = []
        if documentos_temporales:
            try:
                DocumentoService.adjuntar_temporales(usuario, 'poliza', poliza, documentos_temporales)
            except Exception as e:
                logger.error(f"Póliza {poliza.numero_poliza}: error adjuntando documentos: {e}")
                advertencias.append("La póliza se guardó pero algunos documentos no pudieron adjuntarse")

        logger.info(f"Póliza {poliza.numero_poliza} creada por {usuario.username} con {len(datos['_cuotas'])} cuotas")
        return ResultadoOperacion.exito(poliza, "Póliza creada exitosamente", advertencias)

    @staticmethod
    def _es_dueno(usuario, poliza) -> bool:
        from cartera.models import obtener_rol

        return obtener_rol(usuario) == 'admin' or usuario.pk in (poliza.responsable_id, poliza.creado_por_id)

    @classmethod
    def actualizar_poliza(cls, usuario, poliza_id: int, datos: Dict[str, Any]) -> ResultadoOperacion:
        """Edita los datos básicos de una póliza rechazada dentro de su ventana de edición."""
        from cartera.models import Poliza

        denegado = cls._verificar_permiso(usuario, 'polizas.editar', "No tiene permisos para editar pólizas")
        if denegado:
            return denegado

        try:
            poliza = Poliza.objects.get(pk=poliza_id)
        except Poliza.DoesNotExist:
            return ResultadoOperacion.error("Póliza no encontrada")

        if not cls._es_dueno(usuario, poliza):
            return ResultadoOperacion.error("Solo el responsable puede editar la póliza")
        if not poliza.puede_editar:
            return ResultadoOperacion.error("La póliza no está en período de edición")

        completos = {
            'numero_poliza': poliza.numero_poliza,
            'cliente_id': poliza.cliente_id,
            'moneda': poliza.moneda,
        }
        completos.update({campo: getattr(poliza, campo) for campo in CAMPOS_EDITABLES})
        completos.update({k: v for k, v in datos.items() if k in CAMPOS_EDITABLES})

        validacion = cls.validar_datos_basicos(completos, poliza_pk=poliza.pk)
        if not validacion.es_valido:
            return ResultadoOperacion.desde_validacion(validacion)

        refs = completos['_refs']
        poliza.compania = refs['compania']
        poliza.producto = refs['producto']
        poliza.ramo = refs['producto'].ramo
        poliza.categoria = refs.get('categoria')
        poliza.responsable = refs.get('responsable') or poliza.responsable
        poliza.regional = completos.get('regional') or ''
        poliza.grupo_produccion = completos['grupo_produccion']
        poliza.inicio_vigencia = refs['inicio_vigencia']
        poliza.fin_vigencia = refs['fin_vigencia']
        poliza.fecha_emision_compania = formato.a_fecha(completos.get('fecha_emision_compania'))

        try:
            poliza.save()
        except Exception as e:
            return ResultadoOperacion.desde_excepcion(e, "Error al actualizar la póliza")

        return ResultadoOperacion.exito(poliza, "Póliza actualizada exitosamente")

    @classmethod
    def reenviar_a_validacion(cls, usuario, poliza_id: int) -> ResultadoOperacion:
        """Devuelve una póliza rechazada a ``pendiente`` si su ventana de edición sigue abierta."""
        from cartera.models import Poliza, obtener_rol

        if obtener_rol(usuario) is None:
            return ResultadoOperacion.error("No autenticado")

        try:
            poliza = Poliza.objects.get(pk=poliza_id)
        except Poliza.DoesNotExist:
            return ResultadoOperacion.error("Póliza no encontrada")

        if not cls._es_dueno(usuario, poliza):
            return ResultadoOperacion.error("Solo el responsable puede reenviar la póliza")
        if poliza.estado != 'rechazada':
            return ResultadoOperacion.error("Solo se pueden reenviar pólizas rechazadas")
        if not poliza.puede_editar:
            return ResultadoOperacion.error("El plazo de edición de la póliza ha vencido")

        poliza.estado = 'pendiente'
        poliza.puede_editar_hasta = None
        poliza.save(update_fields=['estado', 'puede_editar_hasta', 'fecha_modificacion'])

        logger.info(f"Póliza {poliza.numero_poliza} reenviada a validación por {usuario.username}")
        return ResultadoOperacion.exito(poliza, "Póliza reenviada a validación")

    @classmethod
    def expirar_ventanas_edicion(cls) -> int:
        """Cierra las ventanas de edición vencidas. Retorna cuántas pólizas se actualizaron."""
        from cartera.models import Poliza

        return Poliza.objects.filter(
            estado='rechazada', puede_editar_hasta__lt=timezone.now()
        ).update(puede_editar_hasta=None)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    @staticmethod
    def _serializar_resumen(poliza) -> Dict[str, Any]:
        return {
            'id': poliza.pk,
            'numero_poliza': poliza.numero_poliza,
            'cliente': poliza.cliente.nombre_completo,
            'documento_cliente': poliza.cliente.documento,
            'compania': poliza.compania.nombre,
            'ramo': poliza.ramo.nombre,
            'estado': poliza.estado,
            'modalidad_pago': poliza.modalidad_pago,
            'prima_total': poliza.prima_total,
            'moneda': poliza.moneda,
            'inicio_vigencia': poliza.inicio_vigencia,
            'fin_vigencia': poliza.fin_vigencia,
            'responsable': poliza.responsable.get_full_name() or poliza.responsable.username,
        }

    @staticmethod
    def _base_qs():
        from cartera.models import Poliza

        return Poliza.objects.select_related(
            'cliente', 'cliente__natural', 'cliente__juridico', 'cliente__unipersonal',
            'compania', 'ramo', 'producto', 'responsable',
        )

    @classmethod
    def obtener_polizas(cls, usuario, estado: Optional[str] = None, pagina: int = 1,
                        por_pagina: int = 20) -> ResultadoOperacion:
        denegado = cls._verificar_permiso(usuario, 'polizas.ver', "No tiene permisos para ver pólizas")
        if denegado:
            return denegado

        qs = cls._base_qs().order_by('-fecha_creacion')
        if estado:
            qs = qs.filter(estado=estado)

        page = Paginator(qs, por_pagina).get_page(pagina)
        return ResultadoOperacion.exito({
            'polizas': [cls._serializar_resumen(p) for p in page],
            'pagina': page.number,
            'total_paginas': page.paginator.num_pages,
            'total': page.paginator.count,
        })

    @classmethod
    def buscar_polizas(cls, usuario, query: str, limite: int = 20) -> ResultadoOperacion:
        """Busca por número de póliza, nombre o documento del cliente."""
        denegado = cls._verificar_permiso(usuario, 'polizas.ver', "No tiene permisos para ver pólizas")
        if denegado:
            return denegado

        query = (query or '').strip()
        if len(query) < 2:
            return ResultadoOperacion.exito([])

        filtro = (
            Q(numero_poliza__icontains=query)
            | Q(cliente__natural__primer_nombre__icontains=query)
            | Q(cliente__natural__primer_apellido__icontains=query)
            | Q(cliente__natural__numero_documento__icontains=query)
            | Q(cliente__juridico__razon_social__icontains=query)
            | Q(cliente__juridico__nit__icontains=query)
            | Q(cliente__unipersonal__razon_social__icontains=query)
            | Q(cliente__unipersonal__nit__icontains=query)
        )
        polizas = cls._base_qs().filter(filtro).distinct().order_by('numero_poliza')[:limite]
        return ResultadoOperacion.exito([cls._serializar_resumen(p) for p in polizas])

    @classmethod
    def obtener_detalle_poliza(cls, usuario, poliza_id: int) -> ResultadoOperacion:
        from cartera.models import Cuota, Poliza

        denegado = cls._verificar_permiso(usuario, 'polizas.ver', "No tiene permisos para ver pólizas")
        if denegado:
            return denegado

        try:
            poliza = cls._base_qs().select_related('categoria', 'validado_por', 'rechazado_por').get(pk=poliza_id)
        except Poliza.DoesNotExist:
            return ResultadoOperacion.error("Póliza no encontrada")

        hoy = timezone.localdate()
        cuotas = Cuota.objects.filter(poliza=poliza).con_estado_real(hoy).con_pagos_parciales()
        detalle = cls._serializar_resumen(poliza)
        detalle.update({
            'producto': poliza.producto.nombre_producto,
            'categoria': poliza.categoria.nombre if poliza.categoria else None,
            'regional': poliza.regional,
            'grupo_produccion': poliza.grupo_produccion,
            'fecha_emision_compania': poliza.fecha_emision_compania,
            'validado_por': poliza.validado_por.username if poliza.validado_por else None,
            'fecha_validacion': poliza.fecha_validacion,
            'motivo_rechazo': poliza.motivo_rechazo,
            'puede_editar': poliza.puede_editar,
            'puede_editar_hasta': poliza.puede_editar_hasta,
            'dias_para_vencer': poliza.dias_para_vencer,
            'cuotas': [
                {
                    'id': c.pk,
                    'numero_cuota': c.numero_cuota,
                    'monto': c.monto,
                    'fecha_vencimiento': c.fecha_vencimiento,
                    'fecha_pago': c.fecha_pago,
                    'estado': c.estado_calculado,
                    'saldo_pendiente': c.saldo_pendiente,
                    'observaciones': c.observaciones,
                }
                for c in cuotas
            ],
            'financiero': cls.calcular_valores_financieros(poliza),
            'total_siniestros': poliza.siniestros.count(),
            'total_documentos': poliza.documentos.filter(estado='activo').count(),
        })
        return ResultadoOperacion.exito(detalle)

    @classmethod
    def obtener_polizas_por_vencer(cls, dias: Optional[int] = None):
        """Pólizas activas cuyo fin de vigencia cae dentro de los próximos ``dias``."""
        if dias is None:
            dias = cls._get_config('DIAS_ALERTA_VENCIMIENTO_POLIZA', 30)
        hoy = timezone.localdate()
        return cls._base_qs().filter(
            estado='activa',
            fin_vigencia__gte=hoy,
            fin_vigencia__lte=hoy + timedelta(days=dias),
        ).order_by('fin_vigencia')
