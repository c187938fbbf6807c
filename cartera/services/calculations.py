"""
Servicios de Cálculo de Negocio.
Centraliza los cálculos de prima neta, comisiones, cronogramas de cuotas y mora.
Permite reutilización desde vistas, reportes y tareas Celery.

ARQUITECTURA:
- Los servicios son stateless y testables de forma aislada
- Los parámetros por defecto se leen de ConfiguracionSistema

EJEMPLOS DE USO:

1. Prima neta y comisión de una póliza:
    ```
    from cartera.services.calculations import PrimaCalculationService

    valores = PrimaCalculationService.calcular_valores_poliza(
        prima_total=Decimal('1350'),
        factor=Decimal('35'),
        porcentaje_comision=Decimal('0.15'),
    )
    # valores: prima_neta=1000.00, comision_empresa=150.00
    ```

2. Cronograma de cuotas para una póliza a crédito:
    ```
    from cartera.services.calculations import CronogramaCalculationService

    cuotas = CronogramaCalculationService.generar_cronograma(
        prima_total=Decimal('1200'),
        cuota_inicial=Decimal('200'),
        cantidad_cuotas=4,
        fecha_inicio=date(2026, 1, 15),
        periodo='mensual',
    )
    ```
"""

import calendar
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.utils import timezone


CENTAVO = Decimal('0.01')

MESES_PERIODO = {
    'mensual': 1,
    'trimestral': 3,
    'semestral': 6,
}


def redondear(valor: Decimal) -> Decimal:
    """Redondea a centavos; ValueError si el monto no es finito o excede la precisión decimal."""
    try:
        return Decimal(valor).quantize(CENTAVO, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Monto fuera de rango: {valor}")


def sumar_meses(fecha: date, meses: int) -> date:
    """Suma meses conservando el día, ajustado al último día del mes destino."""
    mes_total = fecha.month - 1 + meses
    anio = fecha.year + mes_total // 12
    mes = mes_total % 12 + 1
    dia = min(fecha.day, calendar.monthrange(anio, mes)[1])
    return date(anio, mes, dia)


def montos_coinciden(a: Decimal, b: Decimal, tolerancia: Optional[Decimal] = None) -> bool:
    if tolerancia is None:
        from cartera.models import ConfiguracionSistema
        tolerancia = ConfiguracionSistema.get_config('TOLERANCIA_MONTOS', CENTAVO)
    return abs(Decimal(a) - Decimal(b)) <= tolerancia


class PrimaCalculationService:
    """
    Cálculos de prima neta y comisiones.

    La prima total incluye el factor del producto: prima_total = prima_neta * (1 + factor/100).
    """

    @staticmethod
    def calcular_prima_neta(prima_total: Decimal, factor: Decimal) -> Decimal:
        divisor = Decimal('1') + Decimal(factor) / Decimal('100')
        return redondear(Decimal(prima_total) / divisor)

    @staticmethod
    def calcular_comision(prima_neta: Decimal, porcentaje_comision: Decimal) -> Decimal:
        return redondear(Decimal(prima_neta) * Decimal(porcentaje_comision))

    @staticmethod
    def factor_para(producto, modalidad_pago: str, config_provider=None) -> Decimal:
        """Factor del producto según la modalidad; si no hay producto se usa el valor por defecto."""
        from cartera.models import ConfiguracionSistema

        if config_provider is None:
            config_provider = ConfiguracionSistema.get_config

        if modalidad_pago == 'credito':
            if producto is not None and producto.factor_credito is not None:
                return producto.factor_credito
            return config_provider('FACTOR_CREDITO_DEFAULT', Decimal('40'))

        if producto is not None and producto.factor_contado is not None:
            return producto.factor_contado
        return config_provider('FACTOR_CONTADO_DEFAULT', Decimal('35'))

    @classmethod
    def calcular_valores_poliza(
        cls,
        prima_total: Decimal,
        factor: Decimal,
        porcentaje_comision: Decimal,
        porcentaje_usuario: Optional[Decimal] = None,
    ) -> Dict[str, Decimal]:
        """
        Calcula todos los valores financieros de una póliza en una sola llamada.

        Returns:
            Dict con prima_neta, comision_empresa y comision_usuario
        """
        prima_neta = cls.calcular_prima_neta(prima_total, factor)
        comision_empresa = cls.calcular_comision(prima_neta, porcentaje_comision)
        valores = {
            'prima_total': redondear(prima_total),
            'prima_neta': prima_neta,
            'comision_empresa': comision_empresa,
            'comision_usuario': Decimal('0.00'),
        }
        if porcentaje_usuario is not None:
            valores['comision_usuario'] = redondear(comision_empresa * Decimal(porcentaje_usuario))
        return valores

    @classmethod
    def calcular_valores_cuota(cls, monto_cuota: Decimal, factor: Decimal, porcentaje_comision: Decimal) -> Dict[str, Decimal]:
        """Desglose de una cuota en prima neta y comisión."""
        monto_pn = cls.calcular_prima_neta(monto_cuota, factor)
        return {
            'monto_cuota_pt': redondear(monto_cuota),
            'monto_cuota_pn': monto_pn,
            'monto_cuota_comision': cls.calcular_comision(monto_pn, porcentaje_comision),
        }


class CronogramaCalculationService:
    """Generación y verificación de cronogramas de cuotas."""

    @staticmethod
    def generar_cronograma(
        prima_total: Decimal,
        cantidad_cuotas: int,
        fecha_inicio: date,
        periodo: str = 'mensual',
        cuota_inicial: Decimal = Decimal('0'),
    ) -> List[Dict[str, Any]]:
        """
        Divide el saldo (prima total menos cuota inicial) en cuotas iguales.

        La última cuota absorbe la diferencia de redondeo para que la suma
        coincida exactamente con la prima total. La cuota inicial, si existe,
        vence en la fecha de inicio; las siguientes cada 1, 3 o 6 meses.
        """
        if periodo not in MESES_PERIODO:
            raise ValueError(f"Periodo inválido: {periodo}")
        if cantidad_cuotas < 1:
            raise ValueError("Debe definir al menos una cuota de pago")

        cuota_inicial = redondear(cuota_inicial or Decimal('0'))
        saldo = redondear(prima_total) - cuota_inicial
        monto_base = redondear(saldo / cantidad_cuotas)
        meses = MESES_PERIODO[periodo]

        cronograma = []
        if cuota_inicial > 0:
            cronograma.append({
                'monto': cuota_inicial,
                'fecha_vencimiento': fecha_inicio,
                'observaciones': 'Cuota inicial',
            })

        acumulado = Decimal('0.00')
        for i in range(1, cantidad_cuotas + 1):
            monto = monto_base if i < cantidad_cuotas else saldo - acumulado
            acumulado += monto
            cronograma.append({
                'monto': monto,
                'fecha_vencimiento': sumar_meses(fecha_inicio, meses * i),
                'observaciones': '',
            })

        for numero, cuota in enumerate(cronograma, start=1):
            cuota['numero_cuota'] = numero
        return cronograma

    @staticmethod
    def dias_mora(fecha_vencimiento: date, fecha_actual: Optional[date] = None) -> int:
        if fecha_actual is None:
            fecha_actual = timezone.localdate()
        return max(0, (fecha_actual - fecha_vencimiento).days)
