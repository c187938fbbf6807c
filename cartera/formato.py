"""
Formato de montos y fechas en convención boliviana (es-BO).
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

MESES = [
    'enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio',
    'julio', 'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre',
]


def a_decimal(valor):
    """Convierte a Decimal; lanza ValueError si el valor no es numérico o no es finito."""
    if isinstance(valor, bool) or valor is None or valor == '':
        raise ValueError(f"Valor numérico inválido: {valor!r}")
    if isinstance(valor, Decimal):
        numero = valor
    else:
        try:
            numero = Decimal(str(valor).strip())
        except (InvalidOperation, TypeError):
            raise ValueError(f"Valor numérico inválido: {valor!r}")
    if not numero.is_finite():
        raise ValueError(f"Valor numérico inválido: {valor!r}")
    return numero


def a_fecha(valor):
    """Acepta date, datetime o 'YYYY-MM-DD'."""
    if valor is None or valor == '':
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    return date.fromisoformat(str(valor)[:10])


def numero(valor, decimales=2):
    """1234.5 -> '1.234,50'"""
    try:
        texto = f"{float(valor):,.{decimales}f}"
    except (TypeError, ValueError):
        return str(valor)
    return texto.replace(',', '_').replace('.', ',').replace('_', '.')


def moneda(valor, codigo='Bs'):
    return f"{codigo} {numero(valor)}"


def mes_anio(fecha):
    """date(2026, 3, 5) -> 'marzo de 2026'"""
    return f"{MESES[fecha.month - 1]} de {fecha.year}"


def fecha_larga(fecha):
    """date(2026, 3, 5) -> '05 de marzo de 2026'"""
    return f"{fecha.day:02d} de {MESES[fecha.month - 1]} de {fecha.year}"


def fecha_corta(fecha):
    return fecha.strftime('%d/%m/%Y') if fecha else ''
