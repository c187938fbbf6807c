import calendar

from datetime import date

from decimal import Decimal

from django.http import HttpResponse

from django.utils import timezone

import openpyxl

from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from openpyxl.utils import get_column_letter

from ..base import BaseService, ResultadoOperacion

from ..calculations import PrimaCalculationService


def make_naive(dt):

    """

    Convierte un datetime con timezone a naive (sin timezone) para Excel.

    Excel no soporta datetimes con timezone.

    """

    if dt is None:

        return None

    if hasattr(dt, 'tzinfo') and dt.tzinfo is not None:

        return timezone.localtime(dt).replace(tzinfo=None)

    return dt


MENSAJE_SIN_PERMISO_ADMIN = "No tiene permisos de administrador"


COLUMNAS_COBRANZAS = [

    ('numero_poliza', 'N° Póliza'),

    ('cliente', 'Cliente'),

    ('ci_nit', 'CI/NIT'),

    ('compania', 'Compañía'),

    ('ramo', 'Ramo'),

    ('numero_cuota', 'N° Cuota'),

    ('monto_cuota', 'Monto Cuota'),

    ('moneda', 'Moneda'),

    ('fecha_vencimiento', 'Fecha Vencimiento'),

    ('fecha_pago', 'Fecha Pago'),

    ('estado', 'Estado'),

    ('dias_vencido', 'Días Vencido'),

    ('monto_pagado', 'Monto Pagado'),

    ('observaciones', 'Observaciones'),

]


COLUMNAS_PRODUCCION = [

    ('numero_poliza', 'N° Póliza'),

    ('cliente', 'Cliente'),

    ('ci_nit', 'CI/NIT'),

    ('compania', 'Compañía'),

    ('ramo', 'Ramo'),

    ('responsable', 'Responsable'),

    ('regional', 'Regional'),

    ('prima_total', 'Prima Total'),

    ('prima_neta', 'Prima Neta'),

    ('comision_empresa', 'Comisión Empresa'),

    ('factor_prima_neta', 'Factor Prima Neta'),

    ('porcentaje_comision', '% Comisión'),

    ('inicio_vigencia', 'Inicio Vigencia'),

    ('fin_vigencia', 'Fin Vigencia'),

    ('numero_cuota', 'N° Cuota'),

    ('monto_cuota_pt', 'Cuota PT'),

    ('monto_cuota_pn', 'Cuota PN'),

    ('monto_cuota_comision', 'Cuota Comisión'),

    ('moneda', 'Moneda'),

    ('fecha_vencimiento', 'Fecha Vencimiento'),

    ('estado_cuota', 'Estado Cuota'),

    ('modalidad_pago', 'Modalidad de Pago'),

]


COLUMNAS_MONTO = {

    'monto_cuota', 'monto_pagado', 'prima_total', 'prima_neta', 'comision_empresa',

    'monto_cuota_pt', 'monto_cuota_pn', 'monto_cuota_comision',

}

COLUMNAS_FECHA = {'fecha_vencimiento', 'fecha_pago', 'inicio_vigencia', 'fin_vigencia'}


class ExportacionService(BaseService):

    """

    Exportación a Excel de los reportes de cobranzas y de producción.

    Cada método de exportación retorna un ResultadoOperacion cuyo objeto es

    un HttpResponse listo para descargar.

    """

    HEADER_FILL = PatternFill(start_color='1a365d', end_color='1a365d', fill_type='solid')

    HEADER_FONT = Font(bold=True, color='FFFFFF', size=11)

    HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)

    THIN_BORDER = Border(

        left=Side(style='thin', color='E2E8F0'),

        right=Side(style='thin', color='E2E8F0'),

        top=Side(style='thin', color='E2E8F0'),

        bottom=Side(style='thin', color='E2E8F0')

    )

    ESTADO_COLORS = {

        'pendiente': 'FEFCBF',

        'pagado': 'C6F6D5',

        'parcial': 'BEE3F8',

        'vencido': 'FED7D7',

    }

    # =========================================================================

    # CONSTRUCCIÓN DEL LIBRO

    # =========================================================================

    @classmethod
    def construir_libro(cls, titulo, columnas, filas, columna_estado=None):

        """Libro de una hoja con encabezado, formatos de monto/fecha y filtros."""

        wb = openpyxl.Workbook()

        ws = wb.active

        ws.title = titulo

        for col, (_, header) in enumerate(columnas, start=1):

            cell = ws.cell(row=1, column=col, value=header)

            cell.fill = cls.HEADER_FILL

            cell.font = cls.HEADER_FONT

            cell.alignment = cls.HEADER_ALIGNMENT

            cell.border = cls.THIN_BORDER

        for row_num, fila in enumerate(filas, start=2):

            for col, (clave, _) in enumerate(columnas, start=1):

                cell = ws.cell(row=row_num, column=col, value=make_naive(fila.get(clave)))

                cell.border = cls.THIN_BORDER

                if clave in COLUMNAS_MONTO:

                    cell.number_format = '#,##0.00'

                elif clave in COLUMNAS_FECHA:

                    cell.number_format = 'DD/MM/YYYY'

                elif clave == 'porcentaje_comision':

                    cell.number_format = '0.00%'

                elif clave == columna_estado:

                    color = cls.ESTADO_COLORS.get(fila.get(clave), 'FFFFFF')

                    cell.fill = PatternFill(start_color=color, end_color=color, fill_type='solid')

        for col in range(1, len(columnas) + 1):

            ws.column_dimensions[get_column_letter(col)].width = 18

        ws.auto_filter.ref = ws.dimensions

        ws.freeze_panes = 'A2'

        return wb

    @staticmethod
    def respuesta_excel(wb, nombre_archivo):

        response = HttpResponse(

            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

        )

        response['Content-Disposition'] = f'attachment; filename="{nombre_archivo}"'

        wb.save(response)

        return response

    # =========================================================================

    # COBRANZAS

    # =========================================================================

    @classmethod
    def exportar_cobranzas_excel(cls, usuario, periodo, estado_cuota='all', fecha_desde=None, fecha_hasta=None):

        from ..cobranza import CobranzaService

        resultado = CobranzaService.exportar_reporte(usuario, periodo, estado_cuota, fecha_desde, fecha_hasta)

        if not resultado.exitoso:

            return resultado

        datos = resultado.objeto

        wb = cls.construir_libro('Cobranzas', COLUMNAS_COBRANZAS, datos['filas'], columna_estado='estado')

        nombre = f"cobranzas_{datos['desde']:%Y%m%d}_{datos['hasta']:%Y%m%d}.xlsx"

        return ResultadoOperacion.exito(cls.respuesta_excel(wb, nombre))

    # =========================================================================

    # PRODUCCIÓN

    # =========================================================================

    @classmethod
    def obtener_datos_produccion(cls, usuario, mes, anio, estado_poliza='all', regional=None, compania_id=None):

        """

        Una fila por cuota de las pólizas cuyo inicio de vigencia cae en el mes.

        Solo administradores.

        """

        from cartera.models import Cuota

        denegado = cls._verificar_rol(usuario, ('admin',), MENSAJE_SIN_PERMISO_ADMIN)

        if denegado:

            return denegado

        try:

            mes, anio = int(mes), int(anio)

            desde = date(anio, mes, 1)

        except (TypeError, ValueError):

            return ResultadoOperacion.error("Mes o año inválido")

        hasta = date(anio, mes, calendar.monthrange(anio, mes)[1])

        hoy = timezone.localdate()

        cuotas = (

            Cuota.objects.con_estado_real(hoy)

            .filter(poliza__inicio_vigencia__gte=desde, poliza__inicio_vigencia__lte=hasta)

            .select_related(

                'poliza', 'poliza__cliente', 'poliza__cliente__natural', 'poliza__cliente__juridico',

                'poliza__cliente__unipersonal', 'poliza__compania', 'poliza__ramo', 'poliza__producto',

                'poliza__responsable',

            )

            .order_by('poliza__numero_poliza', 'numero_cuota')

        )

        if estado_poliza and estado_poliza != 'all':

            cuotas = cuotas.filter(poliza__estado=estado_poliza)

        if regional:

            cuotas = cuotas.filter(poliza__regional=regional)

        if compania_id:

            cuotas = cuotas.filter(poliza__compania_id=compania_id)

        filas = []

        valores_poliza = {}

        for cuota in cuotas:

            poliza = cuota.poliza

            if poliza.pk not in valores_poliza:

                factor = PrimaCalculationService.factor_para(poliza.producto, poliza.modalidad_pago, cls._get_config)

                porcentaje = poliza.producto.porcentaje_comision if poliza.producto else cls._get_config(

                    'PORCENTAJE_COMISION_DEFAULT', Decimal('0.15'))

                valores = PrimaCalculationService.calcular_valores_poliza(poliza.prima_total, factor, porcentaje)

                valores_poliza[poliza.pk] = (factor, porcentaje, valores)

            factor, porcentaje, valores = valores_poliza[poliza.pk]

            fila = {

                'numero_poliza': poliza.numero_poliza,

                'cliente': poliza.cliente.nombre_completo,

                'ci_nit': poliza.cliente.documento,

                'compania': poliza.compania.nombre,

                'ramo': poliza.ramo.nombre,

                'responsable': poliza.responsable.get_full_name() or poliza.responsable.username,

                'regional': poliza.get_regional_display() if poliza.regional else 'N/A',

                'prima_total': poliza.prima_total,

                'prima_neta': valores['prima_neta'],

                'comision_empresa': valores['comision_empresa'],

                'factor_prima_neta': factor,

                'porcentaje_comision': porcentaje,

                'inicio_vigencia': poliza.inicio_vigencia,

                'fin_vigencia': poliza.fin_vigencia,

                'numero_cuota': cuota.numero_cuota,

                'moneda': poliza.moneda,

                'fecha_vencimiento': cuota.fecha_vencimiento,

                'estado_cuota': cuota.estado_calculado,

                'modalidad_pago': poliza.get_modalidad_pago_display(),

            }

            fila.update(PrimaCalculationService.calcular_valores_cuota(cuota.monto, factor, porcentaje))

            filas.append(fila)

        return ResultadoOperacion.exito({'desde': desde, 'hasta': hasta, 'filas': filas})

    @classmethod
    def exportar_produccion_excel(cls, usuario, mes, anio, estado_poliza='all', regional=None, compania_id=None):

        resultado = cls.obtener_datos_produccion(usuario, mes, anio, estado_poliza, regional, compania_id)

        if not resultado.exitoso:

            return resultado

        datos = resultado.objeto

        wb = cls.construir_libro('Producción', COLUMNAS_PRODUCCION, datos['filas'], columna_estado='estado_cuota')

        return ResultadoOperacion.exito(cls.respuesta_excel(wb, f"produccion_{datos['desde']:%Y_%m}.xlsx"))
