from datetime import timedelta
from decimal import Decimal
from io import BytesIO

import openpyxl
from django.utils import timezone

from cartera.services.reportes import ExportacionService, PDFReportesService

from .base import CarteraTestCase, crear_cuota, crear_poliza, crear_usuario


XLSX = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class ReportesTestCase(CarteraTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.hoy = timezone.localdate()
        cls.cobrador = crear_usuario('cobrador', 'cobranza', first_name='Lucía', last_name='Arce')
        cls.poliza = crear_poliza(
            'POL-REP-001', cls.cliente, cls.producto, cls.agente, inicio=cls.hoy.replace(day=1),
        )
        crear_cuota(cls.poliza, 1, '400.00', cls.hoy - timedelta(days=10))
        crear_cuota(cls.poliza, 2, '600.00', cls.hoy + timedelta(days=20))


class ExportacionExcelTest(ReportesTestCase):

    def test_exportar_cobranzas(self):
        resultado = ExportacionService.exportar_cobranzas_excel(
            self.cobrador, 'custom', fecha_desde=self.hoy - timedelta(days=30), fecha_hasta=self.hoy + timedelta(days=30)
        )

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        response = resultado.objeto
        self.assertEqual(response['Content-Type'], XLSX)
        self.assertIn('attachment; filename="cobranzas_', response['Content-Disposition'])

        hoja = openpyxl.load_workbook(BytesIO(response.content)).active
        self.assertEqual(hoja.title, 'Cobranzas')
        self.assertEqual(hoja.cell(row=1, column=1).value, 'N° Póliza')
        self.assertEqual(hoja.max_row, 3)
        self.assertEqual(hoja.cell(row=2, column=11).value, 'vencido')

    def test_exportar_cobranzas_sin_acceso(self):
        resultado = ExportacionService.exportar_cobranzas_excel(self.agente, 'today')

        self.assertFalse(resultado.exitoso)

    def test_datos_de_produccion(self):
        resultado = ExportacionService.obtener_datos_produccion(self.admin, self.hoy.month, self.hoy.year)

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        filas = resultado.objeto['filas']
        self.assertEqual([f['numero_cuota'] for f in filas], [1, 2])
        self.assertEqual(filas[0]['prima_neta'], Decimal('714.29'))
        self.assertEqual(filas[0]['monto_cuota_pn'], Decimal('285.71'))
        self.assertEqual(filas[0]['regional'], 'Santa Cruz')
        self.assertEqual(filas[0]['modalidad_pago'], 'Crédito')

    def test_produccion_filtrada_por_regional(self):
        resultado = ExportacionService.obtener_datos_produccion(
            self.admin, self.hoy.month, self.hoy.year, regional='LP'
        )

        self.assertEqual(resultado.objeto['filas'], [])

    def test_produccion_solo_para_administradores(self):
        resultado = ExportacionService.obtener_datos_produccion(self.agente, self.hoy.month, self.hoy.year)

        self.assertEqual(resultado.mensaje, "No tiene permisos de administrador")

    def test_mes_invalido(self):
        resultado = ExportacionService.obtener_datos_produccion(self.admin, 13, self.hoy.year)

        self.assertEqual(resultado.mensaje, "Mes o año inválido")

    def test_exportar_produccion(self):
        resultado = ExportacionService.exportar_produccion_excel(self.admin, self.hoy.month, self.hoy.year)

        response = resultado.objeto
        self.assertEqual(response['Content-Type'], XLSX)
        hoja = openpyxl.load_workbook(BytesIO(response.content)).active
        self.assertEqual(hoja.title, 'Producción')
        self.assertEqual(hoja.max_row, 3)


class CartasPDFTest(ReportesTestCase):

    def test_aviso_de_mora(self):
        resultado = PDFReportesService.generar_aviso_mora(self.cobrador, self.poliza.pk)

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        response = resultado.objeto
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))
        self.assertIn(f'aviso_mora_AM-{self.hoy:%Y%m%d}-POL-REP-001.pdf', response['Content-Disposition'])

    def test_aviso_de_mora_sin_cuotas_pendientes(self):
        poliza = crear_poliza('POL-REP-002', self.cliente, self.producto, self.agente)

        resultado = PDFReportesService.generar_aviso_mora(self.cobrador, poliza.pk)

        self.assertEqual(resultado.mensaje, "La póliza no tiene cuotas pendientes de pago")

    def test_carta_de_vencimiento(self):
        resultado = PDFReportesService.generar_carta_vencimiento(self.agente, self.poliza.pk)

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertTrue(resultado.objeto.content.startswith(b'%PDF'))
        self.assertIn('aviso_vencimiento_POL-REP-001.pdf', resultado.objeto['Content-Disposition'])

    def test_carta_de_vencimiento_sin_permiso(self):
        resultado = PDFReportesService.generar_carta_vencimiento(self.cobrador, self.poliza.pk)

        self.assertEqual(resultado.mensaje, "No tiene permisos para generar cartas de vencimiento")

    def test_carta_de_poliza_inexistente(self):
        resultado = PDFReportesService.generar_carta_vencimiento(self.agente, 999999)

        self.assertEqual(resultado.mensaje, "Póliza no encontrada")
