from datetime import date, timedelta
from decimal import Decimal

from django.utils import timezone

from cartera.models import Cuota, Poliza
from cartera.services.poliza import PolizaService

from .base import CarteraTestCase, crear_cuota, crear_poliza, crear_usuario


class CrearPolizaTest(CarteraTestCase):
    """Alta de pólizas con su cronograma de cuotas."""

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.inicio = timezone.localdate()
        cls.fin = cls.inicio + timedelta(days=365)

    def _datos(self, **cambios):
        datos = {
            'numero_poliza': 'POL-2026-001',
            'cliente_id': self.cliente.pk,
            'compania_id': self.compania.pk,
            'producto_id': self.producto.pk,
            'grupo_produccion': 'generales',
            'inicio_vigencia': self.inicio,
            'fin_vigencia': self.fin,
            'modalidad_pago': 'credito',
            'prima_total': Decimal('1200.00'),
            'moneda': 'Bs',
            'cuota_inicial': Decimal('200.00'),
        }
        datos.update(cambios)
        return datos

    def _cuotas(self, *montos):
        return [
            {'monto': Decimal(monto), 'fecha_vencimiento': self.inicio + timedelta(days=30 * i)}
            for i, monto in enumerate(montos, start=1)
        ]

    def test_poliza_a_credito_con_cuota_inicial(self):
        resultado = PolizaService.crear_poliza(self.agente, self._datos(), self._cuotas('500', '500'))

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        poliza = resultado.objeto
        self.assertEqual(poliza.estado, 'pendiente')
        self.assertEqual(poliza.responsable, self.agente)
        self.assertEqual(poliza.ramo, self.ramo)
        self.assertEqual(poliza.regional, 'SC')

        cuotas = list(Cuota.objects.filter(poliza=poliza).order_by('numero_cuota'))
        self.assertEqual([c.numero_cuota for c in cuotas], [1, 2, 3])
        self.assertEqual([c.monto for c in cuotas], [Decimal('200.00'), Decimal('500.00'), Decimal('500.00')])
        self.assertEqual(cuotas[0].fecha_vencimiento, self.inicio)
        self.assertEqual(cuotas[0].observaciones, 'Cuota inicial')

    def test_poliza_al_contado(self):
        datos = self._datos(modalidad_pago='contado', cuota_inicial=None)

        resultado = PolizaService.crear_poliza(self.agente, datos, self._cuotas('1200'))

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.cuotas.count(), 1)

    def test_contado_con_varias_cuotas(self):
        datos = self._datos(modalidad_pago='contado', cuota_inicial=None)

        resultado = PolizaService.crear_poliza(self.agente, datos, self._cuotas('600', '600'))

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.mensaje, "La modalidad contado requiere una única cuota igual a la prima total")
        self.assertFalse(Poliza.objects.exists())

    def test_credito_sin_cuotas(self):
        resultado = PolizaService.crear_poliza(self.agente, self._datos(), [])

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.errores['cuotas'], "Debe definir al menos una cuota de pago")

    def test_cuotas_mal_formadas_o_no_finitas(self):
        invalidas = (
            [10],
            [{'monto': 'Infinity', 'fecha_vencimiento': self.inicio}],
            [{'monto': 1e30, 'fecha_vencimiento': self.inicio}],
        )
        for cuotas in invalidas:
            with self.subTest(cuotas=cuotas):
                resultado = PolizaService.crear_poliza(self.agente, self._datos(), cuotas)

                self.assertFalse(resultado.exitoso)
                self.assertEqual(resultado.errores['cuotas'], "Cada cuota debe tener un monto y una fecha válidos")
        self.assertFalse(Poliza.objects.exists())

    def test_suma_de_cuotas_distinta_de_la_prima(self):
        resultado = PolizaService.crear_poliza(self.agente, self._datos(), self._cuotas('400', '300'))

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.errores['cuotas'], "La suma de cuotas (900.00) no coincide con prima total (1200.00)")
        self.assertFalse(Poliza.objects.exists())
        self.assertFalse(Cuota.objects.exists())

    def test_numero_duplicado(self):
        crear_poliza('POL-2026-001', self.cliente, self.producto, self.agente)

        resultado = PolizaService.crear_poliza(self.agente, self._datos(), self._cuotas('500', '500'))

        self.assertEqual(resultado.errores['numero_poliza'], "Ya existe una póliza con este número")

    def test_fin_de_vigencia_anterior_al_inicio(self):
        datos = self._datos(fin_vigencia=self.inicio - timedelta(days=1))

        resultado = PolizaService.crear_poliza(self.agente, datos, self._cuotas('500', '500'))

        self.assertEqual(resultado.errores['fin_vigencia'], "Fecha de fin debe ser posterior a la fecha de inicio")

    def test_cliente_inactivo(self):
        self.cliente.estado = 'inactivo'
        self.cliente.save()

        resultado = PolizaService.crear_poliza(self.agente, self._datos(), self._cuotas('500', '500'))

        self.assertEqual(resultado.errores['cliente_id'], "El cliente está inactivo")

    def test_producto_de_otra_aseguradora(self):
        from cartera.models import CompaniaAseguradora

        otra = CompaniaAseguradora.objects.create(nombre='Alianza Seguros', codigo=9)

        resultado = PolizaService.crear_poliza(
            self.agente, self._datos(compania_id=otra.pk), self._cuotas('500', '500')
        )

        self.assertEqual(
            resultado.errores['producto_id'], "El producto no pertenece a la aseguradora seleccionada"
        )

    def test_fechas_en_formato_texto(self):
        datos = self._datos(inicio_vigencia=self.inicio.isoformat(), fin_vigencia=self.fin.isoformat())

        resultado = PolizaService.crear_poliza(self.agente, datos, self._cuotas('500', '500'))

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.fin_vigencia, self.fin)

    def test_invitado_no_puede_crear(self):
        invitado = crear_usuario('invitado', 'invitado')

        resultado = PolizaService.crear_poliza(invitado, self._datos(), self._cuotas('500', '500'))

        self.assertEqual(resultado.mensaje, "No tiene permisos para crear pólizas")


class CicloDeRechazoTest(CarteraTestCase):
    """Edición y reenvío de pólizas rechazadas."""

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.poliza = crear_poliza('POL-REC-001', cls.cliente, cls.producto, cls.agente, estado='rechazada')

    def setUp(self):
        Poliza.objects.filter(pk=self.poliza.pk).update(puede_editar_hasta=timezone.now() + timedelta(hours=20))

    def test_reenvio_dentro_del_plazo(self):
        resultado = PolizaService.reenviar_a_validacion(self.agente, self.poliza.pk)

        self.assertTrue(resultado.exitoso)
        poliza = Poliza.objects.get(pk=self.poliza.pk)
        self.assertEqual(poliza.estado, 'pendiente')
        self.assertIsNone(poliza.puede_editar_hasta)

    def test_reenvio_con_plazo_vencido(self):
        Poliza.objects.filter(pk=self.poliza.pk).update(puede_editar_hasta=timezone.now() - timedelta(hours=1))

        resultado = PolizaService.reenviar_a_validacion(self.agente, self.poliza.pk)

        self.assertEqual(resultado.mensaje, "El plazo de edición de la póliza ha vencido")

    def test_solo_se_reenvian_polizas_rechazadas(self):
        activa = crear_poliza('POL-REC-002', self.cliente, self.producto, self.agente)

        resultado = PolizaService.reenviar_a_validacion(self.agente, activa.pk)

        self.assertEqual(resultado.mensaje, "Solo se pueden reenviar pólizas rechazadas")

    def test_otro_agente_no_puede_reenviar(self):
        otro = crear_usuario('otro_agente', 'agente')

        resultado = PolizaService.reenviar_a_validacion(otro, self.poliza.pk)

        self.assertEqual(resultado.mensaje, "Solo el responsable puede reenviar la póliza")

    def test_edicion_dentro_del_plazo(self):
        nuevo_fin = self.poliza.inicio_vigencia + timedelta(days=180)

        resultado = PolizaService.actualizar_poliza(self.agente, self.poliza.pk, {'fin_vigencia': nuevo_fin})

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(Poliza.objects.get(pk=self.poliza.pk).fin_vigencia, nuevo_fin)

    def test_edicion_fuera_del_plazo(self):
        Poliza.objects.filter(pk=self.poliza.pk).update(puede_editar_hasta=None)

        resultado = PolizaService.actualizar_poliza(self.agente, self.poliza.pk, {'regional': 'LP'})

        self.assertEqual(resultado.mensaje, "La póliza no está en período de edición")

    def test_expirar_ventanas_vencidas(self):
        Poliza.objects.filter(pk=self.poliza.pk).update(puede_editar_hasta=timezone.now() - timedelta(minutes=5))

        self.assertEqual(PolizaService.expirar_ventanas_edicion(), 1)
        self.assertIsNone(Poliza.objects.get(pk=self.poliza.pk).puede_editar_hasta)
        self.assertEqual(PolizaService.expirar_ventanas_edicion(), 0)


class ConsultasPolizaTest(CarteraTestCase):
    """Listado, búsqueda, detalle y vencimientos."""

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        hoy = timezone.localdate()
        cls.por_vencer = crear_poliza(
            'POL-VEN-001', cls.cliente, cls.producto, cls.agente,
            inicio=hoy - timedelta(days=340), fin=hoy + timedelta(days=25),
        )
        crear_cuota(cls.por_vencer, 1, '1000.00', hoy - timedelta(days=340),
                    estado='pagado', fecha_pago=hoy - timedelta(days=340))
        cls.lejana = crear_poliza(
            'POL-VEN-002', cls.cliente, cls.producto, cls.agente,
            inicio=hoy - timedelta(days=10), fin=hoy + timedelta(days=355),
        )
        crear_poliza(
            'POL-VEN-003', cls.cliente, cls.producto, cls.agente, estado='cancelada',
            inicio=hoy - timedelta(days=340), fin=hoy + timedelta(days=5),
        )

    def test_polizas_por_vencer(self):
        numeros = [p.numero_poliza for p in PolizaService.obtener_polizas_por_vencer(30)]

        self.assertEqual(numeros, ['POL-VEN-001'])

    def test_busqueda_por_documento_del_cliente(self):
        resultado = PolizaService.buscar_polizas(self.agente, '4567890')

        self.assertEqual(len(resultado.objeto), 3)

    def test_busqueda_con_texto_corto(self):
        self.assertEqual(PolizaService.buscar_polizas(self.agente, 'P').objeto, [])

    def test_listado_filtrado_por_estado(self):
        resultado = PolizaService.obtener_polizas(self.agente, estado='cancelada')

        self.assertEqual(resultado.objeto['total'], 1)
        self.assertEqual(resultado.objeto['polizas'][0]['numero_poliza'], 'POL-VEN-003')

    def test_detalle_incluye_valores_financieros(self):
        resultado = PolizaService.obtener_detalle_poliza(self.agente, self.por_vencer.pk)

        self.assertTrue(resultado.exitoso)
        detalle = resultado.objeto
        self.assertEqual(detalle['dias_para_vencer'], 25)
        self.assertEqual(detalle['cuotas'][0]['estado'], 'pagado')
        financiero = detalle['financiero']
        self.assertEqual(financiero['factor_prima_neta'], Decimal('40'))
        self.assertEqual(financiero['prima_neta'], Decimal('714.29'))
        self.assertEqual(financiero['comision_empresa'], Decimal('107.14'))

    def test_cronograma_sugerido(self):
        cronograma = PolizaService.generar_cronograma('1000', '100', 3, date(2026, 1, 31))

        self.assertEqual([c['monto'] for c in cronograma],
                         [Decimal('100.00'), Decimal('300.00'), Decimal('300.00'), Decimal('300.00')])
        self.assertEqual(cronograma[1]['fecha_vencimiento'], date(2026, 2, 28))
