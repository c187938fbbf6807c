import json
from datetime import timedelta

from django.test import Client
from django.urls import reverse
from django.utils import timezone

from cartera.models import Cuota, Poliza

from .base import CarteraTestCase, crear_cuota, crear_poliza, crear_usuario


class VistasTestCase(CarteraTestCase):

    def setUp(self):
        self.client = Client()

    def post_json(self, url, datos):
        return self.client.post(url, data=json.dumps(datos), content_type='application/json')


class AutenticacionTest(VistasTestCase):

    def test_anonimo_redirige_al_login(self):
        response = self.client.get(reverse('cartera:polizas_lista'))

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith('/admin/login/'))

    def test_metodo_no_permitido(self):
        self.client.force_login(self.agente)

        response = self.client.get(reverse('cartera:poliza_crear'))

        self.assertEqual(response.status_code, 405)

    def test_health_check(self):
        response = self.client.get('/health/')

        self.assertEqual(response.json()['status'], 'ok')


class CobranzasVistasTest(VistasTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.cobrador = crear_usuario('cobrador', 'cobranza')
        cls.poliza = crear_poliza('POL-VIS-001', cls.cliente, cls.producto, cls.agente)
        cls.cuota = crear_cuota(cls.poliza, 1, '300.00', timezone.localdate() + timedelta(days=5))

    def test_registrar_pago_con_exceso(self):
        self.client.force_login(self.cobrador)

        response = self.post_json(
            reverse('cartera:cobranzas_registrar_pago', args=[self.cuota.pk]), {'monto_pagado': '350.00'}
        )

        self.assertEqual(response.status_code, 200)
        cuerpo = response.json()
        self.assertTrue(cuerpo['success'])
        self.assertEqual(cuerpo['data']['tipo_pago'], 'exceso')
        self.assertEqual(cuerpo['data']['exceso_generado'], '50.00')
        self.assertEqual(Cuota.objects.get(pk=self.cuota.pk).estado, 'pagado')

    def test_monto_invalido_devuelve_400(self):
        self.client.force_login(self.cobrador)

        response = self.post_json(
            reverse('cartera:cobranzas_registrar_pago', args=[self.cuota.pk]), {'monto_pagado': '0'}
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "El monto pagado debe ser mayor a 0")
        self.assertIn('monto_pagado', response.json()['details'])

    def test_monto_fuera_de_rango_devuelve_400(self):
        self.client.force_login(self.cobrador)

        for monto in (1e30, 'Infinity'):
            with self.subTest(monto=monto):
                response = self.post_json(
                    reverse('cartera:cobranzas_registrar_pago', args=[self.cuota.pk]), {'monto_pagado': monto}
                )

                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()['error'], "Datos de pago inválidos")
        self.assertEqual(Cuota.objects.get(pk=self.cuota.pk).estado, 'pendiente')

    def test_json_invalido(self):
        self.client.force_login(self.cobrador)

        response = self.client.post(
            reverse('cartera:cobranzas_registrar_pago', args=[self.cuota.pk]),
            data='{no es json', content_type='application/json',
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {'success': False, 'error': "JSON inválido"})

    def test_agente_sin_acceso_al_dashboard(self):
        self.client.force_login(self.agente)

        response = self.client.get(reverse('cartera:cobranzas_dashboard'))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_aviso_de_mora_en_pdf(self):
        self.client.force_login(self.cobrador)

        response = self.client.get(reverse('cartera:cobranzas_aviso_mora_pdf', args=[self.poliza.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')


class GerenciaVistasTest(VistasTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.poliza = crear_poliza('POL-VIS-010', cls.cliente, cls.producto, cls.agente, estado='pendiente')

    def test_validar(self):
        self.client.force_login(self.admin)

        response = self.client.post(reverse('cartera:gerencia_validar', args=[self.poliza.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], "Póliza validada correctamente")
        self.assertEqual(response.json()['data']['id'], self.poliza.pk)
        self.assertEqual(Poliza.objects.get(pk=self.poliza.pk).estado, 'activa')

    def test_rechazo_con_motivo_corto(self):
        self.client.force_login(self.admin)

        response = self.post_json(reverse('cartera:gerencia_rechazar', args=[self.poliza.pk]), {'motivo': 'corto'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['details']['motivo'],
                         "El motivo del rechazo es obligatorio (mínimo 10 caracteres)")
        self.assertEqual(Poliza.objects.get(pk=self.poliza.pk).estado, 'pendiente')


class PolizasVistasTest(VistasTestCase):

    def test_cronograma_sugerido(self):
        self.client.force_login(self.agente)

        response = self.post_json(reverse('cartera:poliza_cronograma'), {
            'prima_total': '1200.00',
            'cuota_inicial': '0',
            'cantidad_cuotas': 3,
            'fecha_inicio': '2025-01-15',
            'periodo': 'mensual',
        })

        self.assertEqual(response.status_code, 200)
        cronograma = response.json()['data']
        self.assertEqual(len(cronograma), 3)
        self.assertEqual(cronograma[0]['monto'], '400.00')

    def test_cronograma_con_periodo_invalido(self):
        self.client.force_login(self.agente)

        response = self.post_json(reverse('cartera:poliza_cronograma'), {
            'prima_total': '1200.00', 'cantidad_cuotas': 3, 'fecha_inicio': '2025-01-15', 'periodo': 'semanal',
        })

        self.assertEqual(response.status_code, 400)

    def test_lista_paginada(self):
        crear_poliza('POL-VIS-020', self.cliente, self.producto, self.agente)
        self.client.force_login(self.agente)

        response = self.client.get(reverse('cartera:polizas_lista'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['total'], 1)


class ClientesVistasTest(VistasTestCase):

    def test_crear_cliente_natural(self):
        self.client.force_login(self.agente)

        response = self.post_json(reverse('cartera:cliente_crear'), {
            'tipo': 'natural',
            'datos': {
                'email': 'luis.vaca@correo.bo',
                'celular': '71234567',
                'direccion': 'Av. Banzer 456',
                'primer_nombre': 'Luis',
                'primer_apellido': 'Vaca',
                'tipo_documento': 'ci',
                'numero_documento': '7654321',
                'extension': 'SC',
                'estado_civil': 'soltero',
            },
        })

        self.assertEqual(response.status_code, 200, response.content)
        self.assertTrue(response.json()['success'])

    def test_tipo_invalido(self):
        self.client.force_login(self.agente)

        response = self.post_json(reverse('cartera:cliente_crear'), {'tipo': 'extranjero', 'datos': {}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Tipo de cliente inválido: extranjero")


class PermisosVistasTest(VistasTestCase):

    def test_usuario_inexistente_da_404(self):
        self.client.force_login(self.admin)

        response = self.post_json(
            reverse('cartera:permisos_asignar_usuario', args=[999999]), {'permiso': 'polizas.exportar'}
        )

        self.assertEqual(response.status_code, 404)

    def test_asignar_permiso_con_expiracion(self):
        self.client.force_login(self.admin)
        expira = (timezone.now() + timedelta(days=3)).isoformat()

        response = self.post_json(
            reverse('cartera:permisos_asignar_usuario', args=[self.agente.pk]),
            {'permiso': 'polizas.exportar', 'expira_en': expira},
        )

        self.assertEqual(response.status_code, 200)


class DocumentosVistasTest(VistasTestCase):

    def test_subir_sin_archivo(self):
        self.client.force_login(self.agente)

        response = self.client.post(reverse('cartera:documento_subir_temporal'), {'entidad': 'poliza'})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Debe adjuntar un archivo")
