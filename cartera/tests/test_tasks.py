from datetime import timedelta
from smtplib import SMTPException
from unittest import mock

from django.core import mail
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone

from cartera.models import NotificacionEmail, Poliza
from cartera.tasks import (
    enviar_recordatorios_cobranza, expirar_ventanas_edicion, limpiar_archivos_temporales,
    notificar_vencimientos_polizas,
)

from .base import ALMACENAMIENTO_EN_MEMORIA, CarteraTestCase, crear_cliente_natural, crear_cuota, crear_poliza


class RecordatoriosCobranzaTaskTest(CarteraTestCase):
    """Tarea diaria de recordatorios de pago."""

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        hoy = timezone.localdate()
        sin_email = crear_cliente_natural(cls.admin, numero_documento='9988776', nombre='Raúl', apellido='Soria',
                                          email='')

        cls.poliza = crear_poliza('POL-TSK-001', cls.cliente, cls.producto, cls.agente)
        cls.cuota = crear_cuota(cls.poliza, 1, '350.00', hoy + timedelta(days=3))
        crear_cuota(cls.poliza, 2, '350.00', hoy + timedelta(days=40))
        crear_cuota(cls.poliza, 3, '300.00', hoy + timedelta(days=2), estado='pagado', fecha_pago=hoy)

        otra = crear_poliza('POL-TSK-002', sin_email, cls.producto, cls.agente)
        crear_cuota(otra, 1, '500.00', hoy + timedelta(days=5))

        pendiente = crear_poliza('POL-TSK-003', cls.cliente, cls.producto, cls.agente, estado='pendiente')
        crear_cuota(pendiente, 1, '500.00', hoy + timedelta(days=1))

    def test_envia_un_recordatorio_por_cuota_en_la_ventana(self):
        resultado = enviar_recordatorios_cobranza.apply().get()

        self.assertEqual(resultado, {'status': 'success', 'enviados': 1, 'errores': 0, 'sin_email': 1})
        self.assertEqual(len(mail.outbox), 1)
        mensaje = mail.outbox[0]
        self.assertEqual(mensaje.to, ['ana.rojas@correo.bo'])
        self.assertEqual(mensaje.subject, "Recordatorio de pago - Póliza POL-TSK-001 - Cuota 1")
        self.assertEqual(mensaje.alternatives[0][1], 'text/html')

        notificacion = NotificacionEmail.objects.get()
        self.assertEqual(notificacion.tipo, 'recordatorio_pago')
        self.assertEqual(notificacion.cuota, self.cuota)
        self.assertEqual(notificacion.estado, 'enviado')

    def test_ventana_configurable(self):
        resultado = enviar_recordatorios_cobranza.apply(kwargs={'dias': 60}).get()

        self.assertEqual(resultado['enviados'], 2)

    def test_error_de_envio_queda_registrado(self):
        with mock.patch('django.core.mail.EmailMultiAlternatives.send', side_effect=SMTPException('sin conexión')):
            resultado = enviar_recordatorios_cobranza.apply().get()

        self.assertEqual(resultado['errores'], 1)
        self.assertEqual(resultado['enviados'], 0)
        self.assertEqual(NotificacionEmail.objects.get().estado, 'error')


class VencimientosTaskTest(CarteraTestCase):

    def test_agrupa_por_responsable(self):
        hoy = timezone.localdate()
        crear_poliza('POL-VTO-001', self.cliente, self.producto, self.agente,
                     inicio=hoy - timedelta(days=350), fin=hoy + timedelta(days=15))
        crear_poliza('POL-VTO-002', self.cliente, self.producto, self.admin,
                     inicio=hoy - timedelta(days=360), fin=hoy + timedelta(days=5))
        crear_poliza('POL-VTO-003', self.cliente, self.producto, self.agente)

        resultado = notificar_vencimientos_polizas.apply().get()

        self.assertEqual(resultado['total'], 2)
        self.assertEqual(resultado['por_responsable'], {'agente': 1, 'administrador': 1})

    def test_sin_polizas_por_vencer(self):
        resultado = notificar_vencimientos_polizas.apply(kwargs={'dias': 10}).get()

        self.assertEqual(resultado, {'status': 'success', 'total': 0, 'por_responsable': {}})


class MantenimientoTaskTest(CarteraTestCase):

    def test_expirar_ventanas_de_edicion(self):
        poliza = crear_poliza('POL-EXP-001', self.cliente, self.producto, self.agente, estado='rechazada')
        Poliza.objects.filter(pk=poliza.pk).update(puede_editar_hasta=timezone.now() - timedelta(hours=2))

        resultado = expirar_ventanas_edicion.apply().get()

        self.assertEqual(resultado, {'status': 'success', 'cerradas': 1})
        self.assertIsNone(Poliza.objects.get(pk=poliza.pk).puede_editar_hasta)

    @ALMACENAMIENTO_EN_MEMORIA
    def test_limpiar_archivos_temporales(self):
        nombre = default_storage.save('siniestros-documentos/temp/3/s/1-foto.jpg', ContentFile(b'x'))

        with mock.patch.object(default_storage, 'get_modified_time',
                               return_value=timezone.now() - timedelta(hours=30)):
            resultado = limpiar_archivos_temporales.apply().get()

        self.assertEqual(resultado, {'status': 'success', 'eliminados': 1})
        self.assertFalse(default_storage.exists(nombre))
