from datetime import timedelta
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from cartera.models import CoberturaCatalogo, Documento, HistorialSiniestro, Siniestro
from cartera.services.siniestro import SiniestroService

from .base import ALMACENAMIENTO_EN_MEMORIA, CarteraTestCase, archivo_pdf, crear_poliza, crear_usuario


class SiniestroTestCase(CarteraTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.analista = crear_usuario('analista', 'siniestros')
        cls.poliza = crear_poliza('POL-SIN-001', cls.cliente, cls.producto, cls.agente)
        cls.cobertura = CoberturaCatalogo.objects.create(nombre='Daños propios', ramo=cls.ramo)

    def _datos(self, **cambios):
        hoy = timezone.localdate()
        datos = {
            'poliza_id': self.poliza.pk,
            'fecha_siniestro': hoy - timedelta(days=3),
            'fecha_reporte': hoy - timedelta(days=2),
            'lugar_hecho': 'Av. Cristo Redentor 4to anillo',
            'departamento': 'SC',
            'monto_reserva': Decimal('5000'),
            'moneda': 'Bs',
            'descripcion': 'Colisión frontal en la intersección con el cuarto anillo',
            'contactos': ['ana.rojas@correo.bo'],
            'coberturas': [self.cobertura.pk],
            'documentos': [{'tipo_documento': 'Denuncia', 'archivo': archivo_pdf('denuncia.pdf')}],
        }
        datos.update(cambios)
        return datos

    def _registrar(self, **cambios):
        resultado = SiniestroService.registrar_siniestro(self.analista, self._datos(**cambios))
        self.assertTrue(resultado.exitoso, resultado.mensaje)
        return Siniestro.objects.get(pk=resultado.objeto['siniestro_id'])


@ALMACENAMIENTO_EN_MEMORIA
class RegistrarSiniestroTest(SiniestroTestCase):

    def test_registro_completo(self):
        resultado = SiniestroService.registrar_siniestro(self.analista, self._datos())

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.advertencias, [])
        siniestro = Siniestro.objects.get(pk=resultado.objeto['siniestro_id'])
        anio = siniestro.fecha_siniestro.year
        self.assertEqual(siniestro.codigo_siniestro, f"{anio}-00001")
        self.assertEqual(siniestro.estado, 'abierto')
        self.assertEqual(siniestro.responsable, self.analista)
        self.assertEqual(list(siniestro.coberturas.all()), [self.cobertura])

        documento = Documento.objects.get(siniestro=siniestro)
        self.assertEqual(documento.bucket, 'siniestros-documentos')
        self.assertTrue(documento.ruta_archivo.startswith(f"{siniestro.pk}/"))
        self.assertTrue(documento.ruta_archivo.endswith('-denuncia.pdf'))
        self.assertTrue(
            HistorialSiniestro.objects.filter(siniestro=siniestro, accion='siniestro_registrado').exists()
        )

    def test_codigo_correlativo_por_anio(self):
        primero = self._registrar()
        segundo = self._registrar(documentos=[])

        anio = primero.fecha_siniestro.year
        self.assertEqual(segundo.codigo_siniestro, f"{anio}-00002")

    def test_advertencias_no_bloquean_el_registro(self):
        resultado = SiniestroService.registrar_siniestro(
            self.analista, self._datos(contactos=[], documentos=[], descripcion='Choque leve')
        )

        self.assertTrue(resultado.exitoso)
        self.assertEqual(len(resultado.advertencias), 3)

    def test_cobertura_personalizada_se_agrega_al_catalogo(self):
        siniestro = self._registrar(nueva_cobertura={'nombre': 'Rotura de parabrisas'})

        nueva = CoberturaCatalogo.objects.get(nombre='Rotura de parabrisas')
        self.assertTrue(nueva.es_custom)
        self.assertEqual(nueva.ramo, self.ramo)
        self.assertEqual(siniestro.coberturas.count(), 2)

    def test_sin_coberturas(self):
        resultado = SiniestroService.registrar_siniestro(self.analista, self._datos(coberturas=[]))

        self.assertFalse(resultado.exitoso)
        self.assertIn('coberturas', resultado.errores)

    def test_fecha_futura(self):
        manana = timezone.localdate() + timedelta(days=1)

        resultado = SiniestroService.registrar_siniestro(
            self.analista, self._datos(fecha_siniestro=manana, fecha_reporte=manana)
        )

        self.assertEqual(resultado.errores['fecha_siniestro'], "La fecha del siniestro no puede ser futura")

    def test_reporte_anterior_al_siniestro(self):
        hoy = timezone.localdate()

        resultado = SiniestroService.registrar_siniestro(
            self.analista, self._datos(fecha_siniestro=hoy - timedelta(days=1), fecha_reporte=hoy - timedelta(days=5))
        )

        self.assertEqual(
            resultado.errores['fecha_reporte'], "La fecha de reporte no puede ser anterior a la fecha del siniestro"
        )

    def test_reserva_no_finita(self):
        for reserva in ('Infinity', 1e30):
            with self.subTest(reserva=reserva):
                resultado = SiniestroService.registrar_siniestro(self.analista, self._datos(monto_reserva=reserva))

                self.assertEqual(resultado.errores['monto_reserva'], "El monto de reserva debe ser numérico")
        self.assertFalse(Siniestro.objects.exists())

    def test_contactos_invalidos(self):
        resultado = SiniestroService.registrar_siniestro(
            self.analista, self._datos(contactos=['ok@correo.bo', 'sin-arroba'])
        )

        self.assertEqual(resultado.errores['contactos'], "Los siguientes emails son inválidos: sin-arroba")

    def test_documento_con_extension_peligrosa(self):
        malicioso = SimpleUploadedFile('virus.exe', b'MZ', content_type='application/octet-stream')

        resultado = SiniestroService.registrar_siniestro(
            self.analista, self._datos(documentos=[{'tipo_documento': 'Otro', 'archivo': malicioso}])
        )

        self.assertFalse(resultado.exitoso)
        self.assertIn('documento_1_archivo', resultado.errores)
        self.assertFalse(Siniestro.objects.exists())

    def test_poliza_no_activa(self):
        pendiente = crear_poliza('POL-SIN-002', self.cliente, self.producto, self.agente, estado='pendiente')

        resultado = SiniestroService.registrar_siniestro(self.analista, self._datos(poliza_id=pendiente.pk))

        self.assertEqual(resultado.mensaje, "La póliza no existe o no está activa")

    def test_rol_sin_acceso(self):
        resultado = SiniestroService.registrar_siniestro(self.agente, self._datos())

        self.assertEqual(resultado.mensaje, "No tiene permisos para acceder al módulo de siniestros")


@ALMACENAMIENTO_EN_MEMORIA
class CerrarSiniestroTest(SiniestroTestCase):

    def test_cierre_por_rechazo(self):
        siniestro = self._registrar()

        resultado = SiniestroService.cerrar_siniestro(self.analista, siniestro.pk, {
            'tipo_cierre': 'rechazo',
            'motivo': 'Sin cobertura',
            'carta_rechazo': archivo_pdf('carta.pdf'),
        })

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto, {'siniestro_id': siniestro.pk, 'estado_final': 'rechazado'})
        siniestro.refresh_from_db()
        self.assertEqual(siniestro.motivo_cierre, 'Sin cobertura')
        self.assertEqual(siniestro.cerrado_por, self.analista)
        self.assertTrue(Documento.objects.filter(siniestro=siniestro, tipo_documento='carta_rechazo').exists())

    def test_cierre_por_declinacion(self):
        siniestro = self._registrar()

        resultado = SiniestroService.cerrar_siniestro(self.analista, siniestro.pk, {
            'tipo_cierre': 'declinacion',
            'motivo': 'Solicitud cliente',
            'carta_respaldo': archivo_pdf('respaldo.pdf'),
        })

        self.assertEqual(resultado.objeto['estado_final'], 'declinado')

    def test_cierre_por_indemnizacion(self):
        siniestro = self._registrar()

        resultado = SiniestroService.cerrar_siniestro(self.analista, siniestro.pk, {
            'tipo_cierre': 'indemnizacion',
            'archivo_uif': archivo_pdf('uif.pdf'),
            'archivo_pep': archivo_pdf('pep.pdf'),
            'monto_reclamado': '4000',
            'moneda_reclamado': 'Bs',
            'deducible': '500',
            'moneda_deducible': 'Bs',
            'monto_pagado': '3000',
            'moneda_pagado': 'Bs',
        })

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto['estado_final'], 'concluido')
        self.assertEqual(len(resultado.advertencias), 1)
        siniestro.refresh_from_db()
        self.assertEqual(siniestro.monto_pagado, Decimal('3000.00'))
        self.assertEqual(siniestro.deducible, Decimal('500.00'))

    def test_montos_de_indemnizacion_no_finitos(self):
        siniestro = self._registrar()

        resultado = SiniestroService.cerrar_siniestro(self.analista, siniestro.pk, {
            'tipo_cierre': 'indemnizacion',
            'archivo_uif': archivo_pdf('uif.pdf'),
            'archivo_pep': archivo_pdf('pep.pdf'),
            'monto_reclamado': 1e30,
            'moneda_reclamado': 'Bs',
            'deducible': 'NaN',
            'moneda_deducible': 'Bs',
            'monto_pagado': 'Infinity',
            'moneda_pagado': 'Bs',
        })

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.errores['monto_reclamado'], "El monto reclamado debe ser numérico")
        self.assertEqual(resultado.errores['deducible'], "El deducible debe ser numérico")
        self.assertEqual(resultado.errores['monto_pagado'], "El monto pagado debe ser numérico")
        siniestro.refresh_from_db()
        self.assertEqual(siniestro.estado, 'abierto')

    def test_motivo_fuera_de_la_lista(self):
        siniestro = self._registrar()

        resultado = SiniestroService.cerrar_siniestro(self.analista, siniestro.pk, {
            'tipo_cierre': 'rechazo',
            'motivo': 'Otro motivo',
            'carta_rechazo': archivo_pdf('carta.pdf'),
        })

        self.assertEqual(resultado.errores['motivo'], "Motivo de rechazo inválido")
        siniestro.refresh_from_db()
        self.assertEqual(siniestro.estado, 'abierto')

    def test_siniestro_cerrado_no_se_vuelve_a_cerrar(self):
        siniestro = self._registrar()
        datos = {'tipo_cierre': 'declinacion', 'motivo': 'Pagó otra póliza'}

        SiniestroService.cerrar_siniestro(
            self.analista, siniestro.pk, dict(datos, carta_respaldo=archivo_pdf('uno.pdf'))
        )
        resultado = SiniestroService.cerrar_siniestro(
            self.analista, siniestro.pk, dict(datos, carta_respaldo=archivo_pdf('dos.pdf'))
        )

        self.assertEqual(resultado.mensaje, "El siniestro ya está cerrado")
        self.assertEqual(Documento.objects.filter(tipo_documento='carta_respaldo').count(), 1)


@ALMACENAMIENTO_EN_MEMORIA
class SeguimientoSiniestroTest(SiniestroTestCase):

    def test_observacion(self):
        siniestro = self._registrar()

        resultado = SiniestroService.agregar_observacion(self.analista, siniestro.pk, '  Se solicitó peritaje  ')

        self.assertTrue(resultado.exitoso)
        self.assertEqual(resultado.objeto.observacion, 'Se solicitó peritaje')

    def test_observacion_vacia(self):
        siniestro = self._registrar()

        resultado = SiniestroService.agregar_observacion(self.analista, siniestro.pk, '   ')

        self.assertEqual(resultado.mensaje, "La observación no puede estar vacía")

    def test_agregar_documentos(self):
        siniestro = self._registrar(documentos=[])

        resultado = SiniestroService.agregar_documentos(self.analista, siniestro.pk, [
            {'tipo_documento': 'Fotografías', 'archivo': SimpleUploadedFile('foto.jpg', b'\xff\xd8\xff')},
            {'tipo_documento': 'Peritaje', 'archivo': archivo_pdf('peritaje.pdf')},
        ])

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.mensaje, "2 documento(s) agregado(s)")
        self.assertEqual(siniestro.historial.filter(accion='documento_agregado').count(), 2)

    def test_agregar_documentos_sin_archivos(self):
        siniestro = self._registrar()

        resultado = SiniestroService.agregar_documentos(self.analista, siniestro.pk, [])

        self.assertEqual(resultado.mensaje, "No se enviaron documentos")

    def test_estadisticas(self):
        abierto = self._registrar(documentos=[])
        cerrado = self._registrar(documentos=[], monto_reserva=Decimal('1500'))
        SiniestroService.cerrar_siniestro(self.analista, cerrado.pk, {
            'tipo_cierre': 'rechazo', 'motivo': 'Mora', 'carta_rechazo': archivo_pdf(),
        })

        stats = SiniestroService.calcular_estadisticas()

        self.assertEqual(stats['total_abiertos'], 1)
        self.assertEqual(stats['total_cerrados_mes'], 1)
        self.assertEqual(stats['monto_total_reservado'], abierto.monto_reserva)
        self.assertEqual(stats['siniestros_por_estado']['rechazado'], 1)
        self.assertEqual(stats['siniestros_por_ramo'], [{'poliza__ramo__nombre': 'Automotores', 'total': 2}])

    def test_detalle(self):
        siniestro = self._registrar()
        SiniestroService.agregar_observacion(self.analista, siniestro.pk, 'Llamar al taller')

        resultado = SiniestroService.obtener_detalle(self.analista, siniestro.pk)

        detalle = resultado.objeto
        self.assertEqual(detalle['numero_poliza'], 'POL-SIN-001')
        self.assertEqual(detalle['cliente'], 'Ana Rojas')
        self.assertEqual(len(detalle['documentos']), 1)
        self.assertEqual(detalle['observaciones'][0]['observacion'], 'Llamar al taller')

    def test_buscar_polizas_activas(self):
        crear_poliza('POL-SIN-099', self.cliente, self.producto, self.agente, estado='cancelada')

        resultado = SiniestroService.buscar_polizas_activas(self.analista, 'Rojas')

        self.assertEqual([p['numero_poliza'] for p in resultado.objeto], ['POL-SIN-001'])
