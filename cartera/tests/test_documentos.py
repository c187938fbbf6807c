import os
from datetime import timedelta
from unittest import mock

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase
from django.utils import timezone

from cartera.models import Documento
from cartera.services.documento import DocumentoService, sanitizar_nombre_archivo
from cartera.services.documento import storage

from .base import ALMACENAMIENTO_EN_MEMORIA, CarteraTestCase, archivo_pdf, crear_poliza


class SanitizarNombreTest(SimpleTestCase):

    def test_quita_tildes_espacios_y_simbolos(self):
        self.assertEqual(sanitizar_nombre_archivo('Póliza Nº 12 (firmada).pdf'), 'poliza_n_12_firmada.pdf')

    def test_colapsa_guiones_bajos(self):
        self.assertEqual(sanitizar_nombre_archivo('carta   de  cobro.PDF'), 'carta_de_cobro.pdf')

    def test_rutas_con_marca_de_tiempo(self):
        with mock.patch.object(storage, '_marca_tiempo', return_value=1700000000000):
            self.assertEqual(storage.ruta_temporal(5, 'abc', 'Foto 1.jpg'), 'temp/5/abc/1700000000000-foto_1.jpg')
            self.assertEqual(storage.ruta_final(42, 'Foto 1.jpg'), '42/1700000000000-foto_1.jpg')


@ALMACENAMIENTO_EN_MEMORIA
class CargaDocumentosTest(CarteraTestCase):

    def test_subir_temporal(self):
        resultado = DocumentoService.subir_temporal(self.agente, 'sesion-1', archivo_pdf('Póliza firmada.pdf'), 'poliza')

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        datos = resultado.objeto
        self.assertEqual(datos['bucket'], 'polizas-documentos')
        self.assertTrue(datos['ruta'].startswith(f"temp/{self.agente.pk}/sesion-1/"))
        self.assertTrue(datos['ruta'].endswith('-poliza_firmada.pdf'))
        self.assertTrue(default_storage.exists(f"polizas-documentos/{datos['ruta']}"))

    def test_extension_peligrosa(self):
        archivo = SimpleUploadedFile('instalador.exe', b'MZ')

        resultado = DocumentoService.subir_temporal(self.agente, 'sesion-1', archivo, 'poliza')

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.mensaje, 'El tipo de archivo ".exe" no está permitido por razones de seguridad.')

    def test_entidad_invalida(self):
        resultado = DocumentoService.subir_temporal(self.agente, 'sesion-1', archivo_pdf(), 'factura')

        self.assertEqual(resultado.mensaje, "Entidad inválida: factura")

    def test_adjuntar_temporales_mueve_a_la_ruta_final(self):
        poliza = crear_poliza('POL-DOC-001', self.cliente, self.producto, self.agente)
        temporal = DocumentoService.subir_temporal(self.agente, 'sesion-2', archivo_pdf('anexo.pdf'), 'poliza').objeto

        creados = DocumentoService.adjuntar_temporales(self.agente, 'poliza', poliza, [{
            'ruta_temporal': temporal['ruta'],
            'nombre_archivo': 'anexo.pdf',
            'tipo_documento': 'Anexo',
            'tamano_bytes': temporal['tamano_bytes'],
        }])

        documento = creados[0]
        self.assertEqual(documento.poliza, poliza)
        self.assertTrue(documento.ruta_archivo.startswith(f"{poliza.pk}/"))
        self.assertTrue(default_storage.exists(f"polizas-documentos/{documento.ruta_archivo}"))
        self.assertFalse(default_storage.exists(f"polizas-documentos/{temporal['ruta']}"))

    def test_temporal_inexistente_conserva_la_ruta(self):
        poliza = crear_poliza('POL-DOC-002', self.cliente, self.producto, self.agente)

        creados = DocumentoService.adjuntar_temporales(self.agente, 'poliza', poliza, [{
            'ruta_temporal': 'temp/1/perdida/1-anexo.pdf',
            'nombre_archivo': 'anexo.pdf',
        }])

        self.assertEqual(creados[0].ruta_archivo, 'temp/1/perdida/1-anexo.pdf')
        self.assertEqual(creados[0].tipo_documento, 'Otro')

    def test_limpiar_temporales_antiguos(self):
        viejo = default_storage.save('clientes-documentos/temp/1/s/1-viejo.pdf', ContentFile(b'x'))
        nuevo = default_storage.save('clientes-documentos/temp/1/s/2-nuevo.pdf', ContentFile(b'y'))
        hace_dos_dias = timezone.now() - timedelta(days=2)

        def modificado(nombre):
            return hace_dos_dias if nombre == viejo else timezone.now()

        with mock.patch.object(default_storage, 'get_modified_time', side_effect=modificado):
            eliminados = DocumentoService.limpiar_temporales(24)

        self.assertEqual(eliminados, 1)
        self.assertFalse(default_storage.exists(viejo))
        self.assertTrue(default_storage.exists(nuevo))


@ALMACENAMIENTO_EN_MEMORIA
class CicloDeVidaDocumentoTest(CarteraTestCase):

    def setUp(self):
        self.poliza = crear_poliza('POL-DOC-010', self.cliente, self.producto, self.agente)
        self.documento = DocumentoService.registrar_documento(
            self.agente, 'poliza', self.poliza, 'Póliza firmada', archivo_pdf('poliza.pdf')
        )

    def test_agente_descarta(self):
        resultado = DocumentoService.descartar_documento(self.agente, self.documento.pk)

        self.assertTrue(resultado.exitoso)
        self.assertEqual(Documento.objects.get(pk=self.documento.pk).estado, 'descartado')
        activos = DocumentoService.obtener_documentos_activos(self.agente, 'poliza', self.poliza.pk).objeto
        self.assertEqual(activos, [])

    def test_agente_no_restaura_ni_elimina(self):
        restaurar = DocumentoService.restaurar_documento(self.agente, self.documento.pk)
        eliminar = DocumentoService.eliminar_documento_permanente(self.agente, self.documento.pk)

        self.assertEqual(restaurar.mensaje, "No tiene permisos para restaurar documentos")
        self.assertEqual(eliminar.mensaje, "No tiene permisos para eliminar documentos")

    def test_admin_restaura(self):
        DocumentoService.descartar_documento(self.admin, self.documento.pk)

        resultado = DocumentoService.restaurar_documento(self.admin, self.documento.pk)

        self.assertEqual(resultado.objeto.estado, 'activo')

    def test_eliminacion_permanente_borra_el_archivo(self):
        clave = f"polizas-documentos/{self.documento.ruta_archivo}"
        self.assertTrue(default_storage.exists(clave))

        resultado = DocumentoService.eliminar_documento_permanente(self.admin, self.documento.pk)

        self.assertTrue(resultado.exitoso)
        self.assertFalse(Documento.objects.exists())
        self.assertFalse(default_storage.exists(clave))

    def test_solo_admin_ve_descartados(self):
        DocumentoService.descartar_documento(self.agente, self.documento.pk)

        agente = DocumentoService.obtener_todos_documentos(self.agente, 'poliza', self.poliza.pk)
        admin = DocumentoService.obtener_todos_documentos(self.admin, 'poliza', self.poliza.pk)

        self.assertEqual(agente.mensaje, "Solo administradores pueden ver documentos descartados")
        self.assertEqual([d['estado'] for d in admin.objeto], ['descartado'])

    def test_documento_inexistente(self):
        resultado = DocumentoService.descartar_documento(self.admin, 999999)

        self.assertEqual(resultado.mensaje, "Documento no encontrado")

    def test_nombre_original_se_conserva(self):
        self.assertEqual(self.documento.nombre_archivo, 'poliza.pdf')
        self.assertEqual(os.path.basename(self.documento.ruta_archivo).split('-', 1)[1], 'poliza.pdf')
