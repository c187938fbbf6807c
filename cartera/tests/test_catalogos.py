from cartera.models import Categoria, CompaniaAseguradora, ProductoAseguradora, Ramo
from cartera.services.catalogo import CatalogoService

from .base import CarteraTestCase, crear_poliza


class AltaCatalogosTest(CarteraTestCase):

    def test_crear_aseguradora(self):
        resultado = CatalogoService.crear(self.admin, 'aseguradora', {'nombre': '  Alianza Seguros ', 'codigo': 12})

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.mensaje, "Aseguradora creada correctamente")
        self.assertEqual(resultado.objeto.nombre, 'Alianza Seguros')

    def test_nombre_duplicado_sin_distinguir_mayusculas(self):
        resultado = CatalogoService.crear(self.admin, 'aseguradora', {'nombre': 'NACIONAL SEGUROS'})

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.mensaje, "Ya existe una aseguradora con este nombre")
        self.assertIn('nombre', resultado.errores)

    def test_codigo_de_ramo_en_mayusculas(self):
        resultado = CatalogoService.crear(self.admin, 'ramo', {'codigo': 'inc', 'nombre': 'Incendio'})

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.codigo, 'INC')

    def test_ramo_hijo_de_un_hijo(self):
        hijo = Ramo.objects.create(codigo='AUT-L', nombre='Livianos', ramo_padre=self.ramo)

        resultado = CatalogoService.crear(
            self.admin, 'ramo', {'codigo': 'AUT-LX', 'nombre': 'Livianos extra', 'ramo_padre': hijo.pk}
        )

        self.assertEqual(resultado.mensaje, "El ramo padre no puede ser a su vez un ramo hijo")

    def test_producto_con_factor_fuera_de_rango(self):
        resultado = CatalogoService.crear(self.admin, 'producto', {
            'compania': self.compania.pk,
            'ramo': self.ramo.pk,
            'codigo_producto': 'AUT-02',
            'nombre_producto': 'Automotor Básico',
            'factor_contado': '0',
            'factor_credito': '40',
            'porcentaje_comision': '0.10',
        })

        self.assertFalse(resultado.exitoso)
        self.assertIn('factor_contado', resultado.errores)

    def test_crear_categoria(self):
        resultado = CatalogoService.crear(self.admin, 'categoria', {'nombre': 'Corporativo'})

        self.assertEqual(resultado.mensaje, "Categoría creada correctamente")

    def test_solo_administradores(self):
        resultado = CatalogoService.crear(self.agente, 'categoria', {'nombre': 'Corporativo'})

        self.assertEqual(resultado.mensaje, "No tiene permisos de administrador")
        self.assertFalse(Categoria.objects.exists())

    def test_catalogo_desconocido(self):
        resultado = CatalogoService.crear(self.admin, 'moneda', {})

        self.assertEqual(resultado.mensaje, "Catálogo inválido: moneda")

    def test_actualizar_aseguradora(self):
        resultado = CatalogoService.actualizar(
            self.admin, 'aseguradora', self.compania.pk, {'nombre': 'Nacional Seguros Vida', 'codigo': 7}
        )

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.mensaje, "Aseguradora actualizada correctamente")


class DesactivacionCatalogosTest(CarteraTestCase):

    def test_aseguradora_con_polizas_vigentes(self):
        crear_poliza('POL-CAT-001', self.cliente, self.producto, self.agente)

        resultado = CatalogoService.desactivar(self.admin, 'aseguradora', self.compania.pk)

        self.assertEqual(resultado.mensaje, "Esta aseguradora tiene 1 póliza(s) activa(s). No se puede desactivar.")
        self.assertTrue(CompaniaAseguradora.objects.get(pk=self.compania.pk).activo)

    def test_polizas_canceladas_no_bloquean(self):
        crear_poliza('POL-CAT-002', self.cliente, self.producto, self.agente, estado='cancelada')

        resultado = CatalogoService.desactivar(self.admin, 'producto', self.producto.pk)

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.mensaje, "Producto desactivado correctamente")

    def test_ramo_con_productos_activos(self):
        resultado = CatalogoService.desactivar(self.admin, 'ramo', self.ramo.pk)

        self.assertEqual(resultado.mensaje, "Este ramo tiene 1 producto(s) activo(s). Desactívelos primero.")

    def test_reactivar_producto_de_aseguradora_inactiva(self):
        ProductoAseguradora.objects.filter(pk=self.producto.pk).update(activo=False)
        CompaniaAseguradora.objects.filter(pk=self.compania.pk).update(activo=False)

        resultado = CatalogoService.reactivar(self.admin, 'producto', self.producto.pk)

        self.assertFalse(resultado.exitoso)
        self.assertEqual(
            resultado.mensaje,
            'No se puede reactivar porque la aseguradora "Nacional Seguros" está inactiva. Reactívela primero.',
        )

    def test_listado_excluye_inactivos(self):
        Categoria.objects.create(nombre='Retail')
        Categoria.objects.create(nombre='Pyme', activo=False)

        activos = CatalogoService.listar(self.agente, 'categoria').objeto
        todos = CatalogoService.listar(self.agente, 'categoria', incluir_inactivos=True).objeto

        self.assertEqual([c['nombre'] for c in activos], ['Retail'])
        self.assertEqual(len(todos), 2)

    def test_listado_de_productos_por_aseguradora(self):
        otra = CompaniaAseguradora.objects.create(nombre='Alianza Seguros')

        productos = CatalogoService.listar(self.agente, 'producto', compania_id=otra.pk).objeto

        self.assertEqual(productos, [])

    def test_estadisticas(self):
        Categoria.objects.create(nombre='Pyme', activo=False)

        self.assertEqual(CatalogoService.estadisticas('categoria'), {'total': 1, 'activos': 0, 'inactivos': 1})
