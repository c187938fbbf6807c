from cartera.models import Cliente, ConyugeCliente, RepresentanteLegal
from cartera.services.cliente import ClienteService

from .base import CarteraTestCase, crear_cliente_natural, crear_poliza, crear_usuario


class CrearClienteTest(CarteraTestCase):
    """Alta de clientes de los tres tipos."""

    def _natural(self, **cambios):
        datos = {
            'email': 'luis.vaca@correo.bo',
            'celular': '76543210',
            'primer_nombre': 'Luis',
            'primer_apellido': 'Vaca',
            'tipo_documento': 'ci',
            'numero_documento': '7788990',
            'extension': 'SC',
        }
        datos.update(cambios)
        return datos

    def test_cliente_natural(self):
        resultado = ClienteService.crear_cliente(self.agente, 'natural', self._natural())

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        cliente = resultado.objeto
        self.assertEqual(cliente.tipo_cliente, 'natural')
        self.assertEqual(cliente.nombre_completo, 'Luis Vaca')
        self.assertEqual(cliente.documento, '7788990')
        self.assertEqual(cliente.creado_por, self.agente)
        self.assertEqual(cliente.ejecutivo, self.agente)

    def test_natural_casado_con_conyuge(self):
        datos = self._natural(estado_civil='casado', conyuge={'nombre_completo': 'María Suárez'})

        resultado = ClienteService.crear_cliente(self.agente, 'natural', datos)

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(ConyugeCliente.objects.get().nombre_completo, 'María Suárez')

    def test_documento_duplicado(self):
        resultado = ClienteService.crear_cliente(self.agente, 'natural', self._natural(numero_documento='4567890'))

        self.assertFalse(resultado.exitoso)
        self.assertEqual(resultado.mensaje, "Ya existe un cliente con este número de documento")
        self.assertEqual(Cliente.objects.count(), 1)

    def test_celular_invalido(self):
        resultado = ClienteService.crear_cliente(self.agente, 'natural', self._natural(celular='70-A'))

        self.assertEqual(resultado.errores['celular'], "Teléfono inválido")

    def test_juridica_con_representantes(self):
        resultado = ClienteService.crear_cliente(self.agente, 'juridica', {
            'email': 'contacto@andina.bo',
            'razon_social': 'Importadora Andina SRL',
            'nit': '1020304050',
            'representantes': [
                {'nombre_completo': 'Carla Méndez', 'numero_documento': '5566778', 'cargo': 'Gerente'},
            ],
        })

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.nombre_completo, 'Importadora Andina SRL')
        self.assertEqual(RepresentanteLegal.objects.count(), 1)

    def test_juridica_sin_representantes(self):
        resultado = ClienteService.crear_cliente(self.agente, 'juridica', {
            'razon_social': 'Importadora Andina SRL',
            'nit': '1020304050',
        })

        self.assertEqual(resultado.mensaje, "Debe registrar al menos un representante legal")
        self.assertEqual(Cliente.objects.count(), 1)

    def test_unipersonal(self):
        resultado = ClienteService.crear_cliente(self.agente, 'unipersonal', {
            'razon_social': 'Ferretería El Tornillo',
            'nit': '99887766',
            'nombre_propietario': 'Pedro Flores',
            'documento_propietario': '3344556',
        })

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.documento, '99887766')

    def test_tipo_invalido(self):
        resultado = ClienteService.crear_cliente(self.agente, 'extranjero', {})

        self.assertEqual(resultado.mensaje, "Tipo de cliente inválido: extranjero")

    def test_rol_sin_permiso(self):
        cobrador = crear_usuario('cobrador', 'cobranza')

        resultado = ClienteService.crear_cliente(cobrador, 'natural', self._natural())

        self.assertEqual(resultado.mensaje, "No tiene permisos para crear clientes")


class ConsultaClientesTest(CarteraTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.otro = crear_cliente_natural(cls.admin, numero_documento='1122334', nombre='Jorge', apellido='Paz',
                                         email='jorge.paz@correo.bo')
        crear_poliza('POL-CLI-001', cls.cliente, cls.producto, cls.agente)

    def test_busqueda_por_apellido(self):
        resultado = ClienteService.buscar_clientes(self.agente, 'paz')

        self.assertEqual([c['nombre_completo'] for c in resultado.objeto], ['Jorge Paz'])

    def test_busqueda_con_un_caracter(self):
        self.assertEqual(ClienteService.buscar_clientes(self.agente, 'p').objeto, [])

    def test_inactivos_no_aparecen_en_la_busqueda(self):
        ClienteService.cambiar_estado_cliente(self.agente, self.otro.pk, 'inactivo')

        self.assertEqual(ClienteService.buscar_clientes(self.agente, 'paz').objeto, [])

    def test_listado_con_polizas_activas(self):
        resultado = ClienteService.obtener_clientes(self.agente, query='Rojas')

        clientes = resultado.objeto['clientes']
        self.assertEqual(len(clientes), 1)
        self.assertEqual(clientes[0]['polizas_activas'], 1)

    def test_detalle(self):
        resultado = ClienteService.obtener_cliente(self.agente, self.cliente.pk)

        detalle = resultado.objeto
        self.assertEqual(detalle['perfil']['numero_documento'], '4567890')
        self.assertIsNone(detalle['conyuge'])
        self.assertEqual(detalle['polizas'][0]['numero_poliza'], 'POL-CLI-001')

    def test_estado_invalido(self):
        resultado = ClienteService.cambiar_estado_cliente(self.agente, self.otro.pk, 'borrado')

        self.assertEqual(resultado.mensaje, "Estado inválido: borrado")

    def test_cliente_inexistente(self):
        resultado = ClienteService.cambiar_estado_cliente(self.agente, 999999, 'inactivo')

        self.assertEqual(resultado.mensaje, "Cliente no encontrado")
