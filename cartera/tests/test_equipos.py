from cartera.models import Equipo, EquipoMiembro
from cartera.services.equipo import EquipoService

from .base import CarteraTestCase, crear_usuario


class EquipoServiceTest(CarteraTestCase):

    @classmethod
    def setUpTestData(cls):
        super().setUpTestData()
        cls.lider = crear_usuario('lider', 'agente', first_name='Rosa', last_name='Justiniano')
        cls.equipo = Equipo.objects.create(nombre='Cartera Norte', creado_por=cls.admin)
        cls.membresia = EquipoMiembro.objects.create(equipo=cls.equipo, usuario=cls.lider, rol_equipo='lider')

    def test_crear_equipo(self):
        resultado = EquipoService.crear_equipo(self.admin, '  Cartera Sur ', 'Agentes de zona sur')

        self.assertTrue(resultado.exitoso, resultado.mensaje)
        self.assertEqual(resultado.objeto.nombre, 'Cartera Sur')
        self.assertEqual(resultado.objeto.creado_por, self.admin)

    def test_nombre_repetido(self):
        resultado = EquipoService.crear_equipo(self.admin, 'cartera norte')

        self.assertEqual(resultado.mensaje, 'Ya existe un equipo con el nombre "cartera norte"')

    def test_nombre_vacio(self):
        resultado = EquipoService.crear_equipo(self.admin, '   ')

        self.assertEqual(resultado.errores['nombre'], "El nombre del equipo es requerido")

    def test_sin_permiso(self):
        resultado = EquipoService.crear_equipo(self.agente, 'Cartera Este')

        self.assertEqual(resultado.mensaje, "No tiene permisos para gestionar equipos")

    def test_agregar_miembro(self):
        resultado = EquipoService.agregar_miembro(self.admin, self.equipo.pk, self.agente.pk)

        self.assertTrue(resultado.exitoso)
        self.assertTrue(EquipoService.es_lider_de(self.lider, self.agente))
        self.assertEqual(EquipoService.obtener_lideres_de(self.agente), [self.lider])

    def test_miembro_repetido(self):
        resultado = EquipoService.agregar_miembro(self.admin, self.equipo.pk, self.lider.pk, 'miembro')

        self.assertEqual(resultado.mensaje, "Este usuario ya es miembro del equipo")

    def test_rol_de_equipo_invalido(self):
        resultado = EquipoService.agregar_miembro(self.admin, self.equipo.pk, self.agente.pk, 'jefe')

        self.assertEqual(resultado.mensaje, "Rol de equipo inválido: jefe")

    def test_cambiar_rol_y_remover(self):
        EquipoService.cambiar_rol_miembro(self.admin, self.membresia.pk, 'miembro')
        self.assertFalse(EquipoService.es_lider_de(self.lider, self.lider))

        resultado = EquipoService.remover_miembro(self.admin, self.membresia.pk)

        self.assertTrue(resultado.exitoso)
        self.assertFalse(EquipoMiembro.objects.exists())

    def test_usuarios_disponibles(self):
        resultado = EquipoService.obtener_usuarios_disponibles(self.admin, self.equipo.pk)

        usernames = [u['username'] for u in resultado.objeto]
        self.assertIn('agente', usernames)
        self.assertNotIn('lider', usernames)

    def test_listado_de_equipos(self):
        resultado = EquipoService.obtener_equipos(self.admin)

        equipo = resultado.objeto[0]
        self.assertEqual(equipo['total_miembros'], 1)
        self.assertEqual(equipo['lideres'], ['Rosa Justiniano'])

    def test_eliminar_equipo(self):
        self.assertTrue(EquipoService.eliminar_equipo(self.admin, self.equipo.pk).exitoso)
        self.assertEqual(EquipoService.eliminar_equipo(self.admin, self.equipo.pk).mensaje, "Equipo no encontrado")
