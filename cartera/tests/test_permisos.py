from datetime import timedelta

from django.contrib.auth.models import AnonymousUser
from django.utils import timezone

from cartera.models import PermisoRol, PermisoUsuario
from cartera.services.permisos import ALL_PERMISSIONS, PermisosService

from .base import CarteraTestCase, crear_usuario


class TienePermisoTest(CarteraTestCase):

    def test_admin_tiene_todos_los_permisos(self):
        self.assertTrue(PermisosService.tiene_permiso(self.admin, 'admin.permisos'))
        self.assertEqual(PermisosService.permisos_de(self.admin), ALL_PERMISSIONS)

    def test_superusuario_es_admin(self):
        root = crear_usuario('root', 'invitado', is_superuser=True)

        self.assertTrue(PermisosService.tiene_permiso(root, 'documentos.eliminar'))

    def test_permisos_del_rol(self):
        self.assertTrue(PermisosService.tiene_permiso(self.agente, 'polizas.crear'))
        self.assertFalse(PermisosService.tiene_permiso(self.agente, 'polizas.validar'))

    def test_invitado_y_desactivado_sin_permisos(self):
        invitado = crear_usuario('invitado', 'invitado')
        desactivado = crear_usuario('baja', 'desactivado')
        PermisoUsuario.objects.create(usuario=desactivado, permiso='polizas.ver')

        self.assertEqual(PermisosService.permisos_de(invitado), [])
        self.assertFalse(PermisosService.tiene_permiso(desactivado, 'polizas.ver'))

    def test_anonimo(self):
        self.assertFalse(PermisosService.tiene_permiso(AnonymousUser(), 'polizas.ver'))

    def test_permiso_puntual_vigente_y_expirado(self):
        PermisoUsuario.objects.create(
            usuario=self.agente, permiso='polizas.exportar', expira_en=timezone.now() + timedelta(days=1)
        )
        PermisoUsuario.objects.create(
            usuario=self.agente, permiso='cobranzas.gestionar', expira_en=timezone.now() - timedelta(minutes=1)
        )

        self.assertTrue(PermisosService.tiene_permiso(self.agente, 'polizas.exportar'))
        self.assertFalse(PermisosService.tiene_permiso(self.agente, 'cobranzas.gestionar'))
        self.assertNotIn('cobranzas.gestionar', PermisosService.permisos_de(self.agente))

    def test_inicializacion_idempotente(self):
        self.assertEqual(PermisosService.inicializar_permisos_por_rol(), 0)
        self.assertFalse(PermisoRol.objects.filter(rol='admin').exists())


class AdministracionPermisosTest(CarteraTestCase):

    def test_habilitar_y_deshabilitar_permiso_de_rol(self):
        resultado = PermisosService.actualizar_permiso_rol(self.admin, 'agente', 'polizas.validar', True)

        self.assertTrue(resultado.exitoso)
        self.assertTrue(PermisosService.tiene_permiso(self.agente, 'polizas.validar'))

        PermisosService.actualizar_permiso_rol(self.admin, 'agente', 'polizas.validar', False)
        self.assertFalse(PermisosService.tiene_permiso(self.agente, 'polizas.validar'))

    def test_rol_admin_no_editable(self):
        resultado = PermisosService.actualizar_permiso_rol(self.admin, 'admin', 'polizas.ver', False)

        self.assertEqual(
            resultado.mensaje, "No se pueden modificar los permisos del rol admin (tiene bypass permanente)"
        )

    def test_permiso_desconocido(self):
        resultado = PermisosService.actualizar_permiso_rol(self.admin, 'agente', 'polizas.borrar', True)

        self.assertEqual(resultado.mensaje, "Permiso inválido: polizas.borrar")

    def test_asignar_con_expiracion_pasada(self):
        resultado = PermisosService.asignar_permiso_usuario(
            self.admin, self.agente, 'polizas.exportar', timezone.now() - timedelta(hours=1)
        )

        self.assertEqual(resultado.mensaje, "La fecha de expiración debe ser futura")

    def test_asignar_y_revocar(self):
        resultado = PermisosService.asignar_permiso_usuario(self.admin, self.agente, 'polizas.exportar')

        self.assertTrue(resultado.exitoso)
        self.assertEqual(resultado.objeto.otorgado_por, self.admin)

        self.assertTrue(PermisosService.revocar_permiso_usuario(self.admin, self.agente, 'polizas.exportar').exitoso)
        resultado = PermisosService.revocar_permiso_usuario(self.admin, self.agente, 'polizas.exportar')
        self.assertEqual(resultado.mensaje, "El usuario no tiene este permiso asignado")

    def test_matriz(self):
        resultado = PermisosService.obtener_matriz_permisos(self.admin)

        fila = next(f for f in resultado.objeto['matriz'] if f['permiso'] == 'cobranzas.gestionar')
        self.assertTrue(fila['admin'])
        self.assertTrue(fila['cobranza'])
        self.assertFalse(fila['agente'])

    def test_solo_con_permiso_de_administracion(self):
        resultado = PermisosService.obtener_matriz_permisos(self.agente)

        self.assertEqual(resultado.mensaje, "No tiene permisos para gestionar permisos del sistema")
