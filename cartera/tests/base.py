"""
Datos de prueba compartidos por los tests de la cartera.
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone

from cartera.models import (
    Cliente, ClienteNatural, CompaniaAseguradora, Cuota, Poliza, ProductoAseguradora, Ramo,
)
from cartera.services.permisos import PermisosService


ALMACENAMIENTO_EN_MEMORIA = override_settings(STORAGES={
    'default': {'BACKEND': 'django.core.files.storage.InMemoryStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
})


def crear_usuario(username, rol, email=None, **extra):
    """Usuario con el rol indicado en su perfil (el perfil lo crea la señal post_save)."""
    usuario = User.objects.create_user(
        username=username,
        password='clave-segura-123',
        email=f'{username}@corretaje.bo' if email is None else email,
        **extra
    )
    usuario.perfil.rol = rol
    usuario.perfil.save()
    return usuario


def crear_cliente_natural(creado_por, numero_documento='4567890', nombre='Ana', apellido='Rojas',
                          email='ana.rojas@correo.bo'):
    cliente = Cliente.objects.create(
        tipo_cliente='natural',
        email=email,
        celular='70012345',
        direccion='Calle Sucre 123',
        creado_por=creado_por,
    )
    ClienteNatural.objects.create(
        cliente=cliente,
        primer_nombre=nombre,
        primer_apellido=apellido,
        numero_documento=numero_documento,
    )
    return Cliente.objects.get(pk=cliente.pk)


def crear_poliza(numero, cliente, producto, responsable, estado='activa', modalidad='credito',
                 prima=Decimal('1000.00'), inicio=None, fin=None):
    inicio = inicio or timezone.localdate() - timedelta(days=30)
    fin = fin or inicio + timedelta(days=365)
    return Poliza.objects.create(
        numero_poliza=numero,
        cliente=cliente,
        compania=producto.compania,
        producto=producto,
        ramo=producto.ramo,
        responsable=responsable,
        creado_por=responsable,
        regional='SC',
        grupo_produccion='generales',
        inicio_vigencia=inicio,
        fin_vigencia=fin,
        modalidad_pago=modalidad,
        prima_total=prima,
        moneda='Bs',
        estado=estado,
    )


def crear_cuota(poliza, numero, monto, vencimiento, **extra):
    return Cuota.objects.create(
        poliza=poliza,
        numero_cuota=numero,
        monto=Decimal(monto),
        fecha_vencimiento=vencimiento,
        **extra
    )


def archivo_pdf(nombre='documento.pdf'):
    return SimpleUploadedFile(nombre, b'%PDF-1.4 contenido de prueba', content_type='application/pdf')


class CarteraTestCase(TestCase):
    """
    Caso base: permisos por rol inicializados, un administrador y un
    catálogo mínimo (aseguradora, ramo, producto y un cliente natural).
    """

    @classmethod
    def setUpTestData(cls):
        PermisosService.inicializar_permisos_por_rol()

        cls.admin = crear_usuario('administrador', 'admin')
        cls.agente = crear_usuario('agente', 'agente')

        cls.compania = CompaniaAseguradora.objects.create(nombre='Nacional Seguros', codigo=7)
        cls.ramo = Ramo.objects.create(codigo='AUT', nombre='Automotores')
        cls.producto = ProductoAseguradora.objects.create(
            compania=cls.compania,
            ramo=cls.ramo,
            codigo_producto='AUT-01',
            nombre_producto='Automotor Todo Riesgo',
            factor_contado=Decimal('35'),
            factor_credito=Decimal('40'),
            porcentaje_comision=Decimal('0.15'),
            regional='SC',
        )
        cls.cliente = crear_cliente_natural(cls.admin)
