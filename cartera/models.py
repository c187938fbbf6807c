from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from django.contrib.auth.models import User
from django.utils import timezone
from django.db.models import Case, CharField, DecimalField, Q, Sum, Value, When
from django.db.models.functions import Coalesce
from decimal import Decimal

from simple_history.models import HistoricalRecords


# ==================== CONSTANTES ====================

ROL_CHOICES = [
    ('admin', 'Administrador'),
    ('usuario', 'Gerencia'),
    ('agente', 'Agente'),
    ('comercial', 'Comercial'),
    ('cobranza', 'Cobranza'),
    ('siniestros', 'Siniestros'),
    ('invitado', 'Invitado'),
    ('desactivado', 'Desactivado'),
]

MONEDA_CHOICES = [
    ('Bs', 'Bolivianos'),
    ('USD', 'Dólares'),
    ('USDT', 'Tether'),
    ('UFV', 'Unidad de Fomento a la Vivienda'),
]

MONEDAS_VALIDAS = [codigo for codigo, _ in MONEDA_CHOICES]

DEPARTAMENTO_CHOICES = [
    ('LP', 'La Paz'),
    ('CB', 'Cochabamba'),
    ('SC', 'Santa Cruz'),
    ('OR', 'Oruro'),
    ('PT', 'Potosí'),
    ('CH', 'Chuquisaca'),
    ('TJ', 'Tarija'),
    ('BE', 'Beni'),
    ('PD', 'Pando'),
]


def obtener_rol(usuario):
    """Rol operativo del usuario; superusuarios se tratan como admin."""
    if usuario is None or not getattr(usuario, 'is_authenticated', False):
        return None
    if usuario.is_superuser:
        return 'admin'
    perfil = getattr(usuario, 'perfil', None)
    return perfil.rol if perfil else 'invitado'


# ==================== CONFIGURACIÓN ====================

class ConfiguracionSistema(models.Model):
    clave = models.CharField(max_length=100, unique=True, verbose_name="Clave")
    valor = models.CharField(max_length=255, verbose_name="Valor")
    tipo = models.CharField(max_length=20, choices=[
        ('decimal', 'Decimal'),
        ('entero', 'Entero'),
        ('texto', 'Texto'),
    ], default='texto', verbose_name="Tipo")
    descripcion = models.TextField(blank=True, verbose_name="Descripción")
    categoria = models.CharField(max_length=50, choices=[
        ('cobranzas', 'Cobranzas'),
        ('polizas', 'Pólizas'),
        ('siniestros', 'Siniestros'),
        ('documentos', 'Documentos'),
        ('general', 'General'),
    ], default='general', verbose_name="Categoría")

    class Meta:
        verbose_name = "Configuración del Sistema"
        verbose_name_plural = "Configuraciones del Sistema"
        ordering = ['categoria', 'clave']

    def __str__(self):
        return f"{self.clave} = {self.valor}"

    def get_valor_tipado(self):
        if self.tipo == 'decimal':
            return Decimal(self.valor)
        elif self.tipo == 'entero':
            return int(self.valor)
        return self.valor

    @classmethod
    def get_config(cls, clave, default=None):
        try:
            config = cls.objects.get(clave=clave)
            return config.get_valor_tipado()
        except cls.DoesNotExist:
            return default

    @classmethod
    def inicializar_valores_default(cls):
        configs_default = [
            {
                'clave': 'TOLERANCIA_MONTOS',
                'valor': '0.01',
                'tipo': 'decimal',
                'descripcion': 'Diferencia máxima aceptada al comparar montos',
                'categoria': 'general'
            },
            {
                'clave': 'NOMBRE_EMPRESA',
                'valor': 'Patria S.A.',
                'tipo': 'texto',
                'descripcion': 'Nombre con el que se firman recordatorios y cartas',
                'categoria': 'general'
            },
            {
                'clave': 'MAX_CUOTAS_CREDITO',
                'valor': '12',
                'tipo': 'entero',
                'descripcion': 'Cantidad máxima de cuotas para pólizas a crédito',
                'categoria': 'polizas'
            },
            {
                'clave': 'FACTOR_CONTADO_DEFAULT',
                'valor': '35',
                'tipo': 'decimal',
                'descripcion': 'Factor de prima neta por defecto para pagos al contado (%)',
                'categoria': 'polizas'
            },
            {
                'clave': 'FACTOR_CREDITO_DEFAULT',
                'valor': '40',
                'tipo': 'decimal',
                'descripcion': 'Factor de prima neta por defecto para pagos a crédito (%)',
                'categoria': 'polizas'
            },
            {
                'clave': 'PORCENTAJE_COMISION_DEFAULT',
                'valor': '0.15',
                'tipo': 'decimal',
                'descripcion': 'Comisión de la empresa sobre prima neta (15%)',
                'categoria': 'polizas'
            },
            {
                'clave': 'PORCENTAJE_COMISION_USUARIO_DEFAULT',
                'valor': '0.5',
                'tipo': 'decimal',
                'descripcion': 'Porcentaje de la comisión de la empresa que corresponde al responsable',
                'categoria': 'polizas'
            },
            {
                'clave': 'HORAS_EDICION_POLIZA_RECHAZADA',
                'valor': '24',
                'tipo': 'entero',
                'descripcion': 'Horas que tiene el responsable para corregir una póliza rechazada',
                'categoria': 'polizas'
            },
            {
                'clave': 'DIAS_ALERTA_VENCIMIENTO_POLIZA',
                'valor': '30',
                'tipo': 'entero',
                'descripcion': 'Días antes del vencimiento para generar cartas de vencimiento',
                'categoria': 'polizas'
            },
            {
                'clave': 'DIAS_RECORDATORIO_COBRANZA',
                'valor': '7',
                'tipo': 'entero',
                'descripcion': 'Días antes del vencimiento de una cuota para enviar recordatorio',
                'categoria': 'cobranzas'
            },
            {
                'clave': 'TAMANO_MAXIMO_DOCUMENTO_MB',
                'valor': '20',
                'tipo': 'entero',
                'descripcion': 'Tamaño máximo permitido por documento (MB)',
                'categoria': 'documentos'
            },
            {
                'clave': 'HORAS_RETENCION_TEMPORALES',
                'valor': '24',
                'tipo': 'entero',
                'descripcion': 'Horas que se conservan los archivos temporales de carga',
                'categoria': 'documentos'
            },
        ]

        for config_data in configs_default:
            cls.objects.get_or_create(
                clave=config_data['clave'],
                defaults=config_data
            )


# ==================== USUARIOS, PERMISOS Y EQUIPOS ====================

class PerfilUsuario(models.Model):
    usuario = models.OneToOneField(User, on_delete=models.CASCADE, related_name='perfil', verbose_name="Usuario")
    rol = models.CharField(max_length=20, choices=ROL_CHOICES, default='invitado', verbose_name="Rol")
    telefono = models.CharField(max_length=20, blank=True, verbose_name="Teléfono")
    cargo = models.CharField(max_length=100, blank=True, verbose_name="Cargo")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")

    class Meta:
        verbose_name = "Perfil de Usuario"
        verbose_name_plural = "Perfiles de Usuario"

    def __str__(self):
        return f"{self.usuario.get_full_name() or self.usuario.username} ({self.get_rol_display()})"


class PermisoRol(models.Model):
    """Permiso otorgado a todos los usuarios de un rol."""
    rol = models.CharField(max_length=20, choices=ROL_CHOICES, verbose_name="Rol")
    permiso = models.CharField(max_length=50, verbose_name="Permiso")

    class Meta:
        verbose_name = "Permiso por Rol"
        verbose_name_plural = "Permisos por Rol"
        unique_together = [('rol', 'permiso')]
        ordering = ['rol', 'permiso']

    def __str__(self):
        return f"{self.rol}: {self.permiso}"


class PermisoUsuario(models.Model):
    """Permiso otorgado a un usuario puntual, opcionalmente con vencimiento."""
    usuario = models.ForeignKey(User, on_delete=models.CASCADE, related_name='permisos_extra', verbose_name="Usuario")
    permiso = models.CharField(max_length=50, verbose_name="Permiso")
    otorgado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='permisos_otorgados', verbose_name="Otorgado por")
    expira_en = models.DateTimeField(null=True, blank=True, verbose_name="Expira en")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")

    class Meta:
        verbose_name = "Permiso de Usuario"
        verbose_name_plural = "Permisos de Usuario"
        unique_together = [('usuario', 'permiso')]

    def __str__(self):
        return f"{self.usuario.username}: {self.permiso}"

    @property
    def esta_vigente(self):
        return self.expira_en is None or self.expira_en > timezone.now()


class Equipo(models.Model):
    nombre = models.CharField(max_length=100, unique=True, verbose_name="Nombre")
    descripcion = models.TextField(blank=True, verbose_name="Descripción")
    creado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='equipos_creados', verbose_name="Creado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")

    class Meta:
        verbose_name = "Equipo"
        verbose_name_plural = "Equipos"
        ordering = ['nombre']

    def __str__(self):
        return self.nombre


class EquipoMiembro(models.Model):
    ROL_EQUIPO_CHOICES = [
        ('lider', 'Líder'),
        ('miembro', 'Miembro'),
    ]

    equipo = models.ForeignKey(Equipo, on_delete=models.CASCADE, related_name='miembros', verbose_name="Equipo")
    usuario = models.ForeignKey(User, on_delete=models.CASCADE, related_name='membresias', verbose_name="Usuario")
    rol_equipo = models.CharField(max_length=10, choices=ROL_EQUIPO_CHOICES, default='miembro',
                                  verbose_name="Rol en el Equipo")
    fecha_ingreso = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Ingreso")

    class Meta:
        verbose_name = "Miembro de Equipo"
        verbose_name_plural = "Miembros de Equipo"
        unique_together = [('equipo', 'usuario')]

    def __str__(self):
        return f"{self.usuario.username} en {self.equipo} ({self.rol_equipo})"


# ==================== CATÁLOGOS ====================

class CompaniaAseguradora(models.Model):
    """Compañías aseguradoras con las que trabaja la corredora"""
    nombre = models.CharField(max_length=200, unique=True, verbose_name="Nombre de la Compañía")
    codigo = models.PositiveIntegerField(unique=True, null=True, blank=True, verbose_name="Código")
    activo = models.BooleanField(default=True, verbose_name="Activo")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    class Meta:
        verbose_name = "Compañía Aseguradora"
        verbose_name_plural = "Compañías Aseguradoras"
        ordering = ['nombre']

    def __str__(self):
        return self.nombre


class Ramo(models.Model):
    """Ramos (tipos de seguro), con jerarquía opcional"""
    codigo = models.CharField(max_length=20, unique=True, verbose_name="Código")
    nombre = models.CharField(max_length=200, verbose_name="Nombre")
    descripcion = models.TextField(blank=True, verbose_name="Descripción")
    ramo_padre = models.ForeignKey('self', on_delete=models.PROTECT, null=True, blank=True,
                                   related_name='subramos', verbose_name="Ramo Padre")
    activo = models.BooleanField(default=True, verbose_name="Activo")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")

    class Meta:
        verbose_name = "Ramo"
        verbose_name_plural = "Ramos"
        ordering = ['codigo']

    def __str__(self):
        return f"{self.codigo} - {self.nombre}"


class ProductoAseguradora(models.Model):
    """Producto de una aseguradora con sus factores de prima neta y comisión"""
    compania = models.ForeignKey(CompaniaAseguradora, on_delete=models.PROTECT,
                                 related_name='productos', verbose_name="Aseguradora")
    ramo = models.ForeignKey(Ramo, on_delete=models.PROTECT, related_name='productos', verbose_name="Ramo")
    codigo_producto = models.CharField(max_length=50, verbose_name="Código de Producto")
    nombre_producto = models.CharField(max_length=300, verbose_name="Nombre de Producto")
    factor_contado = models.DecimalField(max_digits=6, decimal_places=2,
                                         validators=[MinValueValidator(Decimal('0.01')),
                                                     MaxValueValidator(Decimal('100'))],
                                         verbose_name="Factor Contado (%)")
    factor_credito = models.DecimalField(max_digits=6, decimal_places=2,
                                         validators=[MinValueValidator(Decimal('0.01')),
                                                     MaxValueValidator(Decimal('100'))],
                                         verbose_name="Factor Crédito (%)")
    porcentaje_comision = models.DecimalField(max_digits=5, decimal_places=4,
                                              validators=[MinValueValidator(Decimal('0')),
                                                          MaxValueValidator(Decimal('1'))],
                                              verbose_name="Porcentaje de Comisión")
    regional = models.CharField(max_length=2, choices=DEPARTAMENTO_CHOICES, blank=True, verbose_name="Regional")
    activo = models.BooleanField(default=True, verbose_name="Activo")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    class Meta:
        verbose_name = "Producto de Aseguradora"
        verbose_name_plural = "Productos de Aseguradoras"
        ordering = ['compania__nombre', 'nombre_producto']
        unique_together = [('compania', 'codigo_producto')]

    def __str__(self):
        return f"{self.nombre_producto} ({self.compania})"


class Categoria(models.Model):
    nombre = models.CharField(max_length=100, unique=True, verbose_name="Nombre")
    descripcion = models.CharField(max_length=500, blank=True, verbose_name="Descripción")
    activo = models.BooleanField(default=True, verbose_name="Activo")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")

    class Meta:
        verbose_name = "Categoría"
        verbose_name_plural = "Categorías"
        ordering = ['nombre']

    def __str__(self):
        return self.nombre


# ==================== CLIENTES ====================

class Cliente(models.Model):
    """Cliente de la corredora. Cada cliente tiene exactamente un perfil según su tipo."""
    TIPO_CHOICES = [
        ('natural', 'Persona Natural'),
        ('juridica', 'Persona Jurídica'),
        ('unipersonal', 'Empresa Unipersonal'),
    ]

    ESTADO_CHOICES = [
        ('activo', 'Activo'),
        ('inactivo', 'Inactivo'),
    ]

    tipo_cliente = models.CharField(max_length=15, choices=TIPO_CHOICES, verbose_name="Tipo de Cliente")
    estado = models.CharField(max_length=10, choices=ESTADO_CHOICES, default='activo', verbose_name="Estado")
    email = models.EmailField(blank=True, verbose_name="Email")
    telefono = models.CharField(max_length=20, blank=True, verbose_name="Teléfono")
    celular = models.CharField(max_length=20, blank=True, verbose_name="Celular")
    direccion = models.TextField(blank=True, verbose_name="Dirección")
    ejecutivo = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                  related_name='clientes_a_cargo', verbose_name="Ejecutivo a Cargo")

    creado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True,
                                   related_name='clientes_creados', verbose_name="Creado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    history = HistoricalRecords(
        verbose_name="Historial",
        verbose_name_plural="Historial de cambios"
    )

    class Meta:
        verbose_name = "Cliente"
        verbose_name_plural = "Clientes"
        ordering = ['-fecha_creacion']
        indexes = [
            models.Index(fields=['tipo_cliente', 'estado']),
        ]

    def __str__(self):
        return self.nombre_completo

    @property
    def perfil(self):
        if self.tipo_cliente == 'natural':
            return getattr(self, 'natural', None)
        if self.tipo_cliente == 'juridica':
            return getattr(self, 'juridico', None)
        return getattr(self, 'unipersonal', None)

    @property
    def nombre_completo(self):
        perfil = self.perfil
        if perfil is None:
            return "Sin nombre"
        if self.tipo_cliente == 'natural':
            partes = [perfil.primer_nombre, perfil.segundo_nombre, perfil.primer_apellido, perfil.segundo_apellido]
            return " ".join(p for p in partes if p)
        return perfil.razon_social

    @property
    def documento(self):
        perfil = self.perfil
        if perfil is None:
            return ""
        if self.tipo_cliente == 'natural':
            return perfil.numero_documento
        return perfil.nit


class ClienteNatural(models.Model):
    TIPO_DOCUMENTO_CHOICES = [
        ('ci', 'Cédula de Identidad'),
        ('pasaporte', 'Pasaporte'),
        ('extranjero', 'Carnet de Extranjero'),
    ]

    ESTADO_CIVIL_CHOICES = [
        ('soltero', 'Soltero(a)'),
        ('casado', 'Casado(a)'),
        ('divorciado', 'Divorciado(a)'),
        ('viudo', 'Viudo(a)'),
    ]

    cliente = models.OneToOneField(Cliente, on_delete=models.CASCADE, related_name='natural', verbose_name="Cliente")
    primer_nombre = models.CharField(max_length=100, verbose_name="Primer Nombre")
    segundo_nombre = models.CharField(max_length=100, blank=True, verbose_name="Segundo Nombre")
    primer_apellido = models.CharField(max_length=100, verbose_name="Primer Apellido")
    segundo_apellido = models.CharField(max_length=100, blank=True, verbose_name="Segundo Apellido")
    tipo_documento = models.CharField(max_length=15, choices=TIPO_DOCUMENTO_CHOICES, default='ci',
                                      verbose_name="Tipo de Documento")
    numero_documento = models.CharField(max_length=30, unique=True, verbose_name="Número de Documento")
    extension = models.CharField(max_length=5, blank=True, verbose_name="Extensión")
    fecha_nacimiento = models.DateField(null=True, blank=True, verbose_name="Fecha de Nacimiento")
    estado_civil = models.CharField(max_length=15, choices=ESTADO_CIVIL_CHOICES, blank=True,
                                    verbose_name="Estado Civil")
    nacionalidad = models.CharField(max_length=50, blank=True, default='Boliviana', verbose_name="Nacionalidad")
    profesion = models.CharField(max_length=100, blank=True, verbose_name="Profesión u Oficio")

    class Meta:
        verbose_name = "Cliente Natural"
        verbose_name_plural = "Clientes Naturales"

    def __str__(self):
        return f"{self.primer_nombre} {self.primer_apellido}"


class ConyugeCliente(models.Model):
    cliente_natural = models.OneToOneField(ClienteNatural, on_delete=models.CASCADE, related_name='conyuge',
                                           verbose_name="Cliente")
    nombre_completo = models.CharField(max_length=200, verbose_name="Nombre Completo")
    numero_documento = models.CharField(max_length=30, blank=True, verbose_name="Número de Documento")
    fecha_nacimiento = models.DateField(null=True, blank=True, verbose_name="Fecha de Nacimiento")

    class Meta:
        verbose_name = "Cónyuge"
        verbose_name_plural = "Cónyuges"

    def __str__(self):
        return self.nombre_completo


class ClienteJuridico(models.Model):
    cliente = models.OneToOneField(Cliente, on_delete=models.CASCADE, related_name='juridico', verbose_name="Cliente")
    razon_social = models.CharField(max_length=300, verbose_name="Razón Social")
    nit = models.CharField(max_length=30, unique=True, verbose_name="NIT")
    matricula_comercio = models.CharField(max_length=50, blank=True, verbose_name="Matrícula de Comercio")
    tipo_sociedad = models.CharField(max_length=50, blank=True, verbose_name="Tipo de Sociedad")
    actividad_economica = models.CharField(max_length=200, blank=True, verbose_name="Actividad Económica")

    class Meta:
        verbose_name = "Cliente Jurídico"
        verbose_name_plural = "Clientes Jurídicos"

    def __str__(self):
        return self.razon_social


class RepresentanteLegal(models.Model):
    cliente_juridico = models.ForeignKey(ClienteJuridico, on_delete=models.CASCADE,
                                         related_name='representantes', verbose_name="Cliente Jurídico")
    nombre_completo = models.CharField(max_length=200, verbose_name="Nombre Completo")
    numero_documento = models.CharField(max_length=30, verbose_name="Número de Documento")
    cargo = models.CharField(max_length=100, blank=True, verbose_name="Cargo")

    class Meta:
        verbose_name = "Representante Legal"
        verbose_name_plural = "Representantes Legales"

    def __str__(self):
        return self.nombre_completo


class ClienteUnipersonal(models.Model):
    cliente = models.OneToOneField(Cliente, on_delete=models.CASCADE, related_name='unipersonal',
                                   verbose_name="Cliente")
    razon_social = models.CharField(max_length=300, verbose_name="Razón Social")
    nit = models.CharField(max_length=30, unique=True, verbose_name="NIT")
    nombre_propietario = models.CharField(max_length=200, verbose_name="Nombre del Propietario")
    documento_propietario = models.CharField(max_length=30, verbose_name="Documento del Propietario")
    actividad_economica = models.CharField(max_length=200, blank=True, verbose_name="Actividad Económica")

    class Meta:
        verbose_name = "Cliente Unipersonal"
        verbose_name_plural = "Clientes Unipersonales"

    def __str__(self):
        return self.razon_social


# ==================== PÓLIZAS Y CUOTAS ====================

class Poliza(models.Model):
    """Póliza emitida por una aseguradora para un cliente de la cartera"""
    ESTADO_CHOICES = [
        ('pendiente', 'Pendiente de Validación'),
        ('activa', 'Activa'),
        ('rechazada', 'Rechazada'),
        ('vencida', 'Vencida'),
        ('cancelada', 'Cancelada'),
        ('renovada', 'Renovada'),
    ]

    MODALIDAD_CHOICES = [
        ('contado', 'Contado'),
        ('credito', 'Crédito'),
    ]

    GRUPO_PRODUCCION_CHOICES = [
        ('generales', 'Seguros Generales'),
        ('personales', 'Seguros Personales'),
    ]

    # Información básica
    numero_poliza = models.CharField(max_length=100, unique=True, verbose_name="Número de Póliza")
    cliente = models.ForeignKey(Cliente, on_delete=models.PROTECT, related_name='polizas', verbose_name="Cliente")
    compania = models.ForeignKey(CompaniaAseguradora, on_delete=models.PROTECT,
                                 related_name='polizas', verbose_name="Compañía Aseguradora")
    producto = models.ForeignKey(ProductoAseguradora, on_delete=models.PROTECT,
                                 related_name='polizas', verbose_name="Producto")
    ramo = models.ForeignKey(Ramo, on_delete=models.PROTECT, related_name='polizas', verbose_name="Ramo")
    categoria = models.ForeignKey(Categoria, on_delete=models.PROTECT, null=True, blank=True,
                                  related_name='polizas', verbose_name="Categoría")
    responsable = models.ForeignKey(User, on_delete=models.PROTECT, related_name='polizas_responsable',
                                    verbose_name="Responsable")
    regional = models.CharField(max_length=2, choices=DEPARTAMENTO_CHOICES, blank=True, verbose_name="Regional")
    grupo_produccion = models.CharField(max_length=15, choices=GRUPO_PRODUCCION_CHOICES,
                                        verbose_name="Grupo de Producción")

    # Fechas
    inicio_vigencia = models.DateField(verbose_name="Inicio de Vigencia")
    fin_vigencia = models.DateField(verbose_name="Fin de Vigencia")
    fecha_emision_compania = models.DateField(null=True, blank=True, verbose_name="Fecha de Emisión")

    # Pago
    modalidad_pago = models.CharField(max_length=10, choices=MODALIDAD_CHOICES, verbose_name="Modalidad de Pago")
    prima_total = models.DecimalField(max_digits=15, decimal_places=2,
                                      validators=[MinValueValidator(Decimal('0.01'))],
                                      verbose_name="Prima Total")
    moneda = models.CharField(max_length=5, choices=MONEDA_CHOICES, default='Bs', verbose_name="Moneda")

    # Estado y validación
    estado = models.CharField(max_length=20, choices=ESTADO_CHOICES, default='pendiente', verbose_name="Estado")
    validado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='polizas_validadas', verbose_name="Validado por")
    fecha_validacion = models.DateTimeField(null=True, blank=True, verbose_name="Fecha de Validación")
    rechazado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                      related_name='polizas_rechazadas', verbose_name="Rechazado por")
    motivo_rechazo = models.TextField(blank=True, verbose_name="Motivo de Rechazo")
    fecha_rechazo = models.DateTimeField(null=True, blank=True, verbose_name="Fecha de Rechazo")
    puede_editar_hasta = models.DateTimeField(null=True, blank=True, verbose_name="Puede Editar Hasta")

    # Auditoría
    creado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True,
                                   related_name='polizas_creadas', verbose_name="Creado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    history = HistoricalRecords(
        verbose_name="Historial",
        verbose_name_plural="Historial de cambios"
    )

    class Meta:
        verbose_name = "Póliza"
        verbose_name_plural = "Pólizas"
        ordering = ['-fecha_creacion']
        indexes = [
            models.Index(fields=['numero_poliza']),
            models.Index(fields=['estado', 'fin_vigencia']),
        ]

    def __str__(self):
        return f"{self.numero_poliza} - {self.compania}"

    def clean(self):
        if self.inicio_vigencia and self.fin_vigencia and self.fin_vigencia <= self.inicio_vigencia:
            raise ValidationError({
                'fin_vigencia': 'Fecha de fin debe ser posterior a la fecha de inicio'
            })

    @property
    def puede_editar(self):
        return (
            self.estado == 'rechazada'
            and self.puede_editar_hasta is not None
            and timezone.now() < self.puede_editar_hasta
        )

    @property
    def dias_para_vencer(self):
        if not self.fin_vigencia:
            return 0
        hoy = timezone.localdate()
        if self.fin_vigencia > hoy:
            return (self.fin_vigencia - hoy).days
        return 0


class CuotaQuerySet(models.QuerySet):

    def con_estado_real(self, hoy=None):
        """Anota `estado_calculado`: el estado vencido se deriva de la fecha, nunca se almacena."""
        hoy = hoy or timezone.localdate()
        return self.annotate(
            estado_calculado=Case(
                When(fecha_pago__isnull=False, then=Value('pagado')),
                When(estado='pagado', then=Value('pagado')),
                When(estado='parcial', then=Value('parcial')),
                When(fecha_vencimiento__lt=hoy, then=Value('vencido')),
                default=Value('pendiente'),
                output_field=CharField(),
            )
        )

    def pendientes(self, hoy=None):
        return self.con_estado_real(hoy).filter(estado_calculado__in=['pendiente', 'vencido', 'parcial'])

    def con_pagos_parciales(self):
        return self.annotate(
            total_pagado_parcial=Coalesce(
                Sum('movimientos__monto', filter=Q(movimientos__tipo='pago_parcial')),
                Value(Decimal('0.00')),
                output_field=DecimalField(max_digits=15, decimal_places=2),
            )
        )


class Cuota(models.Model):
    """Cuota del cronograma de pagos de una póliza"""
    ESTADO_CHOICES = [
        ('pendiente', 'Pendiente'),
        ('parcial', 'Pago Parcial'),
        ('pagado', 'Pagado'),
    ]

    poliza = models.ForeignKey(Poliza, on_delete=models.CASCADE, related_name='cuotas', verbose_name="Póliza")
    numero_cuota = models.PositiveIntegerField(validators=[MinValueValidator(1)], verbose_name="Número de Cuota")
    monto = models.DecimalField(max_digits=15, decimal_places=2,
                                validators=[MinValueValidator(Decimal('0'))], verbose_name="Monto")
    fecha_vencimiento = models.DateField(verbose_name="Fecha de Vencimiento")
    fecha_pago = models.DateField(null=True, blank=True, verbose_name="Fecha de Pago")
    estado = models.CharField(max_length=10, choices=ESTADO_CHOICES, default='pendiente', verbose_name="Estado")
    exceso_generado = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'),
                                          validators=[MinValueValidator(Decimal('0'))],
                                          verbose_name="Exceso Generado")
    observaciones = models.TextField(blank=True, verbose_name="Observaciones")

    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    history = HistoricalRecords(
        verbose_name="Historial",
        verbose_name_plural="Historial de cambios"
    )

    objects = CuotaQuerySet.as_manager()

    class Meta:
        verbose_name = "Cuota"
        verbose_name_plural = "Cuotas"
        ordering = ['poliza', 'numero_cuota']
        unique_together = [('poliza', 'numero_cuota')]
        indexes = [
            models.Index(fields=['estado', 'fecha_vencimiento']),
        ]

    def __str__(self):
        return f"Cuota {self.numero_cuota} - {self.poliza.numero_poliza}"

    def estado_a_fecha(self, hoy):
        if self.fecha_pago or self.estado == 'pagado':
            return 'pagado'
        if self.estado == 'parcial':
            return 'parcial'
        if self.fecha_vencimiento < hoy:
            return 'vencido'
        return 'pendiente'

    @property
    def estado_real(self):
        return self.estado_a_fecha(timezone.localdate())

    @property
    def pagado_parcial(self):
        """Total abonado mediante pagos parciales registrados en la bitácora."""
        if hasattr(self, 'total_pagado_parcial'):
            return self.total_pagado_parcial
        total = self.movimientos.filter(tipo='pago_parcial').aggregate(total=Sum('monto'))['total']
        return total or Decimal('0.00')

    @property
    def saldo_pendiente(self):
        if self.estado_real == 'pagado':
            return Decimal('0.00')
        return max(Decimal('0.00'), self.monto - self.pagado_parcial)

    @property
    def dias_mora(self):
        if self.estado_real == 'pagado':
            return 0
        return max(0, (timezone.localdate() - self.fecha_vencimiento).days)


class MovimientoCuota(models.Model):
    """Bitácora estructurada de los pagos y redistribuciones aplicados a una cuota"""
    TIPO_CHOICES = [
        ('pago_parcial', 'Pago Parcial'),
        ('pago_completo', 'Pago Completo'),
        ('pago_exceso', 'Pago con Exceso'),
        ('redistribucion_recibida', 'Redistribución Recibida'),
        ('redistribucion_origen', 'Redistribución de Exceso'),
    ]

    cuota = models.ForeignKey(Cuota, on_delete=models.CASCADE, related_name='movimientos', verbose_name="Cuota")
    tipo = models.CharField(max_length=30, choices=TIPO_CHOICES, verbose_name="Tipo")
    monto = models.DecimalField(max_digits=15, decimal_places=2, verbose_name="Monto")
    saldo_resultante = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'),
                                           verbose_name="Saldo Resultante")
    fecha = models.DateField(verbose_name="Fecha")
    detalle = models.CharField(max_length=500, blank=True, verbose_name="Detalle")
    usuario = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='movimientos_cuota', verbose_name="Registrado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Registro")

    class Meta:
        verbose_name = "Movimiento de Cuota"
        verbose_name_plural = "Movimientos de Cuota"
        ordering = ['cuota', 'fecha_creacion']

    def __str__(self):
        return f"{self.get_tipo_display()} {self.monto} - {self.cuota}"


# ==================== SINIESTROS ====================

class CoberturaCatalogo(models.Model):
    nombre = models.CharField(max_length=200, verbose_name="Nombre")
    descripcion = models.TextField(blank=True, verbose_name="Descripción")
    ramo = models.ForeignKey(Ramo, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='coberturas', verbose_name="Ramo")
    es_custom = models.BooleanField(default=False, verbose_name="Personalizada")
    activo = models.BooleanField(default=True, verbose_name="Activo")

    class Meta:
        verbose_name = "Cobertura"
        verbose_name_plural = "Catálogo de Coberturas"
        ordering = ['nombre']

    def __str__(self):
        return self.nombre


class Siniestro(models.Model):
    """Siniestro reportado sobre una póliza. Una vez cerrado no vuelve a abrirse."""
    ESTADO_CHOICES = [
        ('abierto', 'Abierto'),
        ('rechazado', 'Rechazado'),
        ('declinado', 'Declinado'),
        ('concluido', 'Concluido'),
    ]

    TIPO_CIERRE_CHOICES = [
        ('rechazo', 'Rechazo'),
        ('declinacion', 'Declinación'),
        ('indemnizacion', 'Indemnización'),
    ]

    poliza = models.ForeignKey(Poliza, on_delete=models.PROTECT, related_name='siniestros', verbose_name="Póliza")
    codigo_siniestro = models.CharField(max_length=20, unique=True, verbose_name="Código")
    fecha_siniestro = models.DateField(verbose_name="Fecha del Siniestro")
    fecha_reporte = models.DateField(verbose_name="Fecha de Reporte")
    fecha_reporte_compania = models.DateField(null=True, blank=True, verbose_name="Fecha de Reporte a Compañía")
    lugar_hecho = models.CharField(max_length=300, verbose_name="Lugar del Hecho")
    departamento = models.CharField(max_length=2, choices=DEPARTAMENTO_CHOICES, verbose_name="Departamento")
    monto_reserva = models.DecimalField(max_digits=15, decimal_places=2,
                                        validators=[MinValueValidator(Decimal('0.01'))],
                                        verbose_name="Monto de Reserva")
    moneda = models.CharField(max_length=5, choices=MONEDA_CHOICES, verbose_name="Moneda")
    descripcion = models.TextField(verbose_name="Descripción")
    contactos = models.JSONField(default=list, blank=True, verbose_name="Emails de Contacto")
    coberturas = models.ManyToManyField(CoberturaCatalogo, blank=True, related_name='siniestros',
                                        verbose_name="Coberturas")
    responsable = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='siniestros_responsable', verbose_name="Responsable")

    estado = models.CharField(max_length=15, choices=ESTADO_CHOICES, default='abierto', verbose_name="Estado")

    # Cierre
    tipo_cierre = models.CharField(max_length=15, choices=TIPO_CIERRE_CHOICES, blank=True,
                                   verbose_name="Tipo de Cierre")
    motivo_cierre = models.CharField(max_length=100, blank=True, verbose_name="Motivo de Cierre")
    monto_reclamado = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True,
                                          verbose_name="Monto Reclamado")
    moneda_reclamado = models.CharField(max_length=5, choices=MONEDA_CHOICES, blank=True,
                                        verbose_name="Moneda Reclamado")
    deducible = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True,
                                    verbose_name="Deducible")
    moneda_deducible = models.CharField(max_length=5, choices=MONEDA_CHOICES, blank=True,
                                        verbose_name="Moneda Deducible")
    monto_pagado = models.DecimalField(max_digits=15, decimal_places=2, null=True, blank=True,
                                       verbose_name="Monto Pagado")
    moneda_pagado = models.CharField(max_length=5, choices=MONEDA_CHOICES, blank=True,
                                     verbose_name="Moneda Pagado")
    es_pago_comercial = models.BooleanField(default=False, verbose_name="Pago Comercial")
    fecha_cierre = models.DateTimeField(null=True, blank=True, verbose_name="Fecha de Cierre")
    cerrado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='siniestros_cerrados', verbose_name="Cerrado por")

    # Auditoría
    creado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True,
                                   related_name='siniestros_creados', verbose_name="Creado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Registro")
    fecha_modificacion = models.DateTimeField(auto_now=True, verbose_name="Fecha de Modificación")

    history = HistoricalRecords(
        verbose_name="Historial",
        verbose_name_plural="Historial de cambios"
    )

    class Meta:
        verbose_name = "Siniestro"
        verbose_name_plural = "Siniestros"
        ordering = ['-fecha_siniestro']
        indexes = [
            models.Index(fields=['codigo_siniestro']),
            models.Index(fields=['estado', 'fecha_siniestro']),
        ]

    def __str__(self):
        return f"{self.codigo_siniestro} - {self.poliza.numero_poliza}"

    @property
    def esta_cerrado(self):
        return self.estado != 'abierto'

    @property
    def dias_abierto(self):
        fin = self.fecha_cierre.date() if self.fecha_cierre else timezone.localdate()
        return max(0, (fin - self.fecha_reporte).days)


class ObservacionSiniestro(models.Model):
    siniestro = models.ForeignKey(Siniestro, on_delete=models.CASCADE, related_name='observaciones',
                                  verbose_name="Siniestro")
    observacion = models.TextField(verbose_name="Observación")
    usuario = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, verbose_name="Usuario")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha")

    class Meta:
        verbose_name = "Observación de Siniestro"
        verbose_name_plural = "Observaciones de Siniestro"
        ordering = ['-fecha_creacion']

    def __str__(self):
        return f"Observación {self.siniestro.codigo_siniestro}"


class HistorialSiniestro(models.Model):
    """Acciones de negocio sobre un siniestro (registro, documentos, cierre)"""
    siniestro = models.ForeignKey(Siniestro, on_delete=models.CASCADE, related_name='historial',
                                  verbose_name="Siniestro")
    accion = models.CharField(max_length=50, verbose_name="Acción")
    detalles = models.JSONField(default=dict, blank=True, verbose_name="Detalles")
    usuario = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, verbose_name="Usuario")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha")

    class Meta:
        verbose_name = "Historial de Siniestro"
        verbose_name_plural = "Historial de Siniestros"
        ordering = ['-fecha_creacion']

    def __str__(self):
        return f"{self.accion} - {self.siniestro.codigo_siniestro}"


# ==================== DOCUMENTOS ====================

class Documento(models.Model):
    """Archivo almacenado asociado a una póliza, un cliente o un siniestro"""
    BUCKET_CHOICES = [
        ('polizas-documentos', 'Documentos de Pólizas'),
        ('clientes-documentos', 'Documentos de Clientes'),
        ('siniestros-documentos', 'Documentos de Siniestros'),
    ]

    ESTADO_CHOICES = [
        ('activo', 'Activo'),
        ('descartado', 'Descartado'),
    ]

    poliza = models.ForeignKey(Poliza, on_delete=models.CASCADE, null=True, blank=True,
                               related_name='documentos', verbose_name="Póliza")
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, null=True, blank=True,
                                related_name='documentos', verbose_name="Cliente")
    siniestro = models.ForeignKey(Siniestro, on_delete=models.CASCADE, null=True, blank=True,
                                  related_name='documentos', verbose_name="Siniestro")

    tipo_documento = models.CharField(max_length=100, verbose_name="Tipo de Documento")
    nombre_archivo = models.CharField(max_length=255, verbose_name="Nombre del Archivo")
    ruta_archivo = models.CharField(max_length=500, verbose_name="Ruta en Almacenamiento")
    bucket = models.CharField(max_length=30, choices=BUCKET_CHOICES, verbose_name="Bucket")
    tamano_bytes = models.PositiveBigIntegerField(default=0, verbose_name="Tamaño (bytes)")
    estado = models.CharField(max_length=15, choices=ESTADO_CHOICES, default='activo', verbose_name="Estado")

    subido_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True,
                                   related_name='documentos_subidos', verbose_name="Subido por")
    fecha_subida = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Subida")

    history = HistoricalRecords(
        verbose_name="Historial",
        verbose_name_plural="Historial de cambios"
    )

    class Meta:
        verbose_name = "Documento"
        verbose_name_plural = "Documentos"
        ordering = ['-fecha_subida']
        constraints = [
            models.CheckConstraint(
                condition=Q(poliza__isnull=False) | Q(cliente__isnull=False) | Q(siniestro__isnull=False),
                name='documento_con_entidad',
            ),
        ]

    def __str__(self):
        return f"{self.nombre_archivo} ({self.tipo_documento})"

    @property
    def extension(self):
        import os
        return os.path.splitext(self.nombre_archivo)[1].lower()


# ==================== NOTIFICACIONES ====================

class NotificacionEmail(models.Model):
    """Registro de cada email transaccional enviado (o intentado)"""
    TIPO_CHOICES = [
        ('poliza_rechazada', 'Póliza Rechazada'),
        ('recordatorio_pago', 'Recordatorio de Pago'),
        ('vencimientos', 'Resumen de Vencimientos'),
    ]

    ESTADO_CHOICES = [
        ('pendiente', 'Pendiente'),
        ('enviado', 'Enviado'),
        ('error', 'Error'),
    ]

    tipo = models.CharField(max_length=30, choices=TIPO_CHOICES, verbose_name="Tipo")
    destinatario = models.EmailField(verbose_name="Destinatario")
    cc = models.CharField(max_length=500, blank=True, verbose_name="CC")
    asunto = models.CharField(max_length=300, verbose_name="Asunto")
    contenido = models.TextField(verbose_name="Contenido")
    contenido_html = models.TextField(blank=True, verbose_name="Contenido HTML")
    estado = models.CharField(max_length=10, choices=ESTADO_CHOICES, default='pendiente', verbose_name="Estado")
    error_mensaje = models.TextField(blank=True, verbose_name="Mensaje de Error")
    poliza = models.ForeignKey(Poliza, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='notificaciones', verbose_name="Póliza")
    cuota = models.ForeignKey(Cuota, on_delete=models.SET_NULL, null=True, blank=True,
                              related_name='notificaciones', verbose_name="Cuota")
    creado_por = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='notificaciones_creadas', verbose_name="Creado por")
    fecha_creacion = models.DateTimeField(auto_now_add=True, verbose_name="Fecha de Creación")
    fecha_envio = models.DateTimeField(null=True, blank=True, verbose_name="Fecha de Envío")

    class Meta:
        verbose_name = "Notificación por Email"
        verbose_name_plural = "Notificaciones por Email"
        ordering = ['-fecha_creacion']

    def __str__(self):
        return f"{self.asunto} -> {self.destinatario}"

    def marcar_como_enviado(self):
        self.estado = 'enviado'
        self.fecha_envio = timezone.now()
        self.error_mensaje = ''
        self.save(update_fields=['estado', 'fecha_envio', 'error_mensaje'])

    def registrar_error(self, mensaje):
        self.estado = 'error'
        self.error_mensaje = mensaje
        self.save(update_fields=['estado', 'error_mensaje'])
