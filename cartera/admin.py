from django.contrib import admin
from django.utils.html import format_html
from unfold.admin import ModelAdmin, StackedInline, TabularInline
from unfold.decorators import display
from simple_history.admin import SimpleHistoryAdmin
from import_export import resources, fields
from import_export.admin import ImportExportMixin
from import_export.widgets import ForeignKeyWidget
from .models import (
    ConfiguracionSistema, PerfilUsuario, PermisoRol, PermisoUsuario, Equipo, EquipoMiembro,
    CompaniaAseguradora, Ramo, ProductoAseguradora, Categoria,
    Cliente, ClienteNatural, ClienteJuridico, RepresentanteLegal, ClienteUnipersonal,
    Poliza, Cuota, MovimientoCuota, CoberturaCatalogo, Siniestro, ObservacionSiniestro,
    HistorialSiniestro, Documento, NotificacionEmail,
)


# =============================================================================
# RECURSOS DE IMPORTACIÓN/EXPORTACIÓN
# =============================================================================

class CompaniaAseguradoraResource(resources.ModelResource):
    class Meta:
        model = CompaniaAseguradora
        import_id_fields = ['nombre']
        fields = ('nombre', 'codigo', 'activo')
        export_order = fields


class RamoResource(resources.ModelResource):
    ramo_padre = fields.Field(
        column_name='ramo_padre',
        attribute='ramo_padre',
        widget=ForeignKeyWidget(Ramo, 'codigo')
    )

    class Meta:
        model = Ramo
        import_id_fields = ['codigo']
        fields = ('codigo', 'nombre', 'descripcion', 'ramo_padre', 'activo')
        export_order = fields


class ProductoAseguradoraResource(resources.ModelResource):
    compania = fields.Field(
        column_name='compania',
        attribute='compania',
        widget=ForeignKeyWidget(CompaniaAseguradora, 'nombre')
    )
    ramo = fields.Field(
        column_name='ramo',
        attribute='ramo',
        widget=ForeignKeyWidget(Ramo, 'codigo')
    )

    class Meta:
        model = ProductoAseguradora
        import_id_fields = ['compania', 'codigo_producto']
        fields = ('compania', 'ramo', 'codigo_producto', 'nombre_producto', 'factor_contado',
                  'factor_credito', 'porcentaje_comision', 'regional', 'activo')
        export_order = fields


class CategoriaResource(resources.ModelResource):
    class Meta:
        model = Categoria
        import_id_fields = ['nombre']
        fields = ('nombre', 'descripcion', 'activo')


class HistoryModelAdmin(ModelAdmin, SimpleHistoryAdmin):
    """
    Clase base que combina Unfold ModelAdmin con SimpleHistoryAdmin
    para modelos con auditoría de cambios.
    """
    history_list_display = ['changed_fields', 'history_user']

    def changed_fields(self, obj):
        """Muestra los campos que cambiaron."""
        if obj.prev_record:
            delta = obj.diff_against(obj.prev_record)
            changed = [change.field for change in delta.changes]
            if changed:
                return ', '.join(changed)
        return 'Creación inicial'
    changed_fields.short_description = 'Campos modificados'


class ImportExportModelAdmin(ImportExportMixin, ModelAdmin):
    """
    Clase base que combina Unfold ModelAdmin con ImportExportMixin
    para catálogos que se cargan desde planillas.
    """
    pass


def _badge(color, texto):
    return format_html(
        '<span style="background-color: {}; color: white; padding: 3px 10px; border-radius: 3px;">{}</span>',
        color,
        texto
    )


# =============================================================================
# CONFIGURACIÓN Y USUARIOS
# =============================================================================

@admin.register(ConfiguracionSistema)
class ConfiguracionSistemaAdmin(ModelAdmin):
    icon_name = "settings"
    list_display = ['clave', 'valor', 'tipo', 'categoria', 'descripcion_corta']
    list_filter = ['categoria', 'tipo']
    search_fields = ['clave', 'descripcion']
    list_editable = ['valor']

    fieldsets = (
        ('Configuración', {
            'fields': ('clave', 'valor', 'tipo')
        }),
        ('Clasificación', {
            'fields': ('categoria', 'descripcion')
        }),
    )

    def descripcion_corta(self, obj):
        if len(obj.descripcion) > 50:
            return obj.descripcion[:50] + '...'
        return obj.descripcion
    descripcion_corta.short_description = 'Descripción'

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PerfilUsuario)
class PerfilUsuarioAdmin(ModelAdmin):
    icon_name = "badge"
    list_display = ['usuario', 'rol', 'cargo', 'telefono', 'fecha_creacion']
    list_filter = ['rol']
    search_fields = ['usuario__username', 'usuario__first_name', 'usuario__last_name', 'cargo']
    list_editable = ['rol']


@admin.register(PermisoRol)
class PermisoRolAdmin(ModelAdmin):
    icon_name = "lock"
    list_display = ['rol', 'permiso']
    list_filter = ['rol']
    search_fields = ['permiso']


@admin.register(PermisoUsuario)
class PermisoUsuarioAdmin(ModelAdmin):
    icon_name = "key"
    list_display = ['usuario', 'permiso', 'otorgado_por', 'expira_en', 'vigente']
    list_filter = ['permiso']
    search_fields = ['usuario__username', 'permiso']
    readonly_fields = ['otorgado_por', 'fecha_creacion']

    @display(description='Vigente', boolean=True)
    def vigente(self, obj):
        return obj.esta_vigente

    def save_model(self, request, obj, form, change):
        if not change:
            obj.otorgado_por = request.user
        super().save_model(request, obj, form, change)


class EquipoMiembroInline(TabularInline):
    model = EquipoMiembro
    extra = 0
    fields = ['usuario', 'rol_equipo', 'fecha_ingreso']
    readonly_fields = ['fecha_ingreso']


@admin.register(Equipo)
class EquipoAdmin(ModelAdmin):
    icon_name = "groups"
    list_display = ['nombre', 'total_miembros', 'creado_por', 'fecha_creacion']
    search_fields = ['nombre', 'descripcion']
    readonly_fields = ['creado_por', 'fecha_creacion']
    inlines = [EquipoMiembroInline]

    @display(description='Miembros')
    def total_miembros(self, obj):
        return obj.miembros.count()

    def save_model(self, request, obj, form, change):
        if not change:
            obj.creado_por = request.user
        super().save_model(request, obj, form, change)


# =============================================================================
# CATÁLOGOS
# =============================================================================

@admin.register(CompaniaAseguradora)
class CompaniaAseguradoraAdmin(ImportExportModelAdmin):
    icon_name = "business"
    resource_class = CompaniaAseguradoraResource
    list_display = ['nombre', 'codigo', 'activo', 'fecha_creacion']
    list_filter = ['activo']
    search_fields = ['nombre']
    readonly_fields = ['fecha_creacion', 'fecha_modificacion']


@admin.register(Ramo)
class RamoAdmin(ImportExportModelAdmin):
    icon_name = "category"
    resource_class = RamoResource
    list_display = ['codigo', 'nombre', 'ramo_padre', 'activo']
    list_filter = ['activo', 'ramo_padre']
    search_fields = ['codigo', 'nombre']


@admin.register(ProductoAseguradora)
class ProductoAseguradoraAdmin(ImportExportModelAdmin):
    icon_name = "inventory_2"
    resource_class = ProductoAseguradoraResource
    list_display = ['codigo_producto', 'nombre_producto', 'compania', 'ramo',
                    'factor_contado', 'factor_credito', 'comision_display', 'activo']
    list_filter = ['activo', 'compania', 'ramo', 'regional']
    search_fields = ['codigo_producto', 'nombre_producto', 'compania__nombre']
    readonly_fields = ['fecha_creacion', 'fecha_modificacion']

    fieldsets = (
        ('Producto', {
            'fields': ('compania', 'ramo', 'codigo_producto', 'nombre_producto', 'regional', 'activo')
        }),
        ('Factores', {
            'fields': ('factor_contado', 'factor_credito', 'porcentaje_comision')
        }),
        ('Auditoría', {
            'fields': ('fecha_creacion', 'fecha_modificacion'),
            'classes': ('collapse',)
        }),
    )

    @display(description='Comisión', ordering='porcentaje_comision')
    def comision_display(self, obj):
        return f"{obj.porcentaje_comision * 100:.2f}%"


@admin.register(Categoria)
class CategoriaAdmin(ImportExportModelAdmin):
    icon_name = "label"
    resource_class = CategoriaResource
    list_display = ['nombre', 'descripcion', 'activo']
    list_filter = ['activo']
    search_fields = ['nombre', 'descripcion']


@admin.register(CoberturaCatalogo)
class CoberturaCatalogoAdmin(ModelAdmin):
    icon_name = "shield"
    list_display = ['nombre', 'ramo', 'es_custom', 'activo']
    list_filter = ['activo', 'es_custom', 'ramo']
    search_fields = ['nombre', 'descripcion']


# =============================================================================
# CLIENTES
# =============================================================================

class ClienteNaturalInline(StackedInline):
    model = ClienteNatural
    extra = 0
    max_num = 1


class ClienteJuridicoInline(StackedInline):
    model = ClienteJuridico
    extra = 0
    max_num = 1


class ClienteUnipersonalInline(StackedInline):
    model = ClienteUnipersonal
    extra = 0
    max_num = 1


class DocumentoInline(TabularInline):
    model = Documento
    extra = 0
    fields = ['tipo_documento', 'nombre_archivo', 'estado', 'fecha_subida']
    readonly_fields = ['fecha_subida']


@admin.register(Cliente)
class ClienteAdmin(HistoryModelAdmin):
    icon_name = "person"
    list_display = ['nombre_display', 'documento_display', 'tipo_cliente', 'email', 'celular', 'estado', 'ejecutivo']
    list_filter = ['tipo_cliente', 'estado']
    search_fields = [
        'email',
        'natural__primer_nombre', 'natural__primer_apellido', 'natural__numero_documento',
        'juridico__razon_social', 'juridico__nit',
        'unipersonal__razon_social', 'unipersonal__nit',
    ]
    readonly_fields = ['creado_por', 'fecha_creacion', 'fecha_modificacion']
    inlines = [ClienteNaturalInline, ClienteJuridicoInline, ClienteUnipersonalInline, DocumentoInline]

    @display(description='Cliente')
    def nombre_display(self, obj):
        return obj.nombre_completo

    @display(description='CI / NIT')
    def documento_display(self, obj):
        return obj.documento

    def save_model(self, request, obj, form, change):
        if not change:
            obj.creado_por = request.user
        super().save_model(request, obj, form, change)


class RepresentanteLegalInline(TabularInline):
    model = RepresentanteLegal
    extra = 0


@admin.register(ClienteJuridico)
class ClienteJuridicoAdmin(ModelAdmin):
    icon_name = "apartment"
    list_display = ['razon_social', 'nit', 'tipo_sociedad']
    search_fields = ['razon_social', 'nit']
    inlines = [RepresentanteLegalInline]


# =============================================================================
# PÓLIZAS Y CUOTAS
# =============================================================================

class CuotaInline(TabularInline):
    model = Cuota
    extra = 0
    fields = ['numero_cuota', 'monto', 'fecha_vencimiento', 'fecha_pago', 'estado', 'exceso_generado']
    readonly_fields = ['exceso_generado']


@admin.register(Poliza)
class PolizaAdmin(HistoryModelAdmin):
    icon_name = "verified"
    list_display = [
        'numero_poliza',
        'cliente',
        'compania',
        'ramo',
        'prima_formatted',
        'inicio_vigencia',
        'fin_vigencia',
        'estado_badge',
        'dias_vencer'
    ]
    list_filter = [
        'estado',
        'compania',
        'ramo',
        'modalidad_pago',
        'grupo_produccion',
        'regional',
        'inicio_vigencia'
    ]
    search_fields = [
        'numero_poliza',
        'compania__nombre',
        'cliente__natural__primer_apellido',
        'cliente__natural__numero_documento',
        'cliente__juridico__razon_social',
        'cliente__juridico__nit',
    ]
    readonly_fields = [
        'validado_por',
        'fecha_validacion',
        'rechazado_por',
        'fecha_rechazo',
        'puede_editar_hasta',
        'creado_por',
        'fecha_creacion',
        'fecha_modificacion',
    ]
    date_hierarchy = 'inicio_vigencia'
    inlines = [CuotaInline, DocumentoInline]

    fieldsets = (
        ('Información Básica', {
            'fields': ('numero_poliza', 'cliente', 'compania', 'producto', 'ramo', 'categoria', 'responsable')
        }),
        ('Producción', {
            'fields': ('regional', 'grupo_produccion', 'fecha_emision_compania')
        }),
        ('Vigencia y Prima', {
            'fields': ('inicio_vigencia', 'fin_vigencia', 'modalidad_pago', 'prima_total', 'moneda', 'estado')
        }),
        ('Validación', {
            'fields': ('validado_por', 'fecha_validacion', 'rechazado_por', 'motivo_rechazo',
                       'fecha_rechazo', 'puede_editar_hasta'),
            'classes': ('collapse',)
        }),
        ('Auditoría', {
            'fields': ('creado_por', 'fecha_creacion', 'fecha_modificacion'),
            'classes': ('collapse',)
        }),
    )

    @display(description='Prima Total', ordering='prima_total')
    def prima_formatted(self, obj):
        return f"{obj.moneda} {obj.prima_total:,.2f}"

    @display(description='Estado', ordering='estado')
    def estado_badge(self, obj):
        colors = {
            'pendiente': 'orange',
            'activa': 'green',
            'rechazada': 'red',
            'vencida': 'gray',
            'cancelada': 'gray',
            'renovada': 'blue'
        }
        return _badge(colors.get(obj.estado, 'gray'), obj.get_estado_display())

    @display(description='Días para Vencer')
    def dias_vencer(self, obj):
        dias = obj.dias_para_vencer
        if dias > 30:
            color = 'green'
        elif dias > 0:
            color = 'orange'
        else:
            color = 'red'
        return format_html(
            '<span style="color: {}; font-weight: bold;">{} días</span>',
            color,
            dias
        )

    def save_model(self, request, obj, form, change):
        if not change:  # Si es un nuevo registro
            obj.creado_por = request.user
        super().save_model(request, obj, form, change)


class MovimientoCuotaInline(TabularInline):
    model = MovimientoCuota
    extra = 0
    fields = ['fecha', 'tipo', 'monto', 'saldo_resultante', 'usuario', 'detalle']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Cuota)
class CuotaAdmin(HistoryModelAdmin):
    icon_name = "payments"
    list_display = ['poliza', 'numero_cuota', 'monto', 'fecha_vencimiento', 'fecha_pago', 'estado_badge', 'exceso_generado']
    list_filter = ['estado', 'fecha_vencimiento']
    search_fields = ['poliza__numero_poliza']
    readonly_fields = ['exceso_generado', 'fecha_creacion', 'fecha_modificacion']
    date_hierarchy = 'fecha_vencimiento'
    inlines = [MovimientoCuotaInline]

    @display(description='Estado')
    def estado_badge(self, obj):
        colors = {
            'pendiente': 'orange',
            'vencido': 'red',
            'parcial': 'blue',
            'pagado': 'green'
        }
        estado = obj.estado_real
        return _badge(colors.get(estado, 'gray'), estado.capitalize())


# =============================================================================
# SINIESTROS
# =============================================================================

class ObservacionSiniestroInline(TabularInline):
    model = ObservacionSiniestro
    extra = 0
    fields = ['observacion', 'usuario', 'fecha_creacion']
    readonly_fields = ['usuario', 'fecha_creacion']


class HistorialSiniestroInline(TabularInline):
    model = HistorialSiniestro
    extra = 0
    fields = ['accion', 'detalles', 'usuario', 'fecha_creacion']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Siniestro)
class SiniestroAdmin(HistoryModelAdmin):
    icon_name = "warning"
    list_display = [
        'codigo_siniestro',
        'poliza',
        'fecha_siniestro',
        'departamento',
        'reserva_formatted',
        'estado_badge',
        'dias_abierto_display',
        'responsable'
    ]
    list_filter = [
        'estado',
        'tipo_cierre',
        'departamento',
        'fecha_siniestro',
        'poliza__compania'
    ]
    search_fields = [
        'codigo_siniestro',
        'lugar_hecho',
        'poliza__numero_poliza'
    ]
    readonly_fields = [
        'codigo_siniestro',
        'fecha_cierre',
        'cerrado_por',
        'creado_por',
        'fecha_creacion',
        'fecha_modificacion',
    ]
    filter_horizontal = ['coberturas']
    date_hierarchy = 'fecha_siniestro'
    inlines = [ObservacionSiniestroInline, HistorialSiniestroInline, DocumentoInline]

    fieldsets = (
        ('Información Básica', {
            'fields': ('codigo_siniestro', 'poliza', 'responsable', 'estado')
        }),
        ('Detalles del Siniestro', {
            'fields': (
                'fecha_siniestro',
                'fecha_reporte',
                'fecha_reporte_compania',
                'lugar_hecho',
                'departamento',
                'descripcion',
                'contactos',
                'coberturas'
            )
        }),
        ('Reserva', {
            'fields': ('monto_reserva', 'moneda')
        }),
        ('Cierre', {
            'fields': (
                'tipo_cierre',
                'motivo_cierre',
                ('monto_reclamado', 'moneda_reclamado'),
                ('deducible', 'moneda_deducible'),
                ('monto_pagado', 'moneda_pagado'),
                'es_pago_comercial',
                'fecha_cierre',
                'cerrado_por'
            ),
            'classes': ('collapse',)
        }),
        ('Auditoría', {
            'fields': ('creado_por', 'fecha_creacion', 'fecha_modificacion'),
            'classes': ('collapse',)
        }),
    )

    @display(description='Reserva', ordering='monto_reserva')
    def reserva_formatted(self, obj):
        return f"{obj.moneda} {obj.monto_reserva:,.2f}"

    @display(description='Estado', ordering='estado')
    def estado_badge(self, obj):
        colors = {
            'abierto': 'blue',
            'rechazado': 'red',
            'declinado': 'gray',
            'concluido': 'green'
        }
        return _badge(colors.get(obj.estado, 'gray'), obj.get_estado_display())

    @display(description='Días Abierto')
    def dias_abierto_display(self, obj):
        dias = obj.dias_abierto
        color = 'green' if dias < 30 else 'orange' if dias < 60 else 'red'
        return format_html(
            '<span style="color: {}; font-weight: bold;">{} días</span>',
            color,
            dias
        )

    def save_model(self, request, obj, form, change):
        if not change:  # Si es un nuevo registro
            obj.creado_por = request.user
        super().save_model(request, obj, form, change)


# =============================================================================
# DOCUMENTOS Y NOTIFICACIONES
# =============================================================================

@admin.register(Documento)
class DocumentoAdmin(HistoryModelAdmin):
    icon_name = "description"
    list_display = ['nombre_archivo', 'tipo_documento', 'entidad', 'bucket', 'tamano_display', 'estado', 'subido_por', 'fecha_subida']
    list_filter = ['estado', 'bucket', 'tipo_documento']
    search_fields = ['nombre_archivo', 'tipo_documento', 'poliza__numero_poliza', 'siniestro__codigo_siniestro']
    readonly_fields = ['ruta_archivo', 'bucket', 'tamano_bytes', 'subido_por', 'fecha_subida']
    date_hierarchy = 'fecha_subida'

    @display(description='Entidad')
    def entidad(self, obj):
        return obj.poliza or obj.siniestro or obj.cliente

    @display(description='Tamaño', ordering='tamano_bytes')
    def tamano_display(self, obj):
        return f"{obj.tamano_bytes / 1024:.1f} KB"


@admin.register(NotificacionEmail)
class NotificacionEmailAdmin(ModelAdmin):
    icon_name = "mail"
    list_display = ['asunto', 'tipo', 'destinatario', 'estado_badge', 'fecha_creacion', 'fecha_envio']
    list_filter = ['tipo', 'estado', 'fecha_creacion']
    search_fields = ['asunto', 'destinatario']
    readonly_fields = [
        'tipo', 'destinatario', 'cc', 'asunto', 'contenido', 'contenido_html', 'estado',
        'error_mensaje', 'poliza', 'cuota', 'creado_por', 'fecha_creacion', 'fecha_envio',
    ]

    @display(description='Estado', ordering='estado')
    def estado_badge(self, obj):
        colors = {'pendiente': 'orange', 'enviado': 'green', 'error': 'red'}
        return _badge(colors.get(obj.estado, 'gray'), obj.get_estado_display())

    def has_add_permission(self, request):
        return False
