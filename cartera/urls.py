from django.urls import path
from . import views

app_name = 'cartera'

urlpatterns = [
    # Cobranzas
    path('cobranzas/', views.cobranzas_dashboard, name='cobranzas_dashboard'),
    path('cobranzas/exportar/', views.cobranzas_exportar, name='cobranzas_exportar'),
    path('cobranzas/polizas/<int:poliza_id>/cuotas/', views.cobranzas_cuotas_poliza, name='cobranzas_cuotas_poliza'),
    path('cobranzas/polizas/<int:poliza_id>/aviso-mora/', views.cobranzas_aviso_mora_datos, name='cobranzas_aviso_mora_datos'),
    path('cobranzas/polizas/<int:poliza_id>/aviso-mora/pdf/', views.cobranzas_aviso_mora_pdf, name='cobranzas_aviso_mora_pdf'),
    path('cobranzas/cuotas/<int:cuota_id>/pago/', views.cobranzas_registrar_pago, name='cobranzas_registrar_pago'),
    path('cobranzas/cuotas/<int:cuota_id>/redistribuir/', views.cobranzas_redistribuir_exceso, name='cobranzas_redistribuir_exceso'),

    # Gerencia
    path('gerencia/pendientes/', views.gerencia_pendientes, name='gerencia_pendientes'),
    path('gerencia/polizas/<int:poliza_id>/validar/', views.gerencia_validar, name='gerencia_validar'),
    path('gerencia/polizas/<int:poliza_id>/rechazar/', views.gerencia_rechazar, name='gerencia_rechazar'),

    # Pólizas
    path('polizas/', views.polizas_lista, name='polizas_lista'),
    path('polizas/crear/', views.poliza_crear, name='poliza_crear'),
    path('polizas/buscar/', views.polizas_buscar, name='polizas_buscar'),
    path('polizas/cronograma/', views.poliza_cronograma, name='poliza_cronograma'),
    path('polizas/produccion/exportar/', views.produccion_exportar, name='produccion_exportar'),
    path('polizas/<int:poliza_id>/', views.poliza_detalle, name='poliza_detalle'),
    path('polizas/<int:poliza_id>/editar/', views.poliza_editar, name='poliza_editar'),
    path('polizas/<int:poliza_id>/reenviar/', views.poliza_reenviar, name='poliza_reenviar'),
    path('polizas/<int:poliza_id>/carta-vencimiento/', views.poliza_carta_vencimiento, name='poliza_carta_vencimiento'),

    # Siniestros
    path('siniestros/', views.siniestros_lista, name='siniestros_lista'),
    path('siniestros/registrar/', views.siniestro_registrar, name='siniestro_registrar'),
    path('siniestros/polizas-activas/', views.siniestros_polizas_activas, name='siniestros_polizas_activas'),
    path('siniestros/coberturas/<int:ramo_id>/', views.siniestros_coberturas, name='siniestros_coberturas'),
    path('siniestros/<int:siniestro_id>/', views.siniestro_detalle, name='siniestro_detalle'),
    path('siniestros/<int:siniestro_id>/observaciones/', views.siniestro_observacion, name='siniestro_observacion'),
    path('siniestros/<int:siniestro_id>/documentos/', views.siniestro_documentos, name='siniestro_documentos'),
    path('siniestros/<int:siniestro_id>/cerrar/', views.siniestro_cerrar, name='siniestro_cerrar'),

    # Catálogos
    path('catalogos/<str:tipo>/', views.catalogo_lista, name='catalogo_lista'),
    path('catalogos/<str:tipo>/crear/', views.catalogo_crear, name='catalogo_crear'),
    path('catalogos/<str:tipo>/<int:objeto_id>/editar/', views.catalogo_editar, name='catalogo_editar'),
    path('catalogos/<str:tipo>/<int:objeto_id>/desactivar/', views.catalogo_desactivar, name='catalogo_desactivar'),
    path('catalogos/<str:tipo>/<int:objeto_id>/reactivar/', views.catalogo_reactivar, name='catalogo_reactivar'),

    # Clientes
    path('clientes/', views.clientes_lista, name='clientes_lista'),
    path('clientes/crear/', views.cliente_crear, name='cliente_crear'),
    path('clientes/buscar/', views.clientes_buscar, name='clientes_buscar'),
    path('clientes/<int:cliente_id>/', views.cliente_detalle, name='cliente_detalle'),
    path('clientes/<int:cliente_id>/estado/', views.cliente_estado, name='cliente_estado'),

    # Equipos
    path('equipos/', views.equipos_lista, name='equipos_lista'),
    path('equipos/crear/', views.equipo_crear, name='equipo_crear'),
    path('equipos/<int:equipo_id>/eliminar/', views.equipo_eliminar, name='equipo_eliminar'),
    path('equipos/<int:equipo_id>/disponibles/', views.equipo_usuarios_disponibles, name='equipo_usuarios_disponibles'),
    path('equipos/<int:equipo_id>/miembros/', views.equipo_agregar_miembro, name='equipo_agregar_miembro'),
    path('equipos/miembros/<int:miembro_id>/remover/', views.equipo_remover_miembro, name='equipo_remover_miembro'),
    path('equipos/miembros/<int:miembro_id>/rol/', views.equipo_cambiar_rol, name='equipo_cambiar_rol'),

    # Permisos
    path('permisos/', views.permisos_matriz, name='permisos_matriz'),
    path('permisos/rol/', views.permisos_actualizar_rol, name='permisos_actualizar_rol'),
    path('permisos/usuarios/<int:usuario_id>/asignar/', views.permisos_asignar_usuario, name='permisos_asignar_usuario'),
    path('permisos/usuarios/<int:usuario_id>/revocar/', views.permisos_revocar_usuario, name='permisos_revocar_usuario'),

    # Documentos
    path('documentos/temporal/', views.documento_subir_temporal, name='documento_subir_temporal'),
    path('documentos/<int:documento_id>/descartar/', views.documento_descartar, name='documento_descartar'),
    path('documentos/<int:documento_id>/restaurar/', views.documento_restaurar, name='documento_restaurar'),
    path('documentos/<int:documento_id>/eliminar/', views.documento_eliminar, name='documento_eliminar'),
    path('documentos/<str:entidad>/<int:entidad_id>/', views.documentos_activos, name='documentos_activos'),
    path('documentos/<str:entidad>/<int:entidad_id>/todos/', views.documentos_todos, name='documentos_todos'),
]
