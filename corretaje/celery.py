import os

from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "corretaje.settings")

app = Celery("corretaje")

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

# Configuración de tareas periódicas

app.conf.beat_schedule = {
    # Recordatorios de cuotas próximas a vencer, todos los días a las 8:00 AM
    "enviar-recordatorios-cobranza": {
        "task": "cartera.tasks.enviar_recordatorios_cobranza",
        "schedule": crontab(hour=8, minute=0),
    },
    # Resumen de pólizas por vencer, lunes a las 7:30 AM
    "notificar-vencimientos-polizas": {
        "task": "cartera.tasks.notificar_vencimientos_polizas",
        "schedule": crontab(hour=7, minute=30, day_of_week=1),
    },
    # Cierre de ventanas de edición de pólizas rechazadas, cada hora
    "expirar-ventanas-edicion": {
        "task": "cartera.tasks.expirar_ventanas_edicion",
        "schedule": crontab(minute=0),
    },
    # Limpieza de archivos temporales de carga, todos los días a las 3:00 AM
    "limpiar-archivos-temporales": {
        "task": "cartera.tasks.limpiar_archivos_temporales",
        "schedule": crontab(hour=3, minute=0),
    },
}

app.conf.timezone = "America/La_Paz"
