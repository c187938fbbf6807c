from django.apps import AppConfig


class CarteraConfig(AppConfig):

    default_auto_field = "django.db.models.BigAutoField"

    name = "cartera"

    verbose_name = "Gestión de Cartera"

    def ready(self):
        """

        Se ejecuta al iniciar Django; aquí registramos las señales del app.

        """

        # Importar receptores de señales (no eliminar, necesario para que se registren)

        from . import signals  # noqa: F401
