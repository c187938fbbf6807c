"""
Configuración de pytest para el proyecto.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "corretaje.settings")
