"""

Validadores de archivos y datos de contacto.

"""

import os

from django.core.exceptions import ValidationError

from django.core.validators import validate_email

from django.utils.deconstruct import deconstructible

from django.template.defaultfilters import filesizeformat


# Extensiones permitidas para documentos

ALLOWED_EXTENSIONS = [

    '.pdf',

    '.jpg', '.jpeg', '.png', '.gif', '.webp', '.tiff', '.tif',

    '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',

    '.txt', '.csv',

    '.zip', '.rar',

]


# Extensiones peligrosas que nunca se deben permitir

DANGEROUS_EXTENSIONS = [

    '.exe', '.bat', '.cmd', '.com', '.msi', '.scr', '.pif',

    '.js', '.jse', '.vbs', '.vbe', '.wsf', '.wsh',

    '.ps1', '.psm1', '.psd1',

    '.sh', '.bash', '.zsh',

    '.php', '.php3', '.php4', '.php5', '.phtml',

    '.py', '.pyc', '.pyo',

    '.pl', '.pm', '.cgi',

    '.asp', '.aspx',

    '.jar', '.class',

    '.dll', '.so', '.dylib',

]


DEFAULT_MAX_FILE_SIZE = 20 * 1024 * 1024


@deconstructible
class FileValidator:

    """

    Validador de archivos que verifica:

    - Tamaño máximo

    - Extensiones peligrosas

    - Extensión dentro de la lista permitida

    """

    def __init__(self, max_size=DEFAULT_MAX_FILE_SIZE, allowed_extensions=None):

        self.max_size = max_size

        self.allowed_extensions = allowed_extensions or ALLOWED_EXTENSIONS

    def __call__(self, file):

        self._validate_size(file)

        self._validate_extension(file)

    def _validate_size(self, file):

        """Valida que el archivo no exceda el tamaño máximo."""

        if file.size > self.max_size:

            raise ValidationError(

                f'El archivo es demasiado grande. '

                f'Tamaño máximo permitido: {filesizeformat(self.max_size)}. '

                f'Tamaño del archivo: {filesizeformat(file.size)}.'

            )

    def _validate_extension(self, file):

        """Valida la extensión del archivo."""

        ext = os.path.splitext(file.name)[1].lower()

        if ext in DANGEROUS_EXTENSIONS:

            raise ValidationError(

                f'El tipo de archivo "{ext}" no está permitido por razones de seguridad.'

            )

        if ext not in self.allowed_extensions:

            raise ValidationError(

                f'Extensión de archivo no permitida: "{ext}". '

                f'Extensiones permitidas: {", ".join(self.allowed_extensions)}'

            )

    def __eq__(self, other):

        return (

            isinstance(other, FileValidator) and

            self.max_size == other.max_size and

            self.allowed_extensions == other.allowed_extensions

        )


def validar_archivo(archivo):

    """Valida un archivo subido con el tamaño máximo configurado (TAMANO_MAXIMO_DOCUMENTO_MB)."""

    from cartera.models import ConfiguracionSistema

    megas = ConfiguracionSistema.get_config('TAMANO_MAXIMO_DOCUMENTO_MB', 20)

    FileValidator(max_size=megas * 1024 * 1024)(archivo)


def emails_invalidos(emails):

    """Retorna la lista de emails con formato inválido."""

    invalidos = []

    for email in emails:

        try:

            validate_email(email)

        except ValidationError:

            invalidos.append(email)

    return invalidos
