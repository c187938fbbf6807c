"""
Módulo Base de Servicios de Dominio para la Gestión de Cartera.

Define los tipos de resultado compartidos por todas las acciones de servidor
y la clase base de los servicios. Ninguna operación de servicio lanza
excepciones hacia la vista: siempre retorna un ResultadoOperacion, que la
vista traduce a ``{"success": true, "data": ...}`` o
``{"success": false, "error": ..., "details": ...}``.

Patrones de Diseño Implementados:
    - Result Pattern: Encapsula el resultado de operaciones (éxito/fallo) con
      información estructurada, evitando excepciones para flujo de control.
    - Factory Method: Métodos de clase para construcción semántica de resultados.
    - Fluent Interface: Métodos que retornan self para encadenamiento.

Arquitectura:

    ┌─────────────┐     ┌─────────────┐     ┌─────────────┐
    │   Views     │────▶│  Services   │────▶│   Models    │
    │ (JSON/HTTP) │     │   (Logic)   │     │    (ORM)    │
    └─────────────┘     └─────────────┘     └─────────────┘

Autor: Equipo de Desarrollo
Versión: 1.0.0

Example:
    Uso del Result Pattern en un servicio::

        class CatalogoService(BaseService):
            @classmethod
            def crear_aseguradora(cls, usuario, datos) -> ResultadoOperacion:
                validacion = cls._validar(datos)
                if not validacion.es_valido:
                    return ResultadoOperacion.desde_validacion(validacion)

                aseguradora = CompaniaAseguradora.objects.create(**datos)
                return ResultadoOperacion.exito(aseguradora, "Aseguradora creada correctamente")
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from django.db import DatabaseError, IntegrityError
from django.db.models import ProtectedError, RestrictedError


logger = logging.getLogger(__name__)


# =============================================================================
# MAPEO DE ERRORES DE BASE DE DATOS
# =============================================================================

MENSAJES_ERROR_BD = {
    '23505': "Ya existe un registro con estos datos",
    '23503': "El registro está referenciado por otros datos o referencia un registro inexistente",
    '23514': "Los datos no cumplen las restricciones de validación",
    '42501': "No tiene permisos para realizar esta operación",
}


def codigo_error_bd(exc: Exception) -> Optional[str]:
    """
    Obtiene el SQLSTATE de una excepción de base de datos.

    PostgreSQL expone el código en ``__cause__.pgcode`` (psycopg2) o
    ``__cause__.sqlstate`` (psycopg 3). En SQLite no hay códigos, así que se
    infiere del texto del error.
    """
    if isinstance(exc, (ProtectedError, RestrictedError)):
        return '23503'

    causa = getattr(exc, '__cause__', None)
    codigo = getattr(causa, 'pgcode', None) or getattr(causa, 'sqlstate', None)
    if codigo:
        return codigo

    texto = str(exc).lower()
    if 'unique' in texto or 'duplicate' in texto:
        return '23505'
    if 'foreign key' in texto:
        return '23503'
    if 'check constraint' in texto:
        return '23514'
    if 'permission denied' in texto:
        return '42501'
    return None


def mensaje_error_bd(exc: Exception, mensaje_generico: str) -> str:
    """Traduce una excepción de base de datos a un mensaje para el usuario."""
    return MENSAJES_ERROR_BD.get(codigo_error_bd(exc), mensaje_generico)


# =============================================================================
# TIPOS DE RESULTADO - RESULT PATTERN
# =============================================================================

@dataclass
class ResultadoValidacion:
    """
    Encapsula el resultado de una validación de reglas de negocio.

    Los errores bloquean la operación; las advertencias se informan al
    usuario pero no impiden continuar.

    Attributes:
        es_valido (bool): Indica si la validación fue exitosa.
        errores (Dict[str, str]): Diccionario de errores por campo.
        advertencias (List[str]): Avisos no bloqueantes.

    Example:
        Validación con errores y advertencias::

            resultado = ResultadoValidacion(es_valido=True)
            if not datos.get('lugar_hecho'):
                resultado.agregar_error('lugar_hecho', 'El lugar del hecho es obligatorio')
            if len(datos.get('descripcion', '')) < 20:
                resultado.agregar_advertencia('Se recomienda una descripción más detallada')
    """

    es_valido: bool
    errores: Dict[str, str] = None
    advertencias: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Inicializa el diccionario de errores si no fue proporcionado."""
        if self.errores is None:
            self.errores = {}

    def agregar_error(self, campo: str, mensaje: str) -> 'ResultadoValidacion':
        """
        Agrega un error de validación y marca el resultado como inválido.

        Args:
            campo: Nombre del campo que tiene el error.
            mensaje: Descripción del error de validación.

        Returns:
            Self para permitir encadenamiento de métodos.
        """
        self.errores[campo] = mensaje
        self.es_valido = False
        return self

    def agregar_advertencia(self, mensaje: str) -> 'ResultadoValidacion':
        """Agrega un aviso no bloqueante."""
        self.advertencias.append(mensaje)
        return self

    def fusionar(self, otro: 'ResultadoValidacion') -> 'ResultadoValidacion':
        """
        Fusiona otro resultado de validación con este.

        Si el otro resultado es inválido, este también se marca como inválido
        y se agregan todos sus errores. Las advertencias siempre se acumulan.

        Args:
            otro: Otro ResultadoValidacion a fusionar.

        Returns:
            Self con los errores fusionados.
        """
        if not otro.es_valido:
            self.es_valido = False
            self.errores.update(otro.errores)
        self.advertencias.extend(otro.advertencias)
        return self

    @property
    def primer_error(self) -> str:
        return next(iter(self.errores.values()), "")


@dataclass
class ResultadoOperacion:
    """
    Encapsula el resultado de una operación de servicio de dominio.

    Attributes:
        exitoso (bool): Indica si la operación se completó correctamente.
        objeto (Any): El objeto o los datos resultantes en caso de éxito.
        errores (Dict[str, str]): Errores por campo en caso de fallo.
        mensaje (str): Mensaje descriptivo para mostrar al usuario.
        advertencias (List[str]): Avisos no bloqueantes.

    Example:
        Manejo en una vista Django::

            @login_required
            @require_POST
            def cobranzas_registrar_pago(request):
                resultado = CobranzaService.registrar_pago(request.user, ...)
                return JsonResponse(resultado.to_dict(), status=200 if resultado.exitoso else 400)
    """

    exitoso: bool
    objeto: Any = None
    errores: Dict[str, str] = None
    mensaje: str = ""
    advertencias: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Inicializa el diccionario de errores si no fue proporcionado."""
        if self.errores is None:
            self.errores = {}

    @classmethod
    def exito(cls, objeto: Any, mensaje: str = "", advertencias: Optional[List[str]] = None) -> 'ResultadoOperacion':
        """
        Factory method para crear un resultado exitoso.

        Args:
            objeto: El objeto resultante de la operación.
            mensaje: Mensaje descriptivo opcional para el usuario.
            advertencias: Avisos no bloqueantes a informar.

        Returns:
            ResultadoOperacion marcado como exitoso con el objeto adjunto.
        """
        return cls(exitoso=True, objeto=objeto, mensaje=mensaje, advertencias=list(advertencias or []))

    @classmethod
    def fallo(cls, errores: Dict[str, str], mensaje: str = "") -> 'ResultadoOperacion':
        """
        Factory method para crear un resultado fallido.

        Args:
            errores: Diccionario de errores por campo.
            mensaje: Mensaje descriptivo para el usuario.

        Returns:
            ResultadoOperacion marcado como fallido con los errores.
        """
        return cls(exitoso=False, errores=errores, mensaje=mensaje)

    @classmethod
    def error(cls, mensaje: str) -> 'ResultadoOperacion':
        """Fallo sin detalle por campo (permisos, entidad inexistente, estado inválido)."""
        return cls(exitoso=False, mensaje=mensaje)

    @classmethod
    def desde_validacion(cls, validacion: ResultadoValidacion, mensaje: str = "") -> 'ResultadoOperacion':
        """
        Factory method para crear un resultado desde una validación fallida.

        Si no se indica mensaje se usa el primer error de la validación.
        """
        resultado = cls(
            exitoso=False,
            errores=validacion.errores,
            mensaje=mensaje or validacion.primer_error or "Error de validación"
        )
        resultado.advertencias = list(validacion.advertencias)
        return resultado

    @classmethod
    def desde_excepcion(cls, exc: Exception, mensaje_generico: str) -> 'ResultadoOperacion':
        """Traduce una excepción inesperada al mensaje correspondiente y la registra."""
        if isinstance(exc, (DatabaseError, IntegrityError, ProtectedError, RestrictedError)):
            mensaje = mensaje_error_bd(exc, mensaje_generico)
        else:
            mensaje = mensaje_generico
        logger.exception(f"{mensaje_generico}: {exc}")
        return cls(exitoso=False, errores={'__all__': str(exc)}, mensaje=mensaje)

    def to_dict(self, serializer: Optional[Callable[[Any], Any]] = None) -> Dict[str, Any]:
        """Forma de respuesta de las acciones de servidor."""
        if self.exitoso:
            data = serializer(self.objeto) if serializer else self.objeto
            respuesta = {'success': True, 'data': data}
            if self.mensaje:
                respuesta['message'] = self.mensaje
            if self.advertencias:
                respuesta['warnings'] = self.advertencias
            return respuesta

        respuesta = {'success': False, 'error': self.mensaje}
        detalles = {k: v for k, v in self.errores.items() if k != '__all__'}
        if detalles:
            respuesta['details'] = detalles
        if self.advertencias:
            respuesta['warnings'] = self.advertencias
        return respuesta


# =============================================================================
# CLASE BASE PARA SERVICIOS
# =============================================================================

class BaseService:
    """
    Clase base para todos los servicios de dominio.

    Proporciona acceso a la configuración del sistema y a las comprobaciones
    de autorización compartidas.
    """

    @staticmethod
    def _get_config(clave: str, default: Any) -> Any:
        """
        Obtiene un valor de configuración del sistema.

        Example:
            >>> tolerancia = BaseService._get_config('TOLERANCIA_MONTOS', Decimal('0.01'))
        """
        from cartera.models import ConfiguracionSistema
        return ConfiguracionSistema.get_config(clave, default)

    @staticmethod
    def _verificar_rol(usuario, roles, mensaje: str) -> Optional[ResultadoOperacion]:
        """
        Retorna un ResultadoOperacion fallido si el usuario no tiene uno de los roles.

        Uso::

            denegado = cls._verificar_rol(usuario, ('cobranza', 'admin'), MENSAJE_SIN_PERMISO)
            if denegado:
                return denegado
        """
        from cartera.models import obtener_rol

        rol = obtener_rol(usuario)
        if rol is None:
            return ResultadoOperacion.error("No autenticado")
        if rol not in roles:
            return ResultadoOperacion.error(mensaje)
        return None

    @staticmethod
    def _verificar_permiso(usuario, permiso: str, mensaje: str) -> Optional[ResultadoOperacion]:
        """Igual que _verificar_rol pero contra un permiso granular."""
        from cartera.models import obtener_rol
        from .permisos import PermisosService

        if obtener_rol(usuario) is None:
            return ResultadoOperacion.error("No autenticado")
        if not PermisosService.tiene_permiso(usuario, permiso):
            return ResultadoOperacion.error(mensaje)
        return None
