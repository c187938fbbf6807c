"""
Formularios de validación para catálogos y clientes.

Los servicios validan los datos de entrada con estos formularios y devuelven
el primer mensaje de error (``primer_error``) al usuario.
"""

from django import forms
from django.core.exceptions import ValidationError

from .models import (
    Categoria, Cliente, ClienteJuridico, ClienteNatural, ClienteUnipersonal,
    CompaniaAseguradora, ConyugeCliente, ProductoAseguradora, Ramo, RepresentanteLegal,
)


def primer_error(form):
    """Primer mensaje de error del formulario (los de campo antes que los generales)."""
    for campo, errores in form.errors.items():
        if campo != '__all__' and errores:
            return errores[0]
    generales = form.non_field_errors()
    return generales[0] if generales else "Datos inválidos"


def errores_por_campo(form):
    return {campo: errores[0] for campo, errores in form.errors.items() if errores}


# ==============================================================================
# CATÁLOGOS
# ==============================================================================

class AseguradoraForm(forms.ModelForm):
    """Formulario para crear/editar aseguradoras"""

    class Meta:
        model = CompaniaAseguradora
        fields = ['nombre', 'codigo']
        error_messages = {
            'nombre': {'required': 'El nombre es requerido'},
        }

    def clean_nombre(self):
        nombre = (self.cleaned_data.get('nombre') or '').strip()
        if len(nombre) < 3:
            raise ValidationError('El nombre debe tener al menos 3 caracteres')
        if len(nombre) > 200:
            raise ValidationError('El nombre no puede exceder 200 caracteres')
        duplicada = CompaniaAseguradora.objects.filter(nombre__iexact=nombre).exclude(pk=self.instance.pk)
        if duplicada.exists():
            raise ValidationError(
                'Ya existe otra aseguradora con este nombre' if self.instance.pk
                else 'Ya existe una aseguradora con este nombre'
            )
        return nombre

    def clean_codigo(self):
        codigo = self.cleaned_data.get('codigo')
        if codigo is None:
            return codigo
        if codigo <= 0:
            raise ValidationError('El código debe ser un número positivo')
        if CompaniaAseguradora.objects.filter(codigo=codigo).exclude(pk=self.instance.pk).exists():
            raise ValidationError(
                'Ya existe otra aseguradora con este código' if self.instance.pk
                else 'Ya existe una aseguradora con este código'
            )
        return codigo


class RamoForm(forms.ModelForm):
    """Formulario para crear/editar ramos"""

    class Meta:
        model = Ramo
        fields = ['codigo', 'nombre', 'descripcion', 'ramo_padre']

    def clean_codigo(self):
        codigo = (self.cleaned_data.get('codigo') or '').strip().upper()
        if len(codigo) < 2:
            raise ValidationError('El código debe tener al menos 2 caracteres')
        if len(codigo) > 10:
            raise ValidationError('El código no puede exceder 10 caracteres')
        if Ramo.objects.filter(codigo=codigo).exclude(pk=self.instance.pk).exists():
            raise ValidationError(
                'Ya existe otro ramo con este código' if self.instance.pk else 'Ya existe un ramo con este código'
            )
        return codigo

    def clean_nombre(self):
        nombre = (self.cleaned_data.get('nombre') or '').strip()
        if len(nombre) < 3:
            raise ValidationError('El nombre debe tener al menos 3 caracteres')
        return nombre

    def clean_ramo_padre(self):
        padre = self.cleaned_data.get('ramo_padre')
        if padre is None:
            return padre
        if self.instance.pk and padre.pk == self.instance.pk:
            raise ValidationError('Un ramo no puede ser su propio ramo padre')
        if padre.ramo_padre_id is not None:
            raise ValidationError('El ramo padre no puede ser a su vez un ramo hijo')
        if self.instance.pk and self.instance.subramos.exists():
            raise ValidationError(
                f'No puede cambiar a ramo hijo porque tiene {self.instance.subramos.count()} '
                f'ramo(s) hijo(s) asignado(s)'
            )
        return padre


class ProductoForm(forms.ModelForm):
    """Formulario para crear/editar productos de aseguradora"""

    class Meta:
        model = ProductoAseguradora
        fields = [
            'compania', 'ramo', 'codigo_producto', 'nombre_producto',
            'factor_contado', 'factor_credito', 'porcentaje_comision', 'regional',
        ]
        error_messages = {
            'compania': {'required': 'Debe seleccionar una aseguradora'},
            'ramo': {'required': 'Debe seleccionar un ramo'},
            'codigo_producto': {'required': 'El código es requerido'},
        }

    def clean_nombre_producto(self):
        nombre = (self.cleaned_data.get('nombre_producto') or '').strip()
        if len(nombre) < 3:
            raise ValidationError('El nombre debe tener al menos 3 caracteres')
        return nombre

    def _clean_factor(self, campo):
        factor = self.cleaned_data.get(campo)
        if factor is not None and factor <= 0:
            raise ValidationError('El factor debe ser positivo')
        if factor is not None and factor > 100:
            raise ValidationError('El factor no puede exceder 100')
        return factor

    def clean_factor_contado(self):
        return self._clean_factor('factor_contado')

    def clean_factor_credito(self):
        return self._clean_factor('factor_credito')

    def clean_porcentaje_comision(self):
        porcentaje = self.cleaned_data.get('porcentaje_comision')
        if porcentaje is not None and porcentaje < 0:
            raise ValidationError('El porcentaje no puede ser negativo')
        if porcentaje is not None and porcentaje > 1:
            raise ValidationError('El porcentaje no puede exceder 1 (100%)')
        return porcentaje

    def clean(self):
        cleaned_data = super().clean()
        compania = cleaned_data.get('compania')
        codigo = (cleaned_data.get('codigo_producto') or '').strip()
        if compania and codigo:
            duplicado = ProductoAseguradora.objects.filter(
                compania=compania, codigo_producto=codigo
            ).exclude(pk=self.instance.pk)
            if duplicado.exists():
                raise ValidationError(
                    'Ya existe otro producto con este código para esta aseguradora' if self.instance.pk
                    else 'Ya existe un producto con este código para esta aseguradora'
                )
        return cleaned_data


class CategoriaForm(forms.ModelForm):

    class Meta:
        model = Categoria
        fields = ['nombre', 'descripcion']

    def clean_nombre(self):
        nombre = (self.cleaned_data.get('nombre') or '').strip()
        if len(nombre) < 3:
            raise ValidationError('El nombre debe tener al menos 3 caracteres')
        if len(nombre) > 100:
            raise ValidationError('El nombre no puede exceder 100 caracteres')
        if Categoria.objects.filter(nombre__iexact=nombre).exclude(pk=self.instance.pk).exists():
            raise ValidationError(
                'Ya existe otra categoría con este nombre' if self.instance.pk
                else 'Ya existe una categoría con este nombre'
            )
        return nombre

    def clean_descripcion(self):
        descripcion = (self.cleaned_data.get('descripcion') or '').strip()
        if len(descripcion) > 500:
            raise ValidationError('La descripción no puede exceder 500 caracteres')
        return descripcion


# ==============================================================================
# CLIENTES
# ==============================================================================

class ClienteForm(forms.ModelForm):
    """Datos de contacto comunes a todos los tipos de cliente"""

    class Meta:
        model = Cliente
        fields = ['email', 'telefono', 'celular', 'direccion', 'ejecutivo']
        error_messages = {
            'email': {'invalid': 'Email inválido'},
        }

    def clean_celular(self):
        celular = (self.cleaned_data.get('celular') or '').strip()
        if celular and (not celular.isdigit() or len(celular) < 5):
            raise ValidationError('Teléfono inválido')
        return celular


class ClienteNaturalForm(forms.ModelForm):

    class Meta:
        model = ClienteNatural
        fields = [
            'primer_nombre', 'segundo_nombre', 'primer_apellido', 'segundo_apellido',
            'tipo_documento', 'numero_documento', 'extension', 'fecha_nacimiento',
            'estado_civil', 'nacionalidad', 'profesion',
        ]
        error_messages = {
            'primer_nombre': {'required': 'Primer nombre requerido'},
            'primer_apellido': {'required': 'Primer apellido requerido'},
            'fecha_nacimiento': {'invalid': 'Fecha de nacimiento inválida'},
        }

    def clean_numero_documento(self):
        numero = (self.cleaned_data.get('numero_documento') or '').strip()
        if len(numero) < 6:
            raise ValidationError('Documento debe tener al menos 6 caracteres')
        if ClienteNatural.objects.filter(numero_documento=numero).exclude(pk=self.instance.pk).exists():
            raise ValidationError('Ya existe un cliente con este número de documento')
        return numero


class ConyugeForm(forms.ModelForm):

    class Meta:
        model = ConyugeCliente
        fields = ['nombre_completo', 'numero_documento', 'fecha_nacimiento']
        error_messages = {
            'nombre_completo': {'required': 'Nombre del cónyuge requerido'},
        }


class _NitMixin:
    modelo_nit = None

    def clean_nit(self):
        nit = (self.cleaned_data.get('nit') or '').strip()
        if len(nit) < 7:
            raise ValidationError('NIT debe tener al menos 7 dígitos')
        if self.modelo_nit.objects.filter(nit=nit).exclude(pk=self.instance.pk).exists():
            raise ValidationError('Ya existe un cliente con este NIT')
        return nit


class ClienteJuridicoForm(_NitMixin, forms.ModelForm):
    modelo_nit = ClienteJuridico

    class Meta:
        model = ClienteJuridico
        fields = ['razon_social', 'nit', 'matricula_comercio', 'tipo_sociedad', 'actividad_economica']
        error_messages = {
            'razon_social': {'required': 'Razón social requerida'},
        }


class RepresentanteLegalForm(forms.ModelForm):

    class Meta:
        model = RepresentanteLegal
        fields = ['nombre_completo', 'numero_documento', 'cargo']
        error_messages = {
            'nombre_completo': {'required': 'Nombre del representante requerido'},
            'numero_documento': {'required': 'CI del representante requerido'},
        }

    def clean_numero_documento(self):
        numero = (self.cleaned_data.get('numero_documento') or '').strip()
        if len(numero) < 7:
            raise ValidationError('CI debe tener al menos 7 dígitos')
        return numero


class ClienteUnipersonalForm(_NitMixin, forms.ModelForm):
    modelo_nit = ClienteUnipersonal

    class Meta:
        model = ClienteUnipersonal
        fields = ['razon_social', 'nit', 'nombre_propietario', 'documento_propietario', 'actividad_economica']
        error_messages = {
            'razon_social': {'required': 'Razón social requerida'},
            'nombre_propietario': {'required': 'Nombre del propietario requerido'},
        }

    def clean_documento_propietario(self):
        documento = (self.cleaned_data.get('documento_propietario') or '').strip()
        if len(documento) < 7:
            raise ValidationError('Documento debe tener al menos 7 dígitos')
        return documento


FORMULARIOS_PERFIL = {
    'natural': ClienteNaturalForm,
    'juridica': ClienteJuridicoForm,
    'unipersonal': ClienteUnipersonalForm,
}
