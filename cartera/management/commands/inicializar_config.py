from django.core.management.base import BaseCommand

from cartera.models import ConfiguracionSistema
from cartera.services.permisos import PermisosService


class Command(BaseCommand):

    help = 'Inicializa las configuraciones por defecto y los permisos por rol'

    def add_arguments(self, parser):

        parser.add_argument(
            '--sin-permisos',
            action='store_true',
            help='Solo inicializa configuraciones, sin sembrar permisos por rol',
        )

    def handle(self, *args, **options):

        self.stdout.write('Inicializando configuraciones...')

        ConfiguracionSistema.inicializar_valores_default()

        total = ConfiguracionSistema.objects.count()

        self.stdout.write(self.style.SUCCESS(f'✓ {total} configuraciones inicializadas'))

        for config in ConfiguracionSistema.objects.order_by('categoria', 'clave'):

            self.stdout.write(f'  {config.clave} = {config.valor}')

        if options['sin_permisos']:

            return

        self.stdout.write('Inicializando permisos por rol...')

        creados = PermisosService.inicializar_permisos_por_rol()

        self.stdout.write(self.style.SUCCESS(f'✓ {creados} permisos de rol creados'))
