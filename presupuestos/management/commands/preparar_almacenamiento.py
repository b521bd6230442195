import os

from django.core.management.base import BaseCommand

from core.services.configuracion import obtener_configuracion
from presupuestos.services.s3_client import ensure_bucket


class Command(BaseCommand):
    help = "Crea el bucket S3 de planillas y el directorio de adjuntos si no existen."

    def add_arguments(self, parser):
        parser.add_argument(
            "--sin-s3",
            action="store_true",
            help="Solo prepara el directorio de adjuntos.",
        )

    def handle(self, *args, **options):
        directorio = obtener_configuracion().directorio_adjuntos
        os.makedirs(directorio, exist_ok=True)
        self.stdout.write(f"Directorio de adjuntos: {directorio}")
        if not options["sin_s3"]:
            ensure_bucket()
            self.stdout.write("Bucket S3 verificado.")
        self.stdout.write(self.style.SUCCESS("Almacenamiento listo."))
