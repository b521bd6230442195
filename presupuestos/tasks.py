from __future__ import annotations

import logging

from celery import shared_task

from presupuestos.models import Importacion
from presupuestos.services.importacion import procesar_importacion
from presupuestos.services.parser_excel import parse_excel_bytes
from presupuestos.services.s3_client import download_bytes, ensure_bucket
from presupuestos.services.scheduler import SchedulerService

logger = logging.getLogger(__name__)


@shared_task
def process_excel_import(importacion_id: int) -> None:
    try:
        importacion = Importacion.objects.get(id=importacion_id)
    except Importacion.DoesNotExist:
        logger.error("Importacion %s no existe", importacion_id)
        return

    def cargar():
        ensure_bucket()
        data = download_bytes(importacion.s3_key_excel)
        return parse_excel_bytes(data, importacion.hoja or None)

    procesar_importacion(importacion, cargar)


@shared_task
def scheduler_tick() -> bool:
    return SchedulerService().tick()
