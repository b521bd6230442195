"""Carga periódica del Excel configurado.

El estado (activo, intervalo, ruta, última ejecución) y el log visible para el
operador viven en la base de datos, así el proceso web y el worker de Celery
comparten la misma vista. Celery beat llama a :meth:`SchedulerService.tick`
cada minuto.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Callable

from django.conf import settings
from django.utils import timezone

from core.exceptions import ValidationError
from presupuestos.models import ConfiguracionScheduler, Importacion, SchedulerLog
from presupuestos.services.importacion import importar_desde_ruta

logger = logging.getLogger(__name__)

MAX_LOGS = 100
LOGS_EN_ESTADO = 20
INTERVALO_MIN = 1
INTERVALO_MAX = 1440

NIVELES = {
    SchedulerLog.Tipo.INFO: logging.INFO,
    SchedulerLog.Tipo.SUCCESS: logging.INFO,
    SchedulerLog.Tipo.WARNING: logging.WARNING,
    SchedulerLog.Tipo.ERROR: logging.ERROR,
}


def serializar_log(entrada: SchedulerLog) -> dict:
    return {
        "id": entrada.id,
        "timestamp": entrada.timestamp,
        "tipo": entrada.tipo,
        "mensaje": entrada.mensaje,
        "data": entrada.data,
    }


class SchedulerService:
    def __init__(
        self,
        ejecutar_importacion: Callable[[str, str], Importacion] | None = None,
    ):
        self._ejecutar_importacion = ejecutar_importacion or importar_desde_ruta

    def configuracion(self) -> ConfiguracionScheduler:
        configuracion, _ = ConfiguracionScheduler.objects.get_or_create(
            pk=1,
            defaults={
                "intervalo_minutos": settings.SCHEDULER_INTERVALO_MINUTOS,
                "ruta_excel": settings.EXCEL_PATH,
                "hoja_excel": settings.EXCEL_SHEET,
            },
        )
        return configuracion

    def log(self, tipo: str, mensaje: str, data: dict | None = None) -> SchedulerLog:
        logger.log(NIVELES.get(tipo, logging.INFO), "[scheduler] %s", mensaje)
        entrada = SchedulerLog.objects.create(tipo=tipo, mensaje=mensaje, data=data)
        conservar = list(SchedulerLog.objects.values_list("id", flat=True)[:MAX_LOGS])
        SchedulerLog.objects.exclude(id__in=conservar).delete()
        return entrada

    def logs(self, limit: int = 50) -> list[dict]:
        limit = max(1, min(limit, MAX_LOGS))
        return [serializar_log(entrada) for entrada in SchedulerLog.objects.all()[:limit]]

    def start(self) -> dict:
        configuracion = self.configuracion()
        if not configuracion.running:
            configuracion.running = True
            configuracion.save(update_fields=["running", "updated_at"])
            self.log(
                SchedulerLog.Tipo.INFO,
                f"Scheduler iniciado: cada {configuracion.intervalo_minutos} minutos",
                {"intervalo_minutos": configuracion.intervalo_minutos},
            )
        return self.status()

    def stop(self) -> dict:
        configuracion = self.configuracion()
        if configuracion.running:
            configuracion.running = False
            configuracion.save(update_fields=["running", "updated_at"])
            self.log(SchedulerLog.Tipo.INFO, "Scheduler detenido")
        return self.status()

    def proxima_ejecucion(
        self,
        configuracion: ConfiguracionScheduler,
        now: datetime | None = None,
    ) -> datetime | None:
        if not (configuracion.running and configuracion.enabled):
            return None
        if configuracion.ultima_ejecucion is None:
            return now or timezone.now()
        return configuracion.ultima_ejecucion + timedelta(
            minutes=configuracion.intervalo_minutos
        )

    def status(self, now: datetime | None = None) -> dict:
        configuracion = self.configuracion()
        return {
            "running": configuracion.running,
            "config": {
                "enabled": configuracion.enabled,
                "intervalo_minutos": configuracion.intervalo_minutos,
                "ruta_excel": configuracion.ruta_excel,
                "hoja_excel": configuracion.hoja_excel,
            },
            "ultima_ejecucion": configuracion.ultima_ejecucion,
            "proxima_ejecucion": self.proxima_ejecucion(configuracion, now),
            "logs": self.logs(LOGS_EN_ESTADO),
        }

    def update_config(self, cambios: dict) -> dict:
        configuracion = self.configuracion()
        update_fields: list[str] = []

        if "intervalo_minutos" in cambios:
            intervalo = cambios["intervalo_minutos"]
            if isinstance(intervalo, bool) or not isinstance(intervalo, int):
                raise ValidationError("intervalo_minutos debe ser un número entero")
            if not INTERVALO_MIN <= intervalo <= INTERVALO_MAX:
                raise ValidationError(
                    f"intervalo_minutos debe estar entre {INTERVALO_MIN} y {INTERVALO_MAX}"
                )
            configuracion.intervalo_minutos = intervalo
            update_fields.append("intervalo_minutos")

        if "enabled" in cambios:
            if not isinstance(cambios["enabled"], bool):
                raise ValidationError("enabled debe ser booleano")
            configuracion.enabled = cambios["enabled"]
            update_fields.append("enabled")

        for campo in ("ruta_excel", "hoja_excel"):
            if campo in cambios:
                valor = cambios[campo]
                if valor is None:
                    valor = ""
                if not isinstance(valor, str):
                    raise ValidationError(f"{campo} debe ser texto")
                setattr(configuracion, campo, valor.strip())
                update_fields.append(campo)

        if update_fields:
            configuracion.save(update_fields=[*update_fields, "updated_at"])
            self.log(
                SchedulerLog.Tipo.INFO,
                "Configuración del scheduler actualizada",
                {campo: getattr(configuracion, campo) for campo in update_fields},
            )
        return self.status()

    def execute(self, now: datetime | None = None) -> Importacion | None:
        configuracion = self.configuracion()
        if not configuracion.enabled:
            self.log(SchedulerLog.Tipo.WARNING, "Scheduler deshabilitado, ejecución omitida")
            return None
        ruta = configuracion.ruta_excel
        if not ruta:
            self.log(SchedulerLog.Tipo.ERROR, "No hay ruta de Excel configurada")
            return None
        if not os.path.isfile(ruta):
            self.log(
                SchedulerLog.Tipo.ERROR,
                f"Archivo Excel no encontrado: {ruta}",
                {"ruta_excel": ruta},
            )
            return None

        self.log(SchedulerLog.Tipo.INFO, f"Iniciando carga de {ruta}", {"ruta_excel": ruta})
        importacion = self._ejecutar_importacion(ruta, configuracion.hoja_excel)
        configuracion.ultima_ejecucion = now or timezone.now()
        configuracion.save(update_fields=["ultima_ejecucion", "updated_at"])

        data = {
            "importacion_id": importacion.id,
            "nuevos": importacion.presupuestos_nuevos,
            "existentes": importacion.presupuestos_existentes,
            "actualizados": importacion.presupuestos_actualizados,
            "errores": importacion.error_count,
        }
        if importacion.status == Importacion.Status.FAILED:
            self.log(
                SchedulerLog.Tipo.ERROR,
                f"Carga fallida: {importacion.error_summary}",
                data,
            )
        else:
            self.log(
                SchedulerLog.Tipo.SUCCESS,
                f"Carga completada: {importacion.presupuestos_nuevos} nuevos, "
                f"{importacion.presupuestos_existentes} existentes, "
                f"{importacion.error_count} errores",
                data,
            )
        return importacion

    def tick(self, now: datetime | None = None) -> bool:
        """Ejecuta la carga si el scheduler está activo y venció el intervalo."""
        now = now or timezone.now()
        configuracion = self.configuracion()
        if not (configuracion.running and configuracion.enabled):
            return False
        ultima = configuracion.ultima_ejecucion
        if ultima and now - ultima < timedelta(minutes=configuracion.intervalo_minutos):
            return False
        self.execute(now=now)
        return True
