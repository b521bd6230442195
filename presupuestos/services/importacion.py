from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable

from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import ServiceError
from presupuestos.models import Importacion
from presupuestos.services.ciclo import registrar_presupuesto_importado
from presupuestos.services.parser_excel import (
    PresupuestoImportado,
    ResultadoParseo,
    parse_excel_path,
)

logger = logging.getLogger(__name__)

MAX_ERRORES_LOG = 50
MAX_REFERENCIAS_LOG = 100


@dataclass
class ResumenLote:
    nuevos: int = 0
    existentes: int = 0
    actualizados: int = 0
    errores: list[dict] = field(default_factory=list)
    referencias_existentes: list[str] = field(default_factory=list)


def aplicar_lote(
    presupuestos: Iterable[PresupuestoImportado],
    usuario: str = "",
) -> ResumenLote:
    """Registra cada presupuesto en su propia transacción.

    Un presupuesto que falla queda anotado en ``errores`` y el lote sigue.
    """
    resumen = ResumenLote()
    for datos in presupuestos:
        try:
            _, resultado = registrar_presupuesto_importado(datos, usuario=usuario)
        except (DatabaseError, ServiceError, ValueError) as exc:
            logger.warning("Fila %s (%s) no importada: %s", datos.fila, datos.referencia, exc)
            resumen.errores.append(
                {"fila": datos.fila, "referencia": datos.referencia, "error": str(exc)}
            )
            continue
        if resultado == "nuevo":
            resumen.nuevos += 1
        elif resultado == "actualizado":
            resumen.actualizados += 1
            resumen.referencias_existentes.append(datos.referencia)
        else:
            resumen.existentes += 1
            resumen.referencias_existentes.append(datos.referencia)
    return resumen


def procesar_importacion(
    importacion: Importacion,
    cargar: Callable[[], ResultadoParseo],
) -> Importacion:
    """Ejecuta ``cargar`` y aplica el lote, dejando el resultado en ``importacion``."""
    importacion.status = Importacion.Status.RUNNING
    importacion.started_at = timezone.now()
    importacion.save(update_fields=["status", "started_at"])
    logger.info("Importacion %s iniciada (%s)", importacion.id, importacion.origen)

    try:
        parseo = cargar()
        resumen = aplicar_lote(parseo.presupuestos, usuario=importacion.usuario)
    except ServiceError as exc:
        logger.warning("Importacion %s fallida: %s", importacion.id, exc.detail)
        return _marcar_fallida(importacion, exc.detail)
    except Exception as exc:
        logger.exception("Fallo importacion %s", importacion.id)
        return _marcar_fallida(importacion, str(exc))

    errores = parseo.errores + resumen.errores
    importacion.status = Importacion.Status.DONE
    importacion.finished_at = timezone.now()
    importacion.hoja = parseo.hoja
    importacion.total_filas = parseo.total_filas
    importacion.presupuestos_nuevos = resumen.nuevos
    importacion.presupuestos_existentes = resumen.existentes
    importacion.presupuestos_actualizados = resumen.actualizados
    importacion.error_count = len(errores)
    importacion.error_summary = "; ".join(
        f"Fila {error['fila']}: {error['error']}" for error in errores[:5]
    )
    importacion.log_json = {
        "errores": errores[:MAX_ERRORES_LOG],
        "referencias_existentes": resumen.referencias_existentes[:MAX_REFERENCIAS_LOG],
    }
    importacion.save()
    logger.info(
        "Importacion %s terminada: %s nuevos, %s existentes, %s actualizados, %s errores",
        importacion.id,
        resumen.nuevos,
        resumen.existentes,
        resumen.actualizados,
        len(errores),
    )
    return importacion


def _marcar_fallida(importacion: Importacion, mensaje: str) -> Importacion:
    importacion.status = Importacion.Status.FAILED
    importacion.finished_at = timezone.now()
    importacion.error_count += 1
    importacion.error_summary = mensaje
    importacion.log_json = {"fatal": mensaje}
    importacion.save()
    return importacion


def resumen_importacion(importacion: Importacion) -> dict:
    log = importacion.log_json or {}
    return {
        "id": importacion.id,
        "status": importacion.status,
        "origen": importacion.origen,
        "usuario": importacion.usuario,
        "nombre_archivo": importacion.nombre_archivo,
        "ruta_excel": importacion.ruta_excel,
        "hoja": importacion.hoja,
        "created_at": importacion.created_at,
        "started_at": importacion.started_at,
        "finished_at": importacion.finished_at,
        "total_filas": importacion.total_filas,
        "nuevos": importacion.presupuestos_nuevos,
        "existentes": importacion.presupuestos_existentes,
        "actualizados": importacion.presupuestos_actualizados,
        "error_count": importacion.error_count,
        "error_summary": importacion.error_summary,
        "errores": log.get("errores", []),
        "referencias_existentes": log.get("referencias_existentes", []),
    }


def importar_desde_ruta(
    ruta: str,
    hoja: str = "",
    origen: str = Importacion.Origen.SCHEDULER,
    usuario: str = "scheduler",
) -> Importacion:
    importacion = Importacion.objects.create(
        origen=origen,
        usuario=usuario,
        ruta_excel=ruta,
        hoja=hoja or "",
        nombre_archivo=os.path.basename(ruta),
    )
    return procesar_importacion(importacion, lambda: parse_excel_path(ruta, hoja or None))
