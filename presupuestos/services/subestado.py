from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from presupuestos.models import Presupuesto


def calcular_subestado(
    estado: str,
    fecha_creacion: datetime,
    fechas_comentarios: Iterable[datetime],
    dias_para_pendiente: int,
    now: datetime,
) -> str | None:
    """Subestado de un presupuesto abierto: "Pendiente" o "En espera".

    La fecha de referencia es la más reciente entre la creación y el último
    comentario. Pasa a pendiente cuando transcurrieron estrictamente más de
    ``dias_para_pendiente`` días desde esa fecha. Devuelve None si el
    presupuesto no está abierto.
    """
    if estado != Presupuesto.Estado.ABIERTO:
        return None
    referencia = max([fecha_creacion, *[f for f in fechas_comentarios if f]])
    if now - referencia > timedelta(hours=dias_para_pendiente * 24):
        return Presupuesto.Subestado.PENDIENTE.value
    return Presupuesto.Subestado.EN_ESPERA.value


def subestado_de(presupuesto: Presupuesto, dias_para_pendiente: int, now: datetime) -> str | None:
    return calcular_subestado(
        presupuesto.estado,
        presupuesto.fecha_referencia,
        [comentario.fecha for comentario in presupuesto.comentarios.all()],
        dias_para_pendiente,
        now,
    )
