"""Agregados del dashboard.

Todos los agregados por taller agrupan por nombre visible (varios códigos
pueden compartir nombre) e incluyen una fila en cero para cada taller conocido:
los códigos usados por algún presupuesto más los talleres activos.
"""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from catalogo.services.talleres import codigos_talleres_activos
from presupuestos.models import Presupuesto
from presupuestos.services.costos import (
    CERO,
    CIEN,
    calcular_margen,
    redondear_porcentaje,
)
from presupuestos.services.enriquecimiento import Enriquecedor, presupuestos_en_rango

logger = logging.getLogger(__name__)

Estado = Presupuesto.Estado
Motivo = Presupuesto.MotivoRechazo

# Orden de prioridad: un presupuesto cuenta para el primer motivo que coincide.
PATRONES_MOTIVO_RECHAZO = [
    (Motivo.NO_RESPONDE.value, re.compile(r"\bno\s+responde\b", re.IGNORECASE)),
    (
        Motivo.PRECIO_ELEVADO.value,
        re.compile(r"\bprecio\s+(elevado|alto|muy\s+caro)\b", re.IGNORECASE),
    ),
    (
        Motivo.TIEMPO_DEMORA.value,
        re.compile(r"\btiempo\s+de\s+demora\b|\bdemora\b|\btardanza\b", re.IGNORECASE),
    ),
]

FILA_TOTAL = "TOTAL"
MAX_MESES = 6


def porcentaje(parte, total) -> int:
    if not total or total <= 0:
        return 0
    return redondear_porcentaje(Decimal(parte) * CIEN / Decimal(total))


def tasa_conversion(aceptados: int, rechazados: int) -> int:
    return porcentaje(aceptados, aceptados + rechazados)


def clasificar_motivo_rechazo(textos: Iterable[str]) -> str | None:
    texto = " ".join(t for t in textos if t)
    if not texto:
        return None
    for motivo, patron in PATRONES_MOTIVO_RECHAZO:
        if patron.search(texto):
            return motivo
    return None


def _repartir(cantidades: dict[str, int], total: int) -> dict[str, int]:
    """Escala las cantidades para que sumen ``total`` (mayor resto)."""
    suma = sum(cantidades.values())
    if suma <= total or suma == 0:
        return dict(cantidades)
    exactos = {k: Decimal(v) * total / suma for k, v in cantidades.items()}
    escalados = {k: int(v) for k, v in exactos.items()}
    sobrante = total - sum(escalados.values())
    for clave in sorted(exactos, key=lambda k: exactos[k] - escalados[k], reverse=True)[
        :sobrante
    ]:
        escalados[clave] += 1
    return escalados


def _porcentajes(cantidades: dict[str, int], total: int) -> dict[str, int]:
    resultado = {k: porcentaje(v, total) for k, v in cantidades.items()}
    while sum(resultado.values()) > 100:
        exceso = max(
            resultado,
            key=lambda k: resultado[k] - Decimal(cantidades[k]) * CIEN / Decimal(total),
        )
        resultado[exceso] -= 1
    return resultado


class AgrupadorTalleres:
    """Agrupa códigos de taller por nombre visible."""

    def __init__(self, enriquecedor: Enriquecedor):
        self.enriquecedor = enriquecedor
        codigos = set(
            Presupuesto.objects.order_by("taller")
            .values_list("taller", flat=True)
            .distinct()
        )
        codigos |= codigos_talleres_activos()
        self.grupos: dict[str, list[str]] = defaultdict(list)
        for codigo in sorted(codigos):
            self.grupos[enriquecedor.nombre_taller(codigo)].append(codigo)

    def nombre(self, codigo: str) -> str:
        nombre = self.enriquecedor.nombre_taller(codigo)
        if nombre not in self.grupos:
            self.grupos[nombre].append(codigo)
        return nombre

    def filas(self, inicial: Callable[[], dict]) -> dict[str, dict]:
        return {
            nombre: {"taller": nombre, "codigos": list(codigos), **inicial()}
            for nombre, codigos in self.grupos.items()
        }

    def fila(self, filas: dict[str, dict], codigo: str, inicial: Callable[[], dict]) -> dict:
        nombre = self.nombre(codigo)
        if nombre not in filas:
            filas[nombre] = {"taller": nombre, "codigos": [codigo], **inicial()}
        return filas[nombre]


def _por_importe(filas: dict[str, dict]) -> list[dict]:
    return sorted(filas.values(), key=lambda fila: (-fila["importe"], fila["taller"]))


def _contexto(enriquecedor: Enriquecedor | None) -> Enriquecedor:
    return enriquecedor or Enriquecedor.desde_bd()


def estadisticas_generales(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    enriquecedor = _contexto(enriquecedor)
    referencias: set[str] = set()
    importe = costo = pvp = CERO
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        totales = enriquecedor.totales(presupuesto)
        referencias.add(presupuesto.referencia)
        importe += totales.importe
        costo += totales.costo
        pvp += totales.pvp
    return {
        "total_presupuestos": len(referencias),
        "total_importe": importe,
        "total_costo": costo,
        "total_pvp": pvp,
        "margen": calcular_margen(importe, costo),
    }


def por_estado(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> list[dict]:
    enriquecedor = _contexto(enriquecedor)
    filas = {
        estado: {"estado": estado, "cantidad": 0, "importe": CERO, "costo": CERO, "pvp": CERO}
        for estado in Estado.values
    }
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        totales = enriquecedor.totales(presupuesto)
        fila = filas[presupuesto.estado]
        fila["cantidad"] += 1
        fila["importe"] += totales.importe
        fila["costo"] += totales.costo
        fila["pvp"] += totales.pvp
    for fila in filas.values():
        fila["margen"] = calcular_margen(fila["importe"], fila["costo"])
    return list(filas.values())


def por_tipo_siniestro(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> list[dict]:
    enriquecedor = _contexto(enriquecedor)
    filas: dict[str, dict] = {}
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        tipo = presupuesto.descripcion_siniestro
        fila = filas.setdefault(
            tipo, {"tipo_siniestro": tipo, "cantidad": 0, "importe": CERO}
        )
        fila["cantidad"] += 1
        fila["importe"] += enriquecedor.totales(presupuesto).importe
    return sorted(
        filas.values(), key=lambda fila: (-fila["importe"], fila["tipo_siniestro"])
    )


def por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> list[dict]:
    enriquecedor = _contexto(enriquecedor)
    agrupador = AgrupadorTalleres(enriquecedor)

    def inicial():
        return {"cantidad": 0, "importe": CERO, "costo": CERO, "pvp": CERO}

    filas = agrupador.filas(inicial)
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        totales = enriquecedor.totales(presupuesto)
        fila = agrupador.fila(filas, presupuesto.taller, inicial)
        fila["cantidad"] += 1
        fila["importe"] += totales.importe
        fila["costo"] += totales.costo
        fila["pvp"] += totales.pvp
    for fila in filas.values():
        fila["margen"] = calcular_margen(fila["importe"], fila["costo"])
    return _por_importe(filas)


def meses_disponibles(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> list[dict]:
    enriquecedor = _contexto(enriquecedor)
    filas: dict[tuple[int, int], dict] = {}
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        fecha = timezone.localtime(presupuesto.fecha_referencia)
        clave = (fecha.year, fecha.month)
        fila = filas.setdefault(
            clave,
            {
                "anio": fecha.year,
                "mes": fecha.month,
                "clave": f"{fecha.year}-{fecha.month:02d}",
                "cantidad": 0,
                "importe": CERO,
            },
        )
        fila["cantidad"] += 1
        fila["importe"] += enriquecedor.totales(presupuesto).importe
    return [filas[clave] for clave in sorted(filas, reverse=True)]


def tipos_siniestro() -> list[str]:
    return list(
        Presupuesto.objects.exclude(descripcion_siniestro="")
        .order_by("descripcion_siniestro")
        .values_list("descripcion_siniestro", flat=True)
        .distinct()
    )


def codigos_taller() -> list[str]:
    return list(
        Presupuesto.objects.exclude(taller="")
        .order_by("taller")
        .values_list("taller", flat=True)
        .distinct()
    )


def _cantidad_importe_por_taller(
    presupuestos: Iterable[Presupuesto],
    enriquecedor: Enriquecedor,
    incluir: Callable[[Presupuesto], bool] = lambda presupuesto: True,
    extra: Callable[[], dict] = dict,
) -> tuple[AgrupadorTalleres, dict[str, dict], list[Presupuesto]]:
    agrupador = AgrupadorTalleres(enriquecedor)

    def inicial():
        return {"cantidad": 0, "importe": CERO, **extra()}

    filas = agrupador.filas(inicial)
    incluidos = []
    for presupuesto in presupuestos:
        if not incluir(presupuesto):
            continue
        fila = agrupador.fila(filas, presupuesto.taller, inicial)
        fila["cantidad"] += 1
        fila["importe"] += enriquecedor.totales(presupuesto).importe
        incluidos.append(presupuesto)
    return agrupador, filas, incluidos


def _con_totales(filas: list[dict]) -> dict:
    return {
        "talleres": filas,
        "totales": {
            "cantidad": sum(fila["cantidad"] for fila in filas),
            "importe": sum((fila["importe"] for fila in filas), CERO),
        },
    }


def aceptados_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    enriquecedor = _contexto(enriquecedor)
    presupuestos = presupuestos_en_rango(
        fecha_desde, fecha_hasta, Presupuesto.objects.filter(estado=Estado.ACEPTADO)
    )
    _, filas, _ = _cantidad_importe_por_taller(presupuestos, enriquecedor)
    return _con_totales(_por_importe(filas))


def rechazados_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    """Rechazados por taller con el desglose de motivos.

    El motivo se deduce del texto de todos los comentarios; un rechazo sin
    coincidencias suma al total del taller pero a ningún motivo.
    """
    enriquecedor = _contexto(enriquecedor)
    presupuestos = presupuestos_en_rango(
        fecha_desde, fecha_hasta, Presupuesto.objects.filter(estado=Estado.RECHAZADO)
    )
    agrupador, filas, incluidos = _cantidad_importe_por_taller(presupuestos, enriquecedor)

    conteos: dict[str, dict[str, int]] = {
        nombre: {motivo: 0 for motivo in Motivo.values} for nombre in filas
    }
    for presupuesto in incluidos:
        motivo = clasificar_motivo_rechazo(
            comentario.texto for comentario in presupuesto.comentarios.all()
        )
        if motivo:
            conteos[agrupador.nombre(presupuesto.taller)][motivo] += 1

    for nombre, fila in filas.items():
        cantidades = conteos[nombre]
        if sum(cantidades.values()) > fila["cantidad"]:
            logger.warning(
                "Taller %s: motivos (%s) superan los rechazados (%s)",
                nombre,
                sum(cantidades.values()),
                fila["cantidad"],
            )
            cantidades = _repartir(cantidades, fila["cantidad"])
        porcentajes = _porcentajes(cantidades, fila["cantidad"])
        fila["motivos_rechazo"] = {
            motivo: {"cantidad": cantidades[motivo], "porcentaje": porcentajes[motivo]}
            for motivo in Motivo.values
        }
    return _con_totales(_por_importe(filas))


def abiertos_pendientes_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    enriquecedor = _contexto(enriquecedor)
    presupuestos = presupuestos_en_rango(
        fecha_desde, fecha_hasta, Presupuesto.objects.filter(estado=Estado.ABIERTO)
    )
    _, filas, _ = _cantidad_importe_por_taller(
        presupuestos,
        enriquecedor,
        incluir=lambda p: enriquecedor.subestado(p) == Presupuesto.Subestado.PENDIENTE,
    )
    return _con_totales(_por_importe(filas))


def conversion_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    enriquecedor = _contexto(enriquecedor)
    agrupador = AgrupadorTalleres(enriquecedor)

    def inicial():
        return {"aceptados": 0, "rechazados": 0, "importe_aceptado": CERO}

    filas = agrupador.filas(inicial)
    presupuestos = presupuestos_en_rango(
        fecha_desde,
        fecha_hasta,
        Presupuesto.objects.filter(estado__in=[Estado.ACEPTADO, Estado.RECHAZADO]),
    )
    for presupuesto in presupuestos:
        fila = agrupador.fila(filas, presupuesto.taller, inicial)
        if presupuesto.estado == Estado.ACEPTADO:
            fila["aceptados"] += 1
            fila["importe_aceptado"] += enriquecedor.totales(presupuesto).importe
        else:
            fila["rechazados"] += 1

    for fila in filas.values():
        fila["total"] = fila["aceptados"] + fila["rechazados"]
        fila["conversion"] = tasa_conversion(fila["aceptados"], fila["rechazados"])

    aceptados = sum(fila["aceptados"] for fila in filas.values())
    rechazados = sum(fila["rechazados"] for fila in filas.values())
    return {
        "talleres": sorted(
            filas.values(), key=lambda fila: (-fila["conversion"], fila["taller"])
        ),
        "totales": {
            "aceptados": aceptados,
            "rechazados": rechazados,
            "total": aceptados + rechazados,
            "conversion": tasa_conversion(aceptados, rechazados),
        },
    }


def _mes_inicio() -> tuple[int, int]:
    valor = settings.ESTADISTICAS_MES_INICIO
    try:
        anio, mes = (int(parte) for parte in valor.split("-", 1))
    except (AttributeError, ValueError):
        raise ImproperlyConfigured(
            f"ESTADISTICAS_MES_INICIO debe tener formato YYYY-MM (valor: {valor!r})"
        )
    if not 1 <= mes <= 12:
        raise ImproperlyConfigured(f"ESTADISTICAS_MES_INICIO fuera de rango: {valor!r}")
    return anio, mes


def ventana_meses(hoy: date, inicio: tuple[int, int]) -> list[str]:
    """Meses desde ``inicio`` hasta el mes de ``hoy``, como máximo los últimos seis."""
    actual = hoy.year * 12 + hoy.month - 1
    desde = max(inicio[0] * 12 + inicio[1] - 1, actual - (MAX_MESES - 1))
    return [f"{indice // 12}-{indice % 12 + 1:02d}" for indice in range(desde, actual + 1)]


def mensuales_por_taller(enriquecedor: Enriquecedor | None = None) -> dict:
    enriquecedor = _contexto(enriquecedor)
    meses = ventana_meses(timezone.localtime(enriquecedor.now).date(), _mes_inicio())
    agrupador = AgrupadorTalleres(enriquecedor)

    def celdas():
        return {
            "meses": {
                mes: {"realizados": 0, "aceptados": 0, "conversion": 0, "monto": CERO}
                for mes in meses
            }
        }

    filas = agrupador.filas(celdas)
    totales = celdas()["meses"]
    realizados = Presupuesto.objects.exclude(estado=Estado.ABIERTO)
    for presupuesto in presupuestos_en_rango(queryset=realizados):
        fecha = timezone.localtime(presupuesto.fecha_referencia)
        mes = f"{fecha.year}-{fecha.month:02d}"
        if mes not in totales:
            continue
        for celda in (agrupador.fila(filas, presupuesto.taller, celdas)["meses"][mes], totales[mes]):
            celda["realizados"] += 1
            if presupuesto.estado == Estado.ACEPTADO:
                celda["aceptados"] += 1
                celda["monto"] += enriquecedor.totales(presupuesto).importe

    ordenadas = sorted(filas.values(), key=lambda fila: fila["taller"].casefold())
    for celda in [
        *(c for fila in ordenadas for c in fila["meses"].values()),
        *totales.values(),
    ]:
        celda["conversion"] = porcentaje(celda["aceptados"], celda["realizados"])
    ordenadas.append({"taller": FILA_TOTAL, "codigos": [], "meses": totales})
    return {"meses": meses, "talleres": ordenadas, "totales_por_mes": totales}


def aceptados_con_ors(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
) -> dict:
    presupuestos = presupuestos_en_rango(
        fecha_desde,
        fecha_hasta,
        Presupuesto.objects.filter(estado=Estado.ACEPTADO).exclude(or_siniestro=""),
    )
    return {"total_con_ors": presupuestos.count()}


def ors_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    enriquecedor = _contexto(enriquecedor)
    agrupador = AgrupadorTalleres(enriquecedor)

    def inicial():
        return {"cantidad": 0}

    filas = agrupador.filas(inicial)
    presupuestos = presupuestos_en_rango(
        fecha_desde,
        fecha_hasta,
        Presupuesto.objects.filter(estado=Estado.ACEPTADO).exclude(or_siniestro=""),
    )
    for presupuesto in presupuestos:
        agrupador.fila(filas, presupuesto.taller, inicial)["cantidad"] += 1
    resultado = sorted(filas.values(), key=lambda fila: (-fila["cantidad"], fila["taller"]))
    return {
        "talleres": resultado,
        "total": sum(fila["cantidad"] for fila in resultado),
    }


def resumen_por_taller(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    enriquecedor: Enriquecedor | None = None,
) -> dict:
    """Partición de los presupuestos de cada taller por estado y subestado."""
    enriquecedor = _contexto(enriquecedor)
    agrupador = AgrupadorTalleres(enriquecedor)
    claves = ("aceptados", "rechazados", "en_espera", "pendientes")

    def inicial():
        return {"total": 0, **{clave: 0 for clave in claves}}

    filas = agrupador.filas(inicial)
    for presupuesto in presupuestos_en_rango(fecha_desde, fecha_hasta):
        fila = agrupador.fila(filas, presupuesto.taller, inicial)
        fila["total"] += 1
        if presupuesto.estado == Estado.ACEPTADO:
            fila["aceptados"] += 1
        elif presupuesto.estado == Estado.RECHAZADO:
            fila["rechazados"] += 1
        elif enriquecedor.subestado(presupuesto) == Presupuesto.Subestado.PENDIENTE:
            fila["pendientes"] += 1
        else:
            fila["en_espera"] += 1

    resultado = sorted(filas.values(), key=lambda fila: (-fila["total"], fila["taller"]))
    return {
        "talleres": resultado,
        "totales": {
            clave: sum(fila[clave] for fila in resultado) for clave in ("total", *claves)
        },
    }
