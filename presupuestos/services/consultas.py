from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from django.core.paginator import EmptyPage, Paginator
from django.db.models import Q

from core.exceptions import NotFoundError, ValidationError
from presupuestos.models import (
    Presupuesto,
    concepto_principal,
    pieza_principal,
)
from presupuestos.services.costos import CostoLinea, totales_originales
from presupuestos.services.enriquecimiento import Enriquecedor, presupuestos_en_rango

LIMITE_POR_DEFECTO = 50
LIMITE_MAXIMO = 500
ORDENES = {
    "referencia": "referencia",
    "fecha": "fecha_ref",
    "estado": "estado",
}
ORDENES_CALCULADOS = ("importe", "margen")


@dataclass
class FiltrosListado:
    page: int = 1
    limit: int = LIMITE_POR_DEFECTO
    search: str = ""
    fecha_desde: date | None = None
    fecha_hasta: date | None = None
    tipo_siniestro: str = ""
    talleres: tuple[str, ...] = ()
    estado: str = ""
    subestado: str = ""
    sort_by: str = "fecha"
    sort_order: str = "desc"

    def __post_init__(self):
        if self.estado and self.estado not in Presupuesto.Estado.values:
            raise ValidationError(f"Estado inválido: {self.estado}")
        if self.subestado and self.subestado not in Presupuesto.Subestado.values:
            raise ValidationError(f"Subestado inválido: {self.subestado}")
        if self.sort_by not in (*ORDENES, *ORDENES_CALCULADOS):
            raise ValidationError(f"Orden inválido: {self.sort_by}")
        if self.sort_order not in ("asc", "desc"):
            raise ValidationError("sort_order debe ser 'asc' o 'desc'")


def obtener_presupuesto(referencia: str) -> Presupuesto:
    try:
        return Presupuesto.objects.get(referencia=referencia)
    except Presupuesto.DoesNotExist:
        raise NotFoundError(f"Presupuesto {referencia} no encontrado")


def _queryset_filtrado(filtros: FiltrosListado):
    queryset = Presupuesto.objects.all()
    if filtros.search:
        queryset = queryset.filter(
            Q(referencia__icontains=filtros.search)
            | Q(nombre__icontains=filtros.search)
            | Q(lineas__concepto__icontains=filtros.search)
        ).distinct()
    if filtros.tipo_siniestro:
        queryset = queryset.filter(descripcion_siniestro__icontains=filtros.tipo_siniestro)
    if filtros.talleres:
        queryset = queryset.filter(taller__in=filtros.talleres)
    if filtros.estado:
        queryset = queryset.filter(estado=filtros.estado)
    return presupuestos_en_rango(filtros.fecha_desde, filtros.fecha_hasta, queryset)


def resumen_presupuesto(presupuesto: Presupuesto, enriquecedor: Enriquecedor) -> dict:
    totales = enriquecedor.totales(presupuesto)
    return {
        "id": presupuesto.id,
        "referencia": presupuesto.referencia,
        "cta": presupuesto.cta,
        "nombre": presupuesto.nombre,
        "taller": presupuesto.taller,
        "nombre_taller": enriquecedor.nombre_taller(presupuesto.taller),
        "usuario": presupuesto.usuario,
        "descripcion_siniestro": presupuesto.descripcion_siniestro,
        "or_siniestro": presupuesto.or_siniestro,
        "estado": presupuesto.estado,
        "subestado": enriquecedor.subestado(presupuesto),
        "pieza": pieza_principal(presupuesto),
        "concepto": concepto_principal(presupuesto),
        "num_lineas": len(totales.lineas),
        "costo": totales.costo,
        "pvp": totales.pvp,
        "importe": totales.importe,
        "margen": totales.margen,
        "tiene_aceites": totales.tiene_aceites,
        "fecha_carga": presupuesto.fecha_carga,
        "fecha_creacion": presupuesto.fecha_creacion,
        "ultima_actualizacion": presupuesto.ultima_actualizacion,
    }


def listar_presupuestos(filtros: FiltrosListado, enriquecedor: Enriquecedor) -> dict:
    queryset = _queryset_filtrado(filtros)
    descendente = filtros.sort_order == "desc"

    if filtros.subestado or filtros.sort_by in ORDENES_CALCULADOS:
        # Subestado, importe y margen se calculan al leer: filtrar y ordenar en memoria.
        items = [resumen_presupuesto(p, enriquecedor) for p in queryset]
        if filtros.subestado:
            items = [item for item in items if item["subestado"] == filtros.subestado]
        if filtros.sort_by in ORDENES_CALCULADOS:
            items.sort(key=lambda item: item[filtros.sort_by], reverse=descendente)
        elif filtros.sort_by == "fecha":
            items.sort(
                key=lambda item: item["fecha_creacion"] or item["fecha_carga"],
                reverse=descendente,
            )
        else:
            items.sort(key=lambda item: item[filtros.sort_by], reverse=descendente)
        paginator = Paginator(items, filtros.limit)
        convertir = None
    else:
        campo = ORDENES[filtros.sort_by]
        queryset = queryset.order_by(f"-{campo}" if descendente else campo, "-id")
        paginator = Paginator(queryset, filtros.limit)
        convertir = resumen_presupuesto

    try:
        pagina = list(paginator.page(filtros.page).object_list)
    except EmptyPage:
        pagina = []
    if convertir:
        pagina = [convertir(p, enriquecedor) for p in pagina]

    return {
        "presupuestos": pagina,
        "pagination": {
            "page": filtros.page,
            "limit": filtros.limit,
            "total": paginator.count,
            "pages": paginator.num_pages if paginator.count else 0,
        },
    }


def serializar_linea(linea, calculo: CostoLinea) -> dict:
    data = {
        "id": linea.id,
        "pieza": linea.pieza,
        "concepto": linea.concepto,
        "cantidad": linea.cantidad,
        "costo": linea.costo,
        "pvp": linea.pvp,
        "importe": linea.importe,
        "costo_calculado": calculo.costo,
        "pvp_calculado": calculo.pvp,
        "es_aceite": calculo.es_aceite,
    }
    if calculo.es_aceite:
        data["info_aceite"] = {
            "sku": calculo.sku,
            "litros_por_tambor": calculo.litros_por_tambor,
        }
        data["calculos_aceite"] = {
            "costo_por_litro": calculo.costo_por_litro,
            "pvp_por_litro": calculo.pvp_por_litro,
            "cantidad": calculo.cantidad,
        }
    return data


def serializar_comentario(comentario) -> dict:
    return {
        "id": comentario.id,
        "texto": comentario.texto,
        "usuario": comentario.usuario,
        "fecha": comentario.fecha,
    }


def serializar_adjunto(adjunto) -> dict:
    return {
        "nombre_original": adjunto.nombre_original,
        "nombre_archivo": adjunto.nombre_archivo,
        "tamanio": adjunto.tamanio,
        "tipo": adjunto.tipo,
        "fecha_subida": adjunto.fecha_subida,
        "usuario": adjunto.usuario,
    }


def detalle_presupuesto(referencia: str, enriquecedor: Enriquecedor) -> dict:
    presupuesto = obtener_presupuesto(referencia)
    lineas = list(presupuesto.lineas.all())
    totales = enriquecedor.totales(presupuesto)
    data = resumen_presupuesto(presupuesto, enriquecedor)
    data.update(
        {
            "lineas": [
                serializar_linea(linea, calculo)
                for linea, calculo in zip(lineas, totales.lineas)
            ],
            "comentarios": [
                serializar_comentario(c) for c in presupuesto.comentarios.all()
            ],
            "adjuntos": [serializar_adjunto(a) for a in presupuesto.adjuntos.all()],
            "auditoria": {
                "creado_por": presupuesto.creado_por,
                "fecha_creacion": presupuesto.fecha_creacion,
                "modificado_por": presupuesto.modificado_por,
                "fecha_modificacion": presupuesto.fecha_modificacion,
                "estado_cambiado_por": presupuesto.estado_cambiado_por,
                "fecha_cambio_estado": presupuesto.fecha_cambio_estado,
                "estado_anterior": presupuesto.estado_anterior,
            },
        }
    )
    return data


def calculo_aceites(referencia: str, enriquecedor: Enriquecedor) -> dict:
    presupuesto = obtener_presupuesto(referencia)
    lineas = list(presupuesto.lineas.all())
    totales = enriquecedor.totales(presupuesto)
    originales = totales_originales(lineas)
    calculados = {"costo": totales.costo, "pvp": totales.pvp, "importe": totales.importe}
    return {
        "referencia": presupuesto.referencia,
        "lineas": [
            serializar_linea(linea, calculo)
            for linea, calculo in zip(lineas, totales.lineas)
        ],
        "totales_originales": originales,
        "totales_calculados": calculados,
        "diferencia": {
            campo: calculados[campo] - originales[campo] for campo in calculados
        },
    }
