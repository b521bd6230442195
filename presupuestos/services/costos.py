"""Costo y PVP reales de las líneas de un presupuesto.

Las líneas de aceite llegan del Excel con el costo y el PVP del tambor completo
mientras que la cantidad ya viene en litros. Si la pieza figura en el catálogo
de aceites se reconstruyen los valores por litro y se multiplican por la
cantidad. El importe nunca se recalcula: es el monto acordado con el cliente.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Protocol

CERO = Decimal("0")
UNO = Decimal("1")
CIEN = Decimal("100")


class Catalogo(Protocol):
    def find_by_sku(self, sku: str | None): ...


@dataclass
class CostoLinea:
    costo: Decimal
    pvp: Decimal
    importe: Decimal
    es_aceite: bool = False
    sku: str | None = None
    litros_por_tambor: Decimal | None = None
    costo_por_litro: Decimal | None = None
    pvp_por_litro: Decimal | None = None
    cantidad: Decimal = UNO


@dataclass
class TotalesPresupuesto:
    costo: Decimal
    pvp: Decimal
    importe: Decimal
    margen: int
    tiene_aceites: bool
    lineas: list[CostoLinea]


def _decimal(value, default: Decimal = CERO) -> Decimal:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def redondear_porcentaje(valor: Decimal) -> int:
    return int(valor.quantize(UNO, rounding=ROUND_HALF_UP))


def calcular_costo_linea(linea, catalogo: Catalogo) -> CostoLinea:
    costo = _decimal(linea.costo)
    pvp = _decimal(linea.pvp)
    importe = _decimal(linea.importe)
    cantidad = _decimal(linea.cantidad, default=UNO)

    aceite = catalogo.find_by_sku(linea.pieza)
    litros = _decimal(getattr(aceite, "litros_por_tambor", None)) if aceite else CERO
    if litros <= 0:
        return CostoLinea(costo=costo, pvp=pvp, importe=importe, cantidad=cantidad)

    costo_por_litro = costo / litros
    pvp_por_litro = pvp / litros
    return CostoLinea(
        costo=costo_por_litro * cantidad,
        pvp=pvp_por_litro * cantidad,
        importe=importe,
        es_aceite=True,
        sku=aceite.sku,
        litros_por_tambor=litros,
        costo_por_litro=costo_por_litro,
        pvp_por_litro=pvp_por_litro,
        cantidad=cantidad,
    )


def calcular_margen(importe: Decimal, costo: Decimal) -> int:
    if importe <= 0:
        return 0
    return redondear_porcentaje((importe - costo) / importe * CIEN)


def totalizar_lineas(lineas: Iterable, catalogo: Catalogo) -> TotalesPresupuesto:
    calculadas = [calcular_costo_linea(linea, catalogo) for linea in lineas]
    costo = sum((item.costo for item in calculadas), CERO)
    pvp = sum((item.pvp for item in calculadas), CERO)
    importe = sum((item.importe for item in calculadas), CERO)
    return TotalesPresupuesto(
        costo=costo,
        pvp=pvp,
        importe=importe,
        margen=calcular_margen(importe, costo),
        tiene_aceites=any(item.es_aceite for item in calculadas),
        lineas=calculadas,
    )


def totales_originales(lineas: Iterable) -> dict[str, Decimal]:
    lineas = list(lineas)
    return {
        "costo": sum((_decimal(linea.costo) for linea in lineas), CERO),
        "pvp": sum((_decimal(linea.pvp) for linea in lineas), CERO),
        "importe": sum((_decimal(linea.importe) for linea in lineas), CERO),
    }
