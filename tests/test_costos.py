from decimal import Decimal
from types import SimpleNamespace

from catalogo.models import Aceite
from catalogo.services.aceites import CatalogoAceites
from presupuestos.services.costos import (
    calcular_costo_linea,
    calcular_margen,
    totales_originales,
    totalizar_lineas,
)


def _linea(pieza, costo, pvp, importe, cantidad="1"):
    return SimpleNamespace(
        pieza=pieza,
        costo=Decimal(costo),
        pvp=Decimal(pvp),
        importe=Decimal(importe),
        cantidad=Decimal(cantidad),
    )


def _catalogo():
    return CatalogoAceites([Aceite(sku="ACE-10W40", litros_por_tambor=Decimal("200"))])


def test_linea_de_aceite_se_calcula_por_litro():
    calculo = calcular_costo_linea(_linea("ACE-10W40", "2000", "3000", "75", "5"), _catalogo())

    assert calculo.es_aceite is True
    assert calculo.costo == Decimal("50")
    assert calculo.pvp == Decimal("75")
    assert calculo.importe == Decimal("75")
    assert calculo.costo_por_litro == Decimal("10")
    assert calculo.pvp_por_litro == Decimal("15")
    assert calculo.litros_por_tambor == Decimal("200")


def test_busqueda_de_sku_ignora_mayusculas_y_espacios():
    calculo = calcular_costo_linea(_linea(" ace-10w40 ", "2000", "3000", "75", "5"), _catalogo())

    assert calculo.es_aceite is True
    assert calculo.sku == "ACE-10W40"


def test_linea_que_no_es_aceite_queda_igual():
    calculo = calcular_costo_linea(_linea("FILTRO-01", "100", "150", "150", "3"), _catalogo())

    assert calculo.es_aceite is False
    assert calculo.costo == Decimal("100")
    assert calculo.pvp == Decimal("150")
    assert calculo.importe == Decimal("150")


def test_aceite_sin_litros_validos_queda_igual():
    catalogo = CatalogoAceites([Aceite(sku="ACE-0", litros_por_tambor=Decimal("0"))])

    calculo = calcular_costo_linea(_linea("ACE-0", "2000", "3000", "75", "5"), catalogo)

    assert calculo.es_aceite is False
    assert calculo.costo == Decimal("2000")


def test_margen_redondeado_y_cero_sin_importe():
    assert calcular_margen(Decimal("200"), Decimal("150")) == 25
    assert calcular_margen(Decimal("3"), Decimal("2")) == 33
    assert calcular_margen(Decimal("0"), Decimal("10")) == 0
    assert calcular_margen(Decimal("-5"), Decimal("10")) == 0


def test_totales_suman_lineas_calculadas():
    lineas = [
        _linea("ACE-10W40", "2000", "3000", "75", "5"),
        _linea("FILTRO-01", "100", "150", "150"),
    ]

    totales = totalizar_lineas(lineas, _catalogo())
    originales = totales_originales(lineas)

    assert totales.costo == Decimal("150")
    assert totales.pvp == Decimal("225")
    assert totales.importe == Decimal("225")
    assert totales.margen == 33
    assert totales.tiene_aceites is True
    assert originales == {
        "costo": Decimal("2100"),
        "pvp": Decimal("3150"),
        "importe": Decimal("225"),
    }
