from datetime import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from core.services.configuracion import actualizar_configuracion
from presupuestos.models import LineaPresupuesto, Presupuesto

AHORA = timezone.make_aware(datetime(2026, 3, 15, 12, 0))

LINEA_SIMPLE = {
    "pieza": "FILTRO-01",
    "concepto": "Filtro de aceite",
    "cantidad": Decimal("1"),
    "costo": Decimal("100"),
    "pvp": Decimal("150"),
    "importe": Decimal("150"),
}


@pytest.fixture
def ahora():
    return AHORA


@pytest.fixture
def crear_presupuesto(db):
    def _crear(referencia="P-0001", lineas=None, **campos):
        campos.setdefault("nombre", "Cliente Demo")
        campos.setdefault("taller", "T1")
        campos.setdefault("fecha_creacion", AHORA)
        presupuesto = Presupuesto.objects.create(referencia=referencia, **campos)
        for orden, linea in enumerate(lineas if lineas is not None else [LINEA_SIMPLE]):
            LineaPresupuesto.objects.create(presupuesto=presupuesto, orden=orden, **linea)
        return presupuesto

    return _crear


@pytest.fixture
def directorio_adjuntos(db, tmp_path):
    directorio = tmp_path / "adjuntos"
    directorio.mkdir()
    actualizar_configuracion({"directorio_adjuntos": str(directorio)})
    return directorio
