import io
from decimal import Decimal

import pytest
from openpyxl import Workbook

from core.exceptions import UpstreamError
from presupuestos.models import Comentario, Importacion, Presupuesto
from presupuestos.services.ciclo import cambiar_estado
from presupuestos.services.importacion import (
    aplicar_lote,
    importar_desde_ruta,
    procesar_importacion,
)
from presupuestos.services.parser_excel import parse_excel_bytes, parse_rows
from presupuestos.tasks import process_excel_import

ENCABEZADOS = (
    "Referencia",
    "Fecha",
    "CTA",
    "Nombre",
    "Taller",
    "Pieza",
    "Concepto",
    "Cantidad",
    "Costo",
    "PVP",
    "Importe",
    "Usuario",
    "Descripción Siniestro",
)

FILAS = [
    ENCABEZADOS,
    ("P-1", "01/02/2026", "C1", "Juan Pérez", "T1", "ACE-10W40", "Aceite", 5, 2000, 3000, 75, "ana", "Choque"),
    (None, None, None, None, None, "FILTRO-01", "Filtro", None, 100, 150, 150, None, None),
    ("P-2", None, "C2", "", "T2", "X-1", "Pieza", 1, 10, 20, 20, None, None),
    (None, None, None, None, None, "X-2", "Pieza", 1, 10, 20, 20, None, None),
    ("P-3", None, "C3", "Pedro", "T1", None, None, None, None, None, None, None, None),
    ("P-4", 46054, "C4", "María", "T3", "BUJIA", "Bujía", "2", "1.234,50", 30, 60, None, "Robo"),
]


def _xlsx_bytes(filas, titulo="Presupuestos") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = titulo
    for fila in filas:
        sheet.append(list(fila))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_parse_rows_agrupa_lineas_por_referencia():
    resultado = parse_rows(FILAS, hoja="Presupuestos")

    assert [p.referencia for p in resultado.presupuestos] == ["P-1", "P-4"]
    p1 = resultado.presupuestos[0]
    assert p1.nombre == "Juan Pérez"
    assert p1.descripcion_siniestro == "Choque"
    assert p1.fecha.date().isoformat() == "2026-02-01"
    assert [linea.pieza for linea in p1.lineas] == ["ACE-10W40", "FILTRO-01"]
    assert p1.lineas[0].cantidad == Decimal("5")
    assert p1.lineas[1].cantidad == Decimal("1")
    assert resultado.total_filas == 6
    assert resultado.errores == [{"fila": 4, "error": "Referencia P-2 sin nombre de cliente"}]


def test_parse_rows_valores_excel():
    p4 = parse_rows(FILAS).presupuestos[1]

    assert p4.fecha.date().isoformat() == "2026-02-01"
    assert p4.lineas[0].cantidad == Decimal("2")
    assert p4.lineas[0].costo == Decimal("1234.50")


def test_parse_rows_sin_columnas_requeridas():
    with pytest.raises(UpstreamError):
        parse_rows([("Referencia", "Nombre"), ("P-1", "Juan")])
    with pytest.raises(UpstreamError):
        parse_rows([])


def test_parse_excel_bytes_lee_la_hoja():
    data = _xlsx_bytes(FILAS)

    resultado = parse_excel_bytes(data)

    assert resultado.hoja == "Presupuestos"
    assert len(resultado.presupuestos) == 2
    with pytest.raises(UpstreamError):
        parse_excel_bytes(data, hoja="Otra")
    with pytest.raises(UpstreamError):
        parse_excel_bytes(b"no es un excel")


@pytest.mark.django_db
def test_aplicar_lote_es_idempotente():
    lote = parse_rows(FILAS).presupuestos

    primero = aplicar_lote(lote, usuario="ana")
    segundo = aplicar_lote(lote, usuario="ana")

    assert (primero.nuevos, primero.existentes) == (2, 0)
    assert (segundo.nuevos, segundo.existentes, segundo.actualizados) == (0, 2, 0)
    assert segundo.errores == []
    presupuesto = Presupuesto.objects.get(referencia="P-1")
    assert presupuesto.estado == Presupuesto.Estado.ABIERTO
    assert presupuesto.creado_por == "ana"
    assert presupuesto.lineas.count() == 2


@pytest.mark.django_db
def test_reingesta_reemplaza_lineas_y_conserva_estado():
    aplicar_lote(parse_rows(FILAS).presupuestos)
    cambiar_estado("P-1", "Aceptado", "ana")

    filas = list(FILAS)
    filas[2] = (None, None, None, None, None, "FILTRO-02", "Filtro nuevo", 1, 90, 140, 140, None, None)
    resumen = aplicar_lote(parse_rows(filas).presupuestos)

    assert (resumen.nuevos, resumen.existentes, resumen.actualizados) == (0, 1, 1)
    presupuesto = Presupuesto.objects.get(referencia="P-1")
    assert presupuesto.estado == Presupuesto.Estado.ACEPTADO
    assert list(presupuesto.lineas.values_list("pieza", flat=True)) == ["ACE-10W40", "FILTRO-02"]
    assert Comentario.objects.filter(presupuesto=presupuesto).count() == 1


FILAS_REPETIDAS = [
    ENCABEZADOS,
    ("P-1", None, "C1", "Juan", "T1", "PIEZA-A", "A", 1, 10, 20, 20, None, None),
    ("P-2", None, "C2", "Ana", "T2", "PIEZA-B", "B", 1, 10, 20, 20, None, None),
    ("P-1", None, "C1", "Juan", "T1", "PIEZA-C", "C", 1, 10, 20, 20, None, None),
]


def test_parse_rows_referencia_repetida_gana_el_ultimo_bloque():
    resultado = parse_rows(FILAS_REPETIDAS)

    assert [p.referencia for p in resultado.presupuestos] == ["P-1", "P-2"]
    assert [linea.pieza for linea in resultado.presupuestos[0].lineas] == ["PIEZA-C"]


@pytest.mark.django_db
def test_lote_con_referencia_repetida_es_idempotente():
    lote = parse_rows(FILAS_REPETIDAS).presupuestos

    primero = aplicar_lote(lote)
    segundo = aplicar_lote(lote)

    assert (primero.nuevos, primero.actualizados) == (2, 0)
    assert (segundo.nuevos, segundo.existentes, segundo.actualizados) == (0, 2, 0)
    presupuesto = Presupuesto.objects.get(referencia="P-1")
    assert list(presupuesto.lineas.values_list("pieza", flat=True)) == ["PIEZA-C"]


@pytest.mark.django_db
def test_reingesta_con_celdas_vacias_conserva_cabecera():
    aplicar_lote(parse_rows(FILAS).presupuestos)

    filas = list(FILAS)
    filas[1] = ("P-1", None, None, "Juan Pérez", None, "ACE-10W40", "Aceite", 5, 2000, 3000, 75, None, None)
    resumen = aplicar_lote(parse_rows(filas).presupuestos)

    assert resumen.existentes == 2
    presupuesto = Presupuesto.objects.get(referencia="P-1")
    assert presupuesto.cta == "C1"
    assert presupuesto.taller == "T1"
    assert presupuesto.usuario == "ana"
    assert presupuesto.descripcion_siniestro == "Choque"
    assert presupuesto.fecha_creacion.date().isoformat() == "2026-02-01"


@pytest.mark.django_db
def test_procesar_importacion_marca_fallida():
    importacion = Importacion.objects.create()

    def cargar():
        raise UpstreamError("Archivo Excel no encontrado: x.xlsx")

    procesar_importacion(importacion, cargar)

    importacion.refresh_from_db()
    assert importacion.status == Importacion.Status.FAILED
    assert importacion.error_summary == "Archivo Excel no encontrado: x.xlsx"
    assert importacion.finished_at is not None


@pytest.mark.django_db
def test_importar_desde_ruta(tmp_path):
    ruta = tmp_path / "presupuestos.xlsx"
    ruta.write_bytes(_xlsx_bytes(FILAS))

    importacion = importar_desde_ruta(str(ruta))

    assert importacion.status == Importacion.Status.DONE
    assert importacion.presupuestos_nuevos == 2
    assert importacion.error_count == 1
    assert importacion.nombre_archivo == "presupuestos.xlsx"
    assert importacion.log_json["errores"][0]["fila"] == 4

    fallida = importar_desde_ruta(str(tmp_path / "no-existe.xlsx"))
    assert fallida.status == Importacion.Status.FAILED


@pytest.mark.django_db
def test_task_procesa_excel_desde_s3(monkeypatch):
    data = _xlsx_bytes(FILAS)
    monkeypatch.setattr("presupuestos.tasks.ensure_bucket", lambda: None)
    monkeypatch.setattr("presupuestos.tasks.download_bytes", lambda key: data)
    importacion = Importacion.objects.create(s3_key_excel="imports/1/source.xlsx", usuario="ana")

    process_excel_import(importacion.id)

    importacion.refresh_from_db()
    assert importacion.status == Importacion.Status.DONE
    assert importacion.presupuestos_nuevos == 2
    assert Presupuesto.objects.count() == 2


@pytest.mark.django_db
def test_task_importacion_inexistente_no_falla():
    process_excel_import(9999)
    assert Importacion.objects.count() == 0
