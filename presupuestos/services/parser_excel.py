from __future__ import annotations

import logging
import os
import unicodedata
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from io import BytesIO

import openpyxl
from django.utils import timezone
from openpyxl.utils.exceptions import InvalidFileException

from core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

# Clave -> fragmento buscado en el encabezado (sin tildes, en minúsculas).
COLUMNAS = {
    "referencia": "referencia",
    "fecha": "fecha",
    "cta": "cta",
    "nombre": "nombre",
    "taller": "taller",
    "pieza": "pieza",
    "concepto": "concepto",
    "cantidad": "cant",
    "costo": "costo",
    "pvp": "pvp",
    "importe": "importe",
    "usuario": "usuario",
    "descripcion_siniestro": "descripcion siniestro",
}
COLUMNAS_REQUERIDAS = ("referencia", "nombre", "taller", "pieza", "costo", "pvp", "importe")

EXCEL_EPOCH = datetime(1899, 12, 30)


@dataclass
class LineaImportada:
    pieza: str
    concepto: str = ""
    cantidad: Decimal = Decimal("1")
    costo: Decimal = Decimal("0")
    pvp: Decimal = Decimal("0")
    importe: Decimal = Decimal("0")


@dataclass
class PresupuestoImportado:
    referencia: str
    nombre: str
    cta: str = ""
    taller: str = ""
    usuario: str = ""
    descripcion_siniestro: str = ""
    fecha: datetime | None = None
    fila: int | None = None
    lineas: list[LineaImportada] = field(default_factory=list)


@dataclass
class ResultadoParseo:
    hoja: str
    total_filas: int = 0
    presupuestos: list[PresupuestoImportado] = field(default_factory=list)
    errores: list[dict] = field(default_factory=list)


def _normalize_header(value) -> str:
    texto = unicodedata.normalize("NFKD", str(value or ""))
    texto = "".join(c for c in texto if not unicodedata.combining(c))
    return " ".join(texto.lower().split())


def _map_columns(headers) -> dict[str, int]:
    normalized = [_normalize_header(h) for h in headers]
    columnas: dict[str, int] = {}
    for clave, fragmento in COLUMNAS.items():
        for index, header in enumerate(normalized):
            if header and fragmento in header:
                columnas[clave] = index
                break
    return columnas


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    cleaned = str(value).strip().replace(" ", "")
    if "," in cleaned and "." in cleaned:
        # El separador que aparece último es el decimal: "1.234,50" o "1,234.50".
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif cleaned.count(",") == 1:
        cleaned = cleaned.replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")
    try:
        return Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None


def _parse_date(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = EXCEL_EPOCH + timedelta(days=float(value))
    else:
        cleaned = str(value).strip()
        parsed = None
        for fmt in ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y", "%Y-%m-%dT%H:%M:%S"):
            try:
                parsed = datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue
        if parsed is None:
            return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _cell(row: tuple, columnas: dict[str, int], clave: str):
    index = columnas.get(clave)
    if index is None or index >= len(row):
        return None
    return row[index]


def _read_rows(workbook, hoja: str | None) -> tuple[str, list[tuple]]:
    if hoja:
        if hoja not in workbook.sheetnames:
            raise UpstreamError(
                f"La hoja '{hoja}' no existe. Hojas disponibles: {', '.join(workbook.sheetnames)}"
            )
        sheet = workbook[hoja]
    else:
        sheet = workbook[workbook.sheetnames[0]]
    return sheet.title, list(sheet.iter_rows(values_only=True))


def parse_rows(rows: list[tuple], hoja: str = "") -> ResultadoParseo:
    """Agrupa las filas en presupuestos.

    Una fila con referencia abre un presupuesto; las siguientes sin referencia
    le agregan líneas. Una referencia sin nombre es un error de fila y sus
    líneas se ignoran. Si una referencia reaparece en otro bloque, el último
    bloque reemplaza al anterior.
    """
    if not rows:
        raise UpstreamError("El archivo Excel está vacío")
    columnas = _map_columns(rows[0])
    faltantes = [c for c in COLUMNAS_REQUERIDAS if c not in columnas]
    if faltantes:
        raise UpstreamError(f"Faltan columnas requeridas: {', '.join(faltantes)}")

    resultado = ResultadoParseo(hoja=hoja)
    por_referencia: dict[str, PresupuestoImportado] = {}
    actual: PresupuestoImportado | None = None
    ignorando = False

    for numero, row in enumerate(rows[1:], start=2):
        if not row or all(value in (None, "") for value in row):
            continue
        resultado.total_filas += 1
        referencia = _text(_cell(row, columnas, "referencia"))

        if referencia:
            nombre = _text(_cell(row, columnas, "nombre"))
            if not nombre:
                resultado.errores.append(
                    {"fila": numero, "error": f"Referencia {referencia} sin nombre de cliente"}
                )
                actual = None
                ignorando = True
                continue
            ignorando = False
            fecha_raw = _cell(row, columnas, "fecha")
            fecha = _parse_date(fecha_raw)
            if fecha_raw not in (None, "") and fecha is None:
                resultado.errores.append(
                    {"fila": numero, "error": f"Fecha inválida para {referencia}: {fecha_raw}"}
                )
            actual = PresupuestoImportado(
                referencia=referencia,
                nombre=nombre,
                cta=_text(_cell(row, columnas, "cta")),
                taller=_text(_cell(row, columnas, "taller")),
                usuario=_text(_cell(row, columnas, "usuario")),
                descripcion_siniestro=_text(_cell(row, columnas, "descripcion_siniestro")),
                fecha=fecha,
                fila=numero,
            )
            if referencia in por_referencia:
                logger.warning("Referencia %s repetida en la fila %s", referencia, numero)
            por_referencia[referencia] = actual
        elif ignorando:
            continue
        elif actual is None:
            resultado.errores.append(
                {"fila": numero, "error": "Línea sin referencia previa"}
            )
            continue

        pieza = _text(_cell(row, columnas, "pieza"))
        if not pieza:
            continue
        cantidad = _parse_decimal(_cell(row, columnas, "cantidad"))
        actual.lineas.append(
            LineaImportada(
                pieza=pieza,
                concepto=_text(_cell(row, columnas, "concepto")),
                cantidad=cantidad if cantidad else Decimal("1"),
                costo=_parse_decimal(_cell(row, columnas, "costo")) or Decimal("0"),
                pvp=_parse_decimal(_cell(row, columnas, "pvp")) or Decimal("0"),
                importe=_parse_decimal(_cell(row, columnas, "importe")) or Decimal("0"),
            )
        )

    sin_lineas = [p for p in por_referencia.values() if not p.lineas]
    for presupuesto in sin_lineas:
        logger.warning("Presupuesto %s sin líneas, se descarta", presupuesto.referencia)
    resultado.presupuestos = [p for p in por_referencia.values() if p.lineas]
    return resultado


def _load_workbook(source):
    try:
        return openpyxl.load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise UpstreamError(f"No se pudo leer el archivo Excel: {exc}")


def parse_excel_bytes(data: bytes, hoja: str | None = None) -> ResultadoParseo:
    workbook = _load_workbook(BytesIO(data))
    try:
        titulo, rows = _read_rows(workbook, hoja)
    finally:
        workbook.close()
    return parse_rows(rows, hoja=titulo)


def parse_excel_path(path: str, hoja: str | None = None) -> ResultadoParseo:
    if not path or not os.path.isfile(path):
        raise UpstreamError(f"Archivo Excel no encontrado: {path}")
    workbook = _load_workbook(path)
    try:
        titulo, rows = _read_rows(workbook, hoja)
    finally:
        workbook.close()
    return parse_rows(rows, hoja=titulo)
