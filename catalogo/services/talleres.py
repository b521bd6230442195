from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError, transaction

from catalogo.models import Taller
from core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def mapa_nombres_talleres() -> dict[str, str]:
    """Código -> nombre visible de todos los talleres (activos o no).

    Si la tabla no se puede leer se devuelve un mapa vacío y los agregados usan
    el código crudo como nombre.
    """
    try:
        return dict(Taller.objects.values_list("codigo", "nombre"))
    except DatabaseError:
        logger.warning("No se pudo leer la tabla de talleres", exc_info=True)
        return {}


def obtener_taller(codigo: str) -> Taller:
    try:
        return Taller.objects.get(codigo=codigo)
    except Taller.DoesNotExist:
        raise NotFoundError(f"Taller {codigo} no encontrado")


def _texto(datos: dict, campo: str) -> str:
    valor = datos.get(campo)
    return valor.strip() if isinstance(valor, str) else ""


def crear_taller(datos: dict) -> Taller:
    codigo = _texto(datos, "codigo")
    nombre = _texto(datos, "nombre")
    if not codigo or not nombre:
        raise ValidationError("Código y nombre son requeridos")
    if Taller.objects.filter(codigo=codigo).exists():
        raise ConflictError(f"Ya existe un taller con código {codigo}")
    activo = datos.get("activo", True)
    if not isinstance(activo, bool):
        raise ValidationError("activo debe ser booleano")
    try:
        with transaction.atomic():
            return Taller.objects.create(codigo=codigo, nombre=nombre, activo=activo)
    except IntegrityError:
        raise ConflictError(f"Ya existe un taller con código {codigo}")


def actualizar_taller(codigo: str, datos: dict) -> Taller:
    taller = obtener_taller(codigo)
    if "nombre" in datos:
        nombre = _texto(datos, "nombre")
        if not nombre:
            raise ValidationError("El nombre no puede estar vacío")
        taller.nombre = nombre
    if "activo" in datos:
        if not isinstance(datos["activo"], bool):
            raise ValidationError("activo debe ser booleano")
        taller.activo = datos["activo"]
    taller.save()
    return taller


def desactivar_taller(codigo: str) -> Taller:
    taller = obtener_taller(codigo)
    taller.activo = False
    taller.save(update_fields=["activo", "updated_at"])
    return taller


def serializar_taller(taller: Taller) -> dict:
    return {
        "id": taller.id,
        "codigo": taller.codigo,
        "nombre": taller.nombre,
        "activo": taller.activo,
        "created_at": taller.created_at,
        "updated_at": taller.updated_at,
    }


def codigos_talleres_activos() -> set[str]:
    try:
        return set(Taller.objects.filter(activo=True).values_list("codigo", flat=True))
    except DatabaseError:
        logger.warning("No se pudo leer la tabla de talleres", exc_info=True)
        return set()
