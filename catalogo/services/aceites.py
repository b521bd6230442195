from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable

from django.db import IntegrityError, transaction

from catalogo.models import Aceite, normalizar_sku
from core.exceptions import ConflictError, NotFoundError, ValidationError

LITROS_MAX = Decimal("1000")
USUARIO_SISTEMA = "sistema"


class CatalogoAceites:
    """Índice en memoria de las referencias de aceite, consultado por SKU."""

    def __init__(self, aceites: Iterable[Aceite] = ()):
        self._por_sku = {normalizar_sku(aceite.sku): aceite for aceite in aceites}

    @classmethod
    def cargar(cls) -> "CatalogoAceites":
        return cls(Aceite.objects.all())

    def find_by_sku(self, sku: str | None) -> Aceite | None:
        if not sku:
            return None
        return self._por_sku.get(normalizar_sku(sku))

    def __len__(self) -> int:
        return len(self._por_sku)


def _validar_litros(valor) -> Decimal:
    if valor is None or valor == "" or isinstance(valor, bool):
        raise ValidationError("Los litros por tambor son obligatorios")
    try:
        litros = Decimal(str(valor))
    except (InvalidOperation, ValueError):
        raise ValidationError("Los litros por tambor deben ser un número")
    if not litros.is_finite() or litros <= 0:
        raise ValidationError("Los litros por tambor deben ser mayor a 0")
    if litros > LITROS_MAX:
        raise ValidationError("Los litros por tambor no pueden exceder 1000")
    return litros


def _validar_sku(valor) -> str:
    sku = normalizar_sku(valor if isinstance(valor, str) else None)
    if not sku:
        raise ValidationError("El SKU es obligatorio")
    if len(sku) > Aceite._meta.get_field("sku").max_length:
        raise ValidationError("El SKU es demasiado largo")
    return sku


def obtener_aceite(aceite_id: int) -> Aceite:
    try:
        return Aceite.objects.get(id=aceite_id)
    except Aceite.DoesNotExist:
        raise NotFoundError("Aceite no encontrado")


def buscar_por_sku(sku: str) -> Aceite:
    aceite = Aceite.objects.filter(sku=normalizar_sku(sku)).first()
    if aceite is None:
        raise NotFoundError(f"No existe aceite con SKU {normalizar_sku(sku)}")
    return aceite


def crear_aceite(datos: dict) -> Aceite:
    sku = _validar_sku(datos.get("sku"))
    litros = _validar_litros(datos.get("litros_por_tambor"))
    usuario = (datos.get("usuario") or "").strip() or USUARIO_SISTEMA
    if Aceite.objects.filter(sku=sku).exists():
        raise ConflictError(f"Ya existe un aceite con SKU {sku}")
    try:
        with transaction.atomic():
            return Aceite.objects.create(
                sku=sku,
                litros_por_tambor=litros,
                usuario_creacion=usuario,
                usuario_actualizacion=usuario,
            )
    except IntegrityError:
        raise ConflictError(f"Ya existe un aceite con SKU {sku}")


def actualizar_aceite(aceite_id: int, datos: dict) -> Aceite:
    aceite = obtener_aceite(aceite_id)
    if "sku" in datos:
        sku = _validar_sku(datos.get("sku"))
        if Aceite.objects.filter(sku=sku).exclude(id=aceite.id).exists():
            raise ConflictError(f"Ya existe otro aceite con SKU {sku}")
        aceite.sku = sku
    if "litros_por_tambor" in datos:
        aceite.litros_por_tambor = _validar_litros(datos.get("litros_por_tambor"))
    aceite.usuario_actualizacion = (
        (datos.get("usuario") or "").strip() or USUARIO_SISTEMA
    )
    try:
        with transaction.atomic():
            aceite.save()
    except IntegrityError:
        raise ConflictError(f"Ya existe otro aceite con SKU {aceite.sku}")
    return aceite


def eliminar_aceite(aceite_id: int) -> None:
    obtener_aceite(aceite_id).delete()


def serializar_aceite(aceite: Aceite) -> dict:
    return {
        "id": aceite.id,
        "sku": aceite.sku,
        "litros_por_tambor": aceite.litros_por_tambor,
        "usuario_creacion": aceite.usuario_creacion,
        "usuario_actualizacion": aceite.usuario_actualizacion,
        "created_at": aceite.created_at,
        "updated_at": aceite.updated_at,
    }
