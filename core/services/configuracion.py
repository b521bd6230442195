from __future__ import annotations

from django.conf import settings

from core.exceptions import ValidationError
from core.models import ConfiguracionGeneral

DIAS_MIN = 1
DIAS_MAX = 30


def obtener_configuracion() -> ConfiguracionGeneral:
    configuracion, _ = ConfiguracionGeneral.objects.get_or_create(
        pk=1,
        defaults={
            "dias_para_pendiente": ConfiguracionGeneral.DIAS_PARA_PENDIENTE_DEFAULT,
            "directorio_adjuntos": settings.ADJUNTOS_DIR,
        },
    )
    return configuracion


def actualizar_configuracion(cambios: dict) -> ConfiguracionGeneral:
    configuracion = obtener_configuracion()
    update_fields: list[str] = []

    if "dias_para_pendiente" in cambios:
        dias = cambios["dias_para_pendiente"]
        if isinstance(dias, bool) or not isinstance(dias, int):
            raise ValidationError("dias_para_pendiente debe ser un número entero")
        if dias < DIAS_MIN or dias > DIAS_MAX:
            raise ValidationError(
                f"dias_para_pendiente debe estar entre {DIAS_MIN} y {DIAS_MAX}"
            )
        configuracion.dias_para_pendiente = dias
        update_fields.append("dias_para_pendiente")

    if "directorio_adjuntos" in cambios:
        directorio = cambios["directorio_adjuntos"]
        if not isinstance(directorio, str) or not directorio.strip():
            raise ValidationError("directorio_adjuntos no puede estar vacío")
        configuracion.directorio_adjuntos = directorio.strip()
        update_fields.append("directorio_adjuntos")

    if update_fields:
        configuracion.save(update_fields=[*update_fields, "updated_at"])
    return configuracion


def serializar_configuracion(configuracion: ConfiguracionGeneral) -> dict:
    return {
        "dias_para_pendiente": configuracion.dias_para_pendiente,
        "directorio_adjuntos": configuracion.directorio_adjuntos,
        "updated_at": configuracion.updated_at,
    }
