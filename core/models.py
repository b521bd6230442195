from django.conf import settings
from django.db import models


def _directorio_adjuntos_por_defecto() -> str:
    return settings.ADJUNTOS_DIR


class ConfiguracionGeneral(models.Model):
    """Fila única (pk=1) con los parámetros generales editables desde la UI."""

    DIAS_PARA_PENDIENTE_DEFAULT = 2

    dias_para_pendiente = models.PositiveSmallIntegerField(
        default=DIAS_PARA_PENDIENTE_DEFAULT
    )
    directorio_adjuntos = models.CharField(
        max_length=500,
        default=_directorio_adjuntos_por_defecto,
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "configuración general"
        verbose_name_plural = "configuración general"

    def __str__(self) -> str:
        return f"Configuración general ({self.dias_para_pendiente} días)"
