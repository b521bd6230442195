from django.db import models


def normalizar_sku(sku: str | None) -> str:
    return (sku or "").strip().upper()


class Aceite(models.Model):
    """Referencia de aceite: litros que contiene un tambor de ese SKU."""

    sku = models.CharField(max_length=64, unique=True)
    litros_por_tambor = models.DecimalField(max_digits=8, decimal_places=2)
    usuario_creacion = models.CharField(max_length=120, blank=True)
    usuario_actualizacion = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sku"]

    def save(self, *args, **kwargs):
        self.sku = normalizar_sku(self.sku)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.sku} ({self.litros_por_tambor} L)"


class Taller(models.Model):
    codigo = models.CharField(max_length=32, unique=True)
    nombre = models.CharField(max_length=255)
    activo = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["nombre", "codigo"]

    def __str__(self) -> str:
        return f"{self.codigo} - {self.nombre}"
