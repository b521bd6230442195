from django.conf import settings
from django.db import models
from django.utils import timezone

OR_SINIESTRO_MAX = 15


class Presupuesto(models.Model):
    class Estado(models.TextChoices):
        ABIERTO = "Abierto", "Abierto"
        ACEPTADO = "Aceptado", "Aceptado"
        RECHAZADO = "Rechazado", "Rechazado"

    class Subestado(models.TextChoices):
        EN_ESPERA = "En espera", "En espera"
        PENDIENTE = "Pendiente", "Pendiente"

    class MotivoRechazo(models.TextChoices):
        NO_RESPONDE = "No responde", "No responde"
        PRECIO_ELEVADO = "Precio elevado", "Precio elevado"
        TIEMPO_DEMORA = "Tiempo de demora", "Tiempo de demora"

    referencia = models.CharField(max_length=64, unique=True)
    cta = models.CharField(max_length=64, blank=True)
    nombre = models.CharField(max_length=255)
    taller = models.CharField(max_length=32, blank=True, db_index=True)
    usuario = models.CharField(max_length=120, blank=True)
    descripcion_siniestro = models.CharField(max_length=255, blank=True)
    or_siniestro = models.CharField(max_length=OR_SINIESTRO_MAX, blank=True)
    estado = models.CharField(
        max_length=20,
        choices=Estado.choices,
        default=Estado.ABIERTO,
        db_index=True,
    )
    fecha_carga = models.DateTimeField(default=timezone.now)
    ultima_actualizacion = models.DateTimeField(auto_now=True)

    creado_por = models.CharField(max_length=120, blank=True)
    fecha_creacion = models.DateTimeField(null=True, blank=True)
    modificado_por = models.CharField(max_length=120, blank=True)
    fecha_modificacion = models.DateTimeField(null=True, blank=True)
    estado_cambiado_por = models.CharField(max_length=120, blank=True)
    fecha_cambio_estado = models.DateTimeField(null=True, blank=True)
    estado_anterior = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ["-fecha_carga"]

    def __str__(self) -> str:
        return f"{self.referencia} ({self.estado})"

    @property
    def fecha_referencia(self):
        return self.fecha_creacion or self.fecha_carga


def primera_linea(presupuesto: Presupuesto):
    lineas = list(presupuesto.lineas.all())
    return lineas[0] if lineas else None


def pieza_principal(presupuesto: Presupuesto) -> str:
    linea = primera_linea(presupuesto)
    return linea.pieza if linea else ""


def concepto_principal(presupuesto: Presupuesto) -> str:
    linea = primera_linea(presupuesto)
    return linea.concepto if linea else ""


class LineaPresupuesto(models.Model):
    presupuesto = models.ForeignKey(
        Presupuesto,
        on_delete=models.CASCADE,
        related_name="lineas",
    )
    orden = models.PositiveIntegerField(default=0)
    pieza = models.CharField(max_length=120)
    concepto = models.CharField(max_length=255, blank=True)
    cantidad = models.DecimalField(max_digits=12, decimal_places=3, default=1)
    costo = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    pvp = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    importe = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    class Meta:
        ordering = ["orden", "id"]

    def __str__(self) -> str:
        return f"{self.pieza} x{self.cantidad}"


class Comentario(models.Model):
    presupuesto = models.ForeignKey(
        Presupuesto,
        on_delete=models.CASCADE,
        related_name="comentarios",
    )
    texto = models.TextField()
    usuario = models.CharField(max_length=120)
    fecha = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["fecha", "id"]

    def __str__(self) -> str:
        return f"Comentario {self.id} ({self.usuario})"


class Adjunto(models.Model):
    presupuesto = models.ForeignKey(
        Presupuesto,
        on_delete=models.CASCADE,
        related_name="adjuntos",
    )
    nombre_original = models.CharField(max_length=255)
    nombre_archivo = models.CharField(max_length=255, unique=True)
    tamanio = models.PositiveBigIntegerField()
    tipo = models.CharField(max_length=120, blank=True)
    fecha_subida = models.DateTimeField(default=timezone.now)
    usuario = models.CharField(max_length=120)

    class Meta:
        ordering = ["fecha_subida", "id"]

    def __str__(self) -> str:
        return self.nombre_original


class Importacion(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        RUNNING = "RUNNING", "Running"
        DONE = "DONE", "Done"
        FAILED = "FAILED", "Failed"

    class Origen(models.TextChoices):
        UPLOAD = "UPLOAD", "Upload"
        SCHEDULER = "SCHEDULER", "Scheduler"

    origen = models.CharField(
        max_length=20,
        choices=Origen.choices,
        default=Origen.UPLOAD,
    )
    usuario = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    nombre_archivo = models.CharField(max_length=255, blank=True)
    s3_key_excel = models.CharField(max_length=255, blank=True)
    ruta_excel = models.CharField(max_length=500, blank=True)
    hoja = models.CharField(max_length=120, blank=True)
    total_filas = models.PositiveIntegerField(default=0)
    presupuestos_nuevos = models.PositiveIntegerField(default=0)
    presupuestos_existentes = models.PositiveIntegerField(default=0)
    presupuestos_actualizados = models.PositiveIntegerField(default=0)
    error_count = models.PositiveIntegerField(default=0)
    error_summary = models.TextField(blank=True)
    log_json = models.JSONField(null=True, blank=True)

    def __str__(self) -> str:
        return f"Importacion {self.id} ({self.status})"


def _intervalo_por_defecto() -> int:
    return settings.SCHEDULER_INTERVALO_MINUTOS


def _ruta_excel_por_defecto() -> str:
    return settings.EXCEL_PATH


def _hoja_excel_por_defecto() -> str:
    return settings.EXCEL_SHEET


class ConfiguracionScheduler(models.Model):
    enabled = models.BooleanField(default=True)
    running = models.BooleanField(default=False)
    intervalo_minutos = models.PositiveIntegerField(default=_intervalo_por_defecto)
    ruta_excel = models.CharField(max_length=500, blank=True, default=_ruta_excel_por_defecto)
    hoja_excel = models.CharField(max_length=120, blank=True, default=_hoja_excel_por_defecto)
    ultima_ejecucion = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "configuración del scheduler"
        verbose_name_plural = "configuración del scheduler"

    def __str__(self) -> str:
        estado = "activo" if self.running else "detenido"
        return f"Scheduler {estado} cada {self.intervalo_minutos} min"


class SchedulerLog(models.Model):
    class Tipo(models.TextChoices):
        INFO = "info", "Info"
        SUCCESS = "success", "Success"
        WARNING = "warning", "Warning"
        ERROR = "error", "Error"

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    tipo = models.CharField(max_length=10, choices=Tipo.choices, default=Tipo.INFO)
    mensaje = models.TextField()
    data = models.JSONField(null=True, blank=True)

    class Meta:
        ordering = ["-timestamp", "-id"]

    def __str__(self) -> str:
        return f"[{self.tipo}] {self.mensaje}"
