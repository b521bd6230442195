import django.db.models.deletion
import django.utils.timezone
import presupuestos.models
from django.db import migrations, models


def _id_field():
    return models.BigAutoField(
        auto_created=True,
        primary_key=True,
        serialize=False,
        verbose_name="ID",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Presupuesto",
            fields=[
                ("id", _id_field()),
                ("referencia", models.CharField(max_length=64, unique=True)),
                ("cta", models.CharField(blank=True, max_length=64)),
                ("nombre", models.CharField(max_length=255)),
                ("taller", models.CharField(blank=True, db_index=True, max_length=32)),
                ("usuario", models.CharField(blank=True, max_length=120)),
                ("descripcion_siniestro", models.CharField(blank=True, max_length=255)),
                ("or_siniestro", models.CharField(blank=True, max_length=15)),
                (
                    "estado",
                    models.CharField(
                        choices=[
                            ("Abierto", "Abierto"),
                            ("Aceptado", "Aceptado"),
                            ("Rechazado", "Rechazado"),
                        ],
                        db_index=True,
                        default="Abierto",
                        max_length=20,
                    ),
                ),
                ("fecha_carga", models.DateTimeField(default=django.utils.timezone.now)),
                ("ultima_actualizacion", models.DateTimeField(auto_now=True)),
                ("creado_por", models.CharField(blank=True, max_length=120)),
                ("fecha_creacion", models.DateTimeField(blank=True, null=True)),
                ("modificado_por", models.CharField(blank=True, max_length=120)),
                ("fecha_modificacion", models.DateTimeField(blank=True, null=True)),
                ("estado_cambiado_por", models.CharField(blank=True, max_length=120)),
                ("fecha_cambio_estado", models.DateTimeField(blank=True, null=True)),
                ("estado_anterior", models.CharField(blank=True, max_length=20)),
            ],
            options={
                "ordering": ["-fecha_carga"],
            },
        ),
        migrations.CreateModel(
            name="LineaPresupuesto",
            fields=[
                ("id", _id_field()),
                ("orden", models.PositiveIntegerField(default=0)),
                ("pieza", models.CharField(max_length=120)),
                ("concepto", models.CharField(blank=True, max_length=255)),
                (
                    "cantidad",
                    models.DecimalField(decimal_places=3, default=1, max_digits=12),
                ),
                ("costo", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("pvp", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                (
                    "importe",
                    models.DecimalField(decimal_places=2, default=0, max_digits=14),
                ),
                (
                    "presupuesto",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lineas",
                        to="presupuestos.presupuesto",
                    ),
                ),
            ],
            options={
                "ordering": ["orden", "id"],
            },
        ),
        migrations.CreateModel(
            name="Comentario",
            fields=[
                ("id", _id_field()),
                ("texto", models.TextField()),
                ("usuario", models.CharField(max_length=120)),
                ("fecha", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "presupuesto",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comentarios",
                        to="presupuestos.presupuesto",
                    ),
                ),
            ],
            options={
                "ordering": ["fecha", "id"],
            },
        ),
        migrations.CreateModel(
            name="Adjunto",
            fields=[
                ("id", _id_field()),
                ("nombre_original", models.CharField(max_length=255)),
                ("nombre_archivo", models.CharField(max_length=255, unique=True)),
                ("tamanio", models.PositiveBigIntegerField()),
                ("tipo", models.CharField(blank=True, max_length=120)),
                (
                    "fecha_subida",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("usuario", models.CharField(max_length=120)),
                (
                    "presupuesto",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="adjuntos",
                        to="presupuestos.presupuesto",
                    ),
                ),
            ],
            options={
                "ordering": ["fecha_subida", "id"],
            },
        ),
        migrations.CreateModel(
            name="Importacion",
            fields=[
                ("id", _id_field()),
                (
                    "origen",
                    models.CharField(
                        choices=[("UPLOAD", "Upload"), ("SCHEDULER", "Scheduler")],
                        default="UPLOAD",
                        max_length=20,
                    ),
                ),
                ("usuario", models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("RUNNING", "Running"),
                            ("DONE", "Done"),
                            ("FAILED", "Failed"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("nombre_archivo", models.CharField(blank=True, max_length=255)),
                ("s3_key_excel", models.CharField(blank=True, max_length=255)),
                ("ruta_excel", models.CharField(blank=True, max_length=500)),
                ("hoja", models.CharField(blank=True, max_length=120)),
                ("total_filas", models.PositiveIntegerField(default=0)),
                ("presupuestos_nuevos", models.PositiveIntegerField(default=0)),
                ("presupuestos_existentes", models.PositiveIntegerField(default=0)),
                ("presupuestos_actualizados", models.PositiveIntegerField(default=0)),
                ("error_count", models.PositiveIntegerField(default=0)),
                ("error_summary", models.TextField(blank=True)),
                ("log_json", models.JSONField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="ConfiguracionScheduler",
            fields=[
                ("id", _id_field()),
                ("enabled", models.BooleanField(default=True)),
                ("running", models.BooleanField(default=False)),
                (
                    "intervalo_minutos",
                    models.PositiveIntegerField(
                        default=presupuestos.models._intervalo_por_defecto
                    ),
                ),
                (
                    "ruta_excel",
                    models.CharField(
                        blank=True,
                        default=presupuestos.models._ruta_excel_por_defecto,
                        max_length=500,
                    ),
                ),
                (
                    "hoja_excel",
                    models.CharField(
                        blank=True,
                        default=presupuestos.models._hoja_excel_por_defecto,
                        max_length=120,
                    ),
                ),
                ("ultima_ejecucion", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "configuración del scheduler",
                "verbose_name_plural": "configuración del scheduler",
            },
        ),
        migrations.CreateModel(
            name="SchedulerLog",
            fields=[
                ("id", _id_field()),
                (
                    "timestamp",
                    models.DateTimeField(
                        db_index=True, default=django.utils.timezone.now
                    ),
                ),
                (
                    "tipo",
                    models.CharField(
                        choices=[
                            ("info", "Info"),
                            ("success", "Success"),
                            ("warning", "Warning"),
                            ("error", "Error"),
                        ],
                        default="info",
                        max_length=10,
                    ),
                ),
                ("mensaje", models.TextField()),
                ("data", models.JSONField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
            },
        ),
    ]
