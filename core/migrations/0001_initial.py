import core.models
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ConfiguracionGeneral",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("dias_para_pendiente", models.PositiveSmallIntegerField(default=2)),
                (
                    "directorio_adjuntos",
                    models.CharField(
                        default=core.models._directorio_adjuntos_por_defecto,
                        max_length=500,
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "configuración general",
                "verbose_name_plural": "configuración general",
            },
        ),
    ]
