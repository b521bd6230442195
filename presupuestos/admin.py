from django.contrib import admin

from .models import (
    Adjunto,
    Comentario,
    ConfiguracionScheduler,
    Importacion,
    LineaPresupuesto,
    Presupuesto,
    SchedulerLog,
)


class LineaPresupuestoInline(admin.TabularInline):
    model = LineaPresupuesto
    extra = 0


class ComentarioInline(admin.TabularInline):
    model = Comentario
    extra = 0


class AdjuntoInline(admin.TabularInline):
    model = Adjunto
    extra = 0
    readonly_fields = ("nombre_archivo", "tamanio", "tipo", "fecha_subida")


@admin.register(Presupuesto)
class PresupuestoAdmin(admin.ModelAdmin):
    list_display = (
        "referencia",
        "nombre",
        "taller",
        "estado",
        "or_siniestro",
        "fecha_creacion",
        "fecha_carga",
    )
    list_filter = ("estado", "taller")
    search_fields = ("referencia", "nombre", "descripcion_siniestro")
    inlines = (LineaPresupuestoInline, ComentarioInline, AdjuntoInline)


@admin.register(Importacion)
class ImportacionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "status",
        "origen",
        "created_at",
        "started_at",
        "finished_at",
        "total_filas",
        "presupuestos_nuevos",
        "presupuestos_existentes",
        "error_count",
    )
    list_filter = ("status", "origen", "created_at")
    search_fields = ("id", "nombre_archivo", "error_summary")


@admin.register(ConfiguracionScheduler)
class ConfiguracionSchedulerAdmin(admin.ModelAdmin):
    list_display = ("id", "enabled", "running", "intervalo_minutos", "ultima_ejecucion")


@admin.register(SchedulerLog)
class SchedulerLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "tipo", "mensaje")
    list_filter = ("tipo",)
