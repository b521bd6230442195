from django.contrib import admin

from .models import ConfiguracionGeneral


@admin.register(ConfiguracionGeneral)
class ConfiguracionGeneralAdmin(admin.ModelAdmin):
    list_display = ("id", "dias_para_pendiente", "directorio_adjuntos", "updated_at")
