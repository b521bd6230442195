from django.contrib import admin

from .models import Aceite, Taller


@admin.register(Aceite)
class AceiteAdmin(admin.ModelAdmin):
    list_display = ("sku", "litros_por_tambor", "usuario_actualizacion", "updated_at")
    search_fields = ("sku",)


@admin.register(Taller)
class TallerAdmin(admin.ModelAdmin):
    list_display = ("codigo", "nombre", "activo", "updated_at")
    search_fields = ("codigo", "nombre")
    list_filter = ("activo",)
