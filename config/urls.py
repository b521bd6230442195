from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("", include("core.urls")),
    path("", include("catalogo.urls")),
    path("", include("presupuestos.urls")),
    path("admin/", admin.site.urls),
]
