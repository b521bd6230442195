from django.urls import path

from catalogo import views

urlpatterns = [
    path("api/aceites", views.aceites, name="aceites"),
    path("api/aceites/search/<str:sku>", views.aceite_search, name="aceites-search"),
    path("api/aceites/<int:aceite_id>", views.aceite_detail, name="aceites-detail"),
    path("api/talleres", views.talleres, name="talleres"),
    path("api/talleres/activos", views.talleres_activos, name="talleres-activos"),
    path(
        "api/talleres/stats/codigos-unicos",
        views.talleres_codigos_unicos,
        name="talleres-codigos-unicos",
    ),
    path("api/talleres/<str:codigo>", views.taller_detail, name="talleres-detail"),
]
