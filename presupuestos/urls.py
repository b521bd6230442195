from django.urls import include, path

from presupuestos import views

stats_urlpatterns = [
    path("estadisticas", views.stats_estadisticas, name="stats-estadisticas"),
    path("por-estado", views.stats_por_estado, name="stats-por-estado"),
    path("por-tipo-siniestro", views.stats_por_tipo_siniestro, name="stats-por-tipo-siniestro"),
    path("por-taller", views.stats_por_taller, name="stats-por-taller"),
    path("meses-disponibles", views.stats_meses_disponibles, name="stats-meses-disponibles"),
    path("tipos-siniestro", views.stats_tipos_siniestro, name="stats-tipos-siniestro"),
    path("talleres", views.stats_talleres, name="stats-talleres"),
    path(
        "aceptados-por-taller",
        views.stats_aceptados_por_taller,
        name="stats-aceptados-por-taller",
    ),
    path(
        "rechazados-por-taller",
        views.stats_rechazados_por_taller,
        name="stats-rechazados-por-taller",
    ),
    path(
        "abiertos-pendientes-por-taller",
        views.stats_abiertos_pendientes_por_taller,
        name="stats-abiertos-pendientes-por-taller",
    ),
    path(
        "conversion-por-taller",
        views.stats_conversion_por_taller,
        name="stats-conversion-por-taller",
    ),
    path(
        "mensuales-por-taller",
        views.stats_mensuales_por_taller,
        name="stats-mensuales-por-taller",
    ),
    path("aceptados-con-ors", views.stats_aceptados_con_ors, name="stats-aceptados-con-ors"),
    path("ors-por-taller", views.stats_ors_por_taller, name="stats-ors-por-taller"),
    path(
        "resumen-por-taller",
        views.stats_resumen_por_taller,
        name="stats-resumen-por-taller",
    ),
]

urlpatterns = [
    path("api/presupuestos", views.presupuesto_list, name="presupuestos"),
    path("api/presupuestos/stats/", include(stats_urlpatterns)),
    path(
        "api/presupuestos/<str:referencia>",
        views.presupuesto_detail,
        name="presupuestos-detail",
    ),
    path(
        "api/presupuestos/<str:referencia>/estado",
        views.presupuesto_estado,
        name="presupuestos-estado",
    ),
    path(
        "api/presupuestos/<str:referencia>/or-siniestro",
        views.presupuesto_or_siniestro,
        name="presupuestos-or-siniestro",
    ),
    path(
        "api/presupuestos/<str:referencia>/comentarios",
        views.presupuesto_comentarios,
        name="presupuestos-comentarios",
    ),
    path(
        "api/presupuestos/<str:referencia>/comentarios/<int:comentario_id>",
        views.presupuesto_comentario_detail,
        name="presupuestos-comentario-detail",
    ),
    path(
        "api/presupuestos/<str:referencia>/adjuntos",
        views.presupuesto_adjuntos,
        name="presupuestos-adjuntos",
    ),
    path(
        "api/presupuestos/<str:referencia>/adjuntos/<str:nombre_archivo>",
        views.presupuesto_adjunto_detail,
        name="presupuestos-adjunto-detail",
    ),
    path(
        "api/presupuestos/<str:referencia>/calculo-aceites",
        views.presupuesto_calculo_aceites,
        name="presupuestos-calculo-aceites",
    ),
    path("api/upload/excel", views.upload_excel_view, name="upload-excel"),
    path("api/upload/from-config", views.upload_from_config, name="upload-from-config"),
    path("api/importaciones", views.importacion_list, name="importaciones"),
    path(
        "api/importaciones/<int:importacion_id>",
        views.importacion_detail,
        name="importaciones-detail",
    ),
    path("api/scheduler/status", views.scheduler_status, name="scheduler-status"),
    path("api/scheduler/start", views.scheduler_start, name="scheduler-start"),
    path("api/scheduler/stop", views.scheduler_stop, name="scheduler-stop"),
    path("api/scheduler/config", views.scheduler_config, name="scheduler-config"),
    path("api/scheduler/execute", views.scheduler_execute, name="scheduler-execute"),
    path("api/scheduler/logs", views.scheduler_logs, name="scheduler-logs"),
]
