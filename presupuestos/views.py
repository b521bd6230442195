from django.http import FileResponse
from django.utils import timezone

from core.api import (
    api_view,
    json_response,
    parse_json,
    query_int,
    rango_fechas,
)
from core.exceptions import NotFoundError, UpstreamError, ValidationError
from presupuestos.forms import ExcelUploadForm
from presupuestos.models import Importacion
from presupuestos.services import estadisticas
from presupuestos.services.adjuntos import abrir_adjunto, eliminar_adjunto, subir_adjunto
from presupuestos.services.ciclo import (
    actualizar_or_siniestro,
    actualizar_presupuesto,
    agregar_comentario,
    cambiar_estado,
    eliminar_comentario,
    eliminar_presupuesto,
)
from presupuestos.services.consultas import (
    LIMITE_MAXIMO,
    LIMITE_POR_DEFECTO,
    FiltrosListado,
    calculo_aceites,
    detalle_presupuesto,
    listar_presupuestos,
    serializar_adjunto,
    serializar_comentario,
)
from presupuestos.services.enriquecimiento import Enriquecedor
from presupuestos.services.importacion import importar_desde_ruta, resumen_importacion
from presupuestos.services.s3_client import ensure_bucket, excel_key, upload_excel
from presupuestos.services.scheduler import SchedulerService
from presupuestos.tasks import process_excel_import


def _form_errors(form) -> str:
    return "; ".join(
        str(error) for errors in form.errors.values() for error in errors
    )


# Presupuestos


@api_view(["GET"])
def presupuesto_list(request):
    fecha_desde, fecha_hasta = rango_fechas(request)
    talleres = tuple(
        codigo.strip()
        for codigo in request.GET.get("taller", "").split(",")
        if codigo.strip()
    )
    filtros = FiltrosListado(
        page=query_int(request, "page", 1, minimum=1),
        limit=query_int(
            request, "limit", LIMITE_POR_DEFECTO, minimum=1, maximum=LIMITE_MAXIMO
        ),
        search=request.GET.get("search", "").strip(),
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        tipo_siniestro=request.GET.get("tipo_siniestro", "").strip(),
        talleres=talleres,
        estado=request.GET.get("estado", "").strip(),
        subestado=request.GET.get("subestado", "").strip(),
        sort_by=request.GET.get("sort_by", "fecha").strip() or "fecha",
        sort_order=request.GET.get("sort_order", "desc").strip() or "desc",
    )
    return json_response(listar_presupuestos(filtros, Enriquecedor.desde_bd()))


@api_view(["GET", "PUT", "DELETE"])
def presupuesto_detail(request, referencia: str):
    if request.method == "PUT":
        actualizar_presupuesto(referencia, parse_json(request))
    elif request.method == "DELETE":
        eliminar_presupuesto(referencia)
        return json_response({"detail": "Presupuesto eliminado correctamente"})
    return json_response(detalle_presupuesto(referencia, Enriquecedor.desde_bd()))


@api_view(["PUT"])
def presupuesto_estado(request, referencia: str):
    payload = parse_json(request)
    cambiar_estado(
        referencia,
        payload.get("estado"),
        payload.get("usuario"),
        motivo_rechazo=payload.get("motivo_rechazo"),
        detalles=payload.get("detalles"),
    )
    return json_response(detalle_presupuesto(referencia, Enriquecedor.desde_bd()))


@api_view(["PUT"])
def presupuesto_or_siniestro(request, referencia: str):
    payload = parse_json(request)
    presupuesto = actualizar_or_siniestro(
        referencia, payload.get("or_siniestro"), payload.get("usuario")
    )
    return json_response(
        {"referencia": presupuesto.referencia, "or_siniestro": presupuesto.or_siniestro}
    )


@api_view(["POST"])
def presupuesto_comentarios(request, referencia: str):
    payload = parse_json(request)
    comentario = agregar_comentario(referencia, payload.get("texto"), payload.get("usuario"))
    return json_response(serializar_comentario(comentario), status=201)


@api_view(["DELETE"])
def presupuesto_comentario_detail(_request, referencia: str, comentario_id: int):
    eliminar_comentario(referencia, comentario_id)
    return json_response({"detail": "Comentario eliminado correctamente"})


@api_view(["POST"])
def presupuesto_adjuntos(request, referencia: str):
    adjunto = subir_adjunto(
        referencia,
        request.FILES.get("archivo"),
        request.POST.get("usuario"),
    )
    return json_response(serializar_adjunto(adjunto), status=201)


@api_view(["GET", "DELETE"])
def presupuesto_adjunto_detail(request, referencia: str, nombre_archivo: str):
    if request.method == "DELETE":
        eliminar_adjunto(referencia, nombre_archivo)
        return json_response({"detail": "Archivo eliminado correctamente"})
    adjunto, handle = abrir_adjunto(referencia, nombre_archivo)
    response = FileResponse(
        handle,
        as_attachment=True,
        filename=adjunto.nombre_original,
    )
    if adjunto.tipo:
        response["Content-Type"] = adjunto.tipo
    return response


@api_view(["GET"])
def presupuesto_calculo_aceites(_request, referencia: str):
    return json_response(calculo_aceites(referencia, Enriquecedor.desde_bd()))


# Estadísticas


@api_view(["GET"])
def stats_estadisticas(request):
    return json_response(estadisticas.estadisticas_generales(*rango_fechas(request)))


@api_view(["GET"])
def stats_por_estado(request):
    return json_response(estadisticas.por_estado(*rango_fechas(request)))


@api_view(["GET"])
def stats_por_tipo_siniestro(request):
    return json_response(estadisticas.por_tipo_siniestro(*rango_fechas(request)))


@api_view(["GET"])
def stats_por_taller(request):
    return json_response(estadisticas.por_taller(*rango_fechas(request)))


@api_view(["GET"])
def stats_meses_disponibles(request):
    return json_response(estadisticas.meses_disponibles(*rango_fechas(request)))


@api_view(["GET"])
def stats_tipos_siniestro(_request):
    return json_response(estadisticas.tipos_siniestro())


@api_view(["GET"])
def stats_talleres(_request):
    return json_response(estadisticas.codigos_taller())


@api_view(["GET"])
def stats_aceptados_por_taller(request):
    return json_response(estadisticas.aceptados_por_taller(*rango_fechas(request)))


@api_view(["GET"])
def stats_rechazados_por_taller(request):
    return json_response(estadisticas.rechazados_por_taller(*rango_fechas(request)))


@api_view(["GET"])
def stats_abiertos_pendientes_por_taller(request):
    return json_response(
        estadisticas.abiertos_pendientes_por_taller(*rango_fechas(request))
    )


@api_view(["GET"])
def stats_conversion_por_taller(request):
    return json_response(estadisticas.conversion_por_taller(*rango_fechas(request)))


@api_view(["GET"])
def stats_mensuales_por_taller(_request):
    return json_response(estadisticas.mensuales_por_taller())


@api_view(["GET"])
def stats_aceptados_con_ors(request):
    return json_response(estadisticas.aceptados_con_ors(*rango_fechas(request)))


@api_view(["GET"])
def stats_ors_por_taller(request):
    return json_response(estadisticas.ors_por_taller(*rango_fechas(request)))


@api_view(["GET"])
def stats_resumen_por_taller(request):
    return json_response(estadisticas.resumen_por_taller(*rango_fechas(request)))


# Carga de Excel


@api_view(["POST"])
def upload_excel_view(request):
    form = ExcelUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        raise ValidationError(_form_errors(form))

    uploaded = form.cleaned_data["archivo"]
    importacion = Importacion.objects.create(
        origen=Importacion.Origen.UPLOAD,
        usuario=form.cleaned_data["usuario"],
        hoja=form.cleaned_data["hoja"],
        nombre_archivo=uploaded.name,
    )
    key = excel_key(importacion.id)
    try:
        ensure_bucket()
        uploaded.seek(0)
        upload_excel(uploaded, key)
    except Exception as exc:
        importacion.status = Importacion.Status.FAILED
        importacion.finished_at = timezone.now()
        importacion.error_count = 1
        importacion.error_summary = str(exc)
        importacion.save()
        raise UpstreamError("No se pudo subir el Excel.")

    importacion.s3_key_excel = key
    importacion.save(update_fields=["s3_key_excel"])
    process_excel_import.delay(importacion.id)
    return json_response(
        {"importacion_id": importacion.id, "status": importacion.status},
        status=202,
    )


@api_view(["POST"])
def upload_from_config(request):
    payload = parse_json(request)
    configuracion = SchedulerService().configuracion()
    ruta = (payload.get("ruta_excel") or configuracion.ruta_excel or "").strip()
    hoja = (payload.get("hoja") or configuracion.hoja_excel or "").strip()
    if not ruta:
        raise ValidationError("No hay ruta de Excel configurada")
    importacion = importar_desde_ruta(
        ruta,
        hoja,
        origen=Importacion.Origen.UPLOAD,
        usuario=(payload.get("usuario") or "").strip(),
    )
    if importacion.status == Importacion.Status.FAILED:
        raise UpstreamError(importacion.error_summary)
    return json_response(resumen_importacion(importacion))


@api_view(["GET"])
def importacion_list(_request):
    importaciones = Importacion.objects.order_by("-created_at")[:50]
    return json_response([resumen_importacion(i) for i in importaciones])


@api_view(["GET"])
def importacion_detail(_request, importacion_id: int):
    try:
        importacion = Importacion.objects.get(id=importacion_id)
    except Importacion.DoesNotExist:
        raise NotFoundError("Importación no encontrada")
    return json_response(resumen_importacion(importacion))


# Scheduler


@api_view(["GET"])
def scheduler_status(_request):
    return json_response(SchedulerService().status())


@api_view(["POST"])
def scheduler_start(_request):
    return json_response(SchedulerService().start())


@api_view(["POST"])
def scheduler_stop(_request):
    return json_response(SchedulerService().stop())


@api_view(["PUT"])
def scheduler_config(request):
    return json_response(SchedulerService().update_config(parse_json(request)))


@api_view(["POST"])
def scheduler_execute(_request):
    service = SchedulerService()
    importacion = service.execute()
    return json_response(
        {
            "ejecutado": importacion is not None,
            "importacion": resumen_importacion(importacion) if importacion else None,
            "status": service.status(),
        }
    )


@api_view(["GET"])
def scheduler_logs(request):
    limit = query_int(request, "limit", 50, minimum=1, maximum=100)
    return json_response(SchedulerService().logs(limit))
