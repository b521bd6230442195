from catalogo.models import Aceite, Taller
from catalogo.services.aceites import (
    actualizar_aceite,
    buscar_por_sku,
    crear_aceite,
    eliminar_aceite,
    obtener_aceite,
    serializar_aceite,
)
from catalogo.services.talleres import (
    actualizar_taller,
    crear_taller,
    desactivar_taller,
    obtener_taller,
    serializar_taller,
)
from core.api import api_view, json_response, parse_json
from presupuestos.models import Presupuesto


@api_view(["GET", "POST"])
def aceites(request):
    if request.method == "POST":
        aceite = crear_aceite(parse_json(request))
        return json_response(serializar_aceite(aceite), status=201)
    return json_response([serializar_aceite(aceite) for aceite in Aceite.objects.all()])


@api_view(["GET", "PUT", "DELETE"])
def aceite_detail(request, aceite_id: int):
    if request.method == "PUT":
        aceite = actualizar_aceite(aceite_id, parse_json(request))
        return json_response(serializar_aceite(aceite))
    if request.method == "DELETE":
        eliminar_aceite(aceite_id)
        return json_response({"detail": "Aceite eliminado correctamente"})
    return json_response(serializar_aceite(obtener_aceite(aceite_id)))


@api_view(["GET"])
def aceite_search(_request, sku: str):
    return json_response(serializar_aceite(buscar_por_sku(sku)))


@api_view(["GET", "POST"])
def talleres(request):
    if request.method == "POST":
        taller = crear_taller(parse_json(request))
        return json_response(serializar_taller(taller), status=201)
    return json_response([serializar_taller(taller) for taller in Taller.objects.all()])


@api_view(["GET"])
def talleres_activos(_request):
    activos = Taller.objects.filter(activo=True)
    return json_response([serializar_taller(taller) for taller in activos])


@api_view(["GET", "PUT", "DELETE"])
def taller_detail(request, codigo: str):
    if request.method == "PUT":
        return json_response(serializar_taller(actualizar_taller(codigo, parse_json(request))))
    if request.method == "DELETE":
        taller = desactivar_taller(codigo)
        return json_response(
            {"detail": "Taller desactivado correctamente", "taller": serializar_taller(taller)}
        )
    return json_response(serializar_taller(obtener_taller(codigo)))


@api_view(["GET"])
def talleres_codigos_unicos(_request):
    codigos = (
        Presupuesto.objects.exclude(taller="")
        .order_by("taller")
        .values_list("taller", flat=True)
        .distinct()
    )
    return json_response(list(codigos))
