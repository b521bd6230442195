from django.db import DatabaseError, connection

from core.api import api_view, json_response, parse_json
from core.services.configuracion import (
    actualizar_configuracion,
    obtener_configuracion,
    serializar_configuracion,
)


@api_view(["GET"])
def health(_request):
    database = "ok"
    try:
        connection.ensure_connection()
    except DatabaseError:
        database = "unavailable"
    return json_response({"status": "ok", "database": database})


@api_view(["GET", "PUT"])
def configuracion_general(request):
    if request.method == "PUT":
        configuracion = actualizar_configuracion(parse_json(request))
    else:
        configuracion = obtener_configuracion()
    return json_response(serializar_configuracion(configuracion))
