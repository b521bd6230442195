from __future__ import annotations

import functools
import json
import logging
from datetime import date
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.exceptions import ServiceError, ValidationError

logger = logging.getLogger(__name__)


class ApiJSONEncoder(DjangoJSONEncoder):
    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def json_response(payload, status: int = 200) -> JsonResponse:
    return JsonResponse(
        payload,
        status=status,
        encoder=ApiJSONEncoder,
        safe=False,
        json_dumps_params={"ensure_ascii": False},
    )


def error_response(kind: str, detail: str, status: int) -> JsonResponse:
    return json_response({"kind": kind, "detail": detail}, status=status)


def api_view(methods: list[str]):
    """Vista JSON: exime CSRF, restringe métodos y traduce ServiceError a JSON."""

    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except ServiceError as exc:
                return error_response(exc.kind, exc.detail, exc.status_code)
            except Exception:
                logger.exception("Error no controlado en %s", request.path)
                return error_response("internal", "Error interno del servidor", 500)

        return csrf_exempt(require_http_methods(methods)(wrapper))

    return decorator


def parse_json(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("JSON inválido")
    if not isinstance(payload, dict):
        raise ValidationError("JSON inválido")
    return payload


def query_int(
    request,
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    raw = request.GET.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Parámetro '{name}' debe ser entero")
    if minimum is not None and value < minimum:
        raise ValidationError(f"Parámetro '{name}' debe ser >= {minimum}")
    if maximum is not None and value > maximum:
        value = maximum
    return value


def query_date(request, name: str) -> date | None:
    raw = (request.GET.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = parse_date(raw[:10])
    except ValueError:
        value = None
    if value is None:
        raise ValidationError(f"Parámetro '{name}' debe ser una fecha YYYY-MM-DD")
    return value


def rango_fechas(request) -> tuple[date | None, date | None]:
    return query_date(request, "fecha_desde"), query_date(request, "fecha_hasta")
