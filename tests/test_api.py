import json
from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from catalogo.models import Aceite, Taller
from presupuestos.models import Importacion, Presupuesto

pytestmark = pytest.mark.django_db


def _put(client, url, payload):
    return client.put(url, data=json.dumps(payload), content_type="application/json")


def _post(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}


def test_listado_enriquecido_y_paginado(client, crear_presupuesto):
    Aceite.objects.create(sku="ACE-10W40", litros_por_tambor=200)
    Taller.objects.create(codigo="T1", nombre="Taller Norte")
    crear_presupuesto(
        "P-1",
        lineas=[
            {"pieza": "ACE-10W40", "cantidad": 5, "costo": 2000, "pvp": 3000, "importe": 75},
        ],
        fecha_creacion=timezone.now(),
    )
    crear_presupuesto("P-2", nombre="Otro Cliente")

    response = client.get("/api/presupuestos", {"limit": 1, "sort_by": "referencia", "sort_order": "asc"})

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    p1 = data["presupuestos"][0]
    assert p1["referencia"] == "P-1"
    assert p1["nombre_taller"] == "Taller Norte"
    assert p1["costo"] == 50
    assert p1["pvp"] == 75
    assert p1["importe"] == 75
    assert p1["margen"] == 33
    assert p1["tiene_aceites"] is True
    assert p1["pieza"] == "ACE-10W40"
    assert p1["subestado"] == "En espera"


def test_listado_filtros(client, crear_presupuesto):
    hoy = timezone.now()
    crear_presupuesto("P-1", taller="T1", fecha_creacion=hoy)
    crear_presupuesto("P-2", taller="T2", descripcion_siniestro="Robo parcial", fecha_creacion=hoy)
    crear_presupuesto("P-3", taller="T3", estado=Presupuesto.Estado.ACEPTADO)

    def referencias(**params):
        response = client.get("/api/presupuestos", params)
        assert response.status_code == 200
        return sorted(p["referencia"] for p in response.json()["presupuestos"])

    assert referencias(taller="T1,T2") == ["P-1", "P-2"]
    assert referencias(tipo_siniestro="robo") == ["P-2"]
    assert referencias(estado="Aceptado") == ["P-3"]
    assert referencias(search="p-3") == ["P-3"]
    assert referencias(subestado="Pendiente") == []
    assert referencias(sort_by="margen") == ["P-1", "P-2", "P-3"]


def test_listado_parametros_invalidos(client):
    assert client.get("/api/presupuestos", {"page": 0}).status_code == 400
    assert client.get("/api/presupuestos", {"sort_by": "nombre"}).status_code == 400
    assert client.get("/api/presupuestos", {"estado": "Cerrado"}).status_code == 400
    response = client.get("/api/presupuestos", {"fecha_desde": "ayer"})
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"


def test_detalle_y_not_found(client, crear_presupuesto):
    crear_presupuesto("P-1")

    response = client.get("/api/presupuestos/P-1")
    assert response.status_code == 200
    data = response.json()
    assert data["lineas"][0]["costo_calculado"] == 100
    assert data["lineas"][0]["es_aceite"] is False
    assert data["comentarios"] == []
    assert data["auditoria"]["estado_anterior"] == ""

    response = client.get("/api/presupuestos/NO-EXISTE")
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_cambio_de_estado(client, crear_presupuesto):
    crear_presupuesto("P-1")

    response = _put(client, "/api/presupuestos/P-1/estado", {"estado": "Rechazado", "usuario": "ana"})
    assert response.status_code == 400
    assert response.json()["kind"] == "validation"

    response = _put(
        client,
        "/api/presupuestos/P-1/estado",
        {
            "estado": "Rechazado",
            "usuario": "ana",
            "motivo_rechazo": "Precio elevado",
            "detalles": "cliente considera elevado",
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["estado"] == "Rechazado"
    assert data["subestado"] is None
    assert len(data["comentarios"]) == 1


def test_or_siniestro(client, crear_presupuesto):
    crear_presupuesto("P-1", estado=Presupuesto.Estado.ACEPTADO)

    response = _put(client, "/api/presupuestos/P-1/or-siniestro", {"or_siniestro": "OR-77"})
    assert response.status_code == 200
    assert response.json() == {"referencia": "P-1", "or_siniestro": "OR-77"}

    response = _put(client, "/api/presupuestos/P-1/or-siniestro", {"or_siniestro": "X" * 16})
    assert response.status_code == 400


def test_comentarios(client, crear_presupuesto):
    crear_presupuesto("P-1")

    response = _post(client, "/api/presupuestos/P-1/comentarios", {"texto": "hola", "usuario": "ana"})
    assert response.status_code == 201
    comentario_id = response.json()["id"]

    response = client.delete(f"/api/presupuestos/P-1/comentarios/{comentario_id}")
    assert response.status_code == 200
    response = client.delete(f"/api/presupuestos/P-1/comentarios/{comentario_id}")
    assert response.status_code == 404


def test_json_invalido(client, crear_presupuesto):
    crear_presupuesto("P-1")

    response = client.put(
        "/api/presupuestos/P-1/estado", data="{no json", content_type="application/json"
    )

    assert response.status_code == 400
    assert response.json() == {"kind": "validation", "detail": "JSON inválido"}


def test_metodo_no_permitido(client):
    assert client.post("/api/health").status_code == 405


def test_adjuntos(client, crear_presupuesto, directorio_adjuntos):
    crear_presupuesto("P-1")
    upload = SimpleUploadedFile("presupuesto.pdf", b"%PDF-1.4", content_type="application/pdf")

    response = client.post("/api/presupuestos/P-1/adjuntos", {"archivo": upload, "usuario": "ana"})
    assert response.status_code == 201
    nombre_archivo = response.json()["nombre_archivo"]

    response = client.get(f"/api/presupuestos/P-1/adjuntos/{nombre_archivo}")
    assert response.status_code == 200
    assert b"".join(response.streaming_content) == b"%PDF-1.4"
    assert "presupuesto.pdf" in response["Content-Disposition"]

    response = client.delete(f"/api/presupuestos/P-1/adjuntos/{nombre_archivo}")
    assert response.status_code == 200
    assert client.get(f"/api/presupuestos/P-1/adjuntos/{nombre_archivo}").status_code == 404


def test_calculo_aceites(client, crear_presupuesto):
    Aceite.objects.create(sku="ACE-10W40", litros_por_tambor=200)
    crear_presupuesto(
        "P-1",
        lineas=[
            {"pieza": "ACE-10W40", "cantidad": 5, "costo": 2000, "pvp": 3000, "importe": 75},
        ],
    )

    response = client.get("/api/presupuestos/P-1/calculo-aceites")

    assert response.status_code == 200
    data = response.json()
    assert data["totales_originales"] == {"costo": 2000, "pvp": 3000, "importe": 75}
    assert data["totales_calculados"] == {"costo": 50, "pvp": 75, "importe": 75}
    assert data["diferencia"] == {"costo": -1950, "pvp": -2925, "importe": 0}
    assert data["lineas"][0]["calculos_aceite"]["costo_por_litro"] == 10


def test_eliminar_presupuesto(client, crear_presupuesto, directorio_adjuntos):
    crear_presupuesto("P-1")

    assert client.delete("/api/presupuestos/P-1").status_code == 200
    assert not Presupuesto.objects.exists()


@pytest.mark.parametrize(
    "ruta",
    [
        "estadisticas",
        "por-estado",
        "por-tipo-siniestro",
        "por-taller",
        "meses-disponibles",
        "tipos-siniestro",
        "talleres",
        "aceptados-por-taller",
        "rechazados-por-taller",
        "abiertos-pendientes-por-taller",
        "conversion-por-taller",
        "mensuales-por-taller",
        "aceptados-con-ors",
        "ors-por-taller",
        "resumen-por-taller",
    ],
)
def test_endpoints_de_estadisticas(client, crear_presupuesto, ruta):
    crear_presupuesto("P-1", estado=Presupuesto.Estado.ACEPTADO, or_siniestro="OR-1")

    response = client.get(
        f"/api/presupuestos/stats/{ruta}",
        {"fecha_desde": "2020-01-01", "fecha_hasta": "2030-12-31"},
    )

    assert response.status_code == 200


def test_resumen_por_taller_filtra_por_fecha(client, crear_presupuesto, ahora):
    crear_presupuesto("P-1", fecha_creacion=ahora)
    crear_presupuesto("P-2", fecha_creacion=ahora - timedelta(days=40))

    response = client.get(
        "/api/presupuestos/stats/resumen-por-taller",
        {"fecha_desde": (ahora - timedelta(days=1)).date().isoformat()},
    )

    assert response.json()["totales"]["total"] == 1


def test_upload_excel_encola_importacion(client, monkeypatch):
    called = {}

    def fake_delay(importacion_id):
        called["id"] = importacion_id

    monkeypatch.setattr("presupuestos.views.process_excel_import.delay", fake_delay)
    monkeypatch.setattr("presupuestos.views.ensure_bucket", lambda: None)
    monkeypatch.setattr("presupuestos.views.upload_excel", lambda *args, **kwargs: None)

    upload = SimpleUploadedFile("presupuestos.xlsx", b"PK\x03\x04")
    response = client.post("/api/upload/excel", {"archivo": upload, "usuario": "ana"})

    assert response.status_code == 202
    importacion = Importacion.objects.get()
    assert response.json() == {"importacion_id": importacion.id, "status": "PENDING"}
    assert importacion.s3_key_excel == f"imports/{importacion.id}/source.xlsx"
    assert importacion.usuario == "ana"
    assert called["id"] == importacion.id


def test_upload_excel_rechaza_otra_extension(client):
    upload = SimpleUploadedFile("presupuestos.csv", b"a,b")

    response = client.post("/api/upload/excel", {"archivo": upload})

    assert response.status_code == 400
    assert not Importacion.objects.exists()


def test_upload_excel_falla_s3(client, monkeypatch):
    def fail_upload(*args, **kwargs):
        raise RuntimeError("sin conexión")

    monkeypatch.setattr("presupuestos.views.ensure_bucket", lambda: None)
    monkeypatch.setattr("presupuestos.views.upload_excel", fail_upload)

    upload = SimpleUploadedFile("presupuestos.xlsx", b"PK\x03\x04")
    response = client.post("/api/upload/excel", {"archivo": upload})

    assert response.status_code == 502
    importacion = Importacion.objects.get()
    assert importacion.status == Importacion.Status.FAILED
    assert importacion.error_summary == "sin conexión"


def test_upload_from_config_sin_ruta(client):
    response = _post(client, "/api/upload/from-config", {})

    assert response.status_code == 400


def test_importaciones(client):
    importacion = Importacion.objects.create(usuario="ana")

    assert client.get("/api/importaciones").json()[0]["id"] == importacion.id
    assert client.get(f"/api/importaciones/{importacion.id}").json()["usuario"] == "ana"
    assert client.get("/api/importaciones/9999").status_code == 404


def test_scheduler_endpoints(client):
    assert client.get("/api/scheduler/status").json()["running"] is False
    assert client.post("/api/scheduler/start").json()["running"] is True

    response = _put(client, "/api/scheduler/config", {"intervalo_minutos": 5000})
    assert response.status_code == 400
    response = _put(client, "/api/scheduler/config", {"intervalo_minutos": 10})
    assert response.json()["config"]["intervalo_minutos"] == 10

    response = client.post("/api/scheduler/execute")
    assert response.status_code == 200
    assert response.json()["ejecutado"] is False

    assert client.post("/api/scheduler/stop").json()["running"] is False
    logs = client.get("/api/scheduler/logs", {"limit": 2}).json()
    assert len(logs) == 2
    assert logs[0]["mensaje"] == "Scheduler detenido"


def test_catalogo_endpoints(client):
    response = _post(client, "/api/aceites", {"sku": "ace-1", "litros_por_tambor": 200})
    assert response.status_code == 201
    aceite_id = response.json()["id"]
    assert _post(client, "/api/aceites", {"sku": "ACE-1", "litros_por_tambor": 20}).status_code == 409
    assert client.get("/api/aceites/search/ace-1").json()["id"] == aceite_id
    assert _put(client, f"/api/aceites/{aceite_id}", {"litros_por_tambor": 0}).status_code == 400
    assert client.delete(f"/api/aceites/{aceite_id}").status_code == 200
    assert client.get(f"/api/aceites/{aceite_id}").status_code == 404

    assert _post(client, "/api/talleres", {"codigo": "T1", "nombre": "Norte"}).status_code == 201
    assert _post(client, "/api/talleres", {"codigo": "T1", "nombre": "Norte"}).status_code == 409
    assert client.delete("/api/talleres/T1").json()["taller"]["activo"] is False
    assert client.get("/api/talleres/activos").json() == []


def test_talleres_codigos_unicos(client, crear_presupuesto):
    crear_presupuesto("P-1", taller="T2")
    crear_presupuesto("P-2", taller="T1")
    crear_presupuesto("P-3", taller="T2")
    crear_presupuesto("P-4", taller="")

    assert client.get("/api/talleres/stats/codigos-unicos").json() == ["T1", "T2"]


def test_configuracion_general(client):
    assert client.get("/api/configuracion/general").json()["dias_para_pendiente"] == 2

    response = _put(client, "/api/configuracion/general", {"dias_para_pendiente": 4})
    assert response.json()["dias_para_pendiente"] == 4
    assert _put(client, "/api/configuracion/general", {"dias_para_pendiente": 99}).status_code == 400
