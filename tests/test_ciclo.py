import pytest

from core.exceptions import NotFoundError, ValidationError
from presupuestos.models import Comentario, Presupuesto
from presupuestos.services.ciclo import (
    actualizar_or_siniestro,
    actualizar_presupuesto,
    agregar_comentario,
    cambiar_estado,
    eliminar_comentario,
    eliminar_presupuesto,
)

Estado = Presupuesto.Estado

pytestmark = pytest.mark.django_db


def test_rechazo_sin_motivo_es_invalido(crear_presupuesto):
    crear_presupuesto("P-1")

    with pytest.raises(ValidationError):
        cambiar_estado("P-1", "Rechazado", "ana", detalles="sin motivo")

    presupuesto = Presupuesto.objects.get(referencia="P-1")
    assert presupuesto.estado == Estado.ABIERTO
    assert not presupuesto.comentarios.exists()


def test_rechazo_sin_detalles_es_invalido(crear_presupuesto):
    crear_presupuesto("P-1")

    with pytest.raises(ValidationError):
        cambiar_estado("P-1", "Rechazado", "ana", motivo_rechazo="Precio elevado", detalles="  ")


def test_rechazo_con_motivo_deja_comentario(crear_presupuesto):
    crear_presupuesto("P-1")

    presupuesto = cambiar_estado(
        "P-1",
        "Rechazado",
        "ana",
        motivo_rechazo="Precio elevado",
        detalles="cliente considera elevado",
    )

    presupuesto.refresh_from_db()
    assert presupuesto.estado == Estado.RECHAZADO
    assert presupuesto.estado_anterior == Estado.ABIERTO
    assert presupuesto.estado_cambiado_por == "ana"
    assert presupuesto.fecha_cambio_estado is not None
    comentarios = list(presupuesto.comentarios.all())
    assert len(comentarios) == 1
    assert "Precio elevado" in comentarios[0].texto
    assert "cliente considera elevado" in comentarios[0].texto
    assert comentarios[0].usuario == "ana"


def test_motivo_por_nombre_de_la_opcion(crear_presupuesto):
    crear_presupuesto("P-1")

    cambiar_estado("P-1", "Rechazado", "ana", motivo_rechazo="no_responde", detalles="x")

    assert "Motivo: No responde" in Comentario.objects.get().texto


def test_estado_y_usuario_invalidos(crear_presupuesto):
    crear_presupuesto("P-1")

    with pytest.raises(ValidationError):
        cambiar_estado("P-1", "Cerrado", "ana")
    with pytest.raises(ValidationError):
        cambiar_estado("P-1", "Aceptado", "")
    with pytest.raises(NotFoundError):
        cambiar_estado("NO-EXISTE", "Aceptado", "ana")


def test_se_puede_reabrir_un_presupuesto(crear_presupuesto):
    crear_presupuesto("P-1", estado=Estado.ACEPTADO)

    presupuesto = cambiar_estado("P-1", "Abierto", "ana")

    assert presupuesto.estado == Estado.ABIERTO
    assert presupuesto.estado_anterior == Estado.ACEPTADO


def test_or_siniestro_solo_en_aceptados(crear_presupuesto):
    crear_presupuesto("P-1")

    with pytest.raises(ValidationError):
        actualizar_or_siniestro("P-1", "OR-123")


def test_or_siniestro_maximo_quince_caracteres(crear_presupuesto):
    crear_presupuesto("P-1", estado=Estado.ACEPTADO)

    with pytest.raises(ValidationError):
        actualizar_or_siniestro("P-1", "X" * 16)

    presupuesto = actualizar_or_siniestro("P-1", "X" * 15, usuario="ana")
    assert presupuesto.or_siniestro == "X" * 15
    assert presupuesto.modificado_por == "ana"


def test_comentarios(crear_presupuesto):
    crear_presupuesto("P-1")

    with pytest.raises(ValidationError):
        agregar_comentario("P-1", "   ", "ana")

    comentario = agregar_comentario("P-1", " Cliente pide descuento ", "ana")
    assert comentario.texto == "Cliente pide descuento"

    eliminar_comentario("P-1", comentario.id)
    assert not Comentario.objects.exists()
    with pytest.raises(NotFoundError):
        eliminar_comentario("P-1", comentario.id)


def test_actualizar_cabecera(crear_presupuesto):
    crear_presupuesto("P-1")

    presupuesto = actualizar_presupuesto(
        "P-1", {"nombre": "Nuevo Cliente", "taller": "T7", "usuario": "ana"}
    )

    assert presupuesto.nombre == "Nuevo Cliente"
    assert presupuesto.taller == "T7"
    assert presupuesto.modificado_por == "ana"
    with pytest.raises(ValidationError):
        actualizar_presupuesto("P-1", {"nombre": ""})


def test_eliminar_presupuesto_borra_lineas_y_comentarios(crear_presupuesto, directorio_adjuntos):
    presupuesto = crear_presupuesto("P-1")
    agregar_comentario("P-1", "hola", "ana")

    eliminar_presupuesto("P-1")

    assert not Presupuesto.objects.filter(id=presupuesto.id).exists()
    assert not Comentario.objects.exists()
