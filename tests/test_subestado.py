from datetime import timedelta

import pytest

from presupuestos.models import Comentario, Presupuesto
from presupuestos.services.subestado import calcular_subestado, subestado_de

ABIERTO = Presupuesto.Estado.ABIERTO


def test_pasa_a_pendiente_despues_de_los_dias_configurados(ahora):
    creado = ahora - timedelta(hours=47)
    assert calcular_subestado(ABIERTO, creado, [], 2, ahora) == "En espera"

    creado = ahora - timedelta(hours=49)
    assert calcular_subestado(ABIERTO, creado, [], 2, ahora) == "Pendiente"


def test_limite_exacto_sigue_en_espera(ahora):
    creado = ahora - timedelta(hours=48)
    assert calcular_subestado(ABIERTO, creado, [], 2, ahora) == "En espera"


def test_usa_el_comentario_mas_reciente(ahora):
    creado = ahora - timedelta(days=10)
    comentarios = [ahora - timedelta(days=9), ahora - timedelta(hours=5)]

    assert calcular_subestado(ABIERTO, creado, comentarios, 2, ahora) == "En espera"


def test_comentario_anterior_a_la_creacion_no_cuenta(ahora):
    creado = ahora - timedelta(hours=10)
    comentarios = [ahora - timedelta(days=20)]

    assert calcular_subestado(ABIERTO, creado, comentarios, 2, ahora) == "En espera"


def test_solo_los_abiertos_tienen_subestado(ahora):
    creado = ahora - timedelta(days=30)
    assert calcular_subestado(Presupuesto.Estado.ACEPTADO, creado, [], 2, ahora) is None
    assert calcular_subestado(Presupuesto.Estado.RECHAZADO, creado, [], 2, ahora) is None


@pytest.mark.django_db
def test_subestado_de_presupuesto_con_comentarios(crear_presupuesto, ahora):
    presupuesto = crear_presupuesto(fecha_creacion=ahora - timedelta(days=5))
    assert subestado_de(presupuesto, 2, ahora) == "Pendiente"

    Comentario.objects.create(
        presupuesto=presupuesto,
        texto="Llamé al cliente",
        usuario="ana",
        fecha=ahora - timedelta(hours=1),
    )
    assert subestado_de(presupuesto, 2, ahora) == "En espera"
