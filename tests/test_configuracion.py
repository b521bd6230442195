import pytest

from core.exceptions import ValidationError
from core.models import ConfiguracionGeneral
from core.services.configuracion import actualizar_configuracion, obtener_configuracion

pytestmark = pytest.mark.django_db


def test_configuracion_por_defecto(settings):
    configuracion = obtener_configuracion()

    assert configuracion.dias_para_pendiente == 2
    assert configuracion.directorio_adjuntos == settings.ADJUNTOS_DIR
    assert ConfiguracionGeneral.objects.count() == 1


def test_actualizar_configuracion_parcial():
    actualizar_configuracion({"dias_para_pendiente": 5})
    actualizar_configuracion({"directorio_adjuntos": " /tmp/adjuntos "})

    configuracion = obtener_configuracion()
    assert configuracion.dias_para_pendiente == 5
    assert configuracion.directorio_adjuntos == "/tmp/adjuntos"


@pytest.mark.parametrize(
    "cambios",
    [
        {"dias_para_pendiente": 0},
        {"dias_para_pendiente": 31},
        {"dias_para_pendiente": "3"},
        {"dias_para_pendiente": True},
        {"directorio_adjuntos": "   "},
        {"directorio_adjuntos": None},
    ],
)
def test_configuracion_invalida(cambios):
    with pytest.raises(ValidationError):
        actualizar_configuracion(cambios)
    assert obtener_configuracion().dias_para_pendiente == 2
