from __future__ import annotations

from datetime import date, datetime, time, timedelta

from django.db.models import QuerySet
from django.db.models.functions import Coalesce
from django.utils import timezone

from catalogo.services.aceites import CatalogoAceites
from catalogo.services.talleres import mapa_nombres_talleres
from core.services.configuracion import obtener_configuracion
from presupuestos.models import Presupuesto
from presupuestos.services.costos import TotalesPresupuesto, totalizar_lineas
from presupuestos.services.subestado import subestado_de

SIN_TALLER = "Sin taller"


def _inicio_del_dia(dia: date) -> datetime:
    return timezone.make_aware(datetime.combine(dia, time.min))


def con_fecha_referencia(queryset: QuerySet) -> QuerySet:
    return queryset.annotate(fecha_ref=Coalesce("fecha_creacion", "fecha_carga"))


def filtrar_rango_fechas(
    queryset: QuerySet,
    fecha_desde: date | None,
    fecha_hasta: date | None,
) -> QuerySet:
    """Filtra por fecha de creación (o de carga) con ambos extremos inclusivos."""
    queryset = con_fecha_referencia(queryset)
    if fecha_desde:
        queryset = queryset.filter(fecha_ref__gte=_inicio_del_dia(fecha_desde))
    if fecha_hasta:
        queryset = queryset.filter(
            fecha_ref__lt=_inicio_del_dia(fecha_hasta + timedelta(days=1))
        )
    return queryset


def presupuestos_en_rango(
    fecha_desde: date | None = None,
    fecha_hasta: date | None = None,
    queryset: QuerySet | None = None,
) -> QuerySet:
    if queryset is None:
        queryset = Presupuesto.objects.all()
    return filtrar_rango_fechas(queryset, fecha_desde, fecha_hasta).prefetch_related(
        "lineas", "comentarios"
    )


class Enriquecedor:
    """Aplica a cada presupuesto leído el cálculo de aceites, el subestado y el
    nombre visible del taller, con un mismo catálogo, umbral y ``now`` para
    toda la consulta.
    """

    def __init__(
        self,
        catalogo: CatalogoAceites | None = None,
        nombres_talleres: dict[str, str] | None = None,
        dias_para_pendiente: int = 2,
        now: datetime | None = None,
    ):
        self.catalogo = catalogo if catalogo is not None else CatalogoAceites()
        self.nombres_talleres = nombres_talleres or {}
        self.dias_para_pendiente = dias_para_pendiente
        self.now = now or timezone.now()

    @classmethod
    def desde_bd(cls, now: datetime | None = None) -> "Enriquecedor":
        return cls(
            catalogo=CatalogoAceites.cargar(),
            nombres_talleres=mapa_nombres_talleres(),
            dias_para_pendiente=obtener_configuracion().dias_para_pendiente,
            now=now,
        )

    def nombre_taller(self, codigo: str) -> str:
        return self.nombres_talleres.get(codigo) or codigo or SIN_TALLER

    def totales(self, presupuesto: Presupuesto) -> TotalesPresupuesto:
        return totalizar_lineas(presupuesto.lineas.all(), self.catalogo)

    def subestado(self, presupuesto: Presupuesto) -> str | None:
        return subestado_de(presupuesto, self.dias_para_pendiente, self.now)
