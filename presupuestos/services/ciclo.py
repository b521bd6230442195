from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError
from presupuestos.models import OR_SINIESTRO_MAX, Comentario, LineaPresupuesto, Presupuesto
from presupuestos.services.adjuntos import eliminar_archivos
from presupuestos.services.consultas import obtener_presupuesto
from presupuestos.services.parser_excel import LineaImportada, PresupuestoImportado

logger = logging.getLogger(__name__)

Estado = Presupuesto.Estado
Motivo = Presupuesto.MotivoRechazo

CAMPOS_EDITABLES = ("nombre", "cta", "taller", "descripcion_siniestro")


def _requerir_usuario(usuario) -> str:
    if not isinstance(usuario, str) or not usuario.strip():
        raise ValidationError("El usuario es requerido")
    return usuario.strip()


def _normalizar_estado(estado) -> str:
    if estado not in Estado.values:
        raise ValidationError(
            f"Estado inválido. Debe ser uno de: {', '.join(Estado.values)}"
        )
    return estado


def _normalizar_motivo(motivo) -> str:
    if isinstance(motivo, str):
        motivo = motivo.strip()
        if motivo in Motivo.values:
            return motivo
        if motivo.upper() in Motivo.names:
            return Motivo[motivo.upper()].value
    raise ValidationError(
        f"Motivo de rechazo requerido. Debe ser uno de: {', '.join(Motivo.values)}"
    )


def texto_cambio_estado(
    estado: str,
    usuario: str,
    motivo: str | None = None,
    detalles: str | None = None,
) -> str:
    texto = f'Estado cambiado a "{estado}" por {usuario}'
    if motivo:
        texto += f"\n\nMotivo: {motivo}"
    if detalles:
        texto += f"\n\nDetalles: {detalles}"
    return texto


def cambiar_estado(
    referencia: str,
    nuevo_estado,
    usuario,
    motivo_rechazo=None,
    detalles=None,
) -> Presupuesto:
    """Cambia el estado de un presupuesto y deja un comentario con el cambio.

    Cualquier estado puede pasar a cualquier otro. Un rechazo exige motivo y
    detalles. Sin bloqueo optimista: si dos cambios llegan a la vez gana el
    último en escribirse.
    """
    nuevo_estado = _normalizar_estado(nuevo_estado)
    usuario = _requerir_usuario(usuario)
    motivo = None
    detalles = detalles.strip() if isinstance(detalles, str) else ""
    if nuevo_estado == Estado.RECHAZADO:
        motivo = _normalizar_motivo(motivo_rechazo)
        if not detalles:
            raise ValidationError("Los detalles del rechazo son requeridos")

    ahora = timezone.now()
    with transaction.atomic():
        presupuesto = obtener_presupuesto(referencia)
        presupuesto.estado_anterior = presupuesto.estado
        presupuesto.estado = nuevo_estado
        presupuesto.estado_cambiado_por = usuario
        presupuesto.fecha_cambio_estado = ahora
        presupuesto.save(
            update_fields=[
                "estado_anterior",
                "estado",
                "estado_cambiado_por",
                "fecha_cambio_estado",
                "ultima_actualizacion",
            ]
        )
        Comentario.objects.create(
            presupuesto=presupuesto,
            texto=texto_cambio_estado(nuevo_estado, usuario, motivo, detalles or None),
            usuario=usuario,
            fecha=ahora,
        )
    logger.info(
        "Presupuesto %s: %s -> %s por %s",
        referencia,
        presupuesto.estado_anterior,
        nuevo_estado,
        usuario,
    )
    return presupuesto


def agregar_comentario(referencia: str, texto, usuario) -> Comentario:
    if not isinstance(texto, str) or not texto.strip():
        raise ValidationError("El texto del comentario es requerido")
    usuario = _requerir_usuario(usuario)
    presupuesto = obtener_presupuesto(referencia)
    comentario = Comentario.objects.create(
        presupuesto=presupuesto,
        texto=texto.strip(),
        usuario=usuario,
    )
    Presupuesto.objects.filter(id=presupuesto.id).update(ultima_actualizacion=comentario.fecha)
    return comentario


def eliminar_comentario(referencia: str, comentario_id: int) -> None:
    presupuesto = obtener_presupuesto(referencia)
    borrados, _ = Comentario.objects.filter(
        presupuesto=presupuesto, id=comentario_id
    ).delete()
    if not borrados:
        raise NotFoundError("Comentario no encontrado")


def actualizar_or_siniestro(referencia: str, or_siniestro, usuario=None) -> Presupuesto:
    if or_siniestro is None:
        or_siniestro = ""
    if not isinstance(or_siniestro, str):
        raise ValidationError("La OR de siniestro debe ser texto")
    or_siniestro = or_siniestro.strip()
    if len(or_siniestro) > OR_SINIESTRO_MAX:
        raise ValidationError(
            f"La OR de siniestro no puede superar {OR_SINIESTRO_MAX} caracteres"
        )
    presupuesto = obtener_presupuesto(referencia)
    if presupuesto.estado != Estado.ACEPTADO:
        raise ValidationError(
            "Solo se puede editar la OR de siniestro en presupuestos aceptados"
        )
    presupuesto.or_siniestro = or_siniestro
    update_fields = ["or_siniestro", "ultima_actualizacion"]
    if isinstance(usuario, str) and usuario.strip():
        presupuesto.modificado_por = usuario.strip()
        presupuesto.fecha_modificacion = timezone.now()
        update_fields += ["modificado_por", "fecha_modificacion"]
    presupuesto.save(update_fields=update_fields)
    return presupuesto


def actualizar_presupuesto(referencia: str, datos: dict) -> Presupuesto:
    presupuesto = obtener_presupuesto(referencia)
    update_fields = ["ultima_actualizacion"]
    for campo in CAMPOS_EDITABLES:
        if campo not in datos:
            continue
        valor = datos[campo]
        if not isinstance(valor, str):
            raise ValidationError(f"{campo} debe ser texto")
        valor = valor.strip()
        if campo == "nombre" and not valor:
            raise ValidationError("El nombre no puede estar vacío")
        max_length = Presupuesto._meta.get_field(campo).max_length
        if len(valor) > max_length:
            raise ValidationError(f"{campo} no puede superar {max_length} caracteres")
        setattr(presupuesto, campo, valor)
        update_fields.append(campo)
    usuario = datos.get("usuario")
    if isinstance(usuario, str) and usuario.strip():
        presupuesto.modificado_por = usuario.strip()
        presupuesto.fecha_modificacion = timezone.now()
        update_fields += ["modificado_por", "fecha_modificacion"]
    presupuesto.save(update_fields=update_fields)
    return presupuesto


def _crear_lineas(presupuesto: Presupuesto, lineas: list[LineaImportada]) -> None:
    LineaPresupuesto.objects.bulk_create(
        [
            LineaPresupuesto(
                presupuesto=presupuesto,
                orden=orden,
                pieza=linea.pieza,
                concepto=linea.concepto,
                cantidad=linea.cantidad,
                costo=linea.costo,
                pvp=linea.pvp,
                importe=linea.importe,
            )
            for orden, linea in enumerate(lineas)
        ]
    )


def _lineas_iguales(presupuesto: Presupuesto, lineas: list[LineaImportada]) -> bool:
    actuales = [
        (l.pieza, l.concepto, l.cantidad, l.costo, l.pvp, l.importe)
        for l in presupuesto.lineas.all()
    ]
    nuevas = [
        (l.pieza, l.concepto, l.cantidad, l.costo, l.pvp, l.importe) for l in lineas
    ]
    return actuales == nuevas


def registrar_presupuesto_importado(
    datos: PresupuestoImportado,
    usuario: str = "",
) -> tuple[Presupuesto, str]:
    """Crea o refresca un presupuesto a partir de una fila del Excel.

    Devuelve el presupuesto y "nuevo", "actualizado" o "existente". Un
    presupuesto ya cargado conserva su estado, comentarios, adjuntos y OR; sus
    líneas se reemplazan completas sólo si cambiaron, junto con los datos de
    cabecera que traigan valor.
    """
    ahora = timezone.now()
    with transaction.atomic():
        presupuesto = Presupuesto.objects.filter(referencia=datos.referencia).first()
        if presupuesto is None:
            presupuesto = Presupuesto.objects.create(
                referencia=datos.referencia,
                cta=datos.cta,
                nombre=datos.nombre,
                taller=datos.taller,
                usuario=datos.usuario,
                descripcion_siniestro=datos.descripcion_siniestro,
                fecha_carga=ahora,
                creado_por=usuario or datos.usuario,
                fecha_creacion=datos.fecha or ahora,
            )
            _crear_lineas(presupuesto, datos.lineas)
            return presupuesto, "nuevo"

        # Una celda vacía conserva el valor ya guardado.
        cabecera = {
            campo: valor
            for campo, valor in (
                ("cta", datos.cta),
                ("nombre", datos.nombre),
                ("taller", datos.taller),
                ("usuario", datos.usuario),
                ("descripcion_siniestro", datos.descripcion_siniestro),
                ("fecha_creacion", datos.fecha),
            )
            if valor
        }
        cambios = [
            campo for campo, valor in cabecera.items() if getattr(presupuesto, campo) != valor
        ]
        lineas_cambiadas = not _lineas_iguales(presupuesto, datos.lineas)
        if not cambios and not lineas_cambiadas:
            return presupuesto, "existente"

        for campo in cambios:
            setattr(presupuesto, campo, cabecera[campo])
        if lineas_cambiadas:
            presupuesto.lineas.all().delete()
            _crear_lineas(presupuesto, datos.lineas)
        presupuesto.modificado_por = usuario or datos.usuario or presupuesto.modificado_por
        presupuesto.fecha_modificacion = ahora
        presupuesto.save(
            update_fields=[
                *cambios,
                "modificado_por",
                "fecha_modificacion",
                "ultima_actualizacion",
            ]
        )
        return presupuesto, "actualizado"


def eliminar_presupuesto(referencia: str) -> None:
    """Borra el presupuesto; los archivos adjuntos se eliminan tras el commit."""
    with transaction.atomic():
        presupuesto = obtener_presupuesto(referencia)
        nombres = list(presupuesto.adjuntos.values_list("nombre_archivo", flat=True))
        presupuesto.delete()
        transaction.on_commit(lambda: eliminar_archivos(nombres))
    logger.info("Presupuesto %s eliminado", referencia)
