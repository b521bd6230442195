from __future__ import annotations

import logging
import mimetypes
import os
import uuid

from django.conf import settings
from django.core.files.storage import FileSystemStorage

from core.exceptions import NotFoundError, ValidationError
from core.services.configuracion import obtener_configuracion
from presupuestos.models import Adjunto
from presupuestos.services.consultas import obtener_presupuesto

logger = logging.getLogger(__name__)


def storage_adjuntos() -> FileSystemStorage:
    return FileSystemStorage(location=obtener_configuracion().directorio_adjuntos)


def nombre_unico(nombre_original: str) -> str:
    _, extension = os.path.splitext(nombre_original or "")
    return f"{uuid.uuid4().hex}{extension.lower()}"


def subir_adjunto(referencia: str, archivo, usuario) -> Adjunto:
    if archivo is None:
        raise ValidationError("No se recibió ningún archivo")
    if not isinstance(usuario, str) or not usuario.strip():
        raise ValidationError("El usuario es requerido")
    if archivo.size > settings.ADJUNTOS_MAX_BYTES:
        raise ValidationError("El archivo supera el tamaño máximo de 50MB")

    presupuesto = obtener_presupuesto(referencia)
    storage = storage_adjuntos()
    nombre_archivo = storage.save(nombre_unico(archivo.name), archivo)
    try:
        adjunto = Adjunto.objects.create(
            presupuesto=presupuesto,
            nombre_original=os.path.basename(archivo.name),
            nombre_archivo=nombre_archivo,
            tamanio=archivo.size,
            tipo=getattr(archivo, "content_type", "")
            or mimetypes.guess_type(archivo.name)[0]
            or "",
            usuario=usuario.strip(),
        )
    except Exception:
        storage.delete(nombre_archivo)
        raise
    logger.info("Adjunto %s subido a %s", nombre_archivo, referencia)
    return adjunto


def obtener_adjunto(referencia: str, nombre_archivo: str) -> Adjunto:
    presupuesto = obtener_presupuesto(referencia)
    adjunto = presupuesto.adjuntos.filter(nombre_archivo=nombre_archivo).first()
    if adjunto is None:
        raise NotFoundError("Archivo no encontrado")
    return adjunto


def abrir_adjunto(referencia: str, nombre_archivo: str):
    adjunto = obtener_adjunto(referencia, nombre_archivo)
    storage = storage_adjuntos()
    if not storage.exists(adjunto.nombre_archivo):
        raise NotFoundError("Archivo no encontrado en el servidor")
    return adjunto, storage.open(adjunto.nombre_archivo, "rb")


def eliminar_adjunto(referencia: str, nombre_archivo: str) -> None:
    adjunto = obtener_adjunto(referencia, nombre_archivo)
    storage = storage_adjuntos()
    if storage.exists(adjunto.nombre_archivo):
        storage.delete(adjunto.nombre_archivo)
    adjunto.delete()


def eliminar_archivos(nombres_archivo: list[str]) -> None:
    storage = storage_adjuntos()
    for nombre_archivo in nombres_archivo:
        if storage.exists(nombre_archivo):
            storage.delete(nombre_archivo)
        else:
            logger.warning("Adjunto %s no existe en disco", nombre_archivo)

