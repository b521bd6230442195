class ServiceError(Exception):
    """Error de dominio que la capa HTTP traduce a una respuesta JSON."""

    status_code = 500
    kind = "internal"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class ValidationError(ServiceError):
    status_code = 400
    kind = "validation"


class NotFoundError(ServiceError):
    status_code = 404
    kind = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    kind = "conflict"


class UpstreamError(ServiceError):
    status_code = 502
    kind = "upstream"


class InternalError(ServiceError):
    status_code = 500
    kind = "internal"
