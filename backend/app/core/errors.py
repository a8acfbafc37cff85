"""Domain errors raised by the service layer.

Routes never build HTTP responses for business failures themselves: services
raise one of these and the handlers registered in ``app.main`` render the
``{success: false, message}`` envelope with the matching status code.
"""

from fastapi import status


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Solicitud inválida"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(DomainError):
    # Conflicts surface as 400 to clients, like the rest of the validation family
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "El recurso ya existe"


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "No tienes permisos para realizar esta acción"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Recurso no encontrado"
