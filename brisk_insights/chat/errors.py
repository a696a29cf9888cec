"""
Assistant Chat Errors

Every failure of a chat cycle is one of these. Each carries the
localized text shown in the assistant bubble, so the reconciler never
has to know which layer failed to pick a message.
"""

from typing import Optional


GENERIC_ERROR_MESSAGE = "Lo siento, no pude procesar tu solicitud."
TIMEOUT_ERROR_MESSAGE = "La solicitud tardó demasiado. Por favor, inténtalo de nuevo."
NETWORK_ERROR_MESSAGE = "Hubo un problema de conexión. Por favor, inténtalo de nuevo."
AUTH_ERROR_MESSAGE = "Debes iniciar sesión para realizar esta acción."
NOTIFICATION_MESSAGE = "Hubo un error al contactar al asistente."


class ChatError(Exception):
    """Base exception for assistant chat failures."""

    default_user_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.default_user_message)
        self.user_message = user_message or self.default_user_message


class AuthenticationError(ChatError):
    """No credential available. Raised before any network attempt."""

    default_user_message = AUTH_ERROR_MESSAGE


class NetworkError(ChatError):
    """The request could not be sent or the stream broke mid-way."""

    default_user_message = NETWORK_ERROR_MESSAGE


class RequestTimeoutError(ChatError):
    """The wall-clock deadline for the request expired."""

    default_user_message = TIMEOUT_ERROR_MESSAGE

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Chat request exceeded {timeout_seconds:g}s deadline")


class ServerError(ChatError):
    """
    The endpoint answered with a non-success status.

    The server-provided message, when there is one, is what the user sees.
    """

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        self.message = message or GENERIC_ERROR_MESSAGE
        super().__init__(
            f"Chat endpoint returned {status}: {self.message}",
            user_message=self.message,
        )


class DecodeError(ServerError):
    """The stream ended without a single parseable payload."""

    def __init__(self, received_bytes: int = 0):
        self.received_bytes = received_bytes
        super().__init__(status=200, message=GENERIC_ERROR_MESSAGE)
