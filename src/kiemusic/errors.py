"""Custom exceptions for kie-music."""

from typing import Any


class KieMusicError(Exception):
    """Base exception for kie-music."""

    pass


class KieAPIError(KieMusicError):
    """KIE API call failed (transport, HTTP status or configuration)."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ClientDisconnectedError(KieMusicError):
    """A live-update client can no longer receive events."""

    pass


class NotFoundError(KieMusicError):
    """Requested record does not exist."""

    pass


class SongImportError(KieMusicError):
    """A KIE task could not be imported; ``status_code`` is the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code
