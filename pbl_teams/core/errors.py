# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain error taxonomy — raised by services, mapped to HTTP by one handler.
"""


class ServiceError(Exception):
    """Base class for every error a service reports to its caller."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(ServiceError):
    """Malformed input or a violated business rule."""

    status_code = 400


class AccessDeniedError(ServiceError):
    """The acting identity may not perform this operation."""

    status_code = 403


class NotFoundError(ServiceError):
    """Unknown entity, or an entity outside the actor's scope."""

    status_code = 404


class ConflictError(ServiceError):
    """Uniqueness violation (already taken)."""

    status_code = 409


class IntegrationError(ServiceError):
    """The external spreadsheet is unreachable, unconfigured or malformed."""

    status_code = 502


class UnauthenticatedError(ServiceError):
    """No usable identity was forwarded by the auth layer."""

    status_code = 401
