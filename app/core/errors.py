# app/core/errors.py
from __future__ import annotations


class ProcurementError(Exception):
    """
    Base for every domain failure raised by the procurement services.
    Routers map subclasses to HTTP status codes via `status_code`.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProcurementError):
    status_code = 400


class AuthorizationError(ProcurementError):
    status_code = 403


class NotFoundError(ProcurementError):
    status_code = 404


class StateConflictError(ProcurementError):
    status_code = 409


class WindowClosedError(ProcurementError):
    status_code = 409


class DuplicateBidError(ProcurementError):
    status_code = 409


class AlreadyAwardedError(ProcurementError):
    """
    Lost the award race (or a different bid already won). Not retryable:
    the caller must reload the RFP.
    """

    status_code = 409


class OperationFailed(ProcurementError):
    status_code = 503

    def __init__(self, message: str, *, retryable: bool):
        super().__init__(message)
        self.retryable = retryable
