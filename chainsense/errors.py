# chainsense/errors.py
from __future__ import annotations


class ServiceError(Exception):
    """Base for errors that map onto an HTTP status with a JSON body."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class AccessDeniedError(ServiceError):
    status_code = 403


class ConflictError(ServiceError):
    # Business-rule rejections (overpayment, duplicate SKU) are plain 400s
    status_code = 400


class StorageError(ServiceError):
    status_code = 500


class RenderError(ServiceError):
    status_code = 500
