"""Domain exceptions raised by the rebate services.

The API layer maps these onto HTTP responses (see ``main.py``):

* RebateValidationError -> 422, rejected before any upstream write
* TaskNotFoundError -> 404
* ConfirmationRequiredError -> 409, destructive action without confirmation
* RemoteError -> 502, upstream collaboration/project/blob API failure

StorageCleanupError is never raised to callers; it is logged where a blob
delete fails and the record mutation proceeds.
"""
from __future__ import annotations

from rebate_service.models.db.enums import ValidationCode


class RebateError(Exception):
    """Base class for rebate service errors."""


class RebateValidationError(RebateError):
    def __init__(self, code: ValidationCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class TaskNotFoundError(RebateError):
    def __init__(self, task_id: str):
        super().__init__(f"Rebate task {task_id} not found")
        self.task_id = task_id


class ConfirmationRequiredError(RebateError):
    def __init__(self, action: str):
        super().__init__(f"Action '{action}' requires explicit confirmation")
        self.action = action


class RemoteError(RebateError):
    """Upstream API call failed (network error, timeout or non-2xx)."""

    def __init__(self, operation: str, message: str, status_code: int | None = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.status_code = status_code


class StorageCleanupError(RebateError):
    """Blob delete failed; logged and tolerated."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to delete blob {url}: {message}")
        self.url = url


__all__ = [
    "RebateError",
    "RebateValidationError",
    "TaskNotFoundError",
    "ConfirmationRequiredError",
    "RemoteError",
    "StorageCleanupError",
]
