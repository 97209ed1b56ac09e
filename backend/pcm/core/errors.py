"""Domain error taxonomy.

Services raise these; ``pcm.api.errors`` maps them to HTTP responses so
routers never build ``HTTPException`` for domain failures.
"""
from typing import Any


class PCMError(Exception):
    code = "PCM_ERROR"

    def __init__(self, message: str | None = None, code: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code:
            self.code = code


class ValidationError(PCMError):
    code = "VALIDATION_ERROR"


class NotFoundError(PCMError):
    code = "NOT_FOUND"


class PermissionDeniedError(PCMError):
    code = "PERMISSION_DENIED"


class ConflictError(PCMError):
    code = "CONFLICT"


class StoreError(PCMError):
    code = "DATABASE_QUERY_FAILED"


class ChangeLogError(PCMError):
    """The mutation committed but its change-log entry could not be written."""

    code = "CHANGE_LOG_FAILED"

    def __init__(self, message: str, *, result: Any, item_id: int, change_type: str):
        super().__init__(message)
        self.result = result
        self.item_id = item_id
        self.change_type = change_type
