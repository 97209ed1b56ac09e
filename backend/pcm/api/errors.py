from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pcm.core.errors import (
    ConflictError,
    NotFoundError,
    PCMError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
)
from pcm.core.logging import logger

STATUS_BY_ERROR: dict[type[PCMError], int] = {
    ValidationError: 400,
    PermissionDeniedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    StoreError: 500,
}


def status_for(exc: PCMError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


async def pcm_error_handler(request: Request, exc: PCMError):
    status = status_for(exc)
    if status >= 500:
        # detail stays in the log; clients get a generic message
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=status, content={"detail": "Internal Server Error", "code": exc.code})
    return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": jsonable_encoder(exc.errors()), "code": ValidationError.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PCMError, pcm_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
