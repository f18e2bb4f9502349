"""Map domain exceptions to HTTP responses.

Every error body has the shape ``{"error": <messages>}``. Unexpected
exceptions are logged with their traceback and answered with a generic 500.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.errors import ConflictError, ForbiddenError, ServiceUnavailableError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    ObjectNotFoundError: 404,
    ForbiddenError: 403,
    ConflictError: 409,
    ServiceUnavailableError: 503,
}


def _messages(exc):
    return getattr(exc, "messages", None) or str(exc)


def register_error_handlers(app: FastAPI) -> None:
    for exc_class, status_code in _STATUS_CODES.items():

        async def handler(request: Request, exc: Exception, status_code=status_code) -> JSONResponse:
            logger.info(
                "Request rejected",
                path=request.url.path,
                status_code=status_code,
                error_type=type(exc).__name__,
            )
            return JSONResponse(status_code=status_code, content={"error": _messages(exc)})

        app.add_exception_handler(exc_class, handler)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
