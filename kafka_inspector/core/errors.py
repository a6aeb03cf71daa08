import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kafka_inspector.core.exceptions import (
    ConfigurationError,
    EncodingError,
    InspectorError,
    NotFoundError,
    ProblemDetail,
    SchemaResolutionError,
)

logger = logging.getLogger(__name__)

_STATUS = [
    (NotFoundError, 404, "Not Found"),
    (ConfigurationError, 400, "Bad Request"),
    (EncodingError, 422, "Unprocessable Entity"),
    (SchemaResolutionError, 502, "Schema Resolution Failed"),
]


def _problem(status: int, title: str, detail: str, kind: str | None = None) -> JSONResponse:
    body = ProblemDetail(type="about:blank", status=status, title=title, detail=detail, kind=kind)
    return JSONResponse(
        status_code=status,
        content=body.model_dump(mode="json"),
        media_type="application/problem+json",
    )


def status_for(exc: InspectorError) -> tuple[int, str]:
    for cls, status, title in _STATUS:
        if isinstance(exc, cls):
            return status, title
    return 500, "Internal Server Error"


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InspectorError)
    async def inspector_error_handler(_: Request, exc: InspectorError):
        status, title = status_for(exc)
        if status >= 500:
            logger.warning("%s: %s", exc.kind, exc.message)
        return _problem(status, title, exc.message, exc.kind)

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Request, exc: ValueError):
        return _problem(400, "Bad Request", str(exc))

    # Catch-all
    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception("unhandled error")
        return _problem(500, "Internal Server Error", str(exc))
