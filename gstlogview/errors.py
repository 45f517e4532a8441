import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base for every request-rejection condition. Carries a categorical reason."""

    reason = "service_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SessionNotFound(ServiceError):
    reason = "session_not_found"
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SessionPending(ServiceError):
    reason = "session_pending"
    status_code = 409

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is still being parsed; retry shortly")
        self.session_id = session_id


class SessionFailed(ServiceError):
    reason = "session_failed"
    status_code = 409

    def __init__(self, session_id: str, error: str = ""):
        super().__init__(f"Parsing failed for session {session_id}: {error or 'unknown error'}")
        self.session_id = session_id


class SessionExists(ServiceError):
    reason = "session_exists"
    status_code = 409

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} already holds parsed entries")
        self.session_id = session_id


class InvalidInterval(ServiceError):
    reason = "invalid_interval"
    status_code = 400

    def __init__(self, interval: str):
        super().__init__(f"Invalid interval: {interval!r} (expected e.g. 500us, 10ms, 1s, 5m)")
        self.interval = interval


class PayloadTooLarge(ServiceError):
    reason = "payload_too_large"
    status_code = 413

    def __init__(self, size: int, limit: int):
        super().__init__(f"Upload of {size} bytes exceeds the {limit} byte limit")


class EmptyUpload(ServiceError):
    reason = "empty_upload"
    status_code = 400

    def __init__(self):
        super().__init__("No file field found in the multipart form")


def _body(reason: str, message: str) -> dict:
    return {"error": reason, "detail": message}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.reason, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_body(exc.reason, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Name the offending field and value only
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("query", "body", "path")]
        name = ".".join(loc) or "request"
        parts.append(f"{name}: {err.get('msg', 'invalid value')}")
    message = "Invalid query parameters: " + "; ".join(parts)
    logger.error("%s %s -> invalid_query: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content=_body("invalid_query", message))


def install_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
