from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

MISSING_ERROR_TYPES = {"missing", "string_too_short"}


def _field_name(loc) -> str:
    # loc looks like ("body", "poId") or ("query", "organizationId"); a missing body is just ("body",)
    names = [str(part) for part in loc if part not in ("body", "query", "header", "path")]
    return ".".join(names) if names else str(loc[0]) if loc else "request"


def validation_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return "Invalid JSON body"

    missing = [_field_name(err.get("loc", ())) for err in errors if err.get("type") in MISSING_ERROR_TYPES]
    if missing:
        return f"Missing required fields: {', '.join(dict.fromkeys(missing))}"

    for err in errors:
        if _field_name(err.get("loc", ())) == "action":
            return "Invalid action. Must be 'approve' or 'reject'"

    invalid = [_field_name(err.get("loc", ())) for err in errors]
    return f"Invalid value for {', '.join(dict.fromkeys(invalid))}"


def setup_exception_handlers(app: FastAPI):
    """Every failed request answers with {"error": "<message>"}."""

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(content={"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = validation_error_message(exc)
        logger.info(f"Rejected {request.method} {request.url.path}: {message}")
        return JSONResponse(content={"error": message}, status_code=400)
