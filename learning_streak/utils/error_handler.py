from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from learning_streak.utils.exceptions import CustomException
from learning_streak.core.logging import get_logger
from learning_streak.core.config import settings

logger = get_logger(__name__)


def _error_body(code: str, message: str, path: str, **extra) -> dict:
    body = {"code": code, "message": message, "path": path}
    body.update({k: v for k, v in extra.items() if v})
    return {"error": body}


async def streak_error_handler(request: Request, exc: CustomException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")

    content = exc.to_dict()
    content["error"]["path"] = request.url.path

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "invalid")}
        for err in exc.errors()
    ]
    logger.warning(f"Rejected request body on {request.url.path}: {len(fields)} invalid field(s)")

    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", request.url.path, details=fields)
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled {type(exc).__name__} on {request.url.path}", exc_info=exc)

    # Internal detail only leaves the process outside production
    message = "An unexpected error occurred"
    if settings.ENVIRONMENT != "production":
        message = f"{type(exc).__name__}: {exc}"

    return JSONResponse(
        status_code=500,
        content=_error_body("INTERNAL_SERVER_ERROR", message, request.url.path)
    )


def setup_exception_handlers(app: FastAPI):
    app.add_exception_handler(CustomException, streak_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
