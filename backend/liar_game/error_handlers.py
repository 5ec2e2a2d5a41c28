"""
Centralized Error Handlers for the Liar Game API

Servis katmaninin firlattigi AppException'lar, framework HTTP hatalari,
request validation hatalari ve DB butunluk ihlalleri tek bir JSON govdesine
cevrilir:

    {"success": false, "error": "ROOM_003", "message": "...", "status_code": 409, "details": {...}}

Beklenmeyen hatalar ERROR seviyesinde loglanir; traceback sadece DEBUG'da doner.
"""

import logging
from traceback import format_exc
from typing import Any, TypeVar, Union

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from liar_game.config import settings
from liar_game.exceptions import AppException, ErrorCode, NotFoundException


# Stdlib logger; setup_logging() sonrasi loguru'ya yonlendirilir
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Framework'un kendi HTTPException'lari icin kod eslemesi
HTTP_STATUS_CODES: dict[int, ErrorCode] = {
    401: ErrorCode.AUTHENTICATION_REQUIRED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
}


class ErrorResponse:
    """Hata govdesi olusturucu; tum handler'lar bunu kullanir."""

    @staticmethod
    def create(
        error_code: Union[ErrorCode, str],
        message: str,
        status_code: int,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": False,
            "error": error_code.value if isinstance(error_code, ErrorCode) else error_code,
            "message": message,
            "status_code": status_code,
        }
        if details:
            body["details"] = details
        return body

    @classmethod
    def json(
        cls,
        error_code: Union[ErrorCode, str],
        message: str,
        status_code: int,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=cls.create(error_code, message, status_code, details),
            headers=headers,
        )


def request_context(request: Request) -> dict[str, Any]:
    """Log icin istek baglami: method, path, client ve (cozulduyse) principal."""
    context: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client is not None else None,
    }
    principal = getattr(request.state, "user", None)
    if principal is not None:
        context["principal_id"] = principal.id
    return context


def log_error(
    error: Exception,
    request: Request | None = None,
    level: str = "ERROR",
    extra: dict[str, Any] | None = None,
) -> None:
    """
    Args:
        error: yakalanan exception
        request: varsa istek baglami loga eklenir
        level: ERROR, WARNING veya INFO
        extra: ek alanlar (error_code, validation_errors ...)
    """
    log_data: dict[str, Any] = {"error_type": type(error).__name__, "error_message": str(error)}
    if request is not None:
        log_data.update(request_context(request))
    if extra:
        log_data.update(extra)

    log_func = getattr(logger, level.lower(), logger.error)
    log_func(f"Request failed: {log_data}")

    if level.upper() == "ERROR":
        logger.error(f"Stack trace:\n{format_exc()}")


def register_exception_handlers(app: FastAPI) -> None:
    """main.py'de uygulama olusturulduktan sonra cagrilir."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        # Beklenen, kullaniciya gosterilebilir hatalar
        log_error(exc, request, level="WARNING", extra={"error_code": exc.code.value})
        return ErrorResponse.json(exc.code, exc.message, exc.status_code, exc.details or None, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        log_error(exc, request, level="WARNING")
        return ErrorResponse.json(
            HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_SERVER_ERROR),
            str(exc.detail) if exc.detail else "HTTP error",
            exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"][1:]),  # 'body'/'query' atlanir
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        log_error(exc, request, level="WARNING", extra={"validation_errors": errors})
        return ErrorResponse.json(
            ErrorCode.VALIDATION_ERROR,
            "Validation failed, please check your input",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"validation_errors": errors},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        # Unique/check constraint ihlali: es zamanli bir istek ayni satiri degistirdi
        log_error(exc, request, level="WARNING", extra={"constraint": str(exc.orig)})
        return ErrorResponse.json(
            ErrorCode.CONFLICT,
            "The request conflicts with a concurrent change, please retry",
            status.HTTP_409_CONFLICT,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log_error(exc, request, level="ERROR")

        if settings.DEBUG:
            message = f"{type(exc).__name__}: {exc}"
            details = {"traceback": format_exc()}
        else:
            message = "An unexpected error occurred. Please try again later."
            details = None

        return ErrorResponse.json(
            ErrorCode.INTERNAL_SERVER_ERROR, message, status.HTTP_500_INTERNAL_SERVER_ERROR, details
        )


def not_found_if_none(value: T | None, entity: str = "Resource") -> T:
    """
    Kullanim:
        room = not_found_if_none(await service.get_room_by_id(room_id), "Room")
    """
    if value is None:
        raise NotFoundException(entity)
    return value
