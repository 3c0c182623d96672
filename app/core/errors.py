"""
Error taxonomy shared by services and routes.

Services raise these; the handlers registered in app.main turn them into
{"error": ..., "details"?: ...} JSON bodies with the matching status code.
Messages are user facing (pt-BR).
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.core.config import IS_PRODUCTION

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Erro interno do servidor"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Dados inválidos"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Não autenticado"


class PermissionDeniedError(AppError):
    status_code = 403
    default_message = "Acesso negado"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Não encontrado"


class StateConflictError(AppError):
    """Action not allowed in the entity's current state."""
    status_code = 400
    default_message = "Ação inválida para o estado atual"


class UpstreamError(AppError):
    status_code = 500
    default_message = "Erro ao acessar serviço externo"


def error_body(message: str, details=None) -> dict:
    body = {"error": message}
    if details is not None and not IS_PRODUCTION:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("[ERROR] %s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))

    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        messages = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg"))
        return JSONResponse(status_code=400, content={"error": "Dados inválidos: " + "; ".join(messages)})

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception("[ERROR] Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("Erro interno do servidor", repr(exc)))
