"""Application error taxonomy and the JSON error layer.

Services raise these exceptions; the handlers registered here turn them into
``{"message": ...}`` responses. A handled error is never re-raised once its
response exists.
"""

from flask import current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException


class NutriaError(Exception):
    status_code = 500
    default_message = "Erro interno do servidor"

    def __init__(self, message: str | None = None, *, details: dict | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(NutriaError):
    status_code = 400
    default_message = "Dados inválidos"


class AuthenticationError(NutriaError):
    status_code = 401
    default_message = "Não autenticado"


class NotFoundError(NutriaError):
    status_code = 404
    default_message = "Registro não encontrado"


class UpstreamError(NutriaError):
    status_code = 502
    default_message = "Serviço externo indisponível. Tente novamente."


class PlanParseError(NutriaError):
    status_code = 500
    default_message = "Falha ao interpretar o plano gerado pela IA"


def error_response(message: str, status_code: int, details: dict | None = None):
    body = {"message": message}
    if details:
        body["details"] = details
    return jsonify(body), status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(NutriaError)
    def handle_nutria_error(exc: NutriaError):
        log = current_app.logger.error if exc.status_code >= 500 else current_app.logger.warning
        log("%s on %s %s: %s", type(exc).__name__, request.method, request.path, exc.message)
        return error_response(exc.message, exc.status_code, exc.details)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        if not request.path.startswith("/api"):
            return exc
        return error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(exc: SQLAlchemyError):
        from nutria import db

        db.session.rollback()
        current_app.logger.error("Database error on %s %s", request.method, request.path, exc_info=exc)
        return error_response("Erro ao acessar o banco de dados", 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.error("Unhandled exception on %s %s", request.method, request.path, exc_info=exc)
        return error_response(NutriaError.default_message, 500)
