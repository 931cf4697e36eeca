"""
Backend error type and the mapping of backend error codes to user-facing
(Portuguese) messages.
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)

MISSING_TABLE_CODES = frozenset({"42P01", "PGRST205"})

UNKNOWN_ERROR_MESSAGE = "Ocorreu um erro desconhecido."
GENERIC_ERROR_MESSAGE = "Erro ao processar a requisição de dados."

ERROR_MESSAGES = {
    "PGRST204": "Erro de Esquema: Uma coluna não foi encontrada no banco. Verifique o script SQL.",
    "42703": "Erro de Esquema: Uma coluna não foi encontrada no banco. Verifique o script SQL.",
    "42P01": "Tabela não encontrada. Configure o banco de dados via SQL Editor.",
    "PGRST205": "Tabela não encontrada. Configure o banco de dados via SQL Editor.",
    "23505": "Registro duplicado. Este documento ou registro já existe.",
    "23503": "Registro vinculado não encontrado ou ainda referenciado por outros dados.",
    "23502": "Campo obrigatório não informado.",
    "42501": "Permissão negada (RLS). Verifique as políticas de acesso no banco.",
    "403": 'Acesso negado ao Storage. Verifique se o bucket "documents" é público.',
    "401": "Usuário não autenticado.",
    "invalid_credentials": "E-mail ou senha inválidos.",
    "PGRST116": "Registro não encontrado.",
    "P0002": "Registro não encontrado.",
}


class BackendError(Exception):
    """Error raised by a database/storage/auth call, carrying the backend code."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"BackendError(code={self.code!r}, message={self.message!r})"


def is_missing_table(error: BaseException) -> bool:
    return getattr(error, "code", None) in MISSING_TABLE_CODES


def describe_error(error) -> str:
    """
    Turn a backend error (or plain string) into a message for the end user.

    The full error is logged so the developer still sees the raw details.
    """
    if not error:
        return UNKNOWN_ERROR_MESSAGE

    if isinstance(error, str):
        logger.error("Backend error: %s", error)
        return error

    code = getattr(error, "code", None) or getattr(error, "status", None)
    message = getattr(error, "message", None) or str(error) or None
    logger.error(
        "Backend error code=%s message=%s details=%s",
        code,
        message,
        getattr(error, "details", None),
    )

    if code:
        known = ERROR_MESSAGES.get(str(code))
        if known:
            return known
        return f"{message} (Código: {code})" if message else f"Erro técnico: {code}"

    return message or GENERIC_ERROR_MESSAGE


_HTTP_STATUS_BY_CODE = {
    "23505": 409,
    "42501": 403,
    "403": 403,
    "401": 401,
    "invalid_credentials": 401,
    "PGRST116": 404,
    "P0002": 404,
    "PGRST204": 400,
    "42703": 400,
    "23502": 400,
    "23503": 400,
    "22023": 400,
    "42P01": 503,
    "PGRST205": 503,
}


def http_status_for(error: BackendError) -> int:
    return _HTTP_STATUS_BY_CODE.get(str(error.code), 502)
