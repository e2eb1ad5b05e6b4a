from __future__ import annotations

from typing import Any

from ownership.domain.error_codes import ErrorCode
from ownership.errors import AppError


class ContractViolationError(AppError):
    """
    Назначение:
        Нарушение контракта вызывающей стороной (некорректный вход резолвера).
    Инварианты/гарантии:
        - category всегда "contract".
        - Пробрасывается наружу без перехвата внутри ядра.
    """

    def __init__(self, code: ErrorCode, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            category="contract",
            code=code.value,
            message=message,
            retryable=False,
            details=details or {},
        )


class InvalidIdentityError(ContractViolationError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.INVALID_IDENTITY, message, details)


class InvalidApplicationError(ContractViolationError):
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.INVALID_APPLICATION, message, details)


__all__ = ["ContractViolationError", "InvalidIdentityError", "InvalidApplicationError"]
