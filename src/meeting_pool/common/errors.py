"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для HTTP и логов
- единый стиль исключений по проекту
- классификация ошибок провайдера (credential-ошибки выводят аккаунт из пула)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"

    # Пул аккаунтов
    NO_ACCOUNTS_AVAILABLE = "no_accounts_available"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNTS_EXHAUSTED = "accounts_exhausted"
    SIGNING_CREDENTIALS_MISSING = "signing_credentials_missing"

    # Провайдер
    PROVIDER_AUTH_ERROR = "provider_auth_error"
    PROVIDER_ERROR = "provider_error"


# Ответы провайдера, после которых аккаунт считается с неверными credentials
_CREDENTIAL_STATUSES = {401, 403}
_CREDENTIAL_ERROR_CODES = {"invalid_client"}


def is_credential_failure(status_code: int | None, error_code: str | None) -> bool:
    if status_code in _CREDENTIAL_STATUSES:
        return True
    return (error_code or "").strip().lower() in _CREDENTIAL_ERROR_CODES


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Не авторизован", details: dict | None = None) -> None:
        super().__init__(ErrCode.UNAUTHORIZED, message, details)


class NoAccountsAvailableError(AppError):
    def __init__(
        self, message: str = "Нет доступных Zoom аккаунтов", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.NO_ACCOUNTS_AVAILABLE, message, details)


class AccountNotFoundError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(
            ErrCode.ACCOUNT_NOT_FOUND,
            f"Аккаунт {account_id} не найден",
            {"account_id": account_id},
        )
        self.account_id = account_id


class SigningCredentialsMissingError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(
            ErrCode.SIGNING_CREDENTIALS_MISSING,
            f"У аккаунта {account_id} нет SDK key/secret",
            {"account_id": account_id},
        )
        self.account_id = account_id


class ProviderError(AppError):
    """
    Ошибка вызова API провайдера (create/delete meeting).
    status_code=None означает сетевую ошибку / таймаут.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict | None = None,
        code: str = ErrCode.PROVIDER_ERROR,
    ) -> None:
        super().__init__(code, message, details)
        self.status_code = status_code
        self.error_code = error_code

    @property
    def is_credential_failure(self) -> bool:
        return is_credential_failure(self.status_code, self.error_code)


class AuthError(ProviderError):
    """
    Ошибка обмена client credentials на access token.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(
            message,
            status_code=status_code,
            error_code=error_code,
            details=details,
            code=ErrCode.PROVIDER_AUTH_ERROR,
        )


@dataclass
class AttemptFailure:
    account_id: str
    stage: str  # auth|create
    code: str
    message: str
    status_code: int | None = None
    suspended: bool = False


class ExhaustedError(AppError):
    """
    Все аккаунты пула перепробованы в рамках одного create_meeting.
    """

    def __init__(
        self,
        *,
        tried_accounts: list[str],
        failures: list[AttemptFailure],
        last_error: AppError | None = None,
    ) -> None:
        causes = "; ".join(f"{f.account_id}/{f.stage}: {f.message}" for f in failures)
        message = f"Не удалось создать встречу после {len(tried_accounts)} аккаунт(ов)"
        if causes:
            message = f"{message}: {causes}"
        super().__init__(
            ErrCode.ACCOUNTS_EXHAUSTED,
            message,
            {
                "tried_accounts": list(tried_accounts),
                "failures": [asdict(f) for f in failures],
            },
        )
        self.tried_accounts = list(tried_accounts)
        self.failures = list(failures)
        self.last_error = last_error


@dataclass
class ValidationExcluded:
    """
    Аккаунт отброшен при загрузке пула (не исключение, только диагностика).
    """

    account_id: str
    reason: str
    details: dict = field(default_factory=dict)
