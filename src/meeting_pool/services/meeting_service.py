"""
Оркестратор встреч поверх пула Zoom аккаунтов.

Состояния create_meeting:
    Selecting -> Authenticating -> Creating -> Succeeded
    ошибка на любом шаге -> Selecting со следующим аккаунтом (failover)
    все аккаунты перепробованы -> Exhausted

Гонка выбора (известная и допустимая): last_selected_at обновляется при выборе,
active_meetings только после успешного ответа провайдера. Два параллельных
create_meeting могут выбрать один и тот же наименее загруженный аккаунт.
Capacity является рекомендацией, а не admission control.
"""

from __future__ import annotations

from meeting_pool.accounts.models import EndResult, MeetingRequest, MeetingResult, ZoomAccount
from meeting_pool.accounts.pool import AccountPool
from meeting_pool.accounts.selector import select_account
from meeting_pool.common.errors import (
    AppError,
    AttemptFailure,
    AuthError,
    ExhaustedError,
    NoAccountsAvailableError,
    ProviderError,
)
from meeting_pool.common.logging import get_project_logger
from meeting_pool.common.metrics import (
    record_account_suspended,
    record_exhausted,
    record_failover,
    record_meeting_created,
    record_meeting_ended,
)
from meeting_pool.connectors.base import MeetingProvider

log = get_project_logger()


class MeetingOrchestrator:
    def __init__(self, pool: AccountPool, provider: MeetingProvider) -> None:
        self.pool = pool
        self.provider = provider

    def _on_attempt_failed(
        self,
        *,
        account: ZoomAccount,
        stage: str,
        error: ProviderError,
        attempt: int,
        max_attempts: int,
    ) -> AttemptFailure:
        suspended = error.is_credential_failure
        if suspended:
            self.pool.suspend(
                account.id,
                reason=f"{stage}:{error.error_code or error.status_code or 'credentials'}",
            )
            record_account_suspended(account.id)
        record_failover(account.id, stage=stage)

        log.warning(
            "meeting_create_attempt_failed",
            extra={
                "payload": {
                    "account_id": account.id,
                    "stage": stage,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "status": error.status_code,
                    "error_code": error.error_code,
                    "suspended": suspended,
                    "error": error.message[:300],
                }
            },
        )
        return AttemptFailure(
            account_id=account.id,
            stage=stage,
            code=error.code,
            message=error.message[:300],
            status_code=error.status_code,
            suspended=suspended,
        )

    def create_meeting(self, request: MeetingRequest) -> MeetingResult:
        max_attempts = self.pool.size
        if max_attempts == 0:
            raise NoAccountsAvailableError(
                "Пул Zoom аккаунтов пуст", details={"total_accounts": 0}
            )

        attempts = 0
        excluded: set[str] = set()
        tried: list[str] = []
        failures: list[AttemptFailure] = []
        last_error: AppError | None = None

        log.info(
            "meeting_create_started",
            extra={"payload": {"max_attempts": max_attempts, "topic": request.topic}},
        )

        while attempts < max_attempts:
            # Selecting
            try:
                account = select_account(self.pool, excluded)
            except NoAccountsAvailableError as e:
                if not tried:
                    raise
                last_error = e
                break

            if account.id in excluded:
                log.warning(
                    "meeting_create_account_already_tried",
                    extra={"payload": {"account_id": account.id}},
                )
                attempts += 1
                continue

            excluded.add(account.id)
            tried.append(account.id)

            # Authenticating
            try:
                token = self.provider.get_token(account)
            except AuthError as e:
                attempts += 1
                last_error = e
                failures.append(
                    self._on_attempt_failed(
                        account=account,
                        stage="auth",
                        error=e,
                        attempt=attempts,
                        max_attempts=max_attempts,
                    )
                )
                continue

            # Creating
            try:
                result = self.provider.create_meeting(account, token, request)
            except ProviderError as e:
                attempts += 1
                last_error = e
                failures.append(
                    self._on_attempt_failed(
                        account=account,
                        stage="create",
                        error=e,
                        attempt=attempts,
                        max_attempts=max_attempts,
                    )
                )
                continue

            # Succeeded
            active = self.pool.record_meeting_started(account.id)
            record_meeting_created(account.id)
            result.account_used = account.id
            log.info(
                "meeting_create_success",
                extra={
                    "payload": {
                        "account_id": account.id,
                        "meeting_id": result.meeting_id,
                        "active_meetings": active,
                        "attempts": attempts + 1,
                    }
                },
            )
            return result

        # Exhausted
        record_exhausted()
        log.error(
            "meeting_create_exhausted",
            extra={
                "payload": {
                    "tried_accounts": tried,
                    "attempts": attempts,
                    "available_accounts": len(self.pool.available_accounts()),
                }
            },
        )
        raise ExhaustedError(tried_accounts=tried, failures=failures, last_error=last_error)

    def end_meeting(self, meeting_id: str, account_id: str) -> EndResult:
        """
        Завершение привязано к аккаунту, который создавал встречу: без failover.
        """
        account = self.pool.get_account_by_id(account_id)
        token = self.provider.get_token(account)
        result = self.provider.end_meeting(account, token, meeting_id)

        active = self.pool.record_meeting_ended(account.id)
        record_meeting_ended(account.id, already_ended=result.already_ended)
        log.info(
            "meeting_end_success",
            extra={
                "payload": {
                    "account_id": account.id,
                    "meeting_id": meeting_id,
                    "already_ended": result.already_ended,
                    "active_meetings": active,
                }
            },
        )
        return result
