"""VaultLedger — custodial ledger нативной валюты.

Держатели счетов вносят средства на индивидуальные балансы у одного
custodian и выводят только со своего баланса. Два независимых лимита:
- bank_cap: глобальный лимит суммы на хранении (total_deposited <= bank_cap)
- withdrawal_threshold: максимальная сумма одной операции вывода

Порядок внутри каждой мутирующей операции (checks-effects-interactions):
1. Все проверки (без мутаций)
2. Мутация собственного состояния
3. Внешнее взаимодействие (перевод через PaymentChannel) — только в withdraw

Атомарность:
- Один threading.RLock на ledger: операции не перемежаются
- При отказе перевода withdraw возвращает только собственные эффекты
  (баланс, total_deposited, withdrawal_count). Reentrant операции, завершённые
  получателем во время перевода, остаются в силе: их выплаты уже сделаны
- Reentrant вызов видит уже уменьшенный баланс (защита от double-spend)
- Сумма незавершённого вывода считается удерживаемой для проверки bank_cap,
  поэтому её возврат не может превысить лимит

Инварианты после каждой успешной операции:
- total_deposited == sum(balances.values())
- total_deposited <= bank_cap
- balances[a] >= 0 для любого a
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from src.core.domain.amounts import fits_under_cap, validate_amount
from src.core.domain.errors import (
    InvalidConstructorParams,
    LedgerErrorKind,
    error_for_kind,
)
from src.core.domain.events import (
    LedgerEvent,
    LedgerEventType,
    deposit_successful,
    withdrawal_successful,
)
from src.core.domain.ledger_state import BankStats, LedgerSnapshot
from src.vault.config import VaultConfig
from src.vault.transfer import PaymentChannel, RecordingPaymentChannel

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT
# =============================================================================


class LedgerOperation(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class OperationResult:
    """Результат мутирующей операции ledger.

    success=False означает, что состояние ledger не изменилось.
    """

    success: bool
    operation: LedgerOperation
    account: str
    amount: int
    error: Optional[LedgerErrorKind]

    # Баланс счёта после операции (при отказе: баланс до вызова)
    balance_after: int

    # Детали
    details: str

    def raise_for_error(self) -> None:
        """Поднять LedgerError соответствующего вида, если операция отклонена."""
        if self.error is not None:
            raise error_for_kind(self.error, self.details)


# =============================================================================
# LEDGER
# =============================================================================


class VaultLedger:
    """Custodial ledger с двумя лимитами и возвратом вывода при отказе перевода.

    Порядок проверок deposit:
    1. amount == 0 → InvalidAmount
    2. total_deposited + незавершённые выводы + amount > bank_cap → BankCapExceeded

    Порядок проверок withdraw:
    1. amount == 0 → InvalidAmount
    2. amount > withdrawal_threshold → WithdrawalThresholdExceeded
    3. amount > balance → InsufficientBalance
    4. отказ перевода → TransferFailed (возврат эффектов этого вывода)
    """

    def __init__(
        self,
        bank_cap: int,
        withdrawal_threshold: int,
        payment_channel: Optional[PaymentChannel] = None,
    ):
        """
        Args:
            bank_cap: глобальный лимит суммы на хранении (> 0)
            withdrawal_threshold: лимит одного вывода (> 0)
            payment_channel: канал исходящих переводов
                (default: RecordingPaymentChannel)

        Raises:
            InvalidConstructorParams: если любой из лимитов равен нулю
            TypeError, ValueError: если лимит не является беззнаковой суммой
        """
        validate_amount(bank_cap, "bank_cap")
        validate_amount(withdrawal_threshold, "withdrawal_threshold")

        if bank_cap == 0 or withdrawal_threshold == 0:
            raise InvalidConstructorParams(
                f"bank_cap and withdrawal_threshold must be positive, "
                f"got bank_cap={bank_cap}, withdrawal_threshold={withdrawal_threshold}"
            )

        self._bank_cap = bank_cap
        self._withdrawal_threshold = withdrawal_threshold
        self._payment_channel = (
            payment_channel if payment_channel is not None else RecordingPaymentChannel()
        )

        self._balances: Dict[str, int] = {}
        self._total_deposited = 0
        self._deposit_count = 0
        self._withdrawal_count = 0
        self._events: List[LedgerEvent] = []

        self._lock = threading.RLock()
        # Сумма выводов, ожидающих результата перевода (ненулевая только
        # внутри withdraw, т.е. видна лишь reentrant вызовам)
        self._in_flight_withdrawals = 0

        logger.info(
            "vault_ledger.created bank_cap=%d withdrawal_threshold=%d",
            bank_cap, withdrawal_threshold,
        )

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        payment_channel: Optional[PaymentChannel] = None,
    ) -> "VaultLedger":
        return cls(
            bank_cap=config.bank_cap,
            withdrawal_threshold=config.withdrawal_threshold,
            payment_channel=payment_channel,
        )

    # ------------------------------------------------------------------
    # Immutable parameters
    # ------------------------------------------------------------------

    @property
    def bank_cap(self) -> int:
        return self._bank_cap

    @property
    def withdrawal_threshold(self) -> int:
        return self._withdrawal_threshold

    @property
    def payment_channel(self) -> PaymentChannel:
        return self._payment_channel

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def deposit(self, caller: str, amount: int) -> OperationResult:
        """Внесение amount на баланс caller.

        amount — сумма, приложенная к вызову; её подлинность гарантирует
        вызывающая сторона (граница системы), а не ledger.
        """
        _validate_caller(caller)
        validate_amount(amount)

        with self._lock:
            error = self._check_deposit(amount)
            if error is not None:
                return self._reject(LedgerOperation.DEPOSIT, caller, amount, error)

            balance_after = self._balances.get(caller, 0) + amount
            self._balances[caller] = balance_after
            self._total_deposited += amount
            self._deposit_count += 1
            self._events.append(deposit_successful(len(self._events), caller, amount))

            logger.info(
                "vault_ledger.deposit account=%s amount=%d balance=%d total=%d",
                caller, amount, balance_after, self._total_deposited,
            )
            return OperationResult(
                success=True,
                operation=LedgerOperation.DEPOSIT,
                account=caller,
                amount=amount,
                error=None,
                balance_after=balance_after,
                details=f"PASS: deposited {amount}, total={self._total_deposited}",
            )

    def withdraw(self, caller: str, amount: int) -> OperationResult:
        """Вывод amount с баланса caller.

        Мутация выполняется ДО перевода. При отказе перевода возвращаются
        только эффекты этого вывода, событие не публикуется. Операции,
        выполненные получателем reentrant во время перевода, не откатываются.
        """
        _validate_caller(caller)
        validate_amount(amount)

        with self._lock:
            error = self._check_withdraw(caller, amount)
            if error is not None:
                return self._reject(LedgerOperation.WITHDRAW, caller, amount, error)

            # Effects
            self._balances[caller] -= amount
            self._total_deposited -= amount
            self._withdrawal_count += 1
            self._in_flight_withdrawals += amount

            # Interaction
            transferred = False
            try:
                transferred = self._transfer(caller, amount)
            finally:
                self._in_flight_withdrawals -= amount
                if not transferred:
                    self._restore_withdrawal(caller, amount)

            if not transferred:
                logger.warning(
                    "vault_ledger.transfer_failed; restored account=%s amount=%d",
                    caller, amount,
                )
                return self._reject(
                    LedgerOperation.WITHDRAW, caller, amount,
                    LedgerErrorKind.TRANSFER_FAILED,
                )

            self._events.append(withdrawal_successful(len(self._events), caller, amount))

            balance_after = self._balances.get(caller, 0)
            logger.info(
                "vault_ledger.withdraw account=%s amount=%d balance=%d total=%d",
                caller, amount, balance_after, self._total_deposited,
            )
            return OperationResult(
                success=True,
                operation=LedgerOperation.WITHDRAW,
                account=caller,
                amount=amount,
                error=None,
                balance_after=balance_after,
                details=f"PASS: withdrew {amount}, total={self._total_deposited}",
            )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def get_my_balance(self, caller: str) -> int:
        with self._lock:
            return self._balances.get(caller, 0)

    def get_bank_stats(self) -> BankStats:
        with self._lock:
            return BankStats(
                deposit_count=self._deposit_count,
                withdrawal_count=self._withdrawal_count,
                total_deposited=self._total_deposited,
            )

    def get_remaining_capacity(self) -> int:
        # held <= bank_cap поддерживается deposit'ом; вне withdraw held == total_deposited
        with self._lock:
            return self._bank_cap - self._held()

    def get_events(
        self,
        event_type: Optional[LedgerEventType] = None,
        account: Optional[str] = None,
    ) -> List[LedgerEvent]:
        """Журнал уведомлений с опциональной фильтрацией."""
        with self._lock:
            return [
                e for e in self._events
                if (event_type is None or e.event_type == event_type)
                and (account is None or e.account == account)
            ]

    def snapshot(self) -> LedgerSnapshot:
        """Консистентный снимок всего состояния ledger."""
        with self._lock:
            return LedgerSnapshot(
                bank_cap=self._bank_cap,
                withdrawal_threshold=self._withdrawal_threshold,
                stats=BankStats(
                    deposit_count=self._deposit_count,
                    withdrawal_count=self._withdrawal_count,
                    total_deposited=self._total_deposited,
                ),
                balances=dict(self._balances),
                event_count=len(self._events),
            )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _check_deposit(self, amount: int) -> Optional[LedgerErrorKind]:
        if amount == 0:
            return LedgerErrorKind.INVALID_AMOUNT
        if not fits_under_cap(self._held(), amount, self._bank_cap):
            return LedgerErrorKind.BANK_CAP_EXCEEDED
        return None

    def _held(self) -> int:
        # Незавершённые выводы всё ещё занимают место под bank_cap
        return self._total_deposited + self._in_flight_withdrawals

    def _check_withdraw(self, caller: str, amount: int) -> Optional[LedgerErrorKind]:
        if amount == 0:
            return LedgerErrorKind.INVALID_AMOUNT
        if amount > self._withdrawal_threshold:
            return LedgerErrorKind.WITHDRAWAL_THRESHOLD_EXCEEDED
        if amount > self._balances.get(caller, 0):
            return LedgerErrorKind.INSUFFICIENT_BALANCE
        return None

    def _reject(
        self,
        operation: LedgerOperation,
        caller: str,
        amount: int,
        error: LedgerErrorKind,
    ) -> OperationResult:
        balance = self._balances.get(caller, 0)
        logger.info(
            "vault_ledger.%s_rejected account=%s amount=%d reason=%s",
            operation.value, caller, amount, error.value,
        )
        return OperationResult(
            success=False,
            operation=operation,
            account=caller,
            amount=amount,
            error=error,
            balance_after=balance,
            details=(
                f"{error.value}: {operation.value} of {amount} rejected "
                f"(balance={balance}, total={self._total_deposited}, "
                f"bank_cap={self._bank_cap}, "
                f"withdrawal_threshold={self._withdrawal_threshold})"
            ),
        )

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def _transfer(self, recipient: str, amount: int) -> bool:
        """Перевод через внешний канал. Исключение канала — это отказ перевода."""
        try:
            return bool(self._payment_channel.transfer(recipient, amount))
        except Exception:
            logger.exception(
                "vault_ledger.transfer_raised recipient=%s amount=%d",
                recipient, amount,
            )
            return False

    # ------------------------------------------------------------------
    # Compensation
    # ------------------------------------------------------------------

    def _restore_withdrawal(self, caller: str, amount: int) -> None:
        """Возврат эффектов одного неудавшегося вывода.

        Reentrant операции, завершённые во время перевода, не затрагиваются.
        bank_cap не нарушается: сумма удерживалась в _in_flight_withdrawals.
        """
        self._balances[caller] += amount
        self._total_deposited += amount
        self._withdrawal_count -= 1


def _validate_caller(caller: str) -> None:
    if not isinstance(caller, str):
        raise TypeError(f"caller must be str, got {type(caller).__name__}")
    if not caller:
        raise ValueError("caller must be non-empty")
