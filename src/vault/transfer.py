"""Payment channel — исходящий перевод средств получателю.

Ledger делегирует фактическое перемещение средств внешнему каналу и
получает синхронный ответ: True (успех) или False (отказ). Канал является
недоверенным кодом: получатель может попытаться повторно войти в ledger
во время перевода.

Retry/queueing на стороне канала не моделируется.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentChannel(Protocol):
    """Контракт канала исходящих переводов."""

    def transfer(self, recipient: str, amount: int) -> bool:
        ...


@dataclass(frozen=True)
class TransferRecord:
    """Одна попытка перевода."""

    recipient: str
    amount: int
    succeeded: bool


class RecordingPaymentChannel:
    """Канал, записывающий все попытки переводов.

    По умолчанию все переводы успешны. Отказы:
    - fail_next(n): следующие n переводов вернут False
    - fail_always=True: все переводы вернут False
    """

    def __init__(self, fail_always: bool = False):
        self.fail_always = fail_always
        self._pending_failures = 0
        self._records: List[TransferRecord] = []
        self._lock = threading.Lock()

    def fail_next(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        with self._lock:
            self._pending_failures += count

    def transfer(self, recipient: str, amount: int) -> bool:
        with self._lock:
            if self.fail_always:
                succeeded = False
            elif self._pending_failures > 0:
                self._pending_failures -= 1
                succeeded = False
            else:
                succeeded = True
            self._records.append(TransferRecord(recipient, amount, succeeded))

        logger.debug(
            "payment_channel.transfer recipient=%s amount=%d succeeded=%s",
            recipient, amount, succeeded,
        )
        return succeeded

    @property
    def records(self) -> List[TransferRecord]:
        with self._lock:
            return list(self._records)

    def total_paid(self, recipient: str) -> int:
        """Сумма успешных переводов получателю."""
        with self._lock:
            return sum(
                r.amount for r in self._records
                if r.recipient == recipient and r.succeeded
            )

    def paid_by_recipient(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        with self._lock:
            for r in self._records:
                if r.succeeded:
                    totals[r.recipient] = totals.get(r.recipient, 0) + r.amount
        return totals


class CallbackPaymentChannel:
    """Канал, делегирующий перевод произвольной функции.

    Используется для моделирования недоверенного получателя, например
    попытки reentrancy: callback может вызвать ledger.withdraw() повторно.
    """

    def __init__(self, callback: Callable[[str, int], bool]):
        self._callback = callback

    def transfer(self, recipient: str, amount: int) -> bool:
        return bool(self._callback(recipient, amount))
