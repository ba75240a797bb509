"""
LedgerEvent — уведомления об успешных операциях

Append-only журнал: события только добавляются ledger'ом и читаются
снаружи. Внутри ledger события никогда не потребляются.

Полная совместимость с JSON Schema (contracts/schema/ledger_event.json).
"""

from enum import Enum

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Тип уведомления."""

    DEPOSIT_SUCCESSFUL = "DepositSuccessful"
    WITHDRAWAL_SUCCESSFUL = "WithdrawalSuccessful"


class LedgerEvent(BaseModel):
    """
    Уведомление об успешной операции.

    sequence — монотонный номер события внутри ledger (0, 1, 2, ...).
    Событие публикуется только после успешного перевода, поэтому номера
    не пропускаются.
    """

    sequence: int = Field(..., ge=0, description="Порядковый номер события")
    event_type: LedgerEventType = Field(..., description="Тип уведомления")
    account: str = Field(..., min_length=1, description="Идентификатор счёта")
    amount: int = Field(..., gt=0, description="Сумма операции")

    model_config = {"frozen": True}


def deposit_successful(sequence: int, account: str, amount: int) -> LedgerEvent:
    return LedgerEvent(
        sequence=sequence,
        event_type=LedgerEventType.DEPOSIT_SUCCESSFUL,
        account=account,
        amount=amount,
    )


def withdrawal_successful(sequence: int, account: str, amount: int) -> LedgerEvent:
    return LedgerEvent(
        sequence=sequence,
        event_type=LedgerEventType.WITHDRAWAL_SUCCESSFUL,
        account=account,
        amount=amount,
    )
