"""
Таксономия ошибок ledger.

Каждый вид ошибки фатален только для одной операции: состояние ledger
после отказа идентично состоянию до вызова.

deposit/withdraw возвращают вид ошибки в OperationResult; исключения
ниже используются конструктором и OperationResult.raise_for_error().
"""

from enum import Enum
from typing import Dict, Type


class LedgerErrorKind(str, Enum):
    """Закрытый набор причин отказа операции."""

    INVALID_AMOUNT = "InvalidAmount"
    BANK_CAP_EXCEEDED = "BankCapExceeded"
    WITHDRAWAL_THRESHOLD_EXCEEDED = "WithdrawalThresholdExceeded"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    TRANSFER_FAILED = "TransferFailed"
    INVALID_CONSTRUCTOR_PARAMS = "InvalidConstructorParams"


class LedgerError(Exception):
    """Базовое исключение ledger. Несёт kind для точного различения причин."""

    kind: LedgerErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)


class InvalidAmount(LedgerError):
    kind = LedgerErrorKind.INVALID_AMOUNT


class BankCapExceeded(LedgerError):
    kind = LedgerErrorKind.BANK_CAP_EXCEEDED


class WithdrawalThresholdExceeded(LedgerError):
    kind = LedgerErrorKind.WITHDRAWAL_THRESHOLD_EXCEEDED


class InsufficientBalance(LedgerError):
    kind = LedgerErrorKind.INSUFFICIENT_BALANCE


class TransferFailed(LedgerError):
    kind = LedgerErrorKind.TRANSFER_FAILED


class InvalidConstructorParams(LedgerError):
    kind = LedgerErrorKind.INVALID_CONSTRUCTOR_PARAMS


_ERRORS_BY_KIND: Dict[LedgerErrorKind, Type[LedgerError]] = {
    cls.kind: cls
    for cls in (
        InvalidAmount,
        BankCapExceeded,
        WithdrawalThresholdExceeded,
        InsufficientBalance,
        TransferFailed,
        InvalidConstructorParams,
    )
}


def error_for_kind(kind: LedgerErrorKind, message: str = "") -> LedgerError:
    """Экземпляр исключения, соответствующий виду ошибки."""
    return _ERRORS_BY_KIND[kind](message)
