"""
Domain models and value objects.

Contains fundamental ledger entities: amounts, error kinds, events, snapshots.
"""

from src.core.domain.amounts import (
    UINT256_MAX,
    checked_add,
    fits_under_cap,
    validate_amount,
)
from src.core.domain.errors import (
    BankCapExceeded,
    InsufficientBalance,
    InvalidAmount,
    InvalidConstructorParams,
    LedgerError,
    LedgerErrorKind,
    TransferFailed,
    WithdrawalThresholdExceeded,
    error_for_kind,
)
from src.core.domain.events import (
    LedgerEvent,
    LedgerEventType,
    deposit_successful,
    withdrawal_successful,
)
from src.core.domain.ledger_state import BankStats, LedgerSnapshot

__all__ = [
    # Amounts module
    "UINT256_MAX",
    "validate_amount",
    "checked_add",
    "fits_under_cap",
    # Errors
    "LedgerErrorKind",
    "LedgerError",
    "InvalidAmount",
    "BankCapExceeded",
    "WithdrawalThresholdExceeded",
    "InsufficientBalance",
    "TransferFailed",
    "InvalidConstructorParams",
    "error_for_kind",
    # Events
    "LedgerEvent",
    "LedgerEventType",
    "deposit_successful",
    "withdrawal_successful",
    # State snapshots
    "BankStats",
    "LedgerSnapshot",
]
