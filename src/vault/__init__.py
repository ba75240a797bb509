"""Vault — custodial ledger нативной валюты.

- VaultLedger: балансы, лимиты bank_cap / withdrawal_threshold, возврат
  вывода при отказе перевода
- PaymentChannel: внешний канал исходящих переводов
- check_invariants: проверка инвариантов по снапшоту
- scenario: воспроизведение сценариев (CLI)
"""

from .config import VaultConfig, load_vault_config
from .invariants import InvariantReport, check_invariants
from .ledger import LedgerOperation, OperationResult, VaultLedger
from .transfer import (
    CallbackPaymentChannel,
    PaymentChannel,
    RecordingPaymentChannel,
    TransferRecord,
)

__all__ = [
    "VaultLedger",
    "OperationResult",
    "LedgerOperation",
    "VaultConfig",
    "load_vault_config",
    "PaymentChannel",
    "RecordingPaymentChannel",
    "CallbackPaymentChannel",
    "TransferRecord",
    "InvariantReport",
    "check_invariants",
]
