"""
LedgerState — снапшоты состояния custodial ledger

Immutable Pydantic модели:
- BankStats: счётчики операций и total_deposited (getBankStats)
- LedgerSnapshot: полный консистентный снимок (caps, счётчики, балансы)

Полная совместимость с JSON Schema
(contracts/schema/bank_stats.json, contracts/schema/ledger_snapshot.json).
"""

from typing import Dict

from pydantic import BaseModel, Field

from .amounts import UINT256_MAX


class BankStats(BaseModel):
    """
    Снапшот агрегированных счётчиков ledger.

    Все три значения взяты под одной блокировкой.
    """

    deposit_count: int = Field(..., ge=0, description="Число успешных депозитов")
    withdrawal_count: int = Field(..., ge=0, description="Число успешных выводов")
    total_deposited: int = Field(
        ..., ge=0, le=UINT256_MAX, description="Сумма всех балансов"
    )

    model_config = {"frozen": True}


class LedgerSnapshot(BaseModel):
    """
    Полный снапшот ledger.

    Содержит:
    - Неизменяемые caps (bank_cap, withdrawal_threshold)
    - Счётчики (stats)
    - Балансы всех счетов, когда-либо вносивших депозит
    - Число событий в журнале уведомлений

    Модель намеренно НЕ проверяет инварианты (sum(balances) == total и т.д.):
    снапшот должен уметь отражать и нарушенное состояние, чтобы его
    мог диагностировать check_invariants().
    """

    bank_cap: int = Field(..., ge=0, le=UINT256_MAX, description="Глобальный лимит")
    withdrawal_threshold: int = Field(
        ..., ge=0, le=UINT256_MAX, description="Лимит одного вывода"
    )
    stats: BankStats = Field(..., description="Счётчики ledger")
    balances: Dict[str, int] = Field(
        default_factory=dict, description="Балансы по счетам"
    )
    event_count: int = Field(0, ge=0, description="Длина журнала событий")

    model_config = {"frozen": True}

    @property
    def remaining_capacity(self) -> int:
        return self.bank_cap - self.stats.total_deposited
