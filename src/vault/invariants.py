"""Проверка инвариантов ledger по снапшоту.

Инварианты:
- total_deposited == sum(balances.values())
- total_deposited <= bank_cap
- balances[a] >= 0 для любого счёта
- bank_cap > 0 и withdrawal_threshold > 0
"""

import logging
from dataclasses import dataclass, field
from typing import List

from src.core.domain.ledger_state import LedgerSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvariantReport:
    """Результат проверки инвариантов."""

    ok: bool
    violations: List[str] = field(default_factory=list)

    @property
    def details(self) -> str:
        if self.ok:
            return "PASS: all ledger invariants hold"
        return "FAIL: " + "; ".join(self.violations)


def check_invariants(snapshot: LedgerSnapshot) -> InvariantReport:
    violations: List[str] = []

    total = snapshot.stats.total_deposited
    balance_sum = sum(snapshot.balances.values())

    if total != balance_sum:
        violations.append(
            f"total_deposited_mismatch: total_deposited={total} sum(balances)={balance_sum}"
        )

    if total > snapshot.bank_cap:
        violations.append(
            f"bank_cap_exceeded: total_deposited={total} bank_cap={snapshot.bank_cap}"
        )

    for account, balance in sorted(snapshot.balances.items()):
        if balance < 0:
            violations.append(f"negative_balance: account={account} balance={balance}")

    if snapshot.bank_cap <= 0:
        violations.append(f"non_positive_bank_cap: bank_cap={snapshot.bank_cap}")

    if snapshot.withdrawal_threshold <= 0:
        violations.append(
            f"non_positive_withdrawal_threshold: "
            f"withdrawal_threshold={snapshot.withdrawal_threshold}"
        )

    report = InvariantReport(ok=not violations, violations=violations)
    if not report.ok:
        logger.error("vault_invariants.violated %s", report.details)
    return report
