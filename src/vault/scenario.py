#!/usr/bin/env python3
"""
Scenario runner — воспроизведение последовательности операций над ledger.

Сценарий (JSON, contracts/schema/vault_scenario.json):
    {
      "name": "cap-and-threshold",
      "config": {"bank_cap": 100, "withdrawal_threshold": 10},
      "steps": [
        {"op": "deposit", "account": "A", "amount": 60, "expect": "ok"},
        {"op": "deposit", "account": "A", "amount": 50, "expect": "BankCapExceeded"},
        {"op": "fail_next_transfer"},
        {"op": "withdraw", "account": "A", "amount": 10, "expect": "TransferFailed"}
      ]
    }

После каждого шага проверяются инварианты ledger.

Usage:
    python -m src.vault.scenario run scenario.json
    python -m src.vault.scenario run scenario.json --json

Exit codes:
    0 — все ожидания выполнены, инварианты не нарушены
    1 — ожидание не выполнено или нарушен инвариант
    2 — некорректный сценарий
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import jsonschema
import pydantic
from pydantic import BaseModel, Field

from src.core.contracts import validate_vault_scenario
from src.core.domain.errors import InvalidConstructorParams
from src.core.domain.ledger_state import LedgerSnapshot
from src.vault.config import VaultConfig
from src.vault.invariants import InvariantReport, check_invariants
from src.vault.ledger import OperationResult, VaultLedger
from src.vault.transfer import RecordingPaymentChannel

logger = logging.getLogger(__name__)

EXPECT_OK = "ok"


# =============================================================================
# SCENARIO MODEL
# =============================================================================


class ScenarioOp(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    FAIL_NEXT_TRANSFER = "fail_next_transfer"


class ScenarioStep(BaseModel):
    """Один шаг сценария. expect=None — результат не проверяется."""

    op: ScenarioOp
    account: Optional[str] = Field(None, min_length=1)
    amount: Optional[int] = Field(None, ge=0)
    expect: Optional[str] = None

    model_config = {"frozen": True}


class Scenario(BaseModel):
    name: str = ""
    config: Dict[str, Any]
    steps: List[ScenarioStep] = Field(default_factory=list)

    model_config = {"frozen": True}

    def vault_config(self) -> VaultConfig:
        return VaultConfig.from_dict(self.config)


def load_scenario(path: Union[str, Path]) -> Scenario:
    """
    Загрузка и валидация сценария.

    Raises:
        FileNotFoundError, json.JSONDecodeError,
        jsonschema.ValidationError, pydantic.ValidationError
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    validate_vault_scenario(data)
    return Scenario.model_validate(data)


# =============================================================================
# REPORT
# =============================================================================


@dataclass(frozen=True)
class StepOutcome:
    index: int
    step: ScenarioStep
    result: Optional[OperationResult]
    expectation_met: bool

    @property
    def outcome(self) -> str:
        if self.result is None:
            return EXPECT_OK
        return EXPECT_OK if self.result.success else self.result.error.value


@dataclass(frozen=True)
class ScenarioReport:
    name: str
    outcomes: List[StepOutcome]
    snapshot: LedgerSnapshot
    invariants: InvariantReport
    paid_out: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.invariants.ok and all(o.expectation_met for o in self.outcomes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ok": self.ok,
            "steps": [
                {
                    "index": o.index,
                    "op": o.step.op.value,
                    "account": o.step.account,
                    "amount": o.step.amount,
                    "expect": o.step.expect,
                    "outcome": o.outcome,
                    "expectation_met": o.expectation_met,
                }
                for o in self.outcomes
            ],
            "snapshot": self.snapshot.model_dump(mode="json"),
            "invariants": {
                "ok": self.invariants.ok,
                "violations": list(self.invariants.violations),
            },
            "paid_out": dict(self.paid_out),
        }


# =============================================================================
# RUNNER
# =============================================================================


def run_scenario(scenario: Scenario) -> ScenarioReport:
    """
    Выполнение сценария на новом ledger.

    Инварианты проверяются после каждого шага; в отчёт попадает первое
    нарушение (или итоговая проверка, если нарушений не было).

    Raises:
        InvalidConstructorParams: если config содержит нулевой лимит
    """
    channel = RecordingPaymentChannel()
    ledger = VaultLedger.from_config(scenario.vault_config(), channel)

    outcomes: List[StepOutcome] = []
    first_violation: Optional[InvariantReport] = None

    for index, step in enumerate(scenario.steps):
        result: Optional[OperationResult] = None

        if step.op == ScenarioOp.FAIL_NEXT_TRANSFER:
            channel.fail_next()
        elif step.op == ScenarioOp.DEPOSIT:
            result = ledger.deposit(step.account, step.amount)
        else:
            result = ledger.withdraw(step.account, step.amount)

        outcome = StepOutcome(index=index, step=step, result=result, expectation_met=True)
        if step.expect is not None and outcome.outcome != step.expect:
            outcome = StepOutcome(index=index, step=step, result=result, expectation_met=False)
            logger.warning(
                "vault_scenario.expectation_not_met step=%d expected=%s actual=%s",
                index, step.expect, outcome.outcome,
            )
        outcomes.append(outcome)

        report = check_invariants(ledger.snapshot())
        if not report.ok and first_violation is None:
            first_violation = report

    return ScenarioReport(
        name=scenario.name,
        outcomes=outcomes,
        snapshot=ledger.snapshot(),
        invariants=first_violation or check_invariants(ledger.snapshot()),
        paid_out=channel.paid_by_recipient(),
    )


# =============================================================================
# CLI
# =============================================================================


def _print_report(report: ScenarioReport) -> None:
    print(f"Scenario: {report.name or '<unnamed>'}")
    for o in report.outcomes:
        marker = "OK  " if o.expectation_met else "FAIL"
        target = f" {o.step.account} {o.step.amount}" if o.step.account else ""
        expect = f" (expected {o.step.expect})" if o.step.expect else ""
        print(f"  [{marker}] #{o.index} {o.step.op.value}{target} -> {o.outcome}{expect}")

    stats = report.snapshot.stats
    print(
        f"Stats: deposits={stats.deposit_count} withdrawals={stats.withdrawal_count} "
        f"total_deposited={stats.total_deposited} "
        f"remaining_capacity={report.snapshot.remaining_capacity}"
    )
    print(f"Invariants: {report.invariants.details}")


def cmd_run(args: argparse.Namespace) -> int:
    try:
        scenario = load_scenario(args.scenario)
        config = scenario.vault_config()
    except (OSError, json.JSONDecodeError, jsonschema.ValidationError,
            pydantic.ValidationError, ValueError) as e:
        print(f"ERROR: invalid scenario {args.scenario}: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=getattr(logging, args.log_level or config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = run_scenario(scenario)
    except InvalidConstructorParams as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        _print_report(report)

    return 0 if report.ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay vault ledger scenarios and check ledger invariants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run a scenario file")
    run_parser.add_argument("scenario", type=Path, help="Path to scenario JSON")
    run_parser.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    run_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override log level from scenario config",
    )

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
