"""Конфигурация vault ledger.

Источники:
- JSON файл (валидируется contracts/schema/vault_config.json)
- переменные окружения VAULT_BANK_CAP, VAULT_WITHDRAWAL_THRESHOLD, VAULT_LOG_LEVEL

Нулевые caps на уровне конфигурации допустимы: отказ по ним —
InvalidConstructorParams при создании VaultLedger.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from src.core.contracts import validate_vault_config
from src.core.domain.amounts import validate_amount

logger = logging.getLogger(__name__)

ENV_BANK_CAP = "VAULT_BANK_CAP"
ENV_WITHDRAWAL_THRESHOLD = "VAULT_WITHDRAWAL_THRESHOLD"
ENV_LOG_LEVEL = "VAULT_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(env: Mapping[str, str], name: str) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        raise ValueError(f"Missing required environment variable {name}")
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class VaultConfig:
    """Конфигурация ledger.

    bank_cap: глобальный лимит суммы на хранении
    withdrawal_threshold: максимальная сумма одного вывода
    log_level: уровень логирования для CLI (ядро handlers не настраивает)
    """

    bank_cap: int
    withdrawal_threshold: int
    log_level: str = "INFO"

    def __post_init__(self):
        validate_amount(self.bank_cap, "bank_cap")
        validate_amount(self.withdrawal_threshold, "withdrawal_threshold")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {_LOG_LEVELS}, got {self.log_level!r}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultConfig":
        validate_vault_config(data)
        return cls(
            bank_cap=data["bank_cap"],
            withdrawal_threshold=data["withdrawal_threshold"],
            log_level=data.get("log_level", "INFO"),
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "VaultConfig":
        env = os.environ if env is None else env
        return cls(
            bank_cap=_env_int(env, ENV_BANK_CAP),
            withdrawal_threshold=_env_int(env, ENV_WITHDRAWAL_THRESHOLD),
            log_level=env.get(ENV_LOG_LEVEL, "INFO").strip().upper() or "INFO",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bank_cap": self.bank_cap,
            "withdrawal_threshold": self.withdrawal_threshold,
            "log_level": self.log_level,
        }


def load_vault_config(path: Union[str, Path]) -> VaultConfig:
    """
    Загрузка конфигурации из JSON файла.

    Raises:
        FileNotFoundError: Если файл не найден
        json.JSONDecodeError: Если файл не является валидным JSON
        jsonschema.ValidationError: Если данные не соответствуют схеме
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = VaultConfig.from_dict(data)
    logger.debug("vault_config.loaded path=%s config=%s", path, config)
    return config
