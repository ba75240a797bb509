"""
JSON Schema Contract Validators

Проверка JSON данных vault ledger по формальным контрактам (Draft 2020-12).

Схемы (contracts/schema/):
- vault_config.json: конфигурация ledger (проверяется при загрузке)
- vault_scenario.json: сценарий для scenario runner (проверяется при загрузке)
- ledger_event.json, bank_stats.json, ledger_snapshot.json: форма
  выходных данных ledger; проверяются через ContractValidator(имя схемы)
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# contracts/schema относительно корня проекта (4 уровня вверх от этого файла)
DEFAULT_SCHEMA_DIR = Path(__file__).resolve().parents[3] / "contracts" / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик и кэш JSON Schema файлов.

    Каждая схема проходит meta-validation перед первым использованием.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        """
        Args:
            schema_dir: Каталог со схемами (default: contracts/schema проекта)

        Raises:
            RuntimeError: Если каталог не существует
        """
        self._schema_dir = Path(schema_dir) if schema_dir is not None else DEFAULT_SCHEMA_DIR
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка схемы по имени (без расширения .json).

        Returns:
            Схема как dict (один и тот же объект при повторных вызовах)

        Raises:
            FileNotFoundError: Если файл схемы не найден
            json.JSONDecodeError: Если файл не является валидным JSON
            ValueError: Если файл не является валидной JSON Schema
        """
        cached = self._schemas.get(schema_name)
        if cached is not None:
            return cached

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.is_file():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        schema = json.loads(schema_path.read_text(encoding="utf-8"))

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_path.name}: {e.message}") from e

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Валидатор данных по одному контракту.

    Пример:
        ContractValidator("ledger_snapshot").validate(ledger.snapshot().model_dump(mode="json"))
    """

    def __init__(self, schema_name: str, loader: Optional[SchemaLoader] = None):
        """
        Args:
            schema_name: Имя схемы в каталоге loader'а
            loader: Загрузчик схем (default: общий для модуля)
        """
        self.schema_name = schema_name
        self.schema = (loader or _SCHEMA_LOADER).load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Первое найденное нарушение контракта
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        """Все нарушения контракта (пусто, если данные валидны)."""
        return self.validator.iter_errors(data)


class VaultConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("vault_config")


class VaultScenarioValidator(ContractValidator):
    """
    Валидатор сценария.

    Проверяет форму шагов (account/amount обязательны для deposit/withdraw);
    допустимость сумм как uint256 проверяется там же, в схеме.
    """

    def __init__(self):
        super().__init__("vault_scenario")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_vault_config(data: Dict[str, Any]) -> None:
    """
    Валидация vault_config данных.

    Args:
        data: Конфигурация, прочитанная из JSON

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    VaultConfigValidator().validate(data)


def validate_vault_scenario(data: Dict[str, Any]) -> None:
    """
    Валидация vault_scenario данных.

    Args:
        data: Сценарий, прочитанный из JSON

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    VaultScenarioValidator().validate(data)
