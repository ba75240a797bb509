"""
Contract Validation Module

Модуль для валидации JSON контрактов vault ledger.
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    VaultConfigValidator,
    VaultScenarioValidator,
    validate_vault_config,
    validate_vault_scenario,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "VaultConfigValidator",
    "VaultScenarioValidator",
    # Functions
    "validate_vault_config",
    "validate_vault_scenario",
]
