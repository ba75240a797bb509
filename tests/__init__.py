"""
Test suite for vault-ledger

Contains:
- tests/unit/          : Unit tests for ledger, contracts, config and scenario runner
"""
