"""Domain models and algorithms for the validator accounting engine.

This package contains in-memory (Pydantic) records for rewards, fees, costs and
transfers, plus the pure builders that turn them into categorized ledgers,
timelines, tax rows and position reconciliations. They are independent from
persistence models so that business logic and testing can evolve without DB
coupling.
"""

__all__ = [
    "addresses",
    "base_types",
    "categorize",
    "coverage",
    "expenses",
    "positions",
    "pricing",
    "records",
    "sources",
    "stake_state",
    "tax_ledger",
    "timeline",
    "validator_config",
]
