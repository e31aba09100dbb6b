"""Domain models and pure logic for balance aggregation.

This package holds the in-memory records describing tracked accounts, the
balances reported for them and the organization/asset portfolio they fold
into. Nothing here performs I/O, so the aggregation rules can be tested
without any provider or price source.
"""

__all__ = [
    "accounts",
    "balances",
    "portfolio",
    "pricing",
]
