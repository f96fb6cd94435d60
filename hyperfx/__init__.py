"""
HyperFX Core

Bootstrap and accounting arithmetic for a foreign-exchange branch running on
a double-entry ledger engine: deterministic system account identifiers,
idempotent account provisioning and house-favoring currency conversion
using Decimal.
"""

__version__ = "1.0.0"
