"""
Rule modules - Pluggable compliance policies.

Every module implements the RuleModule protocol from core.py:
- CountryRestriction: blocks recipients from restricted jurisdictions
- MaxBalance: caps the balance a holder may reach
- TransferLimit: daily and monthly outgoing allowances per sender

All modules and their reason codes are re-exported here for convenience.
"""

from .country_restriction import (
    CountryRestriction,
    COUNTRY_RESTRICTED,
)

from .max_balance import (
    MaxBalance,
    MAX_BALANCE_EXCEEDED,
)

from .transfer_limit import (
    TransferLimit,
    Limits,
    Window,
    effective_spent,
    add_to_window,
    DAILY_LIMIT_EXCEEDED,
    MONTHLY_LIMIT_EXCEEDED,
)


__all__ = [
    'CountryRestriction',
    'COUNTRY_RESTRICTED',
    'MaxBalance',
    'MAX_BALANCE_EXCEEDED',
    'TransferLimit',
    'Limits',
    'Window',
    'effective_spent',
    'add_to_window',
    'DAILY_LIMIT_EXCEEDED',
    'MONTHLY_LIMIT_EXCEEDED',
]
