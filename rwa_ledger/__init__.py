"""
rwa_ledger - Compliance-Gated Real-World-Asset Ledger

Fractional ownership of real-world assets as fungible units. Every
balance-changing operation is checked against identity verification and
pluggable rule modules before it takes effect.

Usage:
    from rwa_ledger import (
        Ledger, IdentityDirectory, ComplianceEngine, CountryRestriction,
        DividendDistributor,
    )

    identity = IdentityDirectory()
    identity.register("alice", 840)
    identity.register("bob", 826)

    engine = ComplianceEngine()
    engine.add_module(CountryRestriction(blocked=[408]))

    ledger = Ledger("fund", identity, engine)
    ledger.mint("alice", 1_000)
    ledger.transfer("alice", "bob", 250)

    distributor = DividendDistributor(ledger)
    div_id = distributor.deposit_dividend(10_000)
    distributor.claim("bob", div_id)
"""

# Core types
from .core import (
    LedgerView,
    RuleModule,
    Action,
    TransferIntent,
    Decision,
    LedgerEntry,
    Rejection,
    validate_amount,
    validate_holder,
    DEFAULT_LEDGER_EPOCH,
    DAY,
    MONTH,
    MAX_CLAIMS_PER_CALL,
    MAX_EVENTS_SCANNED_PER_CALL,
    MAX_JURISDICTION_CODE,
    LedgerError,
    IdentityNotVerified,
    AddressFrozen,
    InsufficientUnfrozenBalance,
    InsufficientFrozenBalance,
    ComplianceRejected,
    InvalidSnapshotId,
    InvalidDividendId,
    AlreadyClaimed,
    BelowMinimumAcceptable,
    ExceedsMaxSupply,
    Paused,
    NotPaused,
    AlreadyRegistered,
    AlreadyBound,
    NotBound,
    ModuleNotFound,
    Unauthorized,
    HolderNotRegistered,
    HolderRemoved,
    InsufficientAssetCapacity,
    AssetNotRegistered,
)

# Capabilities
from .capabilities import (
    Capability,
    Authorizer,
    requires,
    capability_table,
    required_capability,
)

# Identity
from .identity import (
    HolderRecord,
    ClaimVerifier,
    IdentityDirectory,
    validate_jurisdiction,
)

# Rule modules
from .modules import (
    CountryRestriction,
    MaxBalance,
    TransferLimit,
    COUNTRY_RESTRICTED,
    MAX_BALANCE_EXCEEDED,
    DAILY_LIMIT_EXCEEDED,
    MONTHLY_LIMIT_EXCEEDED,
)

# Compliance, ledger, snapshots, assets
from .compliance import ComplianceEngine
from .ledger import Ledger
from .snapshots import SnapshotStore, Checkpoints
from .assets import AssetRecord, AssetSubledger

# Dividends
from .dividends import (
    DividendEvent,
    DividendDistributor,
    compute_dividend_share,
)

# Reporting
from .reporting import (
    investor_report,
    jurisdictional_report,
    ownership_distribution,
    violation_report,
    holder_statistics,
    export_report,
)


__all__ = [
    # Core
    'LedgerView', 'RuleModule', 'Action', 'TransferIntent', 'Decision',
    'LedgerEntry', 'Rejection', 'validate_amount', 'validate_holder',
    'DEFAULT_LEDGER_EPOCH', 'DAY', 'MONTH', 'MAX_CLAIMS_PER_CALL', 'MAX_EVENTS_SCANNED_PER_CALL',
    'MAX_JURISDICTION_CODE',
    # Exceptions
    'LedgerError', 'IdentityNotVerified', 'AddressFrozen',
    'InsufficientUnfrozenBalance', 'InsufficientFrozenBalance',
    'ComplianceRejected', 'InvalidSnapshotId', 'InvalidDividendId',
    'AlreadyClaimed', 'BelowMinimumAcceptable', 'ExceedsMaxSupply', 'Paused',
    'NotPaused', 'AlreadyRegistered', 'AlreadyBound', 'NotBound',
    'ModuleNotFound', 'Unauthorized', 'HolderNotRegistered', 'HolderRemoved',
    'InsufficientAssetCapacity', 'AssetNotRegistered',
    # Capabilities
    'Capability', 'Authorizer', 'requires', 'capability_table', 'required_capability',
    # Identity
    'HolderRecord', 'ClaimVerifier', 'IdentityDirectory', 'validate_jurisdiction',
    # Rule modules
    'CountryRestriction', 'MaxBalance', 'TransferLimit',
    'COUNTRY_RESTRICTED', 'MAX_BALANCE_EXCEEDED', 'DAILY_LIMIT_EXCEEDED',
    'MONTHLY_LIMIT_EXCEEDED',
    # Ledger
    'ComplianceEngine', 'Ledger', 'SnapshotStore', 'Checkpoints',
    'AssetRecord', 'AssetSubledger',
    # Dividends
    'DividendEvent', 'DividendDistributor', 'compute_dividend_share',
    # Reporting
    'investor_report', 'jurisdictional_report', 'ownership_distribution',
    'violation_report', 'holder_statistics', 'export_report',
]

__version__ = '1.0.0'
