"""Account snapshots and balance delta reconciliation."""

from .snapshot import (
    AccountSnapshot,
    AccountPair,
    SnapshotSet,
    SnapshotCollector,
    parse_account,
)
from .reconcile import (
    AssetDelta,
    WalletBalanceChange,
    compute_mint_totals,
    build_wallet_balance_change,
)
