"""Preview the wallet balance changes of a Solana transaction before broadcasting it."""

from .core.simulator import BalanceChangeSimulator, SimulationOutcome, simulate_balance_changes
from .errors import (
    SimDeltaError,
    ConfigError,
    TransactionDecodeError,
    UnsupportedTransactionFormat,
    RpcError,
    SimulationError,
)
from .state.reconcile import AssetDelta, WalletBalanceChange

__version__ = "0.1.0"
