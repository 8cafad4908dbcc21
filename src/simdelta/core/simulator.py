"""
Balance change simulator.

Enumerates a transaction's accounts, snapshots them before and after a
dry-run simulation, and reports what the primary wallet gains and loses.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Settings
from ..parser.token_registry import TokenMetadataCache, TokenMetadataService, default_cache
from ..state.reconcile import (
    WalletBalanceChange,
    build_wallet_balance_change,
    compute_mint_totals,
)
from ..state.snapshot import SnapshotCollector
from .rpc import SolanaRpcClient
from .tx_analyzer import TransactionFormat, enumerate_accounts

logger = logging.getLogger(__name__)


@dataclass
class SimulationOutcome:
    """Result of simulating one transaction."""
    wallet_balance_change: WalletBalanceChange
    success: bool
    format: Optional[TransactionFormat] = None
    err: Any = None
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "walletBalanceChange": self.wallet_balance_change.to_dict(),
            "success": self.success,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


class BalanceChangeSimulator:
    """
    Single entry point for legacy and versioned transactions.

    Both formats are reduced to the same enumerated account list and then
    share snapshot collection and reconciliation.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        metadata: Optional[TokenMetadataService] = None,
        commitment: str = "confirmed",
    ):
        """
        Initialize simulator.

        Args:
            rpc: JSON-RPC client used for account reads and the simulation
            metadata: Token metadata service (fresh cache if not provided)
            commitment: Commitment level for reads and the simulation
        """
        self.rpc = rpc
        self.metadata = metadata or TokenMetadataService()
        self.collector = SnapshotCollector(rpc, commitment=commitment)

    async def run(self, tx_base64: str) -> SimulationOutcome:
        """
        Simulate a base64 encoded transaction.

        Raises:
            TransactionDecodeError: If the transaction cannot be decoded
            SimulationError: If the simulation yields no usable post-state
        """
        enumerated = enumerate_accounts(tx_base64)
        snapshots = await self.collector.collect(tx_base64, enumerated.accounts)

        totals = compute_mint_totals(snapshots.pairs, enumerated.primary_wallet)
        change = await build_wallet_balance_change(
            totals, enumerated.primary_wallet, self.metadata
        )
        logger.info(
            "Wallet %s: %d acquired, %d disposed, success=%s",
            change.wallet,
            len(change.acquired),
            len(change.disposed),
            snapshots.success,
        )
        return SimulationOutcome(
            wallet_balance_change=change,
            success=snapshots.success,
            format=enumerated.format,
            err=snapshots.err,
            logs=snapshots.logs,
            units_consumed=snapshots.units_consumed,
        )


async def simulate_balance_changes(
    tx_base64: str,
    settings: Optional[Settings] = None,
    cache: Optional[TokenMetadataCache] = None,
) -> SimulationOutcome:
    """
    Run one simulation with clients built from ``settings``.

    Token metadata is cached process-wide unless ``cache`` is given.
    """
    settings = settings or Settings.from_env()
    if cache is None:
        cache = default_cache(settings.metadata_cache_size)
    metadata = TokenMetadataService(
        cache=cache,
        url_template=settings.metadata_url,
        timeout=settings.request_timeout,
    )
    async with SolanaRpcClient(settings.rpc_url, timeout=settings.request_timeout) as rpc:
        sim = BalanceChangeSimulator(rpc, metadata, commitment=settings.commitment)
        return await sim.run(tx_base64)
