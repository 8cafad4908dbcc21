"""
Balance delta reconciliation.

Turns positional pre/post account pairs into the net per-mint change for
one wallet. Wrapped SOL held in the wallet's token accounts is folded into
the wallet's native SOL change so the user sees a single SOL entry.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..core.token_account import NATIVE_MINT
from ..parser.token_registry import TokenMetadataService
from .snapshot import AccountPair

logger = logging.getLogger(__name__)


@dataclass
class AssetDelta:
    """Net change of one asset for one wallet. ``raw_delta`` is never zero."""
    mint: str
    raw_delta: int
    decimals: int
    display_amount: float
    icon_uri: str = ""
    symbol: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "mint": self.mint,
            "rawDelta": self.raw_delta,
            "decimals": self.decimals,
            "displayAmount": self.display_amount,
            "symbol": self.symbol,
            "name": self.name,
            "iconUri": self.icon_uri,
        }


@dataclass
class WalletBalanceChange:
    wallet: str
    acquired: List[AssetDelta] = field(default_factory=list)
    disposed: List[AssetDelta] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.acquired or self.disposed)

    def to_dict(self) -> Dict:
        return {
            "wallet": self.wallet,
            "acquired": [a.to_dict() for a in self.acquired],
            "disposed": [a.to_dict() for a in self.disposed],
        }


def token_deltas(pairs: Iterable[AccountPair], wallet: str) -> Dict[str, int]:
    """
    Sum token balance changes per mint for accounts the wallet owns.

    Ownership is taken from the pre-state record. Accounts without
    post-state (closed during the simulation) are skipped.
    """
    totals: Dict[str, int] = {}
    for pair in pairs:
        if pair.pre is None or pair.pre.token is None:
            continue
        pre_token = pair.pre.token
        if pre_token.owner != wallet:
            continue
        if pair.post is None or pair.post.token is None:
            logger.debug("No post-state token record for %s, skipping", pair.address)
            continue

        delta = pair.post.token.amount - pre_token.amount
        if delta == 0:
            continue
        totals[pre_token.mint] = totals.get(pre_token.mint, 0) + delta
    return totals


def native_delta(pairs: Iterable[AccountPair], wallet: str) -> int:
    """Change of the wallet's own lamport balance, 0 if either side is missing."""
    for pair in pairs:
        if pair.address != wallet:
            continue
        if pair.pre is None or pair.post is None:
            return 0
        return pair.post.native_balance - pair.pre.native_balance
    return 0


def compute_mint_totals(pairs: List[AccountPair], wallet: str) -> Dict[str, int]:
    """
    Net nonzero change per mint for ``wallet``.

    Wrapped SOL token changes and the native lamport change are combined
    under the native mint.
    """
    totals = token_deltas(pairs, wallet)
    wrapped = totals.pop(NATIVE_MINT, 0)
    combined = native_delta(pairs, wallet) + wrapped

    totals = {mint: delta for mint, delta in totals.items() if delta != 0}
    if combined != 0:
        totals[NATIVE_MINT] = combined
    return totals


async def build_wallet_balance_change(
    totals: Dict[str, int],
    wallet: str,
    metadata: TokenMetadataService,
) -> WalletBalanceChange:
    """Attach metadata to each mint total and sort it into acquired or disposed."""
    change = WalletBalanceChange(wallet=wallet)
    for mint, raw_delta in totals.items():
        if raw_delta == 0:
            continue
        info = await metadata.resolve(mint)
        asset = AssetDelta(
            mint=mint,
            raw_delta=raw_delta,
            decimals=info.decimals,
            display_amount=raw_delta / (10 ** info.decimals),
            icon_uri=info.icon_uri,
            symbol=info.symbol,
            name=info.name,
        )
        if raw_delta > 0:
            change.acquired.append(asset)
        else:
            change.disposed.append(asset)
    return change
