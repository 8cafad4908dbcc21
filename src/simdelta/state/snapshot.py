"""
Account snapshots before and after a simulated transaction.

Pre-state comes from ``getAccountInfo`` for each account; post-state comes
from ``simulateTransaction`` with an explicit account list. Both are paired
positionally into ``AccountPair`` records so later stages never have to
re-derive which response entry belongs to which address.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp

from ..core.rpc import SolanaRpcClient
from ..core.token_account import TokenRecord, decode_token_account, is_token_account
from ..errors import RpcError, SimulationError

logger = logging.getLogger(__name__)


@dataclass
class AccountSnapshot:
    """State of one account at one point in time."""
    native_balance: int
    owner: str = ""
    token: Optional[TokenRecord] = None


@dataclass
class AccountPair:
    """One enumerated account with its pre and post state (None if unavailable)."""
    address: str
    pre: Optional[AccountSnapshot] = None
    post: Optional[AccountSnapshot] = None


@dataclass
class SnapshotSet:
    """Everything collected for one transaction."""
    pairs: List[AccountPair]
    err: Any = None
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.err is None


def _account_data(value: Dict[str, Any]) -> bytes:
    data = value.get("data")
    if isinstance(data, list):
        if not data or (len(data) > 1 and data[1] != "base64"):
            return b""
        data = data[0]
    if not data:
        return b""
    return base64.b64decode(data)


def parse_account(value: Optional[Dict[str, Any]]) -> Optional[AccountSnapshot]:
    """
    Convert an RPC account object into a snapshot.

    A token record is attached only for token-program accounts of the
    exact token account size. Anything else is a plain account.
    """
    if value is None:
        return None

    owner = value.get("owner") or ""
    snapshot = AccountSnapshot(native_balance=int(value.get("lamports") or 0), owner=owner)

    try:
        data = _account_data(value)
    except (binascii.Error, ValueError) as e:
        logger.warning("Error decoding account data: %s", e)
        return snapshot

    if is_token_account(owner, data):
        try:
            snapshot.token = decode_token_account(data)
        except ValueError as e:
            logger.warning("Error decoding token account: %s", e)
    return snapshot


class SnapshotCollector:
    """
    Collects pre and post snapshots for an enumerated account list.
    """

    def __init__(self, rpc: SolanaRpcClient, commitment: str = "confirmed"):
        """
        Args:
            rpc: JSON-RPC client for the ledger
            commitment: Commitment level for reads and the simulation
        """
        self.rpc = rpc
        self.commitment = commitment

    async def _fetch_one(self, address: str) -> Optional[AccountSnapshot]:
        try:
            value = await self.rpc.get_account_info(address, self.commitment)
        except (RpcError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Error fetching account %s: %s", address, e)
            return None
        return parse_account(value)

    async def fetch_pre_snapshots(self, accounts: List[str]) -> Dict[str, Optional[AccountSnapshot]]:
        """Fetch current state for every account; failures map to None."""
        snapshots = await asyncio.gather(*(self._fetch_one(a) for a in accounts))
        return dict(zip(accounts, snapshots))

    def simulation_options(self, accounts: List[str]) -> Dict[str, Any]:
        return {
            "encoding": "base64",
            "commitment": self.commitment,
            "sigVerify": False,
            "replaceRecentBlockhash": True,
            "accounts": {
                "encoding": "base64",
                "addresses": list(accounts),
            },
        }

    async def simulate(self, tx_base64: str, accounts: List[str]) -> Dict[str, Any]:
        """
        Simulate the transaction, requesting post-state for ``accounts`` in order.

        Raises:
            SimulationError: On transport failure
        """
        logger.info("Simulating transaction...")
        try:
            return await self.rpc.simulate_transaction(
                tx_base64, self.simulation_options(accounts)
            )
        except (RpcError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SimulationError(f"Simulation request failed: {e}") from e

    async def collect(self, tx_base64: str, accounts: List[str]) -> SnapshotSet:
        """
        Build the positional pre/post pairs for one transaction.

        Raises:
            SimulationError: If the simulation fails transport-side, returns no
                account data, or returns a different number of accounts
        """
        pre = await self.fetch_pre_snapshots(accounts)
        value = await self.simulate(tx_base64, accounts)

        err = value.get("err")
        logs = value.get("logs") or []
        post_accounts = value.get("accounts")
        if post_accounts is None:
            raise SimulationError(
                f"Simulation did not return account data (err: {err})",
                err=err,
                logs=logs,
            )
        if len(post_accounts) != len(accounts):
            raise SimulationError(
                f"Simulation returned {len(post_accounts)} accounts, expected {len(accounts)}",
                err=err,
                logs=logs,
            )

        pairs = [
            AccountPair(address=address, pre=pre.get(address), post=parse_account(post))
            for address, post in zip(accounts, post_accounts)
        ]
        if err is not None:
            logger.info("Simulation reported failure: %s", err)
        return SnapshotSet(
            pairs=pairs,
            err=err,
            logs=logs,
            units_consumed=value.get("unitsConsumed"),
        )
