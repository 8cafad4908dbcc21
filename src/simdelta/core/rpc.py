"""
Async Solana JSON-RPC client.

Only the handful of methods the balance-change pipeline needs:
account lookups and transaction simulation.
"""

import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import RpcError

logger = logging.getLogger(__name__)


class SolanaRpcClient:
    """
    Simple async Solana RPC client.

    Can be used as an async context manager to share one HTTP session
    across calls; otherwise each call opens its own session.
    """

    def __init__(self, rpc_url: str, timeout: float = 30.0):
        """
        Initialize RPC client.

        Args:
            rpc_url: RPC endpoint URL
            timeout: Total timeout per request, in seconds
        """
        self.rpc_url = rpc_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._request_id = 0
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "SolanaRpcClient":
        self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _post(self, session: aiohttp.ClientSession, payload: dict) -> dict:
        async with session.post(self.rpc_url, json=payload) as response:
            if response.status != 200:
                text = await response.text()
                raise RpcError(f"HTTP {response.status} from {self.rpc_url}: {text[:200]}")
            try:
                body = await response.json(content_type=None)
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise RpcError(f"Invalid JSON from {self.rpc_url}: {e}") from e
        if not isinstance(body, dict):
            raise RpcError(f"Unexpected JSON-RPC response from {self.rpc_url}: {body!r:.200}")
        return body

    async def _call(self, method: str, params: list = None) -> Any:
        """Make an RPC call."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        logger.debug("rpc %s id=%d", method, self._request_id)

        if self._session is not None:
            result = await self._post(self._session, payload)
        else:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                result = await self._post(session, payload)

        if "error" in result:
            error = result["error"] or {}
            if not isinstance(error, dict):
                error = {"message": error}
            raise RpcError(
                f"RPC error: {error.get('message', error)}",
                code=error.get("code"),
            )
        value = result.get("result")
        if value is not None and not isinstance(value, dict):
            raise RpcError(f"Unexpected {method} result: {value!r:.200}")
        return value

    async def get_account_info(
        self,
        pubkey: str,
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account info with base64 encoded data.

        Returns:
            The account object, or None if the account does not exist
        """
        config: Dict[str, Any] = {"encoding": "base64"}
        if commitment:
            config["commitment"] = commitment
        result = await self._call("getAccountInfo", [pubkey, config])
        return (result or {}).get("value")

    async def simulate_transaction(self, tx: str, options: dict = None) -> Dict[str, Any]:
        """
        Simulate a base64 encoded transaction.

        Returns:
            The ``value`` object of the response (err, logs, accounts, ...)
        """
        params = [tx]
        if options:
            params.append(options)
        result = await self._call("simulateTransaction", params)
        return (result or {}).get("value") or {}
