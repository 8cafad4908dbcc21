"""Token Registry: resolves mint addresses to display metadata."""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import DEFAULT_METADATA_URL
from ..core.token_account import NATIVE_MINT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenMetadata:
    mint: str
    decimals: int
    symbol: Optional[str] = None
    name: Optional[str] = None
    icon_uri: str = ""


NATIVE_TOKEN = TokenMetadata(
    mint=NATIVE_MINT,
    decimals=9,
    symbol="SOL",
    name="Wrapped SOL",
    icon_uri=(
        "https://raw.githubusercontent.com/solana-labs/token-list/main/assets/"
        "mainnet/So11111111111111111111111111111111111111112/logo.png"
    ),
)


def short_mint(mint: str) -> str:
    return f"{mint[:4]}...{mint[-4:]}"


def fallback_metadata(mint: str) -> TokenMetadata:
    """Placeholder used when a lookup fails."""
    return TokenMetadata(mint=mint, decimals=0, symbol=short_mint(mint), icon_uri="")


class TokenMetadataCache:
    """
    Mint -> TokenMetadata cache.

    Unbounded by default. With ``max_entries`` set, the least recently
    used mint is evicted once the cache is full.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or None
        self._entries: "OrderedDict[str, TokenMetadata]" = OrderedDict()

    def get(self, mint: str) -> Optional[TokenMetadata]:
        info = self._entries.get(mint)
        if info is not None:
            self._entries.move_to_end(mint)
        return info

    def put(self, info: TokenMetadata) -> None:
        if info.mint in self._entries:
            self._entries.move_to_end(info.mint)
            return
        self._entries[info.mint] = info
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted token metadata for %s", evicted)

    def __contains__(self, mint: str) -> bool:
        return mint in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_default_cache: Optional[TokenMetadataCache] = None


def default_cache(max_entries: Optional[int] = None) -> TokenMetadataCache:
    """
    Process-wide cache, created on first use with the given bound.

    The first call fixes the bound; later calls asking for a different one
    get the existing cache and a warning.
    """
    global _default_cache
    if _default_cache is None:
        _default_cache = TokenMetadataCache(max_entries=max_entries)
    elif (max_entries or None) != _default_cache.max_entries:
        logger.warning(
            "Token metadata cache already created with max_entries=%s, ignoring %s",
            _default_cache.max_entries,
            max_entries,
        )
    return _default_cache


class TokenMetadataService:
    """
    Looks up token metadata over HTTP, with caching.

    The native mint is answered from a static entry. Successful lookups are
    cached; failed ones return placeholder metadata and are retried on the
    next call.
    """

    def __init__(
        self,
        cache: Optional[TokenMetadataCache] = None,
        url_template: str = DEFAULT_METADATA_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            cache: Shared cache (a fresh unbounded one if not provided)
            url_template: Lookup URL with a ``{mint}`` placeholder
            client: HTTP client to reuse; one is created per lookup otherwise
            timeout: Request timeout in seconds for self-created clients
        """
        self.cache = cache if cache is not None else TokenMetadataCache()
        self.url_template = url_template
        self.client = client
        self.timeout = timeout

    async def _fetch(self, mint: str) -> dict:
        url = self.url_template.format(mint=mint)
        if self.client is not None:
            response = await self.client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        response.raise_for_status()
        return response.json()

    async def resolve(self, mint: str) -> TokenMetadata:
        if mint == NATIVE_MINT:
            return NATIVE_TOKEN

        cached = self.cache.get(mint)
        if cached is not None:
            return cached

        try:
            data = await self._fetch(mint)
            info = TokenMetadata(
                mint=mint,
                decimals=int(data.get("decimals") or 0),
                symbol=data.get("symbol") or "",
                name=data.get("name") or "",
                icon_uri=data.get("logoURI") or "",
            )
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Token metadata lookup failed for %s: %s", mint, e)
            return fallback_metadata(mint)

        self.cache.put(info)
        return info
