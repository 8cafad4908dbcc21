"""SPL token account layout."""

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey


TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
NATIVE_MINT = "So11111111111111111111111111111111111111112"

# mint(32) owner(32) amount(8) delegate(36) state(1) is_native(12)
# delegated_amount(8) close_authority(36)
ACCOUNT_SIZE = 165


@dataclass(frozen=True)
class TokenRecord:
    """The parts of a token account the balance diff cares about."""
    mint: str
    owner: str
    amount: int


def is_token_account(owner: str, data: bytes) -> bool:
    return owner == TOKEN_PROGRAM_ID and len(data) == ACCOUNT_SIZE


def decode_token_account(data: bytes) -> TokenRecord:
    """
    Decode mint, owner and amount from raw token account data.

    Raises:
        ValueError: If the buffer is not exactly one token account long
    """
    if len(data) != ACCOUNT_SIZE:
        raise ValueError(f"Expected {ACCOUNT_SIZE} bytes, got {len(data)}")
    mint = Pubkey.from_bytes(data[0:32])
    owner = Pubkey.from_bytes(data[32:64])
    amount = struct.unpack_from("<Q", data, 64)[0]
    return TokenRecord(mint=str(mint), owner=str(owner), amount=amount)

