"""Transaction Analyzer: which accounts does a transaction touch, and who pays."""

import base64
import binascii
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

from ..errors import TransactionDecodeError, UnsupportedTransactionFormat

logger = logging.getLogger(__name__)


class TransactionFormat(Enum):
    """Wire format of a serialized transaction."""
    LEGACY = "legacy"
    VERSIONED = "versioned"


# Base64 prefixes of the serialized bytes, i.e. the leading signature count
# byte of an unsigned or zero-signature transaction.
FORMAT_PREFIXES = {
    "AQ": TransactionFormat.VERSIONED,
    "Ag": TransactionFormat.LEGACY,
}


@dataclass
class EnumeratedTransaction:
    """
    Accounts a transaction can touch, in the order used for simulation.

    The order of ``accounts`` is the order post-state is requested in, so
    index ``i`` of the simulation response belongs to ``accounts[i]``.
    """
    format: TransactionFormat
    accounts: List[str]
    primary_wallet: str


def detect_format(tx_base64: str) -> TransactionFormat:
    """
    Pick the wire format from the first two base64 characters.

    Raises:
        UnsupportedTransactionFormat: For any other prefix
    """
    fmt = FORMAT_PREFIXES.get(tx_base64.strip()[:2])
    if fmt is None:
        raise UnsupportedTransactionFormat(
            f"Unsupported transaction format (prefix {tx_base64[:2]!r})"
        )
    return fmt


def _decode_base64(tx_base64: str) -> bytes:
    try:
        return base64.b64decode(tx_base64.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise TransactionDecodeError(f"Invalid base64 transaction: {e}") from e


def _unique(keys: Iterable[Pubkey]) -> List[str]:
    seen = set()
    ordered = []
    for key in keys:
        key_str = str(key)
        if key_str not in seen:
            seen.add(key_str)
            ordered.append(key_str)
    return ordered


def _with_wallet(accounts: List[str], wallet: str) -> List[str]:
    # The fee payer is always observed so its native balance can be diffed.
    if wallet not in accounts:
        return accounts + [wallet]
    return accounts


def enumerate_legacy(tx_bytes: bytes) -> EnumeratedTransaction:
    """
    Enumerate a legacy transaction.

    Accounts are those referenced by any instruction, in order of first
    appearance. The primary wallet is the first signer.
    """
    try:
        tx = Transaction.from_bytes(tx_bytes)
    except Exception as e:
        raise TransactionDecodeError(f"Could not decode legacy transaction: {e}") from e

    message = tx.message
    keys = message.account_keys
    if not keys:
        raise TransactionDecodeError("Legacy transaction has no account keys")

    referenced = []
    for ix in message.instructions:
        for index in ix.accounts:
            if index >= len(keys):
                raise TransactionDecodeError(
                    f"Instruction references account index {index} of {len(keys)}"
                )
            referenced.append(keys[index])

    primary_wallet = str(keys[0])
    return EnumeratedTransaction(
        format=TransactionFormat.LEGACY,
        accounts=_with_wallet(_unique(referenced), primary_wallet),
        primary_wallet=primary_wallet,
    )


def enumerate_versioned(tx_bytes: bytes) -> EnumeratedTransaction:
    """
    Enumerate a versioned transaction.

    Accounts are the static account keys. Address lookup tables are not
    resolved; accounts loaded through them are not diffed. The primary
    wallet is the first static key.
    """
    try:
        tx = VersionedTransaction.from_bytes(tx_bytes)
    except Exception as e:
        raise TransactionDecodeError(f"Could not decode versioned transaction: {e}") from e

    keys = tx.message.account_keys
    if not keys:
        raise TransactionDecodeError("Versioned transaction has no account keys")

    primary_wallet = str(keys[0])
    return EnumeratedTransaction(
        format=TransactionFormat.VERSIONED,
        accounts=_with_wallet(_unique(keys), primary_wallet),
        primary_wallet=primary_wallet,
    )


_ENUMERATORS = {
    TransactionFormat.LEGACY: enumerate_legacy,
    TransactionFormat.VERSIONED: enumerate_versioned,
}


def enumerate_accounts(tx_base64: str) -> EnumeratedTransaction:
    """
    Extract the accounts and primary wallet of a base64 encoded transaction.

    Args:
        tx_base64: Base64 encoded transaction string

    Raises:
        TransactionDecodeError: If the format is unknown or the bytes are malformed
    """
    fmt = detect_format(tx_base64)
    logger.info("Detected %s transaction", fmt.value)
    enumerated = _ENUMERATORS[fmt](_decode_base64(tx_base64))
    logger.info(
        "Transaction involves %d unique accounts, primary wallet %s",
        len(enumerated.accounts),
        enumerated.primary_wallet,
    )
    return enumerated
