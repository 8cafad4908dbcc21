"""Shared fixtures and fakes for the simulator tests."""

import base64
import struct
from typing import Any, Dict, List, Optional

import httpx
import pytest
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from simdelta.core.token_account import ACCOUNT_SIZE, TOKEN_PROGRAM_ID
from simdelta.parser.token_registry import TokenMetadataCache, TokenMetadataService

SYSTEM_PROGRAM = "11111111111111111111111111111111"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def new_address() -> str:
    return str(Pubkey.new_unique())


def encode_token_account(mint: str, owner: str, amount: int) -> bytes:
    """Build a minimal initialized token account buffer."""
    data = bytearray(ACCOUNT_SIZE)
    data[0:32] = bytes(Pubkey.from_string(mint))
    data[32:64] = bytes(Pubkey.from_string(owner))
    struct.pack_into("<Q", data, 64, amount)
    data[108] = 1  # AccountState::Initialized
    return bytes(data)


def token_account_value(mint: str, owner: str, amount: int, lamports: int = 2039280) -> dict:
    data = base64.b64encode(encode_token_account(mint, owner, amount)).decode()
    return {
        "lamports": lamports,
        "owner": TOKEN_PROGRAM_ID,
        "data": [data, "base64"],
        "executable": False,
        "rentEpoch": 0,
    }


def system_account_value(lamports: int) -> dict:
    return {
        "lamports": lamports,
        "owner": SYSTEM_PROGRAM,
        "data": ["", "base64"],
        "executable": False,
        "rentEpoch": 0,
    }


def legacy_tx_base64(payer: Keypair, cosigner: Keypair, accounts: List[str]) -> str:
    """Unsigned legacy transaction with two signers (base64 prefix 'Ag')."""
    ix = Instruction(
        Pubkey.new_unique(),
        bytes([1]),
        [AccountMeta(cosigner.pubkey(), True, True)]
        + [AccountMeta(Pubkey.from_string(a), False, True) for a in accounts],
    )
    message = Message.new_with_blockhash([ix], payer.pubkey(), Hash.default())
    return base64.b64encode(bytes(Transaction.new_unsigned(message))).decode()


def versioned_tx_base64(payer: Keypair, accounts: List[str], program: Optional[Pubkey] = None) -> str:
    """Unsigned v0 transaction with one signer (base64 prefix 'AQ')."""
    ix = Instruction(
        program or Pubkey.new_unique(),
        bytes([2]),
        [AccountMeta(payer.pubkey(), True, True)]
        + [AccountMeta(Pubkey.from_string(a), False, True) for a in accounts],
    )
    message = MessageV0.try_compile(payer.pubkey(), [ix], [], Hash.default())
    tx = VersionedTransaction.populate(message, [Signature.default()])
    return base64.b64encode(bytes(tx)).decode()


class FakeRpcClient:
    """
    Stands in for SolanaRpcClient.

    ``pre`` maps address -> account object (or an exception to raise).
    ``simulation`` is the ``value`` object returned by simulate_transaction.
    """

    def __init__(self, pre: Dict[str, Any], simulation: Any = None, simulate_error: Exception = None):
        self.pre = pre
        self.simulation = simulation if simulation is not None else {}
        self.simulate_error = simulate_error
        self.account_calls: List[str] = []
        self.simulate_calls: List[tuple] = []

    async def get_account_info(self, pubkey: str, commitment: Optional[str] = None):
        self.account_calls.append(pubkey)
        value = self.pre.get(pubkey)
        if isinstance(value, Exception):
            raise value
        return value

    async def simulate_transaction(self, tx: str, options: dict = None):
        self.simulate_calls.append((tx, options))
        if self.simulate_error is not None:
            raise self.simulate_error
        return self.simulation

    def simulation_for(self, addresses: List[str], post: Dict[str, Any], err: Any = None) -> None:
        """Set a simulation response with post-state in ``addresses`` order."""
        self.simulation = {
            "err": err,
            "logs": ["Program log: fake"],
            "accounts": [post.get(a) for a in addresses],
            "unitsConsumed": 1234,
        }


def metadata_handler(tokens: Dict[str, dict], calls: Optional[list] = None):
    def handler(request: httpx.Request) -> httpx.Response:
        mint = request.url.path.rsplit("/", 1)[-1]
        if calls is not None:
            calls.append(mint)
        if mint in tokens:
            return httpx.Response(200, json=tokens[mint])
        return httpx.Response(404, json={"error": "not found"})
    return handler


KNOWN_TOKENS = {
    USDC_MINT: {
        "address": USDC_MINT,
        "name": "USD Coin",
        "symbol": "USDC",
        "decimals": 6,
        "logoURI": "https://example.com/usdc.png",
    },
    BONK_MINT: {
        "address": BONK_MINT,
        "name": "Bonk",
        "symbol": "Bonk",
        "decimals": 5,
        "logoURI": "https://example.com/bonk.png",
    },
}


@pytest.fixture
def metadata_calls():
    return []


@pytest.fixture
def metadata_service(metadata_calls):
    client = httpx.AsyncClient(transport=httpx.MockTransport(metadata_handler(KNOWN_TOKENS, metadata_calls)))
    return TokenMetadataService(
        cache=TokenMetadataCache(),
        url_template="https://tokens.test/token/{mint}",
        client=client,
    )
