"""RPC access, transaction decoding and the simulation pipeline."""

from .rpc import SolanaRpcClient
from .token_account import TokenRecord, decode_token_account, NATIVE_MINT, TOKEN_PROGRAM_ID, ACCOUNT_SIZE
from .tx_analyzer import EnumeratedTransaction, TransactionFormat, detect_format, enumerate_accounts
