"""Exceptions raised by the balance-change simulator."""

from typing import Any, List, Optional


class SimDeltaError(Exception):
    """Base class for all simdelta errors."""


class ConfigError(SimDeltaError):
    """Invalid configuration value."""


class TransactionDecodeError(SimDeltaError):
    """The transaction could not be decoded."""


class UnsupportedTransactionFormat(TransactionDecodeError):
    """The base64 prefix matches neither the legacy nor the versioned format."""


class RpcError(SimDeltaError):
    """The RPC node answered with an error payload or a bad HTTP status."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class SimulationError(SimDeltaError):
    """
    The simulation produced no usable post-state.

    Raised for transport failures and for responses without an account
    list. A transaction that merely fails on-chain is not an error; it is
    reported through ``SimulationOutcome.success``.
    """

    def __init__(
        self,
        message: str,
        err: Any = None,
        logs: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.err = err
        self.logs = logs or []
