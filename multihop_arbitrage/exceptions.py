"""
Exception hierarchy for the multi-hop arbitrage system.

Quoting-stage errors (RpcError, DecimalMismatchError, FeedUnavailableError,
MissingRateError) abort the evaluation cycle with no side effects.
Execution-stage errors carry the recovery context needed by an operator
and are never retried automatically.
"""

from typing import Any, Dict, List, Optional, Sequence


class MultiHopArbitrageError(Exception):
    """Base exception for all multi-hop arbitrage related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(MultiHopArbitrageError):
    """Raised when the static token/pool/path configuration is invalid."""

    pass


class RpcError(MultiHopArbitrageError):
    """Raised when a chain endpoint is unreachable or a contract call reverts."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        endpoint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.chain = chain
        self.endpoint = endpoint


class DecimalMismatchError(MultiHopArbitrageError):
    """Raised when a token's decimals are unset or outside the supported range."""

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        decimals: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.token = token
        self.decimals = decimals


class FeedUnavailableError(MultiHopArbitrageError):
    """Raised when the USD reference feed fails or answers only partially."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        missing: Optional[Sequence[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.missing = sorted(missing) if missing else []


class MissingRateError(MultiHopArbitrageError):
    """Raised when a path hop has no conversion rate covering it."""

    def __init__(
        self,
        message: str,
        token_in: Optional[str] = None,
        token_out: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.token_in = token_in
        self.token_out = token_out


class SwapExecutionError(MultiHopArbitrageError):
    """Raised when a swap hop fails to submit or confirm."""

    def __init__(
        self,
        message: str,
        failed_index: int,
        completed: Optional[List[Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.failed_index = failed_index
        self.completed = list(completed or [])


class PartialExecutionError(SwapExecutionError):
    """
    Raised when a hop fails after at least one earlier hop confirmed.

    Confirmed hops are not rolled back, so funds may sit in an intermediate
    token. ``completed`` holds the receipts of the confirmed hops.
    """

    pass
