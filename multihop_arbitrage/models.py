"""
Core data types for multi-hop pool arbitrage.

Token and Pool are static configuration loaded once at startup. Every other
type is created fresh for a single evaluation cycle and discarded after use.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple

FORWARD_PATH = "forward"
REVERSE_PATH = "reverse"


@dataclass(frozen=True)
class Token:
    """
    An ERC-20 token deployed on one chain.

    Attributes:
        symbol: Asset symbol (e.g. "USDC"); the same symbol on two chains
            names the same asset
        address: Checksum address of the token contract
        decimals: Token decimals (0-18)
        chain: Name of the chain the contract lives on
    """

    symbol: str
    address: str
    decimals: Optional[int]
    chain: str

    @property
    def key(self) -> Tuple[str, str]:
        """Identity of the token: (chain, lowercase address)."""
        return (self.chain, self.address.lower())

    def __str__(self) -> str:
        return f"{self.symbol}@{self.chain}"


@dataclass(frozen=True)
class Pool:
    """
    A concentrated-liquidity pool trading token_a (token0) against token_b (token1).

    Attributes:
        name: Configuration name of the pool (e.g. "usdc_skl_europa")
        address: Checksum address of the pool contract
        chain: Chain the pool lives on
        token_a: The pool's token0
        token_b: The pool's token1
        fee: Fee tier in hundredths of a basis point (3000 = 0.30%)
    """

    name: str
    address: str
    chain: str
    token_a: Token
    token_b: Token
    fee: int

    def other(self, token: Token) -> Token:
        """Return the pool token that is not ``token``."""
        if token.key == self.token_a.key:
            return self.token_b
        if token.key == self.token_b.key:
            return self.token_a
        raise ValueError(f"{token} is not traded by pool {self.name}")

    def trades(self, token: Token) -> bool:
        return token.key in (self.token_a.key, self.token_b.key)


@dataclass(frozen=True)
class PoolState:
    """Snapshot of a pool's slot0/liquidity/fee at read time."""

    pool: Pool
    sqrt_price_x96: int
    tick: int
    liquidity: int
    fee: int
    block_number: Optional[int] = None


@dataclass(frozen=True)
class ConversionRate:
    """Human-denominated rate: 1 from_token buys ``rate`` to_token (before fees)."""

    from_token: Token
    to_token: Token
    rate: Decimal
    pool: Pool

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.from_token.symbol, self.to_token.symbol)


@dataclass(frozen=True)
class ReferencePrice:
    """External USD price of an asset symbol."""

    symbol: str
    usd_value: Decimal


@dataclass(frozen=True)
class Hop:
    """One swap through ``pool`` from token_in to token_out."""

    pool: Pool
    token_in: Token
    token_out: Token

    def __post_init__(self):
        if not (self.pool.trades(self.token_in) and self.pool.trades(self.token_out)):
            raise ValueError(
                f"Hop {self.token_in} -> {self.token_out} is not served by pool "
                f"{self.pool.name}"
            )
        if self.token_in.key == self.token_out.key:
            raise ValueError(f"Hop through {self.pool.name} swaps a token for itself")

    @property
    def chain(self) -> str:
        return self.pool.chain

    def __str__(self) -> str:
        return f"{self.token_in.symbol}->{self.token_out.symbol} ({self.pool.name})"


@dataclass(frozen=True)
class ArbitragePath:
    """
    Ordered hops; hop i's output asset must be hop i+1's input asset.

    Consecutive hops may sit on different chains when they share an asset
    symbol (e.g. FLAG on Europa, then FLAG on Nebula).
    """

    name: str
    hops: Tuple[Hop, ...]

    def __post_init__(self):
        if not self.hops:
            raise ValueError(f"Path '{self.name}' has no hops")
        for prev, nxt in zip(self.hops, self.hops[1:]):
            if prev.token_out.symbol != nxt.token_in.symbol:
                raise ValueError(
                    f"Path '{self.name}' breaks between {prev} and {nxt}: "
                    f"{prev.token_out.symbol} != {nxt.token_in.symbol}"
                )

    @property
    def start_token(self) -> Token:
        return self.hops[0].token_in

    @property
    def end_token(self) -> Token:
        return self.hops[-1].token_out

    @property
    def is_round_trip(self) -> bool:
        return self.start_token.symbol == self.end_token.symbol

    @property
    def symbols(self) -> Tuple[str, ...]:
        return (self.start_token.symbol,) + tuple(h.token_out.symbol for h in self.hops)

    def describe(self) -> str:
        """Human-readable route, e.g. 'USDC -> SKL -> FLAG -> rETH'."""
        return " -> ".join(self.symbols)


@dataclass(frozen=True)
class ArbitrageEvaluation:
    """
    Result of walking a path at quoted rates.

    Attributes:
        path: The evaluated path
        start_usd: USD notional the walk started from
        start_amount: start_usd expressed in the start token
        end_amount: Amount of the terminal token after the last hop
        end_usd: end_amount valued at the terminal token's reference price
        profit: end_usd - start_usd
        amounts: Running amount before the first hop and after each hop
    """

    path: ArbitragePath
    start_usd: Decimal
    start_amount: Decimal
    end_amount: Decimal
    end_usd: Decimal
    profit: Decimal
    amounts: Tuple[Decimal, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SwapInstruction:
    """exactInputSingle parameters for one hop, amounts in raw token units."""

    chain: str
    router: str
    token_in: str
    token_out: str
    fee: int
    recipient: str
    deadline: int
    amount_in: int
    amount_out_minimum: int
    sqrt_price_limit_x96: int = 0


@dataclass(frozen=True)
class HopReceipt:
    """Confirmed outcome of one hop."""

    hop_index: int
    chain: str
    tx_hash: str
    block_number: int
    gas_used: int
    amount_in: int
    amount_out: int
