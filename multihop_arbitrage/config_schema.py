"""
Configuration schema validation using Pydantic
"""

import re
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import FORWARD_PATH, REVERSE_PATH

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
DEFAULT_COINGECKO_URL = "https://api.coingecko.com/api/v3"


def _check_address(v: str) -> str:
    if not _ADDRESS_RE.match(v):
        raise ValueError(f"Invalid address: {v}")
    return v


class ChainSpec(BaseModel):
    """One execution context: RPC endpoint, router and wallet key"""

    chain_id: int = Field(gt=0, description="EVM chain id")
    rpc_url: Optional[str] = Field(default=None, description="HTTP(S) RPC endpoint")
    rpc_url_env: Optional[str] = Field(
        default=None, description="Env var holding the RPC endpoint"
    )
    router: str = Field(description="V3 SwapRouter address")
    private_key_env: str = Field(
        default="ARB_PRIVATE_KEY", description="Env var holding the wallet key"
    )

    @field_validator("router")
    @classmethod
    def validate_router(cls, v):
        return _check_address(v)

    @model_validator(mode="after")
    def validate_endpoint(self):
        if not self.rpc_url and not self.rpc_url_env:
            raise ValueError("either rpc_url or rpc_url_env is required")
        return self

    model_config = {"extra": "forbid"}


class TokenSpec(BaseModel):
    """Token contract on a chain. Decimals range is enforced at load time."""

    address: str
    decimals: Optional[int] = None

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        return _check_address(v)

    model_config = {"extra": "forbid"}


class PoolSpec(BaseModel):
    """V3 pool trading token_a (token0) against token_b (token1)"""

    chain: str
    address: str
    token_a: str = Field(description="Symbol of the pool's token0")
    token_b: str = Field(description="Symbol of the pool's token1")
    fee: int = Field(gt=0, lt=1_000_000, description="Fee tier, 3000 = 0.30%")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        return _check_address(v)

    @model_validator(mode="after")
    def validate_distinct_tokens(self):
        if self.token_a == self.token_b:
            raise ValueError(f"pool trades {self.token_a} against itself")
        return self

    model_config = {"extra": "forbid"}


class StrategySpec(BaseModel):
    """Quoting and execution parameters"""

    start_usd: Decimal = Field(default=Decimal("100"), gt=0)
    profit_threshold_usd: Decimal = Field(default=Decimal("10"), ge=0)
    slippage_tolerance_bps: int = Field(default=100, ge=0, le=10000)
    deadline_seconds: int = Field(default=1200, gt=0, le=86400)
    gas_limit: int = Field(default=300_000, gt=21_000)
    max_reference_deviation_pct: Decimal = Field(default=Decimal("5"), ge=0)

    model_config = {"extra": "forbid"}


class ReferenceFeedSpec(BaseModel):
    """CoinGecko simple/price endpoint and symbol -> coin id mapping"""

    base_url: str = DEFAULT_COINGECKO_URL
    api_key_env: Optional[str] = None
    ids: Dict[str, str] = Field(description="Asset symbol -> CoinGecko id")

    @field_validator("ids")
    @classmethod
    def validate_ids(cls, v):
        if not v:
            raise ValueError("ids cannot be empty")
        for symbol, coin_id in v.items():
            if not coin_id or not coin_id.strip():
                raise ValueError(f"empty CoinGecko id for {symbol}")
        return v

    model_config = {"extra": "forbid"}


class ArbitrageConfigSpec(BaseModel):
    """Complete static configuration"""

    chains: Dict[str, ChainSpec]
    tokens: Dict[str, Dict[str, TokenSpec]] = Field(
        description="Chain name -> symbol -> token"
    )
    pools: Dict[str, PoolSpec]
    paths: Dict[str, List[Tuple[str, str, str]]] = Field(
        description="Path name -> list of [pool, token_in, token_out]"
    )
    strategy: StrategySpec = Field(default_factory=StrategySpec)
    reference_feed: ReferenceFeedSpec

    @field_validator("chains")
    @classmethod
    def validate_chains(cls, v):
        if not v:
            raise ValueError("at least one chain is required")
        return v

    @model_validator(mode="after")
    def validate_topology(self):
        for chain in self.tokens:
            if chain not in self.chains:
                raise ValueError(f"tokens reference unknown chain '{chain}'")

        for name, pool in self.pools.items():
            if pool.chain not in self.chains:
                raise ValueError(f"pool '{name}' references unknown chain '{pool.chain}'")
            chain_tokens = self.tokens.get(pool.chain, {})
            for symbol in (pool.token_a, pool.token_b):
                if symbol not in chain_tokens:
                    raise ValueError(
                        f"pool '{name}' references token '{symbol}' not configured "
                        f"on chain '{pool.chain}'"
                    )

        for required in (FORWARD_PATH, REVERSE_PATH):
            if required not in self.paths:
                raise ValueError(f"path '{required}' is required")

        symbols = set()
        for path_name, hops in self.paths.items():
            if not hops:
                raise ValueError(f"path '{path_name}' has no hops")
            for pool_name, token_in, token_out in hops:
                pool = self.pools.get(pool_name)
                if pool is None:
                    raise ValueError(
                        f"path '{path_name}' references unknown pool '{pool_name}'"
                    )
                if {token_in, token_out} != {pool.token_a, pool.token_b}:
                    raise ValueError(
                        f"path '{path_name}' hop {token_in}->{token_out} does not "
                        f"match pool '{pool_name}' ({pool.token_a}/{pool.token_b})"
                    )
                symbols.update((token_in, token_out))

        missing = sorted(symbols - set(self.reference_feed.ids))
        if missing:
            raise ValueError(f"reference_feed.ids missing symbols: {missing}")
        return self

    model_config = {"extra": "forbid"}


def validate_arbitrage_config(config_dict: Dict) -> ArbitrageConfigSpec:
    """
    Validate an arbitrage configuration dictionary

    Args:
        config_dict: Dictionary representation of the YAML config

    Returns:
        Validated ArbitrageConfigSpec object

    Raises:
        pydantic.ValidationError: If configuration is invalid
    """
    return ArbitrageConfigSpec(**config_dict)
