"""
Configuration loading and normalization for the multi-hop arbitrage system.

The YAML file is validated against the Pydantic schema, then normalized into
frozen runtime objects (Token, Pool, ArbitragePath) built once at startup.
Changing the configuration requires a restart.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml
from pydantic import ValidationError
from web3 import Web3

from .config_schema import ArbitrageConfigSpec, validate_arbitrage_config
from .exceptions import ConfigurationError
from .models import FORWARD_PATH, REVERSE_PATH, ArbitragePath, Hop, Pool, Token
from .normalizer import validate_decimals


@dataclass(frozen=True)
class ChainSettings:
    """Resolved execution context settings for one chain."""

    name: str
    chain_id: int
    rpc_url: str
    router: str
    private_key_env: str


@dataclass(frozen=True)
class StrategySettings:
    """Quoting and execution parameters."""

    start_usd: Decimal = Decimal("100")
    profit_threshold_usd: Decimal = Decimal("10")
    slippage_tolerance_bps: int = 100
    deadline_seconds: int = 1200
    gas_limit: int = 300_000
    max_reference_deviation_pct: Decimal = Decimal("5")


@dataclass(frozen=True)
class FeedSettings:
    """Reference price feed settings."""

    base_url: str
    ids: Mapping[str, str]
    api_key_env: Optional[str] = None


@dataclass(frozen=True)
class ArbitrageConfig:
    """Immutable runtime configuration object."""

    chains: Mapping[str, ChainSettings]
    tokens: Mapping[Tuple[str, str], Token]
    pools: Mapping[str, Pool]
    paths: Mapping[str, ArbitragePath]
    reference_feed: FeedSettings
    strategy: StrategySettings = field(default_factory=StrategySettings)

    @property
    def forward_path(self) -> ArbitragePath:
        return self.paths[FORWARD_PATH]

    @property
    def reverse_path(self) -> ArbitragePath:
        return self.paths[REVERSE_PATH]

    @property
    def symbols(self) -> Tuple[str, ...]:
        """All asset symbols traded by the configured pools, sorted."""
        found = set()
        for pool in self.pools.values():
            found.add(pool.token_a.symbol)
            found.add(pool.token_b.symbol)
        return tuple(sorted(found))

    def token(self, chain: str, symbol: str) -> Token:
        try:
            return self.tokens[(chain, symbol)]
        except KeyError:
            raise ConfigurationError(f"Token {symbol} not configured on chain {chain}")


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

    return config_dict


def _resolve_rpc_url(name: str, rpc_url: Optional[str], rpc_url_env: Optional[str], env: Mapping[str, str]) -> str:
    url = (env.get(rpc_url_env) if rpc_url_env else None) or rpc_url
    if not url:
        raise ConfigurationError(
            f"Chain '{name}': environment variable {rpc_url_env} not set and no rpc_url in config"
        )
    return url


def _normalize_chains(spec: ArbitrageConfigSpec, env: Mapping[str, str]) -> Dict[str, ChainSettings]:
    chains = {}
    for name, chain in spec.chains.items():
        chains[name] = ChainSettings(
            name=name,
            chain_id=chain.chain_id,
            rpc_url=_resolve_rpc_url(name, chain.rpc_url, chain.rpc_url_env, env),
            router=Web3.to_checksum_address(chain.router),
            private_key_env=chain.private_key_env,
        )
    return chains


def _normalize_tokens(spec: ArbitrageConfigSpec) -> Dict[Tuple[str, str], Token]:
    tokens = {}
    for chain, chain_tokens in spec.tokens.items():
        for symbol, token_spec in chain_tokens.items():
            token = Token(
                symbol=symbol,
                address=Web3.to_checksum_address(token_spec.address),
                decimals=token_spec.decimals,
                chain=chain,
            )
            # a token with unusable decimals must never reach the rate graph
            validate_decimals(token)
            tokens[(chain, symbol)] = token
    return tokens


def _normalize_pools(
    spec: ArbitrageConfigSpec, tokens: Mapping[Tuple[str, str], Token]
) -> Dict[str, Pool]:
    pools = {}
    for name, pool_spec in spec.pools.items():
        pools[name] = Pool(
            name=name,
            address=Web3.to_checksum_address(pool_spec.address),
            chain=pool_spec.chain,
            token_a=tokens[(pool_spec.chain, pool_spec.token_a)],
            token_b=tokens[(pool_spec.chain, pool_spec.token_b)],
            fee=pool_spec.fee,
        )
    return pools


def _normalize_paths(
    spec: ArbitrageConfigSpec,
    pools: Mapping[str, Pool],
    tokens: Mapping[Tuple[str, str], Token],
) -> Dict[str, ArbitragePath]:
    paths = {}
    for path_name, hop_specs in spec.paths.items():
        hops = []
        for pool_name, token_in, token_out in hop_specs:
            pool = pools[pool_name]
            hops.append(
                Hop(
                    pool=pool,
                    token_in=tokens[(pool.chain, token_in)],
                    token_out=tokens[(pool.chain, token_out)],
                )
            )
        try:
            paths[path_name] = ArbitragePath(name=path_name, hops=tuple(hops))
        except ValueError as e:
            raise ConfigurationError(f"Invalid path '{path_name}': {e}")
    return paths


def build_config(
    config_dict: Dict[str, Any], env: Optional[Mapping[str, str]] = None
) -> ArbitrageConfig:
    """
    Validate and normalize a configuration dictionary.

    Args:
        config_dict: Parsed YAML configuration
        env: Environment used to resolve *_env settings (default os.environ)

    Returns:
        Frozen ArbitrageConfig

    Raises:
        ConfigurationError: If the configuration is invalid
        DecimalMismatchError: If a token's decimals are unset or out of range
    """
    env = os.environ if env is None else env

    try:
        spec = validate_arbitrage_config(config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}")

    tokens = _normalize_tokens(spec)
    pools = _normalize_pools(spec, tokens)

    strategy = spec.strategy
    return ArbitrageConfig(
        chains=_normalize_chains(spec, env),
        tokens=tokens,
        pools=pools,
        paths=_normalize_paths(spec, pools, tokens),
        reference_feed=FeedSettings(
            base_url=spec.reference_feed.base_url.rstrip("/"),
            ids=dict(spec.reference_feed.ids),
            api_key_env=spec.reference_feed.api_key_env,
        ),
        strategy=StrategySettings(
            start_usd=strategy.start_usd,
            profit_threshold_usd=strategy.profit_threshold_usd,
            slippage_tolerance_bps=strategy.slippage_tolerance_bps,
            deadline_seconds=strategy.deadline_seconds,
            gas_limit=strategy.gas_limit,
            max_reference_deviation_pct=strategy.max_reference_deviation_pct,
        ),
    )


def load_arbitrage_config(
    config_path: Union[str, Path], env: Optional[Mapping[str, str]] = None
) -> ArbitrageConfig:
    """
    Load, validate and normalize an arbitrage configuration file.

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
        DecimalMismatchError: If a token's decimals are unset or out of range
    """
    return build_config(load_yaml_config(config_path), env=env)
