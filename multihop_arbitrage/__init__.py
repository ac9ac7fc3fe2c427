"""
Multi-hop cross-chain pool arbitrage.

Reads concentrated-liquidity pool state on two chains, normalizes it into
human-denominated conversion rates, evaluates fixed round-trip paths against
USD reference prices, and executes the winning path as a sequence of
dependent swaps.
"""

from multihop_arbitrage.version import __version__

PROJECT_NAME = "multihop-arbitrage"
VERSION = __version__

from multihop_arbitrage.config_loader import ArbitrageConfig, load_arbitrage_config
from multihop_arbitrage.decision import decide
from multihop_arbitrage.executor import SwapExecutor
from multihop_arbitrage.graph import evaluate_path
from multihop_arbitrage.normalizer import normalize
from multihop_arbitrage.pipeline import ArbitragePipeline, CycleReport
from multihop_arbitrage.pool_reader import PoolStateReader
from multihop_arbitrage.reference_feed import ReferencePriceFeed

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbitrageConfig",
    "load_arbitrage_config",
    "decide",
    "SwapExecutor",
    "evaluate_path",
    "normalize",
    "ArbitragePipeline",
    "CycleReport",
    "PoolStateReader",
    "ReferencePriceFeed",
]
