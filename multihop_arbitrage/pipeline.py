"""
One evaluation cycle: read pools, fetch reference prices, evaluate the two
canonical paths, decide, and optionally execute.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Tuple

from .chain import build_chain_clients
from .config_loader import ArbitrageConfig
from .decision import decide
from .executor import SwapExecutor
from .graph import (
    RateDeviation,
    build_rate_graph,
    canonical_paths,
    cross_check,
    evaluate_path,
    find_profitable_cycle,
)
from .models import (
    ArbitrageEvaluation,
    ArbitragePath,
    ConversionRate,
    HopReceipt,
    Pool,
    PoolState,
    SwapInstruction,
)
from .normalizer import normalize_state
from .pool_reader import PoolStateReader
from .reference_feed import ReferencePriceFeed
from .utils import format_duration, format_usd, get_current_timestamp, get_logger

logger = get_logger(__name__)


@dataclass
class CycleReport:
    """Everything observed and decided during one cycle."""

    states: List[PoolState] = field(default_factory=list)
    rates: List[ConversionRate] = field(default_factory=list)
    reference: Dict[str, Decimal] = field(default_factory=dict)
    deviations: List[RateDeviation] = field(default_factory=list)
    evaluations: List[ArbitrageEvaluation] = field(default_factory=list)
    selected: Optional[ArbitragePath] = None
    instructions: List[SwapInstruction] = field(default_factory=list)
    receipts: List[HopReceipt] = field(default_factory=list)
    duration: float = 0.0

    def evaluation_for(self, path: ArbitragePath) -> Optional[ArbitrageEvaluation]:
        for evaluation in self.evaluations:
            if evaluation.path.name == path.name:
                return evaluation
        return None


@dataclass
class ScanResult:
    """Outcome of a negative-cycle search over the full rate graph."""

    cycle: Optional[List[str]]
    profit_pct: Optional[float]
    node_count: int
    edge_count: int


def _unique_pools(paths) -> List[Pool]:
    pools: Dict[str, Pool] = {}
    for path in paths:
        for hop in path.hops:
            pools.setdefault(hop.pool.name, hop.pool)
    return list(pools.values())


def _path_symbols(paths) -> List[str]:
    symbols = set()
    for path in paths:
        symbols.update(path.symbols)
    return sorted(symbols)


class ArbitragePipeline:
    """
    Wires reader, feed and executor for a configuration.

    Args:
        config: Loaded ArbitrageConfig
        reader: PoolStateReader over the configured chains
        feed: ReferencePriceFeed with ids for every path symbol
        executor: SwapExecutor; only needed when executing
    """

    def __init__(
        self,
        config: ArbitrageConfig,
        reader: PoolStateReader,
        feed: ReferencePriceFeed,
        executor: Optional[SwapExecutor] = None,
    ):
        self.config = config
        self.reader = reader
        self.feed = feed
        self.executor = executor

    @classmethod
    def from_config(
        cls, config: ArbitrageConfig, env: Optional[Mapping[str, str]] = None
    ) -> "ArbitragePipeline":
        """Build chain clients, reader, feed and executor once for a config."""
        clients = build_chain_clients(config, env=env)
        strategy = config.strategy
        return cls(
            config=config,
            reader=PoolStateReader(clients),
            feed=ReferencePriceFeed.from_settings(config.reference_feed, env=env),
            executor=SwapExecutor(
                clients,
                deadline_seconds=strategy.deadline_seconds,
                slippage_tolerance_bps=strategy.slippage_tolerance_bps,
            ),
        )

    async def _observe(
        self, pools: List[Pool], symbols: List[str]
    ) -> Tuple[List[PoolState], Dict[str, Decimal]]:
        # pool reads and the reference fetch are joined before anything is evaluated
        results = await asyncio.gather(
            *(self.reader.read(pool) for pool in pools),
            self.feed.fetch_usd_prices(symbols),
        )
        return list(results[:-1]), results[-1]

    @staticmethod
    def _normalize(states: List[PoolState]) -> List[ConversionRate]:
        rates: List[ConversionRate] = []
        for state in states:
            rates.extend(normalize_state(state))
        return rates

    async def quote(self) -> CycleReport:
        """
        Observe and evaluate without sending anything.

        Raises:
            RpcError, DecimalMismatchError, FeedUnavailableError, MissingRateError
        """
        started = get_current_timestamp()
        paths = canonical_paths(self.config)
        strategy = self.config.strategy

        states, reference = await self._observe(
            _unique_pools(paths), _path_symbols(paths)
        )
        rates = self._normalize(states)
        deviations = cross_check(rates, reference, strategy.max_reference_deviation_pct)

        evaluations = [
            evaluate_path(rates, reference, path, strategy.start_usd) for path in paths
        ]
        for evaluation in evaluations:
            logger.info(
                f"{evaluation.path.name}: {evaluation.path.describe()} "
                f"${evaluation.start_usd} -> ${evaluation.end_usd:.2f} "
                f"({format_usd(evaluation.profit)})"
            )

        selected = decide(evaluations, strategy.profit_threshold_usd)

        return CycleReport(
            states=states,
            rates=rates,
            reference=reference,
            deviations=deviations,
            evaluations=evaluations,
            selected=selected,
            duration=get_current_timestamp() - started,
        )

    async def _check_liquidity(self, report: CycleReport) -> None:
        # rates are quoted from sqrt price only; liquidity moved since the read
        # changes how far a swap pushes the price
        pools = {hop.pool.name for hop in report.selected.hops}
        states = [state for state in report.states if state.pool.name in pools]
        changes = await asyncio.gather(
            *(self.reader.liquidity_change(state) for state in states)
        )
        for state, change in zip(states, changes):
            if change:
                logger.warning(
                    f"Pool {state.pool.name} liquidity changed by {change} since "
                    f"block {state.block_number}; slippage may exceed the quote"
                )

    async def run_cycle(self, execute: bool = False) -> CycleReport:
        """
        Quote, then execute the selected path when ``execute`` is set.

        Without ``execute`` the instructions of the selected path are planned
        and logged but never sent.

        Raises:
            SwapExecutionError / PartialExecutionError: If execution fails
        """
        started = get_current_timestamp()
        report = await self.quote()
        if report.selected is None:
            return report

        if self.executor is None:
            raise RuntimeError("Pipeline has no executor configured")

        evaluation = report.evaluation_for(report.selected)
        if execute:
            await self._check_liquidity(report)
            report.receipts = await self.executor.execute(
                report.selected, evaluation.start_amount, report.rates
            )
        else:
            report.instructions = self.executor.plan(
                report.selected, evaluation.start_amount, report.rates
            )
            for i, instruction in enumerate(report.instructions):
                logger.info(f"DRY RUN hop {i + 1}: {instruction}")

        report.duration = get_current_timestamp() - started
        logger.info(f"Cycle finished in {format_duration(report.duration)}")
        return report

    async def scan(self) -> ScanResult:
        """Search every configured pool for a profitable cycle through USD."""
        pools = list(self.config.pools.values())
        symbols = sorted(s for s in self.config.symbols if s in self.feed.ids)

        states, reference = await self._observe(pools, symbols)
        graph = build_rate_graph(self._normalize(states), reference)
        found = find_profitable_cycle(graph)

        if found is None:
            logger.info(
                f"No profitable cycle across {graph.number_of_nodes()} assets"
            )
            return ScanResult(None, None, graph.number_of_nodes(), graph.number_of_edges())

        cycle, profit_pct = found
        logger.info(f"Cycle found: {' -> '.join(cycle + cycle[:1])} ({profit_pct:+.4f}%)")
        return ScanResult(cycle, profit_pct, graph.number_of_nodes(), graph.number_of_edges())
