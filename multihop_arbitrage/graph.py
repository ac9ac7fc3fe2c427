"""
Arbitrage rate graph: path evaluation and negative-cycle search.

Rates are composed in USD terms. A path starts from a USD notional converted
into the start token at its reference price, walks each hop at the pool rate,
and is valued back in USD at the terminal token's reference price.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx

from .exceptions import FeedUnavailableError, MissingRateError
from .models import ArbitrageEvaluation, ArbitragePath, ConversionRate, Hop
from .normalizer import PRECISION
from .utils import get_logger

logger = get_logger(__name__)

USD_NODE = "USD"

# added to every edge during cycle search so round trips through a single
# pool (rate * inverse rate == 1) never register as negative cycles
CYCLE_EPSILON = 1e-9


@dataclass(frozen=True)
class RateDeviation:
    """Pool rate compared with the rate implied by reference prices."""

    rate: ConversionRate
    implied_rate: Decimal
    deviation_pct: Decimal
    flagged: bool


def index_rates(
    rates: Iterable[ConversionRate],
) -> Dict[Tuple[str, str], List[ConversionRate]]:
    """Group rates by (from symbol, to symbol)."""
    index: Dict[Tuple[str, str], List[ConversionRate]] = {}
    for rate in rates:
        index.setdefault(rate.pair, []).append(rate)
    return index


def rate_for_hop(
    index: Mapping[Tuple[str, str], List[ConversionRate]], hop: Hop
) -> ConversionRate:
    """
    Pick the rate covering a hop, preferring one quoted by the hop's own pool.

    Raises:
        MissingRateError: If no rate matches the hop's exact token pair
    """
    candidates = index.get((hop.token_in.symbol, hop.token_out.symbol))
    if not candidates:
        raise MissingRateError(
            f"No conversion rate for {hop.token_in.symbol} -> {hop.token_out.symbol}",
            token_in=hop.token_in.symbol,
            token_out=hop.token_out.symbol,
        )
    for rate in candidates:
        if rate.pool.name == hop.pool.name:
            return rate
    return candidates[0]


def _reference_value(reference: Mapping[str, Decimal], symbol: str) -> Decimal:
    value = reference.get(symbol)
    if value is None:
        raise FeedUnavailableError(
            f"No reference price for {symbol}", source="reference", missing=[symbol]
        )
    return Decimal(value)


def evaluate_path(
    rates: Iterable[ConversionRate],
    reference: Mapping[str, Decimal],
    path: ArbitragePath,
    start_usd: Decimal,
) -> ArbitrageEvaluation:
    """
    Walk a path at quoted rates starting from a USD notional.

    Args:
        rates: Normalized conversion rates for the cycle
        reference: Asset symbol -> USD price
        path: Path to evaluate
        start_usd: Starting notional in USD

    Returns:
        ArbitrageEvaluation with profit = end_usd - start_usd

    Raises:
        MissingRateError: If a hop has no matching rate
        FeedUnavailableError: If the start or terminal token has no reference price
    """
    index = index_rates(rates)
    start_usd = Decimal(start_usd)

    with localcontext() as ctx:
        ctx.prec = PRECISION

        start_amount = start_usd / _reference_value(reference, path.start_token.symbol)
        amount = start_amount
        amounts = [amount]
        for hop in path.hops:
            amount = amount * rate_for_hop(index, hop).rate
            amounts.append(amount)

        end_usd = amount * _reference_value(reference, path.end_token.symbol)
        profit = end_usd - start_usd

    return ArbitrageEvaluation(
        path=path,
        start_usd=start_usd,
        start_amount=start_amount,
        end_amount=amount,
        end_usd=end_usd,
        profit=profit,
        amounts=tuple(amounts),
    )


def canonical_paths(config) -> Tuple[ArbitragePath, ArbitragePath]:
    """The two fixed paths evaluated every cycle: (forward, reverse)."""
    return config.forward_path, config.reverse_path


def _edge_weight(rate: Decimal) -> float:
    return -float(Decimal(rate).ln())


def build_rate_graph(
    rates: Iterable[ConversionRate], reference: Mapping[str, Decimal]
) -> nx.DiGraph:
    """
    Build a directed graph of all rates plus a USD node.

    Edge weights are -ln(rate), so a cycle whose rates multiply above 1 has
    negative total weight. Where two pools quote the same pair the better
    rate is kept.
    """
    graph = nx.DiGraph()

    for rate in rates:
        if rate.rate <= 0:
            continue
        u, v = rate.pair
        if graph.has_edge(u, v) and graph[u][v]["rate"] >= rate.rate:
            continue
        graph.add_edge(u, v, weight=_edge_weight(rate.rate), rate=rate.rate, pool=rate.pool.name)

    for symbol, usd in reference.items():
        usd = Decimal(usd)
        if usd <= 0:
            continue
        graph.add_edge(symbol, USD_NODE, weight=_edge_weight(usd), rate=usd, pool=None)
        graph.add_edge(
            USD_NODE, symbol, weight=_edge_weight(1 / usd), rate=1 / usd, pool=None
        )

    return graph


def find_profitable_cycle(
    graph: nx.DiGraph, epsilon: float = CYCLE_EPSILON
) -> Optional[Tuple[List[str], float]]:
    """
    Find a cycle whose rates multiply above 1 (Bellman-Ford).

    Returns:
        Tuple of (cycle nodes, profit percentage) or None if no cycle exists
    """
    if not graph.nodes:
        return None

    source = USD_NODE if USD_NODE in graph else next(iter(graph.nodes))
    try:
        cycle = nx.find_negative_cycle(
            graph, source=source, weight=lambda u, v, d: d["weight"] + epsilon
        )
    except nx.NetworkXError:
        return None

    edges = list(zip(cycle, cycle[1:]))
    cycle_weight = sum(graph[u][v]["weight"] for u, v in edges)
    profit_percentage = (math.exp(-cycle_weight) - 1) * 100
    return cycle[:-1], profit_percentage


def cross_check(
    rates: Iterable[ConversionRate],
    reference: Mapping[str, Decimal],
    max_deviation_pct: Decimal = Decimal("5"),
) -> List[RateDeviation]:
    """
    Compare each pool rate with ref[from] / ref[to].

    Rates involving a symbol without a reference price are skipped.
    """
    deviations = []
    max_deviation_pct = Decimal(max_deviation_pct)

    for rate in rates:
        from_usd = reference.get(rate.from_token.symbol)
        to_usd = reference.get(rate.to_token.symbol)
        if not from_usd or not to_usd:
            continue

        with localcontext() as ctx:
            ctx.prec = PRECISION
            implied = Decimal(from_usd) / Decimal(to_usd)
            deviation = (rate.rate - implied) / implied * 100

        flagged = abs(deviation) > max_deviation_pct
        deviations.append(RateDeviation(rate, implied, deviation, flagged))

        message = (
            f"{rate.pool.name} {rate.from_token.symbol}->{rate.to_token.symbol}: "
            f"pool={rate.rate:.8g} reference={implied:.8g} deviation={deviation:+.2f}%"
        )
        if flagged:
            logger.warning(message)
        else:
            logger.info(message)

    return deviations
