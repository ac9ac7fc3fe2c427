"""
Profitability decision over evaluated paths.
"""

from decimal import Decimal
from typing import Iterable, Optional

from .models import FORWARD_PATH, ArbitrageEvaluation, ArbitragePath
from .utils import format_usd, get_logger

logger = get_logger(__name__)


def decide(
    evaluations: Iterable[ArbitrageEvaluation], threshold_usd: Decimal
) -> Optional[ArbitragePath]:
    """
    Select at most one path whose profit strictly exceeds the threshold.

    When several clear the threshold the forward path wins, whatever the order
    of ``evaluations``. Returns None when nothing qualifies.
    """
    threshold_usd = Decimal(threshold_usd)
    qualifying = [e for e in evaluations if e.profit > threshold_usd]

    if not qualifying:
        logger.info(f"No path clears the {format_usd(threshold_usd)} threshold")
        return None

    # stable: forward first, otherwise input order
    qualifying.sort(key=lambda e: e.path.name != FORWARD_PATH)
    chosen = qualifying[0]
    logger.info(
        f"Selected {chosen.path.name} path ({chosen.path.describe()}) "
        f"with profit {format_usd(chosen.profit)}"
    )
    return chosen.path
