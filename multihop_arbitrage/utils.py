"""
Common helpers for the multi-hop arbitrage system.

Logger construction and the small numeric conversions shared by the
quoting and execution stages.
"""

import logging
import time
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional, Union


def get_current_timestamp() -> float:
    """Get current Unix timestamp as float."""
    return time.time()


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


def basis_points_to_decimal(bps: Union[int, Decimal]) -> Decimal:
    """Convert basis points to a Decimal fraction (100 bps = 0.01)."""
    return Decimal(bps) / Decimal(10000)


def fee_tier_to_decimal(fee: int) -> Decimal:
    """Convert a V3 fee tier (hundredths of a bip, 3000 = 0.30%) to a fraction."""
    return Decimal(fee) / Decimal(1_000_000)


def to_raw_units(amount: Decimal, decimals: int) -> int:
    """Scale a human amount to integer token units, rounding down."""
    scaled = (Decimal(amount) * (Decimal(10) ** decimals)).to_integral_value(
        rounding=ROUND_DOWN
    )
    return int(scaled)


def from_raw_units(amount: int, decimals: int) -> Decimal:
    """Scale integer token units to a human amount."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def format_usd(value: Decimal) -> str:
    """Format a USD amount with a sign prefix, e.g. '+$12.35' or '-$5.00' (half up)."""
    cents = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if cents >= 0:
        return f"+${abs(cents)}"
    return f"-${abs(cents)}"


def get_logger(
    name: str,
    level: Union[str, int] = logging.INFO,
    extra: Optional[Dict[str, Any]] = None,
) -> logging.Logger:
    """
    Get a logger with consistent formatting and optional extra context.

    Args:
        name: Logger name (typically __name__)
        level: Logging level applied when the logger has none yet
        extra: Context fields prefixed to every message (e.g. chain name)

    Returns:
        Logger, or a LoggerAdapter when extra context is given
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if extra:
        context = " ".join(f"{k}={v}" for k, v in extra.items())
        return _ContextAdapter(logger, {"context": context})

    return logger


class _ContextAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['context']}] {msg}", kwargs
