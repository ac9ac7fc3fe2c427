"""
Conversion of raw pool price state into human-denominated rates.

A V3 pool stores sqrt(price) as a Q64.96 fixed-point integer, where price is
token1 raw units per token0 raw unit. The decimal adjustment between the two
tokens is applied here and only here; everything downstream of normalize()
works in human units.
"""

from decimal import Decimal, localcontext
from typing import Tuple

from .exceptions import DecimalMismatchError
from .models import ConversionRate, PoolState, Token

Q96 = Decimal(2**96)
MIN_DECIMALS = 0
MAX_DECIMALS = 18
PRECISION = 50


def validate_decimals(token: Token) -> int:
    """Return the token's decimals, raising DecimalMismatchError if unusable."""
    decimals = token.decimals
    if decimals is None:
        raise DecimalMismatchError(
            f"Decimals not set for token {token}", token=str(token), decimals=None
        )
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise DecimalMismatchError(
            f"Decimals for token {token} must be an integer, got {decimals!r}",
            token=str(token),
            decimals=decimals,
        )
    if not MIN_DECIMALS <= decimals <= MAX_DECIMALS:
        raise DecimalMismatchError(
            f"Decimals {decimals} for token {token} outside supported range "
            f"[{MIN_DECIMALS}, {MAX_DECIMALS}]",
            token=str(token),
            decimals=decimals,
        )
    return decimals


def sqrt_price_x96_to_ratio(sqrt_price_x96: int) -> Decimal:
    """
    Convert a Q64.96 sqrt price into the raw token1-per-token0 ratio.

    Args:
        sqrt_price_x96: slot0().sqrtPriceX96 of the pool

    Returns:
        (sqrt_price_x96 / 2**96) ** 2 at 50 significant digits

    Raises:
        ValueError: If the sqrt price is not positive
    """
    if sqrt_price_x96 <= 0:
        raise ValueError(f"sqrt price must be positive, got {sqrt_price_x96}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        root = Decimal(sqrt_price_x96) / Q96
        return +(root * root)


def decimal_adjustment(token_a: Token, token_b: Token) -> Decimal:
    """Adjustment factor 10 ** (token_b.decimals - token_a.decimals)."""
    decimals_a = validate_decimals(token_a)
    decimals_b = validate_decimals(token_b)
    return Decimal(10) ** (decimals_b - decimals_a)


def rates_from_ratio(
    raw_ratio: Decimal, token_a: Token, token_b: Token
) -> Tuple[Decimal, Decimal]:
    """
    Apply the decimal adjustment to a raw ratio.

    Returns:
        (rate a->b, rate b->a)
    """
    adjustment = decimal_adjustment(token_a, token_b)
    if raw_ratio <= 0:
        raise ValueError(f"raw ratio must be positive, got {raw_ratio}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        rate_ab = raw_ratio * adjustment
        rate_ba = (Decimal(1) / raw_ratio) / adjustment
    return rate_ab, rate_ba


def normalize(
    state: PoolState, token_a: Token, token_b: Token
) -> Tuple[ConversionRate, ConversionRate]:
    """
    Derive both directional rates of a pool from its state.

    Args:
        state: Pool snapshot from PoolStateReader
        token_a: The pool's token0
        token_b: The pool's token1

    Returns:
        (ConversionRate token_a -> token_b, ConversionRate token_b -> token_a)

    Raises:
        DecimalMismatchError: If either token's decimals are unset or out of range
    """
    # validate before touching the price so a config defect always surfaces
    validate_decimals(token_a)
    validate_decimals(token_b)

    raw_ratio = sqrt_price_x96_to_ratio(state.sqrt_price_x96)
    rate_ab, rate_ba = rates_from_ratio(raw_ratio, token_a, token_b)

    return (
        ConversionRate(token_a, token_b, rate_ab, state.pool),
        ConversionRate(token_b, token_a, rate_ba, state.pool),
    )


def normalize_state(state: PoolState) -> Tuple[ConversionRate, ConversionRate]:
    """normalize() using the pool's own token ordering."""
    return normalize(state, state.pool.token_a, state.pool.token_b)
