"""Tests for the normalizer module."""

from decimal import Decimal, localcontext

import pytest
from hypothesis import example, given, settings
from hypothesis import strategies as st

from multihop_arbitrage.exceptions import DecimalMismatchError
from multihop_arbitrage.models import Pool, PoolState, Token
from multihop_arbitrage.normalizer import (
    Q96,
    normalize,
    normalize_state,
    rates_from_ratio,
    sqrt_price_x96_to_ratio,
    validate_decimals,
)

Q96_INT = 2**96
# TickMath bounds of sqrtPriceX96
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def _token(symbol, decimals, n):
    return Token(symbol, f"0x{n:040x}", decimals, "europa")


def _pool(token_a, token_b):
    return Pool("test_pool", "0x" + "a" * 40, "europa", token_a, token_b, 3000)


def _state(pool, sqrt_price_x96):
    return PoolState(pool, sqrt_price_x96, tick=0, liquidity=10**18, fee=3000)


def test_sqrt_price_at_one():
    assert sqrt_price_x96_to_ratio(Q96_INT) == Decimal(1)


def test_sqrt_price_squares():
    assert sqrt_price_x96_to_ratio(2 * Q96_INT) == Decimal(4)
    assert sqrt_price_x96_to_ratio(Q96_INT // 2) == Decimal("0.25")


def test_sqrt_price_zero_rejected():
    with pytest.raises(ValueError):
        sqrt_price_x96_to_ratio(0)


def test_decimals_scenario_18_6():
    """Raw ratio 2.0 between an 18- and a 6-decimal token."""
    token_a = _token("A", 18, 1)
    token_b = _token("B", 6, 2)

    rate_ab, rate_ba = rates_from_ratio(Decimal(2), token_a, token_b)

    assert rate_ab == Decimal("2E-12")
    assert rate_ba == Decimal("5E+11")


def test_normalize_returns_both_directions():
    token_a = _token("USDC", 6, 1)
    token_b = _token("SKL", 18, 2)
    pool = _pool(token_a, token_b)

    ab, ba = normalize(_state(pool, 2 * Q96_INT), token_a, token_b)

    assert (ab.from_token, ab.to_token) == (token_a, token_b)
    assert (ba.from_token, ba.to_token) == (token_b, token_a)
    assert ab.rate == Decimal(4) * Decimal(10) ** 12
    assert ba.rate == Decimal("0.25") / Decimal(10) ** 12
    assert ab.pool is pool


def test_normalize_state_uses_pool_ordering():
    token_a = _token("FLAG", 18, 1)
    token_b = _token("SKL", 18, 2)
    pool = _pool(token_a, token_b)

    ab, ba = normalize_state(_state(pool, Q96_INT))

    assert ab.pair == ("FLAG", "SKL")
    assert ab.rate == ba.rate == Decimal(1)


@pytest.mark.parametrize("decimals", [None, 19, -1, True, 6.0, "6"])
def test_invalid_decimals_rejected(decimals):
    token = _token("BAD", decimals, 1)
    with pytest.raises(DecimalMismatchError) as exc_info:
        validate_decimals(token)
    assert exc_info.value.decimals == decimals


def test_normalize_checks_decimals_before_price():
    token_a = _token("A", 18, 1)
    token_b = _token("B", 24, 2)
    pool = _pool(token_a, token_b)

    # a zero price would raise ValueError; the decimals defect wins
    with pytest.raises(DecimalMismatchError):
        normalize(_state(pool, 0), token_a, token_b)


@pytest.mark.parametrize("decimals", [0, 6, 18])
def test_valid_decimals_accepted(decimals):
    assert validate_decimals(_token("OK", decimals, 1)) == decimals


@settings(max_examples=200, deadline=None)
@given(
    sqrt_price=st.integers(min_value=MIN_SQRT_RATIO, max_value=MAX_SQRT_RATIO),
    decimals_a=st.integers(min_value=0, max_value=18),
    decimals_b=st.integers(min_value=0, max_value=18),
)
@example(sqrt_price=MIN_SQRT_RATIO, decimals_a=18, decimals_b=0)
@example(sqrt_price=MAX_SQRT_RATIO, decimals_a=0, decimals_b=18)
def test_rates_are_reciprocal(sqrt_price, decimals_a, decimals_b):
    token_a = _token("A", decimals_a, 1)
    token_b = _token("B", decimals_b, 2)
    pool = _pool(token_a, token_b)

    ab, ba = normalize(_state(pool, sqrt_price), token_a, token_b)

    with localcontext() as ctx:
        ctx.prec = 50
        product = ab.rate * ba.rate
        assert abs(product - 1) < Decimal("1E-45")


def test_q96_constant():
    assert Q96 == Decimal(Q96_INT)
