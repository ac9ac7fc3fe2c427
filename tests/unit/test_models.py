"""Tests for the core data types."""

import pytest

from multihop_arbitrage.models import ArbitragePath, Hop, Pool, Token

USDC = Token("USDC", "0x2000000000000000000000000000000000000001", 6, "europa")
SKL = Token("SKL", "0x2000000000000000000000000000000000000002", 18, "europa")
FLAG = Token("FLAG", "0x2000000000000000000000000000000000000003", 18, "europa")
FLAG_NEBULA = Token("FLAG", "0x3000000000000000000000000000000000000001", 18, "nebula")
RETH = Token("rETH", "0x3000000000000000000000000000000000000002", 18, "nebula")

USDC_SKL = Pool("usdc_skl", "0x4000000000000000000000000000000000000001", "europa", USDC, SKL, 3000)
FLAG_SKL = Pool("flag_skl", "0x4000000000000000000000000000000000000002", "europa", FLAG, SKL, 3000)
FLAG_RETH = Pool("flag_reth", "0x5000000000000000000000000000000000000001", "nebula", FLAG_NEBULA, RETH, 3000)


def test_token_identity_ignores_address_case():
    lower = Token("USDC", USDC.address.lower(), 6, "europa")
    assert lower.key == USDC.key
    assert str(USDC) == "USDC@europa"


def test_pool_other():
    assert USDC_SKL.other(USDC) == SKL
    assert USDC_SKL.other(SKL) == USDC
    with pytest.raises(ValueError):
        USDC_SKL.other(RETH)


def test_hop_must_use_pool_tokens():
    with pytest.raises(ValueError, match="not served"):
        Hop(USDC_SKL, USDC, FLAG)


def test_hop_cannot_swap_token_for_itself():
    with pytest.raises(ValueError, match="itself"):
        Hop(USDC_SKL, USDC, USDC)


def test_path_chains_across_chains_by_symbol():
    path = ArbitragePath(
        "forward",
        (Hop(USDC_SKL, USDC, SKL), Hop(FLAG_SKL, SKL, FLAG), Hop(FLAG_RETH, FLAG_NEBULA, RETH)),
    )

    assert path.start_token == USDC
    assert path.end_token == RETH
    assert not path.is_round_trip
    assert path.symbols == ("USDC", "SKL", "FLAG", "rETH")


def test_round_trip():
    path = ArbitragePath("loop", (Hop(USDC_SKL, USDC, SKL), Hop(USDC_SKL, SKL, USDC)))
    assert path.is_round_trip


def test_path_must_chain():
    with pytest.raises(ValueError, match="breaks"):
        ArbitragePath("bad", (Hop(USDC_SKL, USDC, SKL), Hop(FLAG_RETH, FLAG_NEBULA, RETH)))


def test_empty_path_rejected():
    with pytest.raises(ValueError, match="no hops"):
        ArbitragePath("empty", ())
