"""Shared fixtures for multihop_arbitrage unit tests."""

import copy
from decimal import Decimal

import pytest
from eth_abi import encode
from hexbytes import HexBytes

from multihop_arbitrage.abi import TRANSFER_EVENT_SIGNATURE
from multihop_arbitrage.config_loader import build_config
from multihop_arbitrage.events import event_topic
from multihop_arbitrage.models import ConversionRate

WALLET = "0x9000000000000000000000000000000000000009"

BASE_CONFIG = {
    "chains": {
        "europa": {
            "chain_id": 2046399126,
            "rpc_url": "http://europa.invalid",
            "router": "0x1000000000000000000000000000000000000001",
        },
        "nebula": {
            "chain_id": 1482601649,
            "rpc_url": "http://nebula.invalid",
            "router": "0x1000000000000000000000000000000000000002",
        },
    },
    "tokens": {
        "europa": {
            "USDC": {"address": "0x2000000000000000000000000000000000000001", "decimals": 6},
            "SKL": {"address": "0x2000000000000000000000000000000000000002", "decimals": 18},
            "FLAG": {"address": "0x2000000000000000000000000000000000000003", "decimals": 18},
        },
        "nebula": {
            "FLAG": {"address": "0x3000000000000000000000000000000000000001", "decimals": 18},
            "rETH": {"address": "0x3000000000000000000000000000000000000002", "decimals": 18},
        },
    },
    "pools": {
        "usdc_skl_europa": {
            "chain": "europa",
            "address": "0x4000000000000000000000000000000000000001",
            "token_a": "USDC",
            "token_b": "SKL",
            "fee": 3000,
        },
        "flag_skl_europa": {
            "chain": "europa",
            "address": "0x4000000000000000000000000000000000000002",
            "token_a": "FLAG",
            "token_b": "SKL",
            "fee": 3000,
        },
        "flag_reth_nebula": {
            "chain": "nebula",
            "address": "0x5000000000000000000000000000000000000001",
            "token_a": "FLAG",
            "token_b": "rETH",
            "fee": 3000,
        },
    },
    "paths": {
        "forward": [
            ["usdc_skl_europa", "USDC", "SKL"],
            ["flag_skl_europa", "SKL", "FLAG"],
            ["flag_reth_nebula", "FLAG", "rETH"],
        ],
        "reverse": [
            ["flag_reth_nebula", "rETH", "FLAG"],
            ["flag_skl_europa", "FLAG", "SKL"],
            ["usdc_skl_europa", "SKL", "USDC"],
        ],
    },
    "reference_feed": {
        "ids": {
            "USDC": "usd-coin",
            "SKL": "skale",
            "FLAG": "for-loot-and-glory",
            "rETH": "rocket-pool-eth",
        }
    },
}

# prices under which CONSISTENT_RATES are exactly arbitrage-free
REFERENCE = {
    "USDC": Decimal("1"),
    "SKL": Decimal("0.04"),
    "FLAG": Decimal("0.02"),
    "rETH": Decimal("200"),
}

CONSISTENT_RATES = {
    "usdc_skl_europa": Decimal("25"),
    "flag_skl_europa": Decimal("0.5"),
    "flag_reth_nebula": Decimal("0.0001"),
}


@pytest.fixture
def config_dict():
    return copy.deepcopy(BASE_CONFIG)


@pytest.fixture
def config(config_dict):
    return build_config(config_dict, env={})


@pytest.fixture
def make_rates(config):
    """Both directional rates per pool from token_a -> token_b rates by pool name."""

    def _make(overrides=None):
        rates_ab = dict(CONSISTENT_RATES)
        rates_ab.update(overrides or {})
        rates = []
        for name, rate_ab in rates_ab.items():
            pool = config.pools[name]
            rates.append(ConversionRate(pool.token_a, pool.token_b, rate_ab, pool))
            rates.append(ConversionRate(pool.token_b, pool.token_a, 1 / rate_ab, pool))
        return rates

    return _make


@pytest.fixture
def reference():
    return dict(REFERENCE)


def transfer_log(token, sender, recipient, value, block_number=1):
    """Raw ERC-20 Transfer log as found in a web3 receipt."""
    return {
        "address": token,
        "blockNumber": block_number,
        "topics": [
            event_topic(TRANSFER_EVENT_SIGNATURE),
            HexBytes(encode(["address"], [sender])),
            HexBytes(encode(["address"], [recipient])),
        ],
        "data": HexBytes(encode(["uint256"], [value])),
    }


@pytest.fixture(name="transfer_log")
def transfer_log_fixture():
    return transfer_log
