"""Tests for typed event decoding."""

from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3

from multihop_arbitrage.abi import (
    BURN_EVENT_SIGNATURE,
    MINT_EVENT_SIGNATURE,
    TRANSFER_EVENT_SIGNATURE,
)
from multihop_arbitrage.events import (
    LIQUIDITY_TOPICS,
    BurnEvent,
    EventKind,
    MintEvent,
    TransferEvent,
    decode_log,
    decode_logs,
    event_topic,
    net_liquidity_change,
    received_amount,
)

TOKEN = "0x2000000000000000000000000000000000000001"
OTHER_TOKEN = "0x2000000000000000000000000000000000000002"
POOL = "0x4000000000000000000000000000000000000001"
WALLET = "0x9000000000000000000000000000000000000009"
OWNER = "0x7000000000000000000000000000000000000007"


def _topic(abi_type, value):
    return HexBytes(encode([abi_type], [value]))


def _mint_log():
    return {
        "address": POOL,
        "blockNumber": 55,
        "topics": [
            event_topic(MINT_EVENT_SIGNATURE),
            _topic("address", OWNER),
            _topic("int24", -600),
            _topic("int24", 600),
        ],
        "data": HexBytes(
            encode(
                ["address", "uint128", "uint256", "uint256"],
                [WALLET, 10**18, 5 * 10**6, 2 * 10**18],
            )
        ),
    }


def _burn_log():
    return {
        "address": POOL,
        "blockNumber": 56,
        "topics": [
            event_topic(BURN_EVENT_SIGNATURE),
            _topic("address", OWNER),
            _topic("int24", -600),
            _topic("int24", 600),
        ],
        "data": HexBytes(encode(["uint128", "uint256", "uint256"], [4 * 10**17, 1, 2])),
    }


def test_decode_transfer(transfer_log):
    event = decode_log(transfer_log(TOKEN, POOL, WALLET, 12345, block_number=9))

    assert isinstance(event, TransferEvent)
    assert event.kind is EventKind.TRANSFER
    assert event.address == TOKEN
    assert event.sender == POOL
    assert event.recipient == WALLET
    assert event.value == 12345
    assert event.block_number == 9


def test_decode_mint():
    event = decode_log(_mint_log())

    assert isinstance(event, MintEvent)
    assert event.kind is EventKind.MINT
    assert event.owner == OWNER
    assert event.sender == WALLET
    assert (event.tick_lower, event.tick_upper) == (-600, 600)
    assert event.liquidity_delta == 10**18


def test_decode_burn():
    event = decode_log(_burn_log())

    assert isinstance(event, BurnEvent)
    assert event.kind is EventKind.BURN
    assert event.liquidity_delta == -4 * 10**17


def test_unknown_event_ignored():
    log = {
        "address": POOL,
        "topics": [event_topic("Swap(address,address,int256,int256,uint160,uint128,int24)")],
        "data": HexBytes(b""),
    }
    assert decode_log(log) is None


def test_log_without_topics_ignored():
    assert decode_log({"address": POOL, "topics": [], "data": HexBytes(b"")}) is None


def test_nft_transfer_ignored():
    log = {
        "address": TOKEN,
        "topics": [
            event_topic(TRANSFER_EVENT_SIGNATURE),
            _topic("address", POOL),
            _topic("address", WALLET),
            _topic("uint256", 7),
        ],
        "data": HexBytes(b""),
    }
    assert decode_log(log) is None


def test_decode_logs_skips_unrecognised(transfer_log):
    logs = [
        _mint_log(),
        {"address": POOL, "topics": [HexBytes(b"\x01" * 32)], "data": HexBytes(b"")},
        transfer_log(TOKEN, POOL, WALLET, 1),
    ]

    kinds = [event.kind for event in decode_logs(logs)]

    assert kinds == [EventKind.MINT, EventKind.TRANSFER]


def test_received_amount_filters_token_and_recipient(transfer_log):
    logs = [
        transfer_log(TOKEN, POOL, WALLET, 100),
        transfer_log(TOKEN, WALLET, POOL, 999),
        transfer_log(OTHER_TOKEN, POOL, WALLET, 555),
        transfer_log(TOKEN, POOL, WALLET, 23),
        _mint_log(),
    ]

    assert received_amount(logs, TOKEN.lower(), WALLET) == 123
    assert received_amount(logs, OTHER_TOKEN, WALLET) == 555
    assert received_amount([], TOKEN, WALLET) == 0


def test_net_liquidity_change(transfer_log):
    events = decode_logs(
        [_mint_log(), _burn_log(), transfer_log(TOKEN, POOL, WALLET, 10**30)]
    )

    assert net_liquidity_change(events) == 10**18 - 4 * 10**17
    assert net_liquidity_change([]) == 0


def test_liquidity_topics_select_mint_and_burn():
    assert LIQUIDITY_TOPICS == [
        Web3.to_hex(event_topic(MINT_EVENT_SIGNATURE)),
        Web3.to_hex(event_topic(BURN_EVENT_SIGNATURE)),
    ]
    assert all(topic.startswith("0x") and len(topic) == 66 for topic in LIQUIDITY_TOPICS)
