"""
Typed decoding of pool and token event logs.

Raw logs are decoded exactly once, at the boundary, into one record type per
event kind. Downstream code dispatches on ``event.kind`` and never inspects
event names or raw argument bags.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from eth_abi import decode
from hexbytes import HexBytes
from web3 import Web3

from .abi import BURN_EVENT_SIGNATURE, MINT_EVENT_SIGNATURE, TRANSFER_EVENT_SIGNATURE


class EventKind(str, Enum):
    MINT = "mint"
    BURN = "burn"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class MintEvent:
    """Liquidity added to a pool position."""

    address: str
    block_number: Optional[int]
    sender: str
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int
    kind: EventKind = field(default=EventKind.MINT, init=False)

    @property
    def liquidity_delta(self) -> int:
        return self.amount


@dataclass(frozen=True)
class BurnEvent:
    """Liquidity removed from a pool position."""

    address: str
    block_number: Optional[int]
    owner: str
    tick_lower: int
    tick_upper: int
    amount: int
    amount0: int
    amount1: int
    kind: EventKind = field(default=EventKind.BURN, init=False)

    @property
    def liquidity_delta(self) -> int:
        return -self.amount


@dataclass(frozen=True)
class TransferEvent:
    """ERC-20 Transfer; ``address`` is the token contract."""

    address: str
    block_number: Optional[int]
    sender: str
    recipient: str
    value: int
    kind: EventKind = field(default=EventKind.TRANSFER, init=False)


DecodedEvent = Union[MintEvent, BurnEvent, TransferEvent]


def event_topic(signature: str) -> HexBytes:
    """topic0 of an event signature."""
    return HexBytes(Web3.keccak(text=signature))


EVENT_TOPICS: Dict[HexBytes, EventKind] = {
    event_topic(MINT_EVENT_SIGNATURE): EventKind.MINT,
    event_topic(BURN_EVENT_SIGNATURE): EventKind.BURN,
    event_topic(TRANSFER_EVENT_SIGNATURE): EventKind.TRANSFER,
}

# topic0 filter for eth_getLogs: Mint or Burn
LIQUIDITY_TOPICS = [
    Web3.to_hex(event_topic(MINT_EVENT_SIGNATURE)),
    Web3.to_hex(event_topic(BURN_EVENT_SIGNATURE)),
]


def _topic_address(topic: HexBytes) -> str:
    return Web3.to_checksum_address(topic[-20:])


def _topic_int24(topic: HexBytes) -> int:
    return decode(["int24"], topic)[0]


def decode_log(log) -> Optional[DecodedEvent]:
    """
    Decode a raw log into its typed event record.

    Args:
        log: Mapping with "address", "topics", "data" and optionally
            "blockNumber" (web3 receipt/filter log format)

    Returns:
        The decoded event, or None for logs of any other event
    """
    topics = [HexBytes(t) for t in log["topics"]]
    if not topics:
        return None

    kind = EVENT_TOPICS.get(topics[0])
    if kind is None:
        return None

    address = Web3.to_checksum_address(log["address"])
    block_number = log.get("blockNumber")
    data = HexBytes(log["data"])

    if kind is EventKind.TRANSFER:
        # ERC-721 Transfer shares topic0 but indexes the id; not a token amount
        if len(topics) != 3:
            return None
        (value,) = decode(["uint256"], data)
        return TransferEvent(
            address=address,
            block_number=block_number,
            sender=_topic_address(topics[1]),
            recipient=_topic_address(topics[2]),
            value=value,
        )

    if kind is EventKind.MINT:
        sender, amount, amount0, amount1 = decode(
            ["address", "uint128", "uint256", "uint256"], data
        )
        return MintEvent(
            address=address,
            block_number=block_number,
            sender=Web3.to_checksum_address(sender),
            owner=_topic_address(topics[1]),
            tick_lower=_topic_int24(topics[2]),
            tick_upper=_topic_int24(topics[3]),
            amount=amount,
            amount0=amount0,
            amount1=amount1,
        )

    amount, amount0, amount1 = decode(["uint128", "uint256", "uint256"], data)
    return BurnEvent(
        address=address,
        block_number=block_number,
        owner=_topic_address(topics[1]),
        tick_lower=_topic_int24(topics[2]),
        tick_upper=_topic_int24(topics[3]),
        amount=amount,
        amount0=amount0,
        amount1=amount1,
    )


def decode_logs(logs: Iterable) -> List[DecodedEvent]:
    """Decode every recognised log, skipping the rest."""
    events = []
    for log in logs:
        event = decode_log(log)
        if event is not None:
            events.append(event)
    return events


def received_amount(logs: Iterable, token: str, recipient: str) -> int:
    """
    Sum of ``token`` transferred to ``recipient`` within a set of logs.

    Used to read the realized output of a swap from its receipt.
    """
    token_key = token.lower()
    recipient_key = recipient.lower()
    total = 0
    for event in decode_logs(logs):
        if event.kind is not EventKind.TRANSFER:
            continue
        if event.address.lower() == token_key and event.recipient.lower() == recipient_key:
            total += event.value
    return total


def net_liquidity_change(events: Iterable[DecodedEvent]) -> int:
    """Liquidity minted minus liquidity burned across decoded events."""
    total = 0
    for event in events:
        if event.kind in (EventKind.MINT, EventKind.BURN):
            total += event.liquidity_delta
    return total
