"""
Async reads of V3 pool price state.
"""

import asyncio
from typing import Iterable, List, Mapping

from web3 import Web3

from .chain import ChainClient
from .events import net_liquidity_change
from .exceptions import ConfigurationError, RpcError
from .models import Pool, PoolState
from .utils import get_logger

logger = get_logger(__name__)


class PoolStateReader:
    """
    Reads slot0/liquidity/fee of pools through the client of each pool's chain.

    Reads are never retried; a failed read aborts the evaluation cycle.
    """

    def __init__(self, clients: Mapping[str, ChainClient]):
        self.clients = clients

    def _client_for(self, pool: Pool) -> ChainClient:
        client = self.clients.get(pool.chain)
        if client is None:
            raise ConfigurationError(f"No chain client for {pool.chain} (pool {pool.name})")
        return client

    async def read(self, pool: Pool) -> PoolState:
        """
        Fetch a snapshot of one pool.

        Raises:
            RpcError: If the endpoint fails or the pool is not initialized
            ConfigurationError: If the on-chain token0 or fee tier differs from
                the configuration
        """
        client = self._client_for(pool)
        loop = asyncio.get_event_loop()
        raw = await loop.run_in_executor(None, client.read_pool, pool.address)

        if raw["sqrt_price_x96"] <= 0:
            raise RpcError(
                f"Pool {pool.name} is not initialized (sqrt price is zero)",
                chain=pool.chain,
                endpoint=client.endpoint,
            )

        if Web3.to_checksum_address(raw["token0"]) != Web3.to_checksum_address(
            pool.token_a.address
        ):
            raise ConfigurationError(
                f"Pool {pool.name} token0 is {raw['token0']}, configured token_a "
                f"{pool.token_a.symbol} is {pool.token_a.address}"
            )

        # the router picks the pool by (token_in, token_out, fee)
        if raw["fee"] != pool.fee:
            raise ConfigurationError(
                f"Pool {pool.name} fee is {raw['fee']}, configured fee is {pool.fee}"
            )

        state = PoolState(
            pool=pool,
            sqrt_price_x96=raw["sqrt_price_x96"],
            tick=raw["tick"],
            liquidity=raw["liquidity"],
            fee=raw["fee"],
            block_number=raw.get("block_number"),
        )
        logger.debug(
            f"{pool.name}: sqrtPriceX96={state.sqrt_price_x96} tick={state.tick} "
            f"liquidity={state.liquidity} block={state.block_number}"
        )
        return state

    async def liquidity_change(self, state: PoolState) -> int:
        """
        Net liquidity minted minus burned in a pool after the block a state was read at.

        Returns 0 for a state without a block number.
        """
        if state.block_number is None:
            return 0
        client = self._client_for(state.pool)
        loop = asyncio.get_event_loop()
        events = await loop.run_in_executor(
            None, client.liquidity_events, state.pool.address, state.block_number + 1
        )
        return net_liquidity_change(events)

    async def read_many(self, pools: Iterable[Pool]) -> List[PoolState]:
        """Read several pools concurrently, preserving order."""
        return list(await asyncio.gather(*(self.read(pool) for pool in pools)))
