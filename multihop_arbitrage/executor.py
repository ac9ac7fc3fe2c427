"""
Sequential execution of an arbitrage path as dependent swap transactions.

Each hop spends the realized output of the previous hop, so hops run strictly
one after another and every hop waits for its receipt before the next is
built. Nothing is rolled back: a failure after a confirmed hop leaves funds
in an intermediate token and is reported as PartialExecutionError.
"""

import asyncio
import time
from decimal import Decimal, localcontext
from typing import Iterable, List, Mapping, Optional

from .chain import ChainClient
from .events import received_amount
from .exceptions import (
    ConfigurationError,
    PartialExecutionError,
    SwapExecutionError,
)
from .graph import index_rates, rate_for_hop
from .models import (
    ArbitragePath,
    ConversionRate,
    Hop,
    HopReceipt,
    SwapInstruction,
)
from .normalizer import PRECISION, validate_decimals
from .utils import (
    basis_points_to_decimal,
    fee_tier_to_decimal,
    from_raw_units,
    get_logger,
    to_raw_units,
)

logger = get_logger(__name__)

DEFAULT_DEADLINE_SECONDS = 20 * 60
DEFAULT_SLIPPAGE_TOLERANCE_BPS = 100
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def rescale_raw_amount(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Re-express a raw amount for a token with different decimals, rounding down."""
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def minimum_output(
    amount_in: int, hop: Hop, rate: Decimal, slippage_tolerance_bps: int
) -> int:
    """
    Slippage floor for a hop in raw token_out units.

    quoted_out * (1 - pool fee) * (1 - tolerance), rounded down.
    """
    decimals_in = validate_decimals(hop.token_in)
    decimals_out = validate_decimals(hop.token_out)
    with localcontext() as ctx:
        ctx.prec = PRECISION
        quoted_out = from_raw_units(amount_in, decimals_in) * rate
        floor = (
            quoted_out
            * (1 - fee_tier_to_decimal(hop.pool.fee))
            * (1 - basis_points_to_decimal(slippage_tolerance_bps))
        )
    return to_raw_units(floor, decimals_out)


class SwapExecutor:
    """
    Executes the hops of a path through the router of each hop's chain.

    Args:
        clients: Chain name -> ChainClient (router and wallet per chain)
        deadline_seconds: Swap deadline relative to submission time
        slippage_tolerance_bps: Tolerance applied below the fee-adjusted quote
        receipt_timeout: Seconds to wait for each receipt
    """

    def __init__(
        self,
        clients: Mapping[str, ChainClient],
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        slippage_tolerance_bps: int = DEFAULT_SLIPPAGE_TOLERANCE_BPS,
        receipt_timeout: int = 180,
    ):
        self.clients = clients
        self.deadline_seconds = deadline_seconds
        self.slippage_tolerance_bps = slippage_tolerance_bps
        self.receipt_timeout = receipt_timeout

    def _client_for(self, hop: Hop) -> ChainClient:
        client = self.clients.get(hop.chain)
        if client is None:
            raise ConfigurationError(f"No chain client for {hop.chain}")
        return client

    def build_instruction(
        self,
        hop: Hop,
        amount_in: int,
        rate: Decimal,
        recipient: str,
        now: Optional[float] = None,
    ) -> SwapInstruction:
        """Build the exactInputSingle parameters for one hop."""
        client = self._client_for(hop)
        if client.router is None:
            raise ConfigurationError(f"No router configured for chain {hop.chain}")
        now = time.time() if now is None else now

        return SwapInstruction(
            chain=hop.chain,
            router=client.router,
            token_in=hop.token_in.address,
            token_out=hop.token_out.address,
            fee=hop.pool.fee,
            recipient=recipient,
            deadline=int(now) + self.deadline_seconds,
            amount_in=amount_in,
            amount_out_minimum=minimum_output(
                amount_in, hop, rate, self.slippage_tolerance_bps
            ),
        )

    def plan(
        self,
        path: ArbitragePath,
        start_amount: Decimal,
        rates: Iterable[ConversionRate],
    ) -> List[SwapInstruction]:
        """
        Instructions the path would submit if every hop filled at its floor.

        Nothing is sent; used for dry runs.
        """
        index = index_rates(rates)
        instructions = []
        amount_in = to_raw_units(start_amount, validate_decimals(path.start_token))

        for i, hop in enumerate(path.hops):
            if i > 0:
                amount_in = rescale_raw_amount(
                    amount_in,
                    validate_decimals(path.hops[i - 1].token_out),
                    validate_decimals(hop.token_in),
                )
            client = self._client_for(hop)
            recipient = client.account.address if client.account else ZERO_ADDRESS
            instruction = self.build_instruction(
                hop, amount_in, rate_for_hop(index, hop).rate, recipient
            )
            instructions.append(instruction)
            amount_in = instruction.amount_out_minimum

        return instructions

    async def _run_hop(self, index: int, hop: Hop, amount_in: int, rate: Decimal) -> HopReceipt:
        client = self._client_for(hop)
        loop = asyncio.get_event_loop()

        recipient = client.wallet_address
        instruction = self.build_instruction(hop, amount_in, rate, recipient)

        await loop.run_in_executor(
            None, client.ensure_allowance, instruction.token_in, instruction.amount_in
        )

        logger.info(
            f"Hop {index + 1}: {hop} amount_in={instruction.amount_in} "
            f"min_out={instruction.amount_out_minimum}"
        )
        tx_hash = await loop.run_in_executor(None, client.send_swap, instruction)
        receipt = await loop.run_in_executor(
            None, client.wait_for_receipt, tx_hash, self.receipt_timeout
        )

        amount_out = received_amount(receipt["logs"], hop.token_out.address, recipient)
        if amount_out <= 0:
            raise SwapExecutionError(
                f"Hop {index + 1} confirmed in {tx_hash} but no {hop.token_out.symbol} "
                f"was received",
                failed_index=index,
            )

        hop_receipt = HopReceipt(
            hop_index=index,
            chain=hop.chain,
            tx_hash=tx_hash,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
            amount_in=instruction.amount_in,
            amount_out=amount_out,
        )
        logger.info(
            f"Hop {index + 1} confirmed in block {hop_receipt.block_number}: "
            f"received {amount_out} raw {hop.token_out.symbol} (tx {tx_hash})"
        )
        return hop_receipt

    async def execute(
        self,
        path: ArbitragePath,
        start_amount: Decimal,
        rates: Iterable[ConversionRate],
    ) -> List[HopReceipt]:
        """
        Execute every hop of a path in order.

        Args:
            path: Selected path
            start_amount: Human amount of the start token spent by hop 0
            rates: Conversion rates the path was quoted at

        Returns:
            One HopReceipt per hop

        Raises:
            SwapExecutionError: If hop 0 fails (nothing was spent)
            PartialExecutionError: If a later hop fails; ``completed`` holds
                the receipts of the hops that confirmed
        """
        index = index_rates(rates)
        receipts: List[HopReceipt] = []
        amount_in: Optional[int] = None

        logger.info(f"Executing {path.name} path: {path.describe()}")

        for i, hop in enumerate(path.hops):
            try:
                if i == 0:
                    amount_in = to_raw_units(start_amount, validate_decimals(hop.token_in))
                else:
                    amount_in = rescale_raw_amount(
                        receipts[-1].amount_out,
                        validate_decimals(path.hops[i - 1].token_out),
                        validate_decimals(hop.token_in),
                    )
                receipts.append(
                    await self._run_hop(i, hop, amount_in, rate_for_hop(index, hop).rate)
                )
            except Exception as e:
                logger.error(f"Hop {i + 1} ({hop}) failed: {e}")
                if receipts:
                    raise PartialExecutionError(
                        f"Hop {i + 1} of {len(path.hops)} failed after "
                        f"{len(receipts)} confirmed; funds remain in "
                        f"{hop.token_in.symbol} on {hop.chain}: {e}",
                        failed_index=i,
                        completed=receipts,
                        details={"amount_in": amount_in},
                    ) from e
                raise SwapExecutionError(
                    f"Hop {i + 1} of {len(path.hops)} failed: {e}",
                    failed_index=i,
                    details={"amount_in": amount_in},
                ) from e

        logger.info(f"{path.name} path complete: {len(receipts)} hops confirmed")
        return receipts
