"""
Per-chain web3 client: pool reads, liquidity event queries, swap submission
and receipt waits.

One ChainClient exists per configured chain. Clients are built once at
startup by build_chain_clients() and handed explicitly to the pool reader and
the swap executor. All methods are synchronous; async callers run them in the
default thread executor.
"""

import os
from typing import Any, Dict, List, Mapping, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from .abi import ERC20_ABI, SWAP_ROUTER_ABI, UNISWAP_V3_POOL_ABI
from .events import LIQUIDITY_TOPICS, DecodedEvent, EventKind, decode_logs
from .exceptions import ConfigurationError, RpcError
from .models import SwapInstruction
from .utils import get_logger

logger = get_logger(__name__)

# errors raised by web3 providers and contract calls
RPC_ERRORS = (Web3Exception, RequestException, OSError, ValueError)

MAX_UINT256 = 2**256 - 1
DEFAULT_RECEIPT_TIMEOUT = 180


class ChainClient:
    """
    Thin wrapper over a Web3 instance bound to one chain and one wallet.

    Args:
        name: Chain name used in configuration (e.g. "europa")
        chain_id: EVM chain id
        web3: Connected Web3 instance
        account: Signing account; None for a read-only client
        router: V3 SwapRouter address on this chain
        gas_limit: Gas limit applied to every submitted transaction
    """

    def __init__(
        self,
        name: str,
        chain_id: int,
        web3: Web3,
        account: Optional[LocalAccount] = None,
        router: Optional[str] = None,
        gas_limit: int = 300_000,
    ):
        self.name = name
        self.chain_id = chain_id
        self.web3 = web3
        self.account = account
        self.router = router
        self.gas_limit = gas_limit
        self.logger = get_logger(__name__, extra={"chain": name})

    @property
    def endpoint(self) -> Optional[str]:
        return getattr(self.web3.provider, "endpoint_uri", None)

    @property
    def wallet_address(self) -> str:
        return self._require_account().address

    def _require_account(self) -> LocalAccount:
        if self.account is None:
            raise ConfigurationError(
                f"No wallet configured for chain {self.name}; cannot sign transactions"
            )
        return self.account

    def _rpc_error(self, action: str, error: Exception) -> RpcError:
        return RpcError(
            f"{action} failed on {self.name}: {error}",
            chain=self.name,
            endpoint=self.endpoint,
        )

    def read_pool(self, address: str) -> Dict[str, Any]:
        """
        Read the price state of a V3 pool.

        Returns:
            Dict with sqrt_price_x96, tick, liquidity, fee, token0, block_number

        Raises:
            RpcError: If the endpoint is unreachable or a call reverts
        """
        pool = self.web3.eth.contract(address=address, abi=UNISWAP_V3_POOL_ABI)
        try:
            block_number = self.web3.eth.block_number
            slot0 = pool.functions.slot0().call(block_identifier=block_number)
            liquidity = pool.functions.liquidity().call(block_identifier=block_number)
            fee = pool.functions.fee().call(block_identifier=block_number)
            token0 = pool.functions.token0().call(block_identifier=block_number)
        except RPC_ERRORS as e:
            raise self._rpc_error(f"Reading pool {address}", e) from e

        return {
            "sqrt_price_x96": int(slot0[0]),
            "tick": int(slot0[1]),
            "liquidity": int(liquidity),
            "fee": int(fee),
            "token0": Web3.to_checksum_address(token0),
            "block_number": block_number,
        }

    def liquidity_events(self, address: str, from_block: int) -> List[DecodedEvent]:
        """
        Mint and Burn events of a pool from ``from_block`` to the latest block.

        Raises:
            RpcError: If the log query fails
        """
        try:
            logs = self.web3.eth.get_logs(
                {
                    "address": Web3.to_checksum_address(address),
                    "fromBlock": from_block,
                    "toBlock": "latest",
                    "topics": [LIQUIDITY_TOPICS],
                }
            )
        except RPC_ERRORS as e:
            raise self._rpc_error(f"Fetching liquidity events of {address}", e) from e

        return [
            event
            for event in decode_logs(logs)
            if event.kind in (EventKind.MINT, EventKind.BURN)
        ]

    def _sign_and_send(self, tx: Dict[str, Any]) -> str:
        account = self._require_account()
        signed = account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return self.web3.to_hex(tx_hash)

    def _base_tx(self) -> Dict[str, Any]:
        address = self.wallet_address
        return {
            "from": address,
            "chainId": self.chain_id,
            "gas": self.gas_limit,
            "gasPrice": self.web3.eth.gas_price,
            "nonce": self.web3.eth.get_transaction_count(address, "pending"),
        }

    def ensure_allowance(self, token: str, amount: int) -> Optional[str]:
        """
        Approve the router to spend ``token`` if the allowance is below ``amount``.

        Waits for the approval to confirm.

        Returns:
            Approval tx hash, or None if the allowance already covers ``amount``
        """
        if self.router is None:
            raise ConfigurationError(f"No router configured for chain {self.name}")

        erc20 = self.web3.eth.contract(address=token, abi=ERC20_ABI)
        try:
            allowance = erc20.functions.allowance(self.wallet_address, self.router).call()
            if allowance >= amount:
                return None

            self.logger.info(f"Approving router for {token}")
            tx = erc20.functions.approve(self.router, MAX_UINT256).build_transaction(
                self._base_tx()
            )
            tx_hash = self._sign_and_send(tx)
        except RPC_ERRORS as e:
            raise self._rpc_error(f"Approving {token}", e) from e

        self.wait_for_receipt(tx_hash)
        return tx_hash

    def build_swap_transaction(self, instruction: SwapInstruction) -> Dict[str, Any]:
        """Encode exactInputSingle for an instruction into a transaction dict."""
        if instruction.chain != self.name:
            raise ConfigurationError(
                f"Instruction for chain {instruction.chain} sent to client {self.name}"
            )

        router = self.web3.eth.contract(address=instruction.router, abi=SWAP_ROUTER_ABI)
        params = {
            "tokenIn": instruction.token_in,
            "tokenOut": instruction.token_out,
            "fee": instruction.fee,
            "recipient": instruction.recipient,
            "deadline": instruction.deadline,
            "amountIn": instruction.amount_in,
            "amountOutMinimum": instruction.amount_out_minimum,
            "sqrtPriceLimitX96": instruction.sqrt_price_limit_x96,
        }
        return router.functions.exactInputSingle(params).build_transaction(self._base_tx())

    def send_swap(self, instruction: SwapInstruction) -> str:
        """
        Sign and broadcast an exactInputSingle swap.

        Returns:
            Transaction hash as a 0x-prefixed hex string

        Raises:
            RpcError: If building or broadcasting the transaction fails
        """
        try:
            tx = self.build_swap_transaction(instruction)
            tx_hash = self._sign_and_send(tx)
        except RPC_ERRORS as e:
            raise self._rpc_error("Submitting swap", e) from e

        self.logger.info(f"Swap submitted: {tx_hash}")
        return tx_hash

    def wait_for_receipt(self, tx_hash: str, timeout: int = DEFAULT_RECEIPT_TIMEOUT):
        """
        Block until a transaction is mined.

        Raises:
            RpcError: If the wait times out or the transaction reverted
        """
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except RPC_ERRORS as e:
            raise self._rpc_error(f"Waiting for {tx_hash}", e) from e

        if receipt["status"] != 1:
            raise RpcError(
                f"Transaction {tx_hash} reverted on {self.name}",
                chain=self.name,
                endpoint=self.endpoint,
                details={"tx_hash": tx_hash, "block_number": receipt.get("blockNumber")},
            )
        return receipt


def build_chain_clients(config, env: Optional[Mapping[str, str]] = None) -> Dict[str, ChainClient]:
    """
    Create one ChainClient per configured chain.

    Private keys are read from the environment variable named by each chain's
    private_key_env. A chain without a key gets a read-only client.

    Args:
        config: ArbitrageConfig from load_arbitrage_config()
        env: Environment mapping (default os.environ)

    Returns:
        Chain name -> ChainClient
    """
    env = os.environ if env is None else env
    clients = {}

    for name, chain in config.chains.items():
        web3 = Web3(Web3.HTTPProvider(chain.rpc_url, request_kwargs={"timeout": 10}))

        account = None
        private_key = env.get(chain.private_key_env)
        if private_key:
            try:
                account = Account.from_key(private_key)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid private key in {chain.private_key_env} for chain {name}"
                ) from e
            logger.info(f"Loaded account for {name}: {account.address}")
        else:
            logger.warning(
                f"Private key environment variable {chain.private_key_env} not set - "
                f"{name} is read-only"
            )

        clients[name] = ChainClient(
            name=name,
            chain_id=chain.chain_id,
            web3=web3,
            account=account,
            router=chain.router,
            gas_limit=config.strategy.gas_limit,
        )

    return clients
