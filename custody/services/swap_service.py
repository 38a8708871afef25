"""
Swap service.

Token swaps through a Uniswap V2 router. Quotes come from getAmountsOut
with a slippage floor; execution builds router calldata and runs it
through the transaction orchestrator like any other transaction. Token
inputs are approved first when the router's allowance is too small.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import Web3

from custody.config.constants import (
    ERC20_ABI,
    ERC20_APPROVE_GAS_LIMIT,
    SWAP_DEADLINE_SECONDS,
    SWAP_SLIPPAGE_BPS,
    SWAP_TOKENS,
    UNISWAP_SWAP_GAS_LIMIT,
    UNISWAP_V2_ROUTER,
    UNISWAP_V2_ROUTER_ABI,
    WETH_ADDRESS,
)
from custody.models.enums import TransactionStatus
from custody.services.blockchain.errors import (
    ConfigurationError,
    ConfirmationTimeout,
    OnChainRevert,
)
from custody.services.blockchain.orchestrator import TransactionOrchestrator
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.types import SubmittedTransaction, TransactionIntent
from custody.utils.amounts import format_amount, from_base_units, to_base_units
from custody.utils.security import mask_tx_hash

NATIVE_SYMBOL = "ETH"

ApprovalCallback = Callable[[SubmittedTransaction], None]

# Offline encoder for router / token calldata
_ENCODER = Web3()


def encode_call(abi: list[dict[str, Any]], fn_name: str, args: list[Any]) -> str:
    """ABI-encode a contract call."""
    return _ENCODER.eth.contract(abi=abi).encode_abi(fn_name, args=args)


def _display_symbol(symbol: str, address: str) -> str:
    return address if Web3.is_address(symbol) else symbol.upper()


def apply_slippage(amount_out: int, slippage_bps: int = SWAP_SLIPPAGE_BPS) -> int:
    """
    Minimum acceptable output after slippage.

    Examples:
        >>> apply_slippage(1000000)
        995000
    """
    return amount_out * (10_000 - slippage_bps) // 10_000


@dataclass(frozen=True)
class SwapQuote:
    """Quote for swapping amount_in of one asset into another."""

    network: str
    from_token: str
    to_token: str
    path: tuple[str, ...]
    amount_in: int
    amount_out: int
    amount_out_min: int
    from_decimals: int
    to_decimals: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.network,
            "fromToken": self.from_token,
            "toToken": self.to_token,
            "path": list(self.path),
            "amountIn": format_amount(self.amount_in, self.from_decimals),
            "amountOut": format_amount(self.amount_out, self.to_decimals),
            "amountOutMin": format_amount(self.amount_out_min, self.to_decimals),
            "slippage": f"{SWAP_SLIPPAGE_BPS / 100}%",
        }


@dataclass
class SwapExecution:
    """Result of an executed swap."""

    quote: SwapQuote
    transaction: SubmittedTransaction
    approval: SubmittedTransaction | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {**self.quote.to_dict(), "transaction": self.transaction.to_dict()}
        if self.approval is not None:
            result["approvalHash"] = self.approval.hash
        return result


class SwapService:
    """Uniswap V2 quotes and swaps."""

    def __init__(
        self,
        executor: RetryExecutor,
        orchestrator: TransactionOrchestrator,
        slippage_bps: int = SWAP_SLIPPAGE_BPS,
    ) -> None:
        self.executor = executor
        self.orchestrator = orchestrator
        self.slippage_bps = slippage_bps

    def _router(self, network: str) -> str:
        router = UNISWAP_V2_ROUTER.get(network)
        if not router:
            raise ConfigurationError(network, f"Swaps are not supported on {network}")
        return Web3.to_checksum_address(router)

    def _token_address(self, network: str, symbol: str) -> str:
        """Resolve a symbol (or address) to a token address; ETH maps to WETH."""
        if symbol.upper() == NATIVE_SYMBOL:
            return Web3.to_checksum_address(WETH_ADDRESS[network])
        if Web3.is_address(symbol):
            return Web3.to_checksum_address(symbol)
        tokens = SWAP_TOKENS.get(network, {})
        address = tokens.get(symbol.upper())
        if not address:
            raise ValueError(f"Unsupported token on {network}: {symbol}")
        return Web3.to_checksum_address(address)

    async def _decimals(self, network: str, symbol: str, token: str) -> int:
        if symbol.upper() == NATIVE_SYMBOL:
            return 18
        return int(
            await self.executor.with_retry(
                network,
                lambda client: client.call_function(token, ERC20_ABI, "decimals"),
                operation_name="erc20_decimals",
            )
        )

    async def get_quote(
        self, network: str, from_token: str, to_token: str, amount: Decimal | str
    ) -> SwapQuote:
        """
        Quote a swap.

        Args:
            network: Network name
            from_token: Input symbol ("ETH", "DAI"...) or token address
            to_token: Output symbol or token address
            amount: Input amount in token units

        Returns:
            SwapQuote with expected output and slippage floor
        """
        router = self._router(network)
        if from_token.upper() == to_token.upper():
            raise ValueError("Cannot swap a token for itself")

        path = (self._token_address(network, from_token), self._token_address(network, to_token))
        from_decimals = await self._decimals(network, from_token, path[0])
        to_decimals = await self._decimals(network, to_token, path[1])

        amount_in = to_base_units(amount, from_decimals)
        if amount_in <= 0:
            raise ValueError("Amount must be positive")

        amounts = await self.executor.with_retry(
            network,
            lambda client: client.call_function(
                router, UNISWAP_V2_ROUTER_ABI, "getAmountsOut", amount_in, list(path)
            ),
            operation_name="getAmountsOut",
        )
        amount_out = int(amounts[-1])

        return SwapQuote(
            network=network,
            from_token=_display_symbol(from_token, path[0]),
            to_token=_display_symbol(to_token, path[1]),
            path=path,
            amount_in=amount_in,
            amount_out=amount_out,
            amount_out_min=apply_slippage(amount_out, self.slippage_bps),
            from_decimals=from_decimals,
            to_decimals=to_decimals,
        )

    async def _ensure_allowance(
        self,
        private_key: str,
        owner: str,
        quote: SwapQuote,
        router: str,
        on_approval: ApprovalCallback | None = None,
    ) -> SubmittedTransaction | None:
        """
        Approve the router for the input token when needed.

        on_approval sees the approval as soon as it is broadcast, before its
        outcome can abort the swap.
        """
        token = quote.path[0]
        allowance = await self.executor.with_retry(
            quote.network,
            lambda client: client.call_function(token, ERC20_ABI, "allowance", owner, router),
            operation_name="erc20_allowance",
        )
        if int(allowance) >= quote.amount_in:
            return None

        logger.info(f"[{quote.network}] Approving router for {quote.from_token}")
        approval = await self.orchestrator.execute(
            TransactionIntent(
                sender=owner,
                recipient=token,
                value=Decimal(0),
                network=quote.network,
                data=encode_call(ERC20_ABI, "approve", [router, quote.amount_in]),
                gas_limit=ERC20_APPROVE_GAS_LIMIT,
            ),
            private_key,
        )
        if on_approval is not None:
            on_approval(approval)
        if approval.status is TransactionStatus.FAILED:
            raise OnChainRevert(approval.hash, "Token approval reverted on-chain")
        if approval.is_pending:
            raise ConfirmationTimeout(approval.hash, self.orchestrator.receipt_timeout)
        return approval

    async def execute_swap(
        self,
        private_key: str,
        network: str,
        from_token: str,
        to_token: str,
        amount: Decimal | str,
        force: bool = False,
        on_approval: ApprovalCallback | None = None,
    ) -> SwapExecution:
        """
        Execute a swap for the wallet controlled by private_key.

        An approval broadcast on the way is passed to on_approval even when
        the swap itself is never sent.

        Raises:
            OnChainRevert: Approval mined but reverted
            ConfirmationTimeout: Approval not confirmed in time
            SimulationRevert: Swap predicted to fail
            SubmissionError: Broadcast rejected
        """
        router = self._router(network)
        owner = Account.from_key(private_key).address
        quote = await self.get_quote(network, from_token, to_token, amount)
        deadline = int(time.time()) + SWAP_DEADLINE_SECONDS
        path = list(quote.path)

        approval = None
        if quote.from_token == NATIVE_SYMBOL:
            data = encode_call(
                UNISWAP_V2_ROUTER_ABI,
                "swapExactETHForTokens",
                [quote.amount_out_min, path, owner, deadline],
            )
            value = from_base_units(quote.amount_in)
        else:
            approval = await self._ensure_allowance(
                private_key, owner, quote, router, on_approval=on_approval
            )
            fn_name = (
                "swapExactTokensForETH"
                if quote.to_token == NATIVE_SYMBOL
                else "swapExactTokensForTokens"
            )
            data = encode_call(
                UNISWAP_V2_ROUTER_ABI,
                fn_name,
                [quote.amount_in, quote.amount_out_min, path, owner, deadline],
            )
            value = Decimal(0)

        submitted = await self.orchestrator.execute(
            TransactionIntent(
                sender=owner,
                recipient=router,
                value=value,
                network=network,
                data=data,
                gas_limit=UNISWAP_SWAP_GAS_LIMIT,
            ),
            private_key,
            force=force,
        )
        logger.info(
            f"[{network}] Swap {quote.from_token}->{quote.to_token} "
            f"{mask_tx_hash(submitted.hash)} status={submitted.status}"
        )
        return SwapExecution(quote=quote, transaction=submitted, approval=approval)
