"""
Transaction lifecycle types.

Plain dataclasses passed between the orchestrator, the ledger recorder
and the HTTP layer. None of them are persisted directly.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from eth_utils import is_address, to_checksum_address

from custody.models.enums import TransactionStatus
from custody.services.blockchain.errors import InvalidTransactionIntent
from custody.services.blockchain.revert_reasons import RevertReason
from custody.utils.amounts import format_amount, from_wei, to_wei


class TransactionState(StrEnum):
    """Orchestrator state for a single intent."""

    CREATED = "created"
    ESTIMATING = "estimating"
    SIMULATING = "simulating"
    SIGNING = "signing"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TransactionIntent:
    """
    Caller-supplied description of a transaction.

    Value is in ether units as a decimal string (or Decimal) and is
    converted to wei exactly. Explicit gas fields are in wei.
    """

    sender: str
    recipient: str
    value: Decimal | str
    network: str
    data: str | None = None
    gas_limit: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee_per_gas: int | None = None
    nonce: int | None = None

    def validate(self, allow_zero_value: bool = False) -> None:
        """
        Check the intent before any chain interaction.

        Args:
            allow_zero_value: Accept a zero value without calldata
                (replacement transactions sent to self)

        Raises:
            InvalidTransactionIntent: If an address is malformed or the
                value is not a positive, representable amount
        """
        if not self.sender or not is_address(self.sender):
            raise InvalidTransactionIntent(f"Invalid sender address: {self.sender!r}")
        if not self.recipient or not is_address(self.recipient):
            raise InvalidTransactionIntent(
                f"Invalid recipient address: {self.recipient!r}"
            )
        if not self.network:
            raise InvalidTransactionIntent("Network is required")

        try:
            wei = to_wei(self.value)
        except ValueError as e:
            raise InvalidTransactionIntent(str(e)) from e

        # Zero value only makes sense for contract calls
        if wei < 0 or (wei == 0 and not self.data and not allow_zero_value):
            raise InvalidTransactionIntent("Value must be positive")

        if self.data is not None and not _is_hex(self.data):
            raise InvalidTransactionIntent("Calldata must be 0x-prefixed hex")

        for name in ("gas_limit", "max_fee_per_gas", "max_priority_fee_per_gas"):
            amount = getattr(self, name)
            if amount is not None and amount <= 0:
                raise InvalidTransactionIntent(f"{name} must be positive")
        if self.nonce is not None and self.nonce < 0:
            raise InvalidTransactionIntent("nonce must not be negative")

    @property
    def value_wei(self) -> int:
        """Value in wei (exact)."""
        return to_wei(self.value)

    @property
    def sender_checksum(self) -> str:
        return to_checksum_address(self.sender)

    @property
    def recipient_checksum(self) -> str:
        return to_checksum_address(self.recipient)

    def to_call_params(self) -> dict[str, Any]:
        """Build eth_estimateGas / eth_call parameters."""
        params: dict[str, Any] = {
            "from": self.sender_checksum,
            "to": self.recipient_checksum,
            "value": self.value_wei,
        }
        if self.data:
            params["data"] = self.data
        return params


def _is_hex(value: str) -> bool:
    if not value.startswith("0x"):
        return False
    try:
        bytes.fromhex(value[2:])
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class FeeData:
    """Current fee market quote in wei."""

    gas_price: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee_per_gas: int | None = None

    @property
    def is_eip1559(self) -> bool:
        return self.max_fee_per_gas is not None and self.max_priority_fee_per_gas is not None

    @property
    def effective_price(self) -> int:
        """Price used for cost estimates (max fee for EIP-1559)."""
        if self.is_eip1559:
            return self.max_fee_per_gas or 0
        return self.gas_price or 0

    def scaled(self, percent: int) -> "FeeData":
        """Scale every fee field by an integer percentage."""
        def scale(amount: int | None) -> int | None:
            return amount * percent // 100 if amount is not None else None

        return FeeData(
            gas_price=scale(self.gas_price),
            max_fee_per_gas=scale(self.max_fee_per_gas),
            max_priority_fee_per_gas=scale(self.max_priority_fee_per_gas),
        )


@dataclass(frozen=True)
class GasEstimate:
    """Buffered gas limit plus fee quote and advisory speed tiers."""

    gas_estimate: int
    gas_limit: int
    fee_data: FeeData
    speeds: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def estimated_cost_wei(self) -> int:
        return self.gas_limit * self.fee_data.effective_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "gasEstimate": str(self.gas_estimate),
            "gasLimit": str(self.gas_limit),
            "gasPrice": str(self.fee_data.gas_price) if self.fee_data.gas_price else None,
            "maxFeePerGas": (
                str(self.fee_data.max_fee_per_gas) if self.fee_data.max_fee_per_gas else None
            ),
            "maxPriorityFeePerGas": (
                str(self.fee_data.max_priority_fee_per_gas)
                if self.fee_data.max_priority_fee_per_gas
                else None
            ),
            "estimatedCost": format_amount(self.estimated_cost_wei),
            "speeds": self.speeds,
        }


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of a dry run. Advisory only."""

    success: bool
    gas_used: int | None = None
    reason: RevertReason | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.success:
            result["gasUsed"] = str(self.gas_used) if self.gas_used is not None else None
        else:
            result["reason"] = self.reason.value if self.reason else None
            result["error"] = self.message
        return result


@dataclass
class SubmittedTransaction:
    """
    A broadcast transaction.

    Status moves once from pending to success or failed when the receipt
    is observed.
    """

    hash: str
    sender: str
    recipient: str
    value_wei: int
    network: str
    nonce: int
    status: TransactionStatus = TransactionStatus.PENDING
    block_number: int | None = None
    block_hash: str | None = None
    gas_used: int | None = None
    effective_gas_price: int | None = None
    confirmations: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def value(self) -> Decimal:
        """Value in ether, exact."""
        return from_wei(self.value_wei)

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    def apply_receipt(self, receipt: dict[str, Any], latest_block: int | None = None) -> None:
        """
        Move to a terminal status from a mined receipt.

        Args:
            receipt: Receipt mapping (web3 AttributeDict or dict)
            latest_block: Current head for the confirmation count
        """
        if not self.is_pending:
            return
        self.status = (
            TransactionStatus.SUCCESS if receipt.get("status") == 1 else TransactionStatus.FAILED
        )
        self.block_number = receipt.get("blockNumber")
        block_hash = receipt.get("blockHash")
        self.block_hash = hex_string(block_hash) if block_hash is not None else None
        self.gas_used = receipt.get("gasUsed")
        self.effective_gas_price = receipt.get("effectiveGasPrice")
        if latest_block is not None and self.block_number is not None:
            self.confirmations = max(latest_block - self.block_number + 1, 1)
        else:
            self.confirmations = 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "hash": self.hash,
            "from": self.sender,
            "to": self.recipient,
            "value": format(self.value, "f"),
            "gasUsed": str(self.gas_used) if self.gas_used is not None else None,
            "effectiveGasPrice": (
                str(self.effective_gas_price) if self.effective_gas_price is not None else None
            ),
            "status": self.status.value,
            "blockNumber": self.block_number,
            "blockHash": self.block_hash,
            "confirmations": self.confirmations,
            "timestamp": self.timestamp.isoformat(),
            "network": self.network,
            "nonce": self.nonce,
        }


def hex_string(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else f"0x{text}"
