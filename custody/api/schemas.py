"""
Request schemas.

Pydantic models validating JSON bodies of the HTTP API. Field aliases
keep the camelCase wire names.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from custody.config.constants import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class TransactionParams(_Request):
    """Transaction intent fields shared by estimate / simulate / send."""

    from_address: str | None = Field(default=None, alias="from")
    to: str
    value: str = "0"
    data: str | None = None
    gas_limit: int | None = Field(default=None, alias="gasLimit", gt=0)
    max_fee_per_gas: int | None = Field(default=None, alias="maxFeePerGas", gt=0)
    max_priority_fee_per_gas: int | None = Field(
        default=None, alias="maxPriorityFeePerGas", gt=0
    )
    network: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: object) -> str:
        """Accept numbers but keep the decimal text exact."""
        if isinstance(v, float):
            raise ValueError("value must be a decimal string, not a float")
        if isinstance(v, int | Decimal):
            return str(v)
        return v


class EstimateRequest(TransactionParams):
    """Body of /estimate-gas and /simulate; "from" is required there."""

    from_address: str = Field(alias="from")


class SendRequest(TransactionParams):
    password: str = Field(min_length=1)
    force: bool = False


class ReceiptRequest(_Request):
    hash: str = Field(min_length=66, max_length=66)
    network: str | None = None


class NonceRequest(_Request):
    address: str
    network: str | None = None


class CancelRequest(_Request):
    password: str = Field(min_length=1)
    nonce: int | None = Field(default=None, ge=0)
    tx_hash: str | None = Field(default=None, alias="txHash")
    network: str | None = None


class SpeedUpRequest(_Request):
    password: str = Field(min_length=1)
    tx_hash: str = Field(alias="txHash", min_length=66, max_length=66)
    network: str | None = None


class SwapQuoteRequest(_Request):
    from_token: str = Field(alias="fromToken", min_length=1)
    to_token: str = Field(alias="toToken", min_length=1)
    amount: str
    network: str | None = None


class SwapExecuteRequest(SwapQuoteRequest):
    password: str = Field(min_length=1)
    force: bool = False


class ContactCreateRequest(_Request):
    alias: str = Field(min_length=1, max_length=64)
    wallet_address: str = Field(alias="walletAddress")
    notes: str | None = None
    favorite: bool = False


class ContactUpdateRequest(_Request):
    alias: str | None = Field(default=None, min_length=1, max_length=64)
    notes: str | None = None
    favorite: bool | None = None


class ContactTransactionsQuery(_Request):
    limit: int = Field(default=HISTORY_DEFAULT_LIMIT, ge=1, le=HISTORY_MAX_LIMIT)


class HistoryQuery(_Request):
    limit: int = Field(default=HISTORY_DEFAULT_LIMIT, ge=1, le=HISTORY_MAX_LIMIT)
    offset: int = Field(default=0, ge=0)
    network: str | None = None
    perspective: str | None = None
    status: str | None = None
    counterparty: str | None = None
