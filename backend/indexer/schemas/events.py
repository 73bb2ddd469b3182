"""
Inbound log schemas.

The host delivers one decoded log at a time as a mapping:

    {"event": "Transfer", "address": "0x..", "transactionHash": "0x..",
     "logIndex": 3, "blockNumber": 100, "blockTimestamp": 1700000000,
     "params": {...}}

`decode_log` validates the envelope and `decode_params` validates the
params against the handler's schema. Both raise EventDecodeError before
anything touches the store.
"""

import re
from dataclasses import dataclass
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


class EventDecodeError(ValueError):
    """An inbound log does not match the schema its handler expects."""

    def __init__(self, event_name: str, detail: str):
        self.event_name = event_name
        self.detail = detail
        super().__init__(f"cannot decode {event_name}: {detail}")


def _to_address(value: Any) -> str:
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"not a 20-byte hex address: {value!r}")
    return value.lower()


def _to_hash(value: Any) -> str:
    if not isinstance(value, str) or not _HASH_RE.match(value):
        raise ValueError(f"not a 32-byte hex hash: {value!r}")
    return value.lower()


def _to_uint(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        number = int(text, 16) if text.lower().startswith("0x") else int(text)
    else:
        raise ValueError(f"not an integer: {value!r}")
    if number < 0:
        raise ValueError(f"negative value for unsigned field: {number}")
    return number


Address = Annotated[str, BeforeValidator(_to_address)]
TxHash = Annotated[str, BeforeValidator(_to_hash)]
Uint = Annotated[int, BeforeValidator(_to_uint)]

# Envelope positions land in fixed-width integer columns
BlockUint = Annotated[int, BeforeValidator(_to_uint), Field(le=2**63 - 1)]
LogIndex = Annotated[int, BeforeValidator(_to_uint), Field(le=2**31 - 1)]


@dataclass(frozen=True)
class EventContext:
    """Delivery metadata shared by every handler."""

    address: str  # emitting contract
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int


class RawLog(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event: str
    address: Address
    transaction_hash: TxHash
    log_index: LogIndex
    block_number: BlockUint
    block_timestamp: BlockUint
    params: dict[str, Any] = Field(default_factory=dict)

    def context(self) -> EventContext:
        return EventContext(
            address=self.address,
            tx_hash=self.transaction_hash,
            log_index=self.log_index,
            block_number=self.block_number,
            timestamp=self.block_timestamp,
        )


class EventParams(BaseModel):
    """Base for event parameter payloads (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Factories ────────────────────────────────────────────────────────────


class CollectionCreated(EventParams):
    """NFT721Created / NFT1155Created / NFT6909Created."""

    nft_address: Address
    owner: Address
    name: str
    symbol: str


# ── Token contracts ──────────────────────────────────────────────────────


class ERC721Transfer(EventParams):
    from_address: Address = Field(alias="from")
    to_address: Address = Field(alias="to")
    token_id: Uint


class ERC1155TransferSingle(EventParams):
    operator: Optional[Address] = None
    from_address: Address = Field(alias="from")
    to_address: Address = Field(alias="to")
    token_id: Uint = Field(alias="id")
    value: Uint


class ERC1155TransferBatch(EventParams):
    operator: Optional[Address] = None
    from_address: Address = Field(alias="from")
    to_address: Address = Field(alias="to")
    ids: list[Uint]
    values: list[Uint]

    @model_validator(mode="after")
    def check_co_indexed(self):
        if len(self.ids) != len(self.values):
            raise ValueError(
                f"ids and values differ in length ({len(self.ids)} != {len(self.values)})"
            )
        return self


class ERC6909Transfer(EventParams):
    caller: Optional[Address] = None
    sender: Address
    receiver: Address
    token_id: Uint = Field(alias="id")
    amount: Uint


class OperatorSet(EventParams):
    owner: Address
    operator: Address
    approved: bool


class OwnershipTransferred(EventParams):
    previous_owner: Address
    new_owner: Address


# ── Marketplace ──────────────────────────────────────────────────────────


class ListingCreated(EventParams):
    listing_id: Uint
    seller: Address
    token_address: Address
    token_id: Uint
    amount: Uint
    price: Uint
    currency: Address


class ListingCancelled(EventParams):
    listing_id: Uint


class ListingSold(EventParams):
    listing_id: Uint
    token_address: Address
    token_id: Uint


class BidPlaced(EventParams):
    bidder: Address
    token_address: Address
    token_id: Uint
    token_amount: Uint
    amount: Uint
    currency: Address
    duration: Uint


class BidOutbid(EventParams):
    previous_bidder: Address
    token_address: Address
    token_id: Uint
    token_amount: Uint
    previous_amount: Uint
    # Not emitted by the marketplace contract; honoured when a host supplies it
    currency: Optional[Address] = None


class BidCancelled(EventParams):
    bidder: Address
    token_address: Address
    token_id: Uint
    token_amount: Uint
    amount: Uint
    currency: Address


class BidAccepted(EventParams):
    bidder: Address
    token_address: Address
    token_id: Uint
    token_amount: Uint
    currency: Address


# ── Decoding ─────────────────────────────────────────────────────────────


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    )


def decode_log(raw: Any) -> RawLog:
    """Validate a delivered log envelope."""
    if isinstance(raw, RawLog):
        return raw
    event_name = raw.get("event", "<unknown>") if isinstance(raw, dict) else "<unknown>"
    try:
        return RawLog.model_validate(raw)
    except ValidationError as exc:
        raise EventDecodeError(event_name, _describe(exc)) from exc


def decode_params(schema: type[EventParams], log: RawLog) -> EventParams:
    """Validate a log's params against the handler's schema."""
    try:
        return schema.model_validate(log.params)
    except ValidationError as exc:
        raise EventDecodeError(log.event, _describe(exc)) from exc
