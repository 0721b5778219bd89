"""
Pydantic models for Helius-style webhook envelopes.

The wire format is camelCase (as the production provider sends it); Python code
uses snake_case attributes. Program events are a tagged variant per known event
type with a typed data payload, plus GenericEvent for any other type tag so new
event kinds do not break parsing.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HIDE_TREASURE = "HIDE_TREASURE"
SEARCH_TREASURE = "SEARCH_TREASURE"
GET_CLUE = "GET_CLUE"

# 9999-12-31T23:59:59Z
MAX_UNIX_TIMESTAMP = 253_402_300_799


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class NativeTransfer(WireModel):
    """SOL transfer; amount in lamports."""

    from_user_account: str = ""
    to_user_account: str = ""
    amount: int = 0


class TokenTransfer(WireModel):
    """SPL token transfer; token_amount in UI units."""

    from_user_account: str = ""
    to_user_account: str = ""
    token_amount: float = Field(0, allow_inf_nan=False)
    mint: str | None = None
    token_symbol: str | None = None


class AccountData(WireModel):
    account: str
    native_balance_change: int = 0
    token_balance_changes: list[dict[str, Any]] = Field(default_factory=list)


class _EventData(WireModel):
    # Unknown keys are kept and end up in the stored record's metadata
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    wallet: str = ""

    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class HideTreasureData(_EventData):
    amount: float | None = Field(None, allow_inf_nan=False)
    mint: str | None = None
    token: str | None = None


class SearchTreasureData(_EventData):
    x: int | None = None
    y: int | None = None
    search_id: int | None = None


class GetClueData(_EventData):
    treasure_id: str = ""


class HideTreasureEvent(WireModel):
    type: Literal["HIDE_TREASURE", "hide_treasure"]
    program_id: str | None = None
    data: HideTreasureData = Field(default_factory=HideTreasureData)


class SearchTreasureEvent(WireModel):
    type: Literal["SEARCH_TREASURE", "search_treasure"]
    program_id: str | None = None
    data: SearchTreasureData = Field(default_factory=SearchTreasureData)


class GetClueEvent(WireModel):
    type: Literal["GET_CLUE", "get_clue"]
    program_id: str | None = None
    data: GetClueData = Field(default_factory=GetClueData)


class GenericEvent(WireModel):
    """Any event whose type tag is unknown, or whose data did not fit its typed variant."""

    type: str
    program_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


WebhookEvent = Annotated[
    Union[HideTreasureEvent, SearchTreasureEvent, GetClueEvent, GenericEvent],
    Field(union_mode="left_to_right"),
]

TypedEvent = Union[HideTreasureEvent, SearchTreasureEvent, GetClueEvent]


class WebhookEnvelope(WireModel):
    """
    One transaction as delivered by the webhook provider.

    `signature` is the idempotency key downstream and must be non-empty.
    """

    signature: str = Field(min_length=1)
    type: str = "UNKNOWN"
    # Unix seconds; anything datetime cannot represent is rejected
    timestamp: int | None = Field(None, ge=0, le=MAX_UNIX_TIMESTAMP)
    slot: int | None = None
    fee: int | None = None
    fee_payer: str | None = None
    description: str = ""
    native_transfers: list[NativeTransfer] = Field(default_factory=list)
    token_transfers: list[TokenTransfer] = Field(default_factory=list)
    account_data: list[AccountData] = Field(default_factory=list)
    events: list[WebhookEvent] = Field(default_factory=list)

    @field_validator("signature")
    @classmethod
    def _signature_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("signature must be non-empty")
        return v

    def find_event(self, event_cls: type[TypedEvent]) -> TypedEvent | None:
        """Return the first event of the given typed variant, or None."""
        for event in self.events:
            if isinstance(event, event_cls):
                return event
        return None

    def has_untyped_event(self, type_tag: str) -> bool:
        """True when an event carries type_tag but its data did not fit the typed variant."""
        tag = type_tag.upper()
        return any(
            isinstance(e, GenericEvent) and e.type.upper() == tag for e in self.events
        )
