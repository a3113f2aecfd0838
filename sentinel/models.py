"""Pydantic event and response schemas.

Events are a discriminated union on ``kind``; the same models are accepted by
``RiskEngine.ingest`` and by the HTTP ingestion endpoint.
"""

from pydantic import BaseModel, Field, ConfigDict, TypeAdapter
from typing import Annotated, Any, Dict, List, Literal, Optional, Union


class NumericEvent(BaseModel):
    """One sample for a numeric signal (keyLatency, mouseSpeed, ...)."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["numeric"] = "numeric"
    name: str = Field(...)
    value: float = Field(...)
    meta: Optional[Dict[str, Any]] = Field(default=None)


class FlagEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["flag"] = "flag"
    name: str = Field(...)
    value: bool = Field(...)
    meta: Optional[Dict[str, Any]] = Field(default=None)


class CounterEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["counter"] = "counter"
    name: str = Field(...)
    delta: int = Field(default=1)
    meta: Optional[Dict[str, Any]] = Field(default=None)


class CounterResetEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["counterReset"] = "counterReset"
    name: str = Field(...)
    meta: Optional[Dict[str, Any]] = Field(default=None)


Event = Annotated[
    Union[NumericEvent, FlagEvent, CounterEvent, CounterResetEvent],
    Field(discriminator="kind"),
]

event_adapter: TypeAdapter = TypeAdapter(Event)


# Responses

class Contribution(BaseModel):
    signal: str
    contribution: float


class RiskResponse(BaseModel):
    """Latest score for a session with its per-signal breakdown."""

    sessionId: str
    risk: float
    level: str
    computedAt: int
    breakdown: List[Contribution] = Field(default_factory=list)


class IngestResponse(BaseModel):
    ok: bool = True
    accepted: bool = True
    risk: float = 0.0
    level: str = "normal"


class EventRecord(BaseModel):
    id: str
    ts: int
    domain: str
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class EventQueryResponse(BaseModel):
    sessionId: str
    count: int
    events: List[EventRecord] = Field(default_factory=list)
