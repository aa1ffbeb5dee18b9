from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"


@dataclass(frozen=True)
class ChatMessage:
    text: str
    sender: Role


# Intents

@dataclass(frozen=True)
class Connect:
    pass


@dataclass(frozen=True)
class PriceQuery:
    symbol: str  # canonical id, e.g. "bitcoin"


@dataclass(frozen=True)
class GenericQuery:
    text: str


@dataclass(frozen=True)
class Invalid:
    reason: str  # "empty query" | "missing asset token"


Intent = Union[Connect, PriceQuery, GenericQuery, Invalid]


class DispatchState(str, Enum):
    IDLE = "idle"
    CLASSIFYING = "classifying"
    CONNECT_HANDLING = "connect_handling"
    PRICE_HANDLING = "price_handling"
    GENERIC_HANDLING = "generic_handling"
    REJECTED = "rejected"


@dataclass
class QueryResponse:
    success: bool
    message: str
    intent: Optional[Intent] = None


@dataclass(frozen=True)
class AuthProof:
    sig: str
    derived_via: str
    signed_message: str
    address: str
