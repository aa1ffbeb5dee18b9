import re

from cryptoagent.core.symbols import resolve
from cryptoagent.models.chat import Connect, GenericQuery, Intent, Invalid, PriceQuery

CONNECT_COMMAND = "connect"
PRICE_PHRASE = "price of"
PRICE_PATTERN = re.compile(r"price of (\w+)", re.IGNORECASE)

EMPTY_QUERY = "empty query"
MISSING_ASSET_TOKEN = "missing asset token"


def classify(query: str) -> Intent:
    """Classify raw user text into an intent.

    Rules are checked in a fixed order: connect, price lookup, then
    anything else is a generic question for the AI agent. Never raises.
    """
    if not query or not query.strip():
        return Invalid(EMPTY_QUERY)

    lowered = query.lower()
    if lowered == CONNECT_COMMAND:
        return Connect()

    if PRICE_PHRASE in lowered:
        match = PRICE_PATTERN.search(query)
        if not match:
            return Invalid(MISSING_ASSET_TOKEN)
        return PriceQuery(symbol=resolve(match.group(1)))

    return GenericQuery(text=query)
