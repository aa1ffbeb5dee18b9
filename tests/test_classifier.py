"""
Tests for query classification.

Rule order is connect, then price lookup, then generic question; every
input maps to exactly one intent and classification never raises.
"""

import pytest

from cryptoagent.core.classifier import EMPTY_QUERY, MISSING_ASSET_TOKEN, classify
from cryptoagent.models.chat import Connect, GenericQuery, Invalid, PriceQuery


@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
def test_empty_query_is_invalid(query):
    assert classify(query) == Invalid(EMPTY_QUERY)


@pytest.mark.parametrize("query", ["connect", "Connect", "CONNECT"])
def test_connect_is_case_insensitive(query):
    assert classify(query) == Connect()


def test_connect_must_be_the_whole_query():
    assert classify("please connect my wallet") == GenericQuery("please connect my wallet")


@pytest.mark.parametrize("query", [" connect", "connect ", "connect\n"])
def test_connect_with_surrounding_whitespace_is_generic(query):
    assert classify(query) == GenericQuery(query)


def test_price_query_resolves_symbol():
    assert classify("price of BTC") == PriceQuery(symbol="bitcoin")
    assert classify("What is the Price Of eth today?") == PriceQuery(symbol="ethereum")


def test_price_query_unknown_token_passes_through():
    assert classify("price of unknowntoken") == PriceQuery(symbol="unknowntoken")


def test_price_query_takes_only_first_word():
    assert classify("price of sol and ada") == PriceQuery(symbol="solana")


@pytest.mark.parametrize("query", ["price of", "what is the price of ?", "price of   "])
def test_price_phrase_without_token_is_invalid(query):
    assert classify(query) == Invalid(MISSING_ASSET_TOKEN)


def test_other_text_is_generic_and_kept_verbatim():
    query = "  Explain proof of stake  "
    assert classify(query) == GenericQuery(text=query)


@pytest.mark.parametrize(
    "query",
    ["hello", "what's the market doing?", "prices of btc", "connect wallet", "12345"],
)
def test_non_matching_queries_are_generic(query):
    assert isinstance(classify(query), GenericQuery)


def test_classification_is_pure():
    query = "price of Doge"
    assert classify(query) == classify(query)
    assert query == "price of Doge"
