from types import MappingProxyType

# Informal ticker -> CoinGecko id
CRYPTO_SYMBOL_MAPPINGS = MappingProxyType({
    "btc": "bitcoin",
    "eth": "ethereum",
    "doge": "dogecoin",
    "ada": "cardano",
    "xrp": "ripple",
    "matic": "polygon",
    "sol": "solana",
    "bnb": "binancecoin",
    "dot": "polkadot",
})


def resolve(token: str) -> str:
    """Map an informal token to its canonical id, unknown tokens pass through lower-cased"""
    symbol = token.lower()
    return CRYPTO_SYMBOL_MAPPINGS.get(symbol, symbol)
