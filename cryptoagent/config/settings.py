import os
from dotenv import load_dotenv

load_dotenv()


def _optional_float(name):
    value = os.getenv(name)
    return float(value) if value else None


# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Discord
DISCORD_BOT_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")

# API URLs
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://127.0.0.1:11434")
COINGECKO_API_URL = os.getenv("COINGECKO_API_URL", "https://api.coingecko.com/api/v3")

# Wallet
WALLET_RPC_URL = os.getenv("WALLET_RPC_URL")
WALLET_CHAIN_ID = int(os.getenv("WALLET_CHAIN_ID", "1"))
AUTH_DOMAIN = os.getenv("AUTH_DOMAIN", "localhost")
AUTH_URI = os.getenv("AUTH_URI", "http://localhost:8000")

# LLM Settings
LLM_MODEL = os.getenv("LLM_MODEL", "llama3.2")

# Timeouts in seconds, unset means wait indefinitely
INFERENCE_TIMEOUT = _optional_float("INFERENCE_TIMEOUT")
PRICE_TIMEOUT = _optional_float("PRICE_TIMEOUT")
WALLET_TIMEOUT = _optional_float("WALLET_TIMEOUT")
