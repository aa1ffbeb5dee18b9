import httpx
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional
from cryptoagent.config.settings import (
    AUTH_DOMAIN,
    AUTH_URI,
    WALLET_CHAIN_ID,
    WALLET_RPC_URL,
    WALLET_TIMEOUT
)
from cryptoagent.models.chat import AuthProof
from cryptoagent.models.errors import WalletError

logger = logging.getLogger(__name__)

AUTH_STATEMENT = "This is a key for the AI agent."
DERIVED_VIA = "web3.eth.personal.sign"


def build_auth_message(address: str, nonce: str, issued_at: datetime,
                       domain: str = AUTH_DOMAIN, uri: str = AUTH_URI, chain_id: int = WALLET_CHAIN_ID) -> str:
    """Sign-In with Ethereum (EIP-4361) message for ``address``"""
    return (
        f"{domain} wants you to sign in with your Ethereum account:\n"
        f"{address}\n"
        f"\n"
        f"{AUTH_STATEMENT}\n"
        f"\n"
        f"URI: {uri}\n"
        f"Version: 1\n"
        f"Chain ID: {chain_id}\n"
        f"Nonce: {nonce}\n"
        f"Issued At: {issued_at.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3]}Z"
    )


class WalletSession:
    """Connection to an Ethereum wallet provider and the auth proof it produced.

    Created on the first ``connect`` and closed when the process shuts down.
    The provider is any EIP-1193 wallet exposing JSON-RPC over HTTP.
    """

    def __init__(self, rpc_url: Optional[str] = WALLET_RPC_URL, timeout: Optional[float] = WALLET_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0
        self.address: Optional[str] = None
        self.auth_proof: Optional[AuthProof] = None

    @property
    def authenticated(self) -> bool:
        return self.auth_proof is not None

    def _get_client(self) -> httpx.AsyncClient:
        if not self.rpc_url:
            raise WalletError("NO_PROVIDER", "No Ethereum provider detected.")
        if self._client is None:
            logger.info(f"Attempting to connect to wallet provider at {self.rpc_url}...")
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        client = self._get_client()
        self._request_id += 1
        body = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            response = await client.post(self.rpc_url, json=body)
        except httpx.HTTPError as e:
            logger.error(f"Wallet RPC {method} failed: {e}")
            raise WalletError("NETWORK_ERROR", "Failed to connect wallet or authenticate.")

        if response.status_code != 200:
            logger.error(f"Wallet RPC {method} returned {response.status_code}: {response.text}")
            raise WalletError("API_ERROR", "Failed to connect wallet or authenticate.")
        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("not a JSON-RPC response object")
        except ValueError:
            logger.error(f"Failed to parse wallet response as JSON: {response.text}")
            raise WalletError("API_ERROR", "Failed to connect wallet or authenticate.")

        if data.get("error"):
            error = data["error"]
            logger.error(f"Wallet RPC {method} error: {error}")
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise WalletError("RPC_ERROR", f"Wallet refused the request: {message}")
        return data.get("result")

    async def request_accounts(self) -> str:
        """Ask the wallet for access and return the first account address"""
        accounts = await self._rpc("eth_requestAccounts", [])
        if accounts is not None and not (isinstance(accounts, list) and all(isinstance(a, str) for a in accounts)):
            logger.error(f"Unexpected eth_requestAccounts result: {accounts!r}")
            raise WalletError("API_ERROR", "Failed to connect wallet or authenticate.")
        if not accounts:
            raise WalletError("NO_ACCOUNTS", "No wallet connected")
        self.address = accounts[0]
        return self.address

    async def authenticate(self, address: str) -> AuthProof:
        """Have the wallet sign a SIWE message for ``address``"""
        message = build_auth_message(address, uuid.uuid4().hex[:16], datetime.now(timezone.utc))
        signature = await self._rpc("personal_sign", ["0x" + message.encode("utf-8").hex(), address])
        if not signature:
            raise WalletError("NO_SIGNATURE", "Wallet returned no signature")
        self.auth_proof = AuthProof(
            sig=signature,
            derived_via=DERIVED_VIA,
            signed_message=message,
            address=address,
        )
        logger.info(f"User {address} authenticated successfully!")
        return self.auth_proof

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self.address = None
        self.auth_proof = None
