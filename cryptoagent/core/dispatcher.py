import logging
from typing import Callable, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from cryptoagent.core.assembler import assemble
from cryptoagent.core.classifier import EMPTY_QUERY, classify
from cryptoagent.core.conversation import ConversationLog
from cryptoagent.models.chat import (
    ChatMessage,
    Connect,
    DispatchState,
    GenericQuery,
    Intent,
    Invalid,
    PriceQuery,
    QueryResponse,
    Role,
)
from cryptoagent.models.errors import AgentError, InvalidQuery, TransportFailure
from cryptoagent.services.coingecko import CoinGeckoService, format_usd
from cryptoagent.services.llm import OllamaService
from cryptoagent.services.wallet import WalletSession

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Still working on the previous query. Please wait."
EMPTY_QUERY_MESSAGE = "Please enter a query"
MISSING_TOKEN_MESSAGE = "Please provide a valid cryptocurrency name or symbol."
PRICE_ERROR_MESSAGE = "Error fetching price"
INFERENCE_ERROR_MESSAGE = "Failed to get a response from the AI agent"
GENERIC_ERROR_MESSAGE = "Failed to get a response"


class Dispatcher:
    """Routes one query at a time to the connect, price or AI handler.

    The dispatcher owns the conversation log. Every accepted query is
    logged as a User message before it is classified; a handler that
    succeeds appends exactly one Agent message. ``response`` always holds
    the latest text the UI should show (status, partial answer, final
    answer or error) and ``on_update`` is told about every change.
    """

    def __init__(self, price_service: Optional[CoinGeckoService] = None,
                 inference_service: Optional[OllamaService] = None,
                 wallet: Optional[WalletSession] = None,
                 on_update: Optional[Callable[[str], None]] = None):
        self.price_service = price_service or CoinGeckoService()
        self.inference_service = inference_service or OllamaService()
        self.wallet = wallet or WalletSession()
        self.on_update = on_update
        self._log = ConversationLog()
        self.state = DispatchState.IDLE
        self.response = ""
        self.loading = False

    def history(self) -> Tuple[ChatMessage, ...]:
        return self._log.entries()

    def history_dicts(self):
        return self._log.to_dicts()

    def _set_response(self, text: str) -> None:
        self.response = text
        if self.on_update is not None:
            self.on_update(text)

    async def submit(self, query: str) -> QueryResponse:
        if self.loading:
            logger.warning(f"Ignoring query while another is in flight: {query!r}")
            return QueryResponse(success=False, message=BUSY_MESSAGE)

        self.loading = True
        self._set_response("")
        self._log.append(ChatMessage(text=query, sender=Role.USER))
        intent: Optional[Intent] = None
        try:
            self.state = DispatchState.CLASSIFYING
            intent = classify(query)
            logger.info(f"Classified {query!r} as {intent}")

            if isinstance(intent, Invalid):
                self.state = DispatchState.REJECTED
                message = EMPTY_QUERY_MESSAGE if intent.reason == EMPTY_QUERY else MISSING_TOKEN_MESSAGE
                raise InvalidQuery(intent.reason.upper().replace(" ", "_"), message)
            if isinstance(intent, Connect):
                self.state = DispatchState.CONNECT_HANDLING
                message = await self._handle_connect()
            elif isinstance(intent, PriceQuery):
                self.state = DispatchState.PRICE_HANDLING
                message = await self._handle_price(intent)
            else:
                self.state = DispatchState.GENERIC_HANDLING
                message = await self._handle_generic(intent)
            return QueryResponse(success=True, message=message, intent=intent)

        except AgentError as e:
            logger.info(f"Query {query!r} failed ({e.code}): {e.message}")
            self._set_response(e.message)
            return QueryResponse(success=False, message=e.message, intent=intent)
        except Exception as e:
            logger.error(f"Error in AI query: {e}", exc_info=True)
            self._set_response(GENERIC_ERROR_MESSAGE)
            return QueryResponse(success=False, message=GENERIC_ERROR_MESSAGE, intent=intent)
        finally:
            self.state = DispatchState.IDLE
            self.loading = False

    def _answer(self, text: str) -> str:
        self._set_response(text)
        self._log.append(ChatMessage(text=text, sender=Role.AGENT))
        return text

    async def _handle_connect(self) -> str:
        self._set_response("Connecting to wallet...")
        address = await self.wallet.request_accounts()
        self._set_response(f"Connected to wallet: {address}")
        await self.wallet.authenticate(address)
        return self._answer(f"Connected to wallet: {address} and authenticated successfully!")

    async def _handle_price(self, intent: PriceQuery) -> str:
        try:
            price = await run_in_threadpool(self.price_service.get_spot_price, intent.symbol)
        except TransportFailure as e:
            raise TransportFailure(e.code, PRICE_ERROR_MESSAGE)
        return self._answer(f"The current price of {intent.symbol} is ${format_usd(price)}")

    async def _handle_generic(self, intent: GenericQuery) -> str:
        try:
            async with self.inference_service.open_stream(intent.text) as stream:
                text = await assemble(stream, self._set_response)
        except TransportFailure as e:
            raise TransportFailure(e.code, INFERENCE_ERROR_MESSAGE)
        return self._answer(text)
