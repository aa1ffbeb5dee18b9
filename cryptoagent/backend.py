from contextlib import asynccontextmanager
from dataclasses import asdict
from fastapi import Depends, FastAPI
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
import logging
from .config.settings import LOG_LEVEL
from .core.dispatcher import Dispatcher
from .services.coingecko import price_series

# Set up logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

dispatcher = Dispatcher()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Closing wallet session...")
    await dispatcher.wallet.close()


app = FastAPI(lifespan=lifespan)


class QueryRequest(BaseModel):
    prompt: str = ""


def get_dispatcher() -> Dispatcher:
    return dispatcher


@app.post("/query")
async def query(request: QueryRequest, agent: Dispatcher = Depends(get_dispatcher)):
    result = await agent.submit(request.prompt)
    if not result.success:
        return {"error": result.message}
    return {"response": result.message}


@app.get("/history")
async def history(agent: Dispatcher = Depends(get_dispatcher)):
    return {"messages": agent.history_dicts()}


@app.get("/state")
async def state(agent: Dispatcher = Depends(get_dispatcher)):
    """Latest status, partial or final answer, for UIs that poll while a query runs"""
    return {
        "state": agent.state.value,
        "response": agent.response,
        "loading": agent.loading,
    }


@app.get("/dashboard")
async def dashboard(agent: Dispatcher = Depends(get_dispatcher)):
    snapshot = await run_in_threadpool(agent.price_service.get_market_snapshot)
    market = asdict(snapshot)
    market["price_series"] = price_series(snapshot.price_history)
    return {
        "messages": agent.history_dicts(),
        "response": agent.response,
        "loading": agent.loading,
        "market": market,
    }


@app.get("/health")
async def health_check():
    return {"status": "ok"}
