# app.py
import logging
import json
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from asyncio import Lock

from config import (
    AGENT_PRIVATE_KEY,
    BALANCE_MAX_AGE_SECONDS,
    BALANCE_REFRESH_DELAY_SECONDS,
    CLASSIFIER_TIMEOUT_SECONDS,
    DEBUG,
    HISTORY_LIMIT,
    JUPITER_API_URL,
    RPC_TIMEOUT_SECONDS,
    SOLANA_RPC_URL,
    SWAP_SLIPPAGE_BPS,
)
from core.errors import (
    BuildErrorKind,
    ExecutionErrorKind,
    StateErrorKind,
    ValidationErrorKind,
    WalletCommandError,
)
from models.api import CommandRequest, ProposeRequest, SessionAction, SessionRequest
from services.command_pipeline import CommandPipeline
from services.intent_parser import LLMIntentClassifier
from services.ledger_client import SolanaRpcClient
from services.signing_context import load_signing_context
from services.swap_quote import JupiterSwapClient
from services.utils import deep_serialize


# -----------------------------
# Error kind → HTTP status (SINGLE SOURCE OF TRUTH)
# -----------------------------
ERROR_STATUS = {
    **{kind: 422 for kind in ValidationErrorKind},
    BuildErrorKind.NO_ROUTE_FOUND: 422,
    BuildErrorKind.MISSING_CREDENTIAL: 400,
    BuildErrorKind.UNSUPPORTED_SIGNING_MODE: 400,
    ExecutionErrorKind.NETWORK_UNAVAILABLE: 503,
    ExecutionErrorKind.RATE_LIMITED: 429,
    ExecutionErrorKind.REJECTED: 502,
    ExecutionErrorKind.TIMEOUT: 504,
    StateErrorKind.INVALID_STATE: 409,
    StateErrorKind.SESSION_NOT_FOUND: 404,
}

# -----------------------------
# Structured Logging Setup
# -----------------------------
class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(
            {
                "time": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
                "exception": record.exc_text,
            }
        )


logger = logging.getLogger("wallet_agent")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
if not logger.handlers:
    logger.addHandler(handler)

# -----------------------------
# FastAPI App
# -----------------------------
app = FastAPI(title="Solana Wallet Command API", version="1.0")

# -----------------------------
# Collaborators + Pipeline (Lifecycle managed)
# -----------------------------
ledger: SolanaRpcClient | None = None
swap_quotes: JupiterSwapClient | None = None
pipeline: CommandPipeline | None = None

# -----------------------------
# Metrics
# -----------------------------
metrics_lock = Lock()
request_counters = {
    "total": 0,
    "pending_transaction": 0,
    "balance": 0,
    "history": 0,
    "address": 0,
    "clarification": 0,
    "confirmed": 0,
    "cancelled": 0,
    "errors": 0,
}


async def _count(key: str) -> None:
    async with metrics_lock:
        request_counters[key] = request_counters.get(key, 0) + 1


# -----------------------------
# Failure envelope
# -----------------------------
def failure(status_code: int, error_type: str, message: str, recoverable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "type": error_type,
                "message": message,
                "recoverable": recoverable,
            }
        },
    )


@app.exception_handler(WalletCommandError)
async def wallet_error_handler(request: Request, exc: WalletCommandError):
    await _count("errors")
    logger.warning(f"[COMMAND_ERROR] path={request.url.path}, kind={exc.code}, detail='{exc.detail}'")
    return failure(ERROR_STATUS.get(exc.kind, 500), exc.code, exc.detail, exc.recoverable)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return failure(exc.status_code, "http_error", str(exc.detail))


# -----------------------------
# Startup / Shutdown Events
# -----------------------------
@app.on_event("startup")
async def startup():
    global ledger, swap_quotes, pipeline

    ledger = SolanaRpcClient(SOLANA_RPC_URL, timeout=RPC_TIMEOUT_SECONDS)
    swap_quotes = JupiterSwapClient(
        JUPITER_API_URL,
        slippage_bps=SWAP_SLIPPAGE_BPS,
        timeout=RPC_TIMEOUT_SECONDS,
    )

    # Invalid agent key fails startup; a missing one only disables agent signing
    signing_context = load_signing_context(AGENT_PRIVATE_KEY)

    pipeline = CommandPipeline(
        LLMIntentClassifier(),
        ledger,
        swap_quotes,
        signing_context,
        history_limit=HISTORY_LIMIT,
        balance_max_age_seconds=BALANCE_MAX_AGE_SECONDS,
        balance_refresh_delay_seconds=BALANCE_REFRESH_DELAY_SECONDS,
        classifier_timeout=CLASSIFIER_TIMEOUT_SECONDS,
    )
    logger.info(
        f"✅ Pipeline ready rpc={SOLANA_RPC_URL}, agent_signing={signing_context is not None}"
    )


@app.on_event("shutdown")
async def shutdown():
    if pipeline is not None:
        await pipeline.aclose()
    if ledger is not None:
        await ledger.aclose()
    if swap_quotes is not None:
        await swap_quotes.aclose()
    logger.info("✅ HTTP clients closed")


def _pipeline() -> CommandPipeline:
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Wallet pipeline not initialised")
    return pipeline


def _unexpected(e: Exception, session_id: str) -> HTTPException:
    logger.exception(f"[ERROR] session_id={session_id}, exception={e}")
    return HTTPException(
        status_code=500,
        detail=str(e) if DEBUG else "An unexpected error occurred",
    )

# -----------------------------
# API Endpoints
# -----------------------------
@app.get("/")
async def root():
    return {"message": "Solana Wallet Command API is running."}


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok" if pipeline is not None else "starting",
        "agent_signing_available": bool(pipeline and pipeline.agent_signing_available),
    }


@app.get("/metrics")
async def metrics() -> Dict[str, Any]:
    async with metrics_lock:
        return request_counters.copy()


@app.post("/sessions")
async def open_session(request: SessionRequest):
    try:
        session = await _pipeline().open_session(
            request.session_id,
            request.wallet_address,
            request.signing_mode,
            request.balance,
        )
    except (WalletCommandError, HTTPException):
        raise
    except Exception as e:
        raise _unexpected(e, request.session_id)

    return {
        "type": "session",
        "data": {
            "session_id": session.session_id,
            "wallet_address": session.wallet_address,
            "signing_mode": session.signing_mode.value,
        },
        "message": "Session ready.",
    }


@app.get("/sessions/{session_id}")
async def session_state(session_id: str):
    session = _pipeline().sessions.get(session_id)
    machine = session.confirmation
    return {
        "type": "session",
        "data": {
            "session_id": session.session_id,
            "wallet_address": session.wallet_address,
            "signing_mode": session.signing_mode.value,
            "state": machine.state.value,
            "last_outcome": machine.last_outcome.value if machine.last_outcome else None,
            "pending": deep_serialize(machine.pending),
        },
        "message": "",
    }


@app.post("/sessions/{session_id}/refresh-balance")
async def refresh_balance(session_id: str):
    snapshot = await _pipeline().refresh_balance(session_id)
    return {
        "type": "balance",
        "data": deep_serialize(snapshot),
        "message": f"Your balance is {snapshot.amount:.4f} SOL.",
    }


@app.post("/sessions/{session_id}/reset")
async def reset_session(session_id: str):
    _pipeline().reset_session(session_id)
    return {"type": "session", "data": {"session_id": session_id, "state": "idle"}, "message": "Session reset."}


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    closed = await _pipeline().close_session(session_id)
    if not closed:
        raise HTTPException(status_code=404, detail=f"No wallet session '{session_id}'")
    return {"type": "session", "data": {"session_id": session_id, "closed": True}, "message": "Session closed."}


@app.post("/interpret")
async def interpret_command(request: CommandRequest):
    await _count("total")
    intent = await _pipeline().interpret(request.session_id, request.text)
    logger.info(
        f"[INTENT] session_id={request.session_id}, action={intent.action.value}, "
        f"needs_more_info={intent.needs_more_info}"
    )
    return {
        "type": "intent",
        "data": intent.model_dump(mode="json"),
        "message": intent.narrative_message,
    }


@app.post("/process")
async def process_request(request: CommandRequest):
    await _count("total")
    logger.info(
        f"[REQUEST_START] session_id={request.session_id}, text_length={len(request.text)}"
    )
    try:
        response = await _pipeline().process(request.session_id, request.text)
    except (WalletCommandError, HTTPException):
        raise
    except Exception as e:
        await _count("errors")
        raise _unexpected(e, request.session_id)

    await _count(response["type"])
    return deep_serialize(response)


@app.post("/propose")
async def propose(request: ProposeRequest):
    await _count("total")
    try:
        response = await _pipeline().propose_or_execute(request.session_id, request.intent)
    except (WalletCommandError, HTTPException):
        raise
    except Exception as e:
        await _count("errors")
        raise _unexpected(e, request.session_id)

    await _count(response["type"])
    return deep_serialize(response)


@app.post("/confirm")
async def confirm(request: SessionAction):
    try:
        result = await _pipeline().confirm(request.session_id)
    except (WalletCommandError, HTTPException):
        raise
    except Exception as e:
        await _count("errors")
        raise _unexpected(e, request.session_id)

    await _count("confirmed")
    logger.info(
        f"[CONFIRMED] session_id={request.session_id}, kind={result.kind.value}, pending={result.pending_id}"
    )
    return {
        "type": "transaction",
        "data": result.model_dump(mode="json"),
        "message": result.message,
    }


@app.post("/cancel")
async def cancel(request: SessionAction):
    cancelled = _pipeline().cancel(request.session_id)
    if cancelled:
        await _count("cancelled")
    return {
        "type": "cancelled",
        "data": {"cancelled": cancelled},
        "message": "Transaction cancelled by user." if cancelled else "There was nothing to cancel.",
    }


# -----------------------------
# Entrypoint
# -----------------------------
import os
import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("API_LAYER.app:app", host="0.0.0.0", port=port, workers=1)
