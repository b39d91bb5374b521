# FILE: services/ledger_client.py
"""
Ledger access

- LedgerClient: the contract the pipeline depends on
- SolanaRpcClient: JSON-RPC 2.0 over httpx against a Solana RPC node
- Every failure surfaces as LedgerClientError(reason, detail)
"""

import itertools
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

import httpx

from core.assets import lamports_to_sol
from core.errors import ExecutionError, ExecutionErrorKind
from models.ledger import SignatureInfo

logger = logging.getLogger("wallet_agent.ledger")


class LedgerClientError(Exception):
    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    TIMEOUT = "timeout"

    def __init__(self, reason: str, detail: str):
        super().__init__(detail)
        self.reason = reason
        self.detail = detail

    def to_execution_error(self) -> ExecutionError:
        kind = _REASON_TO_KIND.get(self.reason, ExecutionErrorKind.NETWORK_UNAVAILABLE)
        return ExecutionError(kind, self.detail)


_REASON_TO_KIND = {
    LedgerClientError.NETWORK: ExecutionErrorKind.NETWORK_UNAVAILABLE,
    LedgerClientError.RATE_LIMITED: ExecutionErrorKind.RATE_LIMITED,
    LedgerClientError.REJECTED: ExecutionErrorKind.REJECTED,
    LedgerClientError.TIMEOUT: ExecutionErrorKind.TIMEOUT,
}


class LedgerClient(Protocol):
    async def get_balance(self, address: str) -> Decimal: ...

    async def get_token_balance(self, owner: str, mint: str) -> Decimal: ...

    async def get_latest_blockhash(self) -> str: ...

    async def broadcast(self, serialized: str) -> str: ...

    async def get_recent_signatures(self, address: str, limit: int) -> List[SignatureInfo]: ...


class SolanaRpcClient:
    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 20.0,
        commitment: str = "confirmed",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        await self._client.aclose()

    # -----------------------------
    # Transport
    # -----------------------------
    async def _call(self, method: str, params: Optional[list] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            response = await self._client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise LedgerClientError(LedgerClientError.TIMEOUT, f"{method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise LedgerClientError(LedgerClientError.NETWORK, f"{method} failed: {e}") from e

        if response.status_code == 429:
            raise LedgerClientError(
                LedgerClientError.RATE_LIMITED,
                f"{method} was rate limited by the RPC node",
            )
        if response.status_code >= 500:
            raise LedgerClientError(
                LedgerClientError.NETWORK,
                f"{method} returned HTTP {response.status_code}",
            )
        if response.status_code >= 400:
            raise LedgerClientError(
                LedgerClientError.REJECTED,
                f"{method} returned HTTP {response.status_code}: {response.text[:200]}",
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LedgerClientError(LedgerClientError.NETWORK, f"{method} returned non-JSON body") from e

        error = body.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if code == 429:
                raise LedgerClientError(LedgerClientError.RATE_LIMITED, message)
            raise LedgerClientError(LedgerClientError.REJECTED, f"{method}: {message}")

        return body.get("result")

    # -----------------------------
    # Reads
    # -----------------------------
    async def get_balance(self, address: str) -> Decimal:
        result = await self._call("getBalance", [address, {"commitment": self.commitment}])
        return lamports_to_sol(int(_value("getBalance", result)))

    async def get_token_balance(self, owner: str, mint: str) -> Decimal:
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        accounts = _value("getTokenAccountsByOwner", result) or []
        total = Decimal("0")
        for account in accounts:
            token_amount = account["account"]["data"]["parsed"]["info"]["tokenAmount"]
            total += Decimal(token_amount.get("uiAmountString") or "0")
        return total

    async def get_latest_blockhash(self) -> str:
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = _value("getLatestBlockhash", result)
        if not isinstance(value, dict) or not value.get("blockhash"):
            raise LedgerClientError(LedgerClientError.REJECTED, "getLatestBlockhash: no blockhash in reply")
        return value["blockhash"]

    async def get_recent_signatures(self, address: str, limit: int) -> List[SignatureInfo]:
        result = await self._call("getSignaturesForAddress", [address, {"limit": limit}])
        return [_to_signature_info(item) for item in result or []]

    # -----------------------------
    # Writes
    # -----------------------------
    async def broadcast(self, serialized: str) -> str:
        logger.info("[BROADCAST] rpc=%s", self.rpc_url)
        return await self._call(
            "sendTransaction",
            [serialized, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )


def _value(method: str, result: Any) -> Any:
    if not isinstance(result, dict) or result.get("value") is None:
        raise LedgerClientError(LedgerClientError.REJECTED, f"{method}: no value in reply")
    return result["value"]


def _to_signature_info(item: Dict[str, Any]) -> SignatureInfo:
    return SignatureInfo(
        signature=item["signature"],
        slot=item.get("slot"),
        block_time=item.get("blockTime"),
        err=item.get("err"),
        memo=item.get("memo"),
        confirmation_status=item.get("confirmationStatus"),
    )
