# services/execution_gateway.py

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.errors import ExecutionError, ExecutionErrorKind
from core.signing_mode import SigningMode
from models.transaction import TransactionPayload, TransactionResult, TransactionResultKind
from services.ledger_client import LedgerClient, LedgerClientError

logger = logging.getLogger("wallet_agent.execution_gateway")

BalanceRefresh = Callable[[str], Awaitable[None]]


class ExecutionGateway:
    """
    Hands built payloads to whoever has to sign them.

    Agent-signed payloads are broadcast here; client-signed ones go back to
    the caller untouched. Broadcasts are never retried.
    """

    def __init__(self, ledger: LedgerClient, on_broadcast: Optional[BalanceRefresh] = None):
        self.ledger = ledger
        self.on_broadcast = on_broadcast
        self._refresh_tasks: set[asyncio.Task] = set()

    async def execute(
        self,
        payload: TransactionPayload,
        signing_mode: SigningMode,
        *,
        on_broadcast: Optional[BalanceRefresh] = None,
    ) -> TransactionResult:
        if payload.signed != signing_mode.is_agent() or payload.signing_mode is not signing_mode:
            raise ExecutionError(
                ExecutionErrorKind.REJECTED,
                f"Payload signing mode {payload.signing_mode.value} "
                f"(signed={payload.signed}) does not match {signing_mode.value}",
            )

        if signing_mode.is_client():
            # Built, not moved: the user's wallet signs and sends it
            return TransactionResult(
                kind=TransactionResultKind.UNSIGNED_PAYLOAD,
                signing_mode=signing_mode,
                payload=payload.serialized,
                message="Transaction prepared. Approve it in your wallet to send it.",
            )

        try:
            signature = await self.ledger.broadcast(payload.serialized)
        except LedgerClientError as e:
            logger.warning("[BROADCAST_FAILED] source=%s reason=%s detail=%s", payload.source_address, e.reason, e.detail)
            raise e.to_execution_error() from e

        if not signature:
            raise ExecutionError(ExecutionErrorKind.REJECTED, "Ledger returned no signature")

        logger.info("[BROADCAST_OK] source=%s signature=%s", payload.source_address, signature)
        self._schedule_refresh(payload.source_address, on_broadcast or self.on_broadcast)

        return TransactionResult(
            kind=TransactionResultKind.SIGNATURE,
            signing_mode=signing_mode,
            signature=signature,
            message=f"Transaction sent! Signature: {signature}",
        )

    def _schedule_refresh(self, address: str, refresh: Optional[BalanceRefresh]) -> None:
        if refresh is None:
            return
        task = asyncio.create_task(self._refresh(address, refresh))
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh(self, address: str, refresh: BalanceRefresh) -> None:
        # Advisory: the next validation tolerates a stale snapshot
        try:
            await refresh(address)
        except Exception:
            logger.exception("[BALANCE_REFRESH_FAILED] address=%s", address)

    async def drain(self) -> None:
        """Wait for scheduled balance refreshes (shutdown and tests)."""
        if self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)
