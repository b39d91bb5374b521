# FILE: services/command_pipeline.py
"""
Command pipeline: the surface UI / API callers talk to.

- interpret(text)            -> Intent
- propose_or_execute(intent) -> response envelope (pending transaction or info)
- confirm() / cancel()       -> TransactionResult / bool

Per-session state lives in SessionStore; the only shared resource is the
agent signing context, which serializes agent-signed build+broadcast.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, Optional

from core.errors import BuildError, BuildErrorKind, InvalidStateError, ValidationError, ValidationErrorKind
from core.intent import Intent, IntentAction
from core.signing_mode import SigningMode
from executors.address import AddressExecutor
from executors.balance import BalanceExecutor
from executors.base import BaseExecutor
from executors.clarification import ClarificationExecutor
from executors.history import HistoryExecutor
from executors.swap import SwapExecutor
from executors.transfer import TransferExecutor
from models.ledger import BalanceSnapshot
from models.transaction import PendingTransaction, TransactionResult
from services.balances import BalanceService
from services.command_validator import ValidatedIntent, is_valid_address
from services.execution_gateway import ExecutionGateway
from services.intent_parser import IntentClassifier, interpret
from services.ledger_client import LedgerClient
from services.session_store import SessionStore, WalletSession
from services.signing_context import AgentSigningContext
from services.swap_quote import SwapQuoteService
from services.transaction_builder import TransactionBuilder

logger = logging.getLogger("wallet_agent.pipeline")


class CommandPipeline:
    def __init__(
        self,
        classifier: IntentClassifier,
        ledger: LedgerClient,
        swap_quotes: SwapQuoteService,
        signing_context: Optional[AgentSigningContext] = None,
        *,
        sessions: Optional[SessionStore] = None,
        history_limit: int = 5,
        balance_max_age_seconds: float = 30,
        balance_refresh_delay_seconds: float = 1.0,
        classifier_timeout: float = 30,
    ):
        self.classifier = classifier
        self.ledger = ledger
        self.signing_context = signing_context
        self.sessions = sessions or SessionStore()
        self.balance_refresh_delay_seconds = balance_refresh_delay_seconds
        self.classifier_timeout = classifier_timeout

        self.balances = BalanceService(ledger, balance_max_age_seconds)
        self.builder = TransactionBuilder(ledger, swap_quotes, signing_context)
        self.gateway = ExecutionGateway(ledger)

        # -----------------------------
        # Action → Executor (SINGLE SOURCE OF TRUTH)
        # -----------------------------
        self.executors: Dict[IntentAction, BaseExecutor] = {
            IntentAction.SEND: TransferExecutor(self.balances, signing_context),
            IntentAction.SWAP: SwapExecutor(self.balances, swap_quotes),
            IntentAction.CHECK_BALANCE: BalanceExecutor(self.balances, ledger),
            IntentAction.SHOW_HISTORY: HistoryExecutor(ledger, history_limit),
            IntentAction.ASK_ADDRESS: AddressExecutor(signing_context),
        }
        self.clarification = ClarificationExecutor()

    @property
    def agent_signing_available(self) -> bool:
        return self.signing_context is not None

    # -----------------------------
    # Sessions
    # -----------------------------
    async def open_session(
        self,
        session_id: str,
        wallet_address: str,
        signing_mode: SigningMode = SigningMode.CLIENT_SIGN,
        balance: Optional[Decimal] = None,
    ) -> WalletSession:
        wallet_address = wallet_address.strip()
        if not is_valid_address(wallet_address):
            raise ValidationError(
                ValidationErrorKind.INVALID_ADDRESS,
                f"'{wallet_address}' is not a valid Solana wallet address",
            )
        if signing_mode.is_agent() and self.signing_context is None:
            raise BuildError(
                BuildErrorKind.MISSING_CREDENTIAL,
                "Agent signing is not available: no agent key is configured",
            )
        session = await self.sessions.open(session_id, wallet_address, signing_mode)
        if balance is not None:
            self.balances.seed(session, wallet_address, balance)
        return session

    def reset_session(self, session_id: str) -> None:
        session = self.sessions.get(session_id)
        session.confirmation.reset()
        session.forget_balances()

    async def close_session(self, session_id: str) -> bool:
        return await self.sessions.close(session_id)

    async def refresh_balance(self, session_id: str) -> BalanceSnapshot:
        session = self.sessions.get(session_id)
        return await self.balances.refresh(session, session.wallet_address)

    # -----------------------------
    # interpret / propose / confirm / cancel
    # -----------------------------
    async def interpret(self, session_id: str, text: str) -> Intent:
        session = self.sessions.get(session_id)
        snapshot = session.balance_for(session.wallet_address)
        return await interpret(
            text,
            self.classifier,
            context_address=session.wallet_address,
            context_balance=snapshot.amount if snapshot else None,
            timeout=self.classifier_timeout,
        )

    async def propose_or_execute(self, session_id: str, intent: Intent) -> dict:
        session = self.sessions.get(session_id)

        # Incomplete or unknown intents go straight back to the caller
        if not intent.is_actionable:
            logger.info("[CLARIFY] session=%s action=%s", session_id, intent.action.value)
            return await self.clarification.execute(intent, session)

        executor = self.executors[intent.action]
        response = await executor.execute(intent, session)
        logger.info("[HANDLED] session=%s action=%s type=%s", session_id, intent.action.value, response["type"])
        return response

    async def process(self, session_id: str, text: str) -> dict:
        intent = await self.interpret(session_id, text)
        response = await self.propose_or_execute(session_id, intent)
        response.setdefault("intent", intent.model_dump(mode="json"))
        return response

    def pending(self, session_id: str) -> Optional[PendingTransaction]:
        return self.sessions.get(session_id).confirmation.pending

    async def confirm(self, session_id: str) -> TransactionResult:
        session = self.sessions.get(session_id)

        async def run(pending: PendingTransaction) -> TransactionResult:
            result = await self._build_and_execute(session, pending)
            return result.model_copy(update={"pending_id": pending.id})

        return await session.confirmation.confirm(run)

    def cancel(self, session_id: str) -> bool:
        return self.sessions.get(session_id).confirmation.cancel()

    # -----------------------------
    # Internals
    # -----------------------------
    async def _build_and_execute(self, session: WalletSession, pending: PendingTransaction) -> TransactionResult:
        validated = ValidatedIntent(
            intent=pending.intent,
            source_address=pending.source_address,
            amount_base_units=pending.amount_base_units,
        )
        signing_mode = pending.signing_mode
        if signing_mode is not session.signing_mode_for(pending.intent.action):
            raise InvalidStateError(
                f"This transaction was prepared for {signing_mode.value} but the session now uses "
                f"{session.signing_mode.value}. Propose it again.",
            )

        if not signing_mode.is_agent():
            payload = await self.builder.build(validated, signing_mode)
            return await self.gateway.execute(payload, signing_mode)

        if self.signing_context is None:
            raise BuildError(
                BuildErrorKind.MISSING_CREDENTIAL,
                "Agent signing is not available: no agent key is configured",
            )

        async def refresh(address: str) -> None:
            await asyncio.sleep(self.balance_refresh_delay_seconds)
            await self.balances.refresh(session, address)

        # One agent-signed transaction in flight at a time
        async with self.signing_context.serialized():
            payload = await self.builder.build(validated, signing_mode)
            return await self.gateway.execute(payload, signing_mode, on_broadcast=refresh)

    async def aclose(self) -> None:
        await self.gateway.drain()
