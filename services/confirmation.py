# services/confirmation.py
"""
Per-session confirmation state machine.

    IDLE -> PROPOSED -> EXECUTING -> EXECUTED | FAILED -> IDLE
                     -> CANCELLED -> IDLE

Building and submitting a transaction is only reachable through confirm(),
and only from PROPOSED.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from core.errors import InvalidStateError
from models.transaction import PendingTransaction, TransactionResult

logger = logging.getLogger("wallet_agent.confirmation")


class ConfirmationState(str, Enum):
    IDLE = "idle"
    PROPOSED = "proposed"
    EXECUTING = "executing"
    EXECUTED = "executed"
    FAILED = "failed"
    CANCELLED = "cancelled"


Runner = Callable[[PendingTransaction], Awaitable[TransactionResult]]


class ConfirmationStateMachine:
    def __init__(self, session_id: str):
        self.session_id = session_id
        self._state = ConfirmationState.IDLE
        self._pending: Optional[PendingTransaction] = None
        self.last_outcome: Optional[ConfirmationState] = None

    @property
    def state(self) -> ConfirmationState:
        return self._state

    @property
    def pending(self) -> Optional[PendingTransaction]:
        return self._pending

    def propose(self, pending: PendingTransaction) -> Optional[PendingTransaction]:
        """
        Hold `pending` for confirmation.

        A proposal while another one is waiting replaces it; the replaced
        transaction is returned so the caller can tell the user.
        """
        if self._state is ConfirmationState.EXECUTING:
            raise InvalidStateError(
                "A transaction is executing; wait for it to finish before proposing another.",
                state=self._state.value,
            )

        replaced = self._pending
        if replaced is not None:
            logger.warning(
                "[PENDING_REPLACED] session=%s old=%s new=%s",
                self.session_id, replaced.id, pending.id,
            )

        self._pending = pending
        self._state = ConfirmationState.PROPOSED
        logger.info(
            "[PROPOSED] session=%s pending=%s action=%s",
            self.session_id, pending.id, pending.intent.action.value,
        )
        return replaced

    async def confirm(self, run: Runner) -> TransactionResult:
        if self._state is not ConfirmationState.PROPOSED or self._pending is None:
            raise InvalidStateError(
                "There is no pending transaction to confirm.",
                state=self._state.value,
            )

        pending = self._pending
        self._pending = None
        self._state = ConfirmationState.EXECUTING
        logger.info("[EXECUTING] session=%s pending=%s", self.session_id, pending.id)

        try:
            result = await run(pending)
        except BaseException as e:
            # No automatic retry: the user re-proposes from a clean state
            self.last_outcome = ConfirmationState.FAILED
            logger.warning(
                "[FAILED] session=%s pending=%s error=%r",
                self.session_id, pending.id, e,
            )
            raise
        else:
            self.last_outcome = ConfirmationState.EXECUTED
            logger.info(
                "[EXECUTED] session=%s pending=%s result=%s",
                self.session_id, pending.id, result.kind.value,
            )
            return result
        finally:
            self._state = ConfirmationState.IDLE

    def cancel(self) -> bool:
        """Drop the pending transaction. Returns False when there was nothing to cancel."""
        if self._state is ConfirmationState.EXECUTING:
            raise InvalidStateError(
                "The transaction is already executing and can no longer be cancelled.",
                state=self._state.value,
            )
        if self._state is not ConfirmationState.PROPOSED:
            return False

        cancelled = self._pending
        self._pending = None
        self._state = ConfirmationState.CANCELLED
        self.last_outcome = ConfirmationState.CANCELLED
        logger.info(
            "[CANCELLED] session=%s pending=%s",
            self.session_id, cancelled.id if cancelled else None,
        )
        self._state = ConfirmationState.IDLE
        return True

    def reset(self) -> None:
        if self._state is ConfirmationState.EXECUTING:
            raise InvalidStateError(
                "Cannot reset the session while a transaction is executing.",
                state=self._state.value,
            )
        self._pending = None
        self._state = ConfirmationState.IDLE
