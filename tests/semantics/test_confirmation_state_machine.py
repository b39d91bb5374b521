import asyncio
import pytest
from decimal import Decimal

from core.errors import ExecutionError, ExecutionErrorKind, InvalidStateError
from core.intent import Intent, IntentAction
from core.signing_mode import SigningMode
from models.transaction import PendingTransaction, TransactionResult, TransactionResultKind
from services.confirmation import ConfirmationState, ConfirmationStateMachine


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def make_pending(recipient, amount="0.1") -> PendingTransaction:
    return PendingTransaction(
        session_id="s1",
        intent=Intent(
            action=IntentAction.SEND,
            amount=Decimal(amount),
            destination_address=recipient,
            narrative_message="Ready to send.",
        ),
        signing_mode=SigningMode.AGENT_SIGN,
        source_address="agent",
    )


def ok_result() -> TransactionResult:
    return TransactionResult(
        kind=TransactionResultKind.SIGNATURE,
        signing_mode=SigningMode.AGENT_SIGN,
        signature="sig",
    )


# ---------------------------------------------------------------------
# TESTS
# ---------------------------------------------------------------------

def test_starts_idle_without_pending():
    machine = ConfirmationStateMachine("s1")
    assert machine.state is ConfirmationState.IDLE
    assert machine.pending is None


def test_confirm_from_idle_is_rejected():
    machine = ConfirmationStateMachine("s1")

    async def run(pending):
        raise AssertionError("must not run")

    with pytest.raises(InvalidStateError):
        asyncio.run(machine.confirm(run))
    assert machine.state is ConfirmationState.IDLE


def test_cancel_from_idle_is_a_no_op():
    machine = ConfirmationStateMachine("s1")
    assert machine.cancel() is False
    assert machine.state is ConfirmationState.IDLE
    assert machine.last_outcome is None


def test_double_cancel_equals_single_cancel(recipient):
    machine = ConfirmationStateMachine("s1")
    machine.propose(make_pending(recipient))

    assert machine.cancel() is True
    assert machine.cancel() is False

    assert machine.state is ConfirmationState.IDLE
    assert machine.pending is None
    assert machine.last_outcome is ConfirmationState.CANCELLED


def test_successful_confirm_ends_idle(recipient):
    machine = ConfirmationStateMachine("s1")
    pending = make_pending(recipient)
    machine.propose(pending)
    seen = []

    async def run(p):
        seen.append((p.id, machine.state))
        return ok_result()

    result = asyncio.run(machine.confirm(run))

    assert result.signature == "sig"
    assert seen == [(pending.id, ConfirmationState.EXECUTING)]
    assert machine.state is ConfirmationState.IDLE
    assert machine.pending is None
    assert machine.last_outcome is ConfirmationState.EXECUTED


def test_failed_confirm_ends_idle_and_is_not_retried(recipient):
    machine = ConfirmationStateMachine("s1")
    machine.propose(make_pending(recipient))
    calls = []

    async def run(p):
        calls.append(p.id)
        raise ExecutionError(ExecutionErrorKind.REJECTED, "blockhash not found")

    with pytest.raises(ExecutionError):
        asyncio.run(machine.confirm(run))

    assert len(calls) == 1
    assert machine.state is ConfirmationState.IDLE
    assert machine.last_outcome is ConfirmationState.FAILED

    # The failed transaction is gone; nothing left to confirm
    with pytest.raises(InvalidStateError):
        asyncio.run(machine.confirm(run))


def test_new_proposal_replaces_pending(recipient):
    machine = ConfirmationStateMachine("s1")
    first = make_pending(recipient, "0.1")
    second = make_pending(recipient, "0.2")

    assert machine.propose(first) is None
    replaced = machine.propose(second)

    assert replaced is first
    assert machine.pending is second
    assert machine.state is ConfirmationState.PROPOSED


def test_no_cancel_or_propose_while_executing(recipient):
    machine = ConfirmationStateMachine("s1")
    machine.propose(make_pending(recipient))
    errors = []

    async def run(p):
        for attempt in (machine.cancel, lambda: machine.propose(make_pending(recipient)), machine.reset):
            try:
                attempt()
            except InvalidStateError as e:
                errors.append(e.state)
        return ok_result()

    asyncio.run(machine.confirm(run))

    assert errors == ["executing", "executing", "executing"]
    assert machine.state is ConfirmationState.IDLE
