import asyncio
import base64
import pytest
from decimal import Decimal

from solders.signature import Signature
from solders.transaction import Transaction

from core.errors import BuildError, BuildErrorKind, ExecutionError, ExecutionErrorKind
from core.intent import Intent, IntentAction
from core.signing_mode import SigningMode
from models.transaction import PayloadKind
from services.command_validator import ValidatedIntent
from services.ledger_client import LedgerClientError
from services.transaction_builder import TransactionBuilder
from tests.fakes import FakeSwapQuotes


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def validated_send(source, recipient, amount="0.1"):
    intent = Intent(
        action=IntentAction.SEND,
        amount=Decimal(amount),
        destination_address=recipient,
        narrative_message="Ready to send.",
    )
    return ValidatedIntent(intent=intent, source_address=source, amount_base_units=100_000_000)


def validated_swap(source):
    intent = Intent(
        action=IntentAction.SWAP,
        amount=Decimal("1"),
        source_asset="SOL",
        destination_asset="USDC",
        narrative_message="Ready to swap.",
    )
    return ValidatedIntent(intent=intent, source_address=source, amount_base_units=1_000_000_000)


def decode(serialized: str) -> Transaction:
    return Transaction.from_bytes(base64.b64decode(serialized))


# ---------------------------------------------------------------------
# TESTS: TRANSFERS
# ---------------------------------------------------------------------

def test_agent_transfer_is_signed_by_the_agent(ledger, swap_quotes, signing_context, wallet, recipient):
    builder = TransactionBuilder(ledger, swap_quotes, signing_context)

    payload = asyncio.run(builder.build(validated_send(wallet, recipient), SigningMode.AGENT_SIGN))

    assert payload.kind is PayloadKind.TRANSFER
    assert payload.signed
    assert payload.source_address == signing_context.address
    assert payload.blockhash == ledger.blockhash

    tx = decode(payload.serialized)
    tx.verify()
    assert str(tx.message.account_keys[0]) == signing_context.address
    assert recipient in [str(key) for key in tx.message.account_keys]


def test_client_transfer_is_left_unsigned(ledger, swap_quotes, wallet, recipient):
    builder = TransactionBuilder(ledger, swap_quotes)

    payload = asyncio.run(builder.build(validated_send(wallet, recipient), SigningMode.CLIENT_SIGN))

    assert not payload.signed
    assert payload.source_address == wallet
    tx = decode(payload.serialized)
    assert tx.signatures[0] == Signature.default()
    assert str(tx.message.account_keys[0]) == wallet


def test_agent_transfer_without_key_fails_before_network(ledger, swap_quotes, wallet, recipient):
    builder = TransactionBuilder(ledger, swap_quotes, signing_context=None)

    with pytest.raises(BuildError) as excinfo:
        asyncio.run(builder.build(validated_send(wallet, recipient), SigningMode.AGENT_SIGN))

    assert excinfo.value.kind is BuildErrorKind.MISSING_CREDENTIAL
    assert excinfo.value.recoverable is False
    assert ledger.blockhash_calls == 0


def test_blockhash_failure_is_an_execution_error(ledger, swap_quotes, signing_context, wallet, recipient):
    ledger.failures["get_latest_blockhash"] = LedgerClientError(LedgerClientError.NETWORK, "connection refused")
    builder = TransactionBuilder(ledger, swap_quotes, signing_context)

    with pytest.raises(ExecutionError) as excinfo:
        asyncio.run(builder.build(validated_send(wallet, recipient), SigningMode.AGENT_SIGN))

    assert excinfo.value.kind is ExecutionErrorKind.NETWORK_UNAVAILABLE


# ---------------------------------------------------------------------
# TESTS: SWAPS
# ---------------------------------------------------------------------

def test_swap_is_quoted_fresh_and_left_for_the_wallet(ledger, swap_quotes, wallet):
    builder = TransactionBuilder(ledger, swap_quotes)

    payload = asyncio.run(builder.build(validated_swap(wallet), SigningMode.CLIENT_SIGN))

    assert payload.kind is PayloadKind.SWAP
    assert payload.signing_mode is SigningMode.CLIENT_SIGN
    assert not payload.signed
    assert payload.serialized == FakeSwapQuotes.UNSIGNED_SWAP
    assert swap_quotes.quotes == [("SOL", "USDC", Decimal("1"))]
    assert swap_quotes.swap_requests[0][1] == wallet


def test_swap_without_route(ledger, wallet):
    builder = TransactionBuilder(ledger, FakeSwapQuotes(no_route=True))

    with pytest.raises(BuildError) as excinfo:
        asyncio.run(builder.build(validated_swap(wallet), SigningMode.CLIENT_SIGN))

    assert excinfo.value.kind is BuildErrorKind.NO_ROUTE_FOUND
    assert excinfo.value.recoverable is True


def test_swaps_are_never_agent_signed(ledger, swap_quotes, signing_context, wallet):
    builder = TransactionBuilder(ledger, swap_quotes, signing_context)

    with pytest.raises(BuildError) as excinfo:
        asyncio.run(builder.build(validated_swap(wallet), SigningMode.AGENT_SIGN))

    assert excinfo.value.kind is BuildErrorKind.UNSUPPORTED_SIGNING_MODE
    assert swap_quotes.quotes == []
