# FILE: services/transaction_builder.py
"""
Transaction Builder

- Converts a ValidatedIntent -> TransactionPayload
- SEND + AGENT_SIGN: transfer from the agent address, signed by the agent
- SEND + CLIENT_SIGN: same transfer from the user's wallet, left unsigned
- SWAP (client only): fresh aggregator quote -> unsigned swap transaction
- Never broadcasts; that is the gateway's job
"""

import base64
import logging
from typing import Optional

from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from core.assets import canonical_asset_id, sol_to_lamports
from core.errors import BuildError, BuildErrorKind
from core.intent import IntentAction
from core.signing_mode import SigningMode
from models.transaction import PayloadKind, TransactionPayload
from services.command_validator import ValidatedIntent
from services.ledger_client import LedgerClient, LedgerClientError
from services.signing_context import AgentSigningContext
from services.swap_quote import SwapQuoteService

logger = logging.getLogger("wallet_agent.transaction_builder")


def encode_transaction(tx: Transaction) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")


class TransactionBuilder:
    def __init__(
        self,
        ledger: LedgerClient,
        swap_quotes: SwapQuoteService,
        signing_context: Optional[AgentSigningContext] = None,
    ):
        self.ledger = ledger
        self.swap_quotes = swap_quotes
        self.signing_context = signing_context

    async def build(self, validated: ValidatedIntent, signing_mode: SigningMode) -> TransactionPayload:
        if validated.action is IntentAction.SEND:
            return await self._build_transfer(validated, signing_mode)
        if validated.action is IntentAction.SWAP:
            return await self._build_swap(validated, signing_mode)
        raise ValueError(f"Nothing to build for {validated.action.value} intents")

    # -----------------------------
    # Native transfer
    # -----------------------------
    async def _build_transfer(self, validated: ValidatedIntent, signing_mode: SigningMode) -> TransactionPayload:
        intent = validated.intent
        lamports = validated.amount_base_units
        if lamports is None:
            lamports = sol_to_lamports(intent.amount)

        if signing_mode.is_agent():
            if self.signing_context is None:
                raise BuildError(
                    BuildErrorKind.MISSING_CREDENTIAL,
                    "Agent signing requested but no agent key is configured",
                )
            source = self.signing_context.address
        else:
            source = validated.source_address

        payer = Pubkey.from_string(source)
        instruction = transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=Pubkey.from_string(intent.destination_address.strip()),
                lamports=lamports,
            )
        )

        # Sign only once the blockhash is in hand
        blockhash_text = await self._latest_blockhash()
        blockhash = Hash.from_string(blockhash_text)
        message = Message.new_with_blockhash([instruction], payer, blockhash)

        if signing_mode.is_agent():
            tx = self.signing_context.sign(message, blockhash)
        else:
            tx = Transaction.new_unsigned(message)

        logger.info(
            "[BUILT_TRANSFER] from=%s to=%s lamports=%s mode=%s",
            source, intent.destination_address, lamports, signing_mode.value,
        )
        return TransactionPayload(
            kind=PayloadKind.TRANSFER,
            signing_mode=signing_mode,
            serialized=encode_transaction(tx),
            signed=signing_mode.is_agent(),
            source_address=source,
            blockhash=blockhash_text,
        )

    async def _latest_blockhash(self) -> str:
        try:
            return await self.ledger.get_latest_blockhash()
        except LedgerClientError as e:
            raise e.to_execution_error() from e

    # -----------------------------
    # Token swap
    # -----------------------------
    async def _build_swap(self, validated: ValidatedIntent, signing_mode: SigningMode) -> TransactionPayload:
        # Swaps move user-custodied funds
        if signing_mode.is_agent():
            raise BuildError(
                BuildErrorKind.UNSUPPORTED_SIGNING_MODE,
                "Swaps are always signed by your own wallet",
            )

        intent = validated.intent
        source_asset = canonical_asset_id(intent.source_asset)
        destination_asset = canonical_asset_id(intent.destination_asset)

        try:
            route = await self.swap_quotes.quote(source_asset, destination_asset, intent.amount)
            if route is None:
                raise BuildError(
                    BuildErrorKind.NO_ROUTE_FOUND,
                    "No swap routes found. Please try a higher amount or a different token pair.",
                )
            serialized = await self.swap_quotes.swap_transaction(route, validated.source_address)
        except LedgerClientError as e:
            raise e.to_execution_error() from e

        logger.info(
            "[BUILT_SWAP] owner=%s %s %s -> %s out=%s",
            validated.source_address, intent.amount, source_asset, destination_asset, route.out_amount,
        )
        return TransactionPayload(
            kind=PayloadKind.SWAP,
            signing_mode=SigningMode.CLIENT_SIGN,
            serialized=serialized,
            signed=False,
            source_address=validated.source_address,
            route=route,
        )
