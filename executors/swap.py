from decimal import Decimal

from core.assets import canonical_asset_id, from_base_units, is_native
from core.errors import BuildError, BuildErrorKind
from core.intent import Intent, IntentAction
from executors.proposal import ProposalExecutor
from models.transaction import PendingTransaction
from services.balances import BalanceService
from services.command_validator import validate
from services.ledger_client import LedgerClientError
from services.session_store import WalletSession
from services.swap_quote import SwapQuoteService


class SwapExecutor(ProposalExecutor):
    """
    Token swaps. Validates, then fetches a read-only quote so the user sees
    the expected output before confirming. No route means nothing is
    proposed.
    """

    def __init__(self, balances: BalanceService, swap_quotes: SwapQuoteService):
        self.balances = balances
        self.swap_quotes = swap_quotes

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        signing_mode = session.signing_mode_for(IntentAction.SWAP)
        source = session.wallet_address

        # Only a SOL source is balance-checked locally
        current_balance = Decimal("0")
        if is_native(intent.source_asset):
            current_balance = (await self.balances.current(session, source)).amount

        validated = validate(intent, current_balance, source)

        try:
            route = await self.swap_quotes.quote(
                canonical_asset_id(intent.source_asset),
                canonical_asset_id(intent.destination_asset),
                intent.amount,
            )
        except LedgerClientError as e:
            raise e.to_execution_error() from e

        if route is None:
            raise BuildError(
                BuildErrorKind.NO_ROUTE_FOUND,
                "No swap routes found. Please try a higher amount or a different token pair.",
            )

        pending = PendingTransaction(
            session_id=session.session_id,
            intent=intent,
            signing_mode=signing_mode,
            source_address=source,
            amount_base_units=validated.amount_base_units,
            route_preview=route,
        )
        envelope = self.propose(intent, session, pending)

        if route.output_decimals is not None:
            expected = from_base_units(route.out_amount, route.output_decimals)
            envelope["data"]["expected_output"] = str(expected)
        envelope["data"]["price_impact_pct"] = str(route.price_impact_pct)
        envelope["message"] += " Verify the price impact is acceptable."
        return envelope
