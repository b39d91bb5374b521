from typing import Optional

from core.errors import BuildError, BuildErrorKind
from core.intent import Intent, IntentAction
from executors.proposal import ProposalExecutor
from models.transaction import PendingTransaction
from services.balances import BalanceService
from services.command_validator import validate
from services.session_store import WalletSession
from services.signing_context import AgentSigningContext


class TransferExecutor(ProposalExecutor):
    """
    SOL transfers. Validates against the balance of whoever pays (the user's
    wallet, or the agent's custody address in agent mode) and proposes.
    """

    def __init__(self, balances: BalanceService, signing_context: Optional[AgentSigningContext] = None):
        self.balances = balances
        self.signing_context = signing_context

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        signing_mode = session.signing_mode_for(IntentAction.SEND)

        if signing_mode.is_agent():
            if self.signing_context is None:
                raise BuildError(
                    BuildErrorKind.MISSING_CREDENTIAL,
                    "Agent signing is not available: no agent key is configured",
                )
            source = self.signing_context.address
        else:
            source = session.wallet_address

        snapshot = await self.balances.current(session, source)
        validated = validate(intent, snapshot.amount, source)

        pending = PendingTransaction(
            session_id=session.session_id,
            intent=intent,
            signing_mode=signing_mode,
            source_address=source,
            amount_base_units=validated.amount_base_units,
        )
        return self.propose(intent, session, pending)
