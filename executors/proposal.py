from core.intent import Intent
from executors.base import BaseExecutor
from models.transaction import PendingTransaction
from services.session_store import WalletSession
from services.utils import deep_serialize


class ProposalExecutor(BaseExecutor):
    """
    Shared tail of fund-moving executors: hand the validated transaction to
    the session's confirmation machine and describe it to the user.
    """

    def propose(self, intent: Intent, session: WalletSession, pending: PendingTransaction) -> dict:
        replaced = session.confirmation.propose(pending)

        message = f"{intent.narrative_message} Please confirm or cancel."
        data = {
            "pending": deep_serialize(pending),
            "state": session.confirmation.state.value,
        }
        if replaced is not None:
            data["replaced_pending_id"] = replaced.id
            message = (
                f"Your earlier pending {replaced.intent.action.value} "
                f"was replaced by this one. {message}"
            )

        return {"type": "pending_transaction", "data": data, "message": message}
