from core.intent import Intent
from executors.base import BaseExecutor
from services.ledger_client import LedgerClient, LedgerClientError
from services.session_store import WalletSession
from services.utils import deep_serialize


class HistoryExecutor(BaseExecutor):
    """
    Lists the most recent signatures for the session wallet.
    """

    def __init__(self, ledger: LedgerClient, limit: int = 5):
        self.ledger = ledger
        self.limit = limit

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        try:
            signatures = await self.ledger.get_recent_signatures(session.wallet_address, self.limit)
        except LedgerClientError as e:
            raise e.to_execution_error() from e

        if signatures:
            message = f"Here are your last {len(signatures)} transactions."
        else:
            message = "No recent transactions found for this wallet."

        return {
            "type": "history",
            "data": {
                "address": session.wallet_address,
                "transactions": deep_serialize(signatures),
            },
            "message": message,
        }
