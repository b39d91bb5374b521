import logging

from core.assets import lookup_asset
from core.intent import Intent
from executors.base import BaseExecutor
from services.balances import BalanceService
from services.ledger_client import LedgerClient, LedgerClientError
from services.session_store import WalletSession
from services.utils import deep_serialize

logger = logging.getLogger("wallet_agent.executors.balance")

USDC = lookup_asset("USDC")


class BalanceExecutor(BaseExecutor):
    """
    Reports SOL and USDC balances of the session wallet.
    Refreshes the snapshot the validator uses as a side benefit.
    """

    def __init__(self, balances: BalanceService, ledger: LedgerClient):
        self.balances = balances
        self.ledger = ledger

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        snapshot = await self.balances.refresh(session, session.wallet_address)

        # Token balance is informational; SOL is what validation needs
        usdc = None
        try:
            usdc = await self.ledger.get_token_balance(session.wallet_address, USDC.mint)
        except LedgerClientError as e:
            logger.warning("[USDC_BALANCE_FAILED] session=%s reason=%s", session.session_id, e.reason)

        message = f"Your balance is {snapshot.amount:.4f} SOL"
        if usdc is not None:
            message += f" and {usdc:.2f} USDC"

        return {
            "type": "balance",
            "data": deep_serialize({
                "address": session.wallet_address,
                "sol": snapshot.amount,
                "usdc": usdc,
                "fetched_at": snapshot.fetched_at,
            }),
            "message": message + ".",
        }
