# services/balances.py

import logging
from decimal import Decimal

from models.ledger import BalanceSnapshot
from services.ledger_client import LedgerClient, LedgerClientError
from services.session_store import WalletSession

logger = logging.getLogger("wallet_agent.balances")


class BalanceService:
    """
    Keeps per-session SOL snapshots reasonably fresh.

    A snapshot up to `max_age_seconds` old is reused as is; the ledger
    rejects over-spends regardless of what the snapshot said.
    """

    def __init__(self, ledger: LedgerClient, max_age_seconds: float = 30):
        self.ledger = ledger
        self.max_age_seconds = max_age_seconds

    async def current(self, session: WalletSession, address: str) -> BalanceSnapshot:
        snapshot = session.balance_for(address)
        if snapshot is None or snapshot.age_seconds() > self.max_age_seconds:
            snapshot = await self.refresh(session, address)
        return snapshot

    async def refresh(self, session: WalletSession, address: str) -> BalanceSnapshot:
        try:
            amount = await self.ledger.get_balance(address)
        except LedgerClientError as e:
            raise e.to_execution_error() from e

        snapshot = BalanceSnapshot(address=address, amount=amount)
        session.record_balance(snapshot)
        logger.info("[BALANCE] session=%s address=%s sol=%s", session.session_id, address, amount)
        return snapshot

    def seed(self, session: WalletSession, address: str, amount: Decimal) -> BalanceSnapshot:
        """Record a balance the client already fetched."""
        snapshot = BalanceSnapshot(address=address, amount=amount)
        session.record_balance(snapshot)
        return snapshot
