# services/session_store.py

import asyncio
import logging
from typing import Dict, Optional

from core.errors import SessionNotFoundError
from core.intent import IntentAction
from core.signing_mode import SigningMode
from models.ledger import BalanceSnapshot
from services.confirmation import ConfirmationStateMachine

logger = logging.getLogger("wallet_agent.sessions")


class WalletSession:
    """
    Everything one user's conversation owns: the connected wallet, the
    preferred signing mode, balance snapshots and the confirmation machine.
    Nothing in here is shared across sessions.
    """

    def __init__(self, session_id: str, wallet_address: str, signing_mode: SigningMode = SigningMode.CLIENT_SIGN):
        self.session_id = session_id
        self.wallet_address = wallet_address
        self.signing_mode = signing_mode
        self.confirmation = ConfirmationStateMachine(session_id)
        self._balances: Dict[str, BalanceSnapshot] = {}

    def signing_mode_for(self, action: IntentAction) -> SigningMode:
        # Swaps always go through the user's own wallet
        if action is IntentAction.SWAP:
            return SigningMode.CLIENT_SIGN
        return self.signing_mode

    def balance_for(self, address: str) -> Optional[BalanceSnapshot]:
        return self._balances.get(address)

    def record_balance(self, snapshot: BalanceSnapshot) -> None:
        self._balances[snapshot.address] = snapshot

    def forget_balances(self) -> None:
        self._balances.clear()


class SessionStore:
    def __init__(self):
        self._sessions: Dict[str, WalletSession] = {}
        self._lock = asyncio.Lock()

    async def open(
        self,
        session_id: str,
        wallet_address: str,
        signing_mode: SigningMode = SigningMode.CLIENT_SIGN,
    ) -> WalletSession:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = WalletSession(session_id, wallet_address, signing_mode)
                self._sessions[session_id] = session
                logger.info("[SESSION_OPEN] session=%s wallet=%s mode=%s", session_id, wallet_address, signing_mode.value)
                return session

            if session.wallet_address != wallet_address:
                # A different wallet invalidates anything proposed for the old one
                session.confirmation.reset()
                session.forget_balances()
                session.wallet_address = wallet_address
                logger.info("[SESSION_WALLET_CHANGED] session=%s wallet=%s", session_id, wallet_address)
            if session.signing_mode is not signing_mode:
                # Anything pending was built for the other signer
                session.confirmation.reset()
                session.forget_balances()
                session.signing_mode = signing_mode
                logger.info("[SESSION_MODE_CHANGED] session=%s mode=%s", session_id, signing_mode.value)
            return session

    def get(self, session_id: str) -> WalletSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def close(self, session_id: str) -> bool:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            session.confirmation.reset()
            del self._sessions[session_id]
        logger.info("[SESSION_CLOSED] session=%s", session_id)
        return True

    def __len__(self) -> int:
        return len(self._sessions)
