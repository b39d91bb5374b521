from typing import Optional

from core.intent import Intent
from executors.base import BaseExecutor
from services.session_store import WalletSession
from services.signing_context import AgentSigningContext


class AddressExecutor(BaseExecutor):
    """
    Answers "what's my address" / "how do I receive".
    """

    def __init__(self, signing_context: Optional[AgentSigningContext] = None):
        self.signing_context = signing_context

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        data = {"address": session.wallet_address}
        message = f"Your wallet address is {session.wallet_address}."

        if self.signing_context is not None and session.signing_mode.is_agent():
            data["agent_address"] = self.signing_context.address
            message += f" Agent-signed transfers are sent from {self.signing_context.address}."

        return {"type": "address", "data": data, "message": message}
