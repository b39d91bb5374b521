from abc import ABC, abstractmethod

from core.intent import Intent
from services.session_store import WalletSession


class BaseExecutor(ABC):
    """
    Base contract for all executors.
    Executors take an Intent for one session and return a response dict
    shaped {"type", "data", "message"}.
    Fund-moving executors only ever propose; nothing here broadcasts.
    """

    @abstractmethod
    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        pass
