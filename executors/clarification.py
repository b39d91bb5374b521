from core.intent import Intent
from executors.base import BaseExecutor
from services.session_store import WalletSession


class ClarificationExecutor(BaseExecutor):
    """
    Handles UNKNOWN and incomplete intents.
    Echoes the classifier's question back; never validates or builds.
    """

    async def execute(self, intent: Intent, session: WalletSession) -> dict:
        data = {
            "action": intent.action.value,
            "missing": intent.missing_fields(),
        }
        if intent.classifier_error:
            data["classifier_error"] = intent.classifier_error

        return {
            "type": "clarification",
            "data": data,
            "message": intent.narrative_message,
        }
