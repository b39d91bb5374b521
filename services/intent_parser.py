# FILE: services/intent_parser.py
"""
Free text -> Intent

The classifier's loosely typed output stops here: to_intent() is the only
place that reads ClassifiedCommand, and everything downstream sees a closed
Intent. Classifier failures become UNKNOWN intents, never exceptions.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional, Protocol

from agents.intent_agent import ClassifiedCommand, build_prompt, get_intent_agent
from core.assets import canonical_asset_id, is_native, to_decimal
from core.intent import Intent, IntentAction
from services.preparser import preparse

logger = logging.getLogger("wallet_agent.intent_parser")

FALLBACK_MESSAGE = "Sorry, I couldn't understand that. Try something like 'send 0.1 SOL to <address>'."

ACTION_ALIASES = {
    "send": IntentAction.SEND,
    "transfer": IntentAction.SEND,
    "swap": IntentAction.SWAP,
    "check_balance": IntentAction.CHECK_BALANCE,
    "balance": IntentAction.CHECK_BALANCE,
    "ask_address": IntentAction.ASK_ADDRESS,
    "receive": IntentAction.ASK_ADDRESS,
    "show_history": IntentAction.SHOW_HISTORY,
    "history": IntentAction.SHOW_HISTORY,
}


class IntentClassifier(Protocol):
    async def classify(
        self,
        text: str,
        context_address: Optional[str],
        context_balance: Optional[Decimal],
    ) -> Intent: ...


class LLMIntentClassifier:
    """pydantic-ai backed classifier."""

    def __init__(self, agent=None):
        self._agent = agent

    @property
    def agent(self):
        if self._agent is None:
            self._agent = get_intent_agent()
        return self._agent

    async def classify(
        self,
        text: str,
        context_address: Optional[str],
        context_balance: Optional[Decimal],
    ) -> Intent:
        balance_text = str(context_balance) if context_balance is not None else None
        result = await self.agent.run(build_prompt(text, context_address, balance_text))
        return to_intent(result.output)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_intent(command: ClassifiedCommand) -> Intent:
    """Boundary conversion from classifier output to the closed Intent model."""
    raw_action = (command.action or "").strip().lower()
    message = _clean(command.message) or FALLBACK_MESSAGE
    error = _clean(command.error)

    if raw_action == "confirm_transaction":
        # Typed confirmations never confirm anything
        return Intent.unknown(
            "To approve the pending transaction, use the Confirm action.",
            classifier_error=error,
        )

    action = ACTION_ALIASES.get(raw_action)
    if action is None:
        return Intent.unknown(message, classifier_error=error or (f"unrecognised action '{raw_action}'" if raw_action else None))

    if action.is_informational():
        return Intent(action=action, narrative_message=message, classifier_error=error)

    amount = None
    if command.amount is not None:
        try:
            amount = to_decimal(command.amount)
        except ValueError:
            amount = None

    if action is IntentAction.SEND:
        token = _clean(command.from_token)
        if token and not is_native(token):
            return Intent.unknown(
                f"Only SOL transfers are supported, not {token}.",
                classifier_error=error,
            )
        fields = dict(amount=amount, destination_address=_clean(command.to_address))
    else:
        source = _clean(command.from_token)
        destination = _clean(command.to_token)
        fields = dict(
            amount=amount,
            source_asset=canonical_asset_id(source) if source else None,
            destination_asset=canonical_asset_id(destination) if destination else None,
        )

    draft = Intent(action=action, narrative_message=message, needs_more_info=True, **fields)
    needs_more_info = command.needs_more_info or bool(draft.missing_fields())
    return Intent(
        action=action,
        narrative_message=message,
        needs_more_info=needs_more_info,
        classifier_error=error,
        **fields,
    )


async def interpret(
    text: str,
    classifier: IntentClassifier,
    context_address: Optional[str] = None,
    context_balance: Optional[Decimal] = None,
    *,
    timeout: float = 30,
) -> Intent:
    """
    Rule-based preparser first, classifier second. Never raises for
    classifier problems.
    """
    if not text or not text.strip():
        return Intent.unknown("Please type a command.")

    intent = preparse(text)
    if intent is not None:
        logger.info("[PREPARSED] action=%s", intent.action.value)
        return intent

    try:
        intent = await asyncio.wait_for(
            classifier.classify(text, context_address, context_balance),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("[CLASSIFIER_TIMEOUT] after %ss", timeout)
        return Intent.unknown(FALLBACK_MESSAGE, classifier_error="Classifier timed out")
    except Exception as e:
        logger.exception("[CLASSIFIER_ERROR]")
        return Intent.unknown(FALLBACK_MESSAGE, classifier_error=str(e) or type(e).__name__)

    logger.info("[CLASSIFIED] action=%s needs_more_info=%s", intent.action.value, intent.needs_more_info)
    return intent
