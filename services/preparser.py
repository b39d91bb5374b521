# FILE: services/preparser.py
"""
Rule-based fast path for commands that need no language model.

Only unambiguous phrasings are recognised; anything else returns None and
goes to the classifier.
"""

import re
from decimal import Decimal
from typing import Optional

from core.assets import canonical_asset_id, to_decimal
from core.intent import Intent, IntentAction

BASE58_ADDRESS = r"[1-9A-HJ-NP-Za-km-z]{32,44}"
AMOUNT = r"\d+(?:\.\d+)?"

SEND_PATTERN = re.compile(
    rf"^(?:please\s+)?(?:send|transfer|pay)\s+(?P<amount>{AMOUNT})\s*(?:sol\s+)?to\s+(?P<address>{BASE58_ADDRESS})[.!]?$",
    re.IGNORECASE,
)

SWAP_PATTERN = re.compile(
    rf"^(?:please\s+)?(?:swap|convert|exchange|trade)\s+(?P<amount>{AMOUNT})\s*(?P<source>\$?[A-Za-z0-9]+)\s+(?:to|for|into)\s+(?P<destination>\$?[A-Za-z0-9]+)[.!]?$",
    re.IGNORECASE,
)

# Keyword tokens we search for
BALANCE_TOKENS = ["balance", "how much sol", "how much do i have", "funds"]
HISTORY_TOKENS = ["history", "recent transactions", "past transactions", "last transactions", "activity"]
ADDRESS_TOKENS = ["my address", "wallet address", "receive", "deposit address"]

# Fund-moving verbs: if present, keyword rules must not fire
_MOVE_VERBS = re.compile(r"\b(send|transfer|pay|swap|convert|exchange|trade|buy|sell)\b", re.IGNORECASE)


def short_address(value: str) -> str:
    if len(value) <= 12:
        return value
    return f"{value[:4]}...{value[-4:]}"


def _format_amount(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


def preparse(text: str) -> Optional[Intent]:
    cleaned = " ".join(text.strip().split())
    if not cleaned:
        return None

    match = SEND_PATTERN.match(cleaned)
    if match:
        amount = to_decimal(match.group("amount"))
        address = match.group("address")
        return Intent(
            action=IntentAction.SEND,
            amount=amount,
            destination_address=address,
            narrative_message=f"Ready to send {_format_amount(amount)} SOL to {short_address(address)}.",
        )

    match = SWAP_PATTERN.match(cleaned)
    if match:
        amount = to_decimal(match.group("amount"))
        source = canonical_asset_id(match.group("source").lstrip("$"))
        destination = canonical_asset_id(match.group("destination").lstrip("$"))
        return Intent(
            action=IntentAction.SWAP,
            amount=amount,
            source_asset=source,
            destination_asset=destination,
            narrative_message=f"Ready to swap {_format_amount(amount)} {source} to {destination}.",
        )

    if _MOVE_VERBS.search(cleaned):
        return None

    lowered = cleaned.lower()
    if any(token in lowered for token in HISTORY_TOKENS):
        return Intent(action=IntentAction.SHOW_HISTORY, narrative_message="Here are your recent transactions.")
    if any(token in lowered for token in ADDRESS_TOKENS):
        return Intent(action=IntentAction.ASK_ADDRESS, narrative_message="Here is your wallet address.")
    if any(token in lowered for token in BALANCE_TOKENS):
        return Intent(action=IntentAction.CHECK_BALANCE, narrative_message="Here is your current balance.")

    return None
