import pytest
from decimal import Decimal

from core.intent import IntentAction
from services.preparser import preparse, short_address


# ---------------------------------------------------------------------
# FAST PATH: unambiguous phrasings never need the classifier
# ---------------------------------------------------------------------

def test_send_with_amount_and_address(recipient):
    intent = preparse(f"send 0.1 SOL to {recipient}")

    assert intent.action is IntentAction.SEND
    assert intent.amount == Decimal("0.1")
    assert intent.destination_address == recipient
    assert intent.is_actionable
    assert short_address(recipient) in intent.narrative_message


def test_send_without_unit_and_with_trailing_period(recipient):
    intent = preparse(f"Transfer 2 to {recipient}.")
    assert intent.action is IntentAction.SEND
    assert intent.amount == Decimal("2")


@pytest.mark.parametrize(
    "text, source, destination",
    [
        ("swap 1 sol for usdc", "SOL", "USDC"),
        ("Convert 25 USDC to SOL", "USDC", "SOL"),
        ("trade 1000 $bonk into jup", "BONK", "JUP"),
    ],
)
def test_swap_phrasings(text, source, destination):
    intent = preparse(text)

    assert intent.action is IntentAction.SWAP
    assert intent.source_asset == source
    assert intent.destination_asset == destination
    assert intent.is_actionable


@pytest.mark.parametrize(
    "text, action",
    [
        ("What's my balance?", IntentAction.CHECK_BALANCE),
        ("how much sol do I have", IntentAction.CHECK_BALANCE),
        ("show my transaction history", IntentAction.SHOW_HISTORY),
        ("recent transactions please", IntentAction.SHOW_HISTORY),
        ("what is my wallet address", IntentAction.ASK_ADDRESS),
        ("how do I receive tokens", IntentAction.ASK_ADDRESS),
    ],
)
def test_informational_keywords(text, action):
    assert preparse(text).action is action


# ---------------------------------------------------------------------
# ESCALATION: anything else goes to the classifier
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "send some sol to my friend",
        "send half my balance to Bob",
        "what's the weather like",
        "yes",
    ],
)
def test_ambiguous_text_is_not_preparsed(text):
    assert preparse(text) is None


def test_short_address_keeps_short_values():
    assert short_address("abc") == "abc"
    assert short_address("7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU") == "7xKX...gAsU"
