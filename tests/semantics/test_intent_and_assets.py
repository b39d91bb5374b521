import pytest
from decimal import Decimal
from pydantic import ValidationError as PydanticValidationError

from core.assets import (
    AmountPrecisionError,
    canonical_asset_id,
    from_base_units,
    is_native,
    lookup_asset,
    sol_to_lamports,
    to_base_units,
    to_decimal,
)
from core.intent import Intent, IntentAction


# ---------------------------------------------------------------------
# Intent invariants
# ---------------------------------------------------------------------

def test_ready_send_must_have_amount_and_destination():
    with pytest.raises(PydanticValidationError):
        Intent(action=IntentAction.SEND, amount=Decimal("1"), narrative_message="x")


def test_ready_swap_must_name_both_assets():
    with pytest.raises(PydanticValidationError):
        Intent(action=IntentAction.SWAP, amount=Decimal("1"), source_asset="SOL", narrative_message="x")


def test_incomplete_intent_is_allowed_when_flagged():
    intent = Intent(action=IntentAction.SWAP, amount=Decimal("1"), narrative_message="Swap into what?", needs_more_info=True)

    assert intent.missing_fields() == ["source_asset", "destination_asset"]
    assert not intent.is_actionable


def test_unknown_is_never_actionable():
    intent = Intent.unknown("huh?", classifier_error="timeout")

    assert intent.action is IntentAction.UNKNOWN
    assert not intent.needs_more_info
    assert not intent.is_actionable
    assert not intent.requires_confirmation


def test_only_fund_movers_require_confirmation():
    assert IntentAction.SEND.moves_funds()
    assert IntentAction.SWAP.moves_funds()
    assert not IntentAction.CHECK_BALANCE.moves_funds()
    assert IntentAction.SHOW_HISTORY.is_informational()
    assert not IntentAction.UNKNOWN.is_informational()


# ---------------------------------------------------------------------
# Exact amounts
# ---------------------------------------------------------------------

def test_float_amounts_keep_their_decimal_text():
    assert to_decimal(0.1) == Decimal("0.1")
    assert sol_to_lamports(to_decimal(0.1)) == 100_000_000


@pytest.mark.parametrize("raw", ["abc", "NaN", "Infinity"])
def test_garbage_amounts_are_rejected(raw):
    with pytest.raises(ValueError):
        to_decimal(raw)


def test_base_unit_conversion_never_rounds():
    assert to_base_units(Decimal("1.5"), 6) == 1_500_000
    assert from_base_units(1_500_000, 6) == Decimal("1.5")

    with pytest.raises(AmountPrecisionError):
        to_base_units(Decimal("0.000001"), 5)


def test_asset_lookup_by_symbol_alias_and_mint():
    assert lookup_asset("usdc").decimals == 6
    assert lookup_asset("$bonk").symbol == "BONK"
    assert lookup_asset("So11111111111111111111111111111111111111112").symbol == "SOL"
    assert lookup_asset("NOPE") is None

    assert canonical_asset_id("solana") == "SOL"
    assert canonical_asset_id(" SomeMint ") == "SomeMint"
    assert is_native("wsol")
    assert not is_native("USDC")
