# services/command_validator.py

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from solders.pubkey import Pubkey

from core.assets import (
    AmountPrecisionError,
    SOL,
    canonical_asset_id,
    lookup_asset,
    to_base_units,
)
from core.errors import ValidationError, ValidationErrorKind
from core.intent import Intent, IntentAction


# ---------------------------------------------------------------------
# Validated Intent Model
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ValidatedIntent:
    intent: Intent
    source_address: str
    amount_base_units: Optional[int] = None

    @property
    def action(self) -> IntentAction:
        return self.intent.action


def is_valid_address(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        Pubkey.from_string(value.strip())
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------
# Validation Logic (PURE, DETERMINISTIC)
# ---------------------------------------------------------------------
def validate(
    intent: Intent,
    current_balance: Decimal,
    caller_address: str,
) -> ValidatedIntent:
    """
    Decides whether an Intent is SAFE to turn into a transaction.

    Rules:
    - No network access
    - No inference
    - First failing rule wins

    `current_balance` is the last known SOL balance of `caller_address`.
    """

    # -------------------------------------------------
    # HARD GUARDS
    # -------------------------------------------------
    if not intent.is_actionable:
        raise ValidationError(
            ValidationErrorKind.NEEDS_CLARIFICATION,
            intent.narrative_message or "Could you rephrase that request?",
        )

    if intent.action is IntentAction.SEND:
        return _validate_send(intent, current_balance, caller_address)

    if intent.action is IntentAction.SWAP:
        return _validate_swap(intent, current_balance, caller_address)

    # -------------------------------------------------
    # INFORMATIONAL ACTIONS (SAFE BY DEFAULT)
    # -------------------------------------------------
    return ValidatedIntent(intent=intent, source_address=caller_address)


def _require_positive(amount: Optional[Decimal]) -> Decimal:
    if amount is None or amount <= 0:
        raise ValidationError(
            ValidationErrorKind.INVALID_AMOUNT,
            "Amount must be greater than 0",
        )
    return amount


def _exact_units(amount: Decimal, decimals: int, symbol: str) -> int:
    try:
        return to_base_units(amount, decimals)
    except AmountPrecisionError:
        raise ValidationError(
            ValidationErrorKind.INVALID_AMOUNT,
            f"{symbol} amounts support at most {decimals} decimal places",
        )


def _require_covered(amount: Decimal, current_balance: Decimal) -> None:
    if amount > current_balance:
        raise ValidationError(
            ValidationErrorKind.INSUFFICIENT_BALANCE,
            f"You need {amount} SOL but only have {current_balance:.4f} SOL",
        )


def _validate_send(intent: Intent, current_balance: Decimal, caller_address: str) -> ValidatedIntent:
    amount = _require_positive(intent.amount)
    lamports = _exact_units(amount, SOL.decimals, SOL.symbol)

    destination = (intent.destination_address or "").strip()
    if not is_valid_address(destination):
        raise ValidationError(
            ValidationErrorKind.INVALID_ADDRESS,
            f"'{destination or 'missing'}' is not a valid Solana address",
        )

    if destination == caller_address:
        raise ValidationError(
            ValidationErrorKind.SELF_TRANSFER,
            "Cannot send SOL to your own address",
        )

    _require_covered(amount, current_balance)

    return ValidatedIntent(
        intent=intent,
        source_address=caller_address,
        amount_base_units=lamports,
    )


def _validate_swap(intent: Intent, current_balance: Decimal, caller_address: str) -> ValidatedIntent:
    amount = _require_positive(intent.amount)

    source = canonical_asset_id(intent.source_asset or "")
    destination = canonical_asset_id(intent.destination_asset or "")
    if source == destination:
        raise ValidationError(
            ValidationErrorKind.SELF_TRANSFER,
            f"Cannot swap {source} into itself",
        )

    units = None
    source_asset = lookup_asset(source)
    if source_asset is not None:
        units = _exact_units(amount, source_asset.decimals, source_asset.symbol)

    # Non-native balances are checked by the aggregator, not here
    if source_asset is not None and source_asset.native:
        _require_covered(amount, current_balance)

    return ValidatedIntent(
        intent=intent,
        source_address=caller_address,
        amount_base_units=units,
    )
