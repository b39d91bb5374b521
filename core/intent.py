# core/intent.py
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class IntentAction(str, Enum):
    """
    Closed set of things a user can ask the wallet to do.
    """

    SEND = "send"
    SWAP = "swap"
    CHECK_BALANCE = "check_balance"
    ASK_ADDRESS = "ask_address"
    SHOW_HISTORY = "show_history"
    UNKNOWN = "unknown"

    # -----------------------------
    # Semantic helpers (SAFE)
    # -----------------------------
    def moves_funds(self) -> bool:
        return self in {IntentAction.SEND, IntentAction.SWAP}

    def is_informational(self) -> bool:
        return self in {
            IntentAction.CHECK_BALANCE,
            IntentAction.ASK_ADDRESS,
            IntentAction.SHOW_HISTORY,
        }


class Intent(BaseModel):
    """
    A passive container that represents what the user wants.
    This does NOT execute logic.
    This does NOT make decisions.

    Amounts are human units of the source asset (SOL for a send).
    """

    model_config = ConfigDict(frozen=True)

    action: IntentAction
    amount: Optional[Decimal] = None
    destination_address: Optional[str] = None
    source_asset: Optional[str] = None
    destination_asset: Optional[str] = None

    narrative_message: str
    needs_more_info: bool = False
    classifier_error: Optional[str] = None

    @model_validator(mode="after")
    def _ready_means_complete(self) -> "Intent":
        # An intent is never both "ready to execute" and "missing a field"
        if self.needs_more_info:
            return self

        missing = self.missing_fields()
        if missing:
            raise ValueError(
                f"{self.action.value} intent without needs_more_info "
                f"is missing: {', '.join(missing)}"
            )
        return self

    def missing_fields(self) -> list[str]:
        if self.action is IntentAction.SEND:
            required = {
                "amount": self.amount,
                "destination_address": self.destination_address,
            }
        elif self.action is IntentAction.SWAP:
            required = {
                "amount": self.amount,
                "source_asset": self.source_asset,
                "destination_asset": self.destination_asset,
            }
        else:
            return []
        return [name for name, value in required.items() if value in (None, "")]

    @property
    def is_actionable(self) -> bool:
        return not self.needs_more_info and self.action is not IntentAction.UNKNOWN

    @property
    def requires_confirmation(self) -> bool:
        return self.action.moves_funds()

    @classmethod
    def unknown(cls, message: str, classifier_error: Optional[str] = None) -> "Intent":
        """UNKNOWN is its own outcome: neither actionable nor waiting on a missing field."""
        return cls(
            action=IntentAction.UNKNOWN,
            narrative_message=message,
            classifier_error=classifier_error,
        )
