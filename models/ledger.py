# FILE: models/ledger.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Balance Snapshot (Ledger → Validator)
# -----------------------------
class BalanceSnapshot(BaseModel):
    """
    Point-in-time balance. Read-only input to validation; the ledger
    stays the source of truth.
    """

    model_config = ConfigDict(frozen=True)

    address: str
    asset: str = "SOL"
    amount: Decimal
    fetched_at: datetime = Field(default_factory=utc_now)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or utc_now()
        return (now - self.fetched_at).total_seconds()


# -----------------------------
# Recent signature (Ledger → History)
# -----------------------------
class SignatureInfo(BaseModel):
    signature: str
    slot: Optional[int] = None
    block_time: Optional[int] = None
    err: Optional[Any] = None
    memo: Optional[str] = None
    confirmation_status: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.err is None


# -----------------------------
# Swap Route (Aggregator → Builder)
# -----------------------------
class SwapRoute(BaseModel):
    model_config = ConfigDict(frozen=True)

    input_mint: str
    output_mint: str
    in_amount: int = Field(..., description="Input in base units")
    out_amount: int = Field(..., description="Expected output in base units")
    price_impact_pct: Decimal = Decimal("0")
    slippage_bps: int = 50
    output_decimals: Optional[int] = None

    # Opaque aggregator quote, handed back when building the swap transaction
    raw_quote: Dict[str, Any] = Field(default_factory=dict)
