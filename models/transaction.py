# FILE: models/transaction.py
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from core.intent import Intent
from core.signing_mode import SigningMode
from models.ledger import SwapRoute, utc_now


# -----------------------------
# Pending Transaction (Validator → State Machine)
# -----------------------------
class PendingTransaction(BaseModel):
    """
    A validated Send/Swap waiting for explicit user confirmation.
    Never mutated: replacing one means dropping it and proposing another.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str
    intent: Intent
    signing_mode: SigningMode
    source_address: str
    amount_base_units: Optional[int] = None
    route_preview: Optional[SwapRoute] = None
    created_at: datetime = Field(default_factory=utc_now)


# -----------------------------
# Transaction Payload (Builder → Gateway)
# -----------------------------
class PayloadKind(str, Enum):
    TRANSFER = "transfer"
    SWAP = "swap"


class TransactionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PayloadKind
    signing_mode: SigningMode
    serialized: str = Field(..., description="Base64 wire transaction")
    signed: bool
    source_address: str
    blockhash: Optional[str] = None
    route: Optional[SwapRoute] = None


# -----------------------------
# Transaction Result (Gateway → Caller)
# -----------------------------
class TransactionResultKind(str, Enum):
    SIGNATURE = "signature"
    UNSIGNED_PAYLOAD = "unsigned_payload"


class TransactionResult(BaseModel):
    """
    SIGNATURE: agent-signed and broadcast.
    UNSIGNED_PAYLOAD: built only; the user's wallet still has to sign it.
    """

    kind: TransactionResultKind
    signing_mode: SigningMode
    signature: Optional[str] = None
    payload: Optional[str] = None
    pending_id: Optional[str] = None
    message: str = ""
