# FILE: models/api.py
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from core.intent import Intent
from core.signing_mode import SigningMode


# -----------------------------
# Session
# -----------------------------
class SessionRequest(BaseModel):
    session_id: str
    wallet_address: str
    signing_mode: SigningMode = SigningMode.CLIENT_SIGN
    balance: Optional[Decimal] = Field(None, description="Client-fetched SOL balance, if any")


# -----------------------------
# Commands
# -----------------------------
class CommandRequest(BaseModel):
    session_id: str
    text: str


class ProposeRequest(BaseModel):
    session_id: str
    intent: Intent


class SessionAction(BaseModel):
    session_id: str
