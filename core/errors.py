# core/errors.py
"""
Error taxonomy shared by every stage of the command pipeline.

Validation and build errors are raised before anything touches the network.
Execution errors carry the ledger's diagnostic and are never retried.
"""

from enum import Enum
from typing import Optional


class ValidationErrorKind(str, Enum):
    NEEDS_CLARIFICATION = "needs_clarification"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_ADDRESS = "invalid_address"
    SELF_TRANSFER = "self_transfer"
    INSUFFICIENT_BALANCE = "insufficient_balance"


class BuildErrorKind(str, Enum):
    NO_ROUTE_FOUND = "no_route_found"
    MISSING_CREDENTIAL = "missing_credential"
    UNSUPPORTED_SIGNING_MODE = "unsupported_signing_mode"


class ExecutionErrorKind(str, Enum):
    NETWORK_UNAVAILABLE = "network_unavailable"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


class StateErrorKind(str, Enum):
    INVALID_STATE = "invalid_state"
    SESSION_NOT_FOUND = "session_not_found"


class WalletCommandError(Exception):
    """Base class: every failure path surfaces a kind plus a readable detail."""

    recoverable: bool = True

    def __init__(self, kind: Enum, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    @property
    def code(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.detail!r})"


class ValidationError(WalletCommandError):
    """Detected locally; the user can always fix it by rephrasing."""

    kind: ValidationErrorKind

    def __init__(self, kind: ValidationErrorKind, detail: str):
        super().__init__(kind, detail)


class BuildError(WalletCommandError):
    kind: BuildErrorKind

    def __init__(self, kind: BuildErrorKind, detail: str):
        super().__init__(kind, detail)
        # No route is a matter of amount/pair; credentials are not user-fixable
        self.recoverable = kind is BuildErrorKind.NO_ROUTE_FOUND


class ExecutionError(WalletCommandError):
    kind: ExecutionErrorKind

    def __init__(self, kind: ExecutionErrorKind, detail: str):
        super().__init__(kind, detail)


class InvalidStateError(WalletCommandError):
    """Operation not allowed in the current confirmation state."""

    def __init__(self, detail: str, state: Optional[str] = None):
        super().__init__(StateErrorKind.INVALID_STATE, detail)
        self.state = state


class SessionNotFoundError(WalletCommandError):
    def __init__(self, session_id: str):
        super().__init__(
            StateErrorKind.SESSION_NOT_FOUND,
            f"No wallet session '{session_id}'. Open a session first.",
        )
        self.session_id = session_id
