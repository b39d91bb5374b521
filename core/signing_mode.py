# core/signing_mode.py
from enum import Enum


class SigningMode(str, Enum):
    """
    Who signs a fund-moving transaction.

    CLIENT_SIGN: the service returns an unsigned payload for the user's wallet.
    AGENT_SIGN: the agent's custodial key signs and the service broadcasts.
    """

    CLIENT_SIGN = "client_sign"
    AGENT_SIGN = "agent_sign"

    def is_agent(self) -> bool:
        return self is SigningMode.AGENT_SIGN

    def is_client(self) -> bool:
        return self is SigningMode.CLIENT_SIGN
