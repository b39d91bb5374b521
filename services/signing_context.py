# services/signing_context.py
"""
Agent custody signer.

One shared credential means one signer at a time: every agent-signed
transaction is built, signed and broadcast while holding `serialized()`.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.transaction import Transaction

logger = logging.getLogger("wallet_agent.signing")


class AgentSigningContext:
    def __init__(self, keypair: Keypair):
        self._keypair = keypair
        self._lock = asyncio.Lock()

    @classmethod
    def from_base58(cls, secret: str) -> "AgentSigningContext":
        try:
            keypair = Keypair.from_base58_string(secret.strip())
        except Exception as e:
            # Never echo the secret itself
            raise RuntimeError("AGENT_PRIVATE_KEY is not a valid base58 keypair") from e
        return cls(keypair)

    @property
    def address(self) -> str:
        return str(self._keypair.pubkey())

    @asynccontextmanager
    async def serialized(self) -> AsyncIterator["AgentSigningContext"]:
        async with self._lock:
            yield self

    def sign(self, message: Message, blockhash: Hash) -> Transaction:
        return Transaction([self._keypair], message, blockhash)

    def __repr__(self) -> str:
        return f"AgentSigningContext(address={self.address})"


def load_signing_context(secret: Optional[str]) -> Optional[AgentSigningContext]:
    """No secret configured means agent signing is unavailable."""
    if not secret:
        logger.info("[AGENT_SIGNING] no AGENT_PRIVATE_KEY configured; agent signing disabled")
        return None
    context = AgentSigningContext.from_base58(secret)
    logger.info("[AGENT_SIGNING] enabled for %s", context.address)
    return context
