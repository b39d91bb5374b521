from functools import lru_cache
from typing import Optional

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

from config import GEMINI_MODEL_NAME, get_env_var


# Loose classifier schema. Converted to core.intent.Intent at the boundary
# and never passed further than that.
class ClassifiedCommand(BaseModel):
    action: str  # send | swap | check_balance | ask_address | receive | show_history | confirm_transaction | unknown
    amount: Optional[float] = None
    to_address: Optional[str] = None
    from_token: Optional[str] = None
    to_token: Optional[str] = None
    message: str = ""
    needs_more_info: bool = False
    error: Optional[str] = None


SYSTEM_PROMPT = (
    "You are the command interpreter of a Solana wallet. "
    "Turn the user's message into one structured command.\n\n"
    "Actions:\n"
    "- 'send': transfer SOL. Needs amount (in SOL) and to_address (base58).\n"
    "- 'swap': exchange tokens. Needs amount (in from_token units), from_token and to_token "
    "(symbols like SOL, USDC, USDT, JUP, BONK or mint addresses).\n"
    "- 'check_balance': the user wants to see their balance.\n"
    "- 'ask_address' or 'receive': the user wants their own address to receive funds.\n"
    "- 'show_history': the user wants recent transactions.\n"
    "- 'unknown': anything else.\n\n"
    "Rules:\n"
    "1. Never invent amounts or addresses. If a send or swap is missing one, set needs_more_info=true "
    "and ask for it in 'message'.\n"
    "2. Copy addresses exactly as written.\n"
    "3. 'message' is a short, friendly sentence describing what will happen "
    "(for example 'Ready to send 0.1 SOL to 7xKX...'), or the question you need answered.\n"
    "4. If the phrasing is ambiguous, explain why in 'error'.\n"
    "5. A message that only says yes/confirm is 'confirm_transaction'.\n\n"
    "Use the wallet address and balance in the prompt only as context."
)


@lru_cache(maxsize=1)
def get_intent_agent() -> Agent:
    # Provider & Model setup (needs GOOGLE_API_KEY only when actually used)
    provider = GoogleProvider(api_key=get_env_var("GOOGLE_API_KEY"))
    model = GoogleModel(GEMINI_MODEL_NAME, provider=provider)
    return Agent(model, system_prompt=SYSTEM_PROMPT, output_type=ClassifiedCommand)


def build_prompt(text: str, context_address: Optional[str], context_balance: Optional[str]) -> str:
    return (
        f"Wallet address: {context_address or 'unknown'}\n"
        f"Current balance: {context_balance if context_balance is not None else 'unknown'} SOL\n"
        f"User message: {text}"
    )
