import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

def get_env_var(name: str) -> str:
    """Get environment variable or raise a clear error if missing."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"❌ Missing required environment variable: {name}\n"
            f"👉 Did you copy .env.example to .env and fill in your keys?"
        )
    return value

# Classifier (only required once the LLM classifier is built)
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-1.5-flash")
CLASSIFIER_TIMEOUT_SECONDS = float(os.getenv("CLASSIFIER_TIMEOUT_SECONDS", "30"))

# Ledger + aggregator endpoints
SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
JUPITER_API_URL = os.getenv("JUPITER_API_URL", "https://quote-api.jup.ag/v6")
RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", "20"))
SWAP_SLIPPAGE_BPS = int(os.getenv("SWAP_SLIPPAGE_BPS", "50"))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "5"))

# Balance snapshot freshness
BALANCE_MAX_AGE_SECONDS = float(os.getenv("BALANCE_MAX_AGE_SECONDS", "30"))
BALANCE_REFRESH_DELAY_SECONDS = float(os.getenv("BALANCE_REFRESH_DELAY_SECONDS", "1"))

# Agent custody. Absent means agent signing is unavailable.
AGENT_PRIVATE_KEY = os.getenv("AGENT_PRIVATE_KEY") or None

# Optional vars (with defaults)
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
PORT = int(os.getenv("PORT", "8000"))
