import asyncio
import sys

from config import (
    AGENT_PRIVATE_KEY,
    CLASSIFIER_TIMEOUT_SECONDS,
    JUPITER_API_URL,
    SOLANA_RPC_URL,
    SWAP_SLIPPAGE_BPS,
)
from core.errors import WalletCommandError
from core.signing_mode import SigningMode
from services.command_pipeline import CommandPipeline
from services.intent_parser import LLMIntentClassifier
from services.ledger_client import SolanaRpcClient
from services.signing_context import load_signing_context
from services.swap_quote import JupiterSwapClient

SESSION_ID = "console"


async def main(wallet_address: str):
    ledger = SolanaRpcClient(SOLANA_RPC_URL)
    swap_quotes = JupiterSwapClient(JUPITER_API_URL, slippage_bps=SWAP_SLIPPAGE_BPS)
    signing_context = load_signing_context(AGENT_PRIVATE_KEY)
    pipeline = CommandPipeline(
        LLMIntentClassifier(),
        ledger,
        swap_quotes,
        signing_context,
        classifier_timeout=CLASSIFIER_TIMEOUT_SECONDS,
    )

    mode = SigningMode.AGENT_SIGN if signing_context else SigningMode.CLIENT_SIGN

    try:
        await pipeline.open_session(SESSION_ID, wallet_address, mode)
        print(f"Wallet {wallet_address} ({mode.value}). Type 'quit' to exit.")

        while True:
            text = input("> ").strip()
            if text.lower() in {"quit", "exit"}:
                break

            try:
                if text.lower() in {"yes", "confirm"}:
                    result = await pipeline.confirm(SESSION_ID)
                    print(result.message)
                    if result.payload:
                        print("Unsigned transaction:", result.payload)
                elif text.lower() in {"no", "cancel"}:
                    cancelled = pipeline.cancel(SESSION_ID)
                    print("Cancelled." if cancelled else "Nothing to cancel.")
                else:
                    response = await pipeline.process(SESSION_ID, text)
                    print(response["message"])
            except WalletCommandError as e:
                print(f"[{e.code}] {e.detail}")
    finally:
        await pipeline.aclose()
        await ledger.aclose()
        await swap_quotes.aclose()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python main.py <wallet-address>")
        sys.exit(1)
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main(sys.argv[1]))
