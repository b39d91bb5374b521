# FILE: services/swap_quote.py
"""
Swap quotes

- SwapQuoteService: the contract the builder depends on
- JupiterSwapClient: Jupiter aggregator (quote + unsigned swap transaction)
- No route is a normal answer (None), not an exception
"""

import logging
from decimal import Decimal
from typing import Optional, Protocol

import httpx

from core.assets import AmountPrecisionError, lookup_asset, to_base_units
from models.ledger import SwapRoute
from services.ledger_client import LedgerClientError

logger = logging.getLogger("wallet_agent.swap_quote")

NO_ROUTE_CODES = {"COULD_NOT_FIND_ANY_ROUTE", "NO_ROUTES_FOUND", "TOKEN_NOT_TRADABLE"}


class SwapQuoteError(LedgerClientError):
    """Aggregator unreachable or refused the request."""


class SwapQuoteService(Protocol):
    async def quote(self, source_asset: str, destination_asset: str, amount: Decimal) -> Optional[SwapRoute]: ...

    async def swap_transaction(self, route: SwapRoute, user_address: str) -> str: ...


class JupiterSwapClient:
    def __init__(
        self,
        api_url: str,
        *,
        slippage_bps: int = 50,
        timeout: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.slippage_bps = slippage_bps
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, f"{self.api_url}{path}", **kwargs)
        except httpx.TimeoutException as e:
            raise SwapQuoteError(SwapQuoteError.TIMEOUT, f"Jupiter {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise SwapQuoteError(SwapQuoteError.NETWORK, f"Jupiter {path} failed: {e}") from e

    async def quote(self, source_asset: str, destination_asset: str, amount: Decimal) -> Optional[SwapRoute]:
        source = lookup_asset(source_asset)
        destination = lookup_asset(destination_asset)
        if source is None or destination is None:
            logger.info("[NO_ROUTE] unknown asset pair %s -> %s", source_asset, destination_asset)
            return None

        try:
            in_amount = to_base_units(amount, source.decimals)
        except AmountPrecisionError:
            logger.info("[NO_ROUTE] amount %s too precise for %s", amount, source.symbol)
            return None

        response = await self._request(
            "GET",
            "/quote",
            params={
                "inputMint": source.mint,
                "outputMint": destination.mint,
                "amount": str(in_amount),
                "slippageBps": str(self.slippage_bps),
            },
        )

        if response.status_code == 429:
            raise SwapQuoteError(SwapQuoteError.RATE_LIMITED, "Jupiter quote was rate limited")

        body = _json_or_empty(response)
        if response.status_code >= 400:
            code = body.get("errorCode") or body.get("error")
            if code in NO_ROUTE_CODES or response.status_code in (400, 404):
                logger.info("[NO_ROUTE] %s -> %s amount=%s code=%s", source.symbol, destination.symbol, in_amount, code)
                return None
            raise SwapQuoteError(
                SwapQuoteError.NETWORK,
                f"Jupiter quote returned HTTP {response.status_code}",
            )

        if not body.get("routePlan"):
            return None

        return SwapRoute(
            input_mint=body.get("inputMint", source.mint),
            output_mint=body.get("outputMint", destination.mint),
            in_amount=int(body["inAmount"]),
            out_amount=int(body["outAmount"]),
            price_impact_pct=Decimal(str(body.get("priceImpactPct") or "0")),
            slippage_bps=int(body.get("slippageBps", self.slippage_bps)),
            output_decimals=destination.decimals,
            raw_quote=body,
        )

    async def swap_transaction(self, route: SwapRoute, user_address: str) -> str:
        response = await self._request(
            "POST",
            "/swap",
            json={
                "quoteResponse": route.raw_quote,
                "userPublicKey": user_address,
                "wrapAndUnwrapSol": True,
            },
        )
        if response.status_code == 429:
            raise SwapQuoteError(SwapQuoteError.RATE_LIMITED, "Jupiter swap was rate limited")

        body = _json_or_empty(response)
        if response.status_code >= 400 or not body.get("swapTransaction"):
            raise SwapQuoteError(
                SwapQuoteError.REJECTED,
                body.get("error") or f"Jupiter swap returned HTTP {response.status_code}",
            )
        return body["swapTransaction"]


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
