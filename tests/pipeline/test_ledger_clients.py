import asyncio
import json
import pytest
from decimal import Decimal

import httpx

from services.ledger_client import LedgerClientError, SolanaRpcClient
from services.swap_quote import JupiterSwapClient, SwapQuoteError

RPC_URL = "https://rpc.test"
JUPITER_URL = "https://jup.test/v6"


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def rpc_client(handler) -> SolanaRpcClient:
    return SolanaRpcClient(RPC_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def jupiter_client(handler) -> JupiterSwapClient:
    return JupiterSwapClient(JUPITER_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def rpc_result(result):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


# ---------------------------------------------------------------------
# TESTS: SOLANA RPC
# ---------------------------------------------------------------------

def test_balance_is_converted_from_lamports(wallet):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return rpc_result({"context": {"slot": 1}, "value": 1_500_000_000})(request)

    balance = asyncio.run(rpc_client(handler).get_balance(wallet))

    assert balance == Decimal("1.5")
    assert seen[0]["method"] == "getBalance"
    assert seen[0]["params"][0] == wallet


def test_token_balance_sums_all_accounts(wallet):
    def account(ui_amount):
        return {"account": {"data": {"parsed": {"info": {"tokenAmount": {"uiAmountString": ui_amount}}}}}}

    handler = rpc_result({"value": [account("10.25"), account("0.75")]})
    total = asyncio.run(rpc_client(handler).get_token_balance(wallet, "mint"))

    assert total == Decimal("11.00")


def test_recent_signatures_are_typed(wallet):
    handler = rpc_result([
        {"signature": "abc", "slot": 7, "blockTime": 1700000000, "err": None, "confirmationStatus": "finalized"},
        {"signature": "def", "slot": 6, "err": {"InstructionError": [0, "Custom"]}},
    ])

    signatures = asyncio.run(rpc_client(handler).get_recent_signatures(wallet, 5))

    assert [s.signature for s in signatures] == ["abc", "def"]
    assert signatures[0].succeeded
    assert not signatures[1].succeeded


@pytest.mark.parametrize("result", [None, {}, {"context": {"slot": 1}, "value": None}])
def test_empty_read_result_is_rejected(wallet, result):
    client = rpc_client(rpc_result(result))

    async def scenario():
        reasons = []
        for call in (client.get_balance(wallet), client.get_latest_blockhash()):
            with pytest.raises(LedgerClientError) as exc:
                await call
            reasons.append(exc.value.reason)
        return reasons

    assert asyncio.run(scenario()) == [LedgerClientError.REJECTED] * 2


def test_broadcast_returns_signature():
    handler = rpc_result("5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb")
    signature = asyncio.run(rpc_client(handler).broadcast("AQID"))
    assert signature == "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb"


@pytest.mark.parametrize(
    "response, reason",
    [
        (httpx.Response(429), LedgerClientError.RATE_LIMITED),
        (httpx.Response(503), LedgerClientError.NETWORK),
        (httpx.Response(403, text="forbidden"), LedgerClientError.REJECTED),
        (httpx.Response(200, json={"error": {"code": -32002, "message": "Blockhash not found"}}), LedgerClientError.REJECTED),
        (httpx.Response(200, json={"error": {"code": 429, "message": "Too many requests"}}), LedgerClientError.RATE_LIMITED),
    ],
)
def test_rpc_failures_are_classified(response, reason):
    with pytest.raises(LedgerClientError) as excinfo:
        asyncio.run(rpc_client(lambda request: response).get_latest_blockhash())
    assert excinfo.value.reason == reason


def test_transport_errors_are_classified():
    def refused(request):
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(LedgerClientError) as excinfo:
        asyncio.run(rpc_client(refused).get_latest_blockhash())
    assert excinfo.value.reason == LedgerClientError.NETWORK

    with pytest.raises(LedgerClientError) as excinfo:
        asyncio.run(rpc_client(slow).get_latest_blockhash())
    assert excinfo.value.reason == LedgerClientError.TIMEOUT


# ---------------------------------------------------------------------
# TESTS: JUPITER
# ---------------------------------------------------------------------

QUOTE = {
    "inputMint": "So11111111111111111111111111111111111111112",
    "outputMint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "inAmount": "1000000000",
    "outAmount": "151230000",
    "priceImpactPct": "0.001",
    "slippageBps": 50,
    "routePlan": [{"swapInfo": {"label": "Whirlpool"}}],
}


def test_quote_is_requested_in_base_units():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=QUOTE)

    route = asyncio.run(jupiter_client(handler).quote("SOL", "USDC", Decimal("1")))

    assert seen[0].url.path == "/v6/quote"
    assert seen[0].url.params["amount"] == "1000000000"
    assert route.out_amount == 151_230_000
    assert route.output_decimals == 6
    assert route.raw_quote == QUOTE


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"errorCode": "COULD_NOT_FIND_ANY_ROUTE"}),
        httpx.Response(404),
        httpx.Response(200, json={**QUOTE, "routePlan": []}),
    ],
)
def test_no_route_is_none(response):
    route = asyncio.run(jupiter_client(lambda request: response).quote("SOL", "USDC", Decimal("1")))
    assert route is None


def test_unknown_asset_is_none_without_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert asyncio.run(jupiter_client(handler).quote("SOL", "NOTATOKEN", Decimal("1"))) is None


def test_aggregator_outage_is_an_error():
    with pytest.raises(SwapQuoteError) as excinfo:
        asyncio.run(jupiter_client(lambda request: httpx.Response(502)).quote("SOL", "USDC", Decimal("1")))
    assert excinfo.value.reason == SwapQuoteError.NETWORK


def test_swap_transaction_posts_the_quote(wallet):
    seen = []

    def handler(request):
        if request.url.path.endswith("/quote"):
            return httpx.Response(200, json=QUOTE)
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"swapTransaction": "c3dhcA=="})

    client = jupiter_client(handler)

    async def scenario():
        route = await client.quote("SOL", "USDC", Decimal("1"))
        return await client.swap_transaction(route, wallet)

    assert asyncio.run(scenario()) == "c3dhcA=="
    assert seen[0]["userPublicKey"] == wallet
    assert seen[0]["quoteResponse"] == QUOTE
