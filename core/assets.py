# core/assets.py
"""
Known assets and exact human <-> base unit conversion.

All transfer sizing happens in integer base units (lamports for SOL).
Conversion never rounds: an amount finer than the asset's smallest unit
is rejected instead of truncated.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

LAMPORTS_PER_SOL = 10**9
NATIVE_SYMBOL = "SOL"


@dataclass(frozen=True)
class Asset:
    symbol: str
    mint: str
    decimals: int
    native: bool = False


SOL = Asset(
    symbol=NATIVE_SYMBOL,
    mint="So11111111111111111111111111111111111111112",
    decimals=9,
    native=True,
)

KNOWN_ASSETS = (
    SOL,
    Asset("USDC", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6),
    Asset("USDT", "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", 6),
    Asset("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6),
    Asset("BONK", "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", 5),
)

_BY_SYMBOL = {asset.symbol: asset for asset in KNOWN_ASSETS}
_BY_MINT = {asset.mint: asset for asset in KNOWN_ASSETS}

# Common spellings the classifier produces
_ALIASES = {
    "SOLANA": "SOL",
    "WSOL": "SOL",
    "USD COIN": "USDC",
    "TETHER": "USDT",
}


class AmountPrecisionError(ValueError):
    """Amount cannot be expressed exactly in the asset's base units."""


def lookup_asset(identifier: Optional[str]) -> Optional[Asset]:
    """Resolve a symbol (case-insensitive) or a mint address to a known asset."""
    if not identifier:
        return None
    raw = identifier.strip()
    if raw in _BY_MINT:
        return _BY_MINT[raw]
    symbol = raw.upper().lstrip("$")
    symbol = _ALIASES.get(symbol, symbol)
    return _BY_SYMBOL.get(symbol)


def canonical_asset_id(identifier: str) -> str:
    """Symbol for known assets, the raw identifier otherwise."""
    asset = lookup_asset(identifier)
    if asset is not None:
        return asset.symbol
    return identifier.strip()


def is_native(identifier: Optional[str]) -> bool:
    asset = lookup_asset(identifier)
    return asset is not None and asset.native


def to_decimal(raw: Union[str, int, float, Decimal]) -> Decimal:
    # floats go through str() so 0.1 stays 0.1
    if isinstance(raw, float):
        raw = str(raw)
    try:
        value = Decimal(raw)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid amount format '{raw}'.") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount format '{raw}'.")
    return value


def to_base_units(amount: Decimal, decimals: int) -> int:
    if decimals < 0:
        raise ValueError("Token decimals must be >= 0.")
    units = amount.scaleb(decimals)
    # Must be an integer number of base units.
    if units != units.to_integral_value():
        raise AmountPrecisionError(
            f"Amount {amount} has more than {decimals} decimal places."
        )
    return int(units)


def from_base_units(units: int, decimals: int) -> Decimal:
    return Decimal(units).scaleb(-decimals)


def sol_to_lamports(amount: Decimal) -> int:
    return to_base_units(amount, SOL.decimals)


def lamports_to_sol(lamports: int) -> Decimal:
    return from_base_units(lamports, SOL.decimals)
