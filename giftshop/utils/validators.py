import math
import re
from decimal import Decimal, ROUND_CEILING
from giftshop.models.gift import Rarity
from giftshop.exceptions import InvalidInput, InvalidPrice

NANOTONS_PER_TON = Decimal(10) ** 9

_WALLET_RE = re.compile(r"^(?:[A-Za-z0-9_-]{48}|-?\d+:[0-9a-fA-F]{64})$")

def validate_price(value) -> float:
    if isinstance(value, bool):
        raise InvalidPrice("Price must be a number.")
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise InvalidPrice(f"Invalid price: {value!r}")
    if not math.isfinite(price) or price <= 0:
        raise InvalidPrice(f"Price must be a positive number, got {value!r}")
    return price

def validate_rarity(rarity) -> Rarity:
    if isinstance(rarity, Rarity):
        return rarity
    try:
        return Rarity(str(rarity).strip().lower())
    except ValueError:
        raise InvalidInput(f"Unknown rarity: {rarity!r}")

def validate_text(value, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInput(f"{field} must not be empty.")
    return text

def validate_wallet_address(address: str) -> str:
    address = (address or "").strip()
    if not _WALLET_RE.match(address):
        raise InvalidInput(f"Invalid TON wallet address: {address!r}")
    return address

def price_to_nanotons(price: float) -> int:
    """Ledger amounts are integer nanotons; round up so a balance check never undershoots."""
    amount = Decimal(str(price)) * NANOTONS_PER_TON
    return int(amount.to_integral_value(rounding=ROUND_CEILING))
