from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Final, NamedTuple, TypeVar

from web3 import Web3

from asset_sync_engine.app.domain.errors import InvalidAccountAddressError
from asset_sync_engine.app.domain.models import PriceQuote, TokenStandard

T = TypeVar("T")

# Native asset sentinels used by indexers and price APIs (lowercase)
ZERO_ADDRESSES: Final[frozenset[str]] = frozenset(
    {
        "0x0000000000000000000000000000000000000000",
        "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
        "0x0000000000000000000000000000000000001010",  # polygon native
    }
)

DEAD_ADDRESS: Final[str] = "0xDeadDeAddeAddEAddeadDEaDDEAdDeaDDeAD0000"

_SLUG_SEPARATOR: Final[str] = "_"


class ParsedTokenSlug(NamedTuple):
    standard: TokenStandard
    address: str
    id: str


def to_checksum_address(address: str) -> str:
    """
    Normalize a hex address into its EIP-55 checksum form.

    Raises InvalidAccountAddressError for anything that is not a 20-byte hex address.
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidAccountAddressError(address)
    return Web3.to_checksum_address(address)


def create_token_slug(
    *,
    address: str,
    standard: TokenStandard = TokenStandard.ERC20,
    token_id: str = "0",
) -> str:
    return _SLUG_SEPARATOR.join((standard.value, address, token_id))


def parse_token_slug(token_slug: str) -> ParsedTokenSlug:
    try:
        standard, address, token_id = token_slug.split(_SLUG_SEPARATOR)
        return ParsedTokenSlug(TokenStandard(standard), address, token_id)
    except ValueError:
        raise ValueError(f"Malformed token slug: {token_slug!r}")


def is_zero_address(address: str) -> bool:
    return address.lower() in ZERO_ADDRESSES


def is_dead_address(address: str) -> bool:
    return address.lower() == DEAD_ADDRESS.lower()


def is_native_token(*, address: str, native_flag: bool | None) -> bool:
    """
    Native/gas assets are synced elsewhere.

    A row is native when the source flags it or when its address is one of
    the zero-address sentinels, whatever the flag says.
    """
    return bool(native_flag) or is_zero_address(address)


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def _is_not_none(value: Any) -> bool:
    return value is not None


def merge_field(
    new: T | None,
    existing: T | None,
    default: T,
    *,
    is_present: Callable[[Any], bool] = _is_present,
) -> T:
    """
    Three-way merge for a single record field.

    Precedence: fresh source value, then the value already stored,
    then the hardcoded default. `is_present` decides what counts as
    missing (by default None and empty string).
    """
    if is_present(new):
        return new  # type: ignore[return-value]
    if is_present(existing):
        return existing  # type: ignore[return-value]
    return default


def merge_optional_field(new: T | None, existing: T | None) -> T | None:
    return merge_field(new, existing, None)


def merge_decimals(new: int | None, existing: int | None, default: int) -> int:
    # 0 is a legitimate decimals value; only null is missing
    return merge_field(new, existing, default, is_present=_is_not_none)


def parse_raw_balance(value: str | int | None) -> int | None:
    """
    Parse an integer balance in base units.

    Indexers occasionally return scientific or fractional notation, so the
    value is rounded half-up. Returns None for unparsable or negative input.
    """
    if value is None:
        return 0
    try:
        parsed = Decimal(str(value)).to_integral_value(rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite() or parsed < 0:
        return None
    return int(parsed)


def parse_decimal(value: str | float | Decimal | None) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return parsed if parsed.is_finite() else None


def decimal_to_str(value: Decimal) -> str:
    """Plain positional notation without trailing zeros ("2.0" -> "2")."""
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")


def compute_balance_usd(
    *,
    raw_balance: int,
    decimals: int,
    price_usd: Decimal,
    usd_reserve: Decimal | None = None,
) -> float:
    """
    USD value of a raw balance: raw_balance / 10**decimals * price_usd.

    When the price source provides a liquidity reserve, the value is capped
    at it. Never negative.
    """
    value = Decimal(raw_balance).scaleb(-decimals) * price_usd
    if usd_reserve is not None and usd_reserve > 0:
        value = min(value, usd_reserve)
    return max(float(value), 0.0)


def balance_usd_from_quote(
    *,
    raw_balance: int,
    decimals: int,
    quote: PriceQuote,
) -> float:
    return compute_balance_usd(
        raw_balance=raw_balance,
        decimals=decimals,
        price_usd=quote.usd,
        usd_reserve=quote.usd_reserve,
    )
