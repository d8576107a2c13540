from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")
DAYS_PER_WEEK = 7


def to_decimal(value: object) -> Decimal | None:
    """Coerce request input to a ``Decimal`` held to the stored two places.

    ``None``, booleans and unparsable or non-finite values become ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        if not parsed.is_finite():
            return None
        return parsed.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


def round_whole(value: Decimal) -> Decimal:
    """Round half-up to a whole unit."""

    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def daily_share(weekly_budget: Decimal | None) -> Decimal:
    if not weekly_budget or weekly_budget <= ZERO:
        return ZERO
    return round_whole(weekly_budget / DAYS_PER_WEEK)


def format_amount(value: Decimal, currency: str = "IDR") -> str:
    if currency.upper() == "IDR":
        return f"Rp{value:,.0f}".replace(",", ".")
    return f"{currency.upper()} {value:,.2f}"
