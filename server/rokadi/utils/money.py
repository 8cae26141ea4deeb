from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal("0.00")


def quantize_money(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def money_or_zero(value: Decimal | float | int | str | None) -> Decimal:
    """Aggregate results come back as None, float or Decimal depending on the dialect."""
    return quantize_money(value) if value is not None else ZERO
