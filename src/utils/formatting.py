from __future__ import annotations

from decimal import Decimal, InvalidOperation


def format_amount(value: Decimal, places: int = 6) -> str:
    try:
        quantized = value.quantize(Decimal(1).scaleb(-places)).normalize()
    except InvalidOperation:
        # Too many digits to quantize, e.g. spam token supplies.
        return format(value, "f")
    # Avoid scientific notation for whole numbers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_usd(value: Decimal | None) -> str:
    if value is None:
        return "-"
    cents = value.quantize(Decimal("0.01"))
    return f"${cents:,.2f}"


def shorten(identifier: str, keep: int = 6) -> str:
    if len(identifier) <= keep * 2 + 3:
        return identifier
    return f"{identifier[:keep]}...{identifier[-keep:]}"
