# shopcore/domain/money.py
from decimal import Decimal, ROUND_HALF_UP

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# waluty bez jednostki podrzednej
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW"})


def quantize(amount) -> Decimal:
    return Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def minor_unit_multiplier(currency: str) -> int:
    return 1 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 100


def to_smallest_unit(amount, currency: str) -> int:
    """12.34 NGN -> 1234 kobo, 500 JPY -> 500."""
    scaled = Decimal(str(amount)) * minor_unit_multiplier(currency)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_smallest_unit(amount: int, currency: str) -> Decimal:
    multiplier = minor_unit_multiplier(currency)
    if multiplier == 1:
        return Decimal(int(amount))
    return (Decimal(int(amount)) / multiplier).quantize(TWO_PLACES)
