# shopcore/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal

from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import SellableKind
from shopcore.domain.money import quantize, ZERO

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricedLine:
    kind: SellableKind
    unit_price: Decimal
    quantity: int
    is_taxable: bool
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class Totals:
    lines: list[PricedLine]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


def price_line(shop: ShopModel, kind: SellableKind, unit_price: Decimal, quantity: int, is_taxable: bool) -> PricedLine:
    subtotal = quantize(Decimal(unit_price) * quantity)
    discount = ZERO
    if shop.discount_percent:
        discount = quantize(subtotal * Decimal(shop.discount_percent) / HUNDRED)

    tax = ZERO
    # VAT tylko dla produktow oznaczonych jako opodatkowane
    if shop.vat_enabled and shop.vat_rate and kind == SellableKind.PRODUCT and is_taxable:
        tax = quantize((subtotal - discount) * Decimal(shop.vat_rate) / HUNDRED)

    return PricedLine(
        kind=kind,
        unit_price=quantize(unit_price),
        quantity=quantity,
        is_taxable=is_taxable,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=subtotal - discount + tax,
    )


def shipping_for(shop: ShopModel, product_subtotal: Decimal) -> Decimal:
    fee = quantize(shop.shipping_fee or 0)
    threshold = shop.free_shipping_threshold
    if threshold is not None and product_subtotal >= Decimal(threshold):
        return ZERO
    return fee


def compute_totals(shop: ShopModel, lines: list[PricedLine]) -> Totals:
    """Suma linii + dostawa. total == suma(line.total) + shipping."""
    if not lines:
        return Totals(lines=[], subtotal=ZERO, discount=ZERO, tax=ZERO, shipping=ZERO, total=ZERO)

    product_subtotal = sum((l.subtotal for l in lines if l.kind == SellableKind.PRODUCT), ZERO)
    shipping = shipping_for(shop, product_subtotal)

    return Totals(
        lines=lines,
        subtotal=sum((l.subtotal for l in lines), ZERO),
        discount=sum((l.discount for l in lines), ZERO),
        tax=sum((l.tax for l in lines), ZERO),
        shipping=shipping,
        total=sum((l.total for l in lines), ZERO) + shipping,
    )
