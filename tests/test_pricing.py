from decimal import Decimal

from shopcore.data.models.tenant import ShopModel
from shopcore.domain.enums import SellableKind
from shopcore.services.pricing import compute_totals, price_line, shipping_for


def shop(**fields):
    fields.setdefault("vat_enabled", False)
    fields.setdefault("vat_rate", Decimal("0"))
    fields.setdefault("shipping_fee", Decimal("0"))
    fields.setdefault("discount_percent", Decimal("0"))
    return ShopModel(**fields)


class TestPriceLine:
    def test_plain_line(self):
        line = price_line(shop(), SellableKind.PRODUCT, Decimal("1000.00"), 3, False)
        assert line.subtotal == Decimal("3000.00")
        assert line.total == Decimal("3000.00")

    def test_vat_only_for_taxable_products(self):
        s = shop(vat_enabled=True, vat_rate=Decimal("7.5"))

        taxable = price_line(s, SellableKind.PRODUCT, Decimal("1000.00"), 2, True)
        exempt = price_line(s, SellableKind.PRODUCT, Decimal("1000.00"), 2, False)
        service = price_line(s, SellableKind.SERVICE, Decimal("1000.00"), 2, True)

        assert taxable.tax == Decimal("150.00")
        assert taxable.total == Decimal("2150.00")
        assert exempt.tax == Decimal("0.00")
        assert service.tax == Decimal("0.00")

    def test_discount_applied_before_tax(self):
        s = shop(vat_enabled=True, vat_rate=Decimal("10"), discount_percent=Decimal("10"))
        line = price_line(s, SellableKind.PRODUCT, Decimal("100.00"), 1, True)

        assert line.discount == Decimal("10.00")
        assert line.tax == Decimal("9.00")
        assert line.total == Decimal("99.00")


class TestTotals:
    def test_shipping_charged_below_threshold(self):
        s = shop(shipping_fee=Decimal("1500"), free_shipping_threshold=Decimal("10000"))
        assert shipping_for(s, Decimal("9999.99")) == Decimal("1500.00")
        assert shipping_for(s, Decimal("10000.00")) == Decimal("0.00")

    def test_services_only_cart_still_pays_shipping(self):
        s = shop(shipping_fee=Decimal("1500"), free_shipping_threshold=Decimal("10000"))
        lines = [price_line(s, SellableKind.SERVICE, Decimal("20000.00"), 1, False)]

        assert compute_totals(s, lines).shipping == Decimal("1500.00")

    def test_total_is_sum_of_lines_plus_shipping(self):
        s = shop(
            vat_enabled=True,
            vat_rate=Decimal("7.5"),
            shipping_fee=Decimal("1500"),
            free_shipping_threshold=Decimal("10000"),
            discount_percent=Decimal("5"),
        )
        lines = [
            price_line(s, SellableKind.PRODUCT, Decimal("1000.00"), 2, True),
            price_line(s, SellableKind.SERVICE, Decimal("2000.00"), 1, False),
        ]
        totals = compute_totals(s, lines)

        assert totals.total == sum(l.total for l in lines) + totals.shipping
        assert totals.total == totals.subtotal - totals.discount + totals.tax + totals.shipping

    def test_empty_cart_has_no_shipping(self):
        totals = compute_totals(shop(shipping_fee=Decimal("1500")), [])
        assert totals.total == Decimal("0.00")
        assert totals.shipping == Decimal("0.00")
