"""Order payment ledger: append-only entries and derived payment status."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from shopcore.data.models import OrderPaymentModel
from shopcore.domain.enums import PaymentStatus
from shopcore.domain.errors import DuplicateWebhookEvent, OrderStateError, OverpaymentNotAllowed, PaymentInvalid
from shopcore.services.payment_ledger import PaymentLedger, derive_payment_status
from tests.conftest import make_shop, place_order


@pytest.fixture()
def ledger(db):
    return PaymentLedger(db)


@pytest.fixture()
def order(db, shop_setup):
    return place_order(db, shop_setup.shop)


class TestRecordPayment:
    def test_full_payment_marks_order_paid(self, ledger, order):
        ledger.record_payment(order, Decimal("5000.00"), "cash")

        assert ledger.outstanding_balance(order) == Decimal("0.00")
        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.confirmed_at is not None

    def test_partial_payments(self, ledger, order):
        ledger.record_payment(order, Decimal("2000.00"), "cash")
        assert order.payment_status == "partial"
        assert ledger.outstanding_balance(order) == Decimal("3000.00")

        ledger.record_payment(order, Decimal("3000.00"), "bank_transfer", reference="TRX-1")
        assert order.payment_status == "paid"
        assert ledger.paid_total(order) == Decimal("5000.00")

    def test_overpayment_rejected_by_default(self, db, ledger, order):
        with pytest.raises(OverpaymentNotAllowed):
            ledger.record_payment(order, Decimal("5000.01"), "cash")

        assert db.execute(select(func.count(OrderPaymentModel.id))).scalar_one() == 0

    def test_overpayment_allowed_by_shop_flag(self, db, ledger, order, shop_setup):
        shop_setup.shop.allow_overpayment = True
        db.commit()

        ledger.record_payment(order, Decimal("6000.00"), "cash")

        assert order.payment_status == "paid"
        assert ledger.outstanding_balance(order) == Decimal("0.00")

    @pytest.mark.parametrize("amount", ["0", "-10.00"])
    def test_amount_must_be_positive(self, ledger, order, amount):
        with pytest.raises(PaymentInvalid):
            ledger.record_payment(order, Decimal(amount), "cash")

    def test_cancelled_order_rejects_payments(self, db, ledger, order):
        order.status = "cancelled"
        db.commit()

        with pytest.raises(OrderStateError):
            ledger.record_payment(order, Decimal("100.00"), "cash")


class TestRecordCapture:
    def test_same_gateway_reference_recorded_once(self, db, ledger, order):
        ledger.record_capture(order, Decimal("5000.00"), gateway="paystack", gateway_reference="4099260516")

        with pytest.raises(DuplicateWebhookEvent):
            ledger.record_capture(order, Decimal("5000.00"), gateway="paystack", gateway_reference="4099260516")

        assert db.execute(select(func.count(OrderPaymentModel.id))).scalar_one() == 1

    def test_gateway_reference_is_scoped_to_tenant(self, db, ledger, order):
        other_order = place_order(db, make_shop(db, name="Elsewhere"), number="ORD-20260101-0002")
        ledger.record_capture(order, Decimal("5000.00"), gateway="paystack", gateway_reference="4099260516")

        entry = ledger.record_capture(
            other_order, Decimal("5000.00"), gateway="paystack", gateway_reference="4099260516"
        )

        assert entry.tenant_id == other_order.tenant_id != order.tenant_id
        assert other_order.payment_status == "paid"
        assert ledger.repo.find_by_gateway_reference(order.tenant_id, "paystack", "4099260516").order_id == order.id

    def test_capture_over_balance_is_still_recorded(self, ledger, order):
        entry = ledger.record_capture(order, Decimal("5500.00"), gateway="paystack", gateway_reference="1", fee="75")

        assert entry.amount == Decimal("5500.00")
        assert entry.gateway_fee == Decimal("75.00")
        assert order.payment_status == "paid"


class TestRefund:
    def test_refund_appends_negative_entry(self, db, ledger, order):
        payment = ledger.record_payment(order, Decimal("5000.00"), "cash")

        refund = ledger.refund(order, payment.id, Decimal("2000.00"), reason="damaged")

        db.refresh(payment)
        assert payment.amount == Decimal("5000.00")
        assert refund.amount == Decimal("-2000.00")
        assert refund.refund_of_id == payment.id
        assert ledger.paid_total(order) == Decimal("3000.00")
        assert order.payment_status == "partial"

    def test_refund_cannot_exceed_remaining(self, ledger, order):
        payment = ledger.record_payment(order, Decimal("5000.00"), "cash")
        ledger.refund(order, payment.id, Decimal("2000.00"))

        with pytest.raises(PaymentInvalid):
            ledger.refund(order, payment.id, Decimal("3000.01"))

    def test_full_refund_marks_order_refunded(self, ledger, order):
        payment = ledger.record_payment(order, Decimal("5000.00"), "cash")

        ledger.refund(order, payment.id)

        assert ledger.paid_total(order) == Decimal("0.00")
        assert order.payment_status == "refunded"

    def test_refund_entry_is_not_refundable(self, ledger, order):
        payment = ledger.record_payment(order, Decimal("5000.00"), "cash")
        refund = ledger.refund(order, payment.id, Decimal("100.00"))

        with pytest.raises(PaymentInvalid):
            ledger.refund(order, refund.id)


class TestDerivedStatus:
    @pytest.mark.parametrize(
        "total, paid, refunds, expected",
        [
            ("100", "0", False, PaymentStatus.PENDING),
            ("100", "40", False, PaymentStatus.PARTIAL),
            ("100", "100", False, PaymentStatus.PAID),
            ("100", "120", False, PaymentStatus.PAID),
            ("100", "0", True, PaymentStatus.REFUNDED),
            ("0", "0", False, PaymentStatus.PENDING),
        ],
    )
    def test_status(self, total, paid, refunds, expected):
        assert derive_payment_status(Decimal(total), Decimal(paid), refunds) == expected
