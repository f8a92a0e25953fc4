# shopcore/services/payment_ledger.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_payment import OrderPaymentModel
from shopcore.domain.enums import LedgerEntryKind, LedgerEntryStatus, OrderStatus, PaymentStatus
from shopcore.domain.errors import (
    DuplicateWebhookEvent,
    NotFound,
    OrderStateError,
    OverpaymentNotAllowed,
    PaymentInvalid,
)
from shopcore.domain.money import quantize, ZERO
from shopcore.repos.order_repo import OrderRepo
from shopcore.repos.payment_repo import PaymentRepo
from shopcore.repos.shop_repo import ShopRepo
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


def derive_payment_status(total: Decimal, paid: Decimal, has_refunds: bool = False) -> PaymentStatus:
    if paid >= total and paid > ZERO:
        return PaymentStatus.PAID
    if paid > ZERO:
        return PaymentStatus.PARTIAL
    if has_refunds:
        return PaymentStatus.REFUNDED
    return PaymentStatus.PENDING


class PaymentLedger:
    """
    Ksiega platnosci zamowienia.
    Wpisy tylko dopisujemy, zwrot to nowy wpis z ujemna kwota.
    Status platnosci zamowienia zawsze liczony z sumy wpisow.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepo(db)
        self.orders = OrderRepo(db)
        self.shops = ShopRepo(db)

    def paid_total(self, order: OrderModel) -> Decimal:
        return quantize(self.repo.sum_completed(order.tenant_id, order.id))

    def outstanding_balance(self, order: OrderModel) -> Decimal:
        outstanding = quantize(order.total_amount) - self.paid_total(order)
        return max(outstanding, ZERO)

    def list_payments(self, order: OrderModel) -> list[OrderPaymentModel]:
        return self.repo.list_for_order(order.tenant_id, order.id)

    def record_payment(
        self,
        order: OrderModel,
        amount,
        method: str,
        reference: str | None = None,
        notes: str | None = None,
    ) -> OrderPaymentModel:
        """Reczna wplata (kasa, przelew). Nadplata tylko gdy sklep na to pozwala."""
        amount = self._positive(amount)
        try:
            locked = self._lock_open_order(order)
            outstanding = quantize(locked.total_amount) - self.paid_total(locked)
            if amount > outstanding:
                shop = self.shops.get_shop(locked.shop_id)
                if not shop.allow_overpayment:
                    raise OverpaymentNotAllowed(
                        f"Payment of {amount} exceeds outstanding balance of {max(outstanding, ZERO)}"
                    )
                logger.warning(f"Overpayment on order {locked.order_number}: {amount} > {outstanding}")

            entry = self._append(
                locked,
                kind=LedgerEntryKind.PAYMENT,
                amount=amount,
                payment_method=method,
                reference_number=reference,
                notes=notes,
            )
            self._refresh_status(locked)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Payment {entry.id} of {amount} recorded on order {locked.order_number} via {method}")
        return entry

    def record_capture(
        self,
        order: OrderModel,
        amount,
        gateway: str,
        gateway_reference: str,
        reference: str | None = None,
        fee=None,
    ) -> OrderPaymentModel:
        """
        Wplata potwierdzona przez bramke. Pieniadze juz przeszly, wiec zawsze zapisujemy,
        nadplata tylko w logach. Ten sam gateway_reference drugi raz -> DuplicateWebhookEvent.
        """
        amount = self._positive(amount)
        if self.repo.find_by_gateway_reference(order.tenant_id, gateway, gateway_reference):
            raise DuplicateWebhookEvent(gateway_reference)

        try:
            locked = self.orders.lock_order(order)
            outstanding = quantize(locked.total_amount) - self.paid_total(locked)
            if amount > outstanding:
                logger.warning(
                    f"Gateway {gateway} captured {amount} on order {locked.order_number} "
                    f"with outstanding {outstanding}"
                )
            entry = self._append(
                locked,
                kind=LedgerEntryKind.PAYMENT,
                amount=amount,
                payment_method=gateway,
                reference_number=reference,
                gateway=gateway,
                gateway_reference=gateway_reference,
                gateway_fee=quantize(fee) if fee is not None else None,
            )
            self._refresh_status(locked)
            self.db.commit()
        except IntegrityError:
            # drugi rownolegly webhook przegral na unique (gateway, gateway_reference)
            self.db.rollback()
            raise DuplicateWebhookEvent(gateway_reference)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Gateway capture {gateway_reference} ({gateway}) of {amount} recorded on order {locked.order_number}"
        )
        return entry

    def refund(
        self,
        order: OrderModel,
        payment_id: int,
        amount=None,
        reason: str | None = None,
        gateway_reference: str | None = None,
    ) -> OrderPaymentModel:
        payment = self.refundable_payment(order, payment_id)
        try:
            locked = self.orders.lock_order(order)
            remaining = self.refundable_amount(payment)
            amount = remaining if amount is None else quantize(amount)
            if amount <= ZERO:
                raise PaymentInvalid("Refund amount must be greater than zero")
            if amount > remaining:
                raise PaymentInvalid(f"Refund of {amount} exceeds refundable amount of {remaining}")

            entry = self._append(
                locked,
                kind=LedgerEntryKind.REFUND,
                amount=-amount,
                payment_method=payment.payment_method,
                reference_number=payment.reference_number,
                gateway=payment.gateway,
                gateway_reference=gateway_reference,
                refund_of_id=payment.id,
                notes=reason,
            )
            self._refresh_status(locked, has_refunds=True)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Refund {entry.id} of {amount} for payment {payment.id} on order {locked.order_number}")
        return entry

    def refundable_payment(self, order: OrderModel, payment_id: int) -> OrderPaymentModel:
        payment = self.repo.get_payment(order.tenant_id, order.id, payment_id)
        if not payment:
            raise NotFound(f"Payment {payment_id} not found")
        if payment.kind != LedgerEntryKind.PAYMENT.value or payment.status != LedgerEntryStatus.COMPLETED.value:
            raise PaymentInvalid("Only completed payments can be refunded")
        return payment

    def refundable_amount(self, payment: OrderPaymentModel) -> Decimal:
        return quantize(payment.amount) - quantize(self.repo.refunded_total(payment.tenant_id, payment.id))

    # helpers
    @staticmethod
    def _positive(amount) -> Decimal:
        amount = quantize(amount)
        if amount <= ZERO:
            raise PaymentInvalid("Payment amount must be greater than zero")
        return amount

    def _lock_open_order(self, order: OrderModel) -> OrderModel:
        locked = self.orders.lock_order(order)
        if locked.status == OrderStatus.CANCELLED.value:
            raise OrderStateError(f"Order {locked.order_number} is cancelled")
        return locked

    def _append(self, order: OrderModel, kind: LedgerEntryKind, amount: Decimal, **fields) -> OrderPaymentModel:
        return self.repo.add(
            OrderPaymentModel(
                tenant_id=order.tenant_id,
                shop_id=order.shop_id,
                order_id=order.id,
                kind=kind.value,
                status=LedgerEntryStatus.COMPLETED.value,
                amount=amount,
                currency=order.currency,
                **fields,
            )
        )

    def _refresh_status(self, order: OrderModel, has_refunds: bool = False):
        paid = self.paid_total(order)
        status = derive_payment_status(quantize(order.total_amount), paid, has_refunds)
        if order.payment_status != status.value:
            logger.info(f"Order {order.order_number} payment status {order.payment_status} -> {status.value}")
        order.payment_status = status.value

        # pelna wplata potwierdza zamowienie
        if status == PaymentStatus.PAID and order.status == OrderStatus.PENDING.value:
            order.status = OrderStatus.CONFIRMED.value
            order.confirmed_at = datetime.now(timezone.utc)
            logger.info(f"Order {order.order_number} confirmed after full payment")
