# shopcore/repos/payment_repo.py
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from shopcore.data.models.order_payment import OrderPaymentModel
from shopcore.domain.enums import LedgerEntryStatus, LedgerEntryKind


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: OrderPaymentModel) -> OrderPaymentModel:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_order(self, tenant_id: int, order_id: int) -> list[OrderPaymentModel]:
        return list(
            self.db.execute(
                select(OrderPaymentModel)
                .where(
                    OrderPaymentModel.tenant_id == tenant_id,
                    OrderPaymentModel.order_id == order_id,
                )
                .order_by(OrderPaymentModel.id)
            ).scalars().all()
        )

    def get_payment(self, tenant_id: int, order_id: int, payment_id: int) -> OrderPaymentModel | None:
        return self.db.execute(
            select(OrderPaymentModel).where(
                OrderPaymentModel.tenant_id == tenant_id,
                OrderPaymentModel.order_id == order_id,
                OrderPaymentModel.id == payment_id,
            )
        ).scalar_one_or_none()

    def sum_completed(self, tenant_id: int, order_id: int) -> Decimal:
        total = self.db.execute(
            select(func.coalesce(func.sum(OrderPaymentModel.amount), 0)).where(
                OrderPaymentModel.tenant_id == tenant_id,
                OrderPaymentModel.order_id == order_id,
                OrderPaymentModel.status == LedgerEntryStatus.COMPLETED.value,
            )
        ).scalar_one()
        return Decimal(str(total))

    def refunded_total(self, tenant_id: int, payment_id: int) -> Decimal:
        total = self.db.execute(
            select(func.coalesce(func.sum(OrderPaymentModel.amount), 0)).where(
                OrderPaymentModel.tenant_id == tenant_id,
                OrderPaymentModel.refund_of_id == payment_id,
                OrderPaymentModel.kind == LedgerEntryKind.REFUND.value,
                OrderPaymentModel.status == LedgerEntryStatus.COMPLETED.value,
            )
        ).scalar_one()
        # zwroty sa ujemne
        return -Decimal(str(total))

    def find_by_gateway_reference(
        self, tenant_id: int, gateway: str, gateway_reference: str
    ) -> OrderPaymentModel | None:
        return self.db.execute(
            select(OrderPaymentModel).where(
                OrderPaymentModel.tenant_id == tenant_id,
                OrderPaymentModel.gateway == gateway,
                OrderPaymentModel.gateway_reference == gateway_reference,
            )
        ).scalar_one_or_none()

    def has_any_payment(self, tenant_id: int, order_id: int) -> bool:
        return self.db.execute(
            select(OrderPaymentModel.id).where(
                OrderPaymentModel.tenant_id == tenant_id,
                OrderPaymentModel.order_id == order_id,
                OrderPaymentModel.kind == LedgerEntryKind.PAYMENT.value,
                OrderPaymentModel.status == LedgerEntryStatus.COMPLETED.value,
            ).limit(1)
        ).first() is not None
