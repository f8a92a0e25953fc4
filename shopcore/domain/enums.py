# shopcore/domain/enums.py
import enum


class SellableKind(str, enum.Enum):
    PRODUCT = "product"
    SERVICE = "service"


class MaterialOption(str, enum.Enum):
    NONE = "none"
    CUSTOMER_SUPPLIED = "customer_supplied"
    SHOP_SUPPLIED = "shop_supplied"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"

    def can_cancel(self) -> bool:
        return self in (OrderStatus.PENDING, OrderStatus.CONFIRMED)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    REFUNDED = "refunded"


class LedgerEntryKind(str, enum.Enum):
    PAYMENT = "payment"
    REFUND = "refund"


class LedgerEntryStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class StockMovementKind(str, enum.Enum):
    RESERVE = "reserve"
    RELEASE = "release"
    FULFIL = "fulfil"
    ADJUST = "adjust"


class CheckoutState(str, enum.Enum):
    VALIDATING = "validating"
    RESERVING = "reserving"
    PRICING = "pricing"
    COMMITTING = "committing"
    COMPLETED = "completed"
    FAILED = "failed"
