# shopcore/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import List
from decimal import Decimal
from datetime import datetime

from shopcore.domain.enums import MaterialOption, SellableKind


class AddonIn(BaseModel):
    addon_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class AddItemIn(BaseModel):
    """Schema dla dodawania produktu albo uslugi do koszyka."""

    kind: SellableKind
    variant_id: int = Field(..., gt=0, description="ID wariantu produktu lub uslugi")
    quantity: int = Field(1, gt=0, description="Ilosc (dla produktow w opakowaniach)")
    packaging_type_id: int | None = Field(None, gt=0)
    material_option: MaterialOption | None = None
    addons: List[AddonIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_configuration_matches_kind(self):
        if self.kind == SellableKind.PRODUCT and (self.material_option or self.addons):
            raise ValueError("material_option and addons apply to services only")
        if self.kind == SellableKind.SERVICE and self.packaging_type_id:
            raise ValueError("packaging_type_id applies to products only")
        return self


class UpdateQuantityIn(BaseModel):
    quantity: int = Field(..., ge=0, description="0 usuwa pozycje")


class MergeCartIn(BaseModel):
    session_id: str = Field(..., min_length=1)
    customer_id: int = Field(..., gt=0)


class CartItemOut(BaseModel):
    id: int
    kind: SellableKind
    variant_id: int
    name: str
    quantity: int
    base_quantity: int
    packaging_type_id: int | None = None
    material_option: MaterialOption | None = None
    addons: List[AddonIn] = Field(default_factory=list)
    unit_price: Decimal
    line_total: Decimal
    available: bool


class CartOut(BaseModel):
    """Schema dla koszyka (response). Ceny zawsze aktualne, nie z migawki."""

    cart_id: int | None
    shop_id: int
    owner: str
    currency: str
    items: List[CartItemOut]
    item_count: int
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping_fee: Decimal
    total: Decimal


class AddressIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    line1: str = Field(..., min_length=1, max_length=255)
    line2: str | None = None
    city: str = Field(..., min_length=1, max_length=100)
    state: str | None = None
    postal_code: str | None = None
    country: str = Field(..., min_length=2, max_length=2)
    phone: str | None = None
    email: str | None = None


class CheckoutIn(BaseModel):
    shipping_address: AddressIn
    billing_address: AddressIn | None = None
    payment_method: str = Field(..., min_length=1)
    customer_notes: str | None = Field(None, max_length=2000)
    idempotency_key: str | None = Field(None, max_length=100)
    callback_url: str | None = None


class PaymentInitiationOut(BaseModel):
    success: bool
    gateway: str
    reference: str | None = None
    authorization_url: str | None = None
    access_code: str | None = None
    public_key: str | None = None
    metadata: dict = Field(default_factory=dict)
    message: str | None = None


class OrderItemOut(BaseModel):
    id: int
    sellable_kind: SellableKind
    product_variant_id: int | None
    service_variant_id: int | None
    name: str
    sku: str | None
    quantity: int
    base_quantity: int
    unit_price: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    metadata: dict | None = Field(None, validation_alias="metadata_json")

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    shop_id: int
    customer_id: int | None
    status: str
    payment_status: str
    payment_method: str
    payment_reference: str | None
    currency: str
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    outstanding_balance: Decimal
    items: List[OrderItemOut]
    created_at: datetime


class CheckoutOut(BaseModel):
    order: OrderOut
    payment: PaymentInitiationOut | None = None
    message: str | None = None


class RecordPaymentIn(BaseModel):
    amount: Decimal = Field(..., description="Musi byc > 0")
    payment_method: str = Field(..., min_length=1, max_length=50)
    reference: str | None = Field(None, max_length=120)
    notes: str | None = None


class RefundIn(BaseModel):
    amount: Decimal | None = None
    reason: str | None = None


class VerifyPaymentIn(BaseModel):
    reference: str | None = None


class InitiatePaymentIn(BaseModel):
    payment_method: str | None = None
    callback_url: str | None = None


class OrderPaymentOut(BaseModel):
    id: int
    order_id: int
    kind: str
    status: str
    amount: Decimal
    currency: str
    payment_method: str
    reference_number: str | None
    gateway: str | None
    gateway_reference: str | None
    gateway_fee: Decimal | None
    refund_of_id: int | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentMethodOut(BaseModel):
    identifier: str
    name: str
    supports_refunds: bool
    supports_inline: bool
    currencies: List[str]
    public_key: str | None = None


class WebhookAck(BaseModel):
    status: str
    order_id: int | None = None
    payment_id: int | None = None


class HeldSaleItemIn(BaseModel):
    variant_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    packaging_type_id: int | None = Field(None, gt=0)


class HoldSaleIn(BaseModel):
    items: List[HeldSaleItemIn] = Field(..., min_length=1)
    customer_id: int | None = Field(None, gt=0)
    notes: str | None = None


class HeldSaleOut(BaseModel):
    id: int
    shop_id: int
    hold_reference: str
    customer_id: int | None
    items: list
    notes: str | None
    created_at: datetime
    expires_at: datetime
    retrieved_at: datetime | None

    model_config = ConfigDict(from_attributes=True)
