import os

# przed importem shopcore - settings czytaja env przy imporcie
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["ENABLED_GATEWAYS"] = "cash_on_delivery"

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from shopcore.api.deps import get_lock_service, get_notifier, get_registry
from shopcore.data.database import Base, build_engine, get_db
from shopcore.data.models import (
    CustomerModel,
    InventoryLocationModel,
    OrderModel,
    ProductModel,
    ProductPackagingTypeModel,
    ProductVariantModel,
    ServiceAddonModel,
    ServiceModel,
    ServiceVariantModel,
    ShopModel,
    TenantModel,
)
from shopcore.domain.money import quantize
from shopcore.main import create_app
from shopcore.services.gateways import (
    GatewayRegistry,
    PaymentGateway,
    PaymentInitiation,
    PaymentVerification,
    RefundResult,
    WebhookEvent,
)
from shopcore.services.gateways.cash_on_delivery import CashOnDeliveryGateway
from shopcore.services.payment_service import PaymentService


# --- doubles -----------------------------------------------------------------


class FakeGateway(PaymentGateway):
    """Bramka bez sieci. Webhook podpisany naglowkiem x-fake-signature: ok."""

    identifier = "fakepay"
    name = "Fake Pay"

    def __init__(self):
        self.fail_initialize = False
        self.raise_on_initialize = None
        self.verification = None
        self.initialized = []
        self.refunds = []

    def is_available(self) -> bool:
        return True

    def supported_currencies(self) -> list[str]:
        return ["NGN", "USD"]

    def initialize_payment(self, order, options=None) -> PaymentInitiation:
        if self.raise_on_initialize:
            raise self.raise_on_initialize
        if self.fail_initialize:
            return PaymentInitiation(False, self.identifier, message="declined")
        self.initialized.append((order.order_number, (options or {}).get("amount")))
        return PaymentInitiation(
            True,
            self.identifier,
            reference=self.generate_reference(order),
            authorization_url="https://pay.example/checkout",
        )

    def verify_payment(self, reference: str) -> PaymentVerification:
        return self.verification or PaymentVerification("pending", reference)

    def refund(self, payment, amount=None, reason=None) -> RefundResult:
        self.refunds.append((payment.id, amount))
        return RefundResult(True, refund_reference=f"R{len(self.refunds)}")

    def validate_webhook(self, request) -> bool:
        return request.header("x-fake-signature") == "ok"

    def parse_webhook(self, request) -> WebhookEvent:
        payload = request.json()
        amount = payload.get("amount")
        return WebhookEvent(
            event_type=payload.get("event", ""),
            status="success" if payload.get("event") == "paid" else "ignored",
            reference=payload.get("reference"),
            amount=Decimal(str(amount)) if amount is not None else None,
            currency=payload.get("currency"),
            gateway_reference=payload.get("id"),
        )


class FakeLock:
    def __init__(self):
        self.held = {}

    def acquire_payment_lock(self, order_id, token, ttl=60):
        if order_id in self.held:
            return False
        self.held[order_id] = token
        return True

    def release_payment_lock(self, order_id, token):
        if self.held.get(order_id) == token:
            del self.held[order_id]
            return True
        return False


class FakeNotifier:
    def __init__(self):
        self.sent = []

    def send_order_placed(self, order_id, order_number, customer_email):
        self.sent.append(("order_placed", order_number))

    def send_payment_received(self, order_id, order_number, amount):
        self.sent.append(("payment_received", order_number, amount))


# --- database ----------------------------------------------------------------


@pytest.fixture()
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- factories ---------------------------------------------------------------


def make_shop(db, tenant=None, **fields) -> ShopModel:
    if tenant is None:
        tenant = TenantModel(name="Tenant")
        db.add(tenant)
        db.flush()
    fields.setdefault("name", "Shop")
    fields.setdefault("currency", "NGN")
    shop = ShopModel(tenant_id=tenant.id, **fields)
    db.add(shop)
    db.flush()
    return shop


def make_customer(db, shop, email="buyer@example.com") -> CustomerModel:
    customer = CustomerModel(tenant_id=shop.tenant_id, name="Buyer", email=email)
    db.add(customer)
    db.flush()
    return customer


def make_product(
    db, shop, sku="SKU-1", price="1000.00", stock=10, is_taxable=False, track_stock=True, max_order_quantity=None
) -> ProductVariantModel:
    product = ProductModel(
        tenant_id=shop.tenant_id, shop_id=shop.id, name=f"Product {sku}", is_taxable=is_taxable, track_stock=track_stock
    )
    db.add(product)
    db.flush()
    variant = ProductVariantModel(
        tenant_id=shop.tenant_id,
        product_id=product.id,
        sku=sku,
        price=Decimal(price),
        max_order_quantity=max_order_quantity,
    )
    db.add(variant)
    db.flush()
    if stock is not None:
        add_stock(db, shop, variant, stock)
    return variant


def add_stock(db, shop, variant, quantity, location_code="main") -> InventoryLocationModel:
    location = InventoryLocationModel(
        tenant_id=shop.tenant_id,
        shop_id=shop.id,
        product_variant_id=variant.id,
        location_code=location_code,
        quantity=quantity,
    )
    db.add(location)
    db.flush()
    return location


def make_packaging(db, variant, name="Box", units=6, price="5000.00") -> ProductPackagingTypeModel:
    pkg = ProductPackagingTypeModel(
        tenant_id=variant.tenant_id,
        product_variant_id=variant.id,
        name=name,
        units_per_package=units,
        price=Decimal(price),
    )
    db.add(pkg)
    db.flush()
    return pkg


def make_service(
    db, shop, base_price="2000.00", customer_price="1500.00", shop_price="3000.00"
) -> ServiceVariantModel:
    service = ServiceModel(tenant_id=shop.tenant_id, shop_id=shop.id, name="Printing")
    db.add(service)
    db.flush()
    variant = ServiceVariantModel(
        tenant_id=shop.tenant_id,
        service_id=service.id,
        name="A4",
        base_price=Decimal(base_price),
        customer_materials_price=Decimal(customer_price) if customer_price else None,
        shop_materials_price=Decimal(shop_price) if shop_price else None,
    )
    db.add(variant)
    db.flush()
    return variant


def make_addon(db, service_variant, name="Binding", price="500.00", max_quantity=3) -> ServiceAddonModel:
    addon = ServiceAddonModel(
        tenant_id=service_variant.tenant_id,
        service_id=service_variant.service_id,
        name=name,
        price=Decimal(price),
        max_quantity=max_quantity,
    )
    db.add(addon)
    db.flush()
    return addon


def place_order(
    db, shop, total="5000.00", number="ORD-20260101-0001", method="cash_on_delivery", **fields
) -> OrderModel:
    order = OrderModel(
        tenant_id=shop.tenant_id,
        shop_id=shop.id,
        order_number=number,
        payment_method=method,
        currency=shop.currency,
        subtotal=Decimal(total),
        total_amount=Decimal(total),
        **fields,
    )
    db.add(order)
    db.commit()
    return order


@pytest.fixture()
def shop_setup(db):
    """Sklep z jednym produktem (10 szt.), opakowaniem, usluga i dodatkiem."""
    shop = make_shop(db)
    customer = make_customer(db, shop)
    product = make_product(db, shop, sku="PEN-BLUE", price="1000.00", stock=10)
    box = make_packaging(db, product, units=6, price="5000.00")
    service = make_service(db, shop)
    addon = make_addon(db, service)
    db.commit()
    return SimpleNamespace(shop=shop, customer=customer, product=product, box=box, service=service, addon=addon)


# --- payments ----------------------------------------------------------------


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def registry(gateway):
    reg = GatewayRegistry()
    reg.register("fakepay", lambda: gateway)
    reg.register("cash_on_delivery", lambda: CashOnDeliveryGateway({"enabled": True}))
    return reg


@pytest.fixture()
def lock():
    return FakeLock()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def payments(db, registry, lock, notifier):
    return PaymentService(db, registry, lock_service=lock, notifier=notifier)


# --- api ---------------------------------------------------------------------


@pytest.fixture()
def client(session_factory, registry, lock, notifier):
    app = create_app(registry=registry, create_tables=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_lock_service] = lambda: lock
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


def immediate_transactions(engine):
    """SQLite: kazda transakcja od razu bierze lock zapisu (zastepuje SELECT ... FOR UPDATE)."""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def money(value) -> Decimal:
    return quantize(value)
