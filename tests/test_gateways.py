"""Gateway adapters against a stubbed HTTP layer, plus the registry."""

import hashlib
import hmac
import json
from decimal import Decimal
from types import SimpleNamespace

import pytest

from shopcore.domain.errors import GatewayRequestFailed, UnknownGateway
from shopcore.services.gateways import PaymentGateway, WebhookRequest, build_default_registry
from shopcore.services.gateways.cash_on_delivery import CashOnDeliveryGateway
from shopcore.services.gateways.crypto import CryptoGateway
from shopcore.services.gateways.flutterwave import FlutterwaveGateway
from shopcore.services.gateways.opay import OpayGateway
from shopcore.services.gateways.paystack import PaystackGateway

PAYSTACK_CONFIG = {
    "base_url": "https://api.paystack.test",
    "secret_key": "sk_test_123",
    "public_key": "pk_test_123",
    "webhook_secret": "sk_test_123",
}


class FakeResponse:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body
        self.text = json.dumps(body)

    def json(self):
        return self._body


class FakeHttp:
    """Podmienia requests.request, odpowiedzi z kolejki."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, json=None, params=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "params": params, "headers": headers})
        return self.responses.pop(0)


@pytest.fixture()
def http(monkeypatch):
    def install(*responses):
        fake = FakeHttp(*responses)
        monkeypatch.setattr("shopcore.services.gateways.base.requests.request", fake)
        return fake

    return install


def order(**fields):
    data = {
        "id": 7,
        "order_number": "ORD-20260101-0001",
        "tenant_id": 1,
        "shop_id": 3,
        "currency": "NGN",
        "total_amount": Decimal("5500.00"),
        "customer_email": "ada@example.com",
        "shipping_address": {"name": "Ada Obi", "phone": "+2348000000000"},
    }
    data.update(fields)
    return SimpleNamespace(**data)


class TestReferences:
    def test_reference_carries_order_number(self):
        reference = CashOnDeliveryGateway().generate_reference(order())

        assert reference.startswith("CASH_ON_DELIVERY_ORD-20260101-0001_")
        assert PaymentGateway.order_number_from_reference(reference) == "ORD-20260101-0001"

    @pytest.mark.parametrize("reference", ["", "garbage", "PAYSTACK__ABCD"])
    def test_unparseable_reference(self, reference):
        assert PaymentGateway.order_number_from_reference(reference) is None


class TestPaystack:
    def test_initialize_sends_amount_in_kobo(self, http):
        fake = http(
            FakeResponse(
                200,
                {"status": True, "data": {"authorization_url": "https://checkout.paystack.com/x", "access_code": "ac"}},
            )
        )
        gateway = PaystackGateway(PAYSTACK_CONFIG)

        result = gateway.initialize_payment(order(), {"amount": Decimal("5500.00")})

        assert result.success is True
        assert result.authorization_url == "https://checkout.paystack.com/x"
        assert result.access_code == "ac"
        assert result.public_key == "pk_test_123"
        sent = fake.calls[0]
        assert sent["url"] == "https://api.paystack.test/transaction/initialize"
        assert sent["json"]["amount"] == 550000
        assert sent["json"]["reference"] == result.reference
        assert sent["headers"]["Authorization"] == "Bearer sk_test_123"

    def test_initialize_requires_email(self, http):
        fake = http()
        result = PaystackGateway(PAYSTACK_CONFIG).initialize_payment(order(customer_email=None, shipping_address={}))

        assert result.success is False
        assert fake.calls == []

    def test_rejected_initialize(self, http):
        http(FakeResponse(400, {"status": False, "message": "Invalid key"}))

        result = PaystackGateway(PAYSTACK_CONFIG).initialize_payment(order())

        assert result.success is False
        assert result.message == "Invalid key"

    def test_server_errors_retried_then_raised(self, http):
        fake = http(*[FakeResponse(502, {"message": "bad gateway"}) for _ in range(3)])

        with pytest.raises(GatewayRequestFailed) as exc:
            PaystackGateway(PAYSTACK_CONFIG).verify_payment("REF")

        assert len(fake.calls) == 3
        assert exc.value.status_code == 502

    def test_verify_success(self, http):
        http(
            FakeResponse(
                200,
                {
                    "status": True,
                    "data": {"status": "success", "amount": 550000, "currency": "NGN", "id": 4099, "fees": 8250},
                },
            )
        )

        result = PaystackGateway(PAYSTACK_CONFIG).verify_payment("REF")

        assert result.success is True
        assert result.amount == Decimal("5500.00")
        assert result.fee == Decimal("82.50")
        assert result.gateway_reference == "4099"

    def test_verify_abandoned_is_failed(self, http):
        http(FakeResponse(200, {"status": True, "data": {"status": "abandoned"}}))

        result = PaystackGateway(PAYSTACK_CONFIG).verify_payment("REF")

        assert result.status == "failed"

    def test_refund_by_transaction_id(self, http):
        fake = http(FakeResponse(200, {"status": True, "data": {"id": 77}}))
        payment = SimpleNamespace(gateway_reference="4099", currency="NGN")

        result = PaystackGateway(PAYSTACK_CONFIG).refund(payment, Decimal("1000.00"), reason="damaged")

        assert result.success is True
        assert result.refund_reference == "77"
        assert fake.calls[0]["json"] == {"transaction": "4099", "amount": 100000, "merchant_note": "damaged"}

    def test_webhook_signature(self):
        body = json.dumps({"event": "charge.success", "data": {"reference": "REF"}}).encode()
        signature = hmac.new(b"sk_test_123", body, hashlib.sha512).hexdigest()
        gateway = PaystackGateway(PAYSTACK_CONFIG)

        assert gateway.validate_webhook(WebhookRequest.build({"X-Paystack-Signature": signature}, body)) is True
        assert gateway.validate_webhook(WebhookRequest.build({"X-Paystack-Signature": "0" * 128}, body)) is False
        assert gateway.validate_webhook(WebhookRequest.build({}, body)) is False

    def test_parse_charge_success(self):
        body = json.dumps(
            {
                "event": "charge.success",
                "data": {"reference": "REF", "amount": 550000, "currency": "NGN", "id": 4099, "fees": 100},
            }
        ).encode()

        event = PaystackGateway(PAYSTACK_CONFIG).parse_webhook(WebhookRequest.build({}, body))

        assert event.is_success
        assert event.reference == "REF"
        assert event.amount == Decimal("5500.00")
        assert event.gateway_reference == "4099"
        assert event.fee == Decimal("1.00")

    def test_unconfigured_gateway_not_available(self):
        assert PaystackGateway({}).is_available() is False


class TestFlutterwave:
    config = {"base_url": "https://api.flw.test/v3", "secret_key": "FLWSECK", "webhook_secret": "hash-123"}

    def test_initialize_returns_hosted_link(self, http):
        fake = http(FakeResponse(200, {"status": "success", "data": {"link": "https://flw.test/pay/abc"}}))

        result = FlutterwaveGateway(self.config).initialize_payment(order(), {"amount": Decimal("5500")})

        assert result.success is True
        assert result.authorization_url == "https://flw.test/pay/abc"
        assert fake.calls[0]["json"]["amount"] == "5500.00"
        assert fake.calls[0]["json"]["tx_ref"] == result.reference

    def test_verify_by_reference(self, http):
        fake = http(
            FakeResponse(
                200,
                {"status": "success", "data": {"status": "successful", "amount": 5500, "currency": "NGN", "id": 12}},
            )
        )

        result = FlutterwaveGateway(self.config).verify_payment("REF")

        assert result.success is True
        assert result.amount == Decimal("5500.00")
        assert fake.calls[0]["params"] == {"tx_ref": "REF"}

    def test_verify_without_amount_keeps_it_unknown(self, http):
        http(FakeResponse(200, {"status": "success", "data": {"status": "successful", "currency": "NGN", "id": 12}}))

        result = FlutterwaveGateway(self.config).verify_payment("REF")

        assert result.success is True
        assert result.amount is None

    def test_webhook_hash_header(self):
        gateway = FlutterwaveGateway(self.config)

        assert gateway.validate_webhook(WebhookRequest.build({"verif-hash": "hash-123"}, b"{}")) is True
        assert gateway.validate_webhook(WebhookRequest.build({"verif-hash": "nope"}, b"{}")) is False

    @pytest.mark.parametrize("tx_status, expected", [("successful", "success"), ("failed", "failed")])
    def test_parse_charge_completed(self, tx_status, expected):
        body = json.dumps(
            {"event": "charge.completed", "data": {"tx_ref": "REF", "status": tx_status, "amount": 10, "id": 5}}
        ).encode()

        event = FlutterwaveGateway(self.config).parse_webhook(WebhookRequest.build({}, body))

        assert event.status == expected
        assert event.reference == "REF"


class TestCrypto:
    config = {"base_url": "https://api.nowpayments.test/v1", "api_key": "np-key", "webhook_secret": "ipn-secret"}

    def test_invoice_metadata(self, http):
        fake = http(
            FakeResponse(
                201,
                {
                    "payment_id": "5077",
                    "pay_address": "bc1qexample",
                    "pay_amount": 0.0012,
                    "invoice_url": "https://nowpayments.test/invoice/5077",
                },
            )
        )

        result = CryptoGateway(self.config).initialize_payment(order(currency="USD", total_amount=Decimal("50")))

        assert result.success is True
        assert result.metadata["wallet_address"] == "bc1qexample"
        assert result.metadata["crypto_currency"] == "BTC"
        assert fake.calls[0]["headers"]["x-api-key"] == "np-key"
        assert fake.calls[0]["json"]["ipn_callback_url"].endswith("/shops/3/webhooks/crypto")

    def test_signature_over_sorted_payload(self):
        payload = {"payment_status": "finished", "order_id": "REF", "payment_id": 5077, "price_amount": 50}
        sorted_body = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        signature = hmac.new(b"ipn-secret", sorted_body.encode(), hashlib.sha512).hexdigest()
        # kolejnosc kluczy w ciele nie ma znaczenia
        body = json.dumps(payload, indent=2).encode()
        gateway = CryptoGateway(self.config)

        assert gateway.validate_webhook(WebhookRequest.build({"x-nowpayments-sig": signature}, body)) is True
        assert gateway.validate_webhook(WebhookRequest.build({"x-nowpayments-sig": "bad"}, body)) is False

    def test_no_automatic_refunds(self):
        gateway = CryptoGateway(self.config)

        assert gateway.supports_refunds() is False
        assert gateway.refund(SimpleNamespace(), Decimal("1")).success is False


class TestOpay:
    config = {
        "base_url": "https://api.opay.test",
        "secret_key": "OPAYPRV",
        "merchant_id": "256",
        "webhook_secret": "opay-secret",
    }

    def test_initialize_sends_kobo_string(self, http):
        fake = http(
            FakeResponse(
                200,
                {
                    "code": "00000",
                    "message": "SUCCESSFUL",
                    "data": {"cashierUrl": "https://cashier.opay.test/x", "orderNo": "2110"},
                },
            )
        )

        result = OpayGateway(self.config).initialize_payment(order(), {"amount": Decimal("5500.00")})

        assert result.success is True
        assert result.authorization_url == "https://cashier.opay.test/x"
        assert result.metadata == {"order_no": "2110"}
        sent = fake.calls[0]
        assert sent["url"] == "https://api.opay.test/api/v3/cashier/initialize"
        assert sent["json"]["amount"] == "550000"
        assert sent["json"]["currency"] == "NGN"
        assert sent["json"]["userPhone"] == "+2348000000000"
        assert sent["headers"]["MerchantId"] == "256"

    def test_error_code_is_refusal(self, http):
        http(FakeResponse(200, {"code": "02002", "message": "merchant not configured"}))

        result = OpayGateway(self.config).initialize_payment(order())

        assert result.success is False
        assert result.message == "merchant not configured"

    @pytest.mark.parametrize(
        "tx_status, expected", [("SUCCESS", "success"), ("INITIAL", "pending"), ("CLOSE", "failed")]
    )
    def test_verify_statuses(self, http, tx_status, expected):
        fake = http(
            FakeResponse(200, {"code": "00000", "data": {"status": tx_status, "amount": "550000", "orderNo": "2110"}})
        )

        result = OpayGateway(self.config).verify_payment("REF")

        assert result.status == expected
        assert fake.calls[0]["json"] == {"reference": "REF"}
        if expected == "success":
            assert result.amount == Decimal("5500.00")
            assert result.gateway_reference == "2110"

    def test_webhook_bearer_signature(self):
        body = json.dumps({"payload": {"reference": "REF", "status": "SUCCESS"}}).encode()
        signature = hmac.new(b"opay-secret", body, hashlib.sha512).hexdigest()
        gateway = OpayGateway(self.config)

        assert gateway.validate_webhook(WebhookRequest.build({"Authorization": f"Bearer {signature}"}, body)) is True
        assert gateway.validate_webhook(WebhookRequest.build({"Authorization": signature}, body)) is False
        assert gateway.validate_webhook(WebhookRequest.build({}, body)) is False

    def test_parse_wrapped_payload(self):
        body = json.dumps(
            {"payload": {"reference": "REF", "status": "SUCCESS", "amount": "550000", "orderNo": "2110"}}
        ).encode()

        event = OpayGateway(self.config).parse_webhook(WebhookRequest.build({}, body))

        assert event.is_success
        assert event.reference == "REF"
        assert event.amount == Decimal("5500.00")
        assert event.gateway_reference == "2110"

    def test_naira_only_without_refunds(self):
        gateway = OpayGateway(self.config)

        assert gateway.supported_currencies() == ["NGN"]
        assert gateway.supports_refunds() is False
        assert gateway.refund(SimpleNamespace(), Decimal("1")).success is False


class TestCashOnDelivery:
    def test_initialize_without_network(self):
        result = CashOnDeliveryGateway().initialize_payment(order())

        assert result.success is True
        assert result.reference.startswith("CASH_ON_DELIVERY_")

    def test_accepts_any_currency(self):
        assert CashOnDeliveryGateway().supported_currencies() == ["*"]


class TestRegistry:
    def test_builds_enabled_gateways_only(self):
        registry = build_default_registry(
            enabled=["paystack", "cash_on_delivery", "moneygram"], config={"paystack": PAYSTACK_CONFIG}
        )

        assert registry.identifiers() == ["paystack", "cash_on_delivery"]
        with pytest.raises(UnknownGateway):
            registry.get("flutterwave")

    def test_instances_are_reused(self):
        registry = build_default_registry(enabled=["cash_on_delivery"], config={})

        assert registry.get("cash_on_delivery") is registry.get("cash_on_delivery")

    def test_available_skips_unconfigured_and_foreign_currency(self):
        registry = build_default_registry(
            enabled=["paystack", "flutterwave", "cash_on_delivery"], config={"paystack": PAYSTACK_CONFIG}
        )

        assert [g.identifier for g in registry.available("NGN")] == ["paystack", "cash_on_delivery"]
        assert [g.identifier for g in registry.available("KES")] == ["cash_on_delivery"]
