# shopcore/api/routers/payments.py
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopcore.api.deps import get_payment_service
from shopcore.data.database import get_db
from shopcore.domain.errors import (
    GatewayRequestFailed,
    GatewayUnavailable,
    NotFound,
    OrderStateError,
    OverpaymentNotAllowed,
    UnknownGateway,
)
from shopcore.domain.schemas import (
    InitiatePaymentIn,
    OrderPaymentOut,
    PaymentInitiationOut,
    RecordPaymentIn,
    RefundIn,
    VerifyPaymentIn,
    WebhookAck,
)
from shopcore.services.order_service import OrderService
from shopcore.services.payment_service import PaymentService

router = APIRouter(prefix="/shops/{shop_id}/orders/{order_id}/payments", tags=["payments"])


def get_order_service(db: Session):
    return OrderService(db)


@router.get("", response_model=List[OrderPaymentOut])
def list_payments(shop_id: int, order_id: int, db: Session = Depends(get_db)):
    orders = get_order_service(db)
    try:
        order = orders.get_order(shop_id, order_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return orders.ledger.list_payments(order)


@router.post("", response_model=OrderPaymentOut, status_code=201)
def record_payment(shop_id: int, order_id: int, payload: RecordPaymentIn, db: Session = Depends(get_db)):
    """
    Reczna wplata (gotowka, przelew). Nadplata tylko gdy sklep ma allow_overpayment.
    """
    orders = get_order_service(db)
    try:
        order = orders.get_order(shop_id, order_id)
        return orders.ledger.record_payment(
            order, payload.amount, payload.payment_method, reference=payload.reference, notes=payload.notes
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (OverpaymentNotAllowed, OrderStateError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/initiate", response_model=PaymentInitiationOut)
def initiate_payment(
    shop_id: int,
    order_id: int,
    payload: InitiatePaymentIn,
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
):
    """Ponowienie platnosci dla niezaplaconego zamowienia."""
    orders = get_order_service(db)
    try:
        order = orders.get_order(shop_id, order_id)
        result = payments.initiate(order, payment_method=payload.payment_method, callback_url=payload.callback_url)
    except UnknownGateway as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except GatewayUnavailable as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GatewayRequestFailed as e:
        raise HTTPException(status_code=502, detail=str(e))

    if not result.success:
        raise HTTPException(status_code=502, detail=result.message or "Payment could not be initiated")
    return PaymentInitiationOut(**asdict(result))


@router.post("/verify", response_model=WebhookAck)
def verify_payment(
    shop_id: int,
    order_id: int,
    payload: VerifyPaymentIn,
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
):
    orders = get_order_service(db)
    try:
        order = orders.get_order(shop_id, order_id)
        return payments.verify(order, payload.reference)
    except UnknownGateway as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayRequestFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{payment_id}/refund", response_model=OrderPaymentOut, status_code=201)
def refund_payment(
    shop_id: int,
    order_id: int,
    payment_id: int,
    payload: RefundIn,
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
):
    orders = get_order_service(db)
    try:
        order = orders.get_order(shop_id, order_id)
        return payments.refund(order, payment_id, amount=payload.amount, reason=payload.reason)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayRequestFailed as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
