# shopcore/api/routers/checkout.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopcore.api.deps import get_owner, get_payment_service
from shopcore.data.database import get_db
from shopcore.domain.errors import (
    GatewayUnavailable,
    InsufficientStock,
    NotFound,
    UnknownGateway,
)
from shopcore.domain.schemas import CheckoutIn, CheckoutOut, PaymentMethodOut
from shopcore.domain.values import OwnerKey
from shopcore.services.checkout_service import CheckoutService
from shopcore.services.payment_service import PaymentService

router = APIRouter(prefix="/shops/{shop_id}", tags=["checkout"])


def get_service(db: Session, payments: PaymentService):
    return CheckoutService(db, payments)


@router.get("/payment-methods", response_model=List[PaymentMethodOut])
def payment_methods(shop_id: int, payments: PaymentService = Depends(get_payment_service)):
    try:
        return payments.available_methods(shop_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/checkout", response_model=CheckoutOut, status_code=201)
def checkout(
    shop_id: int,
    payload: CheckoutIn,
    owner: OwnerKey = Depends(get_owner),
    db: Session = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Koszyk -> zamowienie. Rezerwuje towar i zapisuje zamowienie w jednej transakcji,
    potem probuje zainicjowac platnosc. Blad bramki nie kasuje zamowienia.
    """
    svc = get_service(db, payments)
    try:
        return svc.checkout(shop_id, owner, payload)
    except InsufficientStock as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "sku": e.sku, "available": e.available})
    except (UnknownGateway, GatewayUnavailable) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
