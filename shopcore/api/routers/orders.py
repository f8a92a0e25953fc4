# shopcore/api/routers/orders.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopcore.data.database import get_db
from shopcore.domain.errors import NotFound, OrderStateError
from shopcore.domain.schemas import OrderOut
from shopcore.services.order_service import OrderService

router = APIRouter(prefix="/shops/{shop_id}/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(shop_id: int, order_id: int, db: Session = Depends(get_db)):
    """
    Pobiera szczegoly zamowienia razem z zaplacona kwota i saldem.
    """
    svc = get_service(db)
    try:
        return svc.to_dict(svc.get_order(shop_id, order_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(shop_id: int, order_id: int, db: Session = Depends(get_db)):
    """
    Anuluje zamowienie i zwalnia zarezerwowany towar.
    """
    svc = get_service(db)
    try:
        return svc.to_dict(svc.cancel(shop_id, order_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{order_id}/fulfil", response_model=OrderOut)
def fulfil_order(shop_id: int, order_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.to_dict(svc.fulfil(shop_id, order_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
