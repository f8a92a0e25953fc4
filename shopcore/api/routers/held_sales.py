# shopcore/api/routers/held_sales.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopcore.data.database import get_db
from shopcore.domain.errors import InsufficientStock, NotFound, OrderStateError
from shopcore.domain.schemas import HeldSaleOut, HoldSaleIn
from shopcore.services.held_sale_service import HeldSaleService

router = APIRouter(prefix="/shops/{shop_id}/held-sales", tags=["held-sales"])


def get_service(db: Session):
    return HeldSaleService(db)


@router.post("", response_model=HeldSaleOut, status_code=201)
def hold_sale(shop_id: int, payload: HoldSaleIn, db: Session = Depends(get_db)):
    """
    Zawiesza sprzedaz w POS i rezerwuje towar do czasu wznowienia lub wygasniecia.
    """
    svc = get_service(db)
    try:
        return svc.hold(shop_id, payload.items, customer_id=payload.customer_id, notes=payload.notes)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStock as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "sku": e.sku, "available": e.available})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[HeldSaleOut])
def list_held_sales(shop_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.list_active(shop_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{held_id}/retrieve", response_model=HeldSaleOut)
def retrieve_held_sale(shop_id: int, held_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.retrieve(shop_id, held_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{held_id}", status_code=204)
def delete_held_sale(shop_id: int, held_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        svc.release(shop_id, held_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
