# shopcore/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from shopcore.api.deps import get_owner
from shopcore.data.database import get_db
from shopcore.domain.errors import NotFound
from shopcore.domain.schemas import AddItemIn, CartOut, MergeCartIn, UpdateQuantityIn
from shopcore.domain.values import AddonSelection, LineConfiguration, OwnerKey, SellableRef
from shopcore.services.cart_service import CartService

router = APIRouter(prefix="/shops/{shop_id}/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(shop_id: int, owner: OwnerKey = Depends(get_owner), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.get_cart(shop_id, owner)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/items", response_model=CartOut, status_code=201)
def add_item(
    shop_id: int,
    payload: AddItemIn,
    owner: OwnerKey = Depends(get_owner),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    configuration = LineConfiguration(
        packaging_type_id=payload.packaging_type_id,
        material_option=payload.material_option,
        addons=tuple(AddonSelection(a.addon_id, a.quantity) for a in payload.addons),
    )
    try:
        return svc.add_item(
            shop_id,
            owner,
            SellableRef(payload.kind, payload.variant_id),
            payload.quantity,
            configuration,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/items/{item_id}", response_model=CartOut)
def update_item(
    shop_id: int,
    item_id: int,
    payload: UpdateQuantityIn,
    owner: OwnerKey = Depends(get_owner),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.update_quantity(shop_id, owner, item_id, payload.quantity)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    shop_id: int,
    item_id: int,
    owner: OwnerKey = Depends(get_owner),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.remove_item(shop_id, owner, item_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("", response_model=CartOut)
def clear_cart(shop_id: int, owner: OwnerKey = Depends(get_owner), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.clear(shop_id, owner)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/merge", response_model=CartOut)
def merge_cart(shop_id: int, payload: MergeCartIn, db: Session = Depends(get_db)):
    """Po zalogowaniu: koszyk goscia (session_id) laczony z koszykiem klienta."""
    svc = get_service(db)
    try:
        return svc.merge_into(shop_id, payload.session_id, payload.customer_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
