# shopcore/api/deps.py
from fastapi import Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from shopcore.data.database import get_db
from shopcore.domain.values import OwnerKey
from shopcore.services.gateways import GatewayRegistry
from shopcore.services.lock_service import LockService
from shopcore.services.notification_service import NotificationService
from shopcore.services.payment_service import PaymentService


def get_registry(request: Request) -> GatewayRegistry:
    # budowany raz przy starcie aplikacji
    return request.app.state.gateway_registry


def get_lock_service() -> LockService:
    return LockService()


def get_notifier() -> NotificationService:
    return NotificationService()


def get_payment_service(
    db: Session = Depends(get_db),
    registry: GatewayRegistry = Depends(get_registry),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(db, registry, lock_service=lock_service, notifier=notifier)


def get_owner(
    customer_id: int | None = Query(None, gt=0),
    session_id: str | None = Query(None, min_length=1, max_length=100),
) -> OwnerKey:
    """Wlasciciel koszyka: dokladnie jedno z customer_id / session_id."""
    try:
        return OwnerKey(customer_id=customer_id, session_id=session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
