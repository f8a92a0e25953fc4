# shopcore/tasks/expire.py
from shopcore.celery_worker import celery_app
from shopcore.data.database import SessionLocal
from shopcore.services.cart_service import CartService
from shopcore.services.held_sale_service import HeldSaleService
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="shopcore.tasks.expire.expire_carts_task")
def expire_carts_task():
    logger.info("Expire carts task started")

    db = SessionLocal()
    try:
        # koszyk nie trzyma rezerwacji, wystarczy go usunac
        removed = CartService(db).delete_expired()
        logger.info(f"Removed {removed} expired carts")
        return removed
    finally:
        db.close()


@celery_app.task(name="shopcore.tasks.expire.expire_held_sales_task")
def expire_held_sales_task():
    logger.info("Expire held sales task started")

    db = SessionLocal()
    try:
        return HeldSaleService(db).cleanup_expired()
    finally:
        db.close()
