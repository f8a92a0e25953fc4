# shopcore/services/notification_service.py
from shopcore.celery_worker import celery_app
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    """

    @staticmethod
    def send_order_placed(order_id: int, order_number: str, customer_email: str | None):
        send_order_placed_task.delay(order_id, order_number, customer_email)

    @staticmethod
    def send_payment_received(order_id: int, order_number: str, amount: str):
        send_payment_received_task.delay(order_id, order_number, amount)


@celery_app.task(name="shopcore.services.notification_service.send_order_placed_task")
def send_order_placed_task(order_id: int, order_number: str, customer_email: str | None):
    """
    Celery task - docelowo email/SMS do klienta i sklepu.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] Order {order_number} ({order_id}) placed, customer {customer_email or '-'}")
    return {"order_id": order_id, "order_number": order_number, "status": "sent"}


@celery_app.task(name="shopcore.services.notification_service.send_payment_received_task")
def send_payment_received_task(order_id: int, order_number: str, amount: str):
    logger.info(f"[NOTIFICATION] Order {order_number} ({order_id}) payment of {amount} received")
    return {"order_id": order_id, "order_number": order_number, "amount": amount, "status": "sent"}
