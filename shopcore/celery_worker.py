# shopcore/celery_worker.py
from celery import Celery

from shopcore.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND, CELERY_TASK_ALWAYS_EAGER

celery_app = Celery(
    "shopcore",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "shopcore.tasks.expire",
    "shopcore.services.notification_service",
)

celery_app.conf.beat_schedule = {
    "expire-carts-hourly": {
        "task": "shopcore.tasks.expire.expire_carts_task",
        "schedule": 60.0 * 60,
    },
    "expire-held-sales-every-5-minutes": {
        "task": "shopcore.tasks.expire.expire_held_sales_task",
        "schedule": 60.0 * 5,
    },
}

celery_app.conf.timezone = "UTC"
# lokalnie / w testach taski wykonuja sie od razu, bez brokera
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
celery_app.conf.task_eager_propagates = CELERY_TASK_ALWAYS_EAGER
