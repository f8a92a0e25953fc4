# shopcore/api/routers/webhooks.py
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from shopcore.api.deps import get_payment_service
from shopcore.domain.errors import NotFound, PaymentInvalid, UnknownGateway, WebhookSignatureInvalid
from shopcore.domain.schemas import WebhookAck
from shopcore.services.gateways import WebhookRequest
from shopcore.services.payment_service import PaymentService
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/shops/{shop_id}/webhooks", tags=["webhooks"])


@router.post("/{gateway}", response_model=WebhookAck)
async def receive_webhook(
    shop_id: int,
    gateway: str,
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Webhook od bramki. Podpis liczony z surowego body, dlatego czytamy bajty, nie JSON.
    Ta sama wplata dostarczona drugi raz -> status "duplicate", bez drugiego wpisu w ksiedze.
    """
    webhook = WebhookRequest.build(dict(request.headers), await request.body())
    try:
        return await run_in_threadpool(payments.handle_webhook, shop_id, gateway, webhook)
    except WebhookSignatureInvalid as e:
        raise HTTPException(status_code=401, detail=str(e))
    except (UnknownGateway, NotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PaymentInvalid as e:
        logger.warning(f"Malformed {gateway} webhook for shop {shop_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
