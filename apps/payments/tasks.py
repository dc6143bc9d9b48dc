import logging

from celery import shared_task

from .models import PaymentSession

logger = logging.getLogger(__name__)


@shared_task
def send_payment_confirmation_email(payment_id: str) -> None:
    # Integrate with email provider
    session = PaymentSession.objects.for_payment_id(payment_id)
    if session is None:
        return None
    logger.info("Payment confirmation queued for %s (user %s)", payment_id, session.user_id)
    return None


@shared_task
def send_entries_created_email(payment_id: str, created_count: int, failed_items: list[str]) -> None:
    logger.info(
        "Entry confirmation queued for %s: %s created, %s failed",
        payment_id,
        created_count,
        len(failed_items),
    )
    return None
