import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

from doctrack.celery_app import celery_app
from doctrack.config import settings

logger = logging.getLogger(__name__)


def sign(body: str, secret: str | None) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if secret:
        sig = hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()
        headers["X-Webhook-Signature"] = sig
    return headers


@celery_app.task(name="doctrack.tasks.events.broadcast_change", ignore_result=True)
def broadcast_change(table: str, event_type: str, record: dict) -> None:
    """Fan one committed write out to every change-feed subscriber.

    Subscribers receive ``{table, event_type, record, published_at}``. Each
    delivery is queued on its own so one slow subscriber doesn't hold the
    others back.
    """
    event = {
        "table": table,
        "event_type": event_type,
        "record": record,
        "published_at": datetime.now(timezone.utc).isoformat(),
    }
    for url in settings.change_feed_webhooks:
        try:
            deliver_change.delay(url=url, payload=event)
        except Exception as e:
            logger.exception("Failed to queue change delivery to %s: %s", url, e)
    logger.debug(
        "Broadcast %s %s to %d subscribers",
        table,
        event_type,
        len(settings.change_feed_webhooks),
    )


@celery_app.task(
    name="doctrack.tasks.events.deliver_change",
    ignore_result=True,
    bind=True,
    max_retries=5,
    default_retry_delay=10,
)
def deliver_change(self, url: str, payload: dict) -> None:
    """POST one change event to a subscriber, HMAC-signed when a secret is set."""
    import httpx

    body = json.dumps(payload, default=str)
    headers = sign(body, settings.change_feed_secret)

    try:
        with httpx.Client(timeout=30.0) as client:
            resp = client.post(url, content=body, headers=headers)
        if 200 <= resp.status_code < 300:
            return
        logger.warning("Change delivery to %s got HTTP %s", url, resp.status_code)
    except (httpx.HTTPError, OSError) as e:
        logger.warning("Change delivery to %s failed: %s", url, e)

    try:
        self.retry(countdown=10 * (2 ** (self.request.retries or 0)))
    except self.MaxRetriesExceededError:
        logger.error("Change delivery to %s exhausted retries", url)
