import logging

from doctrack.core.reconcile import ChangeTable, ChangeType

logger = logging.getLogger(__name__)


def publish_change(
    table: ChangeTable,
    event_type: ChangeType,
    record: dict,
) -> None:
    """Fire-and-forget change-feed publishing.

    Queues a Celery task that fans the event out to every subscriber.
    Never raises: failures are logged and swallowed.
    """
    try:
        from doctrack.tasks.events import broadcast_change

        broadcast_change.delay(
            table=table.value,
            event_type=event_type.value,
            record=record,
        )
        logger.debug(
            "Published %s %s for %s", table.value, event_type.value, record.get("id")
        )
    except Exception as e:
        logger.exception(
            "Failed to publish %s %s: %s", table.value, event_type.value, e
        )


def document_record(document) -> dict:
    """Row-shaped payload of a document snapshot, without its log."""
    return document.model_dump(mode="json", exclude={"log"})


def log_record(document_id: str, entry) -> dict:
    return {**entry.model_dump(mode="json"), "document_id": str(document_id)}
