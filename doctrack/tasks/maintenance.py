import logging

from doctrack.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="doctrack.tasks.maintenance.scan_collisions", ignore_result=True)
def scan_collisions() -> int:
    """Periodic sweep for reference numbers shared by several documents.

    Allocation is only serialized inside one process, so duplicates written
    by separate workers surface here. Each one is logged and counted.
    """
    from doctrack.db import SessionLocal
    from doctrack.services.documents import Documents, report_collisions

    db = SessionLocal()
    try:
        found = report_collisions(Documents.collisions(db))
        logger.info("Collision scan found %d shared reference numbers", len(found))
        return len(found)
    except Exception as e:
        logger.exception("Failed to scan for collisions: %s", e)
        return 0
    finally:
        db.close()
