from celery import Celery

from doctrack.config import settings

celery_app = Celery(
    "doctrack",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["doctrack.tasks.events", "doctrack.tasks.maintenance"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
    beat_schedule={
        "scan-control-number-collisions": {
            "task": "doctrack.tasks.maintenance.scan_collisions",
            "schedule": float(settings.collision_scan_interval_seconds),
        },
    },
)
