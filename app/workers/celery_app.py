from celery import Celery

from app.core.config import get_settings

MAINTENANCE_QUEUE = "q_normal"

settings = get_settings()

celery_app = Celery(
    "survey_coupons",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.tasks.grants_maintenance"],
)

celery_app.conf.update(
    task_default_queue=MAINTENANCE_QUEUE,
    task_routes={"app.workers.tasks.grants_maintenance.*": {"queue": MAINTENANCE_QUEUE}},
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # A sweep that overlaps the next beat tick is abandoned, the next one picks up.
    task_soft_time_limit=300,
    task_time_limit=360,
    result_expires=24 * 60 * 60,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    broker_connection_retry_on_startup=True,
)
