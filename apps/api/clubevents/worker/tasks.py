from celery.utils.log import get_task_logger

from clubevents.core.logging import configure_logging
from clubevents.notifications.changes import ChangeEvent
from clubevents.notifications.publisher import DISPATCH_TASK, run_dispatch
from clubevents.services.exceptions import DependencyError
from clubevents.worker.celery_app import celery_app

configure_logging()
logger = get_task_logger(__name__)


@celery_app.task(
    name=DISPATCH_TASK,
    bind=True,
    autoretry_for=(DependencyError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=5,
)
def dispatch_change_event(self, payload: dict) -> dict:
    change = ChangeEvent.from_payload(payload)
    logger.info(
        "dispatch_change_event started record=%s/%s id=%s attempt=%s",
        change.record_type,
        change.kind,
        change.record_id,
        self.request.retries,
    )

    handled = run_dispatch(change)

    logger.info("dispatch_change_event completed id=%s handlers=%s", change.record_id, handled)
    return {"record_id": change.record_id, "handlers": handled}
