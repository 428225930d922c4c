from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_process_init, worker_process_shutdown, worker_ready
from shuttle.core.config import settings
from shuttle.core.logging_config import configure_logging


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        new_query = urlencode(qs, doseq=True)
        return urlunparse(parsed._replace(query=new_query))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "shuttle",
    broker=_redis_url,
    backend=_redis_url,
    include=["shuttle.tasks.jobs"],
)

celery.conf.timezone = settings.TIMEZONE


# Each worker process owns its engine; forked children must not share the parent's pool
@worker_process_init.connect
def on_worker_process_init(**kwargs):
    from shuttle.tasks import worker_jobs
    configure_logging(settings.LOG_LEVEL)
    worker_jobs.init_database()


@worker_process_shutdown.connect
def on_worker_process_shutdown(**kwargs):
    from shuttle.tasks import worker_jobs
    worker_jobs.close_database()


# Fill the rolling window once when the worker starts so departures appear without waiting 6h
@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    from shuttle.tasks.jobs import generate_departures
    generate_departures.delay()

celery.conf.beat_schedule = {
    "generate-departures-every-6-hours": {
        "task": "shuttle.tasks.jobs.generate_departures",
        "schedule": 21600.0,
    },
    "process-email-queue-every-2-minutes": {
        "task": "shuttle.tasks.jobs.process_email_queue",
        "schedule": 120.0,
        "kwargs": {"limit": 50},
    },
}
