from shuttle.tasks.celery_app import celery
from shuttle.tasks import worker_jobs

@celery.task(name="shuttle.tasks.jobs.generate_departures")
def generate_departures(days: int | None = None):
    return worker_jobs.generate_departures(days=days)


@celery.task(name="shuttle.tasks.jobs.process_email_queue")
def process_email_queue(limit: int = 50):
    return worker_jobs.process_email_queue(limit=limit)
