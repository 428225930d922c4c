import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once per process (API and Celery worker)."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("shuttle").setLevel(level.upper())
