"""Block until Postgres accepts connections (container start, before migrations)."""
import os, time
from urllib.parse import urlparse

import psycopg2


def _connect_kwargs(database_url: str) -> dict:
    # SQLAlchemy driver suffixes are not understood by libpq
    url = database_url.replace("postgresql+psycopg2://", "postgresql://").replace("postgres://", "postgresql://")
    p = urlparse(url)
    return {
        "host": p.hostname or "db",
        "port": p.port or 5432,
        "user": p.username or "shuttle",
        "password": p.password or "shuttle",
        "dbname": (p.path or "/shuttle").lstrip("/") or "shuttle",
    }


def wait(database_url: str, timeout_s: int = 60) -> None:
    if database_url.startswith("sqlite"):
        return
    kwargs = _connect_kwargs(database_url)
    start = time.time()
    print(f"[wait_for_db] Waiting for Postgres at {kwargs['host']}:{kwargs['port']} db={kwargs['dbname']} (timeout={timeout_s}s)")
    while True:
        try:
            psycopg2.connect(**kwargs).close()
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                print(f"[wait_for_db] Timed out waiting for DB. Last error: {e}")
                raise
            time.sleep(1)
        else:
            print("[wait_for_db] Postgres is ready.")
            return


if __name__ == "__main__":
    url = os.getenv("DATABASE_URL")
    if not url:
        raise SystemExit("DATABASE_URL is not set")
    wait(url, int(os.getenv("DB_WAIT_TIMEOUT", "60")))
