"""Create the configured database (Postgres only) and its tables."""
from __future__ import annotations

import argparse
import logging
import sys
from urllib.parse import urlsplit, urlunsplit

import psycopg
from psycopg import sql

from commflock.core.logging_config import configure_logging
from commflock.core.settings import settings

logger = logging.getLogger("commflock.scripts.ensure_db")


def normalize_to_psycopg(uri: str) -> str:
    """Return a Postgres URI suitable for psycopg.connect().

    Strips quotes and whitespace and turns SQLAlchemy driver schemes
    (``postgresql+psycopg``) into plain ``postgresql``.
    """
    uri = (uri or "").strip().strip("'\"")
    if not uri:
        raise ValueError("DATABASE_URL is empty")
    parts = urlsplit(uri)
    scheme = parts.scheme
    if scheme.startswith("postgresql+"):
        scheme = "postgresql"
    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def _split_db_url(db_url: str) -> tuple[str, str]:
    """Return ``(admin_url, target_db)`` using the maintenance database."""
    parts = urlsplit(normalize_to_psycopg(db_url))
    if not parts.scheme.startswith("postgresql"):
        raise ValueError(f"Not a Postgres URL: {db_url!r}")
    target_db = parts.path.lstrip("/") or "postgres"
    if parts.netloc:
        admin_url = urlunsplit(("postgresql", parts.netloc, "/postgres", parts.query, ""))
    else:
        admin_url = "postgresql:///postgres"
    return admin_url, target_db


def ensure_database_exists(db_url: str) -> None:
    """Create the configured Postgres database if it is missing."""
    admin_url, target_db = _split_db_url(db_url)
    with psycopg.connect(admin_url, autocommit=True) as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
        if cur.fetchone() is None:
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(target_db)))
            logger.info("Created database %s", target_db)
        else:
            logger.info("Database %s already exists", target_db)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Ensure the configured database and tables exist")
    parser.add_argument(
        "--skip-tables",
        action="store_true",
        help="Only create the database; leave schema creation to Alembic.",
    )
    args = parser.parse_args(argv)
    configure_logging()

    url = settings.effective_database_url
    try:
        if url.startswith("postgresql"):
            ensure_database_exists(url)
        if not args.skip_tables:
            # Imported late so the engine is built after the database exists.
            from commflock.db.session import create_tables

            create_tables()
            logger.info("Tables ensured for %s", urlsplit(url).scheme)
    except (psycopg.Error, ValueError) as exc:
        logger.error("ensure_db failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
