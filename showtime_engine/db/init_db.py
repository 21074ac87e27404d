import logging

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from showtime_engine.core.config import settings

logger = logging.getLogger(__name__)


def _database_exists(cur, name: str) -> bool:
    cur.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (name,))
    return cur.fetchone() is not None


def create_database(database_url: str = None) -> bool:
    """
    Make sure the PostgreSQL database named in ``database_url`` exists.

    Returns True when it had to be created. Other backends (SQLite in tests)
    are left to ``Base.metadata.create_all``.
    """
    url = make_url(database_url or settings.DATABASE_URL)
    if not url.drivername.startswith("postgresql"):
        logger.debug("No database bootstrap needed for %s", url.drivername)
        return False

    try:
        # The maintenance database is always there to connect to
        con = psycopg2.connect(
            user=url.username,
            password=url.password,
            host=url.host,
            port=url.port or 5432,
            dbname="postgres",
        )
    except psycopg2.Error as e:
        logger.error("Cannot reach PostgreSQL at %s:%s to bootstrap %s: %s", url.host, url.port, url.database, e)
        return False

    try:
        con.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with con.cursor() as cur:
            if _database_exists(cur, url.database):
                logger.info("Database %s already exists.", url.database)
                return False
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))
            logger.info("Database %s created.", url.database)
            return True
    except psycopg2.Error as e:
        logger.error("Error creating database %s: %s", url.database, e)
        return False
    finally:
        con.close()


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    create_database()
