"""
PostgreSQL connections for the stores and the rate limiter
"""
import logging
from typing import Optional

import psycopg2

from ..config import DatabaseSettings

logger = logging.getLogger(__name__)


def get_db_connection(settings: Optional[DatabaseSettings] = None, **overrides):
    """
    Open a psycopg2 connection

    Args:
        settings: Connection settings (default: DatabaseSettings.from_env())
        **overrides: host/port/database/user/password taking precedence over settings

    Returns:
        psycopg2 connection object
    """
    settings = settings or DatabaseSettings.from_env()
    if settings.url and not overrides:
        return psycopg2.connect(settings.url)

    params = {
        'host': settings.host,
        'port': settings.port,
        'database': settings.name,
        'user': settings.user,
        'password': settings.password,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return psycopg2.connect(**params)


def check_connection(settings: Optional[DatabaseSettings] = None) -> bool:
    """True when a trivial query succeeds"""
    try:
        conn = get_db_connection(settings)
    except psycopg2.Error as e:
        logger.error("❌ Database connection failed: %s", e)
        return False

    try:
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
        return True
    except psycopg2.Error as e:
        logger.error("❌ Database check failed: %s", e)
        return False
    finally:
        conn.close()
