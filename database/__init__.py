"""Database module for managing connections to CockroachDB/PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management for the key-value table
- Connection lifecycle

The pool is returned to the caller rather than kept in module state; the
application lifespan owns it and hands it to the record store.
"""

import json
import logging
import ssl
from typing import Optional, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, parse_qs

from .exceptions import DatabaseError, DatabaseConnectionError, DatabaseSchemaError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

CONNECT_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    ConnectionRefusedError,
)

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for hosted database connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)

    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '30000',  # 30 seconds
        }
    }

    # sslmode=disable is used for local clusters; anything else gets verified TLS
    sslmode = params.get('sslmode', ['require'])[0]
    if sslmode != 'disable':
        kwargs['ssl'] = _get_ssl_context()

    return kwargs

def _strip_query(db_url: str) -> str:
    """Remove query parameters handled through connection kwargs."""
    return db_url.split('?', 1)[0]

async def _init_connection(conn: asyncpg.Connection) -> None:
    """Register JSON codecs so record values round-trip as Python objects."""
    for type_name in ('json', 'jsonb'):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema='pg_catalog'
        )

@backoff.on_exception(backoff.expo, CONNECT_ERRORS, max_tries=5)
async def create_database_if_not_exists(db_url: str) -> None:
    """Create the database if it doesn't exist.

    Args:
        db_url: Database connection URL

    Raises:
        Exception: If database creation fails after retries
    """
    parsed = urlparse(db_url)
    db_name = parsed.path.strip('/') or 'defaultdb'
    if db_name in ('defaultdb', 'postgres'):
        return

    base_url = parsed._replace(path='/defaultdb').geturl()
    logger.info(f"Connecting to defaultdb to create {db_name} if needed")

    conn = await asyncpg.connect(_strip_query(base_url), **_get_connection_kwargs(base_url))
    try:
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = $1)',
            db_name
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Created database {db_name}")
    finally:
        await conn.close()

@backoff.on_exception(backoff.expo, CONNECT_ERRORS, max_tries=5)
async def init_db(db_url: str, create_database: bool = True) -> asyncpg.Pool:
    """Create the connection pool and bring the schema up to date.

    Args:
        db_url: Database URL
        create_database: Create the target database first when missing

    Returns:
        The connection pool

    Raises:
        DatabaseConnectionError: If the pool cannot be created
        DatabaseSchemaError: If the schema cannot be applied
    """
    if not db_url:
        raise ValueError("Database URL not provided")

    if create_database:
        await create_database_if_not_exists(db_url)

    try:
        pool = await asyncpg.create_pool(
            _strip_query(db_url),
            min_size=2,
            max_size=20,
            max_queries=10000,   # Reset connection after this many queries
            max_inactive_connection_lifetime=300.0,
            command_timeout=60.0,
            init=_init_connection,
            **_get_connection_kwargs(db_url)
        )
    except CONNECT_ERRORS:
        raise
    except Exception as e:
        logger.error(f"Database pool creation failed: {e}")
        raise DatabaseConnectionError(f"Failed to create database pool: {e}")

    try:
        await SchemaManager(pool).initialize()
    except Exception:
        await pool.close()
        raise

    return pool

async def close(pool: Optional[asyncpg.Pool]) -> None:
    """Close the database connection pool."""
    if pool:
        await pool.close()

# Export public interface
__all__ = [
    'init_db',
    'close',
    'create_database_if_not_exists',
    'DatabaseError',
    'DatabaseConnectionError',
    'DatabaseSchemaError'
]
