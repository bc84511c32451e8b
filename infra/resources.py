"""Infrastructure resources: DB, Redis, IP database.

This module is part of the infra layer and must not import from application features.
"""
import ipaddress
from typing import Any, Dict, Optional

import maxminddb
import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker


class DatabaseResource:
    """Database resource for dependency injection."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = None
        self.session_factory = None

    async def init(self):
        """Initialize database connection."""
        self.engine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        return self

    def get_session(self) -> AsyncSession:
        """Get database session (synchronous accessor)."""
        if self.session_factory is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self.session_factory()

    async def shutdown(self):
        """Shutdown database connection."""
        if self.engine:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None


class RedisResource:
    """Redis resource for dependency injection."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.client: Optional[aioredis.Redis] = None

    async def init(self):
        """Initialize Redis client (connections are opened lazily by the pool)."""
        if self.client is None:
            self.client = aioredis.from_url(self.redis_url, decode_responses=True)
        return self

    async def connect(self):
        """Verify the Redis server is reachable."""
        if self.client is None:
            raise RuntimeError("Redis not initialized. Call init() first.")
        await self.client.ping()

    async def disconnect(self):
        """Disconnect from Redis."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None


class IPDatabaseResource:
    """Read-only MaxMind IP-range database.

    The reader memory-maps the file once and is safe to share between
    concurrent requests.
    """

    def __init__(self, database_path: str):
        self.database_path = database_path
        self.reader: Optional[maxminddb.Reader] = None

    async def init(self):
        """Open the database file."""
        if self.reader is None:
            self.reader = maxminddb.open_database(self.database_path)
        return self

    def lookup(self, ip: str) -> Optional[Dict[str, Any]]:
        """Return the raw record for ``ip`` or None when no range matches.

        Raises ValueError when ``ip`` is not a valid IPv4/IPv6 address.
        """
        if self.reader is None:
            raise RuntimeError("IP database not initialized. Call init() first.")
        address = ipaddress.ip_address(ip.strip())
        if address.is_private or address.is_loopback or address.is_reserved:
            return None
        return self.reader.get(address)

    async def shutdown(self):
        """Close the database file."""
        if self.reader is not None:
            self.reader.close()
            self.reader = None
        return self
