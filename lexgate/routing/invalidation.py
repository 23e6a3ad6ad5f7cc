# lexgate/routing/invalidation.py
"""Redis pub/sub fan-out of tenant connection invalidations.

A status or location change handled by one gateway process evicts the
cached connection locally and publishes the tenant id; every process
listening on the channel evicts its own cached connection for that tenant.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis

from .connection_cache import ConnectionCache
from ..settings import settings as lexgate_settings

logger = logging.getLogger(__name__)


class RedisInvalidationBroadcaster:
    """Publishes and consumes tenant invalidation messages on one Redis channel."""

    def __init__(
        self,
        redis_client: Optional[aioredis.Redis] = None,
        channel: Optional[str] = None,
    ):
        """Pass redis_client for DI/testing; otherwise connect() builds one from settings."""
        self.redis = redis_client
        self.channel = channel or lexgate_settings.redis_invalidation_channel
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish the Redis connection. Failure degrades to local-only invalidation."""
        if self._connected:
            return
        connection_params = {
            "host": lexgate_settings.redis_host,
            "port": lexgate_settings.redis_port,
            "db": lexgate_settings.redis_db,
            "decode_responses": True,
            "socket_connect_timeout": 5,
        }
        if lexgate_settings.redis_password:
            connection_params["password"] = lexgate_settings.redis_password

        logger.info(
            f"Connecting invalidation broadcaster to Redis at {connection_params['host']}:"
            f"{connection_params['port']}, DB: {connection_params['db']}"
        )
        try:
            self.redis = aioredis.Redis(**connection_params)
            await self.redis.ping()
            self._connected = True
            logger.info(f"Invalidation broadcaster connected (channel '{self.channel}').")
        except (aioredis.ConnectionError, aioredis.TimeoutError) as e:
            logger.warning(f"Invalidation broadcaster could not reach Redis: {e}. Invalidation stays local.")
            self.redis = None
            self._connected = False

    async def disconnect(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Invalidation broadcaster disconnected.")
        self.redis = None
        self._connected = False

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def publish(self, tenant_id: str) -> bool:
        """
        Announce that cached connections for tenant_id must be dropped.

        Returns:
            True if published, False if Redis is unavailable or the publish failed
        """
        if not self.is_available():
            logger.debug(f"Redis not available, skipping invalidation broadcast for T:{tenant_id}")
            return False
        try:
            receivers = await self.redis.publish(self.channel, tenant_id)
        except aioredis.RedisError as e:
            logger.error(f"Failed to broadcast invalidation for T:{tenant_id}: {e}", exc_info=True)
            return False
        logger.info(f"Broadcast invalidation for T:{tenant_id} to {receivers} subscriber(s).")
        return True

    async def listen(self, cache: ConnectionCache) -> None:
        """
        Invalidate cache entries for every tenant id received on the channel.

        Runs until cancelled; intended to be run as a background task.
        """
        if not self.is_available():
            logger.warning("Invalidation listener not started: Redis unavailable.")
            return
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info(f"Listening for tenant invalidations on '{self.channel}'.")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                tenant_id = message.get("data")
                if isinstance(tenant_id, bytes):
                    tenant_id = tenant_id.decode("utf-8")
                if not tenant_id:
                    continue
                await cache.invalidate(tenant_id)
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
