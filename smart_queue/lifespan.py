import logging
from contextlib import AsyncExitStack, asynccontextmanager
from functools import cache
from typing import List, Optional

import asyncpg
from fastapi import FastAPI
from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool

from smart_queue.bus import AbstractHandler, EventBus
from smart_queue.domain import events
from smart_queue.repos.repos import STORE_ERRORS
from smart_queue.services import handlers
from smart_queue.settings import AppSettings
from smart_queue.tasks import TaskExecutor

logger = logging.getLogger(__name__)


class AppLifespanResource:
    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = AppSettings() if settings is None else settings  # type: ignore
        self.db_pool: Optional[asyncpg.Pool] = None
        self.redis_pool: Optional[ConnectionPool] = None

    def create_redis(self) -> Optional[Redis]:
        if self.redis_pool is None:
            return None
        return Redis.from_pool(self.redis_pool)  # type: ignore

    async def open_db_pool(self) -> Optional[asyncpg.Pool]:
        if self.settings.DATABASE_URL is None:
            logger.error("DATABASE_DSN is not configured, ticket routes will fail")
            return None
        # min_size=0 connects lazily, so a store that comes back later is picked up
        pool = await asyncpg.create_pool(dsn=self.settings.DATABASE_URL, min_size=0)
        try:
            async with pool.acquire() as conn:
                await conn.execute("SELECT 1")
        except STORE_ERRORS as e:
            logger.error("ticket store unreachable at startup: %s", e)
        return pool

    def open_redis_pool(self) -> Optional[ConnectionPool]:
        if self.settings.REDIS_URL is None:
            logger.error("REDIS_DSN is not configured, queue updates won't be pushed")
            return None
        return ConnectionPool.from_url(self.settings.REDIS_URL)

    @asynccontextmanager
    async def __call__(self):
        async with AsyncExitStack() as stack:
            self.db_pool = await self.open_db_pool()
            if self.db_pool is not None:
                stack.push_async_callback(self.db_pool.close)
            self.redis_pool = self.open_redis_pool()
            if self.redis_pool is not None:
                stack.push_async_callback(self.redis_pool.aclose)

            await stack.enter_async_context(TaskExecutor(self.prepare_event_bus()))
            yield
        self.db_pool = None
        self.redis_pool = None

    def prepare_event_bus(self) -> EventBus:
        bus = EventBus()
        queue_changed: List[AbstractHandler] = [handlers.LogQueueChange()]
        if (redis := self.create_redis()) is not None:
            queue_changed.append(handlers.NotifyQueueUpdated(redis))
        return bus.subscribe(events.QueueChanged, *queue_changed)


@cache
def load_resource():
    return AppLifespanResource()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_resource = load_resource()
    async with app_resource():
        yield
