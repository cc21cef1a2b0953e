import asyncio
import socket
from datetime import UTC, datetime, timedelta
from functools import cache
from typing import Any, AsyncGenerator, Awaitable, Callable, Generator, List
from unittest.mock import patch

import asyncpg
import pytest
import uvicorn
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from redis.asyncio import ConnectionPool, Redis
from testcontainers.postgres import PostgresContainer
from testcontainers.redis import RedisContainer
from tortoise import Tortoise
from uvicorn.config import Config

from smart_queue import repos, settings
from smart_queue.bus import AbstractHandler, Event, EventBus
from smart_queue.domain import events
from smart_queue.domain.tickets import Ticket, TicketStatus
from smart_queue.lifespan import AppLifespanResource, load_resource
from smart_queue.main import app as _app
from smart_queue.tasks import TaskExecutor


@pytest.fixture(autouse=True)
def detached_bus():
    yield
    Event._global_bus = None


@pytest.fixture(scope="session")
def db_container() -> Generator[PostgresContainer, Any, None]:
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture
async def db_url(db_container: PostgresContainer) -> AsyncGenerator[str, None]:
    host = db_container.get_container_host_ip()
    port = db_container.get_exposed_port(5432)
    db_url = f"postgres://test:test@{host}:{port}/test"
    await Tortoise.init(db_url=db_url, modules={"models": ["db.models"]})
    await Tortoise.generate_schemas(safe=True)
    await Tortoise.close_connections()

    yield db_url
    conn: asyncpg.Connection = await asyncpg.connect(db_url)
    await conn.execute("TRUNCATE public.ticket, public.ticket_counter")
    await conn.close()


@pytest.fixture
async def db_pool(db_url: str):
    async with asyncpg.create_pool(db_url) as pool:
        yield pool


@pytest.fixture
async def db_conn(db_url: str) -> AsyncGenerator[asyncpg.Connection, Any]:
    conn: asyncpg.Connection = await asyncpg.connect(db_url)
    yield conn
    await conn.close()


@pytest.fixture(scope="session")
def redis_container() -> Generator[RedisContainer, Any, None]:
    with RedisContainer() as redis:
        yield redis


@pytest.fixture
async def redis_url(redis_container: RedisContainer):
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    redis_url = f"redis://{host}:{port}?decode_responses=True"
    r = Redis.from_url(redis_url)
    assert await r.ping()
    yield redis_url
    await r.flushall()
    await r.aclose()  # type: ignore


@pytest.fixture
async def redis_pool(redis_url: str):
    pool = ConnectionPool.from_url(redis_url)
    yield pool
    await pool.aclose()  # type: ignore


@pytest.fixture
async def redis_conn(
    redis_pool: ConnectionPool,
) -> AsyncGenerator[Redis, Any]:
    r = Redis(connection_pool=redis_pool)
    yield r


@pytest.fixture
def app_setting(db_url: str, redis_url: str):
    return settings.AppSettings(
        DATABASE_DSN=db_url,  # type: ignore
        REDIS_DSN=redis_url,  # type: ignore
    )


@pytest.fixture
async def mock_app(
    app_setting: settings.AppSettings,
) -> AsyncGenerator[FastAPI, Any]:
    @cache
    def mock_load_resource():
        return AppLifespanResource(settings=app_setting)

    _app.dependency_overrides[load_resource] = mock_load_resource
    with patch("smart_queue.lifespan.load_resource", mock_load_resource):
        async with LifespanManager(_app) as manager:
            yield manager.app  # type: ignore
    mock_load_resource.cache_clear()
    _app.dependency_overrides = {}


@pytest.fixture
async def mock_app_without_lifespan(
    app_setting: settings.AppSettings,
) -> AsyncGenerator[FastAPI, Any]:
    @cache
    def mock_load_resource():
        return AppLifespanResource(settings=app_setting)

    _app.dependency_overrides[load_resource] = mock_load_resource
    with patch("smart_queue.lifespan.load_resource", mock_load_resource):
        yield _app
    mock_load_resource.cache_clear()
    _app.dependency_overrides = {}


@pytest.fixture
async def client(mock_app: FastAPI) -> AsyncGenerator[AsyncClient, Any]:
    async with AsyncClient(
        transport=ASGITransport(app=mock_app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def ticket_repo(db_conn: asyncpg.Connection):
    return repos.TicketRepository(db_conn)


@pytest.fixture
def counter_repo(db_conn: asyncpg.Connection):
    return repos.TicketCounterRepository(db_conn)


TicketFactory = Callable[..., Awaitable[Ticket]]


@pytest.fixture
def make_ticket(db_conn: asyncpg.Connection) -> TicketFactory:
    """Insert a ticket row directly, bypassing the sequencer."""
    start = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)

    async def factory(
        ticket_number: int,
        minutes: int = 0,
        status: TicketStatus = TicketStatus.WAITING,
        service_type: str = "Bank",
    ) -> Ticket:
        ticket = Ticket(
            ticket_number=ticket_number,
            service_type=service_type,
            status=status,
            created_at=start + timedelta(minutes=minutes),
        )
        await db_conn.execute(
            """INSERT INTO public.ticket(id, ticket_number, name, urgency_type, service_type, status, created_at)
            VALUES($1, $2, $3, $4, $5, $6, $7)""",
            ticket.id,
            ticket.ticket_number,
            ticket.name,
            ticket.urgency_type,
            ticket.service_type,
            ticket.status.value,
            ticket.created_at,
        )
        return ticket

    return factory


class RecordingHandler(AbstractHandler):
    def __init__(self) -> None:
        self.received: List[events.QueueChanged] = []

    async def __call__(self, event: events.QueueChanged):
        self.received.append(event)


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def bus(recorder: RecordingHandler) -> EventBus:
    return EventBus().subscribe(events.QueueChanged, recorder)


@pytest.fixture
async def bg_task(bus: EventBus):
    async with TaskExecutor(bus):
        yield bus


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer(uvicorn.Server):
    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.started_event = asyncio.Event()

    async def startup(self, sockets: List[socket.socket] | None = None):
        await super().startup(sockets)
        self.started_event.set()


@pytest.fixture
async def run_app(mock_app_without_lifespan: FastAPI) -> AsyncGenerator[str, Any]:
    config = uvicorn.Config(
        mock_app_without_lifespan, host="127.0.0.1", port=free_port(), lifespan="on"
    )
    server = TestServer(config)
    task = asyncio.create_task(server.serve())
    await server.started_event.wait()
    yield f"ws://{config.host}:{config.port}"
    server.should_exit = True
    await task
