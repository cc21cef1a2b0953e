from typing import Annotated, AsyncGenerator

from asyncpg import Pool
from asyncpg.pool import PoolConnectionProxy
from fastapi import Depends

from smart_queue import repos, services
from smart_queue.lifespan import AppLifespanResource, load_resource
from smart_queue.repos.repos import STORE_ERRORS
from smart_queue.settings import AppSettings

AppLifespanResourceDep = Annotated[AppLifespanResource, Depends(load_resource)]


async def load_settings(resource: AppLifespanResourceDep) -> AppSettings:
    return resource.settings


AppSettingsDep = Annotated[AppSettings, Depends(load_settings)]


async def get_db_pool(
    resource: AppLifespanResourceDep,
) -> Pool:
    if resource.db_pool is None:
        raise services.StoreUnavailable("ticket store is not configured")
    return resource.db_pool


DBConnectionPoolDep = Annotated[Pool, Depends(get_db_pool)]


async def get_db_connection(
    pool: DBConnectionPoolDep,
) -> AsyncGenerator[PoolConnectionProxy, None]:
    try:
        conn = await pool.acquire()
    except STORE_ERRORS as e:
        raise services.StoreUnavailable("ticket store unreachable") from e
    try:
        yield conn
    finally:
        await pool.release(conn)


DBConnectionDep = Annotated[PoolConnectionProxy, Depends(get_db_connection)]


async def create_ticket_repository(
    conn: DBConnectionDep,
) -> repos.TicketRepository:
    return repos.TicketRepository(conn)


TicketRepositoryDep = Annotated[
    repos.TicketRepository, Depends(create_ticket_repository)
]


async def create_counter_repository(
    conn: DBConnectionDep,
) -> repos.TicketCounterRepository:
    return repos.TicketCounterRepository(conn)


TicketCounterRepositoryDep = Annotated[
    repos.TicketCounterRepository, Depends(create_counter_repository)
]
