import logging

from tortoise import Tortoise, run_async

from smart_queue.settings import AppSettings

logger = logging.getLogger(__name__)


async def init(db_url: str):
    await Tortoise.init(db_url=db_url, modules={"models": ["db.models"]})
    await Tortoise.generate_schemas(safe=True)


if __name__ == "__main__":
    settings = AppSettings()  # type: ignore
    if settings.DATABASE_URL is None:
        raise SystemExit("DATABASE_DSN is not configured")
    run_async(init(settings.DATABASE_URL))
