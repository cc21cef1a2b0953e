import abc
import asyncio
import contextlib
import logging

logger = logging.getLogger(__name__)


class BackgroundTask(abc.ABC):
    @abc.abstractmethod
    async def stop(self) -> None:
        pass

    @abc.abstractmethod
    async def __call__(self) -> None:
        pass


@contextlib.asynccontextmanager
async def TaskExecutor(*background_tasks: BackgroundTask):
    running = [
        asyncio.create_task(t(), name=type(t).__name__) for t in background_tasks
    ]
    # let every task reach its first await before the body runs
    await asyncio.sleep(0.0)
    try:
        yield
    finally:
        for t in reversed(background_tasks):
            await t.stop()
        for task in running:
            await task
            logger.debug("background task %s finished", task.get_name())
