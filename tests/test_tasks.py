import asyncio

from smart_queue.bus import Event, EventBus
from smart_queue.domain import events
from smart_queue.tasks import BackgroundTask, TaskExecutor
from tests.conftest import RecordingHandler


class Ticker(BackgroundTask):
    def __init__(self) -> None:
        self.ticks = 0
        self.stopped = asyncio.Event()

    async def stop(self) -> None:
        self.stopped.set()

    async def __call__(self) -> None:
        while not self.stopped.is_set():
            self.ticks += 1
            await asyncio.sleep(0.0)


async def test_bus_run_by_task_executor(bus: EventBus):
    async with TaskExecutor(bus):
        assert Event._global_bus is bus
    assert Event._global_bus is None


async def test_pending_events_are_handled_before_exit(
    bus: EventBus, recorder: RecordingHandler
):
    async with TaskExecutor(bus):
        for _ in range(3):
            await events.QueueReset().emit(eager=False)

    assert len(recorder.received) == 3


async def test_tasks_are_stopped_on_exit(bus: EventBus):
    ticker = Ticker()
    async with TaskExecutor(bus, ticker):
        while ticker.ticks < 3:
            await asyncio.sleep(0.0)

    assert ticker.stopped.is_set()
    assert len(bus) == 0
