import logging

from redis.asyncio import Redis

from smart_queue.bus import AbstractHandler
from smart_queue.domain import events, notifications
from smart_queue.infra import channels

logger = logging.getLogger(__name__)


class NotifyQueueUpdated(AbstractHandler):
    def __init__(self, redis: Redis) -> None:
        self.r = redis

    async def __call__(self, event: events.QueueChanged):
        n = notifications.QueueUpdatedNotification(details=event.details())
        receivers = await channels.send_notification(self.r, n)
        logger.debug("queue_updated delivered to %d subscriber(s)", receivers)


class LogQueueChange(AbstractHandler):
    async def __call__(self, event: events.QueueChanged):
        logger.info("queue changed: %s", event.details())
