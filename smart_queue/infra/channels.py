from typing import AsyncIterator

from redis.asyncio import Redis

from smart_queue.domain import notifications


async def send_notification(
    redis: Redis,
    n: notifications.Notification,
    channel: str = notifications.QUEUE_CHANNEL,
) -> int:
    """Publish ``n`` and return how many subscribers received it.

    Redis drops the message when nobody is subscribed; there is no backlog.
    """
    return await redis.publish(channel, n.json())


class ChannelListener:
    def __init__(
        self, redis: Redis, channel: str = notifications.QUEUE_CHANNEL
    ) -> None:
        self.r = redis
        self.channel = channel

    async def listen(self) -> AsyncIterator[notifications.Notification]:
        async with self.r.pubsub() as pubsub:
            await pubsub.subscribe(self.channel)
            while True:
                msg = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=None,  # type: ignore
                )
                if msg is None or msg["type"] != "message":
                    continue
                yield notifications.Notification.model_validate_json(msg["data"])
