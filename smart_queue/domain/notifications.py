from enum import StrEnum, auto, unique

from pydantic import BaseModel, ConfigDict, Field

QUEUE_CHANNEL = "queue_updated"


@unique
class _NotificationCodes(StrEnum):
    QUEUE_UPDATED = auto()


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: _NotificationCodes
    details: dict = Field(default_factory=dict)

    def json(self) -> str:  # type: ignore
        return super().model_dump_json()


class QueueUpdatedNotification(Notification):
    event: _NotificationCodes = _NotificationCodes.QUEUE_UPDATED
