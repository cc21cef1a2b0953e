from datetime import UTC, datetime
from enum import StrEnum, unique
from typing import ClassVar, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from smart_queue.domain import exceptions
from smart_queue.domain.types import ServiceType, TicketID, TicketNumber


def create_ticket_id() -> TicketID:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


@unique
class TicketStatus(StrEnum):
    WAITING = "waiting"
    SERVED = "served"


class Ticket(BaseModel):
    DEFAULT_NAME: ClassVar = "Guest"
    model_config = ConfigDict(validate_assignment=True)

    id: TicketID = Field(default_factory=create_ticket_id, frozen=True)
    ticket_number: TicketNumber = Field(frozen=True, gt=0)
    name: str = DEFAULT_NAME
    urgency_type: Optional[str] = None
    service_type: ServiceType = Field(frozen=True)
    status: TicketStatus = TicketStatus.WAITING
    created_at: datetime = Field(default_factory=utcnow, frozen=True)

    @property
    def waiting(self) -> bool:
        return self.status == TicketStatus.WAITING

    def serve(self) -> None:
        if not self.waiting:
            raise exceptions.TicketAlreadyServed(f"ticket #{self.ticket_number}")
        self.status = TicketStatus.SERVED

    def sort_key(self) -> tuple[datetime, TicketNumber]:
        # created_at ties are broken by issuance order
        return (self.created_at, self.ticket_number)

    def __hash__(self) -> int:
        return hash(self.id)
