from datetime import datetime
from typing import NamedTuple, TypeAlias

TicketID: TypeAlias = str
TicketNumber: TypeAlias = int
ServiceType: TypeAlias = str


class IssuedNumber(NamedTuple):
    """A ticket number together with the store time it was handed out at."""

    number: TicketNumber
    issued_at: datetime
