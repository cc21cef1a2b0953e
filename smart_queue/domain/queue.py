"""Position and wait-time computation over the waiting list.

The waiting list is the ordered subset of tickets still ``waiting``, oldest
first. A ticket's position is its 1-based rank in that list; the estimated
wait is a plain linear model, ``position * average_minutes_per_ticket``.
"""

from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from smart_queue.domain.tickets import Ticket

DEFAULT_AVERAGE_MINUTES_PER_TICKET = 2


def waiting_list(tickets: Iterable[Ticket]) -> List[Ticket]:
    return sorted((t for t in tickets if t.waiting), key=Ticket.sort_key)


class QueueStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticket: Ticket
    position: Optional[int]
    queue_length: int
    estimated_wait_minutes: int

    @classmethod
    def locate(
        cls,
        ticket: Ticket,
        waiting: List[Ticket],
        average_minutes_per_ticket: int = DEFAULT_AVERAGE_MINUTES_PER_TICKET,
    ) -> "QueueStatus":
        """Build the status of ``ticket`` against an already ordered waiting list.

        A ticket missing from ``waiting`` (already served) has no position and
        nothing left to wait for.
        """
        position = None
        for index, candidate in enumerate(waiting):
            if candidate.ticket_number == ticket.ticket_number:
                position = index + 1
                break

        return cls(
            ticket=ticket,
            position=position,
            queue_length=len(waiting),
            estimated_wait_minutes=(
                position * average_minutes_per_ticket if position is not None else 0
            ),
        )

    @property
    def estimated_wait_time(self) -> str:
        return f"{self.estimated_wait_minutes} minutes"
