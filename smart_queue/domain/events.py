from __future__ import annotations

from smart_queue.bus import Event
from smart_queue.domain.tickets import Ticket


class QueueChanged(Event):
    """Base of every event that mutates the waiting set."""

    cause = "queue_changed"

    def details(self) -> dict:
        return {"cause": self.cause}


class TicketIssued(QueueChanged):
    cause = "ticket_issued"

    def __init__(self, ticket: Ticket) -> None:
        super().__init__()
        self.ticket = ticket

    def details(self) -> dict:
        return {"cause": self.cause, "ticketNumber": self.ticket.ticket_number}


class TicketServed(QueueChanged):
    cause = "ticket_served"

    def __init__(self, ticket: Ticket) -> None:
        super().__init__()
        self.ticket = ticket

    def details(self) -> dict:
        return {"cause": self.cause, "ticketNumber": self.ticket.ticket_number}


class QueueReset(QueueChanged):
    cause = "queue_reset"
