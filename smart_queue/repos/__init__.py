from smart_queue.repos import exceptions
from smart_queue.repos.repos import TicketCounterRepository, TicketRepository

__all__ = ["exceptions", "TicketCounterRepository", "TicketRepository"]
