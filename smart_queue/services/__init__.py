from smart_queue.services import exceptions, handlers
from smart_queue.services.exceptions import (
    ResourceNotFound,
    SequencingFailed,
    ServiceException,
    StoreUnavailable,
    TicketNotFound,
    ValidationError,
)
from smart_queue.services.services import (
    call_next,
    compute_status,
    join_queue,
    list_waiting_queue,
    listen_queue_updates,
    next_ticket_number,
    reset_queue,
)

__all__ = [
    "exceptions",
    "handlers",
    "ResourceNotFound",
    "SequencingFailed",
    "ServiceException",
    "StoreUnavailable",
    "TicketNotFound",
    "ValidationError",
    "call_next",
    "compute_status",
    "join_queue",
    "list_waiting_queue",
    "listen_queue_updates",
    "next_ticket_number",
    "reset_queue",
]
