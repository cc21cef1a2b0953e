import logging
from typing import AsyncIterator, List, Optional

from smart_queue import repos
from smart_queue.domain import events, notifications, types
from smart_queue.domain.queue import DEFAULT_AVERAGE_MINUTES_PER_TICKET, QueueStatus
from smart_queue.domain.tickets import Ticket, TicketStatus
from smart_queue.infra import channels
from smart_queue.services.exceptions import (
    SequencingFailed,
    StoreUnavailable,
    TicketNotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_SEQUENCING_RETRY_LIMIT = 5


async def next_ticket_number(
    counter_repo: repos.TicketCounterRepository,
) -> types.IssuedNumber:
    try:
        return await counter_repo.next_value()
    except repos.exceptions.RepositoryError as e:
        raise StoreUnavailable("cannot issue a ticket number") from e


async def join_queue(
    service_type: Optional[str],
    ticket_repo: repos.TicketRepository,
    counter_repo: repos.TicketCounterRepository,
    name: Optional[str] = None,
    urgency_type: Optional[str] = None,
    retry_limit: int = DEFAULT_SEQUENCING_RETRY_LIMIT,
) -> Ticket:
    if service_type is None or not service_type.strip():
        raise ValidationError("Service type required")

    for attempt in range(1, retry_limit + 1):
        issued = await next_ticket_number(counter_repo)
        ticket = Ticket(
            ticket_number=issued.number,
            name=name or Ticket.DEFAULT_NAME,
            urgency_type=urgency_type,
            service_type=service_type,
            created_at=issued.issued_at,
        )
        try:
            await ticket_repo.insert(ticket)
        except repos.exceptions.DuplicateTicketNumber:
            logger.warning(
                "ticket #%d already issued (attempt %d/%d)",
                ticket.ticket_number,
                attempt,
                retry_limit,
            )
            continue
        except repos.exceptions.RepositoryError as e:
            raise StoreUnavailable("cannot store the ticket") from e

        await events.TicketIssued(ticket).emit(eager=False)
        return ticket

    raise SequencingFailed(f"no free ticket number after {retry_limit} attempts")


async def list_waiting_queue(ticket_repo: repos.TicketRepository) -> List[Ticket]:
    try:
        return await ticket_repo.find_all_waiting_ordered_by_creation()
    except repos.exceptions.RepositoryError as e:
        raise StoreUnavailable("cannot read the waiting list") from e


async def compute_status(
    ticket_number: types.TicketNumber,
    ticket_repo: repos.TicketRepository,
    average_minutes_per_ticket: int = DEFAULT_AVERAGE_MINUTES_PER_TICKET,
) -> QueueStatus:
    try:
        ticket = await ticket_repo.find_by_ticket_number(ticket_number)
    except repos.exceptions.RepositoryError as e:
        raise StoreUnavailable(f"cannot read ticket #{ticket_number}") from e
    if ticket is None:
        raise TicketNotFound(f"ticket #{ticket_number} not found")

    waiting = await list_waiting_queue(ticket_repo)
    return QueueStatus.locate(ticket, waiting, average_minutes_per_ticket)


async def call_next(ticket_repo: repos.TicketRepository) -> Optional[Ticket]:
    """Serve the oldest waiting ticket, or return None when nobody waits.

    The status flip is conditional, so when another caller claims the same
    ticket first this one moves on to the next oldest.
    """
    try:
        while (ticket := await ticket_repo.find_oldest_waiting()) is not None:
            if await ticket_repo.update_status(ticket.id, TicketStatus.SERVED):
                break
            logger.info("ticket #%d was served concurrently", ticket.ticket_number)
    except repos.exceptions.RepositoryError as e:
        raise StoreUnavailable("cannot serve the next ticket") from e

    if ticket is None:
        return None

    ticket.serve()
    await events.TicketServed(ticket).emit(eager=False)
    return ticket


async def reset_queue(ticket_repo: repos.TicketRepository) -> int:
    try:
        deleted = await ticket_repo.delete_all()
    except repos.exceptions.RepositoryError as e:
        raise StoreUnavailable("cannot reset the queue") from e

    await events.QueueReset().emit(eager=False)
    return deleted


async def listen_queue_updates(
    listener: channels.ChannelListener,
) -> AsyncIterator[notifications.Notification]:
    async for n in listener.listen():
        yield n
