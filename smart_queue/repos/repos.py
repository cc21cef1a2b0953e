from typing import List, Optional

from asyncpg import Connection, Record
from asyncpg.exceptions import InterfaceError, PostgresError, UniqueViolationError
from asyncpg.pool import PoolConnectionProxy

from smart_queue.domain import types
from smart_queue.domain.tickets import Ticket, TicketStatus
from smart_queue.repos import exceptions

STORE_ERRORS = (PostgresError, InterfaceError, OSError)

_TICKET_COLUMNS = (
    "id, ticket_number, name, urgency_type, service_type, status, created_at"
)
_WAITING_ORDER = "ORDER BY created_at, ticket_number"
# ticket_number is a BIGINT column
MAX_TICKET_NUMBER = 2**63 - 1


def _to_ticket(record: Record) -> Ticket:
    return Ticket(**dict(record))


def _affected_rows(command_status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 1" or "DELETE 3"
    return int(command_status.split()[-1])


class TicketRepository:
    def __init__(self, conn: Connection | PoolConnectionProxy) -> None:
        self.conn = conn

    async def insert(self, ticket: Ticket) -> None:
        try:
            await self.conn.execute(
                f"""INSERT INTO public.ticket({_TICKET_COLUMNS})
                VALUES($1, $2, $3, $4, $5, $6, $7)""",
                ticket.id,
                ticket.ticket_number,
                ticket.name,
                ticket.urgency_type,
                ticket.service_type,
                ticket.status.value,
                ticket.created_at,
            )
        except UniqueViolationError as e:
            raise exceptions.DuplicateTicketNumber(ticket.ticket_number) from e
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e

    async def find_by_ticket_number(
        self, ticket_number: types.TicketNumber
    ) -> Optional[Ticket]:
        if not 0 < ticket_number <= MAX_TICKET_NUMBER:
            return None
        try:
            record = await self.conn.fetchrow(
                f"SELECT {_TICKET_COLUMNS} FROM public.ticket WHERE ticket_number=$1",
                ticket_number,
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return _to_ticket(record) if record is not None else None

    async def find_all_waiting_ordered_by_creation(self) -> List[Ticket]:
        try:
            records = await self.conn.fetch(
                f"SELECT {_TICKET_COLUMNS} FROM public.ticket WHERE status=$1 {_WAITING_ORDER}",
                TicketStatus.WAITING.value,
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return [_to_ticket(r) for r in records]

    async def find_oldest_waiting(self) -> Optional[Ticket]:
        try:
            record = await self.conn.fetchrow(
                f"SELECT {_TICKET_COLUMNS} FROM public.ticket WHERE status=$1 {_WAITING_ORDER} LIMIT 1",
                TicketStatus.WAITING.value,
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return _to_ticket(record) if record is not None else None

    async def update_status(
        self,
        id: types.TicketID,
        new_status: TicketStatus,
        expected: TicketStatus = TicketStatus.WAITING,
    ) -> bool:
        """Flip ``id`` to ``new_status`` only if it still holds ``expected``.

        Returns whether this call changed the row, so concurrent callers can
        tell which of them won.
        """
        try:
            result = await self.conn.execute(
                "UPDATE public.ticket SET status=$2 WHERE id=$1 AND status=$3",
                id,
                new_status.value,
                expected.value,
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return _affected_rows(result) == 1

    async def delete_all(self) -> int:
        try:
            async with self.conn.transaction():
                result = await self.conn.execute("DELETE FROM public.ticket")
                await self.conn.execute("DELETE FROM public.ticket_counter")
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return _affected_rows(result)


class TicketCounterRepository:
    SEQUENCE: str = "ticket"

    def __init__(self, conn: Connection | PoolConnectionProxy) -> None:
        self.conn = conn

    async def next_value(self) -> types.IssuedNumber:
        """Atomically increment the counter and return the new value.

        A missing counter row is seeded from the highest stored ticket number,
        so an empty store starts at 1. The issue time is read while the
        counter row is locked, so it grows with the number.
        """
        try:
            record = await self.conn.fetchrow(
                """INSERT INTO public.ticket_counter AS c (name, value)
                SELECT $1, COALESCE(MAX(ticket_number), 0) + 1 FROM public.ticket
                ON CONFLICT (name) DO UPDATE SET value = c.value + 1
                RETURNING c.value, clock_timestamp() AS issued_at""",
                self.SEQUENCE,
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return types.IssuedNumber(record["value"], record["issued_at"])

    async def current_value(self) -> types.TicketNumber:
        try:
            value = await self.conn.fetchval(
                "SELECT value FROM public.ticket_counter WHERE name=$1", self.SEQUENCE
            )
        except STORE_ERRORS as e:
            raise exceptions.RepositoryError(e) from e
        return value if value is not None else 0
