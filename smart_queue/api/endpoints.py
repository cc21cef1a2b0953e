import asyncio
import contextlib
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.routing import APIRouter
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from redis.asyncio import Redis

from smart_queue import services
from smart_queue.api import depends
from smart_queue.domain.queue import QueueStatus
from smart_queue.domain.tickets import Ticket
from smart_queue.infra import channels

logger = logging.getLogger(__name__)

router = APIRouter()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorMessage(BaseModel):
    error: str


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        jsonable_encoder(ErrorMessage(error=message)), status_code=status_code
    )


class TicketRecord(CamelModel):
    id: str
    ticket_number: int
    name: str
    type: Optional[str] = None
    service_type: str
    status: str
    created_at: datetime

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketRecord":
        return cls(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            name=ticket.name,
            type=ticket.urgency_type,
            service_type=ticket.service_type,
            status=ticket.status.value,
            created_at=ticket.created_at,
        )


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def home():
    return "Smart Queue backend is running"


class JoinPayload(CamelModel):
    name: Optional[str] = None
    type: Optional[str] = None
    service_type: Optional[str] = None


@router.post("/api/join", response_model=TicketRecord)
async def join_queue(
    settings: depends.AppSettingsDep,
    ticket_repo: depends.TicketRepositoryDep,
    counter_repo: depends.TicketCounterRepositoryDep,
    payload: JoinPayload = JoinPayload(),
):
    try:
        ticket = await services.join_queue(
            payload.service_type,
            ticket_repo,
            counter_repo,
            name=payload.name,
            urgency_type=payload.type,
            retry_limit=settings.SEQUENCING_RETRY_LIMIT,
        )
        return JSONResponse(jsonable_encoder(TicketRecord.from_ticket(ticket)))
    except services.ValidationError as e:
        return error_response(str(e), status.HTTP_400_BAD_REQUEST)
    except (services.StoreUnavailable, services.SequencingFailed) as e:
        logger.exception(e)
        return error_response(
            "Failed to join queue", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class TicketStatusInfo(CamelModel):
    id: str
    ticket_number: int
    status: str
    name: str
    type: Optional[str] = None
    service_type: str
    position: Optional[int]
    queue_length: int
    estimated_wait_time: str

    @classmethod
    def from_status(cls, s: QueueStatus) -> "TicketStatusInfo":
        return cls(
            id=s.ticket.id,
            ticket_number=s.ticket.ticket_number,
            status=s.ticket.status.value,
            name=s.ticket.name,
            type=s.ticket.urgency_type,
            service_type=s.ticket.service_type,
            position=s.position,
            queue_length=s.queue_length,
            estimated_wait_time=s.estimated_wait_time,
        )


@router.get("/api/status/{ticket_number}", response_model=TicketStatusInfo)
async def get_ticket_status(
    ticket_number: int,
    settings: depends.AppSettingsDep,
    ticket_repo: depends.TicketRepositoryDep,
):
    try:
        queue_status = await services.compute_status(
            ticket_number, ticket_repo, settings.AVERAGE_MINUTES_PER_TICKET
        )
        return JSONResponse(
            jsonable_encoder(TicketStatusInfo.from_status(queue_status))
        )
    except services.TicketNotFound:
        return error_response("Ticket not found", status.HTTP_404_NOT_FOUND)
    except services.StoreUnavailable as e:
        logger.exception(e)
        return error_response(
            "Failed to get status", status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class Message(BaseModel):
    message: str


class ServedInfo(Message):
    served: TicketRecord


@router.post("/api/admin/next", response_model=ServedInfo | Message)
async def call_next(ticket_repo: depends.TicketRepositoryDep):
    try:
        ticket = await services.call_next(ticket_repo)
    except services.StoreUnavailable as e:
        logger.exception(e)
        return error_response(
            "Error calling next", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    if ticket is None:
        return JSONResponse(jsonable_encoder(Message(message="Queue empty")))
    return JSONResponse(
        jsonable_encoder(
            ServedInfo(
                served=TicketRecord.from_ticket(ticket),
                message=f"Ticket #{ticket.ticket_number} served successfully",
            )
        )
    )


@router.delete("/api/admin/reset", response_model=Message)
async def reset_queue(ticket_repo: depends.TicketRepositoryDep):
    try:
        deleted = await services.reset_queue(ticket_repo)
    except services.StoreUnavailable as e:
        logger.exception(e)
        return error_response(
            "Failed to reset queue", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    logger.info("queue reset, %d ticket(s) removed", deleted)
    return JSONResponse(
        jsonable_encoder(Message(message="Queue cleared successfully"))
    )


class WaitingQueue(BaseModel):
    queue: List[TicketRecord] = Field(default_factory=list)


@router.get("/api/queue", response_model=WaitingQueue)
async def get_waiting_queue(ticket_repo: depends.TicketRepositoryDep):
    try:
        waiting = await services.list_waiting_queue(ticket_repo)
    except services.StoreUnavailable as e:
        logger.exception(e)
        return error_response(
            "Failed to load queue", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return JSONResponse(
        jsonable_encoder(
            WaitingQueue(queue=[TicketRecord.from_ticket(t) for t in waiting])
        )
    )


async def _forward_queue_updates(websocket: WebSocket, redis: Redis) -> None:
    listener = channels.ChannelListener(redis)
    async for n in services.listen_queue_updates(listener):
        await websocket.send_text(n.json())


@router.websocket("/ws")
async def queue_updates(
    websocket: WebSocket, resource: depends.AppLifespanResourceDep
):
    await websocket.accept()
    redis = resource.create_redis()
    if redis is None:
        await websocket.close(status.WS_1011_INTERNAL_ERROR)
        return

    forwarding = asyncio.create_task(_forward_queue_updates(websocket, redis))
    receiving = asyncio.create_task(websocket.receive())
    try:
        # incoming frames are ignored, the socket lives until the client leaves
        while True:
            done, _ = await asyncio.wait(
                {forwarding, receiving}, return_when=asyncio.FIRST_COMPLETED
            )
            if forwarding in done:
                forwarding.result()
                break
            if receiving.result()["type"] == "websocket.disconnect":
                break
            receiving = asyncio.create_task(websocket.receive())
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception(e)
        with contextlib.suppress(RuntimeError):
            await websocket.close(status.WS_1011_INTERNAL_ERROR)
    finally:
        for task in (forwarding, receiving):
            if not task.done():
                task.cancel()
        await asyncio.gather(forwarding, receiving, return_exceptions=True)
