"""
FastAPI application exposing the ticket engine.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fixdesk.api.schemas import (
    AutoAssignment,
    ManualAssignment,
    SpamFlag,
    SpamUnflag,
    StatusUpdate,
    TicketCreate,
)
from fixdesk.client.ticket_engine import TicketEngine
from fixdesk.domains import (
    AssignmentCandidate,
    AssignmentResult,
    CurrentTicketsReport,
    Notification,
    SpamReport,
    TechnicianDashboard,
    Ticket,
    TicketStats,
)
from fixdesk.domains.errors import ConflictError, NotFoundError, ValidationError
from fixdesk.services.ticket import normalize_images

logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5

tickets_router = APIRouter(prefix="/tickets", tags=["tickets"])
notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_engine(request: Request) -> TicketEngine:
    return request.app.state.engine


async def watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    """Set cancel_event once the client goes away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected during ticket intake")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


@tickets_router.post("", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreate,
    request: Request,
    response: Response,
    engine: TicketEngine = Depends(get_engine),
) -> Dict[str, Any]:
    draft = payload.to_draft(normalize_images(payload.images, payload.image_url))

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
    try:
        outcome = await engine.submit_ticket(
            draft, auto_assign=payload.auto_assign, cancel_event=cancel_event
        )
    finally:
        watcher.cancel()

    # No new ticket survives a merge or a spam flag.
    if outcome.status != "created":
        response.status_code = status.HTTP_200_OK
    return {"message": outcome.message, **outcome.model_dump(mode="json")}


@tickets_router.get("", response_model=List[Ticket])
def list_tickets(
    community_id: Optional[str] = None,
    reported_by: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    assigned_to: Optional[str] = None,
    limit: int = 0,
    engine: TicketEngine = Depends(get_engine),
):
    return engine.list_tickets(
        community_id=community_id,
        reported_by=reported_by,
        status=status,
        category=category,
        assigned_to=assigned_to,
        limit=limit,
    )


@tickets_router.get("/stats", response_model=TicketStats)
def get_stats(
    community_id: Optional[str] = None,
    technician_id: Optional[str] = None,
    engine: TicketEngine = Depends(get_engine),
):
    return engine.get_stats(community_id, technician_id)


@tickets_router.get("/spam", response_model=SpamReport)
def get_spam_tickets(
    community_id: Optional[str] = None,
    limit: int = 50,
    engine: TicketEngine = Depends(get_engine),
):
    return engine.get_spam_tickets(community_id, limit)


@tickets_router.get("/technician/{technician_id}", response_model=List[Ticket])
def get_technician_tickets(
    technician_id: str,
    status: Optional[str] = None,
    engine: TicketEngine = Depends(get_engine),
):
    return engine.get_technician_tickets(technician_id, status)


@tickets_router.get(
    "/technician/{technician_id}/current", response_model=CurrentTicketsReport
)
def get_current_tickets(technician_id: str, engine: TicketEngine = Depends(get_engine)):
    return engine.get_current_tickets(technician_id)


@tickets_router.get(
    "/technician/{technician_id}/dashboard", response_model=TechnicianDashboard
)
def get_dashboard(technician_id: str, engine: TicketEngine = Depends(get_engine)):
    return engine.get_dashboard(technician_id)


@tickets_router.get("/{ticket_id}", response_model=Ticket)
def get_ticket(ticket_id: str, engine: TicketEngine = Depends(get_engine)):
    return engine.get_ticket(ticket_id)


@tickets_router.put("/{ticket_id}", response_model=Ticket)
def update_ticket(
    ticket_id: str,
    payload: Dict[str, Any] = Body(...),
    engine: TicketEngine = Depends(get_engine),
):
    updates = dict(payload)
    updated_by = updates.pop("updated_by", None)
    if not updated_by:
        raise ValidationError("updated_by is required")
    return engine.update_ticket(ticket_id, updates, updated_by)


@tickets_router.patch("/{ticket_id}/status", response_model=Ticket)
async def update_status(
    ticket_id: str, payload: StatusUpdate, engine: TicketEngine = Depends(get_engine)
):
    return await engine.update_status(ticket_id, payload.status, payload.updated_by)


@tickets_router.patch("/{ticket_id}/assign", response_model=Ticket)
async def assign_ticket(
    ticket_id: str, payload: ManualAssignment, engine: TicketEngine = Depends(get_engine)
):
    return await engine.assign_ticket(ticket_id, payload.technician_id, payload.assigned_by)


@tickets_router.post("/{ticket_id}/auto-assign", response_model=AssignmentResult)
async def auto_assign(
    ticket_id: str,
    payload: Optional[AutoAssignment] = None,
    engine: TicketEngine = Depends(get_engine),
):
    assigned_by = payload.assigned_by if payload else "system"
    return await engine.auto_assign(ticket_id, assigned_by)


@tickets_router.get(
    "/{ticket_id}/available-technicians", response_model=List[AssignmentCandidate]
)
def get_available_technicians(ticket_id: str, engine: TicketEngine = Depends(get_engine)):
    return engine.get_available_technicians(ticket_id)


@tickets_router.post("/{ticket_id}/mark-spam", response_model=Ticket)
async def mark_spam(
    ticket_id: str, payload: SpamFlag, engine: TicketEngine = Depends(get_engine)
):
    return await engine.mark_spam(
        ticket_id, payload.marked_by, reason=payload.reason, confidence=payload.confidence
    )


@tickets_router.post("/{ticket_id}/unmark-spam", response_model=Ticket)
async def unmark_spam(
    ticket_id: str, payload: SpamUnflag, engine: TicketEngine = Depends(get_engine)
):
    return await engine.unmark_spam(ticket_id, payload.unmarked_by, payload.target_status)


@notifications_router.get("/{user_id}", response_model=List[Notification])
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
    engine: TicketEngine = Depends(get_engine),
):
    return await engine.list_notifications(user_id, unread_only=unread_only, limit=limit)


@notifications_router.patch("/{user_id}/read-all")
async def mark_all_read(user_id: str, engine: TicketEngine = Depends(get_engine)):
    updated = await engine.mark_all_notifications_read(user_id)
    return {"user_id": user_id, "updated": updated}


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc)


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, exc)


async def handle_conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return _error(status.HTTP_409_CONFLICT, exc)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


def create_app(engine: TicketEngine) -> FastAPI:
    """Build the FastAPI application around an engine instance."""
    app = FastAPI(title="FixDesk Ticket Engine")
    app.state.engine = engine

    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(ConflictError, handle_conflict)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    app.include_router(tickets_router)
    app.include_router(notifications_router)
    return app
