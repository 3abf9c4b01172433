# ticketflow/routes/ticket_routes.py
"""Ticket CRUD, attachment upload and download routes"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ticketflow.core.database import get_db
from ticketflow.core.logger import get_logger
from ticketflow.middleware.auth_middleware import get_current_identity
from ticketflow.schemas.common import parse_payload
from ticketflow.schemas.identity import Identity
from ticketflow.schemas.ticket import TicketFilters
from ticketflow.services.attachment_service import AttachmentService, IncomingFile
from ticketflow.services.notification_service import NotificationOutbox, get_outbox
from ticketflow.services.storage_service import get_storage
from ticketflow.services.ticket_service import TicketService, serialize_ticket
from ticketflow.utils.exceptions import NotFoundError

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])


@router.post("/upload")
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    ticket_id: Optional[int] = Form(None, alias="ticketId"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    """
    Upload attachments ahead of creating or updating a ticket.

    When ticketId is given the caller must be able to edit that ticket and
    its existing attachments count towards the per-ticket limit.
    """
    current_count = 0
    if ticket_id is not None:
        ticket = TicketService.get_editable_ticket(db, identity, ticket_id)
        current_count = len(ticket.files or [])

    incoming = []
    for upload in files or []:
        incoming.append(IncomingFile(
            filename=upload.filename or "",
            content_type=upload.content_type,
            data=await upload.read(),
        ))

    return AttachmentService.upload_files(db, storage, identity, incoming, current_count)


@router.get("")
def list_tickets(
    department: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    my_tickets: bool = Query(False, alias="myTickets"),
    page: int = Query(1),
    limit: int = Query(10),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """List visible tickets, newest first"""
    filters = parse_payload(TicketFilters, {
        "department": department,
        "priority": priority,
        "status": status,
        "search": search,
        "myTickets": my_tickets,
    })
    tickets, page_info = TicketService.list_tickets(db, identity, filters, page, limit)
    return {
        "tickets": [serialize_ticket(ticket) for ticket in tickets],
        "pagination": page_info.model_dump(by_alias=True),
    }


@router.post("", status_code=201)
def create_ticket(
    background_tasks: BackgroundTasks,
    payload: dict = Body(...),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Create a ticket in the OPEN state"""
    ticket = TicketService.create_ticket(db, identity, payload, outbox)
    background_tasks.add_task(outbox.flush)
    return {"ticket": serialize_ticket(ticket)}


@router.get("/{ticket_id}")
def get_ticket(
    ticket_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Get ticket details"""
    ticket = TicketService.get_ticket(db, identity, ticket_id)
    return {"ticket": serialize_ticket(ticket)}


@router.put("/{ticket_id}")
def update_ticket(
    ticket_id: int,
    background_tasks: BackgroundTasks,
    payload: dict = Body(...),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Partially update a ticket and reconcile its attachments"""
    ticket = TicketService.update_ticket(db, identity, ticket_id, payload, storage, outbox)
    background_tasks.add_task(outbox.flush)
    return {"ticket": serialize_ticket(ticket)}


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    """Delete a ticket (department managers only)"""
    TicketService.delete_ticket(db, identity, ticket_id, storage)
    return {"message": "Ticket deleted successfully"}


@router.get("/{ticket_id}/files/{file_id}/download")
def download_file(
    ticket_id: int,
    file_id: str,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    """Short-lived download URL for one attachment of a visible ticket"""
    ticket = TicketService.get_ticket(db, identity, ticket_id)
    attachment = AttachmentService.find(ticket.files, file_id)
    if attachment is None:
        raise NotFoundError("File not found")

    return {"downloadUrl": AttachmentService.issue_download_url(storage, identity, attachment)}
