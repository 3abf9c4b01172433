import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ticketflow.core.logger import get_logger
from ticketflow.models.ticket import Ticket, TicketStatus
from ticketflow.models.user import User
from ticketflow.schemas.common import parse_payload
from ticketflow.schemas.identity import Identity
from ticketflow.schemas.ticket import (
    CreateTicketRequest,
    UpdateTicketRequest,
    TicketFilters,
    TicketResponse,
    PageInfo,
)
from ticketflow.utils.datetime_utils import to_iso_string
from ticketflow.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ticketflow.utils.validators import build_subject, escape_like
from .attachment_service import AttachmentService, check_limit
from .notification_service import (
    NotificationOutbox,
    describe_changes,
    ticket_created_message,
    ticket_updated_message,
)
from .rbac_service import RBACService

logger = get_logger(__name__)

# Fields whose change triggers an "updated" notification
SIGNIFICANT_FIELDS = ("status", "priority", "department", "subject", "description")

# Updatable scalar fields; None is ignored for the non-nullable ones
UPDATABLE_FIELDS = ("subject", "description", "department", "priority", "status", "category", "subcategory", "comment")
NON_NULLABLE_FIELDS = {"subject", "description", "department", "priority", "status"}


def _value(field):
    return getattr(field, "value", field)


def ticket_snapshot(ticket: Ticket) -> Dict[str, Any]:
    """Plain copy of a ticket, safe to use after the session is gone."""
    return {
        "id": ticket.id,
        "subject": ticket.subject,
        "description": ticket.description,
        "department": _value(ticket.department),
        "priority": _value(ticket.priority),
        "status": _value(ticket.status),
        "category": ticket.category,
        "subcategory": ticket.subcategory,
        "comment": ticket.comment,
        "files": list(ticket.files or []),
        "createdAt": to_iso_string(ticket.created_at),
        "updatedAt": to_iso_string(ticket.updated_at),
    }


def user_snapshot(user: Optional[User]) -> Dict[str, Any]:
    if user is None:
        return {"name": "Unknown", "username": "unknown"}
    return {"name": user.name, "username": user.username}


def serialize_ticket(ticket: Ticket) -> Dict[str, Any]:
    """Ticket as returned over HTTP (camelCase, with author info)."""
    return TicketResponse.model_validate(ticket).model_dump(mode="json", by_alias=True)


class TicketService:
    """Ticket lifecycle: create, read, update, delete and list."""

    @staticmethod
    def create_ticket(db: Session, identity: Identity, payload: dict, outbox: NotificationOutbox) -> Ticket:
        """
        Create an OPEN ticket owned by the caller and queue a notification.

        Attachments must be files the caller uploaded and not yet attached
        elsewhere, at most MAX_FILES_PER_TICKET of them.
        """
        request = parse_payload(CreateTicketRequest, payload)

        check_limit(0, len(request.files))
        files = AttachmentService.claim(
            db, identity, [f.model_dump(by_alias=True, exclude_none=True) for f in request.files]
        )

        ticket = Ticket(
            subject=build_subject(request.subject, request.category, request.subcategory),
            description=request.description.strip(),
            department=request.department,
            priority=request.priority,
            status=TicketStatus.OPEN,
            category=request.category,
            subcategory=request.subcategory,
            files=files,
            created_by=identity.id,
        )
        db.add(ticket)
        db.flush()
        AttachmentService.link(db, ticket)
        db.commit()
        db.refresh(ticket)

        outbox.enqueue(ticket_created_message(ticket_snapshot(ticket), user_snapshot(ticket.user)))

        logger.info(f"Ticket #{ticket.id} created by user {identity.id} for {_value(ticket.department)}")
        return ticket

    @staticmethod
    def get_ticket(db: Session, identity: Identity, ticket_id: int) -> Ticket:
        """
        Fetch a ticket the caller may view.

        Missing and invisible tickets both raise NotFoundError so callers
        cannot discover ticket ids they have no access to.
        """
        ticket = db.get(Ticket, ticket_id)
        if ticket is None or not RBACService.can_view(identity, ticket):
            raise NotFoundError("Ticket not found")
        return ticket

    @staticmethod
    def get_editable_ticket(db: Session, identity: Identity, ticket_id: int) -> Ticket:
        ticket = db.get(Ticket, ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        if not RBACService.can_edit(identity, ticket):
            raise PermissionDeniedError()
        return ticket

    @staticmethod
    def update_ticket(
        db: Session,
        identity: Identity,
        ticket_id: int,
        payload: dict,
        storage,
        outbox: NotificationOutbox,
    ) -> Ticket:
        """
        Apply a partial update.

        Attachments are reconciled first (removed objects are deleted from
        storage before the commit), then the explicitly supplied fields are
        applied. A concurrent modification of the same ticket raises
        ConflictError.
        """
        ticket = TicketService.get_editable_ticket(db, identity, ticket_id)
        request = parse_payload(UpdateTicketRequest, payload)

        before = ticket_snapshot(ticket)

        if request.files_to_delete or request.new_files:
            current = list(ticket.files or [])
            new_files = AttachmentService.claim(
                db, identity, [f.model_dump(by_alias=True, exclude_none=True) for f in request.new_files], ticket
            )
            ticket.files = AttachmentService.reconcile(storage, current, request.files_to_delete, new_files)
            kept = {attachment.get("key") for attachment in ticket.files}
            AttachmentService.forget(db, {a.get("key") for a in current} - kept)
            AttachmentService.link(db, ticket)

        for field in UPDATABLE_FIELDS:
            if field not in request.model_fields_set:
                continue
            value = getattr(request, field)
            if value is None and field in NON_NULLABLE_FIELDS:
                continue
            setattr(ticket, field, value)

        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Concurrent update rejected for ticket #{ticket_id}")
            raise ConflictError("Ticket was modified by another request, reload and try again")

        db.refresh(ticket)
        after = ticket_snapshot(ticket)

        if any(before[field] != after[field] for field in SIGNIFICANT_FIELDS):
            editor = db.get(User, identity.id)
            changes = describe_changes(before, after)
            outbox.enqueue(ticket_updated_message(after, user_snapshot(editor), changes))

        logger.info(f"Ticket #{ticket.id} updated by user {identity.id}")
        return ticket

    @staticmethod
    def delete_ticket(db: Session, identity: Identity, ticket_id: int, storage) -> None:
        """Delete a ticket and, best effort, its stored attachments."""
        ticket = db.get(Ticket, ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        if not RBACService.can_delete(identity, ticket):
            raise PermissionDeniedError()

        for attachment in ticket.files or []:
            key = attachment.get("key")
            if not key:
                continue
            try:
                if not storage.delete(key):
                    logger.warning(f"Storage refused to delete {key}")
            except Exception as e:
                logger.warning(f"Failed to delete {key} from storage: {e}")

        AttachmentService.forget(db, [a.get("key") for a in ticket.files or []])
        db.delete(ticket)
        db.commit()
        logger.info(f"Ticket #{ticket_id} deleted by user {identity.id}")

    @staticmethod
    def filtered_query(db: Session, identity: Identity, filters: TicketFilters):
        """Visible tickets narrowed by the optional filters."""
        query = db.query(Ticket).filter(RBACService.visibility_filter(identity, filters.my_tickets))

        if filters.department:
            query = query.filter(Ticket.department == filters.department)
        if filters.priority:
            query = query.filter(Ticket.priority == filters.priority)
        if filters.status:
            query = query.filter(Ticket.status == filters.status)
        if filters.search:
            # % and _ in the search text are literal characters
            search_term = f"%{escape_like(filters.search.strip())}%"
            query = query.filter(
                or_(
                    Ticket.subject.ilike(search_term, escape="\\"),
                    Ticket.description.ilike(search_term, escape="\\"),
                )
            )
        return query

    @staticmethod
    def list_tickets(
        db: Session,
        identity: Identity,
        filters: Optional[TicketFilters] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Ticket], PageInfo]:
        """Page through the tickets the caller may see, newest first."""
        if page < 1 or limit < 1:
            raise ValidationError(
                "Invalid pagination parameters",
                details={"page": page, "limit": limit},
            )

        query = TicketService.filtered_query(db, identity, filters or TicketFilters())

        total = query.count()
        tickets = (
            query.order_by(desc(Ticket.created_at), desc(Ticket.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        total_pages = math.ceil(total / limit)
        page_info = PageInfo(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            limit=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )
        return tickets, page_info
