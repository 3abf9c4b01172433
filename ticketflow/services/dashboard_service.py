from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ticketflow.core.logger import get_logger
from ticketflow.models.ticket import Ticket, Department, TicketPriority, TicketStatus
from ticketflow.schemas.identity import Identity
from ticketflow.schemas.ticket import TicketFilters
from .ticket_service import TicketService

logger = get_logger(__name__)


def _counts_by(query, column) -> Dict[str, int]:
    rows = query.with_entities(column, func.count(Ticket.id)).group_by(column).all()
    return {getattr(key, "value", key): count for key, count in rows}


class DashboardService:
    """Ticket counts for the dashboard."""

    @staticmethod
    def get_stats(db: Session, identity: Identity, filters: Optional[TicketFilters] = None) -> Dict[str, Any]:
        """
        Count visible tickets by status, department and priority.

        Uses the same visibility rules and filters as ticket listing. Every
        bucket is present; an empty result is all zeros.
        """
        query = TicketService.filtered_query(db, identity, filters or TicketFilters())

        by_status = _counts_by(query, Ticket.status)
        by_department = _counts_by(query, Ticket.department)
        by_priority = _counts_by(query, Ticket.priority)

        status_counts = {status.value: by_status.get(status.value, 0) for status in TicketStatus}

        return {
            "total": sum(status_counts.values()),
            "open": status_counts[TicketStatus.OPEN.value],
            "inProgress": status_counts[TicketStatus.IN_PROGRESS.value],
            "onHold": status_counts[TicketStatus.ON_HOLD.value],
            "cancelled": status_counts[TicketStatus.CANCELLED.value],
            "closed": status_counts[TicketStatus.CLOSED.value],
            "byStatus": status_counts,
            "byDepartment": {
                department.value.lower(): by_department.get(department.value, 0) for department in Department
            },
            "byPriority": {
                priority.value.lower(): by_priority.get(priority.value, 0) for priority in TicketPriority
            },
        }
