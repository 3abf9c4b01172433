# ticketflow/routes/dashboard_routes.py
"""Dashboard statistics"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ticketflow.core.database import get_db
from ticketflow.middleware.auth_middleware import get_current_identity
from ticketflow.schemas.common import parse_payload
from ticketflow.schemas.identity import Identity
from ticketflow.schemas.ticket import TicketFilters
from ticketflow.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/stats")
def get_stats(
    department: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    my_tickets: bool = Query(False, alias="myTickets"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Ticket counts over the tickets the caller can see"""
    filters = parse_payload(TicketFilters, {
        "department": department,
        "priority": priority,
        "status": status,
        "myTickets": my_tickets,
    })
    return {"stats": DashboardService.get_stats(db, identity, filters)}
