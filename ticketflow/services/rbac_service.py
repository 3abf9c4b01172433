from typing import FrozenSet

from sqlalchemy import false
from sqlalchemy.sql.elements import ColumnElement

from ticketflow.models.ticket import Ticket, Department, TicketStatus, RE_OPEN
from ticketflow.schemas.identity import Identity


class RBACService:
    """Ticket visibility and edit permissions."""

    # Statuses a ticket must be in for a non-manager to edit it
    EMPLOYEE_EDITABLE_STATUSES = frozenset({TicketStatus.OPEN.value, RE_OPEN})

    # Role text keywords (matched case-insensitively) that mark a manager
    MANAGER_ROLE_KEYWORDS = ("manager", "admin", "hr", "finance", "executive")

    # Department values (matched exactly) that mark a manager
    MANAGER_DEPARTMENTS = frozenset({"HR", "Finance", "ADMIN"})

    @staticmethod
    def managed_departments_for(identity: Identity) -> FrozenSet[str]:
        """Departments the identity may act upon as a manager."""
        if not identity.is_manager:
            return frozenset()
        return identity.managed_departments or frozenset()

    @staticmethod
    def is_manager_role(identity: Identity) -> bool:
        """
        Loose manager classification used for the edit-status guard.

        True when the is_manager flag is set, the free-text role mentions a
        manager keyword, or the identity belongs to a managing department.
        """
        if identity.is_manager:
            return True

        role = (identity.role or "").lower()
        if any(keyword in role for keyword in RBACService.MANAGER_ROLE_KEYWORDS):
            return True

        return identity.department in RBACService.MANAGER_DEPARTMENTS

    @staticmethod
    def can_view(identity: Identity, ticket: Ticket) -> bool:
        """Creator, or a manager of the ticket's department."""
        if ticket.created_by == identity.id:
            return True
        return _value(ticket.department) in RBACService.managed_departments_for(identity)

    @staticmethod
    def can_edit(identity: Identity, ticket: Ticket) -> bool:
        """Same as can_view, but non-managers may only edit open tickets."""
        if not RBACService.can_view(identity, ticket):
            return False
        if RBACService.is_manager_role(identity):
            return True
        return _value(ticket.status) in RBACService.EMPLOYEE_EDITABLE_STATUSES

    @staticmethod
    def can_delete(identity: Identity, ticket: Ticket) -> bool:
        """Only managers of the ticket's department may delete it."""
        return _value(ticket.department) in RBACService.managed_departments_for(identity)

    @staticmethod
    def visibility_filter(identity: Identity, my_tickets_only: bool = False) -> ColumnElement:
        """
        Build the WHERE clause restricting a ticket query to what the identity may see.

        Employees (and anyone asking for "my tickets") only see tickets they
        created. Managers see every ticket in the departments they manage; a
        manager with no managed departments sees nothing.
        """
        if my_tickets_only or not identity.is_manager:
            return Ticket.created_by == identity.id

        departments = [
            Department(name) for name in sorted(RBACService.managed_departments_for(identity))
            if name in Department.__members__
        ]
        if not departments:
            return false()
        return Ticket.department.in_(departments)


def _value(field) -> str:
    return getattr(field, "value", field)
