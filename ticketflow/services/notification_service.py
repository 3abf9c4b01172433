# ticketflow/services/notification_service.py
"""Ticket notification emails and the post-commit outbox"""
from dataclasses import dataclass
from html import escape
from typing import Any, Callable, Dict, List, Optional, Union

from ticketflow.core.config import (
    ADMIN_EMAIL,
    FINANCE_EMAIL,
    HR_EMAIL,
    EMAIL_NOTIFICATIONS_ENABLED,
    NOTIFICATION_MAX_ATTEMPTS,
)
from ticketflow.core.logger import get_logger
from ticketflow.services.email_service import send_email

logger = get_logger(__name__)

FOOTER = "This is an automated notification from the TicketFlow system."

PRIORITY_COLORS = {"HIGH": "#dc3545", "MEDIUM": "#ffc107", "LOW": "#28a745"}
STATUS_COLORS = {
    "OPEN": "#007bff",
    "IN_PROGRESS": "#ffc107",
    "ON_HOLD": "#6c757d",
    "CANCELLED": "#dc3545",
    "CLOSED": "#28a745",
}
DEFAULT_COLOR = "#6c757d"


@dataclass
class EmailMessage:
    to: Union[str, List[str], None]
    subject: str
    html: str
    text: str


def department_email(department) -> Optional[str]:
    """Mailbox for a department; unknown departments go to the admin mailbox."""
    mailboxes = {
        "ADMIN": ADMIN_EMAIL,
        "FINANCE": FINANCE_EMAIL,
        "HR": HR_EMAIL,
    }
    return mailboxes.get(_value(department), ADMIN_EMAIL)


def describe_changes(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    """Human readable change lines between two ticket snapshots."""
    changes = []
    for field, label in (("status", "Status"), ("priority", "Priority"), ("department", "Department")):
        if before.get(field) != after.get(field):
            changes.append(f"{label} changed from {before.get(field)} to {after.get(field)}")
    if before.get("subject") != after.get("subject"):
        changes.append("Subject updated")
    if before.get("description") != after.get("description"):
        changes.append("Description updated")
    if after.get("comment") and before.get("comment") != after.get("comment"):
        changes.append("Comment added/updated")
    return changes


def _value(field):
    return getattr(field, "value", field)


def _badge(value: str, colors: Dict[str, str]) -> str:
    color = colors.get(value, DEFAULT_COLOR)
    return (
        f'<span style="background-color: {color}; color: white; padding: 2px 8px; '
        f'border-radius: 3px;">{escape(str(value))}</span>'
    )


def _row(label: str, value_html: str) -> str:
    return (
        f'<tr><td style="padding: 8px; font-weight: bold; width: 150px;">{label}:</td>'
        f'<td style="padding: 8px;">{value_html}</td></tr>'
    )


def _layout(title: str, accent: str, rows: List[str], extra: str = "") -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333; border-bottom: 2px solid {accent}; padding-bottom: 10px;">{title}</h2>'
        '<div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px; margin: 20px 0;">'
        f'<h3 style="color: {accent}; margin-top: 0;">Ticket Details</h3>'
        f'<table style="width: 100%; border-collapse: collapse;">{"".join(rows)}</table>'
        '</div>'
        f'{extra}'
        f'<p style="color: #666; font-size: 14px; margin-top: 30px;">{FOOTER}</p>'
        '</div>'
    )


def ticket_created_message(ticket: Dict[str, Any], author: Dict[str, Any]) -> EmailMessage:
    """Build the 'New Ticket Created' email from a ticket snapshot."""
    files = ticket.get("files") or []
    by = f"{author.get('name')} ({author.get('username')})"

    rows = [
        _row("Ticket ID", f"#{ticket['id']}"),
        _row("Subject", escape(ticket["subject"])),
        _row("Description", escape(ticket["description"])),
        _row("Department", escape(ticket["department"])),
        _row("Priority", _badge(ticket["priority"], PRIORITY_COLORS)),
        _row("Status", _badge(ticket["status"], STATUS_COLORS)),
    ]
    lines = [
        "New Ticket Created",
        "",
        f"Ticket ID: #{ticket['id']}",
        f"Subject: {ticket['subject']}",
        f"Description: {ticket['description']}",
        f"Department: {ticket['department']}",
        f"Priority: {ticket['priority']}",
        f"Status: {ticket['status']}",
    ]
    for field, label in (("category", "Category"), ("subcategory", "Subcategory")):
        if ticket.get(field):
            rows.append(_row(label, escape(ticket[field])))
            lines.append(f"{label}: {ticket[field]}")

    rows.append(_row("Created By", escape(by)))
    rows.append(_row("Created At", ticket.get("createdAt") or ""))
    lines.append(f"Created By: {by}")
    lines.append(f"Created At: {ticket.get('createdAt') or ''}")

    if files:
        names = "".join(f"<div>{escape(str(f.get('name', '')))}</div>" for f in files)
        rows.append(_row("Attachments", names))
        lines.append(f"Attachments: {len(files)} file(s)")

    lines += ["", FOOTER]
    return EmailMessage(
        to=department_email(ticket["department"]),
        subject=f"New Ticket Created: {ticket['subject']}",
        html=_layout("New Ticket Created", "#007bff", rows),
        text="\n".join(lines),
    )


def ticket_updated_message(ticket: Dict[str, Any], editor: Dict[str, Any], changes: List[str]) -> EmailMessage:
    """Build the 'Ticket Updated' email listing what changed."""
    by = f"{editor.get('name')} ({editor.get('username')})"

    rows = [
        _row("Ticket ID", f"#{ticket['id']}"),
        _row("Subject", escape(ticket["subject"])),
        _row("Department", escape(ticket["department"])),
        _row("Priority", _badge(ticket["priority"], PRIORITY_COLORS)),
        _row("Status", _badge(ticket["status"], STATUS_COLORS)),
        _row("Updated By", escape(by)),
        _row("Updated At", ticket.get("updatedAt") or ""),
    ]
    extra = ""
    if changes:
        items = "".join(f'<li style="margin: 5px 0;">{escape(change)}</li>' for change in changes)
        extra = (
            '<div style="background-color: #fff3cd; padding: 20px; border-radius: 5px; '
            'margin: 20px 0; border-left: 4px solid #ffc107;">'
            '<h3 style="color: #856404; margin-top: 0;">Changes Made</h3>'
            f'<ul style="margin: 0; padding-left: 20px;">{items}</ul></div>'
        )

    lines = [
        "Ticket Updated",
        "",
        f"Ticket ID: #{ticket['id']}",
        f"Subject: {ticket['subject']}",
        f"Department: {ticket['department']}",
        f"Priority: {ticket['priority']}",
        f"Status: {ticket['status']}",
        f"Updated By: {by}",
        f"Updated At: {ticket.get('updatedAt') or ''}",
    ]
    if changes:
        lines += ["", "Changes Made:"] + [f"- {change}" for change in changes]
    lines += ["", FOOTER]

    return EmailMessage(
        to=department_email(ticket["department"]),
        subject=f"Ticket Updated: {ticket['subject']}",
        html=_layout("Ticket Updated", "#28a745", rows, extra),
        text="\n".join(lines),
    )


class NotificationOutbox:
    """
    Collects notification emails during a unit of work.

    Nothing is sent until flush() is called, which callers do only after the
    database commit succeeded. Delivery failures are logged and never raised.
    """

    def __init__(self, sender: Callable[..., Dict[str, Any]] = None, max_attempts: int = None):
        self.sender = sender or send_email
        self.max_attempts = max_attempts or NOTIFICATION_MAX_ATTEMPTS
        self._pending: List[EmailMessage] = []

    @property
    def pending(self) -> List[EmailMessage]:
        return list(self._pending)

    def enqueue(self, message: EmailMessage):
        self._pending.append(message)

    def flush(self) -> int:
        """Send every queued message. Returns how many were delivered."""
        messages, self._pending = self._pending, []
        if not EMAIL_NOTIFICATIONS_ENABLED:
            if messages:
                logger.info(f"Email notifications disabled, dropping {len(messages)} message(s)")
            return 0

        delivered = 0
        for message in messages:
            if self._deliver(message):
                delivered += 1
        return delivered

    def _deliver(self, message: EmailMessage) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = self.sender(message.to, message.subject, message.html, message.text)
            except Exception as e:
                result = {"success": False, "error": str(e)}

            if result.get("success"):
                logger.info(f"Notification '{message.subject}' sent to {message.to}")
                return True
            logger.warning(
                f"Notification '{message.subject}' to {message.to} failed "
                f"(attempt {attempt}/{self.max_attempts}): {result.get('error')}"
            )
        return False


def get_outbox() -> NotificationOutbox:
    """FastAPI dependency: one outbox per request."""
    return NotificationOutbox()
