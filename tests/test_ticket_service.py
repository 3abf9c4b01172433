import pytest
from sqlalchemy import text

from ticketflow.models import Ticket, Upload, Department, TicketStatus
from ticketflow.schemas.ticket import TicketFilters
from ticketflow.services.notification_service import department_email
from ticketflow.services.ticket_service import TicketService, serialize_ticket
from ticketflow.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def new_ticket(**overrides):
    payload = {
        "subject": "Salary slip missing",
        "description": "  March slip not in portal  ",
        "department": "HR",
        "priority": "HIGH",
    }
    payload.update(overrides)
    return payload


def descriptor(upload):
    """Descriptor as returned by the upload endpoint"""
    return {"id": upload.file_id, "name": upload.name, "size": upload.size, "key": upload.key,
            "mimetype": upload.mimetype}


# ==================== CREATE ====================

class TestCreateTicket:

    def test_creates_open_ticket(self, db, identities, outbox):
        ticket = TicketService.create_ticket(db, identities["alice"], new_ticket(), outbox)

        assert ticket.id is not None
        assert ticket.status == TicketStatus.OPEN
        assert ticket.created_by == identities["alice"].id
        assert ticket.description == "March slip not in portal"
        assert ticket.files == []

    def test_subject_prefixed_with_category(self, db, identities, outbox):
        ticket = TicketService.create_ticket(
            db, identities["alice"], new_ticket(category="Payroll", subcategory="Slips"), outbox
        )

        assert ticket.subject == "[Payroll - Slips] Salary slip missing"
        assert serialize_ticket(ticket)["editableSubject"] == "Salary slip missing"

    def test_queues_created_notification(self, db, identities, outbox):
        TicketService.create_ticket(db, identities["alice"], new_ticket(), outbox)

        [message] = outbox.pending
        assert message.subject == "New Ticket Created: Salary slip missing"
        assert message.to == department_email("HR")
        assert "Alice Employee (alice)" in message.text

    def test_missing_fields(self, db, identities, outbox):
        with pytest.raises(ValidationError) as exc:
            TicketService.create_ticket(db, identities["alice"], {"subject": "Help"}, outbox)

        fields = exc.value.details["fields"]
        assert {"description", "department", "priority"} <= set(fields)
        assert outbox.pending == []

    def test_blank_subject(self, db, identities, outbox):
        with pytest.raises(ValidationError):
            TicketService.create_ticket(db, identities["alice"], new_ticket(subject="   "), outbox)

    def test_subject_of_only_long_words_still_creates(self, db, identities, outbox):
        ticket = TicketService.create_ticket(
            db, identities["alice"], new_ticket(subject="Reimbursement", category="Claims", subcategory="Travel"),
            outbox,
        )

        assert ticket.id is not None
        assert ticket.subject == "[Claims - Travel] "
        assert serialize_ticket(ticket)["editableSubject"] == ""

    def test_invalid_department(self, db, identities, outbox):
        with pytest.raises(ValidationError) as exc:
            TicketService.create_ticket(db, identities["alice"], new_ticket(department="IT"), outbox)
        assert "department" in exc.value.details["fields"]

    def test_keeps_uploaded_descriptors(self, db, users, identities, outbox, make_upload):
        upload = make_upload(users["alice"].id, name="slip.pdf", file_id="f1")

        ticket = TicketService.create_ticket(
            db, identities["alice"], new_ticket(files=[descriptor(upload)]), outbox
        )

        assert ticket.files[0]["key"] == upload.key
        assert ticket.files[0]["id"] == "f1"
        db.refresh(upload)
        assert upload.ticket_id == ticket.id

    def test_rejects_files_uploaded_by_someone_else(self, db, users, identities, outbox, storage, make_upload):
        payslip = make_upload(users["bob"].id, name="payslip.pdf")

        with pytest.raises(ValidationError):
            TicketService.create_ticket(db, identities["alice"], new_ticket(files=[descriptor(payslip)]), outbox)
        assert db.query(Ticket).count() == 0
        assert payslip.key in storage.objects

    def test_rejects_more_than_five_files(self, db, users, identities, outbox, make_upload):
        uploads = [make_upload(users["alice"].id, name=f"{i}.pdf") for i in range(6)]

        with pytest.raises(ValidationError) as exc:
            TicketService.create_ticket(
                db, identities["alice"], new_ticket(files=[descriptor(u) for u in uploads]), outbox
            )
        assert exc.value.details["maxFiles"] == 5
        assert db.query(Ticket).count() == 0


# ==================== READ ====================

class TestGetTicket:

    def test_creator_and_manager_can_read(self, db, users, identities, make_ticket):
        ticket = make_ticket(users["alice"].id, department=Department.HR)

        assert TicketService.get_ticket(db, identities["alice"], ticket.id).id == ticket.id
        assert TicketService.get_ticket(db, identities["hana"], ticket.id).id == ticket.id

    def test_invisible_ticket_is_not_found(self, db, users, identities, make_ticket):
        ticket = make_ticket(users["alice"].id, department=Department.HR)

        with pytest.raises(NotFoundError):
            TicketService.get_ticket(db, identities["bob"], ticket.id)
        with pytest.raises(NotFoundError):
            TicketService.get_ticket(db, identities["fred"], ticket.id)

    def test_missing_ticket(self, db, identities):
        with pytest.raises(NotFoundError):
            TicketService.get_ticket(db, identities["alice"], 404)


# ==================== UPDATE ====================

class TestUpdateTicket:

    def test_manager_closes_ticket_and_notifies(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id, department=Department.HR)

        updated = TicketService.update_ticket(
            db, identities["hana"], ticket.id, {"status": "CLOSED", "comment": "Sent by email"}, storage, outbox
        )

        assert updated.status == TicketStatus.CLOSED
        [message] = outbox.pending
        assert message.subject == "Ticket Updated: Printer jam"
        assert "Status changed from OPEN to CLOSED" in message.text
        assert "Comment added/updated" in message.text
        assert "Priority changed" not in message.text
        assert "Department changed" not in message.text
        assert "Hana Manager (hana)" in message.text

    def test_all_change_lines(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id, department=Department.HR)

        TicketService.update_ticket(db, identities["hana"], ticket.id, {
            "priority": "HIGH",
            "department": "FINANCE",
            "subject": "Printer on fire",
            "description": "Smoke",
        }, storage, outbox)

        text_body = outbox.pending[0].text
        assert "Priority changed from MEDIUM to HIGH" in text_body
        assert "Department changed from HR to FINANCE" in text_body
        assert "Subject updated" in text_body
        assert "Description updated" in text_body
        assert "Status changed" not in text_body

    def test_comment_only_does_not_notify(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id)

        updated = TicketService.update_ticket(db, identities["hana"], ticket.id, {"comment": "Looking"}, storage, outbox)

        assert updated.comment == "Looking"
        assert outbox.pending == []

    def test_reopen_stored_as_open(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id, status=TicketStatus.CLOSED)

        updated = TicketService.update_ticket(db, identities["hana"], ticket.id, {"status": "RE_OPEN"}, storage, outbox)

        assert updated.status == TicketStatus.OPEN

    def test_any_status_transition_allowed(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id, status=TicketStatus.CANCELLED)

        updated = TicketService.update_ticket(
            db, identities["hana"], ticket.id, {"status": "IN_PROGRESS"}, storage, outbox
        )

        assert updated.status == TicketStatus.IN_PROGRESS

    def test_invalid_status(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id)

        with pytest.raises(ValidationError):
            TicketService.update_ticket(db, identities["hana"], ticket.id, {"status": "DONE"}, storage, outbox)

    def test_employee_cannot_edit_closed_ticket(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id, status=TicketStatus.CLOSED)

        with pytest.raises(PermissionDeniedError):
            TicketService.update_ticket(db, identities["alice"], ticket.id, {"subject": "x"}, storage, outbox)

    def test_employee_edits_own_open_ticket(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id)

        updated = TicketService.update_ticket(
            db, identities["alice"], ticket.id, {"description": "Still stuck", "createdBy": 99}, storage, outbox
        )

        assert updated.description == "Still stuck"
        assert updated.created_by == users["alice"].id

    def test_missing_ticket_before_permission(self, db, identities, storage, outbox):
        with pytest.raises(NotFoundError):
            TicketService.update_ticket(db, identities["bob"], 404, {"subject": "x"}, storage, outbox)

    def test_other_employee_denied(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id)

        with pytest.raises(PermissionDeniedError):
            TicketService.update_ticket(db, identities["bob"], ticket.id, {"subject": "x"}, storage, outbox)

    def test_attachments_reconciled(self, db, users, identities, make_ticket, make_upload, storage, outbox):
        files = [{"id": "a", "name": "a.pdf", "key": "k1"}, {"id": "b", "name": "b.pdf", "key": "k2"}]
        ticket = make_ticket(users["alice"].id, files=files)
        upload = make_upload(users["alice"].id, name="c.pdf", file_id="c")

        updated = TicketService.update_ticket(db, identities["alice"], ticket.id, {
            "filesToDelete": ["a"],
            "newFiles": [descriptor(upload)],
        }, storage, outbox)

        assert [f["id"] for f in updated.files] == ["b", "c"]
        assert storage.deleted == ["k1"]
        assert outbox.pending == []
        db.refresh(upload)
        assert upload.ticket_id == ticket.id

    def test_foreign_file_cannot_be_attached_or_deleted(self, db, users, identities, make_ticket, make_upload,
                                                       storage, outbox):
        payslip = make_upload(users["bob"].id, name="payslip.pdf")
        ticket = make_ticket(users["alice"].id)

        with pytest.raises(ValidationError):
            TicketService.update_ticket(db, identities["alice"], ticket.id, {
                "newFiles": [descriptor(payslip)],
            }, storage, outbox)

        db.refresh(ticket)
        assert ticket.files == []
        assert storage.deleted == []
        assert payslip.key in storage.objects

    def test_attachment_limit_counts_retained_files(self, db, users, identities, make_ticket, make_upload,
                                                    storage, outbox):
        files = [{"id": str(i), "name": f"{i}.pdf", "key": f"k{i}"} for i in range(4)]
        ticket = make_ticket(users["alice"].id, files=files)
        uploads = [make_upload(users["alice"].id, name=f"new{i}.pdf") for i in range(2)]

        with pytest.raises(ValidationError):
            TicketService.update_ticket(db, identities["alice"], ticket.id, {
                "newFiles": [descriptor(u) for u in uploads],
            }, storage, outbox)

        db.refresh(ticket)
        assert len(ticket.files) == 4

        updated = TicketService.update_ticket(db, identities["alice"], ticket.id, {
            "filesToDelete": ["0"],
            "newFiles": [descriptor(u) for u in uploads],
        }, storage, outbox)
        assert len(updated.files) == 5

    def test_removed_attachment_forgets_upload(self, db, users, identities, make_ticket, make_upload, storage, outbox):
        ticket = make_ticket(users["alice"].id)
        upload = make_upload(users["alice"].id, file_id="x")
        key = upload.key
        TicketService.update_ticket(db, identities["alice"], ticket.id, {"newFiles": [descriptor(upload)]},
                                    storage, outbox)

        TicketService.update_ticket(db, identities["alice"], ticket.id, {"filesToDelete": ["x"]}, storage, outbox)

        assert db.query(Upload).count() == 0
        assert storage.deleted == [key]

    def test_stale_version_conflicts(self, db, users, identities, make_ticket, storage, outbox):
        ticket = make_ticket(users["alice"].id)
        # Another writer commits in between
        db.execute(text("UPDATE tickets SET version = version + 1 WHERE id = :id"), {"id": ticket.id})

        with pytest.raises(ConflictError):
            TicketService.update_ticket(db, identities["hana"], ticket.id, {"status": "CLOSED"}, storage, outbox)
        assert outbox.pending == []


# ==================== DELETE ====================

class TestDeleteTicket:

    def test_manager_deletes_ticket_and_files(self, db, users, identities, make_ticket, storage):
        files = [{"id": "a", "name": "a.pdf", "key": "k1"}, {"id": "b", "name": "b.pdf", "key": "k2"},
                 {"id": "c", "name": "c.pdf"}]
        ticket = make_ticket(users["alice"].id, department=Department.HR, files=files)
        ticket_id = ticket.id

        TicketService.delete_ticket(db, identities["hana"], ticket_id, storage)

        assert db.get(Ticket, ticket_id) is None
        assert storage.deleted == ["k1", "k2"]

    def test_delete_forgets_uploads(self, db, users, identities, make_ticket, make_upload, storage, outbox):
        ticket = make_ticket(users["alice"].id, department=Department.HR)
        upload = make_upload(users["alice"].id)
        TicketService.update_ticket(db, identities["alice"], ticket.id, {"newFiles": [descriptor(upload)]},
                                    storage, outbox)

        TicketService.delete_ticket(db, identities["hana"], ticket.id, storage)

        assert db.query(Upload).count() == 0

    def test_creator_cannot_delete(self, db, users, identities, make_ticket, storage):
        ticket = make_ticket(users["alice"].id)

        with pytest.raises(PermissionDeniedError):
            TicketService.delete_ticket(db, identities["alice"], ticket.id, storage)

    def test_missing_ticket(self, db, identities, storage):
        with pytest.raises(NotFoundError):
            TicketService.delete_ticket(db, identities["hana"], 404, storage)


# ==================== LIST ====================

class TestListTickets:

    def test_pagination(self, db, users, identities, make_ticket):
        created = [make_ticket(users["alice"].id, subject=f"Issue {i}") for i in range(3)]

        page_one, info = TicketService.list_tickets(db, identities["alice"], page=1, limit=2)
        page_two, _ = TicketService.list_tickets(db, identities["alice"], page=2, limit=2)

        assert [t.id for t in page_one] == [created[2].id, created[1].id]
        assert [t.id for t in page_two] == [created[0].id]
        assert info.total_count == 3
        assert info.total_pages == 2
        assert info.has_next_page is True
        assert info.has_prev_page is False

    def test_employee_only_sees_own(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id)
        make_ticket(users["bob"].id)

        tickets, info = TicketService.list_tickets(db, identities["bob"])

        assert info.total_count == 1
        assert tickets[0].created_by == users["bob"].id

    def test_manager_filter_cannot_widen_visibility(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id, department=Department.HR)
        make_ticket(users["bob"].id, department=Department.FINANCE)

        tickets, info = TicketService.list_tickets(db, identities["hana"], TicketFilters(department="FINANCE"))

        assert tickets == []
        assert info.total_pages == 0

    def test_search_subject_or_description(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id, subject="VPN down", description="Cannot connect")
        make_ticket(users["alice"].id, subject="Chair", description="Broken vpn dongle")
        make_ticket(users["alice"].id, subject="Desk", description="Wobbly")

        _, info = TicketService.list_tickets(db, identities["alice"], TicketFilters(search="vpn"))

        assert info.total_count == 2

    def test_search_wildcards_are_literal(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id, subject="Bonus 100% missing", description="x")
        make_ticket(users["alice"].id, subject="Order 1000 units", description="y")
        make_ticket(users["alice"].id, subject="Form A_1", description="z")
        make_ticket(users["alice"].id, subject="Form AB1", description="z")

        percent, _ = TicketService.list_tickets(db, identities["alice"], TicketFilters(search="100%"))
        underscore, _ = TicketService.list_tickets(db, identities["alice"], TicketFilters(search="a_1"))

        assert [t.subject for t in percent] == ["Bonus 100% missing"]
        assert [t.subject for t in underscore] == ["Form A_1"]

    def test_status_filter_accepts_reopen(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id, status=TicketStatus.OPEN)
        make_ticket(users["alice"].id, status=TicketStatus.CLOSED)

        _, info = TicketService.list_tickets(db, identities["alice"], TicketFilters(status="RE_OPEN"))

        assert info.total_count == 1

    def test_invalid_page(self, db, identities):
        with pytest.raises(ValidationError):
            TicketService.list_tickets(db, identities["alice"], page=0)
        with pytest.raises(ValidationError):
            TicketService.list_tickets(db, identities["alice"], limit=0)
