from ticketflow.models import Ticket, Department, TicketStatus
from ticketflow.schemas.identity import Identity
from ticketflow.services.rbac_service import RBACService


def ticket(created_by=1, department=Department.HR, status=TicketStatus.OPEN):
    return Ticket(created_by=created_by, department=department, status=status)


EMPLOYEE = Identity(id=1, role="Software Engineer", department="Engineering")
OTHER_EMPLOYEE = Identity(id=2, role="Accountant", department="Sales")
HR_MANAGER = Identity(id=3, role="Manager", department="HR", is_manager=True, managed_departments=["HR"])


class TestCanView:

    def test_creator_can_view(self):
        assert RBACService.can_view(EMPLOYEE, ticket(created_by=1))

    def test_other_employee_cannot_view(self):
        assert not RBACService.can_view(OTHER_EMPLOYEE, ticket(created_by=1))

    def test_manager_of_department_can_view(self):
        assert RBACService.can_view(HR_MANAGER, ticket(created_by=1, department=Department.HR))

    def test_manager_of_other_department_cannot_view(self):
        assert not RBACService.can_view(HR_MANAGER, ticket(created_by=1, department=Department.FINANCE))

    def test_managed_departments_ignored_without_flag(self):
        identity = Identity(id=9, role="Manager", managed_departments=["HR"])
        assert not RBACService.can_view(identity, ticket(created_by=1))


class TestCanEdit:

    def test_employee_can_edit_open_ticket(self):
        assert RBACService.can_edit(EMPLOYEE, ticket(status=TicketStatus.OPEN))

    def test_employee_cannot_edit_closed_ticket(self):
        assert not RBACService.can_edit(EMPLOYEE, ticket(status=TicketStatus.CLOSED))

    def test_manager_can_edit_closed_ticket(self):
        assert RBACService.can_edit(HR_MANAGER, ticket(status=TicketStatus.CLOSED))

    def test_manager_sounding_role_can_edit_own_closed_ticket(self):
        identity = Identity(id=1, role="Senior HR Executive", department="Engineering")
        assert RBACService.can_edit(identity, ticket(created_by=1, status=TicketStatus.ON_HOLD))

    def test_manager_sounding_role_does_not_grant_view(self):
        identity = Identity(id=5, role="Finance Manager", department="Finance")
        assert not RBACService.can_edit(identity, ticket(created_by=1, department=Department.FINANCE))


class TestManagerRole:

    def test_flag(self):
        assert RBACService.is_manager_role(HR_MANAGER)

    def test_role_keyword_case_insensitive(self):
        assert RBACService.is_manager_role(Identity(id=1, role="ADMINISTRATOR"))

    def test_department_exact_match(self):
        assert RBACService.is_manager_role(Identity(id=1, role="Clerk", department="Finance"))
        assert not RBACService.is_manager_role(Identity(id=1, role="Clerk", department="finance"))

    def test_plain_employee(self):
        assert not RBACService.is_manager_role(EMPLOYEE)


class TestCanDelete:

    def test_manager_of_department(self):
        assert RBACService.can_delete(HR_MANAGER, ticket(department=Department.HR))

    def test_creator_cannot_delete(self):
        assert not RBACService.can_delete(EMPLOYEE, ticket(created_by=1))


class TestVisibilityFilter:

    def test_employee_sees_own_tickets(self, db, users, identities, make_ticket):
        own = make_ticket(users["alice"].id)
        make_ticket(users["bob"].id)

        visible = db.query(Ticket).filter(RBACService.visibility_filter(identities["alice"])).all()

        assert [t.id for t in visible] == [own.id]

    def test_manager_sees_managed_departments(self, db, users, identities, make_ticket):
        hr = make_ticket(users["alice"].id, department=Department.HR)
        make_ticket(users["bob"].id, department=Department.FINANCE)

        visible = db.query(Ticket).filter(RBACService.visibility_filter(identities["hana"])).all()

        assert [t.id for t in visible] == [hr.id]

    def test_manager_my_tickets_only(self, db, users, identities, make_ticket):
        make_ticket(users["alice"].id, department=Department.HR)
        mine = make_ticket(users["hana"].id, department=Department.HR)

        visible = db.query(Ticket).filter(RBACService.visibility_filter(identities["hana"], True)).all()

        assert [t.id for t in visible] == [mine.id]

    def test_manager_without_departments_sees_nothing(self, db, users, make_ticket):
        make_ticket(users["alice"].id)
        identity = Identity(id=99, role="Manager", is_manager=True, managed_departments=[])

        assert db.query(Ticket).filter(RBACService.visibility_filter(identity)).count() == 0

    def test_unknown_managed_department_ignored(self, db, users, make_ticket):
        make_ticket(users["alice"].id, department=Department.HR)
        identity = Identity(id=99, role="Manager", is_manager=True, managed_departments=["IT", "HR"])

        assert db.query(Ticket).filter(RBACService.visibility_filter(identity)).count() == 1
