import pytest
from werkzeug.security import generate_password_hash

from src.enterprise_suite.enterprise_suite.core.enums import Role
from src.enterprise_suite.enterprise_suite.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from src.enterprise_suite.enterprise_suite.users.model import SessionUser, User
from src.enterprise_suite.enterprise_suite.users.service import AuthService, UserService


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {u.email: u for u in users}
        self.granted = {}

    def get_by_email(self, email):
        return self.users.get(email)

    def create_user(self, *, name, email, password_hash, role, department_id, designation_id, date_of_joining):
        user_id = len(self.users) + 1
        self.users[email] = User(
            user_id=user_id, name=name, email=email, password_hash=password_hash, role=role, department_id=department_id
        )
        return user_id

    def grant_permissions(self, user_id, permissions):
        self.granted[user_id] = list(permissions)

    def permissions_for(self, user_id):
        return frozenset(self.granted.get(user_id, ()))

    def list_active(self):
        return [u for u in self.users.values() if u.is_active]


ALICE = User(
    user_id=1,
    name="Alice",
    email="alice@example.com",
    password_hash=generate_password_hash("secret123"),
    role=Role.ADMIN,
    permissions=frozenset({"leaves.view"}),
)
GONE = User(
    user_id=2,
    name="Gone",
    email="gone@example.com",
    password_hash=generate_password_hash("secret123"),
    role=Role.EMPLOYEE,
    is_active=False,
)
LEGACY = User(user_id=3, name="Legacy", email="legacy@example.com", password_hash="CHANGE_ME", role=Role.EMPLOYEE)

ADMIN = SessionUser(user_id=1, name="Alice", email="alice@example.com", role=Role.ADMIN)
EMPLOYEE = SessionUser(user_id=9, name="Eve", email="eve@example.com", role=Role.EMPLOYEE)


def test_authenticate_returns_session_user():
    auth = AuthService(FakeUserRepo([ALICE]))
    user = auth.authenticate(" Alice@Example.com ", "secret123")
    assert user.user_id == 1
    assert user.has_permission("leaves.view")


@pytest.mark.parametrize(
    "email, password",
    [
        ("alice@example.com", "wrong"),
        ("nobody@example.com", "secret123"),
        ("gone@example.com", "secret123"),
        ("legacy@example.com", "CHANGE_ME"),
    ],
)
def test_authenticate_rejects_bad_credentials(email, password):
    auth = AuthService(FakeUserRepo([ALICE, GONE, LEGACY]))
    with pytest.raises(AuthenticationError):
        auth.authenticate(email, password)


def test_session_round_trip():
    user = SessionUser(user_id=4, name="S", email="s@example.com", role=Role.EMPLOYEE, permissions=frozenset({"a"}))
    assert SessionUser.from_session(user.to_session()) == user
    assert SessionUser.from_session(None) is None


def test_create_user_hashes_password_and_grants_permissions():
    repo = FakeUserRepo([ALICE])
    user_id = UserService(repo).create_user(
        current_user=ADMIN, name="Bob", email="BOB@example.com", password="password1", permissions=["leaves.own"]
    )
    created = repo.get_by_email("bob@example.com")
    assert created.password_hash != "password1"
    assert repo.granted[user_id] == ["leaves.own"]


def test_create_user_rules():
    svc = UserService(FakeUserRepo([ALICE]))
    with pytest.raises(AuthorizationError):
        svc.create_user(current_user=EMPLOYEE, name="X", email="x@example.com", password="password1")
    with pytest.raises(AuthorizationError):
        svc.create_user(
            current_user=ADMIN, name="X", email="x@example.com", password="password1", role=Role.SUPER_ADMIN
        )
    with pytest.raises(ValidationError):
        svc.create_user(current_user=ADMIN, name="X", email="alice@example.com", password="password1")
    with pytest.raises(ValidationError):
        svc.create_user(current_user=ADMIN, name="X", email="x@example.com", password="short")
