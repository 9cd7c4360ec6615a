import pytest

from src.volunteer_tracker.volunteer_tracker.core.enums import Role
from src.volunteer_tracker.volunteer_tracker.core.exceptions import AuthenticationError, AuthorizationError
from src.volunteer_tracker.volunteer_tracker.users.repository import UserRepository
from src.volunteer_tracker.volunteer_tracker.users.service import AuthService, require_admin
from tests.fakes import ADMIN, STAFF, make_users


def test_user_lookup_is_by_username_only():
    assert not hasattr(UserRepository, "get_by_id")
    assert not hasattr(make_users(), "get_by_id")


def test_authenticate_trims_username():
    user = AuthService(make_users()).authenticate("  frontdesk ", "staff123")
    assert (user.user_id, user.full_name, user.role) == (2, "Front Desk", Role.STAFF)


@pytest.mark.parametrize(
    "username,password",
    [("admin", "wrong"), ("retired", "pw12345"), ("nobody", "admin123"), ("", "")],
)
def test_authenticate_rejects(username, password):
    with pytest.raises(AuthenticationError):
        AuthService(make_users()).authenticate(username, password)


def test_require_admin():
    assert require_admin(ADMIN) is ADMIN
    with pytest.raises(AuthorizationError):
        require_admin(STAFF)
    with pytest.raises(AuthenticationError):
        require_admin(None)
