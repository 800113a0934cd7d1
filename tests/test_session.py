from sikeu.auth.session import ANONYMOUS, resolve_session
from sikeu.errors import FetchError
from sikeu.extensions import db
from sikeu.models import User, UserRole


class MissingUsers:
    def get(self, record_id):
        return None


class BrokenUsers:
    def get(self, record_id):
        raise FetchError('database unreachable')


def test_anonymous_principal_has_no_role(app):
    assert resolve_session(None) is ANONYMOUS


def test_role_is_read_from_users_record(app, users):
    user = db.session.get(User, users[UserRole.BENDAHARA])

    session = resolve_session(user)

    assert session.is_authenticated
    assert session.ready
    assert session.role is UserRole.BENDAHARA
    assert session.principal_id == users[UserRole.BENDAHARA]


def test_role_resolution_is_idempotent(app, users):
    user = db.session.get(User, users[UserRole.PARENT])

    first = resolve_session(user)
    second = resolve_session(user)

    assert first.role == second.role == UserRole.PARENT


def test_missing_record_resolves_to_no_role(app, users):
    user = db.session.get(User, users[UserRole.PARENT])

    session = resolve_session(user, users=MissingUsers())

    assert session.is_authenticated
    assert session.role is None


def test_lookup_failure_resolves_to_no_role(app, users):
    user = db.session.get(User, users[UserRole.ADMIN])

    session = resolve_session(user, users=BrokenUsers())

    assert session.role is None
    assert session.ready
