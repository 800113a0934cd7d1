from collections import namedtuple

from flask import current_app, g

from sikeu.errors import FetchError
from sikeu.services.records import UserService


class AuthSession(namedtuple('AuthSession', ['principal', 'role', 'ready'])):
    """Hasil role resolver: siapa yang login, role-nya, dan apakah sudah selesai di-resolve."""
    __slots__ = ()

    @property
    def is_authenticated(self):
        return self.principal is not None

    @property
    def principal_id(self):
        if self.principal is None:
            return None
        return int(self.principal.get_id())


ANONYMOUS = AuthSession(principal=None, role=None, ready=True)
PENDING = AuthSession(principal=None, role=None, ready=False)


def resolve_session(principal, users=None):
    """
    Baca record ``users`` milik principal dan ambil role-nya.

    Record tidak ada atau lookup gagal -> role None (dicatat di log), request
    tetap berjalan dan guard akan mengarahkan ke halaman login.
    """
    if principal is None or not getattr(principal, 'is_authenticated', False):
        return ANONYMOUS

    users = users or UserService()
    principal_id = principal.get_id()
    try:
        account = users.get(principal_id)
    except FetchError:
        current_app.logger.warning("Role lookup failed for principal %s", principal_id, exc_info=True)
        return AuthSession(principal=principal, role=None, ready=True)

    if account is None:
        current_app.logger.warning("User record not found for principal %s", principal_id)
        return AuthSession(principal=principal, role=None, ready=True)

    return AuthSession(principal=principal, role=account.role, ready=True)


def current_session():
    return g.get('auth_session', ANONYMOUS)
