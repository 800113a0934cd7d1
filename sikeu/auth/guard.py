"""
Route guard: tabel keputusan statis ``(session, path) -> allow | redirect | loading``.

Tidak menyimpan state apa pun; dipanggil di setiap request oleh hook
``before_app_request`` di blueprint main.
"""
from collections import namedtuple

from sikeu.utils.roles import can_access_path, home_for, path_in_prefix

ALLOW = 'allow'
REDIRECT = 'redirect'
LOADING = 'loading'

GuardDecision = namedtuple('GuardDecision', ['kind', 'target'])

ALLOWED = GuardDecision(ALLOW, None)
WAIT = GuardDecision(LOADING, None)

LOGIN_PATH = '/login'
ROOT_PATH = '/'

PUBLIC_PREFIXES = (
    '/login',
    '/logout',
    '/register',
    '/forgot-password',
    '/reset-password',
    '/static',
    '/api',
)
PROTECTED_ROOTS = ('/admin', '/parent')


def redirect_to(target):
    return GuardDecision(REDIRECT, target)


def is_public(path):
    return any(path_in_prefix(path, prefix) for prefix in PUBLIC_PREFIXES)


def is_protected(path):
    return path == ROOT_PATH or any(path_in_prefix(path, root) for root in PROTECTED_ROOTS)


def decide(session, path, known=True):
    # 1. Role masih di-resolve
    if not session.ready:
        return WAIT

    if is_public(path):
        return ALLOWED if known else redirect_to(ROOT_PATH)

    # Path di luar semua section
    if not is_protected(path):
        return redirect_to(ROOT_PATH)

    # 2. Belum login
    if not session.is_authenticated:
        return redirect_to(LOGIN_PATH)

    # 3-5. Root diarahkan ke dashboard role; role tanpa dashboard (guru) ke login
    if path == ROOT_PATH:
        return redirect_to(home_for(session.role) or LOGIN_PATH)

    if not can_access_path(session.role, path):
        return redirect_to(LOGIN_PATH)

    # 6. Sub-path yang tidak dikenal
    if not known:
        return redirect_to(ROOT_PATH)

    return ALLOWED
