from functools import wraps
from flask import abort
from sikeu.auth.session import current_session
from sikeu.utils.roles import can


def action_required(action):
    """
    Decorator untuk membatasi aksi tulis berdasarkan kebijakan role.
    Penggunaan: @action_required(MANAGE_STUDENTS)
    """
    def wrapper(fn):
        @wraps(fn)
        def decorated_view(*args, **kwargs):
            session = current_session()
            if not session.is_authenticated:
                return abort(401)
            if not can(session.role, action):
                return abort(403)  # Forbidden
            return fn(*args, **kwargs)
        return decorated_view
    return wrapper
