from flask import (
    Blueprint,
    render_template,
    redirect,
    request,
    url_for,
    g,
)
from flask_login import current_user
from werkzeug.exceptions import NotFound

from sikeu.auth.guard import LOADING, REDIRECT, decide
from sikeu.auth.session import resolve_session

main_bp = Blueprint('main', __name__)


# --- ROUTE GUARD ---
@main_bp.before_app_request
def guard_request():
    """
    Cek setiap request:
    Resolve role user yang login, lalu tentukan apakah path boleh diakses,
    harus menunggu, atau dialihkan.
    """
    session = resolve_session(current_user)
    g.auth_session = session

    known = not isinstance(request.routing_exception, NotFound)
    decision = decide(session, request.path, known=known)

    if decision.kind == LOADING:
        return render_template('loading.html'), 503

    if decision.kind == REDIRECT and decision.target != request.path:
        return redirect(decision.target)


@main_bp.route('/')
def index():
    # Guard sudah mengarahkan ke dashboard sesuai role
    return redirect(url_for('auth.login'))
