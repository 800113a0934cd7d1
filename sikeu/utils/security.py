from urllib.parse import urlparse, urljoin

from flask import current_app, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

RESET_SALT = 'sikeu-password-reset'


def is_safe_url(target: str) -> bool:
    if not target:
        return False

    host_url = urlparse(request.host_url)
    redirect_url = urlparse(urljoin(request.host_url, target))

    return (
        redirect_url.scheme in ("http", "https")
        and host_url.netloc == redirect_url.netloc
    )


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=RESET_SALT)


def make_reset_token(user) -> str:
    # Hash password ikut ditandatangani: token mati setelah password diganti.
    return _serializer().dumps({'id': user.id, 'pw': (user.password_hash or '')[-12:]})


def read_reset_token(token: str, max_age: int):
    """Kembalikan payload token, atau None kalau rusak/kedaluwarsa."""
    try:
        return _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Expired password reset token used")
        return None
    except BadSignature:
        current_app.logger.warning("Invalid password reset token used")
        return None
