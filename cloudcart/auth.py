# cloudcart/auth.py
"""
Bearer token issue/verification and the decorators guarding the API.

Tokens are self-contained: a signed, timestamped payload carrying the user id.
Nothing is kept server side, so verification is a signature + age check
followed by a user lookup.
"""
import logging
from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from .errors import Forbidden, Unauthenticated
from .models import db, MAX_ID, User

logger = logging.getLogger(__name__)

TOKEN_SALT = 'cloudcart-auth-token'
DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 60 * 60


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps({'id': user.id})


def verify_token(token):
    """Resolve a bearer token to a User or raise Unauthenticated."""
    if not token:
        raise Unauthenticated('No token provided')
    max_age = current_app.config.get('TOKEN_MAX_AGE', DEFAULT_TOKEN_MAX_AGE)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        raise Unauthenticated('Token expired')
    except BadSignature:
        raise Unauthenticated('Invalid token')

    user_id = payload.get('id') if isinstance(payload, dict) else None
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not 0 < user_id <= MAX_ID:
        raise Unauthenticated('Invalid token')
    user = db.session.get(User, user_id)
    if user is None:
        raise Unauthenticated('Invalid token')
    return user


def bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return None


def login_required(f):
    @wraps(f)
    def wrapped(*args, **kwargs):
        g.user = verify_token(bearer_token())
        return f(*args, **kwargs)
    return wrapped


def admin_required(f):
    @wraps(f)
    @login_required
    def wrapped(*args, **kwargs):
        if not g.user.is_admin:
            logger.warning('User %s denied admin access to %s', g.user.id, request.path)
            raise Forbidden('Admin access required')
        return f(*args, **kwargs)
    return wrapped
