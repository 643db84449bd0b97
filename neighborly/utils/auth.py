"""Shared authentication utilities.

Identity comes from a JWT bearer token minted by the auth provider (OTP
login lives outside this service). The decorators below verify the token
and pass the caller's id into the route as an explicit parameter.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import request, current_app
import jwt

from neighborly.errors import Unauthorized


def create_access_token(user_id, expires_in=None):
    """Sign a token for ``user_id`` with the app's JWT secret.

    Used by the auth provider integration and by the test-suite.
    """
    if expires_in is None:
        expires_in = current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    payload = {
        'user_id': str(user_id),
        'exp': datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm='HS256')


def _decode_user_id(auth_header):
    # Support both "Bearer <token>" and raw token formats
    token = auth_header.split(' ')[1] if ' ' in auth_header else auth_header
    payload = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])
    user_id = payload.get('user_id')
    if not user_id:
        raise jwt.InvalidTokenError('user_id claim missing')
    return str(user_id)


def token_required(f):
    """
    Decorator to require valid JWT token.

    Extracts user_id from JWT token and passes it as the first argument
    to the decorated function.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route(current_user_id):
            return jsonify({'user_id': current_user_id})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            raise Unauthorized('Token is missing')

        try:
            current_user_id = _decode_user_id(auth_header)
        except jwt.ExpiredSignatureError:
            raise Unauthorized('Token has expired')
        except (jwt.InvalidTokenError, IndexError):
            raise Unauthorized('Token is invalid')

        return f(current_user_id, *args, **kwargs)
    return decorated


def token_optional(f):
    """
    Decorator that optionally validates JWT token.

    If a valid token is provided, extracts user_id. Otherwise, passes None.
    Used by public read endpoints that reveal more to the task's parties.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')
        current_user_id = None

        if auth_header:
            try:
                current_user_id = _decode_user_id(auth_header)
            except (jwt.InvalidTokenError, IndexError):
                current_user_id = None

        return f(current_user_id, *args, **kwargs)
    return decorated
