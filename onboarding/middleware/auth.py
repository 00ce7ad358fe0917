from functools import wraps
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app, request

from onboarding.db.models import User
from onboarding.exceptions import AuthenticationError, ServiceException

JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)


class AuthService:
    """
    Only reads identity out of bearer tokens; issuing them for real users is
    someone else's job. create_access_token exists for scripts/setup_org.py.
    """

    @staticmethod
    def create_access_token(user: User, secret: str = None, algorithm: str = None) -> str:
        payload = {
            'user_id': user.id,
            'email': user.email,
            'role': user.role,
            'organisation_id': user.organisation_id,
            'exp': datetime.now(timezone.utc) + JWT_ACCESS_TOKEN_EXPIRES
        }
        return jwt.encode(
            payload,
            secret or current_app.config['JWT_SECRET_KEY'],
            algorithm=algorithm or current_app.config['JWT_ALGORITHM']
        )

    @staticmethod
    def verify_token(token: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                current_app.config['JWT_SECRET_KEY'],
                algorithms=[current_app.config['JWT_ALGORITHM']]
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired", "TOKEN_EXPIRED")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token", "INVALID_TOKEN")

        if 'user_id' not in payload or 'organisation_id' not in payload:
            raise AuthenticationError("Token has no organisation scope", "INVALID_TOKEN")
        return payload


def client_session_id() -> str:
    """The browser tab / app session the request came from"""
    session_id = request.headers.get('X-Client-Session')
    if session_id:
        return session_id
    return f"user-{request.user['user_id']}"


def requires_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None
        auth_header = request.headers.get('Authorization')

        if auth_header:
            try:
                token = auth_header.split(" ")[1]  # Bearer <token>
            except IndexError:
                raise AuthenticationError("Invalid token format", "INVALID_TOKEN_FORMAT")

        if not token:
            raise AuthenticationError("Token is missing", "TOKEN_MISSING")

        try:
            request.user = AuthService.verify_token(token)
        except ServiceException as e:
            raise AuthenticationError(str(e), e.error_code)
        return f(*args, **kwargs)

    return decorated
