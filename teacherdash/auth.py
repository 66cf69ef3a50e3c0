"""
Optional Supabase JWT check for the TeacherDash API.

When REQUIRE_AUTH is on, every /api/ request needs ``Authorization: Bearer
<supabase access token>``; share links (published plans, SubDash) and the
health check stay open because the token in their URL is the credential.
"""
import os
import logging

import jwt
from flask import request, jsonify, g

logger = logging.getLogger(__name__)

SHARE_LINK_PREFIXES = ('/api/plans/', '/api/subdash/')
OPEN_PATHS = ('/api/health',)
JWT_AUDIENCE = 'authenticated'


def jwt_secret():
    secret = os.getenv('SUPABASE_JWT_SECRET')
    if not secret:
        raise RuntimeError('SUPABASE_JWT_SECRET not configured')
    return secret


def decode_user(token):
    """``{id, email, role}`` for a valid Supabase token, else None."""
    try:
        claims = jwt.decode(token, jwt_secret(), algorithms=['HS256'], audience=JWT_AUDIENCE)
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected token: %s", e)
        return None
    return {
        "id": claims.get('sub'),
        "email": claims.get('email', ''),
        "role": claims.get('role'),
    }


def needs_auth(path, method):
    if method == 'OPTIONS' or not path.startswith('/api/'):
        return False
    if path in OPEN_PATHS:
        return False
    return not path.startswith(SHARE_LINK_PREFIXES)


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    return token.strip() if scheme.lower() == 'bearer' else None


def init_auth(app):
    """Install the before_request hook. Register it ahead of the blueprints."""

    @app.before_request
    def check_auth():
        if not app.config.get('REQUIRE_AUTH') or not needs_auth(request.path, request.method):
            return None

        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = decode_user(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401
        g.user = user
        return None
