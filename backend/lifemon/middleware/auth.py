"""
LifeMon Backend — Caller Identity Middleware
==============================================

What:  Attaches the authenticated user id to each request (request.state.user_id).
How:   Verifies an `Authorization: Bearer <jwt>` header with settings.jwt_secret
       and reads the user id from the `id`, `userId` or `sub` claim.
Who:   Read by lifemon.dependencies.get_caller_id.

This middleware never rejects a request. Missing, malformed or expired tokens
leave user_id as None; endpoints that need a caller answer 400 through
require_caller_id. Issuing tokens belongs to the auth route group.
"""

import logging
from typing import Optional

import jwt
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lifemon.config import settings

logger = logging.getLogger(__name__)

USER_ID_CLAIMS = ("id", "userId", "sub")


def resolve_caller_id(authorization: Optional[str]) -> Optional[int]:
    """Extract the user id from a bearer token, or None."""
    if not authorization or not settings.jwt_secret:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    try:
        claims = jwt.decode(
            token.strip(),
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired bearer token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid bearer token: %s", str(e))
        return None

    for claim in USER_ID_CLAIMS:
        value = claims.get(claim)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.info("Bearer token claim '%s' is not a user id: %r", claim, value)
            return None
    return None


class CallerIdentityMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.user_id = resolve_caller_id(request.headers.get("Authorization"))
        return await call_next(request)
