"""Session dependencies.

Every authenticated request decodes the bearer token and re-runs the session
resolver, so role changes and removals take effect immediately.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.kithgrid.api.dependencies.services import SessionResolverDep
from src.kithgrid.core.exceptions import AuthError
from src.kithgrid.core.logging import bind_session_context
from src.kithgrid.core.permissions import Capability, require_capability
from src.kithgrid.core.security import SESSION_TOKEN_TYPE, decode_token
from src.kithgrid.schemas.session import SessionContext


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_session_context(
    resolver: SessionResolverDep,
    authorization: Annotated[str | None, Header()] = None,
) -> SessionContext:
    """Resolve a fresh SessionContext from the bearer token."""
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Missing or invalid authorization header")

    payload = decode_token(authorization[7:])
    if payload is None:
        raise _unauthorized("Invalid or expired token")
    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    email = payload.get("email")
    if not email or not payload.get("sub"):
        raise _unauthorized("Invalid token payload")

    prior_tenant_id: UUID | None = None
    if payload.get("tenant_id"):
        try:
            prior_tenant_id = UUID(payload["tenant_id"])
        except ValueError as e:
            raise _unauthorized("Invalid tenant in token") from e

    try:
        context = await resolver.resolve(email, prior_tenant_id)
    except AuthError as e:
        # Identity removed since the token was issued
        raise _unauthorized("Invalid or expired token") from e

    if str(context.identity_id) != payload["sub"]:
        raise _unauthorized("Invalid token payload")

    bind_session_context(context.identity_id, context.active_tenant_id, context.email)
    return context


CurrentSession = Annotated[SessionContext, Depends(get_session_context)]


async def require_super_admin(context: CurrentSession) -> SessionContext:
    require_capability(context, Capability.IS_SUPER_ADMIN)
    return context


SuperAdminSession = Annotated[SessionContext, Depends(require_super_admin)]
