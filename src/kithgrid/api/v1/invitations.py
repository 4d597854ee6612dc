"""Invitation code endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.kithgrid.api.dependencies import (
    CurrentSession,
    InvitationServiceDep,
    RegistrationServiceDep,
    SessionResolverDep,
    SuperAdminSession,
    TenantRepo,
)
from src.kithgrid.schemas.auth import SessionTokenResponse
from src.kithgrid.schemas.invitation import (
    BulkIssueResult,
    InvitationBulkRequest,
    InvitationInfoResponse,
    InvitationIssueRequest,
    InvitationRead,
    JoinRequest,
    ReapResponse,
)
from src.kithgrid.schemas.session import SessionContext, SessionRead
from src.kithgrid.services import AuthService

router = APIRouter(prefix="/invitations", tags=["invitations"])


def _active_tenant(context: SessionContext) -> UUID:
    if context.active_tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No active community for this session",
        )
    return context.active_tenant_id


# =============================================================================
# Admin endpoints (active community, Admin role)
# =============================================================================


@router.post(
    "",
    response_model=InvitationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Issue invitation",
    description="Issue a single-use code for the active community. Admin role required.",
)
async def issue_invitation(
    request: InvitationIssueRequest,
    context: CurrentSession,
    invitation_service: InvitationServiceDep,
) -> InvitationRead:
    invitation = await invitation_service.issue(
        tenant_id=_active_tenant(context),
        email=request.email,
        role=request.role,
        issuer_membership_id=context.membership_id,
        actor=context,
        invited_name=request.invited_name,
    )
    return InvitationRead.from_invitation(invitation)


@router.post(
    "/bulk",
    response_model=BulkIssueResult,
    summary="Bulk issue invitations",
    description="Issue one code per entry; failed entries do not affect the others.",
)
async def issue_bulk(
    request: InvitationBulkRequest,
    context: CurrentSession,
    invitation_service: InvitationServiceDep,
) -> BulkIssueResult:
    return await invitation_service.issue_bulk(
        tenant_id=_active_tenant(context),
        entries=request.entries,
        issuer_membership_id=context.membership_id,
        actor=context,
    )


@router.get("", response_model=list[InvitationRead], summary="List invitations")
async def list_invitations(
    context: CurrentSession,
    invitation_service: InvitationServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> list[InvitationRead]:
    invitations = await invitation_service.list_invitations(
        _active_tenant(context), context, limit=limit, offset=offset
    )
    return [InvitationRead.from_invitation(inv) for inv in invitations]


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete invitation",
)
async def delete_invitation(
    invitation_id: UUID,
    context: CurrentSession,
    invitation_service: InvitationServiceDep,
) -> None:
    await invitation_service.delete_invitation(invitation_id, context)


@router.post(
    "/reap",
    response_model=ReapResponse,
    summary="Reap expired invitations",
    description="Persist the expired status for overdue codes. Super admin only.",
)
async def reap_expired(
    _: SuperAdminSession, invitation_service: InvitationServiceDep
) -> ReapResponse:
    return ReapResponse(expired=await invitation_service.reap_expired())


# =============================================================================
# Public endpoints
# =============================================================================


@router.get(
    "/code/{code}",
    response_model=InvitationInfoResponse,
    summary="Validate code",
    description="Check a code before sign-up. Codes match case-insensitively.",
)
async def validate_code(
    code: str,
    invitation_service: InvitationServiceDep,
    tenant_repo: TenantRepo,
) -> InvitationInfoResponse:
    invitation = await invitation_service.validate(code)
    tenant = await tenant_repo.get_by_id(invitation.tenant_id)
    return InvitationInfoResponse(
        tenant_id=invitation.tenant_id,
        tenant_name=tenant.name if tenant else "Unknown",
        email=invitation.email,
        invited_name=invitation.invited_name,
        role=invitation.role,
        expires_at=invitation.expires_at,
    )


@router.post(
    "/code/{code}/redeem",
    response_model=SessionTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Join with code",
    description="Redeem a code, creating the account if needed, and start a session.",
)
async def redeem_code(
    code: str,
    request: JoinRequest,
    registration_service: RegistrationServiceDep,
    resolver: SessionResolverDep,
) -> SessionTokenResponse:
    identity, membership = await registration_service.join_with_invitation(
        code=code,
        email=request.email,
        password=request.password,
        display_name=request.display_name,
    )
    context = await resolver.resolve(identity.email, membership.tenant_id)
    return SessionTokenResponse(
        access_token=AuthService.issue_token(context),
        session=SessionRead.from_context(context),
    )
