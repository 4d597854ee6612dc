"""Membership ledger endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from src.kithgrid.api.dependencies import CurrentSession, MembershipServiceDep
from src.kithgrid.schemas.membership import MemberRead, MembershipRead, SetRolesRequest

router = APIRouter(tags=["memberships"])


@router.get(
    "/memberships",
    response_model=list[MembershipRead],
    summary="List own memberships",
)
async def list_own_memberships(
    context: CurrentSession, membership_service: MembershipServiceDep
) -> list[MembershipRead]:
    memberships = await membership_service.find_memberships(context.identity_id)
    return [MembershipRead.model_validate(m) for m in memberships]


@router.get(
    "/tenants/{tenant_id}/members",
    response_model=list[MemberRead],
    summary="List community members",
    description="Member directory. Admin or Board Member role required.",
)
async def list_members(
    tenant_id: UUID,
    context: CurrentSession,
    membership_service: MembershipServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> list[MemberRead]:
    rows = await membership_service.list_tenant_members(
        tenant_id, context, limit=limit, offset=offset
    )
    return [MemberRead.from_pair(membership, identity) for membership, identity in rows]


@router.put(
    "/memberships/{membership_id}/roles",
    response_model=MembershipRead,
    summary="Set roles",
    description="Replace a membership's role set. Admin role required.",
)
async def set_roles(
    membership_id: UUID,
    request: SetRolesRequest,
    context: CurrentSession,
    membership_service: MembershipServiceDep,
) -> MembershipRead:
    membership = await membership_service.set_active_role(membership_id, request.roles, context)
    return MembershipRead.model_validate(membership)


@router.delete(
    "/memberships/{membership_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove member",
    description="Hard delete a membership. Admin role required.",
)
async def remove_membership(
    membership_id: UUID,
    context: CurrentSession,
    membership_service: MembershipServiceDep,
) -> None:
    await membership_service.remove_membership(membership_id, context)
