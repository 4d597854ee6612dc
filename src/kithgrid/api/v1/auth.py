"""Authentication and session endpoints."""

from fastapi import APIRouter, status

from src.kithgrid.api.dependencies import (
    AuthServiceDep,
    CurrentSession,
    RegistrationServiceDep,
    SessionResolverDep,
)
from src.kithgrid.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    SessionTokenResponse,
    SocialSignInRequest,
    SwitchTenantRequest,
)
from src.kithgrid.schemas.session import SessionContext, SessionRead
from src.kithgrid.services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(context: SessionContext) -> SessionTokenResponse:
    return SessionTokenResponse(
        access_token=AuthService.issue_token(context),
        session=SessionRead.from_context(context),
    )


@router.post(
    "/login",
    response_model=SessionTokenResponse,
    summary="Login",
    description="Verify email and password and resolve a session.",
)
async def login(request: LoginRequest, auth_service: AuthServiceDep) -> SessionTokenResponse:
    context, token = await auth_service.login(request.email, request.password)
    return SessionTokenResponse(access_token=token, session=SessionRead.from_context(context))


@router.post(
    "/register",
    response_model=SessionTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an identity, optionally joining a community by slug.",
)
async def register(
    request: RegisterRequest,
    registration_service: RegistrationServiceDep,
    resolver: SessionResolverDep,
) -> SessionTokenResponse:
    identity = await registration_service.register(
        email=request.email,
        password=request.password,
        display_name=request.display_name,
        tenant_slug=request.tenant_slug,
    )
    context = await resolver.resolve(identity.email)
    return _token_response(context)


@router.post(
    "/social",
    response_model=SessionTokenResponse,
    summary="Social sign-in",
    description="Exchange a signed provider assertion for a session.",
)
async def social_sign_in(
    request: SocialSignInRequest, auth_service: AuthServiceDep
) -> SessionTokenResponse:
    context, token = await auth_service.login_with_assertion(request.assertion)
    return SessionTokenResponse(access_token=token, session=SessionRead.from_context(context))


@router.post(
    "/refresh",
    response_model=SessionTokenResponse,
    summary="Refresh session",
    description="Re-resolve the session and issue a new token.",
)
async def refresh(context: CurrentSession) -> SessionTokenResponse:
    # The dependency already re-ran the resolver with the sticky tenant
    return _token_response(context)


@router.get("/session", response_model=SessionRead, summary="Current session")
async def current_session(context: CurrentSession) -> SessionRead:
    return SessionRead.from_context(context)


@router.post(
    "/switch-tenant",
    response_model=SessionTokenResponse,
    summary="Switch active community",
    description="Move the active community pointer, joining as Resident if needed.",
)
async def switch_tenant(
    request: SwitchTenantRequest,
    context: CurrentSession,
    resolver: SessionResolverDep,
) -> SessionTokenResponse:
    switched = await resolver.switch_active_tenant(context.identity_id, request.tenant_id)
    return _token_response(switched)
