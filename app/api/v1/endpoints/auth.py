"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CacheManagerDep, CurrentUser, DatabaseSession
from app.schemas.auth import LoginRequest, LoginResponse, Token, TokenRefresh
from app.schemas.users import UserCreate, UserResponse
from app.services.auth_service import AuthService

router = APIRouter()


def _login_response(user: dict, tokens: Token) -> LoginResponse:
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Register a patient account",
)
async def register(
    user_data: UserCreate,
    db: DatabaseSession,
    cache: CacheManagerDep,
) -> LoginResponse:
    """
    Self-register as a patient and receive a token pair.

    Staff accounts are created by administrators; any requested role is
    replaced by ``patient``.
    """
    user, tokens = await AuthService(cache).register_patient(db, user_data)
    return _login_response(user, tokens)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Log in with email and password",
)
async def login(
    credentials: LoginRequest,
    db: DatabaseSession,
    cache: CacheManagerDep,
) -> LoginResponse:
    """
    Exchange email and password for JWT tokens.

    Args:
        credentials: Email and password
        db: Database session
        cache: Cache manager

    Returns:
        Access token, refresh token, and user information
    """
    user, tokens = await AuthService(cache).login(db, credentials.email, credentials.password)
    return _login_response(user, tokens)


@router.get(
    "/me",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Current user profile",
)
async def me(current_user: CurrentUser) -> UserResponse:
    """Return the authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    tags=["Authentication"],
    summary="Refresh access token",
)
async def refresh_token(request: TokenRefresh, cache: CacheManagerDep) -> Token:
    """
    Refresh access token using refresh token.

    Args:
        request: Refresh token
        cache: Cache manager holding revoked tokens

    Returns:
        New access token and refresh token
    """
    return AuthService(cache).refresh_access_token(request.refresh_token)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Authentication"],
    summary="Logout and revoke tokens",
)
async def logout(request: TokenRefresh, cache: CacheManagerDep) -> None:
    """
    Logout user by revoking refresh token.

    Args:
        request: Refresh token to revoke
        cache: Cache manager holding revoked tokens
    """
    AuthService(cache).revoke_token(request.refresh_token)
