"""Guardian signup, login, logout and session endpoints."""

from fastapi import APIRouter, Depends, Response, status

from olympiad.auth import (
    SessionData,
    clear_session_cookie,
    require_guardian,
    set_session_cookie,
)
from olympiad.core.accounts import authenticate, get_account, signup_guardian, to_session
from olympiad.web.schemas import (
    AccountResponse,
    GuardianSignupRequest,
    LoginRequest,
    MessageResponse,
)

router = APIRouter(prefix="/api/participant/auth", tags=["participant-auth"])


@router.post("/signup", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: GuardianSignupRequest, response: Response) -> AccountResponse:
    """Register a guardian and log them in."""
    account = signup_guardian(
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        relationship=request.relationship,
        occupation=request.occupation,
        address=request.address,
        phone_number=request.phone_number,
    )
    set_session_cookie(response, to_session(account))
    return AccountResponse.model_validate(account)


@router.post("/login", response_model=AccountResponse)
async def login(credentials: LoginRequest, response: Response) -> AccountResponse:
    account = authenticate("guardian", credentials.email, credentials.password)
    set_session_cookie(response, to_session(account))
    return AccountResponse.model_validate(account)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    clear_session_cookie(response, "guardian")
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=AccountResponse)
async def me(session: SessionData = Depends(require_guardian)) -> AccountResponse:
    """Return the logged-in guardian."""
    return AccountResponse.model_validate(get_account("guardian", session.user_id))
