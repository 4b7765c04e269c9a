"""Admin login, logout and session endpoints."""

from fastapi import APIRouter, Depends, Response

from olympiad.auth import SessionData, clear_session_cookie, require_admin, set_session_cookie
from olympiad.core.accounts import authenticate, get_account, to_session
from olympiad.web.schemas import AccountResponse, LoginRequest, MessageResponse

router = APIRouter(prefix="/api/admin/auth", tags=["admin-auth"])


@router.post("/login", response_model=AccountResponse)
async def login(credentials: LoginRequest, response: Response) -> AccountResponse:
    """Check admin credentials and set the admin session cookie."""
    account = authenticate("admin", credentials.email, credentials.password)
    set_session_cookie(response, to_session(account))
    return AccountResponse.model_validate(account)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    clear_session_cookie(response, "admin")
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=AccountResponse)
async def me(session: SessionData = Depends(require_admin)) -> AccountResponse:
    """Return the logged-in admin."""
    return AccountResponse.model_validate(get_account("admin", session.user_id))
