"""
CiviSure - Authentication Routes
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.auth import (
    AuthContext,
    register_user,
    login,
    logout,
    optional_auth,
    set_session_cookie,
    unsign_session_id,
    SESSION_COOKIE_NAME,
)
from civisure.schemas import RegisterRequest, LoginRequest


router = APIRouter()


# =============================================================================
# REGISTER
# =============================================================================

@router.post("/register", status_code=201)
async def register_submit(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Create a citizen account. Does not log the user in."""
    user = await register_user(
        db=db,
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        phone=body.phone,
    )
    return {
        "success": True,
        "message": "Registration successful",
        "user_id": user.id,
    }


# =============================================================================
# LOGIN
# =============================================================================

@router.post("/login")
async def login_submit(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Verify credentials and set the session cookie."""
    user, session = await login(db, body.email, body.password)

    response = JSONResponse({
        "success": True,
        "message": "Login successful",
        "user": {
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
        },
    })
    set_session_cookie(response, session.id)
    return response


# =============================================================================
# LOGOUT
# =============================================================================

@router.post("/logout")
async def logout_submit(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """End the session (if any) and clear the cookie."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    await logout(db, unsign_session_id(token) if token else None)

    response = JSONResponse({"success": True, "message": "Logout successful"})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


# =============================================================================
# SESSION CHECK
# =============================================================================

@router.get("/check")
async def check_session(auth: Optional[AuthContext] = Depends(optional_auth)):
    if not auth:
        return {"success": True, "authenticated": False}
    return {"success": True, "authenticated": True, "user": auth.public()}
