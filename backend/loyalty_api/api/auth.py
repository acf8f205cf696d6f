"""
Authentication API endpoints
- Registration and login (cookie + bearer token)
- Logout and current-user lookup
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from loyalty_api.core.auth import (
    TokenUser,
    create_access_token,
    extract_token,
    get_current_user,
    hash_password,
    hash_token,
    security,
    verify_password,
)
from loyalty_api.core.config import settings
from loyalty_api.core.rate_limit import get_client_ip, login_limiter
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.repositories.user_repository import (
    ActivityRepository,
    SessionRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# =============================================================================
# Pydantic Models
# =============================================================================

class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., alias="confirmPassword")
    first_name: str = Field(..., min_length=2, alias="firstName")
    last_name: str = Field(..., min_length=2, alias="lastName")
    phone: Optional[str] = None
    marketing_consent: bool = Field(False, alias="marketingConsent")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.JWT_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, request: Request):
    """Create a customer account with a Bronze loyalty profile"""
    try:
        if body.password != body.confirm_password:
            raise HTTPException(status_code=400, detail="Passwords don't match")

        repo = UserRepository()
        email = body.email.lower()
        if repo.email_exists(email):
            raise HTTPException(status_code=409, detail="User with this email already exists")

        user = repo.register(
            email=email,
            password_hash=hash_password(body.password),
            first_name=body.first_name.strip(),
            last_name=body.last_name.strip(),
            phone=body.phone,
            marketing_consent=body.marketing_consent,
            ip_address=get_client_ip(request),
        )

        return {
            "success": True,
            "message": "User registered successfully",
            "user": user.to_dict(),
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/login")
async def login(body: LoginRequest, request: Request, response: Response):
    """
    Sign in with email and password.

    Failed attempts are counted per client IP; after LOGIN_MAX_ATTEMPTS
    failures inside the window further attempts get 429.
    """
    client_ip = get_client_ip(request)
    allowed, retry_after = login_limiter.check(client_ip)
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
            headers={"Retry-After": str(retry_after)}
        )

    try:
        credentials = UserRepository().find_credentials_by_email(body.email)
        if credentials is None or not verify_password(body.password, credentials[1]):
            login_limiter.record_failure(client_ip)
            raise HTTPException(status_code=401, detail="Invalid email or password")

        user, _ = credentials
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Account is deactivated")

        login_limiter.reset(client_ip)

        token, expires_at = create_access_token(user.id, user.email, user.role)
        user_agent = request.headers.get("user-agent")
        SessionRepository().create(user.id, hash_token(token), expires_at, client_ip, user_agent)
        UserRepository().update_last_login(user.id)
        ActivityRepository().log(user.id, "login", "User logged in", client_ip, user_agent)

        _set_auth_cookie(response, token)
        logger.info(f"User {user.id} logged in from {client_ip}")

        return {
            "success": True,
            "message": "Login successful",
            "user": user.to_dict(),
            "token": token,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
):
    """Revoke the current session (if any) and clear the cookie"""
    token = extract_token(request, credentials)
    if token:
        try:
            SessionRepository().revoke(hash_token(token))
        except Exception as e:
            logger.warning(f"Session revoke failed during logout: {e}")

    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def me(user: TokenUser = Depends(get_current_user)):
    """The signed-in user, plus loyalty data for customers"""
    try:
        current = UserRepository().find_by_id(user.id)
        if current is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        if not current.is_active:
            raise HTTPException(status_code=403, detail="Account is deactivated")

        data = {"user": current.to_dict()}

        if current.role == "customer":
            customer = CustomerRepository().find_by_user_id(current.id)
            if customer:
                data["user"]["loyalty"] = {
                    "points": customer.points,
                    "totalSpent": customer.total_spent,
                    "visitCount": customer.visit_count,
                    "tier": customer.customer_tier,
                    "memberStatus": customer.member_status,
                    "enrollmentDate": customer.enrollment_date.isoformat() if customer.enrollment_date else None,
                }

        return data

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching current user: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
