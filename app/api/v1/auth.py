from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import httpx
from urllib.parse import urlencode

from ...core.database import get_db, get_redis
from ...core.config import settings
from ...core.exceptions import ValidationError
from ...core.security import generate_oauth_state, OAuthProvider
from ...api.deps import get_current_user, rate_limit_check
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, UserSignup, TokenResponse, UserResponse, OAuthCallback, OAuthUserInfo
)
from ...schemas.common import ApiResponse
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/signup", response_model=ApiResponse[TokenResponse], status_code=201)
def signup(
    user_data: UserSignup,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient account."""
    auth_service = AuthService(db)
    return ApiResponse(data=auth_service.register_user(user_data))

@router.post("/login", response_model=ApiResponse[TokenResponse])
def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate a patient or doctor."""
    auth_service = AuthService(db)
    return ApiResponse(data=auth_service.authenticate_user(login_data))

@router.post("/admin/login", response_model=ApiResponse[TokenResponse])
def admin_login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate an admin."""
    auth_service = AuthService(db)
    return ApiResponse(data=auth_service.authenticate_user(login_data, admin=True))

@router.get("/me", response_model=ApiResponse[UserResponse])
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return ApiResponse(data=UserResponse.model_validate(current_user))

# OAuth 2.0 routes
@router.get("/oauth/{provider}/login")
def oauth_login(
    provider: str,
    redis_client = Depends(get_redis)
):
    """Initiate OAuth login flow."""
    if provider not in [p.value for p in OAuthProvider]:
        raise ValidationError("Unsupported OAuth provider")

    # State parameter for CSRF protection, valid for 10 minutes
    state = generate_oauth_state()
    redis_client.setex(f"oauth_state:{state}", 600, provider)

    params = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "redirect_uri": settings.OAUTH_REDIRECT_URI,
        "scope": "openid email profile",
        "response_type": "code",
        "state": state,
    }
    auth_url = f"https://accounts.google.com/o/oauth2/auth?{urlencode(params)}"
    return ApiResponse(data={"auth_url": auth_url})

@router.post("/oauth/callback", response_model=ApiResponse[TokenResponse])
async def oauth_callback(
    callback_data: OAuthCallback,
    db: Session = Depends(get_db),
    redis_client = Depends(get_redis)
):
    """Handle OAuth callback."""
    stored_provider = redis_client.get(f"oauth_state:{callback_data.state}")
    if not stored_provider:
        raise ValidationError("Invalid or expired state parameter")

    # Delete used state
    redis_client.delete(f"oauth_state:{callback_data.state}")

    if stored_provider == OAuthProvider.GOOGLE.value:
        oauth_user = await _fetch_google_user(callback_data.code)
        return ApiResponse(data=AuthService(db).oauth_login(oauth_user))

    raise ValidationError("Unsupported OAuth provider")

async def _fetch_google_user(code: str) -> OAuthUserInfo:
    """Exchange an authorization code for the Google profile."""
    token_data = {
        "client_id": settings.GOOGLE_CLIENT_ID,
        "client_secret": settings.GOOGLE_CLIENT_SECRET,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": settings.OAUTH_REDIRECT_URI,
    }

    async with httpx.AsyncClient() as client:
        token_response = await client.post(
            "https://oauth2.googleapis.com/token",
            data=token_data
        )

        if token_response.status_code != 200:
            raise ValidationError("Failed to exchange code for token")

        access_token = token_response.json().get("access_token")

        user_response = await client.get(
            "https://www.googleapis.com/oauth2/v2/userinfo",
            headers={"Authorization": f"Bearer {access_token}"}
        )

        if user_response.status_code != 200:
            raise ValidationError("Failed to get user information")

        user_info = user_response.json()

    # Accounts without a public email get a synthetic one
    email = user_info.get("email") or f"google-{user_info['id']}@noemail.com"
    return OAuthUserInfo(
        email=email,
        name=user_info.get("name") or email.split("@")[0],
        oauth_id=str(user_info["id"]),
        provider=OAuthProvider.GOOGLE.value
    )
