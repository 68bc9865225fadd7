import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import AuthError, ConflictError, ValidationError
from ..core.security import (
    verify_password, get_password_hash, create_user_token, UserRole
)
from ..models.user import User
from ..schemas.auth import (
    UserLogin, UserSignup, TokenResponse, UserResponse, OAuthUserInfo
)

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserSignup) -> TokenResponse:
        """Register a new patient and log them in."""
        domain = user_data.email.rsplit("@", 1)[-1].lower()
        allowed = [d.lower() for d in settings.ALLOWED_EMAIL_DOMAINS]
        if allowed and domain not in allowed:
            raise ValidationError(
                f"Registration is only allowed for {' or '.join(allowed)} email domains"
            )

        # Check if user already exists
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise ConflictError("Email already registered. Please login instead.")

        new_user = User(
            email=user_data.email,
            name=user_data.name,
            password_hash=get_password_hash(user_data.password),
            role=UserRole.PATIENT,
            is_active=True,
        )

        try:
            self.db.add(new_user)
            self.db.commit()
        except IntegrityError:
            # Same email registered concurrently
            self.db.rollback()
            raise ConflictError("Email already registered. Please login instead.")

        self.db.refresh(new_user)

        logger.info(f"Registered patient {new_user.id}")
        return self._token_response(new_user)

    def authenticate_user(self, login_data: UserLogin, admin: bool = False) -> TokenResponse:
        """Password login. Admin accounts use a separate entry point."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        is_admin = user is not None and user.role == UserRole.ADMIN
        if user is None or is_admin != admin:
            raise AuthError(
                "Invalid credentials or not an admin account" if admin else "Invalid credentials"
            )

        # OAuth-only accounts have no password to check
        if not user.password_hash or not verify_password(
            login_data.password, user.password_hash
        ):
            raise AuthError("Invalid credentials")

        if not user.is_active:
            raise AuthError("Account is deactivated")

        return self._token_response(user)

    def oauth_login(self, oauth_data: OAuthUserInfo) -> TokenResponse:
        """Handle OAuth login/registration."""
        user = self.db.query(User).filter(
            User.oauth_provider == oauth_data.provider,
            User.oauth_id == oauth_data.oauth_id
        ).first()

        if not user:
            user = self.db.query(User).filter(
                User.email == oauth_data.email
            ).first()

            if user:
                # Link OAuth account to existing user
                user.oauth_provider = oauth_data.provider
                user.oauth_id = oauth_data.oauth_id
            else:
                user = User(
                    email=oauth_data.email,
                    name=oauth_data.name,
                    role=UserRole.PATIENT,  # Default role for OAuth users
                    oauth_provider=oauth_data.provider,
                    oauth_id=oauth_data.oauth_id,
                    is_active=True,
                )
                self.db.add(user)

        self.db.commit()
        self.db.refresh(user)

        if not user.is_active:
            raise AuthError("Account is deactivated")

        return self._token_response(user)

    @staticmethod
    def _token_response(user: User) -> TokenResponse:
        token = create_user_token(user.id, user.email, user.role)
        return TokenResponse(
            token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            user=UserResponse.model_validate(user)
        )
