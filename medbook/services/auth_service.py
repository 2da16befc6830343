from sqlalchemy.orm import Session
from datetime import datetime
import logging

from ..models.user import User
from ..core.errors import ConflictError
from ..core.security import (
    verify_password, get_password_hash, create_token_pair,
    verify_token, AuthenticationError
)
from ..schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse
)

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> User:
        """Register a new user. Role profiles are created separately."""
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise ConflictError("Email already registered")

        new_user = User(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            is_active=True,
        )

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)

        logger.info(f"Registered user {new_user.id} with role {new_user.role.value}")
        return new_user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            User.email == login_data.email
        ).first()

        if not user or not user.password_hash or not verify_password(
            login_data.password, user.password_hash
        ):
            logger.warning(f"Failed login attempt for {login_data.email}")
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)

        return self._token_response(user)

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise AuthenticationError("Invalid refresh token")

        try:
            user_id = int(token_payload.sub or "")
        except ValueError:
            raise AuthenticationError("Invalid refresh token")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return self._token_response(user)

    def _token_response(self, user: User) -> TokenResponse:
        tokens = create_token_pair(user.id, user.email, user.role)
        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(user)
        )
