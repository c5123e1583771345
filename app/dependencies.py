"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

WHY Dependency Injection?
=========================
1. Reusability: Write once, use in many routes
2. Testing: Easy to swap the database or the AI client in tests
3. Lifecycle Management: FastAPI handles creation/cleanup

Dependencies provided:
- Database sessions (per-request)
- Authentication (bearer token)
- The shared Gemini client
"""

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.gemini import GeminiClient, get_gemini_client

if TYPE_CHECKING:
    from app.models.user import User

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def get_trending(db: Session = Depends(get_db)):
#
# You can write:
#   def get_trending(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]
AIClient = Annotated[GeminiClient, Depends(get_gemini_client)]


# =============================================================================
# JWT Authentication (User Authentication)
# =============================================================================
# OAuth2PasswordBearer extracts the token from the
# "Authorization: Bearer <token>" header. Tokens are issued by the account
# service, tokenUrl only feeds the Swagger UI login form.

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=True,  # Raise 401 if token missing
)


def _user_from_token(db: Session, token: str):
    from app.models.user import User
    from app.services.security import verify_token_type

    payload = verify_token_type(token, "access")
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        return None

    return db.execute(
        select(User).where(User.id == int(user_id))
    ).scalar_one_or_none()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
):
    """
    Extract and validate the current user from JWT token.

    This dependency:
    1. Extracts the Bearer token from Authorization header
    2. Decodes and validates the JWT
    3. Looks up the user in the database
    4. Rejects inactive accounts

    Raises:
        HTTPException: 401 if token is invalid or user not found / inactive
    """
    user = _user_from_token(db, token)

    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# Type aliases for cleaner route signatures
CurrentUser = Annotated["User", Depends(get_current_user)]
