"""Shared API dependencies for authentication and error translation."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from meriter.core.errors import MeriterError, PermissionDeniedError
from meriter.core.security import decode_subject
from meriter.db.session import get_db
from meriter.models import User

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _user_from_token(token: str, db: Session) -> User:
    try:
        user_id = decode_subject(token)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Like ``get_current_user`` but returns None for anonymous requests."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]


def to_http_exception(err: MeriterError) -> HTTPException:
    """Translate a domain error into the matching HTTP error."""
    detail: str | dict[str, str] = err.message
    if isinstance(err, PermissionDeniedError):
        detail = {"reason": str(err.reason), "message": err.message}
    return HTTPException(status_code=err.http_status, detail=detail)
