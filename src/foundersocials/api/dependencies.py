"""Shared API dependencies for authentication and service injection."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from foundersocials.core.security import decode_access_token
from foundersocials.db.session import get_db
from foundersocials.models import User
from foundersocials.services.billing import (
    PaypalClient,
    StripeGateway,
    get_paypal_client,
    get_stripe_gateway,
)
from foundersocials.services.email import Mailer, get_mailer
from foundersocials.services.external_access import WebhookNotifier, get_webhook_notifier
from foundersocials.services.moderation import CommentModerator, get_comment_moderator
from foundersocials.services.realtime import ConnectionManager, get_connection_manager

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
    except JWTError as err:
        raise _credentials_error() from err

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as err:
        raise _credentials_error() from err

    user = db.get(User, user_id)
    if user is None:
        raise _credentials_error("User not found")
    return user


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or the user no longer exists
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")
    return _user_from_token(credentials.credentials, db)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Like :func:`get_current_user` but returns None for anonymous requests."""
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)


CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]

ModeratorDep = Annotated[CommentModerator, Depends(get_comment_moderator)]
StripeDep = Annotated[StripeGateway, Depends(get_stripe_gateway)]
PaypalDep = Annotated[PaypalClient, Depends(get_paypal_client)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
NotifierDep = Annotated[WebhookNotifier, Depends(get_webhook_notifier)]
BroadcasterDep = Annotated[ConnectionManager, Depends(get_connection_manager)]
