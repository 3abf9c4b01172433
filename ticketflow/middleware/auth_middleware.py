# ticketflow/middleware/auth_middleware.py
"""Authentication dependency: bearer token -> caller identity"""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ticketflow.core.database import get_db
from ticketflow.core.logger import get_logger
from ticketflow.models.user import User
from ticketflow.schemas.identity import Identity
from ticketflow.services.auth_service import AuthService
from ticketflow.utils.exceptions import UnauthorizedError

logger = get_logger(__name__)


def get_token_from_header(request: Request) -> Optional[str]:
    """
    Extract JWT token from Authorization header.

    Expected format: "Bearer <token>"
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        raise UnauthorizedError("Invalid authorization header")

    return parts[1]


def get_current_identity(request: Request, db: Session = Depends(get_db)) -> Identity:
    """
    FastAPI dependency resolving the caller.

    The token's `id` claim names the user row; role, department and manager
    capabilities are always read from the database, never from the token.
    """
    token = get_token_from_header(request)
    if not token:
        raise UnauthorizedError("Missing authorization token")

    payload = AuthService.verify_jwt_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("id", payload.get("sub"))
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Token references unknown user {user_id}")
        raise UnauthorizedError("User not found")

    return Identity.from_user(user)
