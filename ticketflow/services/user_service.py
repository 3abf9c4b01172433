# ticketflow/services/user_service.py
"""Profile lookups and updates for the signed-in user"""
from typing import Any, Dict

from sqlalchemy.orm import Session

from ticketflow.core.logger import get_logger
from ticketflow.models.user import User
from ticketflow.schemas.common import parse_payload
from ticketflow.schemas.identity import Identity
from ticketflow.schemas.user import UpdateProfileRequest, UserResponse
from ticketflow.utils.exceptions import NotFoundError

logger = get_logger(__name__)


def serialize_user(user: User) -> Dict[str, Any]:
    return UserResponse.model_validate(user).model_dump(mode="json", by_alias=True)


class UserService:
    """Service for the caller's own user record"""

    @staticmethod
    def get_profile(db: Session, identity: Identity) -> User:
        user = db.get(User, identity.id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def update_profile(db: Session, identity: Identity, payload: dict) -> User:
        """
        Change the caller's display name.

        Raises:
            ValidationError: if the name is missing, blank or too long
        """
        request = parse_payload(UpdateProfileRequest, payload)
        user = UserService.get_profile(db, identity)

        user.name = request.name
        db.commit()
        db.refresh(user)

        logger.info(f"User {user.id} updated their profile")
        return user
