# ticketflow/services/auth_service.py
"""Bearer token verification"""
from datetime import timedelta
from typing import Dict, Any, Optional

import jwt

from ticketflow.core.config import JWT_SECRET, JWT_ALGORITHM
from ticketflow.core.logger import get_logger
from ticketflow.utils.datetime_utils import get_utc_now

logger = get_logger(__name__)


class AuthService:
    """Tokens are issued by the login service; this API verifies them."""

    @staticmethod
    def create_jwt_token(user_id: int, username: str, expires_hours: int = 24) -> str:
        """
        Create a signed token for a user (local development and tests).

        Args:
            user_id: User primary key
            username: Username
            expires_hours: Lifetime of the token

        Returns:
            JWT token string
        """
        now = get_utc_now()
        payload = {
            "id": user_id,
            "username": username,
            "exp": now + timedelta(hours=expires_hours),
            "iat": now,
        }
        return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)

    @staticmethod
    def verify_jwt_token(token: str) -> Optional[Dict[str, Any]]:
        """
        Verify and decode JWT token.

        Args:
            token: JWT token string

        Returns:
            Token payload dict if valid, None otherwise
        """
        try:
            payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
            return payload
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None
