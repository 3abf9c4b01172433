"""Verified caller identity supplied per request."""
import json
from typing import Any, FrozenSet, Optional

from pydantic import BaseModel, field_validator

from ticketflow.core.logger import get_logger

logger = get_logger(__name__)


def parse_managed_departments(raw: Any) -> FrozenSet[str]:
    """
    Normalize managed departments into a set of department codes.

    Accepts a list/set/tuple, legacy JSON text (e.g. '["HR", "FINANCE"]'),
    or None. Malformed legacy data is logged and treated as no departments.
    """
    if raw is None or raw == "":
        return frozenset()

    value = raw
    if isinstance(raw, (bytes, str)):
        try:
            value = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Malformed managed_departments value ignored: {raw!r}")
            return frozenset()

    if not isinstance(value, (list, set, tuple, frozenset)):
        logger.warning(f"Unexpected managed_departments type ignored: {type(value).__name__}")
        return frozenset()

    return frozenset(str(item) for item in value if isinstance(item, str) and item)


class Identity(BaseModel):
    """Verified identity of the caller."""
    id: int
    role: str = ""
    department: Optional[str] = None
    is_manager: bool = False
    managed_departments: FrozenSet[str] = frozenset()

    @field_validator("managed_departments", mode="before")
    @classmethod
    def _normalize_departments(cls, value):
        return parse_managed_departments(value)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value):
        return value or ""

    @classmethod
    def from_user(cls, user) -> "Identity":
        """Build an identity from a User row."""
        return cls(
            id=user.id,
            role=user.role,
            department=user.department,
            is_manager=bool(user.is_manager),
            managed_departments=user.managed_departments,
        )
