# ticketflow/routes/user_routes.py
"""Current user and profile routes"""
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ticketflow.core.database import get_db
from ticketflow.middleware.auth_middleware import get_current_identity
from ticketflow.schemas.identity import Identity
from ticketflow.services.user_service import UserService, serialize_user

router = APIRouter(tags=["Users"])


@router.get("/api/auth/me")
def get_me(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """The user the bearer token belongs to"""
    return {"user": serialize_user(UserService.get_profile(db, identity))}


@router.get("/api/profile")
def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Get the caller's profile"""
    return {"user": serialize_user(UserService.get_profile(db, identity))}


@router.put("/api/profile")
def update_profile(
    payload: dict = Body(...),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Update the caller's display name"""
    user = UserService.update_profile(db, identity, payload)
    return {"user": serialize_user(user), "message": "Profile updated successfully"}
