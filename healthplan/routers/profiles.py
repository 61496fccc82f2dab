"""User profile router."""

import uuid

from fastapi import APIRouter, Depends, Response, status

from healthplan.dependencies import get_profile, get_profile_store
from healthplan.schemas.api import ErrorResponse
from healthplan.schemas.user_profile import UserProfile, UserProfileUpdate
from healthplan.services.user_profile import ProfileStore

router = APIRouter(prefix="/api/users/{user_id}/profile", tags=["profiles"])


@router.get(
    "",
    response_model=UserProfile,
    responses={
        200: {"description": "The user's profile"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def get_user_profile(profile: UserProfile = Depends(get_profile)) -> UserProfile:
    """Get the profile plan generation personalises against."""
    return profile


@router.put(
    "",
    response_model=UserProfile,
    responses={
        200: {"description": "Profile replaced"},
        201: {"description": "Profile created"},
        503: {"model": ErrorResponse, "description": "Profile store unavailable"},
    },
)
async def put_user_profile(
    user_id: uuid.UUID,
    update: UserProfileUpdate,
    response: Response,
    profile_store: ProfileStore = Depends(get_profile_store),
) -> UserProfile:
    """Create or replace the user's profile.

    Body specifications, preferences and goals are replaced as a whole.
    """
    profile = UserProfile(id=user_id, **update.model_dump())
    if await profile_store.save(profile):
        response.status_code = status.HTTP_201_CREATED
    return profile
