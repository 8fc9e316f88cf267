"""In-memory user profile and the patch type applied to it."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    """Signed-in user's profile as held in application state.

    Built from a `profiles` row; the PIN hash column is never copied in.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    date_of_birth: Optional[str] = None
    is_verified: Optional[bool] = None
    residential_address: Optional[str] = None
    postal_address: Optional[str] = None
    id_number: Optional[str] = None
    profile_photo_url: Optional[str] = None
    gender: Optional[str] = None
    push_notifications_enabled: Optional[bool] = None
    push_token: Optional[str] = None


class ProfilePatch(BaseModel):
    """Partial update for a UserProfile.

    Only fields that were explicitly set override the profile; setting a field to None
    clears it. `id` and `created_at` cannot be patched.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    date_of_birth: Optional[str] = None
    is_verified: Optional[bool] = None
    residential_address: Optional[str] = None
    postal_address: Optional[str] = None
    id_number: Optional[str] = None
    profile_photo_url: Optional[str] = None
    gender: Optional[str] = None
    push_notifications_enabled: Optional[bool] = None
    push_token: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def apply(self, profile: UserProfile) -> UserProfile:
        """Return a new profile with every set field of this patch applied.

        Raises:
            pydantic.ValidationError: If the patch clears first_name, last_name or email
        """
        return UserProfile.model_validate(
            {**profile.model_dump(), **self.model_dump(exclude_unset=True)}
        )
