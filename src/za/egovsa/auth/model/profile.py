"""User profile data model.

Provides the SQLAlchemy model for the `profiles` table shared by the mobile app and the
REST backend, and the upsert statement used by registration and PIN reset.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Mapped, mapped_column

from za.egovsa.auth.model.base import Base, str64, str255, str1024


class Profile(Base):
    """Application-level user record keyed by the provider's user id.

    The `pin` column holds the SHA-256 hex digest of the user's PIN. It is written on
    registration and PIN reset and never read back by the auth core.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str255]
    last_name: Mapped[str255]
    email: Mapped[str255]
    phone: Mapped[Optional[str64]]
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    full_name: Mapped[Optional[str255]]
    avatar_url: Mapped[Optional[str1024]]
    date_of_birth: Mapped[Optional[str64]]
    is_verified: Mapped[Optional[bool]] = mapped_column(Boolean)
    residential_address: Mapped[Optional[str1024]]
    postal_address: Mapped[Optional[str1024]]
    id_number: Mapped[Optional[str64]]
    profile_photo_url: Mapped[Optional[str1024]]
    gender: Mapped[Optional[str64]]
    push_notifications_enabled: Mapped[Optional[bool]] = mapped_column(Boolean)
    push_token: Mapped[Optional[str255]]
    pin: Mapped[Optional[str64]]

    __table_args__ = (Index("idx_profiles_email", "email"),)


def upsert_profile_stmt(profile_id: str, created_at: datetime, **values: Any):
    """Create PostgreSQL upsert statement for profile records.

    Inserts a new profile or updates only the given columns of an existing one, returning
    the stored row. `created_at` is only used when the row is inserted.
    """
    return (
        insert(Profile)
        .values([{"id": profile_id, "created_at": created_at, **values}])
        .on_conflict_do_update(
            index_elements=["id"],
            set_=values,
        )
        .returning(Profile)
    )
