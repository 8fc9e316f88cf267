"""profiles

Revision ID: 5c1e7a92d04b
Revises:
Create Date: 2026-10-19 09:12:40.118203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e7a92d04b"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("date_of_birth", sa.String(64), nullable=True),
        sa.Column("is_verified", sa.Boolean, nullable=True),
        sa.Column("residential_address", sa.String(1024), nullable=True),
        sa.Column("postal_address", sa.String(1024), nullable=True),
        sa.Column("id_number", sa.String(64), nullable=True),
        sa.Column("profile_photo_url", sa.String(1024), nullable=True),
        sa.Column("gender", sa.String(64), nullable=True),
        sa.Column("push_notifications_enabled", sa.Boolean, nullable=True),
        sa.Column("push_token", sa.String(255), nullable=True),
        # SHA-256 hex digest of the PIN
        sa.Column("pin", sa.String(64), nullable=True),
    )
    op.create_index("idx_profiles_email", "profiles", ["email"])


def downgrade() -> None:
    op.drop_table("profiles")
