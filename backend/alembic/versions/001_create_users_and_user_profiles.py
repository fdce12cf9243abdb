"""Create users and user_profiles tables

Revision ID: 001
Revises: None
Create Date: 2025-01-10 00:00:00.000000+00:00

What:  Account table plus the optional one-to-one profile extension.
How:   user_profiles.user_id is unique and cascades on user deletion, so the
       profile upsert can key on it.

Rollback: downgrade() drops both tables (profile rows first).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("nama", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("npm", sa.String(50), nullable=True),
        sa.Column("jurusan", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default=sa.text("'user'")),
        sa.Column(
            "avatar_url",
            sa.String(512),
            nullable=True,
            comment="Public path under /uploads, set by the avatar upload",
        ),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("tanggal_lahir", sa.Date(), nullable=True),
        sa.Column("jenis_kelamin", sa.String(20), nullable=True),
        sa.Column("tinggi_badan", sa.Integer(), nullable=True, comment="Height in cm"),
        sa.Column("berat_badan", sa.Integer(), nullable=True, comment="Weight in kg"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        # ProfileService maps violations of this constraint to a 400
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("alamat", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        sa.Column("tanggal_lahir", sa.Date(), nullable=True),
        sa.Column("jenis_kelamin", sa.String(20), nullable=True),
        sa.Column("tinggi_badan", sa.Integer(), nullable=True),
        sa.Column("berat_badan", sa.Integer(), nullable=True),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_user_profiles_user_id"),
    )


def downgrade() -> None:
    """Destructive: all profile and account data is lost."""
    op.drop_table("user_profiles")
    op.drop_table("users")
