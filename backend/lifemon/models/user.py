"""
LifeMon Backend — User & UserProfile SQLAlchemy Models
=======================================================

What:  ORM models for the `users` and `user_profiles` tables.
Who:   ProfileService for reads/writes; Alembic for schema management.

Table Design:
    users          One row per account. Created by registration (another
                   route group); this package only updates descriptive columns
                   and avatar_url.
    user_profiles  Optional extension row keyed by user_id (unique). Created
                   lazily by the first profile upsert; a missing row is a
                   valid state, never an error.

    Both tables carry avatar_url and the same descriptive columns (bio, birth
    date, gender, height, weight). The avatar upload writes both; the profile
    update writes users without avatar_url and user_profiles with it, so the
    two avatar_url values may differ.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from lifemon.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    An account row.

    email is unique at the storage layer; a duplicate surfaces as an
    IntegrityError that ProfileService maps to ConflictError.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Identity ──────────────────────────────────────────────────────────
    nama: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default=text("''"))
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    npm: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    jurusan: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="user",
        server_default=text("'user'"),
    )

    # ── Descriptive ───────────────────────────────────────────────────────
    # Public path under /uploads, e.g. /uploads/avatars/avatar-1-....png
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tanggal_lahir: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    jenis_kelamin: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tinggi_badan: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    berat_badan: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class UserProfile(Base):
    """Optional per-user profile extension (at most one row per user)."""

    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    alamat: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    tanggal_lahir: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    jenis_kelamin: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    tinggi_badan: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    berat_badan: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<UserProfile(user_id={self.user_id}, updated_at='{self.updated_at}')>"
