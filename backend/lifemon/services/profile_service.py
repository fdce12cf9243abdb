"""
LifeMon Backend — Profile Service (Business Logic)
====================================================

What:  Reads and writes the caller's profile across `users` and `user_profiles`.
How:   Plain async SQLAlchemy against the session injected per request.
Who:   Called by the users route group.

Update flow (PUT /api/users/profile):
    ┌──────────────┐    ┌──────────────────┐    ┌───────────────┐    ┌──────────┐
    │ update users │───▶│ upsert profiles  │───▶│    commit     │───▶│ re-read  │
    │ (no avatar)  │    │ (with avatar_url)│    │ (one tx)      │    │ merged   │
    └──────────────┘    └──────────────────┘    └───────────────┘    └──────────┘

    Both writes belong to one transaction: on any failure the session is
    rolled back and neither table changes.

Avatar flow (POST /api/users/profile/avatar):
    users.avatar_url and user_profiles.avatar_url are set to the same path in
    one transaction.

Error Handling Strategy:
    LifeMonError subclasses propagate as-is. SQLAlchemy errors are wrapped in
    DatabaseError with the driver text kept in context. A unique violation on
    users.email becomes ConflictError.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lifemon.exceptions import ConflictError, DatabaseError, LifeMonError, ValidationError
from lifemon.models.user import User, UserProfile
from lifemon.schemas.profile import AvatarData, ProfileData, ProfileUpdateRequest

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    "phone",
    "alamat",
    "bio",
    "avatar_url",
    "tanggal_lahir",
    "jenis_kelamin",
    "tinggi_badan",
    "berat_badan",
)


def _user_not_found(user_id: int) -> ValidationError:
    return ValidationError(message="User not found", field="user_id", context={"user_id": user_id})


def _merged_profile(user: User, profile: UserProfile) -> ProfileData:
    return ProfileData(
        id=user.id,
        nama=user.nama,
        email=user.email,
        npm=user.npm,
        jurusan=user.jurusan,
        role=user.role or "user",
        phone=profile.phone,
        alamat=profile.alamat,
        bio=profile.bio,
        avatar_url=profile.avatar_url,
        tanggal_lahir=profile.tanggal_lahir,
        jenis_kelamin=profile.jenis_kelamin,
        tinggi_badan=profile.tinggi_badan,
        berat_badan=profile.berat_badan,
    )


class ProfileService:
    """
    Business logic for the profile endpoints.

    Stateless: the session is passed to every call, so a single instance
    serves all requests.
    """

    async def _find_user(self, db: AsyncSession, user_id: int) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_profile_by_user_id(self, db: AsyncSession, user_id: int) -> Optional[ProfileData]:
        """
        Merged profile for a user that has a `user_profiles` row.

        Returns:
            ProfileData, or None when the profile row does not exist.
        """
        result = await db.execute(
            select(UserProfile, User)
            .join(User, User.id == UserProfile.user_id)
            .where(UserProfile.user_id == user_id)
        )
        row = result.first()
        if row is None:
            return None
        profile, user = row
        return _merged_profile(user, profile)

    async def get_profile(self, db: AsyncSession, user_id: int) -> ProfileData:
        """
        The caller's profile.

        Without a profile row, the base user is presented as a profile shell
        (id, nama, email, npm, jurusan, role, avatar_url=None). Reading never
        creates a row.

        Raises:
            ValidationError: the user does not exist (→ 400)
            DatabaseError:   query failure (→ 500)
        """
        try:
            profile = await self.get_profile_by_user_id(db, user_id)
            if profile is not None:
                return profile

            user = await self._find_user(db, user_id)
            if user is None:
                raise _user_not_found(user_id)

            return ProfileData(
                id=user.id,
                nama=user.nama,
                email=user.email,
                npm=user.npm,
                jurusan=user.jurusan,
                role=user.role or "user",
                avatar_url=None,
            )

        except LifeMonError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error fetching profile for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the profile. Please try again.",
                context={"user_id": user_id, "original_error": str(e)},
            )

    async def upsert_profile(
        self,
        db: AsyncSession,
        user_id: int,
        fields: Dict[str, Any],
    ) -> UserProfile:
        """
        Update-or-insert the caller's `user_profiles` row.

        Only the given columns are written; others keep their value (or
        default to NULL on insert). Flushes but does not commit: the caller
        owns the transaction.
        """
        unknown = set(fields) - set(PROFILE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown profile columns: {sorted(unknown)}")

        result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
        profile = result.scalar_one_or_none()

        if profile is None:
            profile = UserProfile(user_id=user_id, **fields)
            db.add(profile)
            logger.info("Creating profile row for user %s", user_id)
        else:
            for column, value in fields.items():
                setattr(profile, column, value)

        await db.flush()
        return profile

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: int,
        payload: ProfileUpdateRequest,
    ) -> ProfileData:
        """
        Update the caller's account and profile, then return the merged profile.

        Steps:
            1. Load the user (missing → ValidationError)
            2. Reject an email that belongs to another user (ConflictError)
            3. Write users columns, never avatar_url
            4. Upsert user_profiles, including avatar_url from the body
            5. Commit both writes together
            6. Re-read the merged profile

        Raises:
            ValidationError: user does not exist (→ 400)
            ConflictError:   email used by another user (→ 400)
            DatabaseError:   any other storage failure (→ 500)
        """
        try:
            user = await self._find_user(db, user_id)
            if user is None:
                raise _user_not_found(user_id)

            taken = await db.execute(
                select(User.id).where(User.email == payload.email, User.id != user_id)
            )
            if taken.first() is not None:
                raise ConflictError(context={"user_id": user_id})

            user_columns = payload.user_columns()
            for column, value in user_columns.items():
                setattr(user, column, value)
            await db.flush()

            await self.upsert_profile(db, user_id, payload.profile_columns())
            await db.commit()
            logger.info(
                "Profile updated for user %s (users: %s)",
                user_id,
                ", ".join(sorted(user_columns)),
            )

        except LifeMonError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            if "email" in str(e.orig).lower():
                raise ConflictError(context={"user_id": user_id})
            logger.error("Integrity error updating profile for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not update the profile. Please try again.",
                context={"user_id": user_id, "original_error": str(e.orig)},
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error updating profile for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not update the profile. Please try again.",
                context={"user_id": user_id, "original_error": str(e)},
            )

        return await self.get_profile(db, user_id)

    async def upload_avatar(self, db: AsyncSession, user_id: int, avatar_url: str) -> AvatarData:
        """
        Point both users.avatar_url and user_profiles.avatar_url at a stored avatar.

        Raises:
            ValidationError: user does not exist (→ 400)
            DatabaseError:   storage failure (→ 500)
        """
        try:
            user = await self._find_user(db, user_id)
            if user is None:
                raise _user_not_found(user_id)

            user.avatar_url = avatar_url
            await db.flush()
            await self.upsert_profile(db, user_id, {"avatar_url": avatar_url})
            await db.commit()

        except LifeMonError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Database error saving avatar for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not save the avatar. Please try again.",
                context={"user_id": user_id, "original_error": str(e)},
            )

        logger.info("Avatar saved for user %s: %s", user_id, avatar_url)
        return AvatarData(
            avatar_url=avatar_url,
            id=user.id,
            nama=user.nama,
            email=user.email,
            role=user.role or "user",
        )


# ── Singleton Instance ────────────────────────────────────────────────────
profile_service = ProfileService()
