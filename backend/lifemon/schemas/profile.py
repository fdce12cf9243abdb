"""
LifeMon Backend — Profile Request/Response Schemas
====================================================

What:  Pydantic models for the profile endpoints.
How:   The update payload is one declarative schema: every field is declared
       with a normalization kind, applied uniformly before type validation.

Field kinds (ProfileUpdateRequest):
    RequiredText   missing / null / blank → ""       nama, npm, jurusan, email
    OptionalText   missing / null / blank → None     phone, alamat, bio,
                                                      avatar_url, jenis_kelamin
    OptionalInt    missing / null / blank → None     tinggi_badan, berat_badan
                   decimals truncated ("165.5" → 165)
                   not a number, negative or above 2^31-1 → validation error (400)
    OptionalDate   missing / null / blank → None     tanggal_lahir
                   malformed → validation error (400)
"""

from datetime import date
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field


def _required_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    # bool is an int subclass; true/false is never a height
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _truncate(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return _truncate(float(text))
    except ValueError:
        raise ValueError("must be a number") from None


def _truncate(number: float) -> int:
    """Drops the fractional part (165.9 → 165); NaN and infinities are not numbers."""
    try:
        return int(number)
    except (ValueError, OverflowError):
        raise ValueError("must be a number") from None


def _optional_date(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        # Browsers often send full ISO timestamps for date inputs
        return text.split("T", 1)[0]
    return value


# users / user_profiles store these in 32-bit INTEGER columns
INT32_MAX = 2_147_483_647
BoundedInt = Annotated[int, Field(ge=0, le=INT32_MAX)]

RequiredText = Annotated[str, BeforeValidator(_required_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]
OptionalInt = Annotated[Optional[BoundedInt], BeforeValidator(_optional_int)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_optional_date)]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ProfileUpdateRequest(BaseModel):
    """
    Body of PUT /api/users/profile. Every field is optional.

    Required-ish text fields are always written (as "" when absent), so a
    client that omits `email` clears it. Optional fields are written as NULL
    when absent.
    """

    nama: RequiredText = ""
    npm: RequiredText = ""
    jurusan: RequiredText = ""
    email: RequiredText = ""

    phone: OptionalText = None
    alamat: OptionalText = None
    bio: OptionalText = None
    avatar_url: OptionalText = None
    jenis_kelamin: OptionalText = None

    tanggal_lahir: OptionalDate = None
    tinggi_badan: OptionalInt = None
    berat_badan: OptionalInt = None

    def user_columns(self) -> dict:
        """Columns written to `users` (avatar_url is only changed by the avatar upload)."""
        return {
            "nama": self.nama,
            "npm": self.npm,
            "jurusan": self.jurusan,
            "email": self.email,
            "bio": self.bio,
            "tanggal_lahir": self.tanggal_lahir,
            "jenis_kelamin": self.jenis_kelamin,
            "tinggi_badan": self.tinggi_badan,
            "berat_badan": self.berat_badan,
        }

    def profile_columns(self) -> dict:
        """Columns written to `user_profiles`."""
        return {
            "phone": self.phone,
            "alamat": self.alamat,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "tanggal_lahir": self.tanggal_lahir,
            "jenis_kelamin": self.jenis_kelamin,
            "tinggi_badan": self.tinggi_badan,
            "berat_badan": self.berat_badan,
        }


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ProfileData(BaseModel):
    """
    Merged profile view: identity columns from `users`, descriptive columns
    from `user_profiles`.

    For a user without a profile row only the base fields are set
    (id, nama, email, npm, jurusan, role, avatar_url=None); routes serialize
    with exclude_unset so the reduced view carries exactly those keys.
    """

    id: int = Field(description="User id")
    nama: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Email address")
    npm: Optional[str] = Field(default=None, description="Student/employee number")
    jurusan: Optional[str] = Field(default=None, description="Department")
    role: str = Field(default="user", description="Account role")

    phone: Optional[str] = None
    alamat: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    tanggal_lahir: Optional[date] = None
    jenis_kelamin: Optional[str] = None
    tinggi_badan: Optional[int] = None
    berat_badan: Optional[int] = None


class AvatarData(BaseModel):
    """Result of an avatar upload: the new path plus a minimal identity echo."""

    avatar_url: str
    id: int
    nama: str
    email: str
    role: str = "user"
