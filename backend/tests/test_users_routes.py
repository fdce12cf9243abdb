"""
LifeMon Backend — Users Route Group Tests
===========================================

What:  The three profile endpoints end to end: HTTP → middleware → service →
       SQLite, with real bearer tokens and real files in tmp_path.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from lifemon.exceptions import DatabaseError
from lifemon.models.user import User, UserProfile

PROFILE_URL = "/api/users/profile"
AVATAR_URL = "/api/users/profile/avatar"


async def load_rows(session_factory, user_id):
    async with session_factory() as session:
        user = await session.get(User, user_id)
        profile = (await session.execute(
            select(UserProfile).where(UserProfile.user_id == user_id)
        )).scalar_one_or_none()
        return user, profile


class TestCallerResolution:

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client, seeded_users):
        response = await test_client.get(PROFILE_URL)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "User ID not found"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, test_client, seeded_users):
        response = await test_client.get(PROFILE_URL, headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 400
        assert response.json()["error"] == "User ID not found"

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, seeded_users, auth_headers):
        response = await test_client.get(PROFILE_URL, headers=auth_headers(9999))

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "User not found"}


class TestGetProfile:

    @pytest.mark.asyncio
    async def test_base_view_without_profile_row(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["alice"]

        response = await test_client.get(PROFILE_URL, headers=auth_headers(user_id))

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {
                "id": user_id,
                "nama": "Alice",
                "email": "alice@example.com",
                "npm": "2106001",
                "jurusan": "Informatika",
                "role": "user",
                "avatar_url": None,
            },
        }
        _, profile = await load_rows(session_factory, user_id)
        assert profile is None

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client, seeded_users, auth_headers):
        response = await test_client.get(
            PROFILE_URL,
            headers={**auth_headers(seeded_users["alice"]), "X-Request-ID": "abc12345"},
        )
        assert response.headers["X-Request-ID"] == "abc12345"


class TestUpdateProfile:

    @pytest.mark.asyncio
    async def test_round_trip(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["alice"]
        body = {
            "nama": "Alice Wonder",
            "npm": "2106001",
            "jurusan": "Informatika",
            "email": "alice@example.com",
            "phone": "08123456789",
            "alamat": "Jl. Merdeka 1",
            "bio": "Runner",
            "avatar_url": "",
            "tanggal_lahir": "2001-05-17T00:00:00.000Z",
            "jenis_kelamin": "P",
            "tinggi_badan": "165",
            "berat_badan": 55,
        }

        response = await test_client.put(PROFILE_URL, json=body, headers=auth_headers(user_id))

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        assert payload["message"] == "Profile updated successfully"
        data = payload["data"]
        assert data["nama"] == "Alice Wonder"
        assert data["phone"] == "08123456789"
        assert data["tanggal_lahir"] == "2001-05-17"
        assert data["tinggi_badan"] == 165
        assert data["berat_badan"] == 55
        assert data["avatar_url"] is None

        again = await test_client.get(PROFILE_URL, headers=auth_headers(user_id))
        assert again.json()["data"] == data

        user, profile = await load_rows(session_factory, user_id)
        assert user.nama == "Alice Wonder"
        assert user.tinggi_badan == 165
        assert profile.alamat == "Jl. Merdeka 1"

    @pytest.mark.asyncio
    async def test_empty_body_clears_fields(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["bob"]

        response = await test_client.put(PROFILE_URL, json={}, headers=auth_headers(user_id))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["nama"] == ""
        assert data["email"] == ""
        assert data["phone"] is None
        user, _ = await load_rows(session_factory, user_id)
        assert user.npm == ""

    @pytest.mark.asyncio
    async def test_duplicate_email_leaves_row_unchanged(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["alice"]

        response = await test_client.put(
            PROFILE_URL,
            json={"nama": "Mallory", "email": "bob@example.com"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Email is already used by another user"}
        user, profile = await load_rows(session_factory, user_id)
        assert user.nama == "Alice"
        assert user.email == "alice@example.com"
        assert profile is None

    @pytest.mark.asyncio
    async def test_non_numeric_height_rejected(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["alice"]

        response = await test_client.put(
            PROFILE_URL,
            json={"nama": "Alice", "email": "alice@example.com", "tinggi_badan": "tall"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "tinggi_badan" in body["error"]
        _, profile = await load_rows(session_factory, user_id)
        assert profile is None

    @pytest.mark.asyncio
    async def test_decimal_height_is_truncated(self, test_client, seeded_users, auth_headers, session_factory):
        user_id = seeded_users["alice"]

        response = await test_client.put(
            PROFILE_URL,
            json={"email": "alice@example.com", "tinggi_badan": "165.5", "berat_badan": 55.9},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        assert response.json()["data"]["tinggi_badan"] == 165
        user, profile = await load_rows(session_factory, user_id)
        assert (user.tinggi_badan, user.berat_badan) == (165, 55)
        assert (profile.tinggi_badan, profile.berat_badan) == (165, 55)

    @pytest.mark.asyncio
    async def test_weight_beyond_column_range_rejected(self, test_client, seeded_users, auth_headers,
                                                       session_factory):
        user_id = seeded_users["alice"]

        response = await test_client.put(
            PROFILE_URL,
            json={"nama": "Changed", "email": "alice@example.com", "berat_badan": str(10**20)},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "berat_badan" in body["error"]
        user, profile = await load_rows(session_factory, user_id)
        assert user.nama == "Alice"
        assert user.berat_badan is None
        assert profile is None

    @pytest.mark.asyncio
    async def test_missing_caller(self, test_client, seeded_users):
        response = await test_client.put(PROFILE_URL, json={"nama": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "User ID not found"


class TestUploadAvatar:

    @pytest.mark.asyncio
    async def test_valid_upload(self, test_client, seeded_users, auth_headers, session_factory,
                                avatar_storage, sample_image_bytes):
        user_id = seeded_users["bob"]

        response = await test_client.post(
            AVATAR_URL,
            files={"avatar": ("Me.PNG", sample_image_bytes, "image/png")},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["message"] == "Avatar uploaded successfully"
        data = payload["data"]
        assert set(data) == {"avatar_url", "id", "nama", "email", "role"}
        assert data["role"] == "admin"
        assert data["avatar_url"].startswith(f"/uploads/avatars/avatar-{user_id}-")
        assert data["avatar_url"].endswith(".png")

        filename = data["avatar_url"].rsplit("/", 1)[1]
        assert (avatar_storage.directory / filename).read_bytes() == sample_image_bytes

        user, profile = await load_rows(session_factory, user_id)
        assert user.avatar_url == data["avatar_url"]
        assert profile.avatar_url == data["avatar_url"]

    @pytest.mark.asyncio
    async def test_non_image_rejected_before_database(self, test_client, seeded_users, auth_headers,
                                                       session_factory, avatar_storage):
        user_id = seeded_users["alice"]

        with patch("lifemon.routes.users.profile_service.upload_avatar", new=AsyncMock()) as upload:
            response = await test_client.post(
                AVATAR_URL,
                files={"avatar": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
                headers=auth_headers(user_id),
            )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Only image files are allowed"}
        upload.assert_not_awaited()
        assert not avatar_storage.directory.exists()
        user, profile = await load_rows(session_factory, user_id)
        assert user.avatar_url is None
        assert profile is None

    @pytest.mark.asyncio
    async def test_no_file(self, test_client, seeded_users, auth_headers):
        response = await test_client.post(
            AVATAR_URL,
            files={"other": ("note.txt", b"hello", "text/plain")},
            headers=auth_headers(seeded_users["alice"]),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No file uploaded"}

    @pytest.mark.asyncio
    async def test_missing_caller_writes_nothing(self, test_client, seeded_users, avatar_storage, sample_image_bytes):
        response = await test_client.post(
            AVATAR_URL,
            files={"avatar": ("me.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "User ID not found"
        assert not avatar_storage.directory.exists()

    @pytest.mark.asyncio
    async def test_database_failure_removes_stored_file(self, test_client, seeded_users, auth_headers,
                                                        avatar_storage, sample_image_bytes):
        failure = DatabaseError(message="Could not save the avatar. Please try again.",
                                context={"original_error": "connection reset"})

        with patch("lifemon.routes.users.profile_service.upload_avatar",
                   new=AsyncMock(side_effect=failure)):
            response = await test_client.post(
                AVATAR_URL,
                files={"avatar": ("me.png", sample_image_bytes, "image/png")},
                headers=auth_headers(seeded_users["alice"]),
            )

        assert response.status_code == 500
        # Outside production the underlying error text is returned
        assert response.json() == {"success": False, "error": "connection reset"}
        assert list(avatar_storage.directory.iterdir()) == []
