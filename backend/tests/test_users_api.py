"""
DeskBook Backend - Settings, Removal & Email Route Tests
==========================================================

What we test:
    ✅ /settings_user stores remote day and the DD/MM/YYYY window,
       including on places the user owns
    ✅ Image host failures do not fail /settings_user
    ✅ /remove_user frees held places and drops ownership
    ✅ /send_email schedules delivery and validates input
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from deskbook.config import settings
from deskbook.exceptions import ImageHostError
from deskbook.models.place import Place
from deskbook.models.user import User
from deskbook.services.mail_service import mail_service


async def _load_user(session_factory, pk):
    async with session_factory() as session:
        return (await session.execute(select(User).where(User.pk == pk))).scalar_one_or_none()


class TestSettingsUser:
    @pytest.mark.asyncio
    async def test_window_and_remote_day(
        self, test_client, auth_headers, seed_user, seed_place, session_factory
    ):
        user = await seed_user("jdoe")
        await seed_place("S", semi_flex=True, id_owner=user.id_index)

        response = await test_client.post(
            "/settings_user",
            json={"id_user": "jdoe", "remoteDay": "friday", "startDate": "01/03/2026", "endDate": "15/03/2026"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": "success"}
        stored = await _load_user(session_factory, user.pk)
        assert stored.remote_day == "friday"
        assert stored.start_date.replace(tzinfo=None) == datetime(2026, 3, 1)
        # End date covers the whole day
        assert stored.end_date.replace(tzinfo=None).date() == datetime(2026, 3, 15).date()
        assert stored.end_date.hour == 23

        async with session_factory() as session:
            place = await session.get(Place, "S")
        assert place.start_date.replace(tzinfo=None) == datetime(2026, 3, 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("dates", [{"startDate": "2026-03-01"}, {"endDate": "31/02/2026"}])
    async def test_bad_date_format(self, test_client, auth_headers, seed_user, dates):
        await seed_user("jdoe")
        response = await test_client.post(
            "/settings_user", json={"id_user": "jdoe", **dates}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_end_before_start(self, test_client, auth_headers, seed_user):
        await seed_user("jdoe")
        response = await test_client.post(
            "/settings_user",
            json={"id_user": "jdoe", "startDate": "10/03/2026", "endDate": "01/03/2026"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_photo_url_stored_as_is(self, test_client, auth_headers, seed_user, session_factory):
        user = await seed_user("jdoe")
        await test_client.post(
            "/settings_user",
            json={"id_user": "jdoe", "photo": "https://cdn.example.com/p.png"},
            headers=auth_headers,
        )
        assert (await _load_user(session_factory, user.pk)).photo == "https://cdn.example.com/p.png"

    @pytest.mark.asyncio
    async def test_upload_failure_is_swallowed(
        self, test_client, auth_headers, seed_user, session_factory, sample_png_b64
    ):
        user = await seed_user("jdoe", photo="https://cdn.example.com/old.png")
        with patch(
            "deskbook.services.user_service.image_host.upload",
            new=AsyncMock(side_effect=ImageHostError()),
        ):
            response = await test_client.post(
                "/settings_user",
                json={"id_user": "jdoe", "photo": sample_png_b64, "remoteDay": "monday"},
                headers=auth_headers,
            )

        assert response.status_code == 200
        stored = await _load_user(session_factory, user.pk)
        assert stored.photo == "https://cdn.example.com/old.png"
        assert stored.remote_day == "monday"

    @pytest.mark.asyncio
    async def test_oversized_image_keeps_previous_photo(
        self, test_client, auth_headers, seed_user, session_factory, oversized_png_b64
    ):
        user = await seed_user("jdoe", photo="https://cdn.example.com/old.png")

        response = await test_client.post(
            "/settings_user",
            json={"id_user": "jdoe", "photo": oversized_png_b64, "remoteDay": "monday"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        stored = await _load_user(session_factory, user.pk)
        assert stored.photo == "https://cdn.example.com/old.png"
        assert stored.remote_day == "monday"

    @pytest.mark.asyncio
    async def test_upload_disabled_ignores_inline_photo(
        self, test_client, auth_headers, seed_user, monkeypatch, sample_png_b64
    ):
        monkeypatch.setattr(settings, "photo_upload_enabled", False)
        await seed_user("jdoe")
        with patch(
            "deskbook.services.user_service.image_host.upload", new=AsyncMock()
        ) as upload:
            response = await test_client.post(
                "/settings_user", json={"id_user": "jdoe", "photo": sample_png_b64}, headers=auth_headers
            )
        assert response.status_code == 200
        upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, auth_headers):
        response = await test_client.post(
            "/settings_user", json={"id_user": "ghost", "remoteDay": "friday"}, headers=auth_headers
        )
        assert response.status_code == 404


class TestRemoveUser:
    @pytest.mark.asyncio
    async def test_user_removed_and_places_released(
        self, test_client, auth_headers, seed_user, seed_place, session_factory
    ):
        user = await seed_user("jdoe", name="Doe", fname="John", id_place="A")
        await seed_place("A", using=True, id_user=user.id_index)
        await seed_place("S", semi_flex=True, id_owner=user.id_index)

        response = await test_client.post(
            "/remove_user", json={"name": "Doe", "fname": "John"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert await _load_user(session_factory, user.pk) is None
        async with session_factory() as session:
            held = await session.get(Place, "A")
            owned = await session.get(Place, "S")
        assert held.using is False
        assert held.id_user == ""
        assert owned.id_owner == ""
        assert owned.semi_flex is False

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, auth_headers):
        response = await test_client.post(
            "/remove_user", json={"name": "No", "fname": "Body"}, headers=auth_headers
        )
        assert response.status_code == 404


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_delivery_scheduled(self, test_client, auth_headers):
        with patch.object(mail_service, "deliver", new=AsyncMock(return_value=True)) as deliver:
            response = await test_client.post(
                "/send_email",
                json={"to": "team@example.com", "subject": "Hi", "body": "Lunch?"},
                headers=auth_headers,
            )
        assert response.status_code == 200
        assert response.json() == {"success": "success"}
        deliver.assert_awaited_once_with("team@example.com", "Hi", "Lunch?")

    @pytest.mark.asyncio
    async def test_missing_recipient(self, test_client, auth_headers):
        response = await test_client.post(
            "/send_email", json={"subject": "Hi", "body": "Lunch?"}, headers=auth_headers
        )
        assert response.status_code == 400
