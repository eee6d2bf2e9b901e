"""
DeskBook Backend - Place Route Tests
======================================

What we test:
    ✅ Claiming a new place creates it occupied and opens a history entry
    ✅ Claiming an occupied place reports the occupant and changes nothing
    ✅ Occupants unreadable with the caller's session are reported without names
    ✅ A lost race on a new place is reported as a conflict
    ✅ Releasing closes the history entry and frees the place
    ✅ Switching places releases the previous one first
    ✅ Semi-flex availability windows (place-based and owner-based)
    ✅ Ownership assign/unassign
    ✅ Input validation and authentication
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook.config import settings
from deskbook.models.place import Place
from deskbook.models.user import User
from deskbook.security.session import build_session
from deskbook.services.common import utc_now


async def _load_user(session_factory, pk) -> User:
    async with session_factory() as session:
        return (await session.execute(select(User).where(User.pk == pk))).scalar_one()


async def _load_place(session_factory, id_place):
    async with session_factory() as session:
        return await session.get(Place, id_place)


class TestTakePlace:
    @pytest.mark.asyncio
    async def test_new_place_is_created_and_history_opened(
        self, test_client, auth_headers, seed_user, session_factory
    ):
        user = await seed_user("jdoe")

        response = await test_client.post(
            "/take_place", json={"id_place": "A", "id_user": "jdoe"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.text == "Place successfully assigned to user"

        place = await _load_place(session_factory, "A")
        stored = await _load_user(session_factory, user.pk)
        assert place.using is True
        assert place.id_user == stored.id_index
        assert stored.id_place == "A"
        assert len(stored.historical) == 1
        assert stored.historical[0]["id_place"] == "A"
        assert stored.historical[0]["begin"]
        assert stored.historical[0]["end"] == ""

    @pytest.mark.asyncio
    async def test_occupied_place_reports_occupant_without_mutation(
        self, test_client, auth_headers, seed_user, seed_place, session_factory
    ):
        occupant = await seed_user("asmith", name="Smith", fname="Alice", id_place="B",
                                   historical=[{"id_place": "B", "begin": "2026-01-01T08:00:00+00:00", "end": ""}])
        caller = await seed_user("jdoe")
        await seed_place("B", using=True, id_user=occupant.id_index)

        response = await test_client.post(
            "/take_place", json={"id_place": "B", "id_user": "jdoe"}, headers=auth_headers
        )

        assert response.status_code == 500
        body = response.json()
        assert body["name"] == "Smith"
        assert body["fname"] == "Alice"
        assert "Alice Smith" in body["message"]

        place = await _load_place(session_factory, "B")
        stored_caller = await _load_user(session_factory, caller.pk)
        assert place.id_user == occupant.id_index
        assert stored_caller.historical == []
        assert stored_caller.id_place == ""

    @pytest.mark.asyncio
    async def test_unreadable_occupant_reported_without_names(
        self, test_client, auth_headers, seed_user, seed_place, session_factory
    ):
        other_fields = build_session("another-tenant").fields
        protected_id = other_fields.protect("asmith")
        occupant = User(
            id_user=protected_id.stored,
            id_index=protected_id.index,
            email=other_fields.protect("asmith@example.com").stored,
            email_index=other_fields.lookup("asmith@example.com"),
            name=other_fields.protect("Smith").stored,
            name_index=other_fields.lookup("Smith"),
            fname=other_fields.protect("Alice").stored,
            fname_index=other_fields.lookup("Alice"),
            historical=[],
            friend=[],
        )
        async with session_factory() as session:
            session.add(occupant)
            await session.commit()
        await seed_user("jdoe")
        await seed_place("B", using=True, id_user=protected_id.index)

        response = await test_client.post(
            "/take_place", json={"id_place": "B", "id_user": "jdoe"}, headers=auth_headers
        )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "place_already_used"
        assert body["name"] == ""
        assert body["fname"] == ""
        assert (await _load_place(session_factory, "B")).id_user == protected_id.index

    @pytest.mark.asyncio
    async def test_concurrent_first_claim_reported_as_conflict(
        self, test_client, auth_headers, seed_user, session_factory
    ):
        user = await seed_user("jdoe")
        duplicate = IntegrityError("INSERT INTO places", {}, Exception("UNIQUE constraint failed"))

        with patch.object(AsyncSession, "flush", new=AsyncMock(side_effect=duplicate)):
            response = await test_client.post(
                "/take_place", json={"id_place": "N", "id_user": "jdoe"}, headers=auth_headers
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "place_already_used"
        assert body["message"] == "Place already used"
        assert body["name"] == ""
        assert body["fname"] == ""

        assert await _load_place(session_factory, "N") is None
        stored = await _load_user(session_factory, user.pk)
        assert stored.historical == []
        assert stored.id_place == ""

    @pytest.mark.asyncio
    async def test_numeric_place_id_accepted(self, test_client, auth_headers, seed_user, session_factory):
        await seed_user("jdoe")
        response = await test_client.post(
            "/take_place", json={"id_place": 12, "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert (await _load_place(session_factory, "12")).using is True

    @pytest.mark.asyncio
    async def test_switching_places_closes_previous_entry(
        self, test_client, auth_headers, seed_user, session_factory
    ):
        user = await seed_user("jdoe")
        await test_client.post("/take_place", json={"id_place": "A", "id_user": "jdoe"}, headers=auth_headers)
        await test_client.post("/take_place", json={"id_place": "C", "id_user": "jdoe"}, headers=auth_headers)

        stored = await _load_user(session_factory, user.pk)
        assert [entry["id_place"] for entry in stored.historical] == ["A", "C"]
        assert stored.historical[0]["end"] != ""
        assert stored.historical[1]["end"] == ""
        assert (await _load_place(session_factory, "A")).using is False
        assert stored.id_place == "C"

    @pytest.mark.asyncio
    async def test_retaking_own_place_adds_no_history(
        self, test_client, auth_headers, seed_user, session_factory
    ):
        user = await seed_user("jdoe")
        for _ in range(2):
            response = await test_client.post(
                "/take_place", json={"id_place": "A", "id_user": "jdoe"}, headers=auth_headers
            )
            assert response.status_code == 200
        assert len((await _load_user(session_factory, user.pk)).historical) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"id_place": "A"}, {"id_user": "jdoe"}, {"id_place": "", "id_user": "jdoe"}])
    async def test_missing_arguments(self, test_client, auth_headers, body):
        response = await test_client.post("/take_place", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid arguments"

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, auth_headers):
        response = await test_client.post(
            "/take_place", json={"id_place": "A", "id_user": "ghost"}, headers=auth_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_session(self, test_client):
        response = await test_client.post("/take_place", json={"id_place": "A", "id_user": "jdoe"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_other_session_cannot_see_users(self, test_client, seed_user):
        from conftest import make_session_token

        await seed_user("jdoe")
        response = await test_client.post(
            "/take_place",
            json={"id_place": "A", "id_user": "jdoe"},
            headers={"x-access-token": make_session_token("another-tenant")},
        )
        assert response.status_code == 404


class TestSemiFlex:
    @pytest.mark.asyncio
    async def test_open_window_allows_claim(self, test_client, auth_headers, seed_user, seed_place):
        owner = await seed_user("owner", name="Owner", fname="Olga")
        await seed_user("jdoe")
        now = utc_now()
        await seed_place("S", semi_flex=True, id_owner=owner.id_index,
                         start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))

        response = await test_client.post(
            "/take_place", json={"id_place": "S", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_closed_window_reports_owner(self, test_client, auth_headers, seed_user, seed_place):
        owner = await seed_user("owner", name="Owner", fname="Olga")
        await seed_user("jdoe")
        now = utc_now()
        await seed_place("S", semi_flex=True, id_owner=owner.id_index,
                         start_date=now + timedelta(days=1), end_date=now + timedelta(days=2))

        response = await test_client.post(
            "/take_place", json={"id_place": "S", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 500
        assert response.json()["name"] == "Owner"

    @pytest.mark.asyncio
    async def test_owner_may_always_claim(self, test_client, auth_headers, seed_user, seed_place):
        owner = await seed_user("owner")
        await seed_place("S", semi_flex=True, id_owner=owner.id_index)

        response = await test_client.post(
            "/take_place", json={"id_place": "S", "id_user": "owner"}, headers=auth_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_async_check_reads_owner_window(
        self, test_client, auth_headers, seed_user, seed_place, monkeypatch
    ):
        monkeypatch.setattr(settings, "availability_check", "async")
        now = utc_now()
        owner = await seed_user("owner", start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))
        await seed_user("jdoe")
        # The place itself has no window; only the owner's record does
        await seed_place("S", semi_flex=True, id_owner=owner.id_index)

        response = await test_client.post(
            "/take_place", json={"id_place": "S", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_async_check_without_owner_record_refuses(
        self, test_client, auth_headers, seed_user, seed_place, monkeypatch
    ):
        monkeypatch.setattr(settings, "availability_check", "async")
        await seed_user("jdoe")
        await seed_place("S", semi_flex=True, id_owner="missing-owner-index")

        response = await test_client.post(
            "/take_place", json={"id_place": "S", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 500


class TestLeavePlace:
    @pytest.mark.asyncio
    async def test_release_closes_history_and_frees_place(
        self, test_client, auth_headers, seed_user, session_factory
    ):
        user = await seed_user("jdoe")
        await test_client.post("/take_place", json={"id_place": "A", "id_user": "jdoe"}, headers=auth_headers)

        response = await test_client.post(
            "/leave_place", json={"id_place": "A", "id_user": "jdoe"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.text == "User successfully left the place"
        place = await _load_place(session_factory, "A")
        stored = await _load_user(session_factory, user.pk)
        assert place.using is False
        assert place.id_user == ""
        assert stored.id_place == ""
        assert stored.historical[-1]["end"] != ""

    @pytest.mark.asyncio
    async def test_cannot_release_someone_elses_place(
        self, test_client, auth_headers, seed_user, seed_place, session_factory
    ):
        occupant = await seed_user("asmith", name="Smith", fname="Alice")
        await seed_user("jdoe")
        await seed_place("B", using=True, id_user=occupant.id_index)

        response = await test_client.post(
            "/leave_place", json={"id_place": "B", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 500
        assert (await _load_place(session_factory, "B")).id_user == occupant.id_index

    @pytest.mark.asyncio
    async def test_unknown_place(self, test_client, auth_headers, seed_user):
        await seed_user("jdoe")
        response = await test_client.post(
            "/leave_place", json={"id_place": "nowhere", "id_user": "jdoe"}, headers=auth_headers
        )
        assert response.status_code == 404


class TestOwnership:
    @pytest.mark.asyncio
    async def test_assign_then_unassign(self, test_client, auth_headers, seed_user, session_factory):
        owner = await seed_user("owner")

        response = await test_client.post(
            "/assign_place", json={"id_place": "S", "id_user": "owner"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json() == {"success": "success"}
        place = await _load_place(session_factory, "S")
        assert place.semi_flex is True
        assert place.id_owner == owner.id_index

        response = await test_client.post("/unassign_place", json={"id_place": "S"}, headers=auth_headers)
        assert response.status_code == 200
        place = await _load_place(session_factory, "S")
        assert place.semi_flex is False
        assert place.id_owner == ""

    @pytest.mark.asyncio
    async def test_unassign_unknown_place(self, test_client, auth_headers):
        response = await test_client.post("/unassign_place", json={"id_place": "Z"}, headers=auth_headers)
        assert response.status_code == 404
