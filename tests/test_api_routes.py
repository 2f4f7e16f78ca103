"""
tests/test_api_routes.py — FastAPI Route Integration Tests
===========================================================
Drives the HTTP surface through TestClient against the in-memory
engine: auth guards, the domain-error → status mapping, request
validation and the main event / term / guest / statistics flows.

Routes use the real clock, so dates here are relative to today.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from unittest.mock import patch

import pytest
from conftest import auth, make_token
from fastapi.testclient import TestClient

TODAY = date.today()
EVERY_DAY = [0, 1, 2, 3, 4, 5, 6]


def _iso(days: int) -> str:
    return (TODAY + timedelta(days=days)).isoformat()


def _create_recurring(client, user, **overrides) -> dict:
    body = {
        "name": "Futsal",
        "place": "Gym",
        "type": "RECURRING",
        "startTime": "18:00",
        "endTime": "20:00",
        "recurrence": {"frequency": "WEEKLY", "weekDays": EVERY_DAY},
        **overrides,
    }
    resp = client.post("/api/events", json=body, headers=auth(user))
    assert resp.status_code == 201, resp.text
    return resp.json()["event"]


def _generate(client, user, event, start: int, end: int) -> dict:
    resp = client.post(
        "/api/events/terms",
        json={"eventId": event["id"], "startDate": _iso(start), "endDate": _iso(end)},
        headers=auth(user),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def _active_terms(client, event) -> list[dict]:
    return client.get(f"/api/events/uuid/{event['uuid']}").json()["terms"]


def _archived_terms(client, event) -> list[dict]:
    return client.get(f"/api/events/uuid/{event['uuid']}/archived").json()["terms"]


# ===========================================================================
# Health & auth guards
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestLifespan:
    @pytest.fixture(autouse=True)
    def _restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_startup_uses_config_and_engine(self, db_engine, test_config):
        from orgie.api.main import app

        with (
            patch("orgie.api.main.get_config", return_value=test_config),
            patch("orgie.api.main.get_engine", return_value=db_engine),
            TestClient(app) as started,
        ):
            assert started.get("/api/health").status_code == 200


class TestAuthGuards:
    PROTECTED = [
        ("GET", "/api/events"),
        ("GET", "/api/events/my"),
        ("GET", "/api/events/dashboard"),
        ("GET", "/api/auth/me"),
        ("GET", "/api/users/search?q=a"),
    ]

    @pytest.mark.parametrize("method,endpoint", PROTECTED)
    def test_missing_token(self, client, method, endpoint):
        assert client.request(method, endpoint).status_code == 401

    @pytest.mark.parametrize("method,endpoint", PROTECTED)
    def test_invalid_token(self, client, method, endpoint):
        resp = client.request(method, endpoint, headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_token_without_subject(self, client):
        import jwt

        from orgie.api.deps import JWT_ALGORITHM, JWT_SECRET

        token = jwt.encode({"name": "nobody"}, JWT_SECRET, algorithm=JWT_ALGORITHM)
        resp = client.get("/api/events", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_cookie_token_accepted(self, client, people):
        client.cookies.set("accessToken", make_token(people.owner.id))
        resp = client.get("/api/auth/me")
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == people.owner.id

    def test_public_pages_need_no_token(self, client, people):
        event = _create_recurring(client, people.owner)
        assert client.get(f"/api/events/uuid/{event['uuid']}").status_code == 200
        assert client.get(f"/api/events/uuid/{event['uuid']}/archived").status_code == 200
        assert client.get(f"/api/events/uuid/{event['uuid']}/statistics").status_code == 200


# ===========================================================================
# Events
# ===========================================================================
class TestEventRoutes:
    def test_create_recurring(self, client, people):
        event = _create_recurring(client, people.owner)
        assert event["type"] == "RECURRING"
        assert event["recurrence"]["week_days"] == EVERY_DAY
        assert event["administrators"] == [people.owner.id]
        assert event["owner"]["display_name"] == "Olga Owner"
        assert "password_hash" not in event["owner"]

    def test_create_one_time_has_term(self, client, people):
        resp = client.post(
            "/api/events",
            json={
                "name": "Party", "type": "ONE_TIME", "date": _iso(2),
                "startTime": "20:00", "endTime": "23:00",
            },
            headers=auth(people.owner),
        )
        assert resp.status_code == 201
        terms = _active_terms(client, resp.json()["event"])
        assert [t["date"] for t in terms] == [_iso(2)]

    def test_one_time_in_past_is_400(self, client, people):
        resp = client.post(
            "/api/events",
            json={
                "name": "Party", "type": "ONE_TIME", "date": _iso(-1),
                "startTime": "20:00", "endTime": "23:00",
            },
            headers=auth(people.owner),
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Date must be in the future for ONE_TIME events"}

    @pytest.mark.parametrize("overrides", [
        {"startTime": "25:00"},
        {"endTime": "7pm"},
        {"name": "x" * 51},
        {"name": ""},
        {"recurrence": {"frequency": "WEEKLY", "weekDays": [7]}},
        {"maxAttendees": -1},
    ])
    def test_invalid_payload_is_422(self, client, people, overrides):
        body = {
            "name": "Futsal", "type": "RECURRING", "startTime": "18:00", "endTime": "20:00",
            "recurrence": {"frequency": "WEEKLY", "weekDays": [1]},
            **overrides,
        }
        resp = client.post("/api/events", json=body, headers=auth(people.owner))
        assert resp.status_code == 422

    def test_update_by_owner(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.put(
            f"/api/events/{event['id']}", json={"place": "Hall"}, headers=auth(people.owner)
        )
        assert resp.status_code == 200
        assert resp.json()["event"]["place"] == "Hall"
        assert resp.json()["event"]["name"] == "Futsal"

    def test_update_by_outsider_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.put(
            f"/api/events/{event['id']}", json={"place": "Hall"}, headers=auth(people.outsider)
        )
        assert resp.status_code == 403
        assert resp.json() == {"detail": "Not authorized to manage this event"}

    def test_delete_by_outsider_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.delete(f"/api/events/{event['id']}", headers=auth(people.outsider))
        assert resp.status_code == 403

    def test_delete_by_owner_removes_terms(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, 0, 2)
        resp = client.delete(f"/api/events/{event['id']}", headers=auth(people.owner))
        assert resp.status_code == 200
        assert resp.json()["deleted_terms"] == 3
        assert client.get(f"/api/events/uuid/{event['uuid']}").status_code == 404

    def test_unknown_uuid_is_404(self, client):
        resp = client.get("/api/events/uuid/does-not-exist")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Event not found"}

    def test_lists_and_dashboard(self, client, people):
        event = _create_recurring(client, people.owner)
        client.post(f"/api/events/{event['uuid']}/attendance", headers=auth(people.member))

        mine = client.get("/api/events/my", headers=auth(people.owner)).json()["events"]
        assert [e["id"] for e in mine] == [event["id"]]

        everything = client.get("/api/events", headers=auth(people.outsider)).json()["events"]
        assert len(everything) == 1

        board = client.get("/api/events/dashboard", headers=auth(people.member)).json()
        assert [e["id"] for e in board["attending"]] == [event["id"]]
        assert board["managed"] == []


# ===========================================================================
# Terms & attendance
# ===========================================================================
class TestTermRoutes:
    def test_generate_and_rerun(self, client, people):
        event = _create_recurring(client, people.owner)
        assert _generate(client, people.owner, event, 0, 2) == {
            "inserted": 3, "skipped": 0, "total": 3,
        }
        assert _generate(client, people.owner, event, 0, 2) == {
            "inserted": 0, "skipped": 3, "total": 3,
        }
        assert len(_active_terms(client, event)) == 3

    def test_generate_by_member_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.post(
            "/api/events/terms",
            json={"eventId": event["id"], "startDate": _iso(0), "endDate": _iso(1)},
            headers=auth(people.member),
        )
        assert resp.status_code == 403

    def test_generate_range_too_wide_is_400(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.post(
            "/api/events/terms",
            json={"eventId": event["id"], "startDate": _iso(0), "endDate": _iso(400)},
            headers=auth(people.owner),
        )
        assert resp.status_code == 400

    def test_toggle_self(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, 0, 0)
        [term] = _active_terms(client, event)

        resp = client.post(f"/api/events/terms/{term['id']}/attendance", headers=auth(people.member))
        assert resp.status_code == 200
        body = resp.json()
        assert body["joined"] is True
        assert body["term"]["attendees"] == [
            {"id": people.member.id, "kind": "USER", "name": "Mili"},
        ]

        resp = client.post(f"/api/events/terms/{term['id']}/attendance", headers=auth(people.member))
        assert resp.json()["joined"] is False
        assert resp.json()["term"]["attendees"] == []

    def test_toggle_other_user_as_outsider_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, 0, 0)
        [term] = _active_terms(client, event)
        resp = client.post(
            f"/api/events/terms/{term['id']}/attendance",
            json={"userId": people.member.id},
            headers=auth(people.outsider),
        )
        assert resp.status_code == 403

    def test_full_term_is_400(self, client, people):
        event = _create_recurring(client, people.owner, maxAttendees=1)
        _generate(client, people.owner, event, 0, 0)
        [term] = _active_terms(client, event)
        client.post(f"/api/events/terms/{term['id']}/attendance", headers=auth(people.owner))
        resp = client.post(
            f"/api/events/terms/{term['id']}/attendance", headers=auth(people.member)
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "Term is full"}

    def test_delete_term(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, 0, 1)
        first, second = _active_terms(client, event)
        resp = client.delete(f"/api/events/terms/{first['id']}", headers=auth(people.owner))
        assert resp.status_code == 200
        assert [t["id"] for t in _active_terms(client, event)] == [second["id"]]


# ===========================================================================
# Archive
# ===========================================================================
class TestArchiveRoutes:
    def test_archived_listing_is_descending(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, -3, 1)
        archived = _archived_terms(client, event)
        assert [t["date"] for t in archived] == [_iso(-1), _iso(-2), _iso(-3)]
        assert [t["date"] for t in _active_terms(client, event)] == [_iso(0), _iso(1)]

    def test_bulk_delete_end_today_is_400(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, -3, 0)
        resp = client.request(
            "DELETE",
            f"/api/events/uuid/{event['uuid']}/archived",
            json={"startDate": _iso(-3), "endDate": _iso(0)},
            headers=auth(people.owner),
        )
        assert resp.status_code == 400
        assert resp.json() == {"detail": "End date must be in the past"}
        assert len(_archived_terms(client, event)) == 3

    def test_bulk_delete_past_range(self, client, people):
        event = _create_recurring(client, people.owner)
        _generate(client, people.owner, event, -3, 0)
        resp = client.request(
            "DELETE",
            f"/api/events/uuid/{event['uuid']}/archived",
            json={"startDate": _iso(-3), "endDate": _iso(-2)},
            headers=auth(people.owner),
        )
        assert resp.status_code == 200
        assert resp.json() == {"deletedCount": 2}
        assert [t["date"] for t in _archived_terms(client, event)] == [_iso(-1)]


# ===========================================================================
# Team tallies & statistics
# ===========================================================================
class TestStatisticsRoutes:
    def _played_term(self, client, people, event) -> dict:
        _generate(client, people.owner, event, -1, -1)
        [term] = _archived_terms(client, event)
        for user in (people.owner, people.member):
            client.post(f"/api/events/terms/{term['id']}/attendance", headers=auth(user))
        return term

    def test_save_and_outcomes(self, client, people):
        event = _create_recurring(client, people.owner)
        term = self._played_term(client, people, event)
        resp = client.post(
            f"/api/events/terms/{term['id']}/statistics",
            json={"statistics": {"teams": [
                {"name": "Red", "members": [{"id": people.owner.id, "kind": "USER"}],
                 "wins": 2, "draws": 0, "losses": 1},
                {"name": "Blue", "members": [{"id": people.member.id, "kind": "USER"}],
                 "wins": 1, "draws": 0, "losses": 2},
            ]}},
            headers=auth(people.owner),
        )
        assert resp.status_code == 200, resp.text
        teams = resp.json()["term"]["statistics"]["teams"]
        assert [(t["name"], t["outcome"]) for t in teams] == [("Red", "WIN"), ("Blue", "LOSS")]
        assert teams[1]["members"][0]["name"] == "Mili"

        stats = client.get(f"/api/events/uuid/{event['uuid']}/statistics?sort=wins").json()
        assert stats["archived_total"] == 1
        assert stats["filled_count"] == 1
        assert stats["stats"][0]["id"] == people.owner.id
        assert stats["stats"][0]["win_pct"] == 100.0
        assert stats["highlights"]["max_wins"] == 1

    def test_negative_tally_is_422(self, client, people):
        event = _create_recurring(client, people.owner)
        term = self._played_term(client, people, event)
        resp = client.post(
            f"/api/events/terms/{term['id']}/statistics",
            json={"statistics": {"teams": [{"name": "Red", "wins": -1}]}},
            headers=auth(people.owner),
        )
        assert resp.status_code == 422

    def test_save_by_member_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        term = self._played_term(client, people, event)
        resp = client.post(
            f"/api/events/terms/{term['id']}/statistics",
            json={"statistics": {"teams": []}},
            headers=auth(people.member),
        )
        assert resp.status_code == 403

    def test_sort_by_name_ascending(self, client, people):
        event = _create_recurring(client, people.owner)
        self._played_term(client, people, event)
        stats = client.get(
            f"/api/events/uuid/{event['uuid']}/statistics?sort=name&direction=asc"
        ).json()["stats"]
        assert [s["name"] for s in stats] == ["Mili", "Olga Owner"]

    def test_unknown_sort_key_is_400(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.get(f"/api/events/uuid/{event['uuid']}/statistics?sort=height")
        assert resp.status_code == 400


# ===========================================================================
# Guests
# ===========================================================================
class TestGuestRoutes:
    def test_add_and_remove_guest(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.post(
            f"/api/events/uuid/{event['uuid']}/guests",
            json={"firstName": "Gina", "lastName": "Guest"},
            headers=auth(people.member),
        )
        assert resp.status_code == 201
        guest = resp.json()["guest"]
        assert guest["name"] == "Gina Guest"
        assert guest["added_by"] == people.member.id
        assert {"id": guest["id"], "kind": "GUEST", "name": "Gina Guest"} in (
            resp.json()["event"]["attendees"]
        )

        resp = client.delete(
            f"/api/events/uuid/{event['uuid']}/attendees/{guest['id']}?kind=GUEST",
            headers=auth(people.member),
        )
        assert resp.status_code == 200
        page = client.get(f"/api/events/uuid/{event['uuid']}").json()["event"]
        assert page["guests"] == []
        assert page["attendees"] == []

        resp = client.delete(
            f"/api/events/uuid/{event['uuid']}/attendees/{guest['id']}?kind=GUEST",
            headers=auth(people.member),
        )
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Guest not found"}

    def test_guest_without_last_name_is_422(self, client, people):
        event = _create_recurring(client, people.owner)
        resp = client.post(
            f"/api/events/uuid/{event['uuid']}/guests",
            json={"firstName": "Gina"},
            headers=auth(people.member),
        )
        assert resp.status_code == 422

    def test_remove_by_outsider_is_403(self, client, people):
        event = _create_recurring(client, people.owner)
        client.post(f"/api/events/{event['uuid']}/attendance", headers=auth(people.member))
        resp = client.delete(
            f"/api/events/uuid/{event['uuid']}/attendees/{people.member.id}",
            headers=auth(people.outsider),
        )
        assert resp.status_code == 403


# ===========================================================================
# Users
# ===========================================================================
class TestUserRoutes:
    def test_me(self, client, people):
        resp = client.get("/api/auth/me", headers=auth(people.member))
        assert resp.status_code == 200
        assert resp.json()["user"]["display_name"] == "Mili"

    def test_me_for_deleted_user_is_404(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {make_token('gone')}"})
        assert resp.status_code == 404

    def test_search(self, client, people):
        resp = client.get("/api/users/search?q=otto", headers=auth(people.owner))
        assert [u["id"] for u in resp.json()["users"]] == [people.outsider.id]
        assert "password_hash" not in resp.json()["users"][0]

    def test_update_profile(self, client, people):
        resp = client.put(
            "/api/users/profile",
            json={"nickname": "Boss", "preferNickname": True},
            headers=auth(people.owner),
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["display_name"] == "Boss"
