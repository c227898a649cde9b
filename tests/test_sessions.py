from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from conftest import make_person
from doctrack.core import sessions
from doctrack.core.sessions import SessionRecord
from doctrack.services.sessions import Sessions

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


class TestSessionRules:
    def test_begin_takes_next_token(self):
        first = sessions.begin("p1", None, NOW)
        second = sessions.begin("p1", first, NOW + timedelta(minutes=1))
        assert (first.token, second.token) == (1, 2)
        assert second.is_active

    def test_own_echo_never_terminates(self):
        mine = sessions.begin("p1", None, NOW)
        assert not sessions.must_terminate(mine, mine.token)

    def test_older_record_never_terminates(self):
        old = sessions.begin("p1", None, NOW)
        mine = sessions.begin("p1", old, NOW)
        assert not sessions.must_terminate(old, mine.token)

    def test_newer_login_terminates(self):
        mine = sessions.begin("p1", None, NOW)
        newer = sessions.begin("p1", mine, NOW)
        assert sessions.must_terminate(newer, mine.token)

    def test_end_with_stale_token_is_ignored(self):
        first = sessions.begin("p1", None, NOW)
        second = sessions.begin("p1", first, NOW)
        assert sessions.end(second, first.token, NOW) == second

    def test_end_marks_inactive_and_terminates_holder(self):
        mine = sessions.begin("p1", None, NOW)
        ended = sessions.end(mine, mine.token, NOW)
        assert not ended.is_active
        assert sessions.must_terminate(ended, mine.token)


class TestSessionService:
    @patch("doctrack.tasks.events.broadcast_change.delay")
    def test_begin_persists_and_publishes(self, mock_delay, db_session, it_user):
        record = Sessions.begin(db_session, str(it_user.id))
        assert record.token == 1
        assert Sessions.get(db_session, str(it_user.id)).is_active
        mock_delay.assert_called_once()
        assert mock_delay.call_args.kwargs["table"] == "user_sessions"

    def test_second_login_supersedes_first(self, db_session, it_user):
        first = Sessions.begin(db_session, str(it_user.id))
        second = Sessions.begin(db_session, str(it_user.id))
        assert second.token == first.token + 1
        assert Sessions.must_terminate(db_session, str(it_user.id), first.token)
        assert not Sessions.must_terminate(db_session, str(it_user.id), second.token)

    def test_end(self, db_session, it_user):
        record = Sessions.begin(db_session, str(it_user.id))
        ended = Sessions.end(db_session, str(it_user.id), record.token)
        assert not ended.is_active

    def test_get_without_session(self, db_session, it_user):
        record = Sessions.get(db_session, str(it_user.id))
        assert record == SessionRecord(person_id=str(it_user.id))

    def test_inactive_person_cannot_log_in(self, db_session, departments):
        person = make_person(db_session, "IT", is_active=False)
        with pytest.raises(HTTPException) as exc:
            Sessions.begin(db_session, str(person.id))
        assert exc.value.status_code == 403


def _headers(person):
    return {"X-Person-Id": str(person.id)}


class TestSessionApi:
    def test_login_check_logout(self, client, it_user):
        person_id = str(it_user.id)
        headers = _headers(it_user)
        resp = client.post(f"/sessions/{person_id}", headers=headers)
        assert resp.status_code == 200
        token = resp.json()["token"]

        resp = client.get(
            f"/sessions/{person_id}/check", params={"token": token}, headers=headers
        )
        assert resp.json() == {"token": token, "must_terminate": False}

        client.post(f"/sessions/{person_id}", headers=headers)
        resp = client.get(
            f"/sessions/{person_id}/check", params={"token": token}, headers=headers
        )
        assert resp.json()["must_terminate"] is True

    def test_logout(self, client, it_user):
        person_id = str(it_user.id)
        headers = _headers(it_user)
        token = client.post(f"/sessions/{person_id}", headers=headers).json()["token"]
        resp = client.post(
            f"/sessions/{person_id}/end", json={"token": token}, headers=headers
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False

    def test_requires_person_header(self, client, it_user):
        resp = client.post(f"/sessions/{it_user.id}")
        assert resp.status_code == 422

    def test_cannot_take_over_another_persons_session(self, client, it_user, hr_user):
        resp = client.post(f"/sessions/{it_user.id}", headers=_headers(hr_user))
        assert resp.status_code == 403
        resp = client.get(f"/sessions/{it_user.id}", headers=_headers(hr_user))
        assert resp.status_code == 403

    def test_admin_can_end_any_session(self, client, it_user, admin):
        token = client.post(
            f"/sessions/{it_user.id}", headers=_headers(it_user)
        ).json()["token"]
        resp = client.post(
            f"/sessions/{it_user.id}/end", json={"token": token}, headers=_headers(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
