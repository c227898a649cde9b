import hashlib
import hmac
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from celery.exceptions import Retry

from conftest import as_actor
from doctrack.schemas.tracking import DocumentCreate
from doctrack.services.documents import Documents


def _settings(webhooks=(), secret=None):
    mock = MagicMock()
    mock.change_feed_webhooks = webhooks
    mock.change_feed_secret = secret
    return mock


class TestBroadcastChange:
    @patch("doctrack.tasks.events.deliver_change.delay")
    def test_one_delivery_per_subscriber(self, mock_deliver):
        from doctrack.tasks.events import broadcast_change

        with patch(
            "doctrack.tasks.events.settings",
            _settings(webhooks=("https://a.example/feed", "https://b.example/feed")),
        ):
            broadcast_change(
                table="documents", event_type="INSERT", record={"id": "d1"}
            )

        urls = [c.kwargs["url"] for c in mock_deliver.call_args_list]
        assert urls == ["https://a.example/feed", "https://b.example/feed"]
        payload = mock_deliver.call_args.kwargs["payload"]
        assert payload["table"] == "documents"
        assert payload["event_type"] == "INSERT"
        assert payload["record"] == {"id": "d1"}
        assert "published_at" in payload

    @patch("doctrack.tasks.events.deliver_change.delay")
    def test_no_subscribers(self, mock_deliver):
        from doctrack.tasks.events import broadcast_change

        with patch("doctrack.tasks.events.settings", _settings()):
            broadcast_change(table="documents", event_type="DELETE", record={"id": "x"})
        assert not mock_deliver.called

    @patch("doctrack.tasks.events.deliver_change.delay", side_effect=RuntimeError("down"))
    def test_queue_failure_is_logged(self, mock_deliver):
        from doctrack.tasks.events import broadcast_change

        with patch("doctrack.tasks.events.settings", _settings(webhooks=("https://a",))):
            broadcast_change(table="documents", event_type="INSERT", record={})
        assert mock_deliver.called


class TestDeliverChange:
    def test_signed_post(self):
        from doctrack.tasks.events import deliver_change

        payload = {"table": "documents", "event_type": "UPDATE", "record": {"id": "d1"}}
        response = MagicMock(status_code=204)
        with patch("doctrack.tasks.events.settings", _settings(secret="s3cret")):
            with patch("httpx.Client.post", return_value=response) as mock_post:
                deliver_change(url="https://a.example/feed", payload=payload)

        body = json.dumps(payload, default=str)
        expected = hmac.new(b"s3cret", body.encode(), hashlib.sha256).hexdigest()
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["X-Webhook-Signature"] == expected
        assert mock_post.call_args.kwargs["content"] == body

    def test_unsigned_without_secret(self):
        from doctrack.tasks.events import sign

        assert "X-Webhook-Signature" not in sign("{}", None)

    def test_failure_retries(self):
        from doctrack.tasks.events import deliver_change

        with patch("doctrack.tasks.events.settings", _settings()):
            with patch("httpx.Client.post", side_effect=httpx.ConnectError("refused")):
                with pytest.raises(Retry):
                    deliver_change(url="https://a.example/feed", payload={})

    def test_server_error_retries(self):
        from doctrack.tasks.events import deliver_change

        with patch("doctrack.tasks.events.settings", _settings()):
            with patch("httpx.Client.post", return_value=MagicMock(status_code=500)):
                with pytest.raises(Retry):
                    deliver_change(url="https://a.example/feed", payload={})


class TestPublishing:
    @patch("doctrack.tasks.events.broadcast_change.delay")
    def test_create_publishes_rows(self, mock_broadcast, db_session, it_user):
        Documents.create(
            db_session,
            DocumentCreate(title="Memo", recipient="HR", analyze=False),
            as_actor(it_user),
        )
        calls = [(c.kwargs["table"], c.kwargs["event_type"]) for c in mock_broadcast.call_args_list]
        assert calls == [
            ("documents", "INSERT"),
            ("document_logs", "INSERT"),
            ("document_logs", "INSERT"),
        ]
        log_record = mock_broadcast.call_args_list[1].kwargs["record"]
        assert "document_id" in log_record

    @patch("doctrack.tasks.events.broadcast_change.delay", side_effect=RuntimeError("no broker"))
    def test_broker_failure_does_not_fail_write(self, mock_broadcast, db_session, it_user):
        doc = Documents.create(
            db_session,
            DocumentCreate(title="Memo", recipient="HR", analyze=False),
            as_actor(it_user),
        )
        assert doc.reference_number


class TestScanCollisions:
    def test_reports_shared_numbers(self, db_session, it_user):
        payload = DocumentCreate(title="Memo", recipient="HR", analyze=False)
        first = Documents.create(db_session, payload, as_actor(it_user))
        with patch(
            "doctrack.core.state_machine.allocate", return_value=first.reference_number
        ):
            Documents.create(db_session, payload, as_actor(it_user))

        with patch("doctrack.db.SessionLocal", return_value=db_session):
            with patch.object(db_session, "close"):
                from doctrack.tasks.maintenance import scan_collisions

                assert scan_collisions() == 1

    def test_clean_store(self, db_session, it_user):
        with patch("doctrack.db.SessionLocal", return_value=db_session):
            with patch.object(db_session, "close"):
                from doctrack.tasks.maintenance import scan_collisions

                assert scan_collisions() == 0
