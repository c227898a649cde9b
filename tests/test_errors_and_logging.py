import json
import logging

from doctrack.core.exceptions import (
    AllocationCollision,
    CollaboratorUnavailable,
    InvalidTransition,
    StaleSnapshot,
    TrackingError,
)
from doctrack.errors import tracking_status_code
from doctrack.logging import JsonFormatter


class TestTrackingStatusCodes:
    def test_mapping(self):
        assert tracking_status_code(InvalidTransition("forward", "no")) == 409
        assert tracking_status_code(StaleSnapshot("old")) == 409
        assert tracking_status_code(AllocationCollision("IT 2501001", ["b", "a"])) == 409
        assert tracking_status_code(CollaboratorUnavailable("summarizer", "down")) == 503
        assert tracking_status_code(TrackingError("other")) == 400

    def test_collision_details_sorted(self):
        exc = AllocationCollision("IT 2501001", ["b", "a"])
        assert exc.document_ids == ["a", "b"]
        assert exc.details["reference_number"] == "IT 2501001"


class TestJsonFormatter:
    def test_one_json_object_per_record(self):
        record = logging.LogRecord(
            "doctrack.services.documents",
            logging.INFO,
            __file__,
            1,
            "Created document %s",
            ("d1",),
            None,
        )
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "Created document d1"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "doctrack.services.documents"
