from unittest.mock import patch

import httpx
import pytest

from doctrack.core.enums import Classification
from doctrack.core.exceptions import CollaboratorUnavailable
from doctrack.services.summarizer import Summarizer
from mocks import FakeHTTPXResponse, fake_client


class TestSummarizer:
    def test_disabled_without_url(self):
        summarizer = Summarizer(url="")
        assert not summarizer.enabled
        with pytest.raises(CollaboratorUnavailable):
            summarizer.analyze("t", "d")

    def test_parses_summary_and_priority(self):
        response = FakeHTTPXResponse(
            {"summary": " Requests budget. ", "priority": "Complex Transaction"}
        )
        with patch("httpx.Client", return_value=fake_client(response)):
            analysis = Summarizer(url="https://ai.example", api_key="k").analyze(
                "Budget", "Q3 request"
            )
        assert analysis.summary == "Requests budget."
        assert analysis.classification == Classification.complex

    def test_sends_bearer_token(self):
        client = fake_client(FakeHTTPXResponse({"summary": "s"}))
        with patch("httpx.Client", return_value=client):
            Summarizer(url="https://ai.example", api_key="k").analyze("t", "d")
        headers = client.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer k"

    def test_unknown_classification_defaults(self):
        response = FakeHTTPXResponse({"summary": "s", "classification": "Weird"})
        with patch("httpx.Client", return_value=fake_client(response)):
            analysis = Summarizer(url="https://ai.example").analyze("t", "d")
        assert analysis.classification == Classification.simple

    def test_http_error(self):
        response = FakeHTTPXResponse({}, status_code=502)
        with patch("httpx.Client", return_value=fake_client(response)):
            with pytest.raises(CollaboratorUnavailable):
                Summarizer(url="https://ai.example").analyze("t", "d")

    def test_timeout(self):
        client = fake_client(error=httpx.ReadTimeout("slow"))
        with patch("httpx.Client", return_value=client):
            with pytest.raises(CollaboratorUnavailable) as exc:
                Summarizer(url="https://ai.example").analyze("t", "d")
        assert exc.value.collaborator == "summarizer"

    def test_missing_summary(self):
        response = FakeHTTPXResponse({"priority": "Simple Transaction"})
        with patch("httpx.Client", return_value=fake_client(response)):
            with pytest.raises(CollaboratorUnavailable):
                Summarizer(url="https://ai.example").analyze("t", "d")
