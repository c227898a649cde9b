"""Client for the optional summarization service.

The service is unreliable by contract: any failure degrades to "no summary,
default classification" in the caller and never blocks document creation.
"""

import logging
from dataclasses import dataclass

import httpx

from doctrack.config import settings
from doctrack.core.enums import Classification
from doctrack.core.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Analysis:
    summary: str
    classification: Classification


class Summarizer:
    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url if url is not None else settings.summarizer_url
        self.api_key = api_key if api_key is not None else settings.summarizer_api_key
        self.timeout = timeout if timeout is not None else settings.summarizer_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def analyze(self, title: str, description: str) -> Analysis:
        if not self.url:
            raise CollaboratorUnavailable("summarizer", "No summarizer configured")
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(
                    self.url,
                    json={"title": title, "description": description},
                    headers=headers,
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorUnavailable("summarizer", f"Summarizer call failed: {e}")

        if not isinstance(data, dict) or not isinstance(data.get("summary"), str):
            raise CollaboratorUnavailable("summarizer", "Summarizer returned no summary")
        # The service answers with "priority" or "classification".
        label = data.get("classification") or data.get("priority")
        try:
            classification = Classification(label)
        except ValueError:
            classification = Classification.simple
        return Analysis(summary=data["summary"].strip(), classification=classification)


summarizer = Summarizer()
