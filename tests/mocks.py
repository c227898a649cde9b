import json
from unittest.mock import MagicMock

import httpx


class FakeHTTPXResponse:
    """Just enough of ``httpx.Response`` for the summarizer and webhooks."""

    def __init__(self, json_data=None, status_code=200):
        self._json_data = json_data if json_data is not None else {}
        self.status_code = status_code
        self.text = json.dumps(self._json_data)

    def json(self):
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise httpx.HTTPError(f"HTTP {self.status_code}")


def fake_client(response=None, error=None):
    """A context-managed ``httpx.Client`` stand-in whose ``post`` is canned."""
    client = MagicMock()
    client.__enter__.return_value = client
    if error is not None:
        client.post.side_effect = error
    else:
        client.post.return_value = response
    return client
