"""Shared fixtures for doi_fix tests."""

from __future__ import annotations

import logging
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from doi_fix import CrossrefClient, DoiFixConfig, DoiManager, HttpClient


class FakeItem:
    """In-memory host item recording writes and saves."""

    def __init__(
        self,
        key: str = "ITEM1",
        title: str | None = "Example Title",
        creators: List[Dict[str, Any]] | None = None,
        date: str = "2020-01-15",
        DOI: str = "",
        item_type: str = "journalArticle",
        is_feed_item: bool = False,
        save_error: Exception | None = None,
    ):
        self.key = key
        self.fields: Dict[str, Any] = {"title": title, "date": date, "DOI": DOI}
        if creators is None:
            creators = [{"creatorType": "author", "firstName": "Jane", "lastName": "Doe"}]
        self.creators = creators
        self.item_type = item_type
        self.is_feed_item = is_feed_item
        self.save_error = save_error
        self.saved = 0

    def get_field(self, name: str) -> Any:
        return self.fields.get(name, "")

    def set_field(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def get_creators(self) -> List[Dict[str, Any]]:
        return self.creators

    def is_regular_item(self) -> bool:
        return self.item_type not in ("attachment", "note")

    def save_tx(self) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.saved += 1


class RecordingProgressReport:
    """ProgressReport that keeps every call for assertions."""

    def __init__(self):
        self.headline = ""
        self.shown = False
        self.lines: List[tuple] = []
        self.close_delay_ms = None

    def change_headline(self, headline: str) -> None:
        self.headline = headline

    def show(self) -> None:
        self.shown = True

    def add_lines(self, text: str, icon: str = "default") -> None:
        self.lines.append((text, icon))

    def start_close_timer(self, delay_ms: int) -> None:
        self.close_delay_ms = delay_ms


class FakeHttpClient(HttpClient):
    """Fake HTTP client for testing without network calls."""

    def __init__(self):
        # Don't call parent __init__ to avoid setting up real HTTP
        self.user_agent = "test"

    def _request(self, method, url, params=None, accept=None, success_codes=(200,)):
        raise NotImplementedError("FakeHttpClient does not make real requests")

    def close(self) -> None:
        pass


@pytest.fixture
def logger():
    """Create a test logger."""
    return logging.getLogger("test")


@pytest.fixture
def config():
    """Config with a fixed version for predictable User-Agent strings."""
    return DoiFixConfig(version="1.2.3")


@pytest.fixture
def make_item():
    """Factory fixture for creating host items."""

    def _make_item(**kwargs) -> FakeItem:
        return FakeItem(**kwargs)

    return _make_item


@pytest.fixture
def make_crossref_response():
    """Factory fixture for CrossRef search bodies."""

    def _make(*works: tuple) -> Dict[str, Any]:
        items = []
        for title, doi in works:
            work: Dict[str, Any] = {}
            if title is not None:
                work["title"] = [title]
            if doi is not None:
                work["DOI"] = doi
            items.append(work)
        return {"status": "ok", "message": {"items": items}}

    return _make


@pytest.fixture
def mock_http():
    """MagicMock standing in for HttpClient."""
    return MagicMock(spec=HttpClient)


@pytest.fixture
def crossref_client(config, mock_http, logger):
    """CrossrefClient backed by a mocked HTTP client."""
    return CrossrefClient(config, http=mock_http, logger=logger)


@pytest.fixture
def fake_client():
    """MagicMock standing in for CrossrefClient."""
    return MagicMock(spec=CrossrefClient)


@pytest.fixture
def progress():
    return RecordingProgressReport()


@pytest.fixture
def manager(fake_client, progress, logger):
    """DoiManager with a mocked client and a recording progress report."""
    return DoiManager(fake_client, reporter_factory=lambda: progress, logger=logger)


@pytest.fixture
def fake_http():
    """Create a fake HTTP client."""
    return FakeHttpClient()
