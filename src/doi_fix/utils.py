"""Shared utilities for the DOI tools.

This module provides common functionality used by:
- crossref.py (search and validation against CrossRef)
- manager.py (batch retrieve/update/validate over Zotero items)

Includes error types, title normalization and matching, DOI cleanup,
query construction, and a thin HTTP client.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import httpx
from rapidfuzz.fuzz import token_sort_ratio

# ------------- Constants & Regex -------------

CROSSREF_API = "https://api.crossref.org/works"
DOI_RESOLVER = "https://doi.org"

DOI_URL_PREFIX_RE = re.compile(r"^https?://(dx\.)?doi\.org/")
YEAR_RE = re.compile(r"\b(1[5-9]\d{2}|2\d{3})\b")

_NON_WORD_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


# ------------- Errors -------------


class DoiFixError(Exception):
    """Base class for errors raised by the DOI tools."""


class InvalidInputError(DoiFixError, ValueError):
    """An item or selection cannot be processed (no title, nothing selected)."""


class TransportError(DoiFixError):
    """The remote registry could not be reached or answered unexpectedly."""


class PersistenceError(DoiFixError):
    """Writing an item back to the host library failed."""


# ------------- Text Normalization -------------


def normalize_title(text: str | None) -> str:
    """Canonicalize a title for comparison.

    Lower-cases, drops everything that is neither a word character nor
    whitespace, collapses whitespace runs and trims.
    """
    if not text:
        return ""
    t = text.lower()
    t = _NON_WORD_RE.sub("", t)
    t = _WHITESPACE_RE.sub(" ", t)
    return t.strip()


# ------------- Matching Utilities -------------


def is_similar_title(title_a: str | None, title_b: str | None) -> bool:
    """Return True when two titles denote the same work.

    Titles match when their normalized forms are equal or one contains the
    other. Short titles therefore match any longer title that contains them.
    """
    t1 = normalize_title(title_a)
    t2 = normalize_title(title_b)
    return t1 == t2 or t2 in t1 or t1 in t2


def title_similarity(title_a: str | None, title_b: str | None) -> float:
    """Fuzzy similarity (0..1) of two normalized titles, for reporting only."""
    t1 = normalize_title(title_a)
    t2 = normalize_title(title_b)
    if not t1 or not t2:
        return 0.0
    return token_sort_ratio(t1, t2) / 100.0


# ------------- DOI Utilities -------------


def clean_doi(doi: str | None) -> str:
    """Strip a doi.org URL prefix and surrounding whitespace from a DOI."""
    if not doi:
        return ""
    d = DOI_URL_PREFIX_RE.sub("", doi.strip())
    return d.strip()


def doi_url(doi: str) -> str:
    """Convert a DOI to a URL."""
    return f"{DOI_RESOLVER}/{clean_doi(doi)}"


# ------------- Item Metadata -------------


def first_creator_last_name(creators: list[dict[str, Any]] | None) -> str:
    """Last name of the first creator, or an empty string."""
    if not creators:
        return ""
    first = creators[0] or {}
    return (first.get("lastName") or "").strip()


def build_query(title: str, creators: list[dict[str, Any]] | None = None) -> str:
    """Build a CrossRef free-text query from a title and the first creator."""
    query = title
    last_name = first_creator_last_name(creators)
    if last_name:
        query += f" {last_name}"
    return query


def extract_year(date: str | None) -> str | None:
    """Pull a four-digit year out of a free-form date field."""
    if not date:
        return None
    m = YEAR_RE.search(date)
    return m.group(1) if m else None


def title_snippet(title: str | None, limit: int = 50) -> str:
    """First ``limit`` characters of a title, used in progress lines."""
    return (title or "")[:limit]


# ------------- Data Classes -------------


@dataclass
class CandidateWork:
    """A single work returned by a CrossRef search."""

    title: str | None = None
    doi: str | None = None

    @classmethod
    def from_crossref(cls, msg: dict[str, Any]) -> CandidateWork:
        titles = msg.get("title") or []
        if isinstance(titles, str):
            titles = [titles]
        title = titles[0] if isinstance(titles, list) and titles else None
        return cls(title=title, doi=msg.get("DOI") or None)


@dataclass
class SearchMatch:
    """The candidate picked by a search, with how it was picked."""

    doi: str | None
    candidate: CandidateWork
    matched: bool  # False when falling back to the first candidate
    score: float = 0.0


# ------------- HTTP Client -------------


class HttpClient:
    """HTTP client with a fixed User-Agent and timeout.

    Requests are made one at a time and never retried. Statuses listed in
    ``success_codes`` are returned to the caller; anything else raises
    TransportError.
    """

    def __init__(self, timeout: float, user_agent: str):
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value sent with every request
        """
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": user_agent},
            follow_redirects=True,
        )
        self.user_agent = user_agent

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        accept: str | None = "application/json",
        success_codes: tuple[int, ...] = (200,),
    ) -> httpx.Response:
        """Make a single HTTP request.

        Raises:
            TransportError: On network failure or a status outside success_codes
        """
        headers = {"Accept": accept} if accept else {}
        try:
            resp = self.client.request(method, url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        if resp.status_code not in success_codes:
            raise TransportError(f"{method} {url} returned HTTP {resp.status_code}")
        return resp

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a URL and decode its JSON body."""
        resp = self._request("GET", url, params=params)
        try:
            return resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise TransportError(f"Malformed JSON from {url}: {e}") from e

    def close(self) -> None:
        self.client.close()
