"""CrossRef search and DOI validation.

``CrossrefClient.search`` turns an item's title and first author into a
free-text query, asks the works endpoint for a handful of candidates and
picks one; ``CrossrefClient.validate`` checks that a DOI is registered.
Both fail soft: network problems and malformed responses are logged and
reported as "not found" / "invalid" so one item never aborts a batch.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from doi_fix.config import DoiFixConfig
from doi_fix.utils import (
    CandidateWork,
    HttpClient,
    InvalidInputError,
    SearchMatch,
    TransportError,
    build_query,
    clean_doi,
    is_similar_title,
    title_similarity,
)


class CrossrefClient:
    """Client for the CrossRef works API."""

    def __init__(
        self,
        config: DoiFixConfig,
        http: HttpClient | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config
        self.http = http or HttpClient(timeout=config.timeout, user_agent=config.user_agent)
        self.logger = logger or logging.getLogger(__name__)

    def search(self, title: str, creators: list[dict[str, Any]] | None = None, year: str | None = None) -> str | None:
        """Search CrossRef for the DOI of a work.

        Args:
            title: Title of the work (must be non-empty)
            creators: Zotero creators; the first one's lastName joins the query
            year: Publication year (logged, not sent)

        Returns:
            The DOI of the first candidate whose title matches, else the DOI
            of the first candidate, else None.

        Raises:
            InvalidInputError: If title is empty
        """
        match = self.find_candidate(title, creators, year)
        return match.doi if match else None

    def find_candidate(
        self, title: str, creators: list[dict[str, Any]] | None = None, year: str | None = None
    ) -> SearchMatch | None:
        """Like search(), but return the selected candidate and how it was picked."""
        if not title or not title.strip():
            raise InvalidInputError("Item has no title")

        query = build_query(title, creators)
        self.logger.debug(f"CrossRef query: {query!r} (year={year})")

        try:
            data = self.http.get_json(self.config.crossref_api, params={"query": query, "rows": self.config.rows})
        except (TransportError, OSError) as e:
            self.logger.warning(f"CrossRef API error: {e}")
            return None

        candidates = self._parse_candidates(data)
        if not candidates:
            return None

        for cand in candidates:
            if is_similar_title(title, cand.title or ""):
                score = title_similarity(title, cand.title)
                return SearchMatch(doi=cand.doi, candidate=cand, matched=True, score=score)

        # No title match: trust CrossRef's own ranking
        first = candidates[0]
        score = title_similarity(title, first.title)
        self.logger.debug(f"No title match for {title[:50]!r}; using first result {first.doi} ({score:.2f})")
        return SearchMatch(doi=first.doi, candidate=first, matched=False, score=score)

    @staticmethod
    def _parse_candidates(data: Any) -> list[CandidateWork]:
        if not isinstance(data, dict):
            return []
        message = data.get("message")
        if not isinstance(message, dict):
            return []
        items = message.get("items")
        if not isinstance(items, list):
            return []
        return [CandidateWork.from_crossref(it) for it in items if isinstance(it, dict)]

    def validate(self, doi: str | None) -> bool:
        """Check that a DOI is registered with CrossRef.

        HTTP 200 means valid and 404 means invalid; any other outcome is
        logged and treated as invalid.
        """
        doi = clean_doi(doi)
        if not doi:
            return False

        url = f"{self.config.crossref_api}/{quote(doi, safe='')}"
        try:
            resp = self.http._request("GET", url, success_codes=(200, 404))
        except (TransportError, OSError) as e:
            self.logger.warning(f"DOI validation error: {e}")
            return False
        return resp.status_code == 200

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> CrossrefClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
