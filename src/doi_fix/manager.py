"""Batch DOI retrieval, update and validation.

``DoiManager`` runs one of three operations over a list of host items:

- retrieve: look up a DOI for items that have none
- update: look up a DOI for every item and overwrite it when it changed
- validate: check each stored DOI against CrossRef

Items are processed one after another in the order given. A failure on one
item is logged, tallied and the batch moves on; only an empty selection
stops an operation before it starts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from doi_fix.crossref import CrossrefClient
from doi_fix.utils import InvalidInputError, clean_doi, extract_year, title_snippet

# ------------- Host Protocols -------------


class Item(Protocol):
    """What the manager needs from a host library item."""

    key: str
    is_feed_item: bool

    def get_field(self, name: str) -> Any: ...

    def set_field(self, name: str, value: Any) -> None: ...

    def get_creators(self) -> list[dict[str, Any]]: ...

    def is_regular_item(self) -> bool: ...

    def save_tx(self) -> None: ...


class ProgressReport(Protocol):
    """Line-oriented progress surface supplied by the host."""

    def change_headline(self, headline: str) -> None: ...

    def show(self) -> None: ...

    def add_lines(self, text: str, icon: str = "default") -> None: ...

    def start_close_timer(self, delay_ms: int) -> None: ...


class LoggingProgressReport:
    """ProgressReport that writes every line to a logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("doi_fix.progress")
        self.headline = ""
        self.close_delay_ms: int | None = None

    def change_headline(self, headline: str) -> None:
        self.headline = headline

    def show(self) -> None:
        self.logger.info(f"== {self.headline} ==")

    def add_lines(self, text: str, icon: str = "default") -> None:
        for line in text.splitlines() or [""]:
            if not line:
                continue
            if icon == "error":
                self.logger.warning(line)
            else:
                self.logger.info(line)

    def start_close_timer(self, delay_ms: int) -> None:
        self.close_delay_ms = delay_ms


# ------------- Results -------------


class Outcome(str, Enum):
    SUCCESS = "success"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    ERROR = "error"
    VALID = "valid"
    INVALID = "invalid"
    NO_DOI = "no_doi"


class BatchState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


OUTCOME_SYMBOLS = {
    Outcome.SUCCESS: "✓",
    Outcome.UNCHANGED: "✓",
    Outcome.VALID: "✓",
    Outcome.NOT_FOUND: "✗",
    Outcome.ERROR: "✗",
    Outcome.INVALID: "✗",
    Outcome.NO_DOI: "-",
}


@dataclass
class ItemResult:
    """Outcome of processing a single item."""

    item_key: str
    title: str
    outcome: Outcome
    doi: str | None = None
    old_doi: str | None = None
    message: str = ""

    @property
    def symbol(self) -> str:
        return OUTCOME_SYMBOLS[self.outcome]

    @property
    def log_line(self) -> str:
        return f"{self.symbol} {self.title}: {self.message}" if self.message else f"{self.symbol} {self.title}"


@dataclass
class BatchReport:
    """Tally and per-item log of one batch run."""

    operation: str
    headline: str
    state: BatchState = BatchState.IDLE
    success_count: int = 0
    fail_count: int = 0
    skipped_count: int = 0
    valid_count: int = 0
    invalid_count: int = 0
    no_doi_count: int = 0
    close_delay_ms: int = 4000
    summary: str = ""
    lines: list[str] = field(default_factory=list)
    results: list[ItemResult] = field(default_factory=list)

    def record(self, result: ItemResult) -> None:
        self.results.append(result)
        if result.outcome == Outcome.SUCCESS:
            self.success_count += 1
        elif result.outcome == Outcome.UNCHANGED:
            self.skipped_count += 1
        elif result.outcome in (Outcome.NOT_FOUND, Outcome.ERROR):
            self.fail_count += 1
        elif result.outcome == Outcome.VALID:
            self.valid_count += 1
        elif result.outcome == Outcome.INVALID:
            self.invalid_count += 1
        elif result.outcome == Outcome.NO_DOI:
            self.no_doi_count += 1


# ------------- Orchestrator -------------


HEADLINES = {
    "retrieve": "DOI Fix - Retrieve DOI",
    "update": "DOI Fix - Update DOI",
    "validate": "DOI Validation",
}

CLOSE_DELAYS_MS = {"retrieve": 4000, "update": 5000, "validate": 4000}


def _item_key(item: Any) -> str:
    return getattr(item, "key", "") or ""


def _item_title(item: Any) -> str:
    return item.get_field("title") or ""


class DoiManager:
    """Runs DOI operations over host items, one item at a time."""

    def __init__(
        self,
        client: CrossrefClient,
        reporter_factory: Callable[[], ProgressReport] = LoggingProgressReport,
        dry_run: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.client = client
        self.reporter_factory = reporter_factory
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)

    # --- single item ---

    def retrieve_doi(self, item: Item, force_update: bool = False) -> str | None:
        """Return a DOI for an item.

        Without force_update an existing DOI is returned (trimmed) and
        CrossRef is not contacted.

        Raises:
            InvalidInputError: If the item has no title
        """
        if not force_update:
            existing = item.get_field("DOI")
            if existing and existing.strip():
                return existing.strip()

        title = item.get_field("title")
        creators = item.get_creators()
        year = extract_year(item.get_field("date"))

        if not title or not title.strip():
            raise InvalidInputError("Item has no title")

        return self.client.search(title, creators, year)

    @staticmethod
    def filter_items(items: Sequence[Item]) -> list[Item]:
        """Keep regular bibliographic items that did not come from a feed."""
        return [it for it in items if it.is_regular_item() and not getattr(it, "is_feed_item", False)]

    # --- batches ---

    def _require_selection(self, items: Sequence[Item] | None) -> None:
        if not items:
            raise InvalidInputError("No items selected")

    def _start(self, operation: str) -> tuple[BatchReport, ProgressReport]:
        report = BatchReport(
            operation=operation,
            headline=HEADLINES[operation],
            close_delay_ms=CLOSE_DELAYS_MS[operation],
        )
        progress = self.reporter_factory()
        progress.change_headline(report.headline)
        progress.show()
        report.state = BatchState.RUNNING
        return report, progress

    def _line(self, report: BatchReport, progress: ProgressReport, text: str, icon: str = "default") -> None:
        report.lines.append(text)
        progress.add_lines(text, icon)

    def _finish(self, report: BatchReport, progress: ProgressReport, summary: str) -> BatchReport:
        report.summary = summary
        self._line(report, progress, f"\n{summary}")
        progress.start_close_timer(report.close_delay_ms)
        report.state = BatchState.COMPLETED
        return report

    def _write_doi(self, item: Item, doi: str) -> None:
        if self.dry_run:
            return
        item.set_field("DOI", doi)
        item.save_tx()

    def retrieve_doi_for_items(self, items: Sequence[Item]) -> BatchReport:
        """Find and store DOIs for items that do not have one yet."""
        self._require_selection(items)
        valid_items = self.filter_items(items)
        if not valid_items:
            raise InvalidInputError("No valid items selected")

        report, progress = self._start("retrieve")
        for item in valid_items:
            key = _item_key(item)
            title = ""
            try:
                title = title_snippet(_item_title(item))
                self._line(report, progress, f"Processing: {title}...")

                doi = self.retrieve_doi(item)

                if doi:
                    self._write_doi(item, doi)
                    verb = "Would set DOI" if self.dry_run else "Found DOI"
                    self._line(report, progress, f"✓ {verb}: {doi}", "success")
                    report.record(ItemResult(key, title, Outcome.SUCCESS, doi=doi, message=f"{verb}: {doi}"))
                else:
                    self._line(report, progress, "✗ No DOI found", "error")
                    report.record(ItemResult(key, title, Outcome.NOT_FOUND, message="No DOI found"))
            except Exception as e:
                self.logger.exception(f"DOI Fix error on {key or title}")
                self._line(report, progress, f"✗ Error: {e}", "error")
                report.record(ItemResult(key, title, Outcome.ERROR, message=str(e)))

        return self._finish(
            report, progress, f"Completed: {report.success_count} succeeded, {report.fail_count} failed"
        )

    def update_doi_for_items(self, items: Sequence[Item]) -> BatchReport:
        """Look up DOIs for all items and overwrite the ones that changed."""
        self._require_selection(items)
        valid_items = self.filter_items(items)
        if not valid_items:
            raise InvalidInputError("No valid items selected")

        report, progress = self._start("update")
        for item in valid_items:
            key = _item_key(item)
            title = ""
            old_doi = None
            try:
                title = title_snippet(_item_title(item))
                old_doi = item.get_field("DOI") or None

                self._line(report, progress, f"Processing: {title}...")
                if old_doi:
                    self._line(report, progress, f"  Old DOI: {old_doi}")

                doi = self.retrieve_doi(item, force_update=True)

                if not doi:
                    self._line(report, progress, "✗ No DOI found", "error")
                    report.record(ItemResult(key, title, Outcome.NOT_FOUND, old_doi=old_doi, message="No DOI found"))
                elif clean_doi(doi) == clean_doi(old_doi):
                    self._line(report, progress, f"✓ DOI unchanged: {doi}")
                    report.record(
                        ItemResult(key, title, Outcome.UNCHANGED, doi=doi, old_doi=old_doi, message="DOI unchanged")
                    )
                else:
                    self._write_doi(item, doi)
                    verb = "Would update DOI" if self.dry_run else "Updated DOI"
                    self._line(report, progress, f"✓ {verb}: {doi}", "success")
                    report.record(
                        ItemResult(key, title, Outcome.SUCCESS, doi=doi, old_doi=old_doi, message=f"{verb}: {doi}")
                    )
            except Exception as e:
                self.logger.exception(f"DOI Fix update error on {key or title}")
                self._line(report, progress, f"✗ Error: {e}", "error")
                report.record(ItemResult(key, title, Outcome.ERROR, old_doi=old_doi, message=str(e)))

        return self._finish(
            report,
            progress,
            f"Completed: {report.success_count} updated, {report.skipped_count} unchanged, "
            f"{report.fail_count} failed",
        )

    def validate_doi_for_items(self, items: Sequence[Item]) -> BatchReport:
        """Check each stored DOI against CrossRef."""
        self._require_selection(items)

        report, progress = self._start("validate")
        for item in items:
            key = _item_key(item)
            title = ""
            doi = None
            try:
                if not item.is_regular_item():
                    continue
                title = title_snippet(_item_title(item))
                doi = item.get_field("DOI")

                if not doi or not doi.strip():
                    self._line(report, progress, f"{title}: No DOI")
                    report.record(ItemResult(key, title, Outcome.NO_DOI, message="No DOI"))
                    continue

                if self.client.validate(doi):
                    self._line(report, progress, f"✓ Valid: {doi}", "success")
                    report.record(ItemResult(key, title, Outcome.VALID, doi=doi, message=f"Valid: {doi}"))
                else:
                    self._line(report, progress, f"✗ Invalid: {doi}", "error")
                    report.record(ItemResult(key, title, Outcome.INVALID, doi=doi, message=f"Invalid: {doi}"))
            except Exception as e:
                self.logger.exception(f"DOI validation error on {key or title}")
                self._line(report, progress, f"✗ Error: {e}", "error")
                report.record(ItemResult(key, title, Outcome.INVALID, doi=doi, message=str(e)))

        return self._finish(report, progress, f"Results: {report.valid_count} valid, {report.invalid_count} invalid")


def print_summary(report: BatchReport) -> None:
    """Print summary of a batch run."""
    print("\n" + "=" * 60)
    print(f"SUMMARY: {report.headline}")
    print("=" * 60)
    print(f"Total processed:  {len(report.results)}")
    if report.operation == "validate":
        print(f"Valid:            {report.valid_count}")
        print(f"Invalid:          {report.invalid_count}")
        print(f"No DOI:           {report.no_doi_count}")
    else:
        print(f"Succeeded:        {report.success_count}")
        if report.operation == "update":
            print(f"Unchanged:        {report.skipped_count}")
        print(f"Failed:           {report.fail_count}")

    failed = [r for r in report.results if r.outcome in (Outcome.NOT_FOUND, Outcome.ERROR, Outcome.INVALID)]
    if failed:
        print("\n--- Failed ---")
        for r in failed:
            print(f"  [{r.item_key}] {r.log_line}")
