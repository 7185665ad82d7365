#!/usr/bin/env python3
"""
zotero.py — Retrieve, update and validate DOIs of Zotero items via CrossRef.

This script:
1. Selects items from your Zotero library (by key, collection or tag)
2. Looks their DOIs up on CrossRef (title + first author search)
3. Writes found DOIs back to Zotero, or checks stored DOIs are registered

Usage:
    doi-fix retrieve --item ABCD1234 --item EFGH5678   # Fill in missing DOIs
    doi-fix update --collection ABCD1234 --dry-run     # Preview DOI refresh
    doi-fix validate --tag "to-check"                  # Check stored DOIs

Environment variables:
    ZOTERO_LIBRARY_ID - Your Zotero user ID (find at zotero.org/settings/keys)
    ZOTERO_API_KEY    - API key with write permissions
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any

from pyzotero import zotero
from pyzotero.zotero_errors import PreConditionFailedError

from doi_fix.config import DoiFixConfig
from doi_fix.crossref import CrossrefClient
from doi_fix.manager import BatchReport, DoiManager, Outcome, print_summary
from doi_fix.utils import InvalidInputError, PersistenceError

# Zotero item types that are not bibliographic records
NON_REGULAR_TYPES = frozenset({"attachment", "note", "annotation"})


# ------------- Zotero Item Adapter -------------


class ZoteroItem:
    """A Zotero web API item exposing the field accessors DoiManager uses.

    Field changes are buffered until save_tx() sends them in one update.
    """

    def __init__(self, item: dict[str, Any], zot: Any = None):
        self.raw = item
        self.data: dict[str, Any] = item.get("data", item)
        self.zot = zot
        self._changes: dict[str, Any] = {}

    @property
    def key(self) -> str:
        return self.data.get("key", "")

    @property
    def is_feed_item(self) -> bool:
        library = self.raw.get("library") or {}
        return library.get("type") == "feed"

    def is_regular_item(self) -> bool:
        return self.data.get("itemType", "") not in NON_REGULAR_TYPES

    def get_field(self, name: str) -> Any:
        if name in self._changes:
            return self._changes[name]
        return self.data.get(name, "")

    def set_field(self, name: str, value: Any) -> None:
        if value == self.data.get(name):
            self._changes.pop(name, None)
        else:
            self._changes[name] = value

    def get_creators(self) -> list[dict[str, Any]]:
        return list(self.data.get("creators") or [])

    def save_tx(self) -> None:
        """Send buffered field changes to Zotero.

        Raises:
            PersistenceError: If the update is rejected or cannot be sent
        """
        if not self._changes:
            return
        if self.zot is None:
            raise PersistenceError(f"Item {self.key} is not attached to a Zotero library")

        payload = {"key": self.key, "version": self.data.get("version", 0), **self._changes}
        try:
            self._update_item_with_retry(payload)
        except Exception as e:
            raise PersistenceError(f"Failed to save {self.key}: {e}") from e

        self.data.update(self._changes)
        self._changes = {}

    def _update_item_with_retry(self, payload: dict[str, Any]) -> None:
        """Update item, refreshing the version once on a version conflict."""
        try:
            self.zot.update_item(payload)
        except PreConditionFailedError:
            fresh = self.zot.item(payload["key"])
            payload["version"] = fresh["data"]["version"]
            self.zot.update_item(payload)


# ------------- Zotero Library -------------


class ZoteroLibrary:
    """Selects items from a Zotero library for processing."""

    def __init__(self, library_id: str, api_key: str, library_type: str = "user", logger: logging.Logger | None = None):
        self.zot = zotero.Zotero(library_id, library_type, api_key)
        self.logger = logger or logging.getLogger(__name__)

    def get_selected_items(
        self,
        item_keys: list[str] | None = None,
        collection_key: str | None = None,
        tag: str | None = None,
        limit: int = 100,
    ) -> list[ZoteroItem]:
        """Fetch the items to process.

        Args:
            item_keys: Specific item keys (takes precedence over other filters)
            collection_key: Only fetch items from this collection
            tag: Only fetch items with this tag
            limit: Maximum items to fetch
        """
        if item_keys:
            items = [self.zot.item(k) for k in item_keys]
        else:
            params: dict[str, Any] = {"limit": limit}
            if tag:
                params["tag"] = tag
            if collection_key:
                items = self.zot.collection_items(collection_key, **params)
            else:
                items = self.zot.items(**params)

        self.logger.info(f"Selected {len(items)} item(s)")
        return [ZoteroItem(it, self.zot) for it in items]


# ------------- Main Logic -------------


def build_manager(config: DoiFixConfig, logger: logging.Logger | None = None) -> DoiManager:
    """Wire a CrossRef client into a DoiManager."""
    client = CrossrefClient(config, logger=logger)
    return DoiManager(client, dry_run=config.dry_run, logger=logger)


def run_operation(manager: DoiManager, operation: str, items: list[Any]) -> BatchReport:
    if operation == "retrieve":
        return manager.retrieve_doi_for_items(items)
    if operation == "update":
        return manager.update_doi_for_items(items)
    if operation == "validate":
        return manager.validate_doi_for_items(items)
    raise ValueError(f"Unknown operation: {operation}")


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--item", action="append", dest="items", help="Zotero item key (repeatable)")
    parser.add_argument("--collection", help="Only process items in this collection (key)")
    parser.add_argument("--tag", help="Only process items with this tag")
    parser.add_argument("--limit", type=int, default=100, help="Max items to process")
    parser.add_argument("--dry-run", action="store_true", default=None, help="Preview changes without applying")
    parser.add_argument("--verbose", "-v", action="store_true", default=None, help="Verbose output")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--library-id", help="Zotero library ID (or set ZOTERO_LIBRARY_ID)")
    parser.add_argument("--api-key", help="Zotero API key (or set ZOTERO_API_KEY)")
    parser.add_argument("--library-type", choices=["user", "group"], help="Library type")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Retrieve, update and validate DOIs of Zotero items via CrossRef",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="operation", required=True)
    for name, help_text in (
        ("retrieve", "Find DOIs for items that have none"),
        ("update", "Look up DOIs again and overwrite changed ones"),
        ("validate", "Check stored DOIs against CrossRef"),
    ):
        _add_common_args(subparsers.add_parser(name, help=help_text))

    args = parser.parse_args(argv)

    config = DoiFixConfig.from_yaml(args.config) if args.config else DoiFixConfig()
    config = DoiFixConfig.from_env(config).with_overrides(
        library_id=args.library_id,
        api_key=args.api_key,
        library_type=args.library_type,
        dry_run=args.dry_run,
        verbose=args.verbose,
    )

    level = logging.DEBUG if config.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    logger = logging.getLogger("doi_fix")

    if not config.library_id or not config.api_key:
        print("Error: ZOTERO_LIBRARY_ID and ZOTERO_API_KEY required", file=sys.stderr)
        print("  Set environment variables or use --library-id and --api-key", file=sys.stderr)
        print("  Get your library ID and create an API key at: https://www.zotero.org/settings/keys", file=sys.stderr)
        return 1

    library = ZoteroLibrary(config.library_id, config.api_key, config.library_type, logger=logger)
    try:
        items = library.get_selected_items(
            item_keys=args.items,
            collection_key=args.collection,
            tag=args.tag,
            limit=args.limit,
        )
    except Exception as e:
        logger.debug("Item selection failed", exc_info=True)
        print(f"Error: could not fetch items from Zotero: {e}", file=sys.stderr)
        return 1

    manager = build_manager(config, logger=logger)
    try:
        report = run_operation(manager, args.operation, items)
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        manager.client.close()

    print_summary(report)

    failed = [r for r in report.results if r.outcome in (Outcome.NOT_FOUND, Outcome.ERROR, Outcome.INVALID)]
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
