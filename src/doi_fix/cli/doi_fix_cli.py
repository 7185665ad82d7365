#!/usr/bin/env python3
"""CLI entry point for doi-fix command.

Retrieves, updates and validates DOIs of Zotero items.
"""

import sys


def main() -> None:
    """Entry point for doi-fix command."""
    from doi_fix.zotero import main as zotero_main

    sys.exit(zotero_main())


if __name__ == "__main__":
    main()
