"""DOI Fix - Retrieve, update and validate DOIs of reference-manager items.

This package provides tools for:
- Finding DOIs on CrossRef from an item's title and first author
- Refreshing stored DOIs and reporting which ones changed
- Checking that stored DOIs are registered with CrossRef

Example usage:
    from doi_fix import CrossrefClient, DoiFixConfig, DoiManager

    config = DoiFixConfig(version="1.0.0")
    client = CrossrefClient(config)
    doi = client.search("Deep Learning", [{"lastName": "LeCun"}], "2015")

    manager = DoiManager(client)
    report = manager.retrieve_doi_for_items(items)
"""

from doi_fix._version import __version__
from doi_fix.config import DoiFixConfig
from doi_fix.crossref import CrossrefClient
from doi_fix.manager import (
    BatchReport,
    BatchState,
    DoiManager,
    ItemResult,
    LoggingProgressReport,
    Outcome,
    print_summary,
)
from doi_fix.utils import (
    # Classes
    CandidateWork,
    DoiFixError,
    HttpClient,
    InvalidInputError,
    PersistenceError,
    SearchMatch,
    TransportError,
    # Query construction
    build_query,
    # DOI utilities
    clean_doi,
    doi_url,
    extract_year,
    first_creator_last_name,
    # Matching utilities
    is_similar_title,
    # Text normalization
    normalize_title,
    title_similarity,
)

__all__ = [
    # Version
    "__version__",
    # Core classes
    "BatchReport",
    "BatchState",
    "CrossrefClient",
    "DoiFixConfig",
    "DoiManager",
    "ItemResult",
    "LoggingProgressReport",
    "Outcome",
    "print_summary",
    # Utility classes
    "CandidateWork",
    "HttpClient",
    "SearchMatch",
    # Errors
    "DoiFixError",
    "InvalidInputError",
    "PersistenceError",
    "TransportError",
    # Text normalization
    "normalize_title",
    # Matching utilities
    "is_similar_title",
    "title_similarity",
    # Query construction
    "build_query",
    "extract_year",
    "first_creator_last_name",
    # DOI utilities
    "clean_doi",
    "doi_url",
]
