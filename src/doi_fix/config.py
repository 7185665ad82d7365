"""Configuration for the DOI tools."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

import yaml

from doi_fix._version import __version__
from doi_fix.utils import CROSSREF_API


@dataclass(frozen=True)
class DoiFixConfig:
    """Process-wide settings, fixed once the tool starts.

    Attributes:
        id: Identifier of the running tool
        version: Tool version, sent in the User-Agent header
        root_uri: Location the tool was loaded from (informational)
        product_name: Product name used in the User-Agent header
        crossref_api: Base URL of the CrossRef works endpoint
        rows: Number of search results requested per query
        timeout: HTTP timeout in seconds
        library_id: Zotero library ID (user ID or group ID)
        api_key: Zotero API key with write permissions
        library_type: "user" or "group"
        dry_run: Preview changes without writing to Zotero
        verbose: Enable verbose logging
    """

    id: str = "doi-fix"
    version: str = __version__
    root_uri: str | None = None
    product_name: str = "Zotero DOI Manager"
    crossref_api: str = CROSSREF_API
    rows: int = 5
    timeout: float = 20.0
    library_id: str = ""
    api_key: str = ""
    library_type: str = "user"
    dry_run: bool = False
    verbose: bool = False

    @property
    def user_agent(self) -> str:
        return f"{self.product_name}/{self.version}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DoiFixConfig:
        """Create config from a dictionary (e.g., loaded from YAML).

        Unknown keys are ignored; ``root-uri`` style keys are accepted.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = str(key).replace("-", "_")
            if name in known:
                values[name] = value
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str) -> DoiFixConfig:
        """Load config from a YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base: DoiFixConfig | None = None) -> DoiFixConfig:
        """Fill Zotero credentials from ZOTERO_LIBRARY_ID / ZOTERO_API_KEY."""
        base = base or cls()
        return replace(
            base,
            library_id=base.library_id or os.environ.get("ZOTERO_LIBRARY_ID", ""),
            api_key=base.api_key or os.environ.get("ZOTERO_API_KEY", ""),
        )

    def with_overrides(self, **overrides: Any) -> DoiFixConfig:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
