"""Configuration for a JSON storage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class StorageConfig:
    """Options recognized by :class:`json_tables.storage.JsonStorage`.

    Attributes:
        path: Directory holding one ``<type>.json`` data file per type.
        schema: Directory of schema documents registered on startup.
        debug: Write data files pretty-printed instead of compact.
    """

    path: Path | None = None
    schema: Path | None = None
    debug: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.path, str):
            self.path = Path(self.path)
        if isinstance(self.schema, str):
            self.schema = Path(self.schema)

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> StorageConfig:
        """Build a config from a mapping of option names, ignoring unknown keys."""
        return cls(
            path=options.get("path"),
            schema=options.get("schema"),
            debug=bool(options.get("debug", False)),
        )
