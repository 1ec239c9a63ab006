"""
Keyword matching with a synonym table.

The synonym table is configuration: a JSON file mapping a keyword to the
variations that also count as a match ("javascript" also matches "js",
"node", ...). The packaged default can be replaced through the
KEYWORD_SYNONYMS_PATH setting.
"""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from src.core.errors import ConfigurationError


class SynonymFile(BaseModel):
    """On-disk format of the synonym table."""

    version: int = Field(1, ge=1, description="Table version")
    synonyms: dict[str, list[str]] = Field(default_factory=dict)


class KeywordSynonyms:
    """
    Case-insensitive substring matcher augmented by synonyms.

    Example:
        >>> synonyms = KeywordSynonyms({"python": ["django"]})
        >>> synonyms.matches("building apis with django", "Python")
        True
    """

    def __init__(self, table: dict[str, list[str]] | None = None, version: int = 1):
        self.version = version
        self._table = {
            key.lower(): tuple(v.lower() for v in values)
            for key, values in (table or {}).items()
        }

    @classmethod
    def from_file(cls, path: Path | str) -> KeywordSynonyms:
        """Load a synonym table, failing fast on a malformed file."""
        path = Path(path)
        try:
            data = SynonymFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid keyword synonym table {path}: {e}") from e

        logger.debug(f"Loaded {len(data.synonyms)} synonym groups from {path.name} (v{data.version})")
        return cls(data.synonyms, version=data.version)

    def variations(self, keyword: str) -> tuple[str, ...]:
        """The keyword itself followed by its synonyms, lower-cased."""
        keyword = keyword.lower()
        return (keyword, *self._table.get(keyword, ()))

    def matches(self, text: str, keyword: str) -> bool:
        """True when the keyword or any synonym is a substring of text."""
        text = text.lower()
        return any(variation in text for variation in self.variations(keyword))

    def __len__(self) -> int:
        return len(self._table)
