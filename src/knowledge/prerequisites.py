"""
Topic prerequisite catalog.

The catalog is static configuration loaded once at startup: an arena of
TopicPrerequisite records addressed through a topic-name index. It is
validated on construction and rejected if the prerequisite graph has a cycle,
so every consumer can rely on topological ordering terminating.

Topics that have no entry are leaves: no prerequisites, base importance 0.5.
"""

from __future__ import annotations

import json
from collections import Counter
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from src.core.errors import ConfigurationError, PrerequisiteCycleError
from src.core.models import KnowledgeDepth, TopicPrerequisite, normalize_topic

UNKNOWN_TOPIC_IMPORTANCE = 0.5
FAN_IN_SATURATION = 10
FAN_IN_WEIGHT = 0.3


class TopicPrerequisiteEntry(BaseModel):
    """One topic in the on-disk catalog."""

    topic: str = Field(..., min_length=1)
    prerequisites: list[str] = Field(default_factory=list)
    difficulty: KnowledgeDepth = KnowledgeDepth.BEGINNER
    importance: float = Field(0.5, ge=0, le=1)


class PrerequisiteCatalogFile(BaseModel):
    """On-disk format of the prerequisite catalog."""

    version: int = Field(1, ge=1)
    topics: list[TopicPrerequisiteEntry] = Field(default_factory=list)


class PrerequisiteCatalog:
    """
    Versioned, read-only prerequisite graph.

    Example:
        >>> catalog = PrerequisiteCatalog.load()
        >>> catalog.prerequisites_of("react")
        ('javascript', 'html', 'css')
        >>> catalog.prerequisites_of("rust")
        ()
    """

    def __init__(self, entries: Iterable[TopicPrerequisite], version: int = 1):
        self.version = version
        self._entries: list[TopicPrerequisite] = []
        self._index: dict[str, int] = {}

        for entry in entries:
            topic = normalize_topic(entry.topic)
            if topic in self._index:
                raise ConfigurationError(f"Duplicate prerequisite entry for topic '{topic}'")
            self._index[topic] = len(self._entries)
            self._entries.append(
                TopicPrerequisite(
                    topic=topic,
                    prerequisites=tuple(dict.fromkeys(normalize_topic(p) for p in entry.prerequisites)),
                    difficulty=KnowledgeDepth(entry.difficulty),
                    importance=entry.importance,
                )
            )

        self._fan_in = Counter(p for entry in self._entries for p in entry.prerequisites)
        self._dependents: dict[str, tuple[str, ...]] = {}
        for entry in self._entries:
            for prerequisite in entry.prerequisites:
                self._dependents[prerequisite] = (*self._dependents.get(prerequisite, ()), entry.topic)

        self._check_acyclic()

    @classmethod
    def from_file(cls, path: Path | str) -> PrerequisiteCatalog:
        """Load and validate a catalog file. Fails fast on any problem."""
        path = Path(path)
        try:
            data = PrerequisiteCatalogFile.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid prerequisite catalog {path}: {e}") from e

        catalog = cls(
            (
                TopicPrerequisite(
                    topic=t.topic,
                    prerequisites=tuple(t.prerequisites),
                    difficulty=t.difficulty,
                    importance=t.importance,
                )
                for t in data.topics
            ),
            version=data.version,
        )
        logger.info(f"Loaded prerequisite catalog v{catalog.version}: {len(catalog)} topics from {path.name}")
        return catalog

    @classmethod
    def load(cls, path: Path | str | None = None) -> PrerequisiteCatalog:
        """Load the configured catalog, once per path."""
        if path is None:
            from config import get_settings

            path = get_settings().prerequisite_catalog_path
        return _load_cached(str(path))

    def _check_acyclic(self) -> None:
        # Iterative DFS with colors; a grey node reached again closes a cycle
        WHITE, GREY, BLACK = 0, 1, 2
        color: dict[str, int] = {}

        for root in self._index:
            if color.get(root, WHITE) != WHITE:
                continue
            stack: list[tuple[str, Iterator[str]]] = [(root, iter(self.prerequisites_of(root)))]
            path = [root]
            color[root] = GREY
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    color[node] = BLACK
                    stack.pop()
                    path.pop()
                    continue
                state = color.get(child, WHITE)
                if state == GREY:
                    cycle = path[path.index(child):] + [child]
                    raise PrerequisiteCycleError(cycle)
                if state == WHITE:
                    color[child] = GREY
                    path.append(child)
                    stack.append((child, iter(self.prerequisites_of(child))))

    # ========================================
    # Lookups
    # ========================================

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, topic: str) -> bool:
        return normalize_topic(topic) in self._index

    def __iter__(self) -> Iterator[TopicPrerequisite]:
        return iter(self._entries)

    def get(self, topic: str) -> TopicPrerequisite | None:
        index = self._index.get(normalize_topic(topic))
        return self._entries[index] if index is not None else None

    def prerequisites_of(self, topic: str) -> tuple[str, ...]:
        entry = self.get(topic)
        return entry.prerequisites if entry else ()

    def dependents_of(self, topic: str) -> tuple[str, ...]:
        """Catalog topics that list this topic as a prerequisite."""
        return self._dependents.get(normalize_topic(topic), ())

    def importance(self, topic: str) -> float:
        entry = self.get(topic)
        return entry.importance if entry else UNKNOWN_TOPIC_IMPORTANCE

    def fan_in(self, topic: str) -> int:
        return self._fan_in.get(normalize_topic(topic), 0)

    def foundational_importance(self, topic: str) -> float:
        """Base importance plus a bonus for how many topics build on this one."""
        dependency_factor = min(1.0, self.fan_in(topic) / FAN_IN_SATURATION)
        return min(1.0, self.importance(topic) + dependency_factor * FAN_IN_WEIGHT)

    def related_topics(self, topic: str) -> tuple[str, ...]:
        """Prerequisites followed by dependents, de-duplicated."""
        return tuple(dict.fromkeys((*self.prerequisites_of(topic), *self.dependents_of(topic))))

    def transitive_prerequisites(self, topic: str) -> list[str]:
        """Every topic reachable through prerequisite edges, nearest first."""
        seen: dict[str, None] = {}
        frontier = list(self.prerequisites_of(topic))
        while frontier:
            current = frontier.pop(0)
            if current in seen:
                continue
            seen[current] = None
            frontier.extend(self.prerequisites_of(current))
        return list(seen)


@lru_cache(maxsize=8)
def _load_cached(path: str) -> PrerequisiteCatalog:
    return PrerequisiteCatalog.from_file(path)
