"""
Unit tests for the topic prerequisite catalog.
"""
import json

import pytest

from config import DEFAULT_PREREQUISITES_PATH
from src.core.errors import ConfigurationError, PrerequisiteCycleError
from src.core.models import KnowledgeDepth, TopicPrerequisite
from src.knowledge.prerequisites import PrerequisiteCatalog


def entry(topic, prerequisites=(), importance=0.5):
    return TopicPrerequisite(
        topic=topic,
        prerequisites=tuple(prerequisites),
        difficulty=KnowledgeDepth.BEGINNER,
        importance=importance,
    )


@pytest.fixture
def catalog():
    return PrerequisiteCatalog.from_file(DEFAULT_PREREQUISITES_PATH)


class TestPrerequisiteCatalog:
    """Tests for PrerequisiteCatalog."""

    def test_packaged_catalog_loads(self, catalog):
        assert len(catalog) == 10
        assert catalog.version == 1
        assert catalog.prerequisites_of("react") == ("javascript", "html", "css")

    def test_lookup_is_case_insensitive(self, catalog):
        assert "React" in catalog
        assert catalog.prerequisites_of("  REACT ") == ("javascript", "html", "css")

    def test_unknown_topic_is_a_leaf(self, catalog):
        assert catalog.prerequisites_of("rust") == ()
        assert catalog.importance("rust") == 0.5
        assert catalog.get("rust") is None

    def test_dependents(self, catalog):
        assert set(catalog.dependents_of("javascript")) == {"typescript", "react", "node.js"}

    def test_foundational_importance_adds_fan_in_bonus(self, catalog):
        # programming-basics is listed by 4 topics: 0.5 + 0.4 * 0.3
        assert catalog.fan_in("programming-basics") == 4
        assert catalog.foundational_importance("programming-basics") == pytest.approx(0.62)

    def test_foundational_importance_capped(self):
        catalog = PrerequisiteCatalog(
            [entry("base", importance=0.95)] + [entry(f"t{i}", ["base"]) for i in range(10)]
        )
        assert catalog.foundational_importance("base") == 1.0

    def test_transitive_prerequisites_nearest_first(self, catalog):
        result = catalog.transitive_prerequisites("nextjs")

        assert result[:2] == ["react", "node.js"]
        assert set(result) == {
            "react", "node.js", "javascript", "html", "css", "programming-basics", "web-development",
        }

    def test_related_topics(self, catalog):
        assert catalog.related_topics("react") == ("javascript", "html", "css", "nextjs")

    def test_cycle_rejected(self):
        with pytest.raises(PrerequisiteCycleError) as exc:
            PrerequisiteCatalog([entry("a", ["b"]), entry("b", ["c"]), entry("c", ["a"])])

        assert exc.value.cycle[0] == exc.value.cycle[-1]
        assert set(exc.value.cycle) == {"a", "b", "c"}

    def test_self_prerequisite_rejected(self):
        with pytest.raises(PrerequisiteCycleError):
            PrerequisiteCatalog([entry("a", ["a"])])

    def test_cycle_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            PrerequisiteCatalog([entry("a", ["b"]), entry("b", ["a"])])

    def test_duplicate_topic_rejected(self):
        with pytest.raises(ConfigurationError):
            PrerequisiteCatalog([entry("a"), entry("A")])

    def test_invalid_file_rejected(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"version": 1, "topics": [{"topic": "x", "importance": 2}]}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            PrerequisiteCatalog.from_file(path)

    def test_load_is_cached_per_path(self):
        assert PrerequisiteCatalog.load(DEFAULT_PREREQUISITES_PATH) is PrerequisiteCatalog.load(
            DEFAULT_PREREQUISITES_PATH
        )
