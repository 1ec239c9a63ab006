"""
Unit tests for synonym-aware keyword matching.
"""
import json

import pytest

from config import DEFAULT_SYNONYMS_PATH
from src.core.errors import ConfigurationError
from src.scoring.keywords import KeywordSynonyms


class TestKeywordSynonyms:
    """Tests for KeywordSynonyms."""

    def test_packaged_table_loads(self):
        synonyms = KeywordSynonyms.from_file(DEFAULT_SYNONYMS_PATH)

        assert len(synonyms) == 8
        assert synonyms.version == 1
        assert "django" in synonyms.variations("python")

    def test_match_is_case_insensitive(self):
        synonyms = KeywordSynonyms({"python": ["Django"]})

        assert synonyms.matches("BUILDING WITH DJANGO", "Python")

    def test_keyword_without_synonyms_matches_itself(self):
        synonyms = KeywordSynonyms()

        assert synonyms.variations("Rust") == ("rust",)
        assert synonyms.matches("rust async runtimes", "rust")
        assert not synonyms.matches("go channels", "rust")

    def test_malformed_file_fails_fast(self, tmp_path):
        path = tmp_path / "synonyms.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            KeywordSynonyms.from_file(path)

    def test_wrong_shape_fails_fast(self, tmp_path):
        path = tmp_path / "synonyms.json"
        path.write_text(json.dumps({"version": 1, "synonyms": {"python": "django"}}), encoding="utf-8")

        with pytest.raises(ConfigurationError):
            KeywordSynonyms.from_file(path)

    def test_missing_file_fails_fast(self, tmp_path):
        with pytest.raises(ConfigurationError):
            KeywordSynonyms.from_file(tmp_path / "missing.json")
