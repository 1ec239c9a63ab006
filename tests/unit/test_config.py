"""
Unit tests for Settings.
"""
import pytest
from pydantic import ValidationError

from config import DEFAULT_PREREQUISITES_PATH, DEFAULT_SYNONYMS_PATH, Settings, get_settings


class TestSettings:
    """Tests for defaults, environment overrides and the dict helpers."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.get_similarity_thresholds() == {"high": 0.8, "medium": 0.6, "low": 0.4}
        assert settings.get_scoring_weights() == {
            "relevance": 0.4,
            "quality": 0.3,
            "recency": 0.2,
            "diversity": 0.1,
        }
        assert settings.relationship_min_strength == 0.3
        assert settings.gap_detection_threshold == 0.3
        assert settings.embedding_dimension == 384

    def test_progression_config(self):
        config = Settings(_env_file=None).get_progression_config()

        assert config == {
            "min_content_count": 3,
            "beginner_to_intermediate": 0.7,
            "intermediate_to_advanced": 0.8,
            "initial_confidence": 0.3,
        }

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SIMILARITY_HIGH_THRESHOLD", "0.9")
        monkeypatch.setenv("EMBEDDING_API_URL", "https://embeddings.example.com")

        settings = Settings(_env_file=None)

        assert settings.similarity_high_threshold == 0.9
        assert settings.get_embedding_config()["api_url"] == "https://embeddings.example.com"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="VERBOSE")

    def test_packaged_data_files_exist(self):
        assert DEFAULT_SYNONYMS_PATH.exists()
        assert DEFAULT_PREREQUISITES_PATH.exists()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
