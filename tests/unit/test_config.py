"""
Unit tests for environment-driven configuration.
"""

import os

import pytest
from bayes_chat.config import EngineSettings, load_environment
from bayes_chat.naive_bayes.tokenizer import STOPWORDS


ENGINE_VARIABLES = [
    "MAX_RESPONSE_LENGTH",
    "CONFIDENCE_THRESHOLD",
    "TRAINING_BATCH_SIZE",
    "TRAINING_BATCH_PAUSE",
    "MIN_TOKEN_LENGTH",
    "COUNT_REPEATED_TOKENS",
    "EXTRA_STOP_WORDS",
    "SIMILAR_DOCUMENTS_LIMIT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENGINE_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEngineSettings:
    """Test reading EngineSettings from environment variables"""

    def test_defaults(self, clean_env):
        settings = EngineSettings.from_env()

        assert settings == EngineSettings()
        assert settings.max_response_length == 500
        assert settings.confidence_threshold == 0.1
        assert settings.training_batch_size == 50
        assert settings.training_batch_pause == 0.1
        assert settings.count_repeated_tokens is True
        assert settings.stop_words == STOPWORDS

    def test_overrides(self, clean_env):
        clean_env.setenv("MAX_RESPONSE_LENGTH", "240")
        clean_env.setenv("CONFIDENCE_THRESHOLD", "0.25")
        clean_env.setenv("TRAINING_BATCH_SIZE", "10")
        clean_env.setenv("TRAINING_BATCH_PAUSE", "0")
        clean_env.setenv("MIN_TOKEN_LENGTH", "3")
        clean_env.setenv("COUNT_REPEATED_TOKENS", "false")
        clean_env.setenv("SIMILAR_DOCUMENTS_LIMIT", "8")

        settings = EngineSettings.from_env()

        assert settings.max_response_length == 240
        assert settings.confidence_threshold == 0.25
        assert settings.training_batch_size == 10
        assert settings.training_batch_pause == 0.0
        assert settings.min_token_length == 3
        assert settings.count_repeated_tokens is False
        assert settings.similar_documents_limit == 8

    def test_extra_stop_words(self, clean_env):
        """Test comma-separated words extending the stop word set"""
        clean_env.setenv("EXTRA_STOP_WORDS", " Plugin, widget ,, ")

        settings = EngineSettings.from_env()

        assert settings.extra_stop_words == frozenset({"plugin", "widget"})
        assert "plugin" in settings.stop_words
        assert "the" in settings.stop_words

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("yes", True), ("ON", True), ("0", False), ("no", False), ("", True),
    ])
    def test_boolean_parsing(self, clean_env, value, expected):
        clean_env.setenv("COUNT_REPEATED_TOKENS", value)
        assert EngineSettings.from_env().count_repeated_tokens is expected

    def test_invalid_number(self, clean_env):
        clean_env.setenv("MAX_RESPONSE_LENGTH", "lots")
        with pytest.raises(ValueError):
            EngineSettings.from_env()

    def test_invalid_batch_size(self, clean_env):
        clean_env.setenv("TRAINING_BATCH_SIZE", "0")
        with pytest.raises(ValueError):
            EngineSettings.from_env()


class TestLoadEnvironment:
    """Test .env.local / .env discovery"""

    def test_env_local_preferred(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("BAYES_CHAT_TEST_SOURCE=env\n")
        (tmp_path / ".env.local").write_text("BAYES_CHAT_TEST_SOURCE=local\n")
        monkeypatch.setenv("BAYES_CHAT_TEST_SOURCE", "process")

        loaded = load_environment(tmp_path)

        assert loaded == tmp_path / ".env.local"
        assert os.environ["BAYES_CHAT_TEST_SOURCE"] == "local"

    def test_env_fallback(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("BAYES_CHAT_TEST_SOURCE=env\n")
        monkeypatch.setenv("BAYES_CHAT_TEST_SOURCE", "process")

        loaded = load_environment(tmp_path)

        # File values override the process environment
        assert loaded == tmp_path / ".env"
        assert os.environ["BAYES_CHAT_TEST_SOURCE"] == "env"

    def test_no_files(self, tmp_path):
        assert load_environment(tmp_path) is None
