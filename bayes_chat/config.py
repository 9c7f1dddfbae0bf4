"""
Configuration from environment variables.

Environment is loaded from .env.local (local dev) or .env (production).
Values from the file override variables already set in the process.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv

from .naive_bayes.tokenizer import STOPWORDS

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


def load_environment(root: Optional[Path] = None) -> Optional[Path]:
    """
    Load .env.local (highest priority) or .env into os.environ.

    Returns:
        Path of the loaded file, or None if neither exists
    """
    root = root or PROJECT_ROOT
    env_local = root / ".env.local"
    env_file = root / ".env"

    if env_local.exists():
        load_dotenv(env_local, override=True)
        return env_local
    if env_file.exists():
        load_dotenv(env_file, override=True)
        return env_file
    return None


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_words(name: str) -> FrozenSet[str]:
    value = os.getenv(name, "")
    return frozenset(w.strip().lower() for w in value.split(",") if w.strip())


@dataclass(frozen=True)
class EngineSettings:
    """Tunable engine parameters"""
    max_response_length: int = 500        # Characters before the answer is trimmed by words
    confidence_threshold: float = 0.1     # Minimum confidence to show an answer to end users
    training_batch_size: int = 50         # Documents tokenized per training chunk
    training_batch_pause: float = 0.1     # Seconds to yield between chunks
    min_token_length: int = 2
    count_repeated_tokens: bool = True    # Term counts from the full token stream, not the distinct list
    extra_stop_words: FrozenSet[str] = field(default_factory=frozenset)
    similar_documents_limit: int = 5

    @property
    def stop_words(self) -> FrozenSet[str]:
        return STOPWORDS | self.extra_stop_words

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Read settings from environment variables.

        Config (env vars):
            MAX_RESPONSE_LENGTH, CONFIDENCE_THRESHOLD, TRAINING_BATCH_SIZE,
            TRAINING_BATCH_PAUSE, MIN_TOKEN_LENGTH, COUNT_REPEATED_TOKENS,
            EXTRA_STOP_WORDS (comma-separated), SIMILAR_DOCUMENTS_LIMIT

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        settings = cls(
            max_response_length=int(os.getenv("MAX_RESPONSE_LENGTH", "500")),
            confidence_threshold=float(os.getenv("CONFIDENCE_THRESHOLD", "0.1")),
            training_batch_size=int(os.getenv("TRAINING_BATCH_SIZE", "50")),
            training_batch_pause=float(os.getenv("TRAINING_BATCH_PAUSE", "0.1")),
            min_token_length=int(os.getenv("MIN_TOKEN_LENGTH", "2")),
            count_repeated_tokens=_env_bool("COUNT_REPEATED_TOKENS", True),
            extra_stop_words=_env_words("EXTRA_STOP_WORDS"),
            similar_documents_limit=int(os.getenv("SIMILAR_DOCUMENTS_LIMIT", "5")),
        )
        if settings.training_batch_size < 1:
            raise ValueError("TRAINING_BATCH_SIZE must be at least 1")
        logger.debug(f"Engine settings: {settings}")
        return settings

