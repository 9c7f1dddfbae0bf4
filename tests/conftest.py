"""Shared pytest configuration and fixtures"""

import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to path for bayes_chat imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# main.py configures logging on import - keep test runs console-only
os.environ["LOG_FILE"] = ""
os.environ["STORAGE_BACKEND"] = "memory"

from bayes_chat.config import EngineSettings
from bayes_chat.engine import ChatEngine
from bayes_chat.naive_bayes.corpus import SourceDocument
from bayes_chat.storage import InMemoryModelStore


CATS = SourceDocument(1, "Cats", "Cats are great pets and love to sleep.")
DOGS = SourceDocument(2, "Dogs", "Dogs are loyal companions and enjoy walks.")


@pytest.fixture
def pets_corpus():
    """Two-document corpus: cats and dogs"""
    return [CATS, DOGS]


@pytest.fixture
def settings():
    """Default settings without the pause between training batches"""
    return EngineSettings(training_batch_pause=0.0)


@pytest.fixture
def store():
    return InMemoryModelStore()


@pytest.fixture
def engine(store, settings):
    return ChatEngine(store, settings)


@pytest_asyncio.fixture
async def trained_engine(engine, pets_corpus):
    """Engine trained on the cats/dogs corpus"""
    result = await engine.train(pets_corpus)
    assert result.status.value == "ok"
    return engine
