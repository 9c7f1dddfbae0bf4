"""
Storage for the corpus, the trained model, training state and chat logs.

The engine only talks to the abstract ModelStore. Two backends exist:
- InMemoryModelStore: process-local, used for tests and single-process setups
- PostgresModelStore (database.py): asyncpg-backed tables

Training output is committed in one step (commit_training) so readers never
observe a half-written model.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from .naive_bayes.corpus import DocumentId, DocumentRecord
from .naive_bayes.model import NaiveBayesModel

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """The storage backend could not be reached or failed mid-operation"""


class TrainingState(str, Enum):
    PENDING = "pending"
    TRAINING = "training"
    COMPLETED = "completed"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass
class TrainingInfo:
    """Persisted training status"""
    status: TrainingState = TrainingState.PENDING
    last_training: Optional[datetime] = None


@dataclass
class ChatLogEntry:
    """One question/answer interaction, recorded by the hosting application"""
    question: str
    matched_document_id: Optional[DocumentId]
    confidence: float
    response_text: Optional[str]
    client_host: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ModelStore(ABC):
    """
    Abstract storage backend.

    All methods may raise StorageUnavailableError.
    """

    @abstractmethod
    async def upsert_document(self, record: DocumentRecord):
        """Insert a document or replace the stored one with the same id"""
        pass

    @abstractmethod
    async def delete_document(self, document_id: DocumentId) -> bool:
        """Remove a document; returns False if it did not exist"""
        pass

    @abstractmethod
    async def get_document(self, document_id: DocumentId) -> Optional[DocumentRecord]:
        pass

    @abstractmethod
    async def list_documents(self) -> List[DocumentRecord]:
        """All documents in their natural corpus order"""
        pass

    @abstractmethod
    async def count_documents(self) -> int:
        pass

    @abstractmethod
    async def commit_training(
        self,
        model: NaiveBayesModel,
        documents: Optional[List[DocumentRecord]] = None,
    ):
        """
        Atomically replace the trained model (and the corpus, if given).

        Either everything is replaced or nothing is.
        """
        pass

    @abstractmethod
    async def clear_model(self, clear_documents: bool = False):
        """
        Atomically drop the trained model (and the corpus, if asked).

        load_model() returns None afterwards.
        """
        pass

    @abstractmethod
    async def load_model(self) -> Optional[NaiveBayesModel]:
        """Current model snapshot, or None if never trained"""
        pass

    @abstractmethod
    async def get_training_state(self) -> TrainingInfo:
        pass

    @abstractmethod
    async def set_training_state(self, status: TrainingState, last_training: Optional[datetime] = None):
        """Update the status; last_training is kept unless a new value is given"""
        pass

    @abstractmethod
    async def log_chat(self, entry: ChatLogEntry):
        pass

    @abstractmethod
    async def get_chat_logs(self, limit: int = 50) -> List[ChatLogEntry]:
        """Most recent interactions first"""
        pass

    async def close(self):
        """Optional cleanup (close connection pools, etc.)"""
        pass


class InMemoryModelStore(ModelStore):
    """Process-local store. The model is swapped by reference, which is atomic for readers."""

    def __init__(self):
        self._documents: Dict[DocumentId, DocumentRecord] = {}
        self._model: Optional[NaiveBayesModel] = None
        self._training = TrainingInfo()
        self._chat_logs: List[ChatLogEntry] = []
        self._lock = asyncio.Lock()

    async def upsert_document(self, record: DocumentRecord):
        async with self._lock:
            self._documents[record.document_id] = record

    async def delete_document(self, document_id: DocumentId) -> bool:
        async with self._lock:
            return self._documents.pop(document_id, None) is not None

    async def get_document(self, document_id: DocumentId) -> Optional[DocumentRecord]:
        return self._documents.get(document_id)

    async def list_documents(self) -> List[DocumentRecord]:
        return list(self._documents.values())

    async def count_documents(self) -> int:
        return len(self._documents)

    async def commit_training(
        self,
        model: NaiveBayesModel,
        documents: Optional[List[DocumentRecord]] = None,
    ):
        async with self._lock:
            if documents is not None:
                self._documents = {record.document_id: record for record in documents}
            self._model = model
        logger.debug(f"Committed model: {model.total_documents} documents, vocabulary={model.vocabulary_size}")

    async def clear_model(self, clear_documents: bool = False):
        async with self._lock:
            if clear_documents:
                self._documents = {}
            self._model = None
        logger.debug(f"Cleared model (documents cleared: {clear_documents})")

    async def load_model(self) -> Optional[NaiveBayesModel]:
        return self._model

    async def get_training_state(self) -> TrainingInfo:
        return TrainingInfo(self._training.status, self._training.last_training)

    async def set_training_state(self, status: TrainingState, last_training: Optional[datetime] = None):
        self._training.status = status
        if last_training is not None:
            self._training.last_training = last_training

    async def log_chat(self, entry: ChatLogEntry):
        self._chat_logs.append(entry)

    async def get_chat_logs(self, limit: int = 50) -> List[ChatLogEntry]:
        return list(reversed(self._chat_logs))[:limit]
