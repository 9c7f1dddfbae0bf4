"""
PostgreSQL storage backend (asyncpg)

Tables:
- chat_documents: corpus documents with their tokens and term frequencies
- chat_vocabulary: word, frequency, document_frequency
- chat_model: sparse model entries (document_id, word, count, probability)
- chat_model_documents: per-document totals and priors of the trained snapshot
- chat_model_meta: vocabulary size, document count, training timestamp
- chat_options: training status and last training time
- chat_logs: question/answer interactions

Training output is written in a single transaction, so concurrent readers
(at the default read-committed isolation) keep seeing the previous model
until the new one is committed.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

import asyncpg

from .naive_bayes.corpus import DocumentId, DocumentRecord
from .naive_bayes.model import ModelEntry, NaiveBayesModel
from .naive_bayes.vocabulary import VocabularyEntry
from .storage import (
    ChatLogEntry,
    ModelStore,
    StorageUnavailableError,
    TrainingInfo,
    TrainingState,
)

logger = logging.getLogger(__name__)

_UPSERT_DOCUMENT_SQL = """
    INSERT INTO chat_documents
        (document_id, title, content, tokens, token_frequencies, token_count)
    VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, $6)
    ON CONFLICT (document_id) DO UPDATE SET
        title = EXCLUDED.title,
        content = EXCLUDED.content,
        tokens = EXCLUDED.tokens,
        token_frequencies = EXCLUDED.token_frequencies,
        token_count = EXCLUDED.token_count,
        updated_at = CURRENT_TIMESTAMP
"""


def _load_json(value):
    """asyncpg returns JSONB as text unless a codec is registered"""
    if isinstance(value, str):
        return json.loads(value)
    return value


def _document_params(record: DocumentRecord) -> tuple:
    return (
        str(record.document_id),
        record.title,
        record.content,
        json.dumps(record.tokens) if record.tokens is not None else None,
        json.dumps(record.token_frequencies),
        record.token_count,
    )


def _row_to_record(row) -> DocumentRecord:
    return DocumentRecord(
        document_id=row["document_id"],
        title=row["title"],
        content=row["content"],
        tokens=_load_json(row["tokens"]),
        token_frequencies=_load_json(row["token_frequencies"]) or {},
        token_count=row["token_count"],
    )


class PostgresModelStore(ModelStore):
    """PostgreSQL-backed model store. Document ids are stored and returned as text."""

    def __init__(self, connection_string: str):
        self.pool: Optional[asyncpg.Pool] = None
        # asyncpg doesn't understand 'postgresql+asyncpg://', only 'postgresql://'
        self.connection_string = connection_string.replace("postgresql+asyncpg://", "postgresql://")
        self._model_cache: Optional[NaiveBayesModel] = None

    async def connect(self):
        """Initialize connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=1,
                max_size=10,
            )
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageUnavailableError(f"Cannot connect to PostgreSQL: {e}") from e

        logger.info(f"Connected to PostgreSQL: {self.connection_string.split('@')[-1]}")

    async def close(self):
        """Close connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Disconnected from PostgreSQL")

    @asynccontextmanager
    async def _acquire(self):
        """Acquire a pooled connection, translating driver failures to StorageUnavailableError"""
        if self.pool is None:
            raise StorageUnavailableError("PostgreSQL store is not connected")
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"PostgreSQL operation failed: {e}")
            raise StorageUnavailableError(str(e)) from e

    async def init_schema(self):
        """Create tables and indexes"""
        async with self._acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_documents (
                    position BIGSERIAL,
                    document_id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    tokens JSONB,
                    token_frequencies JSONB NOT NULL DEFAULT '{}',
                    token_count INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_vocabulary (
                    word TEXT PRIMARY KEY,
                    frequency INTEGER NOT NULL DEFAULT 0,
                    document_frequency INTEGER NOT NULL DEFAULT 0
                )
            """)

            # total_words is NULL for documents that contributed no tokens
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_model_documents (
                    document_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,
                    total_words INTEGER,
                    prior DOUBLE PRECISION NOT NULL
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_model (
                    document_id TEXT NOT NULL,
                    word TEXT NOT NULL,
                    count INTEGER NOT NULL,
                    probability DOUBLE PRECISION NOT NULL,
                    PRIMARY KEY (document_id, word)
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_chat_model_word
                ON chat_model (word)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_model_meta (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    vocabulary_size INTEGER NOT NULL,
                    total_documents INTEGER NOT NULL,
                    trained_at TIMESTAMPTZ NOT NULL
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_options (
                    name TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_logs (
                    id SERIAL PRIMARY KEY,
                    question TEXT NOT NULL,
                    matched_document_id TEXT,
                    confidence DOUBLE PRECISION DEFAULT 0,
                    response_text TEXT,
                    client_host TEXT,
                    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_chat_logs_created_at
                ON chat_logs (created_at)
            """)

            logger.info("Database schema initialized (documents + vocabulary + sparse model + logs)")

    async def upsert_document(self, record: DocumentRecord):
        async with self._acquire() as conn:
            await conn.execute(_UPSERT_DOCUMENT_SQL, *_document_params(record))

    async def delete_document(self, document_id: DocumentId) -> bool:
        async with self._acquire() as conn:
            result = await conn.execute(
                "DELETE FROM chat_documents WHERE document_id = $1",
                str(document_id),
            )
        # Command tag: "DELETE <count>"
        return result.split()[-1] != "0"

    async def get_document(self, document_id: DocumentId) -> Optional[DocumentRecord]:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT document_id, title, content, tokens, token_frequencies, token_count
                FROM chat_documents
                WHERE document_id = $1
                """,
                str(document_id),
            )
        return _row_to_record(row) if row else None

    async def list_documents(self) -> List[DocumentRecord]:
        async with self._acquire() as conn:
            rows = await conn.fetch("""
                SELECT document_id, title, content, tokens, token_frequencies, token_count
                FROM chat_documents
                ORDER BY position
            """)
        return [_row_to_record(row) for row in rows]

    async def count_documents(self) -> int:
        async with self._acquire() as conn:
            return await conn.fetchval("SELECT COUNT(*) FROM chat_documents")

    async def commit_training(
        self,
        model: NaiveBayesModel,
        documents: Optional[List[DocumentRecord]] = None,
    ):
        # DELETE rather than TRUNCATE: TRUNCATE would block readers until commit
        async with self._acquire() as conn:
            async with conn.transaction():
                if documents is not None:
                    await conn.execute("DELETE FROM chat_documents")
                    await conn.executemany(
                        _UPSERT_DOCUMENT_SQL,
                        [_document_params(record) for record in documents],
                    )

                await conn.execute("DELETE FROM chat_model")
                await conn.execute("DELETE FROM chat_model_documents")
                await conn.execute("DELETE FROM chat_vocabulary")

                vocabulary_rows = [
                    (word, entry.frequency, entry.document_frequency)
                    for word, entry in model.vocabulary.items()
                ]
                if vocabulary_rows:
                    await conn.copy_records_to_table(
                        "chat_vocabulary",
                        records=vocabulary_rows,
                        columns=["word", "frequency", "document_frequency"],
                    )

                await conn.copy_records_to_table(
                    "chat_model_documents",
                    records=[
                        (str(document_id), position, model.total_words.get(document_id), model.prior(document_id))
                        for position, document_id in enumerate(model.document_ids)
                    ],
                    columns=["document_id", "position", "total_words", "prior"],
                )

                entry_rows = [
                    (str(entry.document_id), entry.word, entry.count, entry.probability)
                    for entry in model.iter_entries()
                ]
                if entry_rows:
                    await conn.copy_records_to_table(
                        "chat_model",
                        records=entry_rows,
                        columns=["document_id", "word", "count", "probability"],
                    )

                await conn.execute(
                    """
                    INSERT INTO chat_model_meta (id, vocabulary_size, total_documents, trained_at)
                    VALUES (1, $1, $2, $3)
                    ON CONFLICT (id) DO UPDATE SET
                        vocabulary_size = EXCLUDED.vocabulary_size,
                        total_documents = EXCLUDED.total_documents,
                        trained_at = EXCLUDED.trained_at
                    """,
                    model.vocabulary_size,
                    model.total_documents,
                    model.trained_at,
                )

        self._model_cache = None
        logger.info(
            f"Committed model: {model.total_documents} documents, "
            f"vocabulary={model.vocabulary_size}, {len(entry_rows)} entries"
        )

    async def clear_model(self, clear_documents: bool = False):
        async with self._acquire() as conn:
            async with conn.transaction():
                if clear_documents:
                    await conn.execute("DELETE FROM chat_documents")
                await conn.execute("DELETE FROM chat_model")
                await conn.execute("DELETE FROM chat_model_documents")
                await conn.execute("DELETE FROM chat_vocabulary")
                # No meta row means "not trained"
                await conn.execute("DELETE FROM chat_model_meta")

        self._model_cache = None
        logger.info(f"Cleared model (documents cleared: {clear_documents})")

    async def load_model(self) -> Optional[NaiveBayesModel]:
        """
        Load the model snapshot.

        The snapshot is cached and only reloaded when the stored training
        timestamp changes.
        """
        async with self._acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                meta = await conn.fetchrow(
                    "SELECT vocabulary_size, total_documents, trained_at FROM chat_model_meta WHERE id = 1"
                )
                if meta is None:
                    return None

                cached = self._model_cache
                if cached is not None and cached.trained_at == meta["trained_at"]:
                    return cached

                vocabulary_rows = await conn.fetch(
                    "SELECT word, frequency, document_frequency FROM chat_vocabulary"
                )
                document_rows = await conn.fetch(
                    "SELECT document_id, total_words, prior FROM chat_model_documents ORDER BY position"
                )
                entry_rows = await conn.fetch(
                    "SELECT document_id, word, count, probability FROM chat_model"
                )

        model = NaiveBayesModel(
            vocabulary={
                row["word"]: VocabularyEntry(row["frequency"], row["document_frequency"])
                for row in vocabulary_rows
            },
            document_ids=[row["document_id"] for row in document_rows],
            total_words={
                row["document_id"]: row["total_words"]
                for row in document_rows
                if row["total_words"] is not None
            },
            entries={},
            priors={row["document_id"]: row["prior"] for row in document_rows},
            trained_at=meta["trained_at"],
        )
        for row in entry_rows:
            model.entries.setdefault(row["document_id"], {})[row["word"]] = ModelEntry(
                document_id=row["document_id"],
                word=row["word"],
                count=row["count"],
                probability=row["probability"],
            )

        logger.debug(
            f"Loaded model from PostgreSQL: {model.total_documents} documents, "
            f"vocabulary={model.vocabulary_size}, {len(entry_rows)} entries"
        )

        self._model_cache = model
        return model

    async def get_training_state(self) -> TrainingInfo:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                "SELECT name, value FROM chat_options WHERE name IN ('training_status', 'last_training')"
            )
        options = {row["name"]: row["value"] for row in rows}

        last_training = options.get("last_training")
        return TrainingInfo(
            status=TrainingState(options.get("training_status", TrainingState.PENDING.value)),
            last_training=datetime.fromisoformat(last_training) if last_training else None,
        )

    async def set_training_state(self, status: TrainingState, last_training: Optional[datetime] = None):
        options = [("training_status", status.value)]
        if last_training is not None:
            options.append(("last_training", last_training.isoformat()))

        async with self._acquire() as conn:
            await conn.executemany(
                """
                INSERT INTO chat_options (name, value) VALUES ($1, $2)
                ON CONFLICT (name) DO UPDATE SET value = EXCLUDED.value
                """,
                options,
            )

    async def log_chat(self, entry: ChatLogEntry):
        async with self._acquire() as conn:
            await conn.execute(
                """
                INSERT INTO chat_logs
                    (question, matched_document_id, confidence, response_text, client_host, created_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                entry.question,
                str(entry.matched_document_id) if entry.matched_document_id is not None else None,
                entry.confidence,
                entry.response_text,
                entry.client_host,
                entry.created_at,
            )

    async def get_chat_logs(self, limit: int = 50) -> List[ChatLogEntry]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT question, matched_document_id, confidence, response_text, client_host, created_at
                FROM chat_logs
                ORDER BY created_at DESC, id DESC
                LIMIT $1
                """,
                limit,
            )
        return [
            ChatLogEntry(
                question=row["question"],
                matched_document_id=row["matched_document_id"],
                confidence=row["confidence"],
                response_text=row["response_text"],
                client_host=row["client_host"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
