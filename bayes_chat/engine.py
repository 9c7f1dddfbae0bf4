"""
Chat engine - trains the Naive Bayes model and answers questions.

The engine owns no global state: it is built from a ModelStore and
EngineSettings, so several engines (e.g. one per tenant or per test) can
coexist in one process.

Training (batch job):
1. Tokenize documents in chunks of training_batch_size, yielding to the
   event loop between chunks
2. Build vocabulary + sparse model entirely in memory
3. Hand the snapshot to the store in one commit_training call

Prediction (read-only, unsynchronized):
1. Preprocess the question (tokenize, drop interrogatives)
2. Score every trained document, skip invalid scores
3. Best document -> confidence -> synthesized answer
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import EngineSettings
from .naive_bayes.corpus import DocumentId, DocumentRecord, SourceDocument, build_document_record, retokenize
from .naive_bayes.keywords import calculate_tfidf
from .naive_bayes.model import NaiveBayesModel, calculate_confidence, select_best
from .naive_bayes.similarity import cosine_similarity, jaccard_similarity
from .naive_bayes.synthesizer import synthesize
from .naive_bayes.tokenizer import preprocess_query, tokenize
from .storage import ModelStore, StorageUnavailableError, TrainingInfo, TrainingState

logger = logging.getLogger(__name__)


class TrainingStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    ERROR = "error"


@dataclass
class TrainingResult:
    status: TrainingStatus
    documents_processed: int = 0
    vocabulary_size: int = 0
    duration_seconds: float = 0.0
    message: Optional[str] = None


@dataclass
class PredictionResult:
    """Answer for one question"""
    document_id: DocumentId
    confidence: float
    answer: str
    source_title: str
    raw_score: float


@dataclass
class SimilarDocument:
    document_id: DocumentId
    title: str
    similarity: float


@dataclass
class EvaluationCase:
    query: str
    expected_document_id: DocumentId


@dataclass
class EvaluationDetail:
    query: str
    expected: DocumentId
    predicted: Optional[DocumentId]
    confidence: float
    correct: bool


@dataclass
class EvaluationReport:
    accuracy: float
    correct_predictions: int
    total_predictions: int
    details: List[EvaluationDetail] = field(default_factory=list)


SIMILARITY_METRICS = ("jaccard", "cosine")


def _same_id(a: DocumentId, b: DocumentId) -> bool:
    # PostgreSQL returns ids as text
    return str(a) == str(b)


class ChatEngine:
    """
    Question answering over the documents of a ModelStore.

    Usage:
        engine = ChatEngine(InMemoryModelStore(), EngineSettings())
        await engine.train([SourceDocument(1, "Cats", "Cats love to sleep.")])
        result = await engine.predict("Do cats sleep?")
    """

    def __init__(self, store: ModelStore, settings: Optional[EngineSettings] = None):
        self.store = store
        self.settings = settings or EngineSettings()
        self._training_lock = asyncio.Lock()

    def _tokenizer_options(self) -> Dict[str, Any]:
        return {
            "count_repeated_tokens": self.settings.count_repeated_tokens,
            "min_length": self.settings.min_token_length,
            "stop_words": self.settings.stop_words,
        }

    def prepare_document(self, source: SourceDocument) -> DocumentRecord:
        """Tokenize a source document with this engine's settings"""
        return build_document_record(source, **self._tokenizer_options())

    def query_tokens(self, query: str) -> List[str]:
        return preprocess_query(
            query,
            min_length=self.settings.min_token_length,
            stop_words=self.settings.stop_words,
        )

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    async def train(self, documents: Optional[Sequence[SourceDocument]] = None) -> TrainingResult:
        """
        Rebuild the model from scratch.

        Args:
            documents: New corpus replacing the stored one. None retrains
                the stored corpus.

        Returns:
            TrainingResult with status ok, no_data or error. Errors are
            logged and reported, never raised; the previous model stays
            in place.
        """
        async with self._training_lock:
            try:
                return await self._train(documents)
            except Exception as e:
                logger.error(f"Training failed: {e}", exc_info=True)
                try:
                    await self.store.set_training_state(TrainingState.ERROR)
                except StorageUnavailableError as state_error:
                    logger.error(f"Could not record training error state: {state_error}")
                return TrainingResult(status=TrainingStatus.ERROR, message=str(e))

    async def _train(self, documents: Optional[Sequence[SourceDocument]]) -> TrainingResult:
        start_time = time.time()
        await self.store.set_training_state(TrainingState.TRAINING)

        replace_corpus = documents is not None
        pending = list(documents) if replace_corpus else await self.store.list_documents()

        if not pending:
            await self.store.clear_model(clear_documents=replace_corpus)
            await self.store.set_training_state(TrainingState.NO_DATA)
            logger.info("Training skipped: no documents")
            return TrainingResult(
                status=TrainingStatus.NO_DATA,
                duration_seconds=time.time() - start_time,
                message="No documents to train on",
            )

        batch_size = self.settings.training_batch_size
        total_batches = (len(pending) + batch_size - 1) // batch_size
        logger.info(f"Training on {len(pending)} documents ({total_batches} batches of {batch_size})")

        records: List[DocumentRecord] = []
        for batch_number, offset in enumerate(range(0, len(pending), batch_size), start=1):
            if batch_number > 1:
                await asyncio.sleep(self.settings.training_batch_pause)

            for item in pending[offset:offset + batch_size]:
                records.append(await self._prepare_for_training(item))

            logger.debug(f"Tokenized batch {batch_number}/{total_batches}")

        model = NaiveBayesModel.train(records)

        await self.store.commit_training(model, records if replace_corpus else None)

        finished_at = datetime.now(timezone.utc)
        await self.store.set_training_state(TrainingState.COMPLETED, last_training=finished_at)

        duration = time.time() - start_time
        logger.info(
            f"Training completed: {model.total_documents} documents, "
            f"vocabulary={model.vocabulary_size}, {duration:.2f}s"
        )

        return TrainingResult(
            status=TrainingStatus.OK,
            documents_processed=model.total_documents,
            vocabulary_size=model.vocabulary_size,
            duration_seconds=duration,
        )

    async def _prepare_for_training(self, item) -> DocumentRecord:
        if isinstance(item, SourceDocument):
            return self.prepare_document(item)

        if item.is_tokenized:
            return item

        # Stored without tokens (e.g. inserted outside the engine): tokenize and persist
        record = retokenize(item, **self._tokenizer_options())
        await self.store.upsert_document(record)
        return record

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    async def predict(self, query: str) -> Optional[PredictionResult]:
        """
        Answer a question with the best matching document.

        Returns:
            PredictionResult, or None when the query has no usable tokens,
            no model is trained or no document produced a valid score

        Raises:
            StorageUnavailableError: If the store cannot be read
        """
        query_tokens = self.query_tokens(query)
        if not query_tokens:
            logger.debug(f"No usable tokens in query: {query!r}")
            return None

        model = await self.store.load_model()
        if model is None:
            logger.debug("No trained model")
            return None

        scores = model.rank(query_tokens)

        document = None
        best = None
        while scores:
            best = select_best(scores)
            document = await self.store.get_document(best[0])
            if document is not None:
                break
            # Removed since the last training run
            logger.debug(f"Best match {best[0]} is no longer stored, trying the next one")
            scores = [(document_id, score) for document_id, score in scores if document_id != best[0]]

        if document is None:
            return None

        best_id, best_score = best
        confidence = calculate_confidence(best_score, [score for _, score in scores])

        answer = synthesize(
            document.title,
            document.content,
            query_tokens,
            max_length=self.settings.max_response_length,
            min_length=self.settings.min_token_length,
            stop_words=self.settings.stop_words,
        )

        logger.debug(f"Query tokens {query_tokens} -> document {best_id} (score={best_score:.4f}, confidence={confidence:.3f})")

        return PredictionResult(
            document_id=best_id,
            confidence=confidence,
            answer=answer,
            source_title=document.title,
            raw_score=best_score,
        )

    async def evaluate(self, cases: Sequence[EvaluationCase]) -> EvaluationReport:
        """Run predict over labelled questions and report accuracy"""
        details = []
        correct_predictions = 0

        for case in cases:
            prediction = await self.predict(case.query)
            correct = prediction is not None and _same_id(prediction.document_id, case.expected_document_id)
            if correct:
                correct_predictions += 1

            details.append(EvaluationDetail(
                query=case.query,
                expected=case.expected_document_id,
                predicted=prediction.document_id if prediction else None,
                confidence=prediction.confidence if prediction else 0.0,
                correct=correct,
            ))

        total_predictions = len(cases)
        return EvaluationReport(
            accuracy=correct_predictions / total_predictions if total_predictions > 0 else 0.0,
            correct_predictions=correct_predictions,
            total_predictions=total_predictions,
            details=details,
        )

    # ------------------------------------------------------------------
    # Related documents and keywords
    # ------------------------------------------------------------------

    async def similar_documents(
        self,
        document_id: DocumentId,
        limit: Optional[int] = None,
        metric: str = "jaccard",
    ) -> List[SimilarDocument]:
        """
        Documents sharing vocabulary with a reference document.

        Args:
            document_id: Reference document
            limit: Maximum results (default: settings.similar_documents_limit)
            metric: "jaccard" over token sets or "cosine" over term frequencies

        Returns:
            Documents with similarity > 0, most similar first; empty if the
            reference document is unknown or has no tokens

        Raises:
            ValueError: If the metric is unknown
        """
        if metric not in SIMILARITY_METRICS:
            raise ValueError(f"Unknown similarity metric: {metric}")

        if limit is None:
            limit = self.settings.similar_documents_limit

        reference = await self.store.get_document(document_id)
        if reference is None or not reference.tokens:
            return []

        similar = []
        for record in await self.store.list_documents():
            if _same_id(record.document_id, reference.document_id) or not record.tokens:
                continue

            if metric == "cosine":
                similarity = cosine_similarity(reference.token_frequencies, record.token_frequencies)
            else:
                similarity = jaccard_similarity(reference.tokens, record.tokens)

            if similarity > 0:
                similar.append(SimilarDocument(record.document_id, record.title, similarity))

        similar.sort(key=lambda item: item.similarity, reverse=True)
        return similar[:limit]

    async def extract_keywords(self, document_id: DocumentId, limit: int = 10) -> Optional[List[Tuple[str, float]]]:
        """
        TF-IDF keywords of a stored document against the stored corpus.

        Returns:
            (word, weight) pairs, highest first; None if the document is unknown
        """
        document = await self.store.get_document(document_id)
        if document is None:
            return None

        # Term frequencies need the full token stream, not the distinct list
        tokens = tokenize(
            f"{document.title} {document.content}",
            min_length=self.settings.min_token_length,
            stop_words=self.settings.stop_words,
            unique=False,
        )
        corpus = [record.tokens or [] for record in await self.store.list_documents()]

        scores = calculate_tfidf(tokens, corpus)
        return sorted(scores.items(), key=lambda item: item[1], reverse=True)[:limit]

    # ------------------------------------------------------------------
    # Corpus maintenance and status
    # ------------------------------------------------------------------

    async def add_document(self, source: SourceDocument) -> DocumentRecord:
        """Insert or replace a document. The model is unchanged until the next train()."""
        record = self.prepare_document(source)
        await self.store.upsert_document(record)
        logger.info(f"Stored document {source.document_id} ({len(record.tokens)} distinct tokens)")
        return record

    async def remove_document(self, document_id: DocumentId) -> bool:
        removed = await self.store.delete_document(document_id)
        if removed:
            logger.info(f"Removed document {document_id}")
        return removed

    async def get_document(self, document_id: DocumentId) -> Optional[DocumentRecord]:
        return await self.store.get_document(document_id)

    async def get_training_state(self) -> TrainingInfo:
        return await self.store.get_training_state()

    async def is_trained(self) -> bool:
        return await self.store.load_model() is not None

    async def get_model_stats(self) -> Dict[str, Any]:
        model = await self.store.load_model()
        training = await self.store.get_training_state()
        return {
            "vocabulary_size": model.vocabulary_size if model else 0,
            "total_documents": model.total_documents if model else 0,
            "training_status": training.status.value,
            "last_training": training.last_training,
        }
