"""
Multinomial Naive Bayes document scorer with Laplace (add-one) smoothing.

Every corpus document is its own class. A question is answered by the
document most likely to have "generated" the question's tokens.

Training:
    P(word | doc) = (count(word, doc) + 1) / (total_words(doc) + |V|)
    prior(doc)    = 1 / max(1, N)

Scoring (log space to avoid underflow):
    score(doc) = ln prior(doc) + Σ ln P(token | doc)

Where:
    count(word, doc) = occurrences of word in the document's frequency map
    total_words(doc) = sum of the document's frequency map
    |V| = vocabulary size (distinct words across the corpus)
    N = number of documents, including documents without tokens

Sparse storage:
    Only entries with count > 0 are stored. For a vocabulary word missing
    from a trained document the probability is computed on read as
    1 / (total_words(doc) + |V|), which is exactly the dense value. Words
    outside the vocabulary (and every word for documents that contributed no
    tokens) fall back to 1 / (|V| + 1).
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .corpus import DocumentId, DocumentRecord
from .similarity import clamp
from .vocabulary import Vocabulary, build_vocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelEntry:
    """Smoothed probability of one word for one document"""
    document_id: DocumentId
    word: str
    count: int
    probability: float


def _safe_log(probability: float) -> float:
    """Natural log that maps invalid probabilities to non-finite values instead of raising."""
    if math.isnan(probability):
        return math.nan
    if probability <= 0.0:
        return -math.inf
    return math.log(probability)


@dataclass
class NaiveBayesModel:
    """
    Trained model snapshot.

    Immutable once built: retraining produces a new instance which the store
    swaps in as a whole.
    """
    vocabulary: Vocabulary
    document_ids: List[DocumentId]
    total_words: Dict[DocumentId, int]
    entries: Dict[DocumentId, Dict[str, ModelEntry]]
    priors: Dict[DocumentId, float]
    trained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def vocabulary_size(self) -> int:
        return len(self.vocabulary)

    @property
    def total_documents(self) -> int:
        return len(self.document_ids)

    @classmethod
    def train(cls, records: Sequence[DocumentRecord]) -> Optional["NaiveBayesModel"]:
        """
        Train a model from tokenized documents.

        Args:
            records: Corpus documents in their natural order. Records must be
                tokenized; a later record with the same id replaces an
                earlier one.

        Returns:
            Trained model, or None when there are no documents
        """
        if not records:
            return None

        by_id: Dict[DocumentId, DocumentRecord] = {}
        for record in records:
            by_id[record.document_id] = record

        # Documents without tokens count towards N but add nothing else
        frequency_maps = {
            document_id: record.token_frequencies
            for document_id, record in by_id.items()
            if record.token_frequencies
        }

        vocabulary = build_vocabulary(frequency_maps.values())
        vocabulary_size = len(vocabulary)

        prior = 1.0 / max(1, len(by_id))
        priors = {document_id: prior for document_id in by_id}

        total_words: Dict[DocumentId, int] = {}
        entries: Dict[DocumentId, Dict[str, ModelEntry]] = {}

        for document_id, word_counts in frequency_maps.items():
            total = sum(word_counts.values())
            denominator = total + vocabulary_size
            total_words[document_id] = total
            entries[document_id] = {
                word: ModelEntry(
                    document_id=document_id,
                    word=word,
                    count=count,
                    probability=(count + 1) / denominator,
                )
                for word, count in word_counts.items()
            }

        model = cls(
            vocabulary=vocabulary,
            document_ids=list(by_id),
            total_words=total_words,
            entries=entries,
            priors=priors,
        )

        logger.debug(
            f"Trained Naive Bayes model: {model.total_documents} documents, "
            f"{len(entries)} with tokens, vocabulary={vocabulary_size}, "
            f"{sum(len(e) for e in entries.values())} stored entries"
        )

        return model

    def prior(self, document_id: DocumentId) -> float:
        return self.priors.get(document_id, 1.0 / max(1, self.total_documents))

    def fallback_probability(self) -> float:
        """Probability of a word no stored entry covers."""
        return 1.0 / (self.vocabulary_size + 1)

    def probability(self, document_id: DocumentId, word: str) -> float:
        """
        P(word | document) as the dense model would store it.

        Stored entries are returned as persisted (a corrupted entry surfaces
        as an invalid score). Zero-count vocabulary words are computed on read.
        """
        entry = self.entries.get(document_id, {}).get(word)
        if entry is not None:
            return entry.probability

        total = self.total_words.get(document_id)
        if total is not None and word in self.vocabulary:
            denominator = total + self.vocabulary_size
            if denominator <= 0:
                return math.nan
            return 1.0 / denominator

        return self.fallback_probability()

    def score(self, document_id: DocumentId, tokens: Sequence[str]) -> float:
        """
        Log-space Naive Bayes score of a document for query tokens.

        Returns:
            ln prior + Σ ln P(token | doc); may be non-finite for corrupted entries
        """
        log_score = _safe_log(self.prior(document_id))
        for token in tokens:
            log_score += _safe_log(self.probability(document_id, token))
        return log_score

    def rank(self, tokens: Sequence[str]) -> List[Tuple[DocumentId, float]]:
        """
        Score every document, dropping non-finite scores.

        Returns:
            (document_id, score) pairs in corpus order
        """
        scores = []
        for document_id in self.document_ids:
            score = self.score(document_id, tokens)
            if not math.isfinite(score):
                logger.warning(f"Skipping document {document_id}: invalid score {score}")
                continue
            scores.append((document_id, score))
        return scores

    def iter_entries(self) -> Iterator[ModelEntry]:
        """Stored (non-zero count) entries, in corpus order."""
        for document_id in self.document_ids:
            yield from self.entries.get(document_id, {}).values()


def select_best(scores: Sequence[Tuple[DocumentId, float]]) -> Optional[Tuple[DocumentId, float]]:
    """Highest scoring document; the first one wins ties."""
    best = None
    for document_id, score in scores:
        if best is None or score > best[1]:
            best = (document_id, score)
    return best


def calculate_confidence(best_score: float, all_scores: Sequence[float]) -> float:
    """
    Confidence of the best match as the normalized margin over the runner-up.

    confidence = clamp((best - second) / |best|, 0, 1)

    Log scores are negative, so the margin is measured relative to the
    magnitude of the best score.

    Args:
        best_score: Score of the selected document
        all_scores: Every finite score, including best_score

    Returns:
        Confidence in [0, 1]; 1.0 when fewer than two documents scored
    """
    if len(all_scores) < 2:
        return 1.0

    ordered = sorted(all_scores, reverse=True)
    best, second = ordered[0], ordered[1]

    if second == 0 or best == 0:
        return 1.0

    return clamp((best - second) / abs(best), 0.0, 1.0)
