"""
Vocabulary builder - aggregates term frequencies across the whole corpus.

The vocabulary is rebuilt from scratch on every training run; nothing is
carried over between runs. Its size is the Laplace smoothing term of the
Naive Bayes model.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VocabularyEntry:
    """Corpus-wide statistics of one word"""
    frequency: int           # Total occurrences across all documents
    document_frequency: int  # Number of documents containing the word


Vocabulary = Dict[str, VocabularyEntry]


def build_vocabulary(frequency_maps: Iterable[Mapping[str, int]]) -> Vocabulary:
    """
    Build the corpus vocabulary from per-document frequency maps.

    Args:
        frequency_maps: One {word: count} mapping per document. Empty
            mappings (documents without tokens) contribute nothing.

    Returns:
        Dict of word -> VocabularyEntry, in first-seen order

    Example:
        >>> vocab = build_vocabulary([{"cat": 2, "pet": 1}, {"cat": 1, "dog": 1}])
        >>> vocab["cat"]
        VocabularyEntry(frequency=3, document_frequency=2)
        >>> len(vocab)
        3
    """
    frequencies = defaultdict(int)
    document_frequencies = defaultdict(int)
    document_count = 0

    for word_frequency in frequency_maps:
        document_count += 1
        for word, count in word_frequency.items():
            frequencies[word] += count
            document_frequencies[word] += 1

    vocabulary = {
        word: VocabularyEntry(
            frequency=frequency,
            document_frequency=document_frequencies[word],
        )
        for word, frequency in frequencies.items()
    }

    logger.debug(f"Built vocabulary: {len(vocabulary)} unique words from {document_count} documents")

    return vocabulary
