"""
Answer synthesis - turns the winning document into a short reply.

Steps:
1. Strip markup and entities from the document content
2. Split into sentences on runs of '.', '!' or '?', dropping short fragments
3. Pick the sentence with the highest Jaccard similarity to the query tokens
   (accepted only above MIN_SENTENCE_SIMILARITY), else the first
   FALLBACK_WORDS words of the content
4. Trim long answers by words (max_length / 6, a rough average word length)
5. Append the source attribution
"""

import re
from typing import AbstractSet, List, Optional, Sequence

from .similarity import jaccard_similarity
from .tokenizer import STOPWORDS, strip_markup, tokenize

MIN_SENTENCE_LENGTH = 20
MIN_SENTENCE_SIMILARITY = 0.1
FALLBACK_WORDS = 50
AVERAGE_WORD_LENGTH = 6

_SENTENCE_SPLIT_PATTERN = re.compile(r'[.!?]+')


def extract_sentences(text: str) -> List[str]:
    """
    Split text into sentences, dropping fragments shorter than MIN_SENTENCE_LENGTH.

    Examples:
        >>> extract_sentences("Cats are great pets and love to sleep. Yes!")
        ['Cats are great pets and love to sleep']
    """
    sentences = []
    for sentence in _SENTENCE_SPLIT_PATTERN.split(text):
        sentence = sentence.strip()
        if len(sentence) >= MIN_SENTENCE_LENGTH:
            sentences.append(sentence)
    return sentences


def find_best_sentence(
    sentences: Sequence[str],
    query_tokens: Sequence[str],
    min_length: int = 2,
    stop_words: AbstractSet[str] = STOPWORDS,
) -> Optional[str]:
    """
    Sentence most similar to the query, or None if nothing clears the threshold.

    Sentences are tokenized with the same min_length and stop_words as the
    query. Earlier sentences win ties.
    """
    best_sentence = None
    best_score = 0.0

    for sentence in sentences:
        score = jaccard_similarity(query_tokens, tokenize(sentence, min_length=min_length, stop_words=stop_words))
        if score > best_score:
            best_score = score
            best_sentence = sentence

    if best_score > MIN_SENTENCE_SIMILARITY:
        return best_sentence
    return None


def trim_words(text: str, num_words: int, more: str = "...") -> str:
    """
    Keep the first num_words whitespace-separated words.

    Whitespace is normalized to single spaces; `more` is appended only when
    words were cut.

    Examples:
        >>> trim_words("one two  three four", 2)
        'one two...'
    """
    words = text.split()
    if len(words) > num_words:
        return " ".join(words[:num_words]) + more
    return " ".join(words)


def synthesize(
    title: str,
    content: str,
    query_tokens: Sequence[str],
    max_length: int = 500,
    min_length: int = 2,
    stop_words: AbstractSet[str] = STOPWORDS,
) -> str:
    """
    Build the answer text for a matched document.

    Args:
        title: Document title, used for the source line
        content: Raw document content (may contain HTML)
        query_tokens: Preprocessed query tokens
        max_length: Character budget before word trimming kicks in
        min_length: Tokenizer minimum word length used for the query
        stop_words: Stop words used for the query

    Returns:
        Answer text ending with "Source: <title>"
    """
    cleaned = strip_markup(content)

    response = find_best_sentence(
        extract_sentences(cleaned),
        query_tokens,
        min_length=min_length,
        stop_words=stop_words,
    )
    if response is None:
        response = trim_words(cleaned, FALLBACK_WORDS)

    if len(response) > max_length:
        response = trim_words(response, int(max_length / AVERAGE_WORD_LENGTH))

    response += f"\n\nSource: {title}"

    return response.strip()
