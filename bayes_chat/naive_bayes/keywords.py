"""
TF-IDF keyword extraction.

Formula:
    tf(word, doc)  = count(word, doc) / len(doc_tokens)
    idf(word)      = ln(N / (df(word) + 1))
    tfidf          = tf × idf

Where:
    N = number of documents in the comparison corpus
    df(word) = number of those documents containing the word

The +1 keeps idf finite for unseen words; a word present in every document
gets a slightly negative weight and sinks to the bottom of the ranking.
"""

import math
from typing import Dict, List, Sequence, Tuple

from .tokenizer import get_word_frequency, tokenize


def calculate_tfidf(tokens: Sequence[str], all_documents: Sequence[Sequence[str]]) -> Dict[str, float]:
    """
    TF-IDF weight of every distinct token of one document.

    Args:
        tokens: The document's tokens
        all_documents: Token lists of every document in the corpus

    Returns:
        Dict of word -> tf-idf weight (empty for an empty document)
    """
    if not tokens:
        return {}

    token_count = len(tokens)
    total_documents = len(all_documents)
    document_sets = [set(doc_tokens) for doc_tokens in all_documents]

    scores = {}
    for word, frequency in get_word_frequency(tokens).items():
        documents_with_word = sum(1 for doc_tokens in document_sets if word in doc_tokens)
        idf = math.log(total_documents / (documents_with_word + 1)) if total_documents else 0.0
        scores[word] = (frequency / token_count) * idf

    return scores


def extract_keywords(
    text: str,
    all_documents: Sequence[Sequence[str]],
    max_keywords: int = 10,
) -> List[Tuple[str, float]]:
    """
    Top keywords of a text ranked by TF-IDF against a corpus.

    Returns:
        (word, weight) pairs, highest weight first
    """
    tokens = tokenize(text)
    if not tokens:
        return []

    scores = calculate_tfidf(tokens, all_documents)
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)

    return ranked[:max_keywords]
