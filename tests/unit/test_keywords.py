"""
Unit tests for TF-IDF keyword extraction.
"""

import math

import pytest
from bayes_chat.naive_bayes.keywords import calculate_tfidf, extract_keywords


CORPUS = [
    ["cat", "great", "pet", "love", "sleep"],
    ["dog", "loyal", "companion", "enjoy", "walk"],
    ["cat", "dog", "pet"],
]


class TestCalculateTfidf:
    """Test tf × ln(N / (df + 1))"""

    def test_weights(self):
        scores = calculate_tfidf(["cat", "cat", "sleep", "zebra"], CORPUS)

        assert scores["cat"] == pytest.approx(0.5 * math.log(3 / 3))
        assert scores["sleep"] == pytest.approx(0.25 * math.log(3 / 2))
        assert scores["zebra"] == pytest.approx(0.25 * math.log(3 / 1))

    def test_empty_document(self):
        assert calculate_tfidf([], CORPUS) == {}

    def test_empty_corpus(self):
        """Test idf of 0 without a comparison corpus"""
        assert calculate_tfidf(["cat"], []) == {"cat": 0.0}


class TestExtractKeywords:
    def test_ranked_descending(self):
        keywords = extract_keywords("Cats love to sleep. Sleeping cats sleep more.", CORPUS)
        words = [word for word, _ in keywords]
        weights = [weight for _, weight in keywords]

        assert weights == sorted(weights, reverse=True)
        # Unseen in the corpus, ranked above words every other document shares
        assert words.index("more") < words.index("cat")

    def test_limit(self):
        keywords = extract_keywords("alpha beta gamma delta epsilon", CORPUS, max_keywords=2)
        assert len(keywords) == 2

    def test_no_tokens(self):
        assert extract_keywords("!!!", CORPUS) == []
