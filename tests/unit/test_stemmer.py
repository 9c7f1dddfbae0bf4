"""
Unit tests for the suffix-stripping stemmer.
"""

import pytest
from bayes_chat.naive_bayes.stemmer import stem


class TestStemmer:
    """Test suffix rules and their length guards"""

    @pytest.mark.parametrize("word,expected", [
        ("companies", "company"),
        ("carried", "carry"),
        ("studying", "study"),
        ("sleeping", "sleep"),
        ("quickly", "quick"),
        ("walked", "walk"),
        ("cats", "cat"),
    ])
    def test_suffix_rules(self, word, expected):
        """Test each suffix rule on a typical word"""
        assert stem(word) == expected

    def test_short_words_unchanged(self):
        """Test that words of 3 characters or fewer are never stemmed"""
        assert stem("bus") == "bus"
        assert stem("is") == "is"
        assert stem("red") == "red"

    def test_rule_skipped_when_stem_too_short(self):
        """Test that a rule leaving fewer than 3 characters falls through to the next rule"""
        # "ies" -> "dy" is too short, "s" -> "die" applies
        assert stem("dies") == "die"
        # "ing" -> "th" is too short and no later rule matches
        assert stem("thing") == "thing"

    def test_first_matching_rule_wins(self):
        """Test rule order: 'ying' is tried before 'ing'"""
        assert stem("copying") == "copy"
        assert stem("playing") == "play"

    def test_no_matching_suffix(self):
        """Test that words without a known suffix are returned as-is"""
        assert stem("great") == "great"
        assert stem("love") == "love"
