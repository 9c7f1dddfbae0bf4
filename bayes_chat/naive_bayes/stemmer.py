"""
Lightweight suffix-stripping stemmer for English.

Not a full Porter/Snowball stemmer: only a handful of inflectional suffixes
are removed, so related surface forms of common words collapse onto the same
token without the aggressive truncation of the full algorithms.

Rules (tried in order, first applicable rule wins):
- "ies"  → "y"   ("companies" → "company")
- "ied"  → "y"   ("carried" → "carry")
- "ying" → "y"   ("studying" → "study")
- "ing"  → ""    ("sleeping" → "sleep")
- "ly"   → ""    ("quickly" → "quick")
- "ed"   → ""    ("walked" → "walk")
- "s"    → ""    ("cats" → "cat")

A rule only applies if the remaining stem keeps at least 3 characters;
otherwise the next rule is tried. Words of 3 characters or fewer are never
stemmed.
"""

from typing import Tuple

MIN_WORD_LENGTH = 4
MIN_STEM_LENGTH = 3

SUFFIX_RULES: Tuple[Tuple[str, str], ...] = (
    ("ies", "y"),
    ("ied", "y"),
    ("ying", "y"),
    ("ing", ""),
    ("ly", ""),
    ("ed", ""),
    ("s", ""),
)


def stem(word: str) -> str:
    """
    Stem a single word by stripping one known suffix.

    Args:
        word: Lowercase word to stem

    Returns:
        Stemmed word (unchanged if no rule applies)

    Examples:
        >>> stem("cats")
        'cat'
        >>> stem("carried")
        'carry'
        >>> stem("dies")
        'die'
        >>> stem("bus")
        'bus'
    """
    if len(word) < MIN_WORD_LENGTH:
        return word

    for suffix, replacement in SUFFIX_RULES:
        if word.endswith(suffix):
            candidate = word[: -len(suffix)] + replacement
            if len(candidate) >= MIN_STEM_LENGTH:
                return candidate

    return word
