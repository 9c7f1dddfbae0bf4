"""
Tokenizer for Naive Bayes text classification.

Tokenization pipeline:
1. Strip markup (HTML tags, script/style bodies, entities)
2. Lowercase conversion
3. Remove URLs and e-mail addresses
4. Remove standalone numbers
5. Replace everything except letters and whitespace with spaces
6. Split on whitespace, drop tokens shorter than min_length
7. Filter stopwords
8. Apply stemming ("companies" → "company", "cats" → "cat")
9. Deduplicate, preserving first-seen order

The deduplicated sequence is what documents and queries are compared on.
Callers that need term counts ask for the raw stream with unique=False and
pass it to get_word_frequency().
"""

import re
from collections import Counter
from typing import AbstractSet, Dict, Iterable, List

from bs4 import BeautifulSoup

from .stemmer import stem

# Common English words (pronouns, auxiliaries, contractions) that carry no
# signal for matching a question to a document
STOPWORDS = frozenset([
    'a', 'an', 'and', 'are', 'as', 'at', 'be', 'by', 'for', 'from',
    'has', 'he', 'in', 'is', 'it', 'its', 'of', 'on', 'that', 'the',
    'to', 'was', 'will', 'with', 'would', 'you', 'your', 'yours',
    'i', 'me', 'my', 'myself', 'we', 'our', 'ours', 'ourselves',
    'they', 'them', 'their', 'theirs', 'themselves', 'what', 'which',
    'who', 'whom', 'this', 'these', 'those', 'am', 'were', 'being',
    'been', 'have', 'had', 'having', 'do', 'does', 'did', 'doing',
    'should', 'could', 'ought', 'im', 'youre', 'hes', 'shes', 'theyre',
    'ive', 'youve', 'weve', 'theyve', 'isnt', 'arent', 'wasnt', 'werent',
    'hasnt', 'havent', 'hadnt', 'wont', 'wouldnt', 'dont', 'doesnt',
    'didnt', 'cant', 'couldnt', 'shouldnt', 'mustnt', 'neednt',
    'might', 'must', 'shall', 'can', 'may',
])

# Interrogatives are dropped from queries only
QUESTION_WORDS = frozenset([
    'what', 'where', 'when', 'why', 'how', 'which', 'who', 'whom',
])

_URL_PATTERN = re.compile(r'https?://\S+')
_EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')
_NUMBER_PATTERN = re.compile(r'\b\d+\b')
_NON_LETTER_PATTERN = re.compile(r'[^a-z\s]')
_WHITESPACE_PATTERN = re.compile(r'\s+')


def strip_markup(text: str) -> str:
    """
    Remove HTML tags and decode entities, collapsing whitespace.

    Script and style elements are dropped together with their contents.

    Examples:
        >>> strip_markup("<p>Cats &amp; dogs</p><script>x()</script>")
        'Cats & dogs'
    """
    if not text:
        return ""

    if "<" in text or "&" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        text = soup.get_text(" ")

    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def tokenize(
    text: str,
    remove_stop_words: bool = True,
    min_length: int = 2,
    stop_words: AbstractSet[str] = STOPWORDS,
    unique: bool = True,
) -> List[str]:
    """
    Tokenize text for Naive Bayes scoring.

    Args:
        text: Input text (plain text or HTML)
        remove_stop_words: Drop words from stop_words
        min_length: Minimum token length (checked before stemming)
        stop_words: Stop word set to use when remove_stop_words is set
        unique: Deduplicate tokens (first occurrence wins). With False the
            full token stream is returned, for frequency counting.

    Returns:
        List of normalized, stemmed tokens

    Examples:
        >>> tokenize("Cats are great pets and love to sleep.")
        ['cat', 'great', 'pet', 'love', 'sleep']

        >>> tokenize("Visit https://example.com or mail info@example.com")
        ['visit', 'or', 'mail']

        >>> tokenize("Dogs, dogs and more dogs", unique=False)
        ['dog', 'dog', 'more', 'dog']

        >>> tokenize("!!!")
        []
    """
    if not text:
        return []

    text = strip_markup(text)
    text = text.lower()
    text = _URL_PATTERN.sub('', text)
    text = _EMAIL_PATTERN.sub('', text)
    text = _NUMBER_PATTERN.sub('', text)
    text = _NON_LETTER_PATTERN.sub(' ', text)

    tokens = text.split()

    if min_length > 0:
        tokens = [t for t in tokens if len(t) >= min_length]

    if remove_stop_words:
        tokens = [t for t in tokens if t not in stop_words]

    tokens = [stem(t) for t in tokens]

    if unique:
        # dict preserves insertion order
        tokens = list(dict.fromkeys(tokens))

    return tokens


def get_word_frequency(tokens: Iterable[str]) -> Dict[str, int]:
    """
    Count occurrences of each token in the given sequence.

    The result depends on what the caller passes in: a deduplicated token
    list yields 1 for every word, the raw stream yields real term counts.

    Examples:
        >>> get_word_frequency(["dog", "cat", "dog"])
        {'dog': 2, 'cat': 1}
    """
    return dict(Counter(tokens))


def preprocess_query(
    query: str,
    min_length: int = 2,
    stop_words: AbstractSet[str] = STOPWORDS,
) -> List[str]:
    """
    Tokenize a user question, additionally dropping interrogatives.

    Examples:
        >>> preprocess_query("Where do cats sleep?")
        ['cat', 'sleep']

        >>> preprocess_query("What is it?")
        []
    """
    tokens = tokenize(query, remove_stop_words=True, min_length=min_length, stop_words=stop_words)
    return [t for t in tokens if t not in QUESTION_WORDS]
