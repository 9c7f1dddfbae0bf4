"""Corpus documents and their tokenized representation."""

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, List, Optional, Union

from .tokenizer import STOPWORDS, get_word_frequency, tokenize

DocumentId = Union[int, str]


@dataclass(frozen=True)
class SourceDocument:
    """A document as supplied by the caller"""
    document_id: DocumentId
    title: str
    content: str


@dataclass
class DocumentRecord:
    """
    A corpus document with its token statistics.

    tokens is None until the document has been tokenized; an empty list
    means the document was tokenized but nothing survived the pipeline.
    """
    document_id: DocumentId
    title: str
    content: str
    tokens: Optional[List[str]] = None
    token_frequencies: Dict[str, int] = field(default_factory=dict)
    token_count: int = 0

    @property
    def is_tokenized(self) -> bool:
        return self.tokens is not None


def build_document_record(
    source: SourceDocument,
    count_repeated_tokens: bool = True,
    min_length: int = 2,
    stop_words: AbstractSet[str] = STOPWORDS,
) -> DocumentRecord:
    """
    Tokenize a document (title and content together) and compute its statistics.

    Args:
        source: Document to tokenize
        count_repeated_tokens: Count term frequencies on the full token
            stream. With False every distinct token counts once, which is
            what counting the deduplicated token list gives.
        min_length: Tokenizer minimum token length
        stop_words: Tokenizer stop word set

    Returns:
        DocumentRecord with tokens, token_frequencies and token_count set
    """
    text = f"{source.title} {source.content}"
    stream = tokenize(text, min_length=min_length, stop_words=stop_words, unique=False)
    tokens = list(dict.fromkeys(stream))

    token_frequencies = get_word_frequency(stream if count_repeated_tokens else tokens)

    return DocumentRecord(
        document_id=source.document_id,
        title=source.title,
        content=source.content,
        tokens=tokens,
        token_frequencies=token_frequencies,
        token_count=sum(token_frequencies.values()),
    )


def retokenize(record: DocumentRecord, **options) -> DocumentRecord:
    """Return a copy of the record with freshly computed token statistics."""
    source = SourceDocument(record.document_id, record.title, record.content)
    return build_document_record(source, **options)
