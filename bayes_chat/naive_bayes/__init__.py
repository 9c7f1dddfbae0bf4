"""
Naive Bayes question answering over a document corpus.

Every document is treated as its own class: a question is matched to the
document most likely to have produced its words, and the best sentence of
that document becomes the answer.

Components:
- tokenizer: Markup stripping, normalization, stopwords, stemming
- stemmer: Lightweight suffix-stripping stemmer
- vocabulary: Corpus-wide word statistics (Laplace smoothing term)
- model: Sparse Naive Bayes model, log-space scoring, confidence
- synthesizer: Best-sentence answer extraction
- similarity: Jaccard and cosine similarity
- keywords: TF-IDF keyword extraction
- corpus: Document records and their token statistics

Key simplification: no NLP beyond tokenization
- No POS tagging, embeddings or ML libraries
- Retraining always recomputes the whole model
"""

from .corpus import DocumentId, DocumentRecord, SourceDocument, build_document_record
from .keywords import calculate_tfidf, extract_keywords
from .model import ModelEntry, NaiveBayesModel, calculate_confidence, select_best
from .similarity import cosine_similarity, jaccard_similarity
from .stemmer import stem
from .synthesizer import synthesize
from .tokenizer import STOPWORDS, get_word_frequency, preprocess_query, strip_markup, tokenize
from .vocabulary import Vocabulary, VocabularyEntry, build_vocabulary

__all__ = [
    "DocumentId",
    "DocumentRecord",
    "SourceDocument",
    "build_document_record",
    "calculate_tfidf",
    "extract_keywords",
    "ModelEntry",
    "NaiveBayesModel",
    "calculate_confidence",
    "select_best",
    "cosine_similarity",
    "jaccard_similarity",
    "stem",
    "synthesize",
    "STOPWORDS",
    "get_word_frequency",
    "preprocess_query",
    "strip_markup",
    "tokenize",
    "Vocabulary",
    "VocabularyEntry",
    "build_vocabulary",
]
