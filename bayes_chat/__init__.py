"""Bayes Chat - question answering over a document corpus with a Naive Bayes retriever"""

__version__ = "0.1.0"
