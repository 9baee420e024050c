"""Recall: retrieval-augmented answers over locally cached personal notes."""

__version__ = "0.4.0"
