# FILE: config/__init__.py
"""Configuration package for Recall.

Contains:
- backend_models.py: generation backend table (models, endpoints, timeouts)
"""

from config.backend_models import (
    BACKEND_ORDER,
    DEFAULT_BACKEND,
    GEMINI_MODELS,
)

__all__ = [
    "BACKEND_ORDER",
    "DEFAULT_BACKEND",
    "GEMINI_MODELS",
]
