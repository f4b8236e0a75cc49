"""
Domain models — Pydantic types for the classification cache.

    from pkgprobe.core.models import ClassificationStore, UNCLASSIFIED
"""

from pkgprobe.core.models.classification import UNCLASSIFIED, ClassificationStore, dedupe

__all__ = [
    "UNCLASSIFIED",
    "ClassificationStore",
    "dedupe",
]
