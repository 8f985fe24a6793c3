"""
HireSignal - Model Components
Inference runtime, signal bundles, corpus items and decision records.
"""

from .runtime import InferenceRuntime, InferenceResult
from .corpus import Category, CorpusItem, RankedSelection, Rubric
from .signals import CandidateSignalBundle, JobContext
from .records import (
    AuditLogEntry,
    BatchResult,
    DecisionType,
    KitRecord,
    LikelihoodRecord,
)

__all__ = [
    "InferenceRuntime",
    "InferenceResult",
    "Category",
    "CorpusItem",
    "RankedSelection",
    "Rubric",
    "CandidateSignalBundle",
    "JobContext",
    "AuditLogEntry",
    "BatchResult",
    "DecisionType",
    "KitRecord",
    "LikelihoodRecord",
]
