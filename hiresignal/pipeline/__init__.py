"""
HireSignal - Pipeline Stages
Collector, ranker, prompt builder, validator, writer and batch runner.
"""

from .batch import BatchRunner
from .collector import SignalCollector
from .prompts import PromptBuilder
from .ranker import rank_corpus
from .validator import validate_kit, validate_likelihood
from .writer import DecisionWriter

__all__ = [
    "BatchRunner",
    "SignalCollector",
    "PromptBuilder",
    "rank_corpus",
    "validate_kit",
    "validate_likelihood",
    "DecisionWriter",
]
