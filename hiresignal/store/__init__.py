"""
HireSignal - Data Store
Table store and the repositories the pipeline reads and writes through.
"""

from .json_store import JsonStore
from .repositories import DecisionRepository, IdentityRepository, SignalRepository

__all__ = ["JsonStore", "DecisionRepository", "IdentityRepository", "SignalRepository"]
