"""
HireSignal - Utilities
Memory monitoring and logging setup.
"""

from .memory import MemoryMonitor
from .logging import setup_logging

__all__ = ["MemoryMonitor", "setup_logging"]
