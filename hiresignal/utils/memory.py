"""
HireSignal - Memory Monitoring
Reports host and process memory for the health endpoint.
"""

import os
import psutil
from typing import Dict, Any


class MemoryMonitor:
    """
    Monitors system RAM and the serving process's resident memory.

    Bulk runs hold the ranked corpus and one prompt per in-flight subject,
    so the health endpoint exposes usage and warns above a threshold.
    """

    def __init__(self, max_ram_percent: float = 85.0):
        """
        Initialize memory monitor.

        Args:
            max_ram_percent: Maximum RAM usage before warnings.
        """
        self.max_ram_percent = max_ram_percent
        self._process = psutil.Process(os.getpid())

    def get_ram_info(self) -> Dict[str, float]:
        """Get current RAM usage information."""
        mem = psutil.virtual_memory()
        return {
            "total_gb": mem.total / (1024 ** 3),
            "used_gb": mem.used / (1024 ** 3),
            "available_gb": mem.available / (1024 ** 3),
            "percent": mem.percent
        }

    def get_process_mb(self) -> float:
        """Resident set size of this process in MB."""
        return self._process.memory_info().rss / (1024 ** 2)

    def get_status(self) -> Dict[str, Any]:
        """Get complete memory status."""
        ram = self.get_ram_info()

        status = {
            "ram": {
                "total_gb": round(ram["total_gb"], 2),
                "used_gb": round(ram["used_gb"], 2),
                "available_gb": round(ram["available_gb"], 2),
                "percent": round(ram["percent"], 1)
            },
            "process_rss_mb": round(self.get_process_mb(), 1),
            "warnings": []
        }

        if ram["percent"] > self.max_ram_percent:
            status["warnings"].append(f"RAM usage ({ram['percent']:.1f}%) exceeds threshold ({self.max_ram_percent}%)")

        return status
