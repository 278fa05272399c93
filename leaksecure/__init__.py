"""Leak Secure - secret scanner for GitHub repositories and source code."""

__version__ = "0.1.0"
__author__ = "Leak Secure Team"

from leaksecure.core.models import (
    Detection,
    ScanReport,
    ScanResult,
    SecurityAnalysis,
    Severity,
)

__all__ = [
    "Detection",
    "ScanReport",
    "ScanResult",
    "SecurityAnalysis",
    "Severity",
    "__version__",
]
