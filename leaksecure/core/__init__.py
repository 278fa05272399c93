"""Core package for Leak Secure."""

from leaksecure.core.analyzer import SecurityAnalyzer
from leaksecure.core.detector import SecretDetector
from leaksecure.core.exceptions import LeakSecureError
from leaksecure.core.models import Detection, ScanResult, SecretSignature, Severity

__all__ = [
    "SecurityAnalyzer",
    "SecretDetector",
    "LeakSecureError",
    "Detection",
    "ScanResult",
    "SecretSignature",
    "Severity",
]
