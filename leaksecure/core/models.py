"""Core domain models for Leak Secure."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern

SEVERITY_NONE = "none"


class Severity(str, Enum):
    """Secret severity levels, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class EntryKind(str, Enum):
    """Kind of entry in a remote file tree."""

    FILE = "file"
    DIRECTORY = "dir"


class ComplianceStatus(str, Enum):
    """Coarse compliance verdict for a scanned repository."""

    COMPLIANT = "compliant"
    AT_RISK = "at_risk"
    NON_COMPLIANT = "non_compliant"


@dataclass(frozen=True)
class SecretSignature:
    """A named secret pattern plus its metadata and validator."""

    name: str
    category: str
    description: str
    severity: Severity
    pattern: Pattern[str]
    recommendation: str
    min_length: Optional[int] = None
    # MatchValidator instance; typed loosely to avoid an import cycle
    validator: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the regex as its source text."""
        data: Dict[str, Any] = {
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "severity": self.severity.value,
            "pattern": self.pattern.pattern,
            "recommendation": self.recommendation,
        }
        if self.min_length is not None:
            data["min_length"] = self.min_length
        if self.validator is not None:
            data["validator"] = self.validator.name
        return data


@dataclass(frozen=True)
class Detection:
    """
    One confirmed match of a signature in scanned text.

    ``value`` is always the masked form of the secret.
    """

    type: str
    category: str
    severity: Severity
    value: str
    line: int
    column: int
    context: str
    pattern: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "category": self.category,
            "severity": self.severity.value,
            "value": self.value,
            "line": self.line,
            "column": self.column,
            "context": self.context,
            "pattern": self.pattern,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class RemoteEntry:
    """An entry of a remote directory listing."""

    path: str
    kind: EntryKind
    size: Optional[int] = None


@dataclass
class RemoteFile:
    """A file fetched from a remote repository."""

    path: str
    kind: EntryKind = EntryKind.FILE
    content: Optional[str] = None
    size: Optional[int] = None


@dataclass
class ScanResult:
    """Detections found in a single file."""

    file: str
    detections: List[Detection] = field(default_factory=list)
    severity: str = SEVERITY_NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "detections": [d.to_dict() for d in self.detections],
            "severity": self.severity,
        }


@dataclass
class ScanSummary:
    """Aggregate counts over a set of scan results."""

    total_files: int = 0
    files_with_secrets: int = 0
    total_secrets: int = 0
    severity_breakdown: Dict[str, int] = field(default_factory=dict)
    top_secret_types: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "files_with_secrets": self.files_with_secrets,
            "total_secrets": self.total_secrets,
            "severity_breakdown": dict(self.severity_breakdown),
            "top_secret_types": [dict(t) for t in self.top_secret_types],
        }


@dataclass
class ScanReport:
    """Outcome of a repository scan."""

    repository: str
    branch: str
    path: str
    total_files_scanned: int = 0
    files_with_secrets: int = 0
    total_secrets_found: int = 0
    results: List[ScanResult] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository,
            "branch": self.branch,
            "path": self.path,
            "total_files_scanned": self.total_files_scanned,
            "files_with_secrets": self.files_with_secrets,
            "total_secrets_found": self.total_secrets_found,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }


@dataclass
class SecurityAnalysis:
    """Risk assessment derived from scan results."""

    risk_score: int
    compliance_status: ComplianceStatus
    critical_issues: int = 0
    high_issues: int = 0
    medium_issues: int = 0
    low_issues: int = 0
    remediation_steps: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "compliance_status": self.compliance_status.value,
            "critical_issues": self.critical_issues,
            "high_issues": self.high_issues,
            "medium_issues": self.medium_issues,
            "low_issues": self.low_issues,
            "remediation_steps": list(self.remediation_steps),
            "recommendations": list(self.recommendations),
        }


@dataclass
class CodeScanReport:
    """Outcome of scanning inline text."""

    file_path: str
    detections: List[Detection] = field(default_factory=list)
    severity: str = SEVERITY_NONE
    recommendations: List[str] = field(default_factory=list)

    @property
    def detections_found(self) -> int:
        return len(self.detections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "detections_found": self.detections_found,
            "detections": [d.to_dict() for d in self.detections],
            "severity": self.severity,
            "recommendations": list(self.recommendations),
        }


@dataclass
class ValidationAdvice:
    """Structured advisory returned by ``validate_secret``."""

    valid: bool
    message: str
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "message": self.message,
            "recommendations": list(self.recommendations),
        }
