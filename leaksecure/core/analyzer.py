"""Risk scoring and compliance assessment over scan results."""

from collections import Counter
from typing import Dict, List, Sequence, Tuple

from leaksecure.core.models import (
    SEVERITY_NONE,
    ComplianceStatus,
    Detection,
    ScanResult,
    ScanSummary,
    SecurityAnalysis,
    Severity,
)

SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.CRITICAL: 10,
    Severity.HIGH: 5,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}
MAX_RISK_SCORE = 100
NON_COMPLIANT_SCORE = 80
AT_RISK_SCORE = 40
AUDIT_SCORE = 70

HYGIENE_STEPS = (
    "Remove all hardcoded secrets from codebase",
    "Implement secret management solution (e.g., AWS Secrets Manager, HashiCorp Vault)",
    "Use environment variables or secure configuration files",
    "Add pre-commit hooks to prevent committing secrets",
    "Implement automated secret scanning in CI/CD pipeline",
    "Review git history and remove secrets from commit history if needed",
    "Update documentation to use secure practices",
)

STANDING_ADVICE = (
    "Enable secret scanning in your development workflow",
    "Train team on secure coding practices",
    "Implement least-privilege access controls",
)

GENERAL_RECOMMENDATIONS = (
    "Review all detected secrets and determine if they are still in use",
    "Implement secret rotation policy",
    "Use secret management tools instead of hardcoding",
)


def _count_types(results: Sequence[ScanResult]) -> List[Tuple[str, int]]:
    """Detection types by frequency, most frequent first, ties in first-seen order."""
    counts = Counter(d.type for r in results for d in r.detections)
    return counts.most_common()


class SecurityAnalyzer:
    """Turns detections into severity counts, a risk score and guidance."""

    def calculate_severity(self, detections: Sequence[Detection]) -> str:
        """Highest severity among the detections, or ``"none"`` if empty."""
        if not detections:
            return SEVERITY_NONE
        return max((d.severity for d in detections), key=lambda s: s.rank).value

    def count_by_severity(self, results: Sequence[ScanResult]) -> Dict[Severity, int]:
        counts = {severity: 0 for severity in Severity}
        for result in results:
            for detection in result.detections:
                counts[detection.severity] += 1
        return counts

    def calculate_risk_score(self, critical: int, high: int, medium: int, low: int) -> int:
        """Weighted severity sum, capped at 100."""
        score = (
            critical * SEVERITY_WEIGHTS[Severity.CRITICAL]
            + high * SEVERITY_WEIGHTS[Severity.HIGH]
            + medium * SEVERITY_WEIGHTS[Severity.MEDIUM]
            + low * SEVERITY_WEIGHTS[Severity.LOW]
        )
        return int(round(min(MAX_RISK_SCORE, score)))

    def determine_compliance_status(self, risk_score: int, critical: int, high: int) -> ComplianceStatus:
        if critical > 0 or risk_score >= NON_COMPLIANT_SCORE:
            return ComplianceStatus.NON_COMPLIANT
        if high > 0 or risk_score >= AT_RISK_SCORE:
            return ComplianceStatus.AT_RISK
        return ComplianceStatus.COMPLIANT

    def analyze(self, results: Sequence[ScanResult]) -> SecurityAnalysis:
        """
        Perform the full security analysis.

        Args:
            results: Per-file scan results

        Returns:
            SecurityAnalysis with score, verdict, remediation and recommendations
        """
        counts = self.count_by_severity(results)
        critical = counts[Severity.CRITICAL]
        high = counts[Severity.HIGH]
        medium = counts[Severity.MEDIUM]
        low = counts[Severity.LOW]

        risk_score = self.calculate_risk_score(critical, high, medium, low)

        return SecurityAnalysis(
            risk_score=risk_score,
            compliance_status=self.determine_compliance_status(risk_score, critical, high),
            critical_issues=critical,
            high_issues=high,
            medium_issues=medium,
            low_issues=low,
            remediation_steps=self.generate_remediation_steps(critical, high),
            recommendations=self.generate_recommendations(results, risk_score),
        )

    def generate_remediation_steps(self, critical: int, high: int) -> List[str]:
        steps: List[str] = []

        if critical > 0:
            steps.append("URGENT: Address critical security issues immediately")
            steps.append("Rotate all exposed critical secrets (API keys, passwords, tokens)")
            steps.append("Review and revoke access for compromised credentials")

        if high > 0:
            steps.append("Address high-severity issues within 24 hours")
            steps.append("Rotate exposed secrets and update configuration")

        steps.extend(HYGIENE_STEPS)
        return steps

    def generate_recommendations(self, results: Sequence[ScanResult], risk_score: int) -> List[str]:
        recommendations: List[str] = []

        top_types = _count_types(results)[:3]
        if top_types:
            names = ", ".join(name for name, _ in top_types)
            recommendations.append(f"Most common secret types found: {names}")

        if risk_score >= AUDIT_SCORE:
            recommendations.append("Consider implementing a security review process")
            recommendations.append("Schedule immediate security audit")

        recommendations.extend(STANDING_ADVICE)
        return recommendations

    def generate_summary(self, results: Sequence[ScanResult]) -> ScanSummary:
        """Totals, severity breakdown and the ten most frequent types."""
        counts = self.count_by_severity(results)

        return ScanSummary(
            total_files=len(results),
            files_with_secrets=sum(1 for r in results if r.detections),
            total_secrets=sum(len(r.detections) for r in results),
            severity_breakdown={severity.value: counts[severity] for severity in Severity},
            top_secret_types=[
                {"type": name, "count": count} for name, count in _count_types(results)[:10]
            ],
        )

    def get_recommendations(self, detections: Sequence[Detection]) -> List[str]:
        """Unique per-detection recommendations followed by general advice."""
        recommendations: List[str] = []
        for detection in detections:
            if detection.recommendation not in recommendations:
                recommendations.append(detection.recommendation)

        if detections:
            for item in GENERAL_RECOMMENDATIONS:
                if item not in recommendations:
                    recommendations.append(item)
        return recommendations
