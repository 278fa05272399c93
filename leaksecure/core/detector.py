"""Secret detection engine - per-line signature matching with false-positive screening."""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from leaksecure.core.models import Detection, SecretSignature, ValidationAdvice
from leaksecure.core.signatures import load_signatures

logger = logging.getLogger(__name__)

MAX_LINES = 100_000
MAX_SECRET_LENGTH = 10_000
DEFAULT_MAX_CONTENT_SIZE = 10 * 1024 * 1024
CONTEXT_LINES = 2
MASK = "****"

# Placeholder words; a value equal to or containing one of these is not reported
FALSE_POSITIVES: Tuple[str, ...] = (
    "example",
    "sample",
    "test",
    "dummy",
    "placeholder",
    "your_key_here",
    "your_secret_here",
    "changeme",
    "xxx",
    "00000000",
    "12345678",
    "password",
    "secret",
    "key",
    "token",
    "api_key",
    "api_secret",
    "not_a_real",
    "fake",
    "mock",
    "stub",
)

_RE_REPEATED_CHAR = re.compile(r"^(.)\1+$", re.DOTALL)
_RE_TEST_PATH = re.compile(r"(/tests?/|__tests__|\.test\.|\.spec\.)")

def mask_secret(secret: str) -> str:
    """
    Mask a secret for display.

    Up to 4 chars are hidden entirely, up to 8 keep the first 2, up to 32
    keep 4 on each side and longer values keep 6 on each side.
    """
    length = len(secret)
    if length <= 4:
        return MASK
    if length <= 8:
        return secret[:2] + MASK
    if length <= 32:
        return secret[:4] + MASK + secret[-4:]
    return secret[:6] + MASK + secret[-6:]


def is_test_path(file_path: str) -> bool:
    """Return True if the path looks like a test file or test directory."""
    return bool(_RE_TEST_PATH.search(file_path or ""))


class SecretDetector:
    """
    Scans text for hard-coded secrets.

    Each line is matched against every signature in table order. Matches
    go through false-positive screening and the signature's validator, and
    survivors are reported with their value masked.
    """

    def __init__(
        self,
        signatures: Optional[Sequence[SecretSignature]] = None,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
        max_lines: int = MAX_LINES,
    ):
        """
        Initialize the detector.

        Args:
            signatures: Signature table (defaults to the bundled table)
            max_content_size: Input is truncated to this many characters
            max_lines: At most this many lines are scanned per call
        """
        self.signatures: Tuple[SecretSignature, ...] = (
            tuple(signatures) if signatures is not None else load_signatures()
        )
        self.max_content_size = max_content_size
        self.max_lines = max_lines

    def scan(self, text: str, file_path: str = "") -> List[Detection]:
        """
        Scan text for secrets.

        Args:
            text: Content to scan
            file_path: Path of the content, used for logging only

        Returns:
            Detections in line order, then signature order, then match order
        """
        if not text:
            return []

        if len(text) > self.max_content_size:
            logger.warning(
                "Content exceeds maximum size, truncating",
                extra={"file_path": file_path, "size": len(text), "max_size": self.max_content_size},
            )
            text = text[: self.max_content_size]

        lines = text.split("\n")
        line_count = min(len(lines), self.max_lines)

        logger.debug(
            "Scanning content for secrets",
            extra={
                "file_path": file_path,
                "line_count": line_count,
                "total_lines": len(lines),
                "test_file": is_test_path(file_path),
            },
        )

        detections: List[Detection] = []
        for index in range(line_count):
            line = lines[index]
            stripped = line.strip()
            if not stripped or stripped.startswith("//") or stripped.startswith("#"):
                continue

            for signature in self.signatures:
                try:
                    for value, offset in self._match(line, signature):
                        if not self._is_valid_secret(value, signature):
                            continue
                        masked = mask_secret(value)
                        detections.append(
                            Detection(
                                type=signature.name,
                                category=signature.category,
                                severity=signature.severity,
                                value=masked,
                                line=index + 1,
                                column=offset + 1,
                                context=self._extract_context(lines, index).replace(value, masked),
                                pattern=signature.pattern.pattern,
                                recommendation=signature.recommendation,
                            )
                        )
                except Exception as e:
                    logger.debug(
                        "Error matching signature",
                        extra={"signature": signature.name, "line": index + 1, "error": str(e)},
                    )

        if detections:
            logger.info(
                "Secrets detected",
                extra={
                    "file_path": file_path,
                    "count": len(detections),
                    "types": sorted({d.type for d in detections}),
                },
            )

        return detections

    def _match(self, line: str, signature: SecretSignature) -> List[Tuple[str, int]]:
        """Return (matched text, 0-based offset) for every match in the line."""
        return [(m.group(0), m.start()) for m in signature.pattern.finditer(line)]

    def _is_valid_secret(self, value: str, signature: SecretSignature) -> bool:
        """Screen a match for placeholders and implausible lengths."""
        if not value:
            return False

        lower_value = value.lower().strip()
        for word in FALSE_POSITIVES:
            if word in lower_value:
                return False

        if _RE_REPEATED_CHAR.match(value):
            return False

        if signature.min_length and len(value) < signature.min_length:
            return False

        if len(value) > MAX_SECRET_LENGTH:
            return False

        if signature.validator is not None:
            try:
                return bool(signature.validator.confirm(value))
            except Exception as e:
                logger.debug(
                    "Signature validator error",
                    extra={"signature": signature.name, "error": str(e)},
                )
                return False

        return True

    def _extract_context(self, lines: List[str], index: int, context_lines: int = CONTEXT_LINES) -> str:
        """Extract the lines around a finding."""
        start = max(0, index - context_lines)
        end = min(len(lines), index + context_lines + 1)
        return "\n".join(lines[start:end])

    def get_supported_types(self) -> List[Dict[str, str]]:
        """List every detectable secret type."""
        return [
            {
                "name": s.name,
                "category": s.category,
                "description": s.description,
                "severity": s.severity.value,
            }
            for s in self.signatures
        ]

    def get_categories(self) -> List[str]:
        return sorted({s.category for s in self.signatures})

    def get_patterns(self) -> List[Dict[str, Any]]:
        """The signature table, patterns serialized as their source text."""
        return [s.to_dict() for s in self.signatures]

    def validate_secret(self, secret_type: str, value: str) -> ValidationAdvice:
        """
        Return advice for a detected secret.

        No call is made to the issuing service; the advisory only confirms
        the type is known and lists what to do next.
        """
        signature = next((s for s in self.signatures if s.name == secret_type), None)

        if signature is None:
            return ValidationAdvice(
                valid=False,
                message=f"Unknown secret type: {secret_type}",
                recommendations=["Verify the secret type is supported"],
            )

        return ValidationAdvice(
            valid=True,
            message=f"Secret type {secret_type} detected. Manual validation recommended.",
            recommendations=[
                signature.recommendation,
                "Check if the secret is still in use",
                "Rotate the secret if it has been exposed",
                "Review access logs for unauthorized usage",
            ],
        )
