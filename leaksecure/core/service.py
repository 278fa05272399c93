"""
Scan orchestration.

Ties the fetcher, detector and analyzer together behind the operations
exposed to callers (CLI or any tool host), and turns failures into the
sanitized error report.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError as SchemaValidationError

from leaksecure.api.schemas import (
    AnalyzeSecurityRequest,
    ScanCodeRequest,
    ScanRepositoryRequest,
    ValidateSecretRequest,
)
from leaksecure.core.analyzer import SecurityAnalyzer
from leaksecure.core.detector import SecretDetector
from leaksecure.core.exceptions import (
    LeakSecureError,
    OperationTimeoutError,
    ValidationError,
    format_error_for_client,
)
from leaksecure.core.models import (
    CodeScanReport,
    RemoteFile,
    ScanReport,
    ScanResult,
    ValidationAdvice,
)
from leaksecure.platforms.github_adapter import GitHubAdapter
from leaksecure.platforms.tree_fetcher import RemoteTreeFetcher
from leaksecure.utils.circuit_breaker import CircuitBreaker
from leaksecure.utils.config import ScannerConfig
from leaksecure.utils.rate_limiter import RateLimiter
from leaksecure.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 50
ENTIRE_REPOSITORY = "entire repository"
INLINE_PATH = "inline"

SECRET_TYPES_URI = "leak-secure://secret-types"
PATTERNS_URI = "leak-secure://patterns"

TOOLS = {
    "scan_repository": "Scan a GitHub repository for exposed secrets",
    "scan_code": "Scan a code snippet or file content for secrets",
    "analyze_security": "Scan a repository and assess risk, compliance and remediation",
    "get_secret_types": "List all supported secret types",
    "validate_secret": "Get validation advice for a detected secret",
}

RESOURCES = {
    SECRET_TYPES_URI: "Supported Secret Types",
    PATTERNS_URI: "Detection Patterns",
}


@dataclass
class ToolResponse:
    """Outcome of a tool call: the JSON-ready payload and whether it is an error report."""
    data: Any
    is_error: bool = False

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2)


def _schema_error(error: SchemaValidationError) -> ValidationError:
    """Convert a pydantic failure without echoing the rejected input."""
    problems = [
        {"field": ".".join(str(part) for part in item["loc"]), "message": item["msg"]}
        for item in error.errors(include_url=False, include_input=False)
    ]
    return ValidationError("Invalid input parameters", {"errors": problems})


class ScanService:
    """
    Entry point for every scan operation.

    Components are injected for testing; anything not supplied is built from
    the configuration on first use.
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        detector: Optional[SecretDetector] = None,
        analyzer: Optional[SecurityAnalyzer] = None,
        fetcher: Optional[RemoteTreeFetcher] = None,
    ):
        self.config = config or ScannerConfig()
        self.detector = detector or SecretDetector(max_content_size=self.config.max_file_size)
        self.analyzer = analyzer or SecurityAnalyzer()
        self._fetcher = fetcher
        self._shutting_down = False

    @classmethod
    def from_env(cls) -> "ScanService":
        return cls(config=ScannerConfig.from_env())

    @property
    def fetcher(self) -> RemoteTreeFetcher:
        if self._fetcher is None:
            self._fetcher = self._build_fetcher()
        return self._fetcher

    def _build_fetcher(self) -> RemoteTreeFetcher:
        config = self.config
        return RemoteTreeFetcher(
            provider=GitHubAdapter(token=config.github_token, timeout_ms=config.github_request_timeout),
            rate_limiter=RateLimiter(
                capacity=config.github_rate_limit_burst,
                tokens_per_hour=config.github_rate_limit_per_hour,
            ),
            circuit_breaker=CircuitBreaker(
                failure_threshold=config.circuit_breaker_threshold,
                reset_timeout=config.circuit_breaker_timeout,
                timeout=config.github_request_timeout,
            ),
            retry_policy=RetryPolicy(
                max_retries=config.max_retries,
                base_delay=config.retry_delay_base,
                max_delay=config.retry_delay_max,
            ),
            max_file_size=config.max_file_size,
            max_files_per_scan=config.max_files_per_scan,
        )

    async def scan_repository(self, request: ScanRepositoryRequest) -> ScanReport:
        """
        Fetch a repository and scan every admitted file.

        The whole pipeline runs under the configured scan timeout; when it
        expires the partial results are discarded.

        Raises:
            OperationTimeoutError: If the scan exceeds ``scan_timeout``
            RepositoryAccessError: If the repository cannot be read
        """
        logger.info(
            "Starting repository scan",
            extra={
                "owner": request.owner,
                "repo": request.repo,
                "branch": request.branch,
                "path": request.path,
            },
        )

        try:
            report = await asyncio.wait_for(
                self._scan_repository(request), timeout=self.config.scan_timeout / 1000
            )
        except asyncio.TimeoutError:
            raise OperationTimeoutError(
                f"Repository scan timed out after {self.config.scan_timeout}ms",
                {"owner": request.owner, "repo": request.repo, "branch": request.branch},
            )
        except LeakSecureError as e:
            logger.error(
                "Repository scan failed",
                extra={"owner": request.owner, "repo": request.repo, "error": e.message},
            )
            raise

        logger.info(
            "Repository scan completed",
            extra={
                "owner": request.owner,
                "repo": request.repo,
                "files_scanned": report.total_files_scanned,
                "secrets_found": report.total_secrets_found,
            },
        )
        return report

    async def _scan_repository(self, request: ScanRepositoryRequest) -> ScanReport:
        files = await self.fetcher.fetch(request.owner, request.repo, request.branch, request.path)
        results = await self.scan_files(files)

        return ScanReport(
            repository=request.full_name,
            branch=request.branch,
            path=request.path or ENTIRE_REPOSITORY,
            total_files_scanned=len(files),
            files_with_secrets=len(results),
            total_secrets_found=sum(len(r.detections) for r in results),
            results=results,
            summary=self.analyzer.generate_summary(results),
        )

    async def scan_files(self, files: Sequence[RemoteFile]) -> List[ScanResult]:
        """Scan files in batches; only files with detections produce a result."""
        results: List[ScanResult] = []

        for start in range(0, len(files), SCAN_BATCH_SIZE):
            batch = files[start : start + SCAN_BATCH_SIZE]
            batch_results = await asyncio.gather(*(self._scan_file(f) for f in batch))
            results.extend(r for r in batch_results if r is not None)

        return results

    async def _scan_file(self, remote_file: RemoteFile) -> Optional[ScanResult]:
        if not remote_file.content:
            return None

        try:
            detections = await asyncio.to_thread(
                self.detector.scan, remote_file.content, remote_file.path
            )
        except Exception as e:
            logger.debug("Error scanning file", extra={"file": remote_file.path, "error": str(e)})
            return None

        if not detections:
            return None
        return ScanResult(
            file=remote_file.path,
            detections=detections,
            severity=self.analyzer.calculate_severity(detections),
        )

    async def scan_code(self, request: ScanCodeRequest) -> CodeScanReport:
        file_path = request.file_path or INLINE_PATH
        logger.info("Scanning code", extra={"file_path": file_path, "code_length": len(request.code)})

        detections = await asyncio.to_thread(self.detector.scan, request.code, file_path)

        logger.info(
            "Code scan completed",
            extra={"file_path": file_path, "detections_found": len(detections)},
        )
        return CodeScanReport(
            file_path=file_path,
            detections=detections,
            severity=self.analyzer.calculate_severity(detections),
            recommendations=self.analyzer.get_recommendations(detections),
        )

    async def analyze_security(self, request: AnalyzeSecurityRequest) -> Dict[str, Any]:
        """
        Scan the whole repository and add the risk assessment.

        Returns:
            The scan report fields plus ``analysis``, ``risk_score``,
            ``compliance_status`` and ``remediation_steps``
        """
        report = await self.scan_repository(
            ScanRepositoryRequest(owner=request.owner, repo=request.repo, branch=request.branch)
        )
        analysis = self.analyzer.analyze(report.results)

        logger.info(
            "Security analysis completed",
            extra={
                "owner": request.owner,
                "repo": request.repo,
                "risk_score": analysis.risk_score,
                "compliance_status": analysis.compliance_status.value,
            },
        )

        data = report.to_dict()
        data["analysis"] = analysis.to_dict()
        data["risk_score"] = analysis.risk_score
        data["compliance_status"] = analysis.compliance_status.value
        data["remediation_steps"] = list(analysis.remediation_steps)
        return data

    def get_secret_types(self) -> Dict[str, Any]:
        types = self.detector.get_supported_types()
        return {
            "total_types": len(types),
            "categories": self.detector.get_categories(),
            "types": types,
        }

    def validate_secret(self, request: ValidateSecretRequest) -> ValidationAdvice:
        logger.info("Validating secret", extra={"secret_type": request.secret_type})
        return self.detector.validate_secret(request.secret_type, request.value)

    async def handle(self, tool: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResponse:
        """
        Run a tool by name.

        Failures never propagate: they come back as the sanitized error
        report with ``is_error`` set.
        """
        if self._shutting_down:
            return ToolResponse(
                {
                    "error": "ShuttingDown",
                    "code": "SHUTTING_DOWN",
                    "message": "The service is shutting down. Please try again later.",
                    "context": {},
                },
                is_error=True,
            )

        arguments = dict(arguments or {})
        logger.info("Tool call received", extra={"tool": tool})

        try:
            data = await self._dispatch(tool, arguments)
        except SchemaValidationError as e:
            error = _schema_error(e)
            logger.warning("Validation error", extra={"tool": tool, "error": error.message})
            return ToolResponse(format_error_for_client(error), is_error=True)
        except ValidationError as e:
            logger.warning("Validation error", extra={"tool": tool, "error": e.message})
            return ToolResponse(format_error_for_client(e), is_error=True)
        except Exception as e:
            report = format_error_for_client(e)
            logger.error(
                "Tool call failed",
                exc_info=not isinstance(e, LeakSecureError),
                extra={"tool": tool, "code": report["code"]},
            )
            return ToolResponse(report, is_error=True)

        logger.info("Tool call completed", extra={"tool": tool})
        return ToolResponse(data)

    async def _dispatch(self, tool: str, arguments: Dict[str, Any]) -> Any:
        handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "scan_repository": self._tool_scan_repository,
            "scan_code": self._tool_scan_code,
            "analyze_security": self._tool_analyze_security,
            "get_secret_types": self._tool_get_secret_types,
            "validate_secret": self._tool_validate_secret,
        }
        handler = handlers.get(tool)
        if handler is None:
            raise ValidationError(f"Unknown tool: {tool}", {"tool": tool})
        return await handler(arguments)

    async def _tool_scan_repository(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        report = await self.scan_repository(ScanRepositoryRequest.model_validate(arguments))
        return report.to_dict()

    async def _tool_scan_code(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        report = await self.scan_code(ScanCodeRequest.model_validate(arguments))
        return report.to_dict()

    async def _tool_analyze_security(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return await self.analyze_security(AnalyzeSecurityRequest.model_validate(arguments))

    async def _tool_get_secret_types(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.get_secret_types()

    async def _tool_validate_secret(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self.validate_secret(ValidateSecretRequest.model_validate(arguments)).to_dict()

    def list_resources(self) -> List[Dict[str, str]]:
        return [
            {"uri": uri, "name": name, "mime_type": "application/json"}
            for uri, name in RESOURCES.items()
        ]

    def read_resource(self, uri: str) -> Dict[str, str]:
        """
        Read a static resource as JSON text.

        Raises:
            ValidationError: If the URI is not a known resource
        """
        if uri == SECRET_TYPES_URI:
            payload: Any = self.detector.get_supported_types()
        elif uri == PATTERNS_URI:
            payload = self.detector.get_patterns()
        else:
            logger.error("Resource read failed", extra={"uri": uri})
            raise ValidationError(f"Unknown resource: {uri}", {"uri": uri})

        return {"uri": uri, "mime_type": "application/json", "text": json.dumps(payload, indent=2)}

    def shutdown(self) -> None:
        """Refuse further tool calls."""
        self._shutting_down = True
        logger.info("Scan service shutting down")
