"""
Configuration management for Leak Secure
Reads scanner settings from the environment (and an optional .env file)
"""
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from leaksecure.core.exceptions import ConfigurationError

ENVIRONMENTS = ("development", "production", "test")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "WARN", "ERROR")


@dataclass(frozen=True)
class ScannerConfig:
    """Leak Secure configuration. Durations are in milliseconds."""
    github_token: Optional[str] = None
    environment: str = "production"
    log_level: Optional[str] = None

    # Rate limiting
    github_rate_limit_per_hour: int = 5000
    github_rate_limit_burst: int = 100

    # Timeouts
    github_request_timeout: int = 30_000
    scan_timeout: int = 300_000

    # Retries
    max_retries: int = 3
    retry_delay_base: int = 1_000
    retry_delay_max: int = 30_000

    # File processing
    max_file_size: int = 10 * 1024 * 1024
    max_files_per_scan: int = 10_000

    # Circuit breaker
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout: int = 60_000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with the token masked"""
        data = asdict(self)
        if data["github_token"]:
            data["github_token"] = "****"
        return data

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "ScannerConfig":
        """
        Build configuration from environment variables

        Args:
            environ: Mapping to read (defaults to os.environ)
            dotenv: Load a .env file into os.environ first

        Raises:
            ConfigurationError: If a value is missing its required shape
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        environment = environ.get("LEAKSECURE_ENV", "production").lower()
        if environment not in ENVIRONMENTS:
            raise ConfigurationError(
                f"LEAKSECURE_ENV must be one of {', '.join(ENVIRONMENTS)}",
                {"variable": "LEAKSECURE_ENV"},
            )

        log_level = environ.get("LOG_LEVEL")
        if log_level and log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}",
                {"variable": "LOG_LEVEL"},
            )

        return cls(
            github_token=environ.get("GITHUB_TOKEN") or None,
            environment=environment,
            log_level=log_level.upper() if log_level else None,
            github_rate_limit_per_hour=_int(environ, "GITHUB_RATE_LIMIT_PER_HOUR", 5000),
            github_rate_limit_burst=_int(environ, "GITHUB_RATE_LIMIT_BURST", 100),
            github_request_timeout=_int(environ, "GITHUB_REQUEST_TIMEOUT", 30_000),
            scan_timeout=_int(environ, "SCAN_TIMEOUT", 300_000),
            max_retries=_int(environ, "MAX_RETRIES", 3, minimum=0, maximum=10),
            retry_delay_base=_int(environ, "RETRY_DELAY_BASE", 1_000),
            retry_delay_max=_int(environ, "RETRY_DELAY_MAX", 30_000),
            max_file_size=_int(environ, "MAX_FILE_SIZE", 10 * 1024 * 1024),
            max_files_per_scan=_int(environ, "MAX_FILES_PER_SCAN", 10_000),
            circuit_breaker_threshold=_int(environ, "CIRCUIT_BREAKER_THRESHOLD", 5),
            circuit_breaker_timeout=_int(environ, "CIRCUIT_BREAKER_TIMEOUT", 60_000),
        )


def _int(
    environ: Mapping[str, str],
    name: str,
    default: int,
    minimum: int = 1,
    maximum: Optional[int] = None,
) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default

    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", {"variable": name})

    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise ConfigurationError(f"{name} must be {bounds}", {"variable": name})
    return value
