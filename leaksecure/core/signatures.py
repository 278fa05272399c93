"""Secret signature table and match validators."""

import re
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple, Type

import yaml

from leaksecure.core.exceptions import ConfigurationError
from leaksecure.core.models import SecretSignature, Severity

DEFAULT_SIGNATURES_FILE = Path(__file__).parent.parent / "config" / "secret_signatures.yaml"


class MatchValidator(ABC):
    """Decides whether a regex match is a real secret."""

    name = ""

    @abstractmethod
    def confirm(self, value: str) -> bool:
        """Return True if ``value`` should be reported."""


class GenericScreening(MatchValidator):
    """No signature-specific rule; the generic false-positive screens decide."""

    name = "generic"

    def confirm(self, value: str) -> bool:
        return True


class JwtStructure(MatchValidator):
    """Accepts values made of exactly three dot-separated segments."""

    name = "jwt_structure"

    def confirm(self, value: str) -> bool:
        return len(value.split(".")) == 3


class RequiresContext(MatchValidator):
    """
    Rejects every match.

    Used for shapes that are too generic to flag on their own (a bare UUID
    may be a Heroku key or any other identifier).
    """

    name = "requires_context"

    def confirm(self, value: str) -> bool:
        return False


VALIDATORS: Dict[str, Type[MatchValidator]] = {
    cls.name: cls for cls in (GenericScreening, JwtStructure, RequiresContext)
}


def _build_signature(definition: dict) -> SecretSignature:
    name = definition.get("name")
    if not name:
        raise ConfigurationError("Signature definition without a name", {"definition": definition})

    try:
        severity = Severity(definition["severity"])
    except (KeyError, ValueError):
        raise ConfigurationError(
            f"Invalid severity for signature {name}", {"signature": name}
        )

    try:
        pattern = re.compile(definition["pattern"], re.IGNORECASE)
    except (KeyError, re.error) as e:
        raise ConfigurationError(
            f"Invalid pattern for signature {name}: {e}", {"signature": name}
        )

    validator_name = definition.get("validator", GenericScreening.name)
    validator_cls = VALIDATORS.get(validator_name)
    if validator_cls is None:
        raise ConfigurationError(
            f"Unknown validator '{validator_name}' for signature {name}",
            {"signature": name, "validator": validator_name},
        )

    min_length: Optional[int] = definition.get("min_length")

    return SecretSignature(
        name=name,
        category=definition.get("category", "Generic"),
        description=definition.get("description", ""),
        severity=severity,
        pattern=pattern,
        recommendation=definition.get("recommendation", ""),
        min_length=min_length,
        validator=validator_cls(),
    )


def parse_signatures(config: dict) -> Tuple[SecretSignature, ...]:
    """Build the signature table from a parsed YAML document."""
    signatures = tuple(_build_signature(d) for d in config.get("signatures", []))

    names = [s.name for s in signatures]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(
            f"Duplicate signature names: {', '.join(duplicates)}", {"names": duplicates}
        )
    return signatures


@lru_cache(maxsize=None)
def load_signatures(path: Optional[str] = None) -> Tuple[SecretSignature, ...]:
    """
    Load the signature table from YAML.

    The result is cached per path and is immutable, so the table is parsed
    once per process and can be shared freely.

    Args:
        path: YAML file to read (defaults to the bundled table)

    Returns:
        Signatures in table order
    """
    signatures_file = Path(path) if path else DEFAULT_SIGNATURES_FILE
    try:
        with open(signatures_file, "r") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load signatures file: {e}", {"path": str(signatures_file)})

    return parse_signatures(config)
