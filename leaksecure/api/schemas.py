"""Pydantic schemas for scan requests."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from leaksecure.utils.validation import sanitize_input, sanitize_repository_name

OWNER_PATTERN = r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$"
REPO_PATTERN = r"^[a-zA-Z0-9._-]+$"
BRANCH_PATTERN = r"^[a-zA-Z0-9._/-]+$"
MAX_CODE_SIZE = 10 * 1024 * 1024


class RepositoryLocator(BaseModel):
    """Owner, repository and branch of a remote scan."""
    owner: str = Field(..., min_length=1, max_length=100, pattern=OWNER_PATTERN, description="Repository owner (user or organization)")
    repo: str = Field(..., min_length=1, max_length=100, pattern=REPO_PATTERN, description="Repository name")
    branch: str = Field("main", min_length=1, max_length=255, pattern=BRANCH_PATTERN, description="Branch to scan")

    @field_validator("owner", "repo", "branch", mode="before")
    @classmethod
    def _sanitize_name(cls, value):
        if isinstance(value, str):
            return sanitize_repository_name(value)
        return value

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class ScanRepositoryRequest(RepositoryLocator):
    """Request schema for scanning a repository."""
    path: Optional[str] = Field(None, max_length=1000, description="Specific path within the repository")

    @field_validator("path", mode="before")
    @classmethod
    def _sanitize_path(cls, value):
        if isinstance(value, str):
            value = sanitize_input(value.strip())
            return value or None
        return value


class AnalyzeSecurityRequest(RepositoryLocator):
    """Request schema for a full security analysis."""


class ScanCodeRequest(BaseModel):
    """Request schema for scanning inline content."""
    code: str = Field(..., min_length=1, max_length=MAX_CODE_SIZE, description="Content to scan")
    file_path: Optional[str] = Field(
        None,
        max_length=1000,
        validation_alias=AliasChoices("file_path", "filePath"),
        description="Path hint for the content",
    )


class ValidateSecretRequest(BaseModel):
    """Request schema for secret validation advice."""
    secret_type: str = Field(
        ...,
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("secret_type", "secretType", "type"),
        description="Secret type name",
    )
    value: str = Field(..., min_length=1, max_length=10_000, description="Secret value")
