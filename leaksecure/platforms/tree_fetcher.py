"""Resilient traversal of a remote repository file tree."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from leaksecure.core.exceptions import (
    LeakSecureError,
    NotFoundError,
    RemoteAPIError,
    RepositoryAccessError,
)
from leaksecure.core.models import EntryKind, RemoteEntry, RemoteFile
from leaksecure.platforms.base import RemoteTreeProvider
from leaksecure.utils.circuit_breaker import CircuitBreaker
from leaksecure.utils.rate_limiter import RateLimiter
from leaksecure.utils.retry import RetryPolicy, retry
from leaksecure.utils.validation import sanitize_repository_name

logger = logging.getLogger(__name__)

RATE_LIMIT_KEY = "github-api"
LISTING_BATCH_SIZE = 10

BINARY_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".pdf", ".zip", ".tar", ".gz", ".exe", ".dll",
    ".so", ".dylib", ".bin", ".woff", ".woff2", ".ttf",
    ".mp4", ".mp3", ".avi", ".mov", ".webm",
    ".jar", ".war", ".ear", ".class", ".pyc",
)

EXCLUDED_DIRECTORIES = frozenset(
    {"node_modules", ".git", "dist", "build", ".next", "vendor", "__pycache__"}
)


def is_binary_path(path: str) -> bool:
    return path.lower().endswith(BINARY_EXTENSIONS)


def is_excluded_path(path: str, is_directory: bool = False) -> bool:
    """True if any directory segment of ``path`` is an excluded directory."""
    segments = [s for s in path.split("/") if s]
    if not is_directory:
        segments = segments[:-1]
    return any(segment in EXCLUDED_DIRECTORIES for segment in segments)


class _FileBudget:
    """
    Slots for admitted files, shared by the whole traversal.

    A slot is reserved before a file is fetched and released if the file is
    not kept, so concurrent fetches can never exceed the limit.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    def reserve(self) -> bool:
        if self.used >= self.limit:
            return False
        self.used += 1
        return True

    def release(self) -> None:
        self.used -= 1


@dataclass
class _Target:
    owner: str
    repo: str
    branch: str

    def context(self, path: str = "") -> Dict[str, Any]:
        return {"owner": self.owner, "repo": self.repo, "branch": self.branch, "path": path}


class RemoteTreeFetcher:
    """
    Fetches the text files of a repository.

    Every remote call takes a rate-limit token, then runs through the shared
    circuit breaker, whose inner operation is the retry-wrapped provider call.
    """

    def __init__(
        self,
        provider: RemoteTreeProvider,
        rate_limiter: RateLimiter,
        circuit_breaker: CircuitBreaker,
        retry_policy: Optional[RetryPolicy] = None,
        max_file_size: int = 10 * 1024 * 1024,
        max_files_per_scan: int = 10_000,
        max_token_wait: float = 60_000,
        batch_size: int = LISTING_BATCH_SIZE,
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.circuit_breaker = circuit_breaker
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_file_size = max_file_size
        self.max_files_per_scan = max_files_per_scan
        self.max_token_wait = max_token_wait
        self.batch_size = batch_size

    async def _call(self, target: _Target, path: str) -> Union[List[RemoteEntry], str]:
        await self.rate_limiter.wait_for_token(RATE_LIMIT_KEY, self.max_token_wait)
        return await self.circuit_breaker.execute(
            lambda: retry(
                lambda: self.provider.list_or_get(target.owner, target.repo, target.branch, path),
                self.retry_policy,
            )
        )

    async def fetch(
        self, owner: str, repo: str, branch: str = "main", path: Optional[str] = None
    ) -> List[RemoteFile]:
        """
        Fetch the admissible text files of a repository.

        Args:
            owner: Repository owner/organization
            repo: Repository name
            branch: Branch, tag or commit
            path: Restrict the fetch to this file or directory

        Returns:
            Content-bearing files, at most ``max_files_per_scan`` of them

        Raises:
            RepositoryAccessError: If the repository cannot be read
            RateLimitError: If the rate limit could not be satisfied
            OperationTimeoutError: If the remote API timed out
            RemoteAPIError: For any other remote failure
        """
        target = _Target(
            owner=sanitize_repository_name(owner),
            repo=sanitize_repository_name(repo),
            branch=sanitize_repository_name(branch),
        )
        root = path.strip().strip("/") if path else ""

        logger.info("Fetching repository files", extra=target.context(root))

        budget = _FileBudget(self.max_files_per_scan)
        try:
            files = await self._fetch_root(target, root, budget)
        except LeakSecureError as e:
            raise self._map_top_level_error(e, target, root)
        except Exception as e:
            raise RemoteAPIError(
                f"Failed to fetch repository files: {e}", target.context(root)
            ) from e

        logger.info(
            "Repository files fetched",
            extra={"owner": target.owner, "repo": target.repo, "file_count": len(files)},
        )
        return files

    async def _fetch_root(self, target: _Target, root: str, budget: _FileBudget) -> List[RemoteFile]:
        if root and (is_binary_path(root) or is_excluded_path(root)):
            logger.debug("Skipping excluded path", extra={"path": root})
            return []

        try:
            data = await self._call(target, root)
        except NotFoundError:
            if not root:
                raise
            logger.debug("Requested path not found", extra=target.context(root))
            return []

        if isinstance(data, str):
            remote_file = self._admit(root, data)
            return [remote_file] if remote_file and budget.reserve() else []
        return await self._walk_entries(target, data, budget)

    def _map_top_level_error(self, error: LeakSecureError, target: _Target, path: str) -> LeakSecureError:
        if isinstance(error, NotFoundError):
            return RepositoryAccessError(
                f"Repository {target.owner}/{target.repo} not found or not accessible",
                target.context(path),
            )
        if isinstance(error, RepositoryAccessError):
            return RepositoryAccessError(error.message, target.context(path))
        if not error.context:
            error.context = target.context(path)
        return error

    async def _walk(self, target: _Target, path: str, budget: _FileBudget) -> List[RemoteFile]:
        """List a subdirectory and descend; any failure skips the subtree."""
        if budget.exhausted:
            return []

        try:
            data = await self._call(target, path)
        except Exception as e:
            if not isinstance(e, NotFoundError):
                logger.debug("Skipping directory", extra={"path": path, "error": str(e)})
            return []

        if isinstance(data, str):
            return []
        return await self._walk_entries(target, data, budget)

    async def _walk_entries(
        self, target: _Target, entries: List[RemoteEntry], budget: _FileBudget
    ) -> List[RemoteFile]:
        files: List[RemoteFile] = []

        for start in range(0, len(entries), self.batch_size):
            if budget.exhausted:
                logger.warning(
                    "Maximum file limit reached, stopping scan",
                    extra={
                        "owner": target.owner,
                        "repo": target.repo,
                        "max_files": self.max_files_per_scan,
                    },
                )
                break

            batch = entries[start : start + self.batch_size]
            batch_results = await asyncio.gather(
                *(self._visit(target, entry, budget) for entry in batch)
            )
            for result in batch_results:
                files.extend(result)

        return files

    async def _visit(self, target: _Target, entry: RemoteEntry, budget: _FileBudget) -> List[RemoteFile]:
        if entry.kind == EntryKind.DIRECTORY:
            if is_excluded_path(entry.path, is_directory=True):
                logger.debug("Skipping directory", extra={"path": entry.path})
                return []
            return await self._walk(target, entry.path, budget)

        remote_file = await self._fetch_file(target, entry, budget)
        return [remote_file] if remote_file else []

    async def _fetch_file(
        self, target: _Target, entry: RemoteEntry, budget: _FileBudget
    ) -> Optional[RemoteFile]:
        """Fetch one file; failures are logged and the file skipped."""
        if is_binary_path(entry.path):
            logger.debug("Skipping binary file", extra={"path": entry.path})
            return None
        if is_excluded_path(entry.path):
            logger.debug("Skipping excluded file", extra={"path": entry.path})
            return None

        if not budget.reserve():
            return None

        try:
            data = await self._call(target, entry.path)
        except Exception as e:
            budget.release()
            logger.debug("Failed to get file content", extra={"path": entry.path, "error": str(e)})
            return None

        remote_file = self._admit(entry.path, data, entry.size) if isinstance(data, str) else None
        if remote_file is None:
            budget.release()
        return remote_file

    def _admit(self, path: str, content: str, size: Optional[int] = None) -> Optional[RemoteFile]:
        if len(content) > self.max_file_size:
            logger.debug(
                "Skipping large file",
                extra={"path": path, "size": len(content), "max_size": self.max_file_size},
            )
            return None
        return RemoteFile(
            path=path,
            kind=EntryKind.FILE,
            content=content,
            size=size if size is not None else len(content),
        )

    async def get_repository_info(self, owner: str, repo: str) -> Dict[str, Any]:
        """Repository metadata through the rate-limited, guarded call path."""
        target = _Target(sanitize_repository_name(owner), sanitize_repository_name(repo), "")

        await self.rate_limiter.wait_for_token(RATE_LIMIT_KEY, self.max_token_wait)
        try:
            return await self.circuit_breaker.execute(
                lambda: retry(
                    lambda: self.provider.get_repository_info(target.owner, target.repo),
                    self.retry_policy,
                )
            )
        except LeakSecureError as e:
            raise self._map_top_level_error(e, target, "")

    async def is_accessible(self, owner: str, repo: str) -> bool:
        try:
            await self.get_repository_info(owner, repo)
            return True
        except LeakSecureError as e:
            logger.debug(
                "Repository not accessible",
                extra={"owner": owner, "repo": repo, "error": e.message},
            )
            return False
