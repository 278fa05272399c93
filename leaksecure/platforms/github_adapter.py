"""GitHub platform adapter implementation."""

import asyncio
import base64
from typing import Any, Dict, List, Optional, Union

import requests
from github import Auth, Github, GithubException, RateLimitExceededException
from github.ContentFile import ContentFile

from leaksecure import __version__
from leaksecure.core.exceptions import (
    LeakSecureError,
    NotFoundError,
    RateLimitError,
    RemoteAPIError,
    RepositoryAccessError,
)
from leaksecure.core.models import EntryKind, RemoteEntry
from leaksecure.platforms.base import RemoteTreeProvider

USER_AGENT = f"leak-secure/{__version__}"


def _message(e: GithubException) -> str:
    if isinstance(e.data, dict):
        return str(e.data.get("message", ""))
    return str(e.data or "")


def map_github_exception(e: GithubException, context: Dict[str, Any]) -> LeakSecureError:
    """Translate a PyGithub error into the scanner's error taxonomy."""
    message = _message(e)

    if isinstance(e, RateLimitExceededException) or e.status == 429:
        return RateLimitError(f"GitHub API rate limit exceeded: {message}", context=context)
    if e.status == 403 and "rate limit" in message.lower():
        return RateLimitError(f"GitHub API rate limit exceeded: {message}", context=context)
    if e.status == 404:
        return NotFoundError(f"Not found: {message}", context)
    if e.status in (401, 403):
        return RepositoryAccessError(f"Access denied: {message}", context)
    transient = e.status is not None and e.status >= 500
    return RemoteAPIError(f"GitHub API error ({e.status}): {message}", context, transient=transient)


class GitHubAdapter(RemoteTreeProvider):
    """
    GitHub file-tree provider using PyGithub.

    PyGithub is blocking, so every call runs in a worker thread and the
    event loop stays free for the rest of the scan.
    """

    def __init__(self, token: Optional[str] = None, timeout_ms: int = 30_000, client: Optional[Github] = None):
        """
        Initialize GitHub adapter.

        Args:
            token: Personal access token (anonymous access if omitted)
            timeout_ms: HTTP timeout for each request
            client: Preconfigured PyGithub client
        """
        if client is None:
            # Retries happen in leaksecure.utils.retry only
            client = Github(
                auth=Auth.Token(token) if token else None,
                timeout=max(1, int(timeout_ms / 1000)),
                user_agent=USER_AGENT,
                retry=None,
                lazy=True,
            )
        self._client = client

    async def list_or_get(
        self, owner: str, repo: str, ref: str, path: str
    ) -> Union[List[RemoteEntry], str]:
        return await asyncio.to_thread(self._list_or_get, owner, repo, ref, path)

    async def get_repository_info(self, owner: str, repo: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._get_repository_info, owner, repo)

    def _list_or_get(self, owner: str, repo: str, ref: str, path: str) -> Union[List[RemoteEntry], str]:
        context = {"owner": owner, "repo": repo, "ref": ref, "path": path}
        try:
            gh_repo = self._client.get_repo(f"{owner}/{repo}")
            contents = gh_repo.get_contents(path, ref=ref)

            if isinstance(contents, list):
                return [self._convert_to_entry(item) for item in contents]

            if contents.type != "file":
                # Symlinks and submodules carry no scannable text
                return []

            return self._decode(gh_repo, contents)

        except GithubException as e:
            raise map_github_exception(e, context)
        except requests.exceptions.Timeout as e:
            raise RemoteAPIError(f"Request timeout: {e}", context, transient=True)
        except requests.exceptions.RequestException as e:
            raise RemoteAPIError(f"Network error: {e}", context, transient=True)

    def _decode(self, gh_repo, content_file: ContentFile) -> str:
        """Decode file content, falling back to the blob API for large files."""
        if content_file.encoding == "base64" and content_file.content is not None:
            raw = content_file.decoded_content
        else:
            # Files over 1 MB come back without inline content
            blob = gh_repo.get_git_blob(content_file.sha)
            raw = base64.b64decode(blob.content) if blob.encoding == "base64" else blob.content.encode()
        return raw.decode("utf-8", errors="replace")

    def _convert_to_entry(self, item: ContentFile) -> RemoteEntry:
        """Convert a GitHub ContentFile to our RemoteEntry model."""
        kind = EntryKind.DIRECTORY if item.type == "dir" else EntryKind.FILE
        return RemoteEntry(path=item.path, kind=kind, size=item.size)

    def _get_repository_info(self, owner: str, repo: str) -> Dict[str, Any]:
        context = {"owner": owner, "repo": repo}
        try:
            gh_repo = self._client.get_repo(f"{owner}/{repo}")
            return {
                "name": gh_repo.name,
                "full_name": gh_repo.full_name,
                "description": gh_repo.description,
                "default_branch": gh_repo.default_branch or "main",
                "is_private": gh_repo.private,
                "created_at": gh_repo.created_at.isoformat() if gh_repo.created_at else None,
                "updated_at": gh_repo.updated_at.isoformat() if gh_repo.updated_at else None,
            }
        except GithubException as e:
            raise map_github_exception(e, context)
        except requests.exceptions.RequestException as e:
            raise RemoteAPIError(f"Network error: {e}", context, transient=True)
