"""Base interfaces for remote file-tree providers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union

from leaksecure.core.models import RemoteEntry


class RemoteTreeProvider(ABC):
    """Interface for code-hosting APIs the scanner reads from."""

    @abstractmethod
    async def list_or_get(
        self, owner: str, repo: str, ref: str, path: str
    ) -> Union[List[RemoteEntry], str]:
        """
        Read one path of a repository.

        Args:
            owner: Repository owner/organization
            repo: Repository name
            ref: Branch, tag or commit
            path: Path inside the repository ("" for the root)

        Returns:
            A list of entries if ``path`` is a directory, the decoded text
            content if it is a file

        Raises:
            NotFoundError: If the path or repository does not exist
            RateLimitError: If the remote API rate limit is exhausted
            RemoteAPIError: For any other remote failure
        """
        pass

    @abstractmethod
    async def get_repository_info(self, owner: str, repo: str) -> Dict[str, Any]:
        """
        Get repository metadata.

        Returns:
            Dict with name, full_name, description, default_branch,
            is_private, created_at and updated_at

        Raises:
            NotFoundError: If repository not found
        """
        pass
