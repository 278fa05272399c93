"""Platform adapters package."""

from leaksecure.platforms.base import RemoteTreeProvider
from leaksecure.platforms.github_adapter import GitHubAdapter
from leaksecure.platforms.tree_fetcher import RemoteTreeFetcher

__all__ = ["RemoteTreeProvider", "GitHubAdapter", "RemoteTreeFetcher"]
