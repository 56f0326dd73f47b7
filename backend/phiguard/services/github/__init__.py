from .client import GitHubAppAuth, GitHubClient, ReviewAction
from .fetcher import fetch_context

__all__ = ["GitHubAppAuth", "GitHubClient", "ReviewAction", "fetch_context"]
