"""GitHub pull request origin."""

from .origin import GitHubPrOrigin

__all__ = ['GitHubPrOrigin']
