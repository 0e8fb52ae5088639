"""Errors raised by the GitHub REST client.

These stay separate from the resolution errors in ``pr_migrate.exceptions``:
the origin decides which of them mean "this pull request cannot be
resolved" and lets the rest propagate.
"""

from typing import Optional


class GitHubAPIError(Exception):
    """A GitHub REST call failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize GitHub API error.

        Args:
            message: Error message, including GitHub's ``message`` field if any
            status_code: HTTP status code, None for network failures
            response_data: Decoded JSON error body
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class GitHubAuthenticationError(GitHubAPIError):
    """The token is missing, expired or revoked (HTTP 401)."""


class GitHubRateLimitError(GitHubAPIError):
    """The primary hourly quota is used up.

    GitHub answers 429, or 403 with ``X-RateLimit-Remaining: 0``.
    """

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds until the quota resets
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class GitHubSecondaryRateLimitError(GitHubRateLimitError):
    """Abuse detection throttled the token while quota remains.

    GitHub answers 403 with a ``Retry-After`` header.
    """


class GitHubNotFoundError(GitHubAPIError):
    """Unknown repository or pull request, or one the token cannot see (HTTP 404)."""


class GitHubPermissionError(GitHubAPIError):
    """The token lacks the scope needed for the call (HTTP 403)."""


class GitHubValidationError(GitHubAPIError):
    """The API rejected the request as unprocessable (HTTP 422)."""
