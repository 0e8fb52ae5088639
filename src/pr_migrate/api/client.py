"""GitHub API client implementation."""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests
from loguru import logger
from pydantic import BaseModel, Field

from ..config.config import GitHubInstanceConfig
from ..models.pull_request import (
    CheckRuns,
    CombinedStatus,
    Issue,
    PullRequest,
    Review,
)
from .exceptions import (
    GitHubAPIError,
    GitHubAuthenticationError,
    GitHubNotFoundError,
    GitHubPermissionError,
    GitHubRateLimitError,
    GitHubSecondaryRateLimitError,
    GitHubValidationError,
)
from .rate_limiter import RateLimiter


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool
    links: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    @property
    def next_url(self) -> Optional[str]:
        return self.links.get('next', {}).get('url')


class GitHubClient:
    """GitHub REST API client for the pull request calls of the origin."""

    def __init__(
        self, config: GitHubInstanceConfig, rate_limiter: Optional[RateLimiter] = None
    ):
        """Initialize GitHub client.

        Args:
            config: GitHub instance configuration
            rate_limiter: Limiter shared between clients, created if omitted
        """
        self.config = config
        self.base_url = config.api_url.rstrip('/')
        self.session = requests.Session()
        self.rate_limiter = rate_limiter or RateLimiter(config.rate_limit_per_second)

        if config.token:
            self.session.headers.update({'Authorization': f'Bearer {config.token}'})

        self.session.headers.update(
            {
                'Accept': 'application/vnd.github+json',
                'X-GitHub-Api-Version': '2022-11-28',
                'User-Agent': 'pr-migrate/0.1.0',
            }
        )

        self.logger = logger.bind(component='GitHubClient')
        self.logger.debug(f'Initialized GitHub client for {config.api_url}')

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return urljoin(self.base_url + '/', endpoint.lstrip('/'))

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response

        Returns:
            Standardized API response

        Raises:
            GitHubAPIError: For various API errors
        """
        headers = dict(response.headers)

        rate_limited = response.status_code == 429 or (
            response.status_code == 403
            and headers.get('X-RateLimit-Remaining') == '0'
        )
        if rate_limited:
            retry_after = self._retry_after(headers)
            raise GitHubRateLimitError(
                f'Rate limit exceeded. Retry after {retry_after} seconds',
                retry_after=retry_after,
                status_code=response.status_code,
            )

        if response.status_code == 403 and 'Retry-After' in headers:
            retry_after = self._retry_after(headers)
            raise GitHubSecondaryRateLimitError(
                f'Secondary rate limit hit. Retry after {retry_after} seconds',
                retry_after=retry_after,
                status_code=403,
            )

        if response.status_code == 401:
            raise GitHubAuthenticationError('Authentication failed', status_code=401)

        if response.status_code == 403:
            raise GitHubPermissionError('Permission denied', status_code=403)

        if response.status_code == 404:
            raise GitHubNotFoundError(
                f'Resource not found: {response.url}', status_code=404
            )

        if response.status_code >= 400:
            error_data = None
            try:
                error_data = response.json()
                message = error_data.get('message', f'HTTP {response.status_code}')
            except ValueError:
                message = f'HTTP {response.status_code}: {response.text}'

            error_class = (
                GitHubValidationError if response.status_code == 422 else GitHubAPIError
            )
            raise error_class(
                f'API request failed: {message}',
                status_code=response.status_code,
                response_data=error_data,
            )

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        links = response.links if isinstance(response.links, dict) else {}

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
            links=links,
        )

    @staticmethod
    def _retry_after(headers: Dict[str, str]) -> int:
        if 'Retry-After' in headers:
            return int(headers['Retry-After'])
        reset = headers.get('X-RateLimit-Reset')
        if reset and reset.isdigit():
            return max(int(reset) - int(time.time()), 0)
        return 60

    def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs
    ) -> APIResponse:
        """Make GET request.

        Args:
            endpoint: API endpoint or absolute URL
            params: Query parameters
            **kwargs: Additional request arguments

        Returns:
            API response
        """
        url = endpoint if endpoint.startswith('http') else self._build_url(endpoint)
        kwargs.setdefault('timeout', self.config.timeout)

        self.rate_limiter.acquire()
        try:
            response = self.session.get(url, params=params, **kwargs)
        except requests.RequestException as e:
            self.logger.error(f'Network error during GET request: {e}')
            raise GitHubAPIError(f'Network error: {e}')
        return self._handle_response(response)

    def get_paginated(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        per_page: int = 100,
    ) -> List[Dict[str, Any]]:
        """Get all pages of a paginated endpoint by following ``Link`` headers.

        Args:
            endpoint: API endpoint
            params: Query parameters
            per_page: Items per page

        Returns:
            List of all items from all pages
        """
        params = dict(params or {})
        params['per_page'] = per_page

        all_items: List[Dict[str, Any]] = []
        response = self.get(endpoint, params=params)
        while True:
            if response.data:
                all_items.extend(response.data)
            if not response.next_url:
                break
            response = self.get(response.next_url)

        self.logger.debug(f'Retrieved {len(all_items)} items from {endpoint}')
        return all_items

    def get_pull_request(self, project: str, number: int) -> PullRequest:
        response = self.get(f'/repos/{project}/pulls/{number}')
        return PullRequest.model_validate(response.data)

    def get_issue(self, project: str, number: int) -> Issue:
        response = self.get(f'/repos/{project}/issues/{number}')
        return Issue.model_validate(response.data)

    def get_reviews(self, project: str, number: int) -> List[Review]:
        items = self.get_paginated(f'/repos/{project}/pulls/{number}/reviews')
        return [Review.model_validate(item) for item in items]

    def get_combined_status(self, project: str, ref: str) -> CombinedStatus:
        response = self.get(
            f'/repos/{project}/commits/{ref}/status', params={'per_page': 100}
        )
        return CombinedStatus.model_validate(response.data)

    def get_check_runs(self, project: str, ref: str) -> CheckRuns:
        response = self.get(
            f'/repos/{project}/commits/{ref}/check-runs', params={'per_page': 100}
        )
        return CheckRuns.model_validate(response.data)

    def list_pull_requests_associated_with_commit(
        self, project: str, sha: str
    ) -> List[PullRequest]:
        """List pull requests whose history contains ``sha``, in API order."""
        items = self.get_paginated(f'/repos/{project}/commits/{sha}/pulls')
        return [PullRequest.model_validate(item) for item in items]

    def test_connection(self) -> bool:
        """Test connection to the GitHub API.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = self.get('/rate_limit')
            return response.success
        except GitHubAPIError as e:
            self.logger.error(f'Connection test failed: {e}')
            return False

    def close(self):
        """Close the client session."""
        self.session.close()
        self.logger.debug('GitHub client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class GitHubClientFactory:
    """Factory for creating GitHub API clients."""

    @staticmethod
    def create_client(config: GitHubInstanceConfig) -> GitHubClient:
        """Create GitHub client from configuration.

        Args:
            config: GitHub instance configuration

        Returns:
            Configured GitHub client
        """
        if not config.token:
            logger.warning(
                'No GitHub token configured, using unauthenticated API access'
            )
        return GitHubClient(config)
