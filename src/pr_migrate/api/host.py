"""URL and reference naming rules for a GitHub host."""

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import ValidationError

HEAD_REF_PATTERN = re.compile(r'^refs/pull/([0-9]+)/head$')


@dataclass(frozen=True)
class GitHubPrUrl:
    """A parsed pull request URL."""

    project: str
    pr_number: int


class GitHubHost:
    """Naming rules for repositories and pull requests on one GitHub host."""

    def __init__(self, host: str = 'github.com'):
        """Initialize host rules.

        Args:
            host: Host name, e.g. ``github.com`` or a GitHub Enterprise host
        """
        self.host = host.lower()
        escaped = re.escape(self.host)
        self._project_pattern = re.compile(
            rf'^(?:https?://|ssh://git@|git@){escaped}[/:](?P<project>[^/]+/[^/]+?)'
            r'(?:\.git)?/?$',
            re.IGNORECASE,
        )
        self._pr_url_pattern = re.compile(
            rf'^https?://{escaped}/(?P<project>[^/]+/[^/]+)/pull/(?P<number>[0-9]+)/?$',
            re.IGNORECASE,
        )

    @classmethod
    def from_url(cls, url: str) -> 'GitHubHost':
        """Build host rules from a web URL such as ``https://github.com``."""
        stripped = re.sub(r'^[a-z]+://', '', url.strip().lower())
        return cls(stripped.split('/')[0])

    def is_github_url(self, url: str) -> bool:
        """Return True if the URL points at a repository on this host."""
        return self._project_pattern.match(url.strip()) is not None

    def get_project_name_from_url(self, url: str) -> str:
        """Extract ``owner/name`` from a repository URL.

        Raises:
            ValidationError: If the URL is not a repository on this host
        """
        match = self._project_pattern.match(url.strip())
        if not match:
            raise ValidationError(
                f"'{url}' is not a valid {self.host} repository url"
            )
        return match.group('project')

    def maybe_parse_pr_url(self, reference: str) -> Optional[GitHubPrUrl]:
        """Parse a full pull request URL, or return None if it is not one."""
        match = self._pr_url_pattern.match(reference.strip())
        if not match:
            return None
        return GitHubPrUrl(
            project=match.group('project'), pr_number=int(match.group('number'))
        )

    def project_as_url(self, project: str) -> str:
        return f'https://{self.host}/{project}'

    def pr_html_url(self, project: str, pr_number: int) -> str:
        return f'{self.project_as_url(project)}/pull/{pr_number}'


def maybe_parse_pr_from_head_ref(reference: str) -> Optional[int]:
    """Return the PR number embedded in ``refs/pull/<n>/head``, if any."""
    match = HEAD_REF_PATTERN.match(reference)
    return int(match.group(1)) if match else None


def as_head_ref(pr_number: int) -> str:
    return f'refs/pull/{pr_number}/head'


def as_merge_ref(pr_number: int) -> str:
    return f'refs/pull/{pr_number}/merge'
