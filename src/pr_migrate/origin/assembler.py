"""Building the labeled revision of a fetched pull request."""

import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..api.host import GitHubHost
from ..git.repository import GitRepository
from ..models.pull_request import PullRequest
from ..models.revision import LabelMultimap, Revision
from .fetch import LOCAL_PR_BASE_BRANCH, LOCAL_PR_HEAD_REF, FetchResult
from .gating import AdmissionResult

GITHUB_PR_NUMBER_LABEL = 'GITHUB_PR_NUMBER'
GITHUB_BASE_BRANCH = 'GITHUB_BASE_BRANCH'
GITHUB_BASE_BRANCH_SHA1 = 'GITHUB_BASE_BRANCH_SHA1'
GITHUB_PR_HEAD_SHA = 'GITHUB_PR_HEAD_SHA'
GITHUB_PR_USE_MERGE = 'GITHUB_PR_USE_MERGE'
GITHUB_PR_TITLE = 'GITHUB_PR_TITLE'
GITHUB_PR_BODY = 'GITHUB_PR_BODY'
GITHUB_PR_URL = 'GITHUB_PR_URL'
GITHUB_PR_USER = 'GITHUB_PR_USER'
GITHUB_PR_ASSIGNEE = 'GITHUB_PR_ASSIGNEE'
GITHUB_PR_REQUESTED_REVIEWER = 'GITHUB_PR_REQUESTED_REVIEWER'
GITHUB_PR_REVIEWER_APPROVER = 'GITHUB_PR_REVIEWER_APPROVER'
GITHUB_PR_REVIEWER_OTHER = 'GITHUB_PR_REVIEWER_OTHER'

INTEGRATE_LABEL = 'PR_MIGRATE_INTEGRATE_REVIEW'

_INTEGRATE_PATTERN = re.compile(
    r'^https?://[^/\s]+/(?P<project>[^/\s]+/[^/\s]+)/pull/(?P<number>[0-9]+)'
    r' from (?P<head_label>\S+)(?: (?P<sha>[0-9a-fA-F]{40}))?$'
)


@dataclass(frozen=True)
class IntegrateLabel:
    """Points a destination back at the pull request a revision came from."""

    host: GitHubHost
    project: str
    number: int
    head_label: str
    sha: Optional[str] = None

    @classmethod
    def parse(cls, text: str, host: GitHubHost) -> Optional['IntegrateLabel']:
        """Parse a label value, returning None if it is not an integrate label."""
        match = _INTEGRATE_PATTERN.match(text.strip())
        if not match:
            return None
        return cls(
            host=host,
            project=match.group('project'),
            number=int(match.group('number')),
            head_label=match.group('head_label'),
            sha=match.group('sha'),
        )

    def __str__(self) -> str:
        text = f'{self.host.pr_html_url(self.project, self.number)} from {self.head_label}'
        if self.sha:
            text += f' {self.sha}'
        return text


class RevisionAssembler:
    """Turns fetched local slots and gating results into a single revision."""

    def __init__(
        self,
        repository: GitRepository,
        host: GitHubHost,
        project: str,
        url: str,
        describe_version: bool = False,
    ):
        self.repository = repository
        self.host = host
        self.project = project
        self.url = url
        self.describe_version = describe_version
        self.logger = logger.bind(component='RevisionAssembler')

    def assemble(
        self, fetched: FetchResult, pr: PullRequest, admission: AdmissionResult
    ) -> Revision:
        """Build the revision for ``pr``.

        Must run under the repository lock held for the fetch that produced
        ``fetched``.
        """
        sha1 = self.repository.resolve_reference(fetched.migration_ref)
        head_sha = self.repository.resolve_reference(LOCAL_PR_HEAD_REF)
        base_sha = self.repository.merge_base(fetched.migration_ref, LOCAL_PR_BASE_BRANCH)

        integrate = IntegrateLabel(
            host=self.host,
            project=self.project,
            number=pr.number,
            head_label=pr.head.label or pr.head.ref,
            sha=head_sha,
        )

        labels = LabelMultimap()
        labels.put(GITHUB_PR_NUMBER_LABEL, str(pr.number))
        labels.put(INTEGRATE_LABEL, str(integrate))
        labels.put(GITHUB_BASE_BRANCH, pr.base.ref)
        labels.put(GITHUB_BASE_BRANCH_SHA1, base_sha)
        labels.put(GITHUB_PR_HEAD_SHA, head_sha)
        labels.put(GITHUB_PR_USE_MERGE, 'true' if fetched.use_merge else 'false')
        labels.put(GITHUB_PR_TITLE, pr.title)
        labels.put(GITHUB_PR_BODY, pr.body)
        labels.put(GITHUB_PR_URL, pr.html_url)
        labels.put(GITHUB_PR_USER, pr.user.login)
        labels.put_all(GITHUB_PR_ASSIGNEE, _unique_logins(pr.assignees))
        labels.put_all(GITHUB_PR_REQUESTED_REVIEWER, _unique_logins(pr.requested_reviewers))
        if admission.approver_state is not None:
            labels.put_all(GITHUB_PR_REVIEWER_APPROVER, admission.approver_state.approvers)
            labels.put_all(GITHUB_PR_REVIEWER_OTHER, admission.approver_state.others)

        revision = Revision(
            sha1=sha1,
            reference=fetched.remote_ref,
            labels=labels.build(),
            url=self.url,
        )
        self.logger.debug(f'Assembled {revision} for Pull Request {pr.number}')

        if self.describe_version:
            revision = self.repository.add_describe_version(revision)
        return revision


def _unique_logins(users) -> list:
    return list(dict.fromkeys(user.login for user in users))
