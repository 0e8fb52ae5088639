"""Eligibility checks a pull request must pass before it is migrated."""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..api.client import GitHubClient
from ..api.host import GitHubHost
from ..config.config import GatingConfig
from ..exceptions import EmptyChangeError
from ..models.policy import ReviewState, StateFilter
from ..models.pull_request import AuthorAssociation, PullRequest, Review, StatusState
from ..utils.polling import poll

LABEL_POLL_ATTEMPTS = 3
LABEL_POLL_DELAY = 2.0

ReviewPredicate = Callable[[Sequence[Review], str], bool]

REVIEW_PREDICATES: Dict[ReviewState, ReviewPredicate] = {
    ReviewState.HEAD_COMMIT_APPROVED: lambda reviews, head_sha: any(
        review.commit_id == head_sha and review.is_approved for review in reviews
    ),
    ReviewState.ANY_COMMIT_APPROVED: lambda reviews, head_sha: any(
        review.is_approved for review in reviews
    ),
    ReviewState.HAS_REVIEWERS: lambda reviews, head_sha: bool(reviews),
    ReviewState.ANY: lambda reviews, head_sha: True,
}


@dataclass(frozen=True)
class ApproverState:
    """Outcome of the review policy plus the reviewer buckets used for labels."""

    should_migrate: bool
    rejected_reviews: Dict[str, AuthorAssociation] = field(default_factory=dict)
    approvers: Tuple[str, ...] = ()
    others: Tuple[str, ...] = ()


def evaluate_reviews(
    review_state: ReviewState,
    approver_associations: Sequence[AuthorAssociation],
    reviews: Sequence[Review],
    head_sha: str,
) -> ApproverState:
    """Apply ``review_state`` to the reviews written by accepted associations.

    Reviews from other associations never count towards the policy. They are
    reported in ``rejected_reviews`` and bucketed into ``others``.
    """
    accepted = set(approver_associations)
    approver_reviews = [r for r in reviews if r.author_association in accepted]

    approvers: Dict[str, None] = {}
    others: Dict[str, None] = {}
    rejected: Dict[str, AuthorAssociation] = {}
    for review in reviews:
        if review.author_association in accepted:
            approvers[review.user.login] = None
        else:
            others[review.user.login] = None
            rejected[review.user.login] = review.author_association

    return ApproverState(
        should_migrate=REVIEW_PREDICATES[review_state](approver_reviews, head_sha),
        rejected_reviews=rejected,
        approvers=tuple(approvers),
        others=tuple(others),
    )


@dataclass(frozen=True)
class AdmissionResult:
    """What the gating engine learned while admitting a pull request."""

    approver_state: Optional[ApproverState] = None


class GatingEngine:
    """Runs the eligibility checks in a fixed order, stopping at the first failure.

    Order: labels, status contexts, check runs, base branch, reviews, state.
    ``force_import`` skips all of them, but reviews are still fetched when a
    review policy is configured so reviewer labels can be emitted.
    """

    def __init__(
        self,
        client: GitHubClient,
        config: GatingConfig,
        project: str,
        host: GitHubHost,
        sleeper: Callable[[float], None] = time.sleep,
    ):
        """Initialize gating engine.

        Args:
            client: GitHub API client
            config: Eligibility rules
            project: ``owner/name`` of the origin repository
            host: Host naming rules, used for URLs in messages
            sleeper: Sleep function used between label polls
        """
        self.client = client
        self.config = config
        self.project = project
        self.host = host
        self.sleeper = sleeper
        self.logger = logger.bind(component='GatingEngine')

    def admit(self, pr: PullRequest) -> AdmissionResult:
        """Check that ``pr`` may be migrated.

        Raises:
            EmptyChangeError: Naming the first check that failed
        """
        if self.config.force_import:
            self.logger.info(f'Force import enabled, skipping checks for PR {pr.number}')
            return AdmissionResult(approver_state=self._force_approver_state(pr))

        html_url = self.host.pr_html_url(self.project, pr.number)

        self.check_labels(pr, html_url)
        self.check_status_contexts(pr, html_url)
        self.check_check_runs(pr, html_url)
        self.check_branch(pr, html_url)
        approver_state = self.check_reviews(pr, html_url)
        self.check_state(pr)

        self.logger.info(f'Pull Request {pr.number} passed all eligibility checks')
        return AdmissionResult(approver_state=approver_state)

    def _force_approver_state(self, pr: PullRequest) -> Optional[ApproverState]:
        if self.config.review_state is None:
            return None
        reviews = self.client.get_reviews(self.project, pr.number)
        return evaluate_reviews(
            self.config.review_state, self.config.review_approvers, reviews, pr.head.sha
        )

    def _missing_labels(self, pr: PullRequest) -> List[str]:
        present = set(self.client.get_issue(self.project, pr.number).label_names())
        return [label for label in self.config.required_labels if label not in present]

    def check_labels(self, pr: PullRequest, html_url: str) -> None:
        """Require every configured label on the pull request's issue.

        Labels are fetched again while only retryable ones are missing.

        Args:
            pr: Pull request under evaluation
            html_url: Web URL quoted in the rejection message

        Raises:
            EmptyChangeError: If required labels are still missing
        """
        if not self.config.required_labels:
            return

        retryable = set(self.config.retryable_labels)

        def done(missing: List[str]) -> bool:
            # Nothing can still arrive once no missing label is retryable
            return not missing or retryable.isdisjoint(missing)

        missing = poll(
            lambda: self._missing_labels(pr),
            done,
            attempts=LABEL_POLL_ATTEMPTS,
            delay=LABEL_POLL_DELAY,
            sleeper=self.sleeper,
        )
        if missing:
            raise EmptyChangeError(
                f'Cannot migrate {html_url} because it is missing the following '
                f'labels: {", ".join(missing)}'
            )

    def check_status_contexts(self, pr: PullRequest, html_url: str) -> None:
        """Require a successful commit status for each configured context.

        Raises:
            EmptyChangeError: If any context is absent or not successful
        """
        required = self.config.required_status_context_names
        if not required:
            return
        combined = self.client.get_combined_status(self.project, pr.head.sha)
        passed = {
            status.context
            for status in combined.statuses
            if status.state == StatusState.SUCCESS
        }
        missing = [name for name in required if name not in passed]
        if missing:
            raise EmptyChangeError(
                f'Cannot migrate {html_url} because the following ci labels have '
                f'not been passed: {", ".join(missing)}'
            )

    def check_check_runs(self, pr: PullRequest, html_url: str) -> None:
        """Require a check run concluded as success for each configured name."""
        required = self.config.required_check_runs
        if not required:
            return
        check_runs = self.client.get_check_runs(self.project, pr.head.sha)
        passed = {run.name for run in check_runs.check_runs if run.conclusion == 'success'}
        missing = [name for name in required if name not in passed]
        if missing:
            raise EmptyChangeError(
                f'Cannot migrate {html_url} because the following check runs have '
                f'not been passed: {", ".join(missing)}'
            )

    def check_branch(self, pr: PullRequest, html_url: str) -> None:
        """Require the configured base branch, if any."""
        branch = self.config.branch
        if branch is not None and pr.base.ref != branch:
            raise EmptyChangeError(
                f"Cannot migrate {html_url} because its base branch is "
                f"'{pr.base.ref}', but the workflow is configured to only migrate "
                f"changes for branch '{branch}'"
            )

    def check_reviews(self, pr: PullRequest, html_url: str) -> Optional[ApproverState]:
        """Apply the configured review policy.

        Args:
            pr: Pull request under evaluation
            html_url: Web URL quoted in the rejection message

        Returns:
            Approver state for labeling, or None without a review policy

        Raises:
            EmptyChangeError: If the policy is not met. The message lists
                reviews ignored for their author association.
        """
        review_state = self.config.review_state
        if review_state is None:
            return None

        reviews = self.client.get_reviews(self.project, pr.number)
        state = evaluate_reviews(
            review_state, self.config.review_approvers, reviews, pr.head.sha
        )
        if state.should_migrate:
            return state

        message = (
            f'Cannot migrate {html_url} because it is missing the required '
            f'approvals (origin is configured as {review_state.value}).'
        )
        if state.rejected_reviews:
            associations = ', '.join(a.value for a in self.config.review_approvers)
            ignored = '\n'.join(
                f'User {login} - Association: {association.value}'
                for login, association in state.rejected_reviews.items()
            )
            message += (
                f"\nThe following reviews were ignored because they don't meet "
                f'the association requirement of {associations}:\n{ignored}'
            )
        raise EmptyChangeError(message)

    def check_state(self, pr: PullRequest) -> None:
        """Reject pull requests whose open/closed state the filter excludes."""
        if self.config.state == StateFilter.OPEN and not pr.is_open:
            raise EmptyChangeError(f'Pull Request {pr.number} is not open')
        if self.config.state == StateFilter.CLOSED and pr.is_open:
            raise EmptyChangeError(f'Pull Request {pr.number} is open')
