"""Data models for pull requests, references and revisions."""

from .pull_request import (
    AuthorAssociation,
    CheckRun,
    CheckRuns,
    CombinedStatus,
    Issue,
    Label,
    Mergeable,
    PullRequest,
    PullRequestBranch,
    Review,
    Status,
    StatusState,
    User,
)
from .policy import ReviewState, StateFilter
from .reference import (
    BaselineCommit,
    HeadRefPath,
    PullRequestNumber,
    PullRequestReference,
    PullRequestUrl,
    Sha1,
)
from .revision import (
    Baseline,
    Change,
    ChangesResponse,
    EmptyReason,
    LabelMultimap,
    Revision,
)

__all__ = [
    'AuthorAssociation',
    'CheckRun',
    'CheckRuns',
    'CombinedStatus',
    'Issue',
    'Label',
    'Mergeable',
    'PullRequest',
    'PullRequestBranch',
    'Review',
    'Status',
    'StatusState',
    'User',
    'ReviewState',
    'StateFilter',
    'BaselineCommit',
    'HeadRefPath',
    'PullRequestNumber',
    'PullRequestReference',
    'PullRequestUrl',
    'Sha1',
    'Baseline',
    'Change',
    'ChangesResponse',
    'EmptyReason',
    'LabelMultimap',
    'Revision',
]
