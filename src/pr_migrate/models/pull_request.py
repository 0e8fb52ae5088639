"""GitHub pull request entity models."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuthorAssociation(str, Enum):
    """Relationship of a user with the repository, as reported by GitHub."""

    COLLABORATOR = 'COLLABORATOR'
    CONTRIBUTOR = 'CONTRIBUTOR'
    FIRST_TIMER = 'FIRST_TIMER'
    FIRST_TIME_CONTRIBUTOR = 'FIRST_TIME_CONTRIBUTOR'
    MANNEQUIN = 'MANNEQUIN'
    MEMBER = 'MEMBER'
    NONE = 'NONE'
    OWNER = 'OWNER'


class Mergeable(str, Enum):
    """Whether GitHub has computed a merge commit for the pull request."""

    YES = 'yes'
    NO = 'no'
    UNKNOWN = 'unknown'

    @classmethod
    def from_api(cls, value: Optional[bool]) -> 'Mergeable':
        """Map the API's nullable boolean onto the three states."""
        if value is None:
            return cls.UNKNOWN
        return cls.YES if value else cls.NO


class User(BaseModel):
    """GitHub user model."""

    model_config = ConfigDict(extra='ignore', frozen=True)

    login: str = Field(..., description='User login')
    id: Optional[int] = Field(default=None, description='User ID')


class Label(BaseModel):
    """Issue label model."""

    model_config = ConfigDict(extra='ignore', frozen=True)

    name: str = Field(..., description='Label name')


class Issue(BaseModel):
    """The issue view of a pull request, used for its labels."""

    model_config = ConfigDict(extra='ignore')

    number: int = Field(..., description='Issue number')
    labels: List[Label] = Field(default_factory=list, description='Current labels')

    def label_names(self) -> List[str]:
        return [label.name for label in self.labels]


class PullRequestBranch(BaseModel):
    """Head or base side of a pull request."""

    model_config = ConfigDict(extra='ignore')

    ref: str = Field(..., description='Branch name')
    sha: str = Field(..., description='Commit SHA')
    label: Optional[str] = Field(
        default=None, description="Branch label, e.g. 'owner:branch'"
    )


class PullRequest(BaseModel):
    """Read-only snapshot of a pull request."""

    model_config = ConfigDict(extra='ignore')

    number: int = Field(..., description='Pull request number')
    state: str = Field(..., description="'open' or 'closed'")
    title: str = Field(default='', description='Title')
    body: str = Field(default='', description='Description')
    html_url: str = Field(default='', description='Web URL')

    head: PullRequestBranch = Field(..., description='Head branch and commit')
    base: PullRequestBranch = Field(..., description='Base branch and commit')
    mergeable: Mergeable = Field(
        default=Mergeable.UNKNOWN, description='Merge commit availability'
    )

    user: User = Field(..., description='Author')
    assignees: List[User] = Field(default_factory=list, description='Assignees')
    requested_reviewers: List[User] = Field(
        default_factory=list, description='Requested reviewers'
    )

    @field_validator('mergeable', mode='before')
    @classmethod
    def validate_mergeable(cls, v: Any) -> Any:
        """Accept the API's nullable boolean."""
        if v is None or isinstance(v, bool):
            return Mergeable.from_api(v)
        return v

    @field_validator('title', 'body', mode='before')
    @classmethod
    def validate_text(cls, v: Any) -> Any:
        """GitHub sends null for an empty body."""
        return '' if v is None else v

    @property
    def is_open(self) -> bool:
        return self.state == 'open'


class Review(BaseModel):
    """Pull request review model."""

    model_config = ConfigDict(extra='ignore')

    id: Optional[int] = Field(default=None, description='Review ID')
    user: User = Field(..., description='Reviewer')
    author_association: AuthorAssociation = Field(
        default=AuthorAssociation.NONE, description='Reviewer association'
    )
    commit_id: str = Field(default='', description='Commit the review targeted')
    state: str = Field(default='COMMENTED', description='Review state')

    @property
    def is_approved(self) -> bool:
        return self.state == 'APPROVED'


class StatusState(str, Enum):
    """Commit status states."""

    ERROR = 'error'
    FAILURE = 'failure'
    PENDING = 'pending'
    SUCCESS = 'success'


class Status(BaseModel):
    """A single commit status context."""

    model_config = ConfigDict(extra='ignore')

    context: str = Field(..., description='Status context name')
    state: StatusState = Field(..., description='Status state')
    target_url: Optional[str] = Field(default=None, description='Details URL')
    description: Optional[str] = Field(default=None, description='Description')


class CombinedStatus(BaseModel):
    """Combined commit status for a ref."""

    model_config = ConfigDict(extra='ignore')

    sha: str = Field(..., description='Commit SHA')
    state: StatusState = Field(..., description='Overall state')
    statuses: List[Status] = Field(default_factory=list, description='Contexts')


class CheckRun(BaseModel):
    """A single check run."""

    model_config = ConfigDict(extra='ignore')

    name: str = Field(..., description='Check run name')
    status: str = Field(default='completed', description='queued/in_progress/completed')
    conclusion: Optional[str] = Field(
        default=None, description='Outcome, None while running'
    )


class CheckRuns(BaseModel):
    """Check runs for a ref."""

    model_config = ConfigDict(extra='ignore')

    total_count: int = Field(default=0, description='Total check runs')
    check_runs: List[CheckRun] = Field(default_factory=list, description='Check runs')
