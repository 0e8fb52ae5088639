"""Parsed forms of a user supplied pull request reference."""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class PullRequestNumber:
    """A bare pull request number, e.g. ``1234``."""

    number: int


@dataclass(frozen=True)
class PullRequestUrl:
    """A full pull request URL, e.g. ``https://github.com/org/repo/pull/1234``."""

    project: str
    number: int


@dataclass(frozen=True)
class HeadRefPath:
    """A head ref path, e.g. ``refs/pull/1234/head``."""

    number: int


@dataclass(frozen=True)
class Sha1:
    """The head commit of an open pull request, found through the commit."""

    sha: str


@dataclass(frozen=True)
class BaselineCommit:
    """A commit resolved directly in the repository, without a pull request."""

    sha: str


PullRequestReference = Union[
    PullRequestNumber, PullRequestUrl, HeadRefPath, Sha1, BaselineCommit
]


def pr_number_of(reference: PullRequestReference) -> int:
    """Return the pull request number a reference names directly.

    Raises:
        TypeError: For references that name a commit instead of a number
    """
    if isinstance(reference, (PullRequestNumber, PullRequestUrl, HeadRefPath)):
        return reference.number
    raise TypeError(f'{reference!r} does not name a pull request number')
