"""Admission policy enumerations."""

from enum import Enum


class ReviewState(str, Enum):
    """Review requirement a pull request must meet before migration."""

    HEAD_COMMIT_APPROVED = 'HEAD_COMMIT_APPROVED'
    ANY_COMMIT_APPROVED = 'ANY_COMMIT_APPROVED'
    HAS_REVIEWERS = 'HAS_REVIEWERS'
    ANY = 'ANY'


class StateFilter(str, Enum):
    """Open/closed state a pull request must be in."""

    OPEN = 'OPEN'
    CLOSED = 'CLOSED'
    ALL = 'ALL'
