"""Shared test fixtures."""

from typing import Any, Dict, List, Optional

import pytest

from pr_migrate.models.pull_request import PullRequest, Review

HEAD_SHA = 'a' * 40
BASE_SHA = 'b' * 40
MERGE_SHA = 'c' * 40
PROJECT = 'google/example'
ORIGIN_URL = 'https://github.com/google/example'


def pull_request_data(
    number: int = 1234,
    state: str = 'open',
    head_sha: str = HEAD_SHA,
    base_ref: str = 'main',
    mergeable: Optional[bool] = True,
    assignees: Optional[List[str]] = None,
    requested_reviewers: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Build a pull request payload shaped like the GitHub REST API."""
    return {
        'number': number,
        'state': state,
        'title': 'Add a feature',
        'body': 'Longer description',
        'html_url': f'https://github.com/{PROJECT}/pull/{number}',
        'head': {'ref': 'feature', 'sha': head_sha, 'label': 'contributor:feature'},
        'base': {'ref': base_ref, 'sha': BASE_SHA, 'label': f'google:{base_ref}'},
        'mergeable': mergeable,
        'user': {'login': 'contributor', 'id': 1},
        'assignees': [{'login': login} for login in assignees or []],
        'requested_reviewers': [{'login': login} for login in requested_reviewers or []],
    }


def make_pull_request(**kwargs) -> PullRequest:
    return PullRequest.model_validate(pull_request_data(**kwargs))


def make_review(
    login: str,
    commit_id: str = HEAD_SHA,
    state: str = 'APPROVED',
    association: str = 'MEMBER',
) -> Review:
    return Review.model_validate(
        {
            'user': {'login': login},
            'commit_id': commit_id,
            'state': state,
            'author_association': association,
        }
    )


@pytest.fixture
def pull_request():
    """A mergeable open pull request targeting main."""
    return make_pull_request()
