"""Tests for fetching pull request refs."""

from unittest.mock import MagicMock

import pytest

from pr_migrate.exceptions import CannotResolveRevisionError, RepoError
from pr_migrate.origin.fetch import (
    LOCAL_PR_HEAD_REF,
    LOCAL_PR_MERGE_REF,
    PullRequestFetcher,
)

from conftest import ORIGIN_URL, make_pull_request

HEAD_REFSPEC = 'refs/pull/1234/head:refs/PR_HEAD'
BASE_REFSPEC = 'refs/heads/main:refs/PR_BASE_BRANCH'
MERGE_REFSPEC = 'refs/pull/1234/merge:refs/PR_MERGE'


class TestPullRequestFetcher:
    """Test the pull request fetcher."""

    def setup_method(self):
        """Set up test fixtures."""
        self.repository = MagicMock()
        self.fetcher = PullRequestFetcher(self.repository, ORIGIN_URL, partial_fetch=True)

    def fetched_refspecs(self):
        return self.repository.fetch.call_args.kwargs['refspecs']

    def test_head_only(self):
        """Test without merge mode only head and base are fetched."""
        result = self.fetcher.fetch(make_pull_request(mergeable=None), False, False)

        assert result.use_merge is False
        assert result.migration_ref == LOCAL_PR_HEAD_REF
        assert result.remote_ref == 'refs/pull/1234/head'
        self.repository.fetch.assert_called_once_with(
            ORIGIN_URL,
            prune=False,
            force=True,
            refspecs=[HEAD_REFSPEC, BASE_REFSPEC],
            partial_fetch=True,
        )

    def test_mergeable(self):
        """Test a mergeable pull request also fetches the merge ref."""
        result = self.fetcher.fetch(make_pull_request(mergeable=True), True, False)

        assert result.use_merge is True
        assert result.migration_ref == LOCAL_PR_MERGE_REF
        assert result.remote_ref == 'refs/pull/1234/merge'
        assert self.fetched_refspecs() == [HEAD_REFSPEC, BASE_REFSPEC, MERGE_REFSPEC]

    def test_mergeable_unknown(self):
        """Test an uncomputed merge ref is a hard failure."""
        with pytest.raises(CannotResolveRevisionError) as exc_info:
            self.fetcher.fetch(make_pull_request(mergeable=None), True, False)

        assert 'still be generating' in str(exc_info.value)
        self.repository.fetch.assert_not_called()

    def test_not_mergeable(self):
        """Test a conflicting pull request is a hard failure."""
        with pytest.raises(CannotResolveRevisionError) as exc_info:
            self.fetcher.fetch(make_pull_request(mergeable=False), True, False)

        assert 'conflict with head' in str(exc_info.value)

    def test_not_mergeable_forced(self):
        """Test force import falls back to the head ref."""
        result = self.fetcher.fetch(make_pull_request(mergeable=False), True, True)

        assert result.use_merge is False
        assert self.fetched_refspecs() == [HEAD_REFSPEC, BASE_REFSPEC]

    def test_unknown_forced_still_fails(self):
        """Test force import does not cover an uncomputed merge ref."""
        with pytest.raises(CannotResolveRevisionError):
            self.fetcher.fetch(make_pull_request(mergeable=None), True, True)

    def test_missing_merge_ref_is_reworded(self):
        """Test a vanished merge ref is distinguished from a vanished pull request."""
        self.repository.fetch.side_effect = CannotResolveRevisionError('no such ref')

        with pytest.raises(CannotResolveRevisionError) as exc_info:
            self.fetcher.fetch(make_pull_request(mergeable=True), True, False)

        assert 'even though GitHub reported' in str(exc_info.value)

    def test_missing_pull_request_is_reworded(self):
        """Test a vanished head ref names the pull request."""
        self.repository.fetch.side_effect = CannotResolveRevisionError('no such ref')

        with pytest.raises(CannotResolveRevisionError) as exc_info:
            self.fetcher.fetch(make_pull_request(), False, False)

        assert str(exc_info.value) == 'Cannot find Pull Request 1234.'

    def test_other_fetch_errors_propagate(self):
        """Test transport failures are not reworded."""
        self.repository.fetch.side_effect = RepoError('network down')

        with pytest.raises(RepoError) as exc_info:
            self.fetcher.fetch(make_pull_request(), False, False)

        assert str(exc_info.value) == 'network down'

    def test_fetch_holds_repository_lock(self):
        """Test the fetch runs under the repository lock."""
        self.fetcher.fetch(make_pull_request(), False, False)

        self.repository.lock.__enter__.assert_called_once()
        self.repository.lock.__exit__.assert_called_once()
