"""Tests for reference parsing."""

import pytest

from pr_migrate.api.host import GitHubHost
from pr_migrate.exceptions import CannotResolveRevisionError, ValidationError
from pr_migrate.models.reference import (
    BaselineCommit,
    HeadRefPath,
    PullRequestNumber,
    PullRequestUrl,
    Sha1,
    pr_number_of,
)
from pr_migrate.origin.reference import ReferenceResolver

from conftest import HEAD_SHA, PROJECT


class TestReferenceResolver:
    """Test reference resolution order."""

    def setup_method(self):
        """Set up test fixtures."""
        self.resolver = ReferenceResolver(GitHubHost(), PROJECT, sha_lookup_enabled=False)

    def test_bare_number(self):
        """Test a decimal number names a pull request."""
        assert self.resolver.parse('1234') == PullRequestNumber(1234)

    def test_pull_request_url(self):
        """Test a full pull request URL."""
        reference = self.resolver.parse(f'https://github.com/{PROJECT}/pull/1234')

        assert reference == PullRequestUrl(project=PROJECT, number=1234)

    def test_pull_request_url_of_other_project(self):
        """Test URLs of another project are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            self.resolver.parse('https://github.com/other/repo/pull/1234')

        assert "should be 'google/example'" in str(exc_info.value)
        assert "'other/repo'" in str(exc_info.value)

    def test_head_ref_path(self):
        """Test refs/pull/<n>/head."""
        assert self.resolver.parse('refs/pull/1234/head') == HeadRefPath(1234)

    def test_same_number_across_formats(self):
        """Test every pull request format yields the same number."""
        references = [
            '1234',
            f'https://github.com/{PROJECT}/pull/1234',
            'refs/pull/1234/head',
        ]

        numbers = {pr_number_of(self.resolver.parse(r)) for r in references}

        assert numbers == {1234}

    def test_sha_without_ci_gating_is_baseline(self):
        """Test a SHA resolves directly when no CI gating is configured."""
        assert self.resolver.parse(HEAD_SHA) == BaselineCommit(HEAD_SHA)

    def test_baseline_uses_first_token(self):
        """Test only the first whitespace separated token is used."""
        reference = self.resolver.parse(f'{HEAD_SHA} some description')

        assert reference == BaselineCommit(HEAD_SHA)

    def test_sha_with_ci_gating_looks_up_pull_request(self):
        """Test a SHA names an open pull request when CI gating is configured."""
        resolver = ReferenceResolver(GitHubHost(), PROJECT, sha_lookup_enabled=True)

        assert resolver.parse(HEAD_SHA.upper()) == Sha1(HEAD_SHA)

    def test_sha_lookup_needs_exact_match(self):
        """Test text after a SHA disables the pull request lookup."""
        resolver = ReferenceResolver(GitHubHost(), PROJECT, sha_lookup_enabled=True)

        assert resolver.parse(f'{HEAD_SHA} extra') == BaselineCommit(HEAD_SHA)

    def test_unresolvable_reference(self):
        """Test the error lists the accepted formats."""
        with pytest.raises(CannotResolveRevisionError) as exc_info:
            self.resolver.parse('feature-branch')

        message = str(exc_info.value)
        assert "'feature-branch' is not a valid reference" in message
        assert 'refs/pull/1234/head' in message

    def test_merge_ref_is_not_accepted(self):
        """Test refs/pull/<n>/merge is not a reference format."""
        with pytest.raises(CannotResolveRevisionError):
            self.resolver.parse('refs/pull/1234/merge')

    @pytest.mark.parametrize('reference', [None, '', '   '])
    def test_missing_reference(self, reference):
        """Test a missing reference explains the usage."""
        with pytest.raises(ValidationError) as exc_info:
            self.resolver.parse(reference)

        assert 'pr-migrate resolve 12345' in str(exc_info.value)

    def test_pr_number_of_sha(self):
        """Test SHA references have no number."""
        with pytest.raises(TypeError):
            pr_number_of(Sha1(HEAD_SHA))
