"""Tests for revision assembly."""

from unittest.mock import Mock

from pr_migrate.api.host import GitHubHost
from pr_migrate.models.revision import Revision
from pr_migrate.origin.assembler import (
    GITHUB_BASE_BRANCH_SHA1,
    GITHUB_PR_HEAD_SHA,
    GITHUB_PR_USE_MERGE,
    INTEGRATE_LABEL,
    IntegrateLabel,
    RevisionAssembler,
)
from pr_migrate.origin.fetch import FetchResult
from pr_migrate.origin.gating import AdmissionResult, ApproverState

from conftest import BASE_SHA, HEAD_SHA, MERGE_SHA, ORIGIN_URL, PROJECT, make_pull_request

SLOTS = {'refs/PR_HEAD': HEAD_SHA, 'refs/PR_MERGE': MERGE_SHA}


class TestIntegrateLabel:
    """Test the integrate label."""

    def test_format(self):
        """Test the label text."""
        label = IntegrateLabel(GitHubHost(), PROJECT, 1234, 'contributor:feature', HEAD_SHA)

        assert str(label) == (
            f'https://github.com/{PROJECT}/pull/1234 from contributor:feature {HEAD_SHA}'
        )

    def test_parse(self):
        """Test parsing the label text back."""
        text = f'https://github.com/{PROJECT}/pull/1234 from contributor:feature {HEAD_SHA}'

        label = IntegrateLabel.parse(text, GitHubHost())

        assert label.project == PROJECT
        assert label.number == 1234
        assert label.head_label == 'contributor:feature'
        assert label.sha == HEAD_SHA
        assert str(label) == text

    def test_parse_without_sha(self):
        """Test the SHA is optional."""
        label = IntegrateLabel.parse(
            f'https://github.com/{PROJECT}/pull/7 from someone:branch', GitHubHost()
        )

        assert label.number == 7
        assert label.sha is None

    def test_parse_other_text(self):
        """Test unrelated text is not an integrate label."""
        assert IntegrateLabel.parse('not a label', GitHubHost()) is None


class TestRevisionAssembler:
    """Test the revision assembler."""

    def setup_method(self):
        """Set up test fixtures."""
        self.repository = Mock()
        self.repository.resolve_reference.side_effect = SLOTS.__getitem__
        self.repository.merge_base.return_value = BASE_SHA
        self.assembler = RevisionAssembler(
            self.repository, GitHubHost(), PROJECT, ORIGIN_URL
        )

    def test_head_mode_labels(self):
        """Test the full label set in emission order."""
        pr = make_pull_request(assignees=['a1', 'a2', 'a1'], requested_reviewers=['r1'])
        admission = AdmissionResult(
            approver_state=ApproverState(True, approvers=('alice',), others=('bob',))
        )

        revision = self.assembler.assemble(
            FetchResult(pr_number=1234, use_merge=False), pr, admission
        )

        assert revision.sha1 == HEAD_SHA
        assert revision.reference == 'refs/pull/1234/head'
        assert revision.url == ORIGIN_URL
        assert [key for key, _ in revision.labels] == [
            'GITHUB_PR_NUMBER',
            INTEGRATE_LABEL,
            'GITHUB_BASE_BRANCH',
            'GITHUB_BASE_BRANCH_SHA1',
            'GITHUB_PR_HEAD_SHA',
            'GITHUB_PR_USE_MERGE',
            'GITHUB_PR_TITLE',
            'GITHUB_PR_BODY',
            'GITHUB_PR_URL',
            'GITHUB_PR_USER',
            'GITHUB_PR_ASSIGNEE',
            'GITHUB_PR_REQUESTED_REVIEWER',
            'GITHUB_PR_REVIEWER_APPROVER',
            'GITHUB_PR_REVIEWER_OTHER',
        ]
        assert revision.associated_label('GITHUB_PR_ASSIGNEE') == ['a1', 'a2']
        assert revision.associated_label(GITHUB_PR_USE_MERGE) == ['false']
        assert revision.associated_label(GITHUB_BASE_BRANCH_SHA1) == [BASE_SHA]
        self.repository.merge_base.assert_called_once_with(
            'refs/PR_HEAD', 'refs/PR_BASE_BRANCH'
        )
        self.repository.add_describe_version.assert_not_called()

    def test_merge_mode_keeps_true_head(self):
        """Test the merge commit is migrated but labels point at the real head."""
        revision = self.assembler.assemble(
            FetchResult(pr_number=1234, use_merge=True),
            make_pull_request(),
            AdmissionResult(),
        )

        assert revision.sha1 == MERGE_SHA
        assert revision.reference == 'refs/pull/1234/merge'
        assert revision.associated_label(GITHUB_PR_HEAD_SHA) == [HEAD_SHA]
        assert revision.associated_label(GITHUB_PR_USE_MERGE) == ['true']
        assert HEAD_SHA in revision.associated_label(INTEGRATE_LABEL)[0]
        assert not revision.has_label('GITHUB_PR_REVIEWER_APPROVER')
        self.repository.merge_base.assert_called_once_with(
            'refs/PR_MERGE', 'refs/PR_BASE_BRANCH'
        )

    def test_describe_version(self):
        """Test describe output is delegated to the repository."""
        described = Revision(sha1=HEAD_SHA)
        self.repository.add_describe_version.return_value = described
        assembler = RevisionAssembler(
            self.repository, GitHubHost(), PROJECT, ORIGIN_URL, describe_version=True
        )

        revision = assembler.assemble(
            FetchResult(pr_number=1234, use_merge=False),
            make_pull_request(),
            AdmissionResult(),
        )

        assert revision is described
