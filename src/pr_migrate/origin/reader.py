"""History reader for revisions produced by the pull request origin."""

from typing import List, Optional

from loguru import logger

from ..exceptions import RepoError, ValidationError
from ..git.reader import GitReader, Reader
from ..git.repository import GitRepository
from ..models.revision import Baseline, Change, ChangesResponse, Revision
from .assembler import GITHUB_BASE_BRANCH_SHA1, GITHUB_PR_USE_MERGE


class PullRequestReader(Reader):
    """Wraps a ``GitReader`` with the pull request specific behaviors.

    * Baselines may be searched from the base branch commit recorded on the
      revision instead of by label.
    * Change listing understands that a migrated revision can be a merge.
    * Checkouts never rebase.

    Everything else is delegated unchanged.
    """

    def __init__(
        self,
        delegate: GitReader,
        repository: GitRepository,
        baseline_from_branch: bool = False,
    ):
        self.delegate = delegate
        self.repository = repository
        self.baseline_from_branch = baseline_from_branch
        self.logger = logger.bind(component='PullRequestReader')

    def find_baseline(self, start: Revision, label: str) -> Optional[Baseline]:
        if not self.baseline_from_branch:
            return self.delegate.find_baseline(start, label)
        revisions = self.find_baselines_without_label(start, 1)
        if not revisions:
            return None
        return Baseline(revisions[0].sha1, revisions[0])

    def find_baselines_without_label(self, start: Revision, limit: int) -> List[Revision]:
        values = start.associated_label(GITHUB_BASE_BRANCH_SHA1)
        if not values:
            raise ValueError(f'{GITHUB_BASE_BRANCH_SHA1} label should be present in {start}')
        base_sha = values[-1]
        base_revision = Revision(sha1=self.repository.parse_ref(base_sha))
        return self.delegate.baselines_without_label(base_revision, limit, skip_first=False)

    def changes(self, from_ref: Optional[Revision], to_ref: Revision) -> ChangesResponse:
        values = to_ref.associated_label(GITHUB_PR_USE_MERGE)
        if not values:
            raise ValidationError("Cannot determine whether 'use_merge' was set.")
        if values[-1] == 'false':
            return self.delegate.changes(from_ref, to_ref)

        entries = self.repository.log(to_ref.sha1, limit=1)
        if not entries or len(entries[0].parents) < 2:
            return self.delegate.changes(from_ref, to_ref)

        pr_head = Revision(sha1=entries[0].parents[1], url=to_ref.url)
        pr_changes = self.delegate.changes(from_ref, pr_head)
        if pr_changes.is_empty:
            return pr_changes

        try:
            merge_change = self.delegate.change(to_ref)
        except RepoError as e:
            raise RepoError(f'Error getting the merge commit information: {e}') from e

        self.logger.debug(
            f'Appending merge commit {to_ref.sha1} after {len(pr_changes.changes)} changes'
        )
        return ChangesResponse.for_changes(pr_changes.changes + (merge_change,))

    def change(self, ref: Revision) -> Change:
        return self.delegate.change(ref)

    def show_diff(self, from_ref: Revision, to_ref: Revision) -> str:
        return self.delegate.show_diff(from_ref, to_ref)

    def checkout(self, revision: Revision, workdir: str) -> None:
        self.delegate.checkout(revision, workdir, rebase=False)
