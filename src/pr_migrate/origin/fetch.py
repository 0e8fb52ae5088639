"""Fetching the refs of a pull request into the local repository."""

from dataclasses import dataclass
from typing import List

from loguru import logger

from ..api.host import as_head_ref, as_merge_ref
from ..exceptions import CannotResolveRevisionError
from ..git.repository import GitRepository
from ..models.pull_request import Mergeable, PullRequest

LOCAL_PR_HEAD_REF = 'refs/PR_HEAD'
LOCAL_PR_MERGE_REF = 'refs/PR_MERGE'
LOCAL_PR_BASE_BRANCH = 'refs/PR_BASE_BRANCH'


@dataclass(frozen=True)
class FetchResult:
    """Local slots filled by a fetch.

    ``use_merge`` is False when a merge was requested but the pull request
    could only be fetched by its head.
    """

    pr_number: int
    use_merge: bool
    head_ref: str = LOCAL_PR_HEAD_REF
    base_ref: str = LOCAL_PR_BASE_BRANCH

    @property
    def migration_ref(self) -> str:
        return LOCAL_PR_MERGE_REF if self.use_merge else LOCAL_PR_HEAD_REF

    @property
    def remote_ref(self) -> str:
        """Remote name of the ref being migrated."""
        if self.use_merge:
            return as_merge_ref(self.pr_number)
        return as_head_ref(self.pr_number)


class PullRequestFetcher:
    """Maps remote pull request refs to fixed local slots and fetches them."""

    def __init__(self, repository: GitRepository, url: str, partial_fetch: bool = False):
        """Initialize fetcher.

        Args:
            repository: Repository receiving the refs
            url: Origin repository URL
            partial_fetch: Fetch without blobs
        """
        self.repository = repository
        self.url = url
        self.partial_fetch = partial_fetch
        self.logger = logger.bind(component='PullRequestFetcher')

    def _use_merge(self, pr: PullRequest, use_merge: bool, force_import: bool) -> bool:
        if not use_merge:
            return False
        if pr.mergeable == Mergeable.YES:
            return True
        if pr.mergeable == Mergeable.NO and force_import:
            self.logger.warning(
                f'Pull Request {pr.number} is not mergeable, but continuing with '
                f'the head reference because of force import'
            )
            return False
        if pr.mergeable == Mergeable.UNKNOWN:
            raise CannotResolveRevisionError(
                f'Cannot find a merge reference for Pull Request {pr.number}. '
                f'GitHub might still be generating it.'
            )
        raise CannotResolveRevisionError(
            f'Cannot find a merge reference for Pull Request {pr.number}. '
            f'It might have a conflict with head.'
        )

    def refspecs(self, pr: PullRequest, use_merge: bool) -> List[str]:
        refspecs = [
            f'{as_head_ref(pr.number)}:{LOCAL_PR_HEAD_REF}',
            f'refs/heads/{pr.base.ref}:{LOCAL_PR_BASE_BRANCH}',
        ]
        if use_merge:
            refspecs.append(f'{as_merge_ref(pr.number)}:{LOCAL_PR_MERGE_REF}')
        return refspecs

    def fetch(self, pr: PullRequest, use_merge: bool, force_import: bool) -> FetchResult:
        """Fetch the head, base and (optionally) merge refs of ``pr``.

        Callers reading the local slots afterwards must hold the repository
        lock across the fetch and the reads.

        Raises:
            CannotResolveRevisionError: If the merge ref is unavailable or the
                remote refs cannot be found
            RepoError: For other fetch failures
        """
        use_merge = self._use_merge(pr, use_merge, force_import)
        refspecs = self.refspecs(pr, use_merge)

        self.logger.info(f'Fetching Pull Request {pr.number} and branch {pr.base.ref}')
        with self.repository.lock:
            try:
                self.repository.fetch(
                    self.url,
                    prune=False,
                    force=True,
                    refspecs=refspecs,
                    partial_fetch=self.partial_fetch,
                )
            except CannotResolveRevisionError as e:
                if use_merge:
                    raise CannotResolveRevisionError(
                        f'Cannot find a merge reference for Pull Request {pr.number}, '
                        f'even though GitHub reported that this merge reference '
                        f'should exist.'
                    ) from e
                raise CannotResolveRevisionError(
                    f'Cannot find Pull Request {pr.number}.'
                ) from e

        return FetchResult(pr_number=pr.number, use_merge=use_merge)
