"""GitHub pull request origin: resolves references into migratable revisions."""

import time
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from ..api.client import GitHubClient, GitHubClientFactory
from ..api.exceptions import GitHubNotFoundError
from ..api.host import GitHubHost
from ..config.config import Config, OriginConfig
from ..exceptions import CannotResolveRevisionError, EmptyChangeError
from ..git.reader import Authoring, GitReader, PathFilter
from ..git.repository import GIT_ORIGIN_REV_ID, GitRepository, RepositoryCache
from ..models.pull_request import PullRequest
from ..models.reference import BaselineCommit, Sha1, pr_number_of
from ..models.revision import Revision
from .assembler import RevisionAssembler
from .fetch import PullRequestFetcher
from .gating import GatingEngine
from .reader import PullRequestReader
from .reference import ReferenceResolver

ORIGIN_TYPE = 'git.github_pr_origin'


class GitHubPrOrigin:
    """Entry point used by the migration workflow.

    ``resolve`` runs reference parsing, gating, fetching and assembly in
    sequence. The fetch and the reads of the fetched refs happen under the
    repository lock, so origins sharing a repository never interleave them.
    """

    def __init__(
        self,
        config: OriginConfig,
        client: GitHubClient,
        repository: GitRepository,
        host: GitHubHost,
        sleeper: Callable[[float], None] = time.sleep,
    ):
        """Initialize origin.

        Args:
            config: Origin configuration, including the eligibility rules
            client: GitHub API client
            repository: Cached repository for the origin URL
            host: Host naming rules
            sleeper: Sleep function used while polling labels
        """
        self.config = config
        self.client = client
        self.repository = repository
        self.host = host
        self.url = config.url
        self.project = host.get_project_name_from_url(config.url)
        self.gating_config = config.gating

        self.resolver = ReferenceResolver(
            host, self.project, self.gating_config.sha_lookup_enabled
        )
        self.gating = GatingEngine(
            client, self.gating_config, self.project, host, sleeper=sleeper
        )
        self.fetcher = PullRequestFetcher(repository, self.url, config.partial_fetch)
        self.assembler = RevisionAssembler(
            repository, host, self.project, self.url, config.describe_version
        )
        self.logger = logger.bind(component='GitHubPrOrigin')

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: Optional[GitHubClient] = None,
        repository_cache: Optional[RepositoryCache] = None,
        force_import: Optional[bool] = None,
        required_labels: Optional[Iterable[str]] = None,
        retryable_labels: Optional[Iterable[str]] = None,
    ) -> 'GitHubPrOrigin':
        """Create an origin from the main configuration plus per-run overrides."""
        gating = config.origin.gating.with_overrides(
            force_import=force_import,
            required_labels=required_labels,
            retryable_labels=retryable_labels,
        )
        origin_config = config.origin.model_copy(update={'gating': gating})

        if client is None:
            client = GitHubClientFactory.create_client(config.github)
        if repository_cache is None:
            repository_cache = RepositoryCache(
                config.git.repo_storage_dir,
                git_binary=config.git.git_binary,
                timeout=config.git.timeout,
            )
        repository = repository_cache.cached_bare_repo_for_url(config.origin.url)
        return cls(origin_config, client, repository, config.github.host)

    def resolve(self, reference: Optional[str]) -> Revision:
        """Resolve ``reference`` into a fully labeled revision.

        Raises:
            ValidationError: For malformed or cross-project references
            CannotResolveRevisionError: If no commit or pull request matches
            EmptyChangeError: If the pull request is not eligible for migration
            RepoError: For git failures
        """
        self.logger.info(f'Resolving reference {reference}')
        parsed = self.resolver.parse(reference)

        if isinstance(parsed, BaselineCommit):
            sha1 = self.repository.parse_ref(parsed.sha)
            return Revision(sha1=sha1, url=self.url)

        if isinstance(parsed, Sha1):
            pr_number = self.get_pr_to_migrate(parsed.sha).number
        else:
            pr_number = pr_number_of(parsed)

        pr = self._get_pull_request(pr_number)
        admission = self.gating.admit(pr)

        with self.repository.lock:
            fetched = self.fetcher.fetch(
                pr, self.config.use_merge, self.gating_config.force_import
            )
            return self.assembler.assemble(fetched, pr, admission)

    def _get_pull_request(self, number: int) -> PullRequest:
        try:
            return self.client.get_pull_request(self.project, number)
        except GitHubNotFoundError as e:
            raise CannotResolveRevisionError(
                f'Pull Request {number} not found in {self.project}'
            ) from e

    def get_pr_to_migrate(self, sha: str) -> PullRequest:
        """Find the open pull request whose head is ``sha``.

        If several pull requests qualify, the first one in API order is used.

        Raises:
            EmptyChangeError: If no open pull request has ``sha`` as its head
        """
        candidates = [
            pr
            for pr in self.client.list_pull_requests_associated_with_commit(
                self.project, sha
            )
            if pr.state != 'closed' and pr.head.sha == sha
        ]
        if not candidates:
            raise EmptyChangeError(
                f'Could not find a pr with not-closed state and head being equal '
                f'to sha {sha}'
            )
        if len(candidates) > 1:
            self.logger.info(
                f'Found {len(candidates)} pull requests for {sha}, using '
                f'#{candidates[0].number}'
            )
        return candidates[0]

    def new_reader(
        self, path_filter: PathFilter, authoring: Optional[Authoring] = None
    ) -> PullRequestReader:
        delegate = GitReader(
            self.repository,
            path_filter,
            authoring=authoring,
            first_parent=self.config.first_parent,
            url=self.url,
        )
        return PullRequestReader(
            delegate, self.repository, self.config.baseline_from_branch
        )

    def describe(self, path_filter: PathFilter) -> Dict[str, List[str]]:
        """Key facts about this origin, for change detection of the workflow."""
        description: Dict[str, List[str]] = {
            'type': [ORIGIN_TYPE],
            'url': [self.url],
        }
        if self.gating_config.branch:
            description['branch'] = [self.gating_config.branch]
        roots = path_filter.roots
        if roots and '' not in roots:
            description['root'] = roots
        if self.gating_config.review_state is not None:
            description['review_state'] = [self.gating_config.review_state.value]
            description['review_approvers'] = [
                association.value for association in self.gating_config.review_approvers
            ]
        if self.gating_config.required_status_context_names:
            description['required_status_context_names'] = list(
                self.gating_config.required_status_context_names
            )
        if self.gating_config.required_check_runs:
            description['required_check_runs'] = list(
                self.gating_config.required_check_runs
            )
        return description

    @staticmethod
    def label_name() -> str:
        return GIT_ORIGIN_REV_ID
