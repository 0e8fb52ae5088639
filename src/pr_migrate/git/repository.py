"""Bare git repository handle used by the pull request origin."""

import os
import re
import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from ..exceptions import CannotResolveRevisionError, RepoError
from ..models.revision import Revision

GIT_ORIGIN_REV_ID = 'GitOrigin-RevId'
GIT_DESCRIBE_CHANGE_VERSION = 'GIT_DESCRIBE_CHANGE_VERSION'
GIT_DESCRIBE_FIRST_PARENT = 'GIT_DESCRIBE_FIRST_PARENT'

COMPLETE_SHA1_PATTERN = re.compile(r'^[0-9a-fA-F]{40}$')

_MISSING_REF_MARKERS = (
    "couldn't find remote ref",
    'no such remote ref',
    'not our ref',
)
_CREDENTIALS_PATTERN = re.compile(r'(https?://)[^/@\s]+@')

_FIELD_SEP = '\x1f'
_RECORD_SEP = '\x1e'
_LOG_FORMAT = _RECORD_SEP + _FIELD_SEP.join(
    ['%H', '%P', '%an', '%ae', '%aI', '%B', '']
)


@dataclass(frozen=True)
class GitLogEntry:
    """One commit as reported by ``git log``."""

    sha1: str
    parents: Tuple[str, ...]
    author_name: str
    author_email: str
    author_date: datetime
    body: str
    files: Optional[Tuple[str, ...]] = None


def mask_credentials(text: str) -> str:
    """Hide credentials embedded in URLs before logging."""
    return _CREDENTIALS_PATTERN.sub(r'\1***@', text)


class GitRepository:
    """A bare repository driven through the ``git`` command line.

    Fetches write fixed local refs, so callers that fetch and then read those
    refs must hold ``lock`` for the whole sequence. The lock is reentrant and
    every mutating method takes it as well.
    """

    def __init__(self, git_dir: str, git_binary: str = 'git', timeout: int = 3600):
        """Initialize repository handle.

        Args:
            git_dir: Path of the bare repository
            git_binary: Git executable
            timeout: Timeout for a single git command in seconds
        """
        self.git_dir = Path(git_dir)
        self.git_binary = git_binary
        self.timeout = timeout
        self.lock = threading.RLock()
        self.logger = logger.bind(component='GitRepository')

    def init(self) -> 'GitRepository':
        """Create the bare repository if it does not exist yet."""
        with self.lock:
            if not (self.git_dir / 'HEAD').exists():
                self.git_dir.mkdir(parents=True, exist_ok=True)
                self._execute([self.git_binary, 'init', '--bare', str(self.git_dir)])
                self.logger.info(f'Initialized bare repository at {self.git_dir}')
        return self

    def _execute(
        self, cmd: List[str], check: bool = True, cwd: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        masked = mask_credentials(' '.join(cmd))
        self.logger.debug(f'Running git command: {masked}')

        env = dict(os.environ)
        env['GIT_TERMINAL_PROMPT'] = '0'
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired as e:
            raise RepoError(
                f'Git command timed out after {self.timeout} seconds: {masked}'
            ) from e
        except OSError as e:
            raise RepoError(f'Cannot execute git: {e}') from e

        self.logger.debug(f'Git command return code: {result.returncode}')
        if check and result.returncode != 0:
            raise RepoError(
                f'Git command failed with return code {result.returncode}: '
                f'{masked}\n{mask_credentials(result.stderr.strip())}'
            )
        return result

    def _git(self, args: Sequence[str], check: bool = True) -> subprocess.CompletedProcess:
        return self._execute(
            [self.git_binary, '--git-dir', str(self.git_dir), *args], check=check
        )

    def fetch(
        self,
        url: str,
        prune: bool,
        force: bool,
        refspecs: Iterable[str],
        partial_fetch: bool = False,
    ) -> None:
        """Fetch ``refspecs`` from ``url`` into this repository.

        Raises:
            CannotResolveRevisionError: If a requested remote ref does not exist
            RepoError: For any other fetch failure
        """
        args = ['fetch', '--no-tags', '--verbose']
        if prune:
            args.append('--prune')
        if force:
            args.append('--force')
        if partial_fetch:
            args.append('--filter=blob:none')
        args.append(url)
        args.extend(refspecs)

        with self.lock:
            result = self._git(args, check=False)

        if result.returncode == 0:
            return
        stderr = mask_credentials(result.stderr.strip())
        if any(marker in stderr.lower() for marker in _MISSING_REF_MARKERS):
            raise CannotResolveRevisionError(f'Cannot find reference: {stderr}')
        raise RepoError(f'Error fetching from {mask_credentials(url)}: {stderr}')

    def resolve_reference(self, reference: str) -> str:
        """Resolve a ref name or SHA to a full commit SHA.

        Raises:
            CannotResolveRevisionError: If the reference does not name a commit
        """
        result = self._git(
            ['rev-parse', '--verify', '--quiet', f'{reference}^{{commit}}'], check=False
        )
        if result.returncode != 0:
            raise CannotResolveRevisionError(f"Cannot find reference '{reference}'")
        return result.stdout.strip()

    def parse_ref(self, text: str) -> str:
        """Resolve a user supplied revision (usually a SHA) in this repository."""
        return self.resolve_reference(text.strip())

    def merge_base(self, a: str, b: str) -> str:
        result = self._git(['merge-base', a, b], check=False)
        if result.returncode != 0:
            raise CannotResolveRevisionError(
                f"Cannot find a merge base between '{a}' and '{b}'"
            )
        return result.stdout.strip()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._git(['merge-base', '--is-ancestor', ancestor, descendant], check=False)
        if result.returncode not in (0, 1):
            raise RepoError(
                f"Cannot check ancestry of '{ancestor}' and '{descendant}': "
                f'{result.stderr.strip()}'
            )
        return result.returncode == 0

    def log(
        self,
        reference: str,
        limit: Optional[int] = None,
        first_parent: bool = False,
        exclude: Sequence[str] = (),
        include_files: bool = False,
        skip: int = 0,
    ) -> List[GitLogEntry]:
        """List commits reachable from ``reference``, newest first.

        Args:
            reference: Starting ref or SHA
            limit: Maximum number of commits
            first_parent: Follow only the first parent of merges
            exclude: Refs whose ancestors are left out
            include_files: Also list changed paths (merges against their parents)
            skip: Number of leading commits to leave out
        """
        args = ['log', f'--format={_LOG_FORMAT}']
        if limit is not None:
            args.append(f'--max-count={limit}')
        if skip:
            args.append(f'--skip={skip}')
        if first_parent:
            args.append('--first-parent')
        if include_files:
            args.append('--name-only')
            args.append('--diff-merges=first-parent' if first_parent else '-m')
        args.append(reference)
        args.extend(f'^{ref}' for ref in exclude)
        args.append('--')

        return self._parse_log(self._git(args).stdout, include_files)

    @staticmethod
    def _parse_log(output: str, include_files: bool) -> List[GitLogEntry]:
        entries: Dict[str, GitLogEntry] = {}
        for record in output.split(_RECORD_SEP):
            if not record.strip():
                continue
            parts = record.split(_FIELD_SEP, 6)
            if len(parts) < 7:
                raise RepoError(f'Unexpected git log output: {record!r}')
            sha1, parents, name, email, date, body, rest = parts
            files = None
            if include_files:
                files = tuple(line for line in rest.splitlines() if line.strip())
            previous = entries.get(sha1)
            if previous is not None:
                # '-m' repeats a merge once per parent
                merged = tuple(dict.fromkeys((previous.files or ()) + (files or ())))
                entries[sha1] = GitLogEntry(
                    sha1=previous.sha1,
                    parents=previous.parents,
                    author_name=previous.author_name,
                    author_email=previous.author_email,
                    author_date=previous.author_date,
                    body=previous.body,
                    files=merged,
                )
                continue
            entries[sha1] = GitLogEntry(
                sha1=sha1,
                parents=tuple(parents.split()),
                author_name=name,
                author_email=email,
                author_date=datetime.fromisoformat(date.strip()),
                body=body.strip('\n'),
                files=files,
            )
        return list(entries.values())

    def show_diff(self, from_sha: str, to_sha: str) -> str:
        return self._git(['diff', from_sha, to_sha]).stdout

    def describe(self, sha: str, first_parent: bool = False) -> Optional[str]:
        """Return ``git describe --tags`` for ``sha``, or None without tags."""
        args = ['describe', '--tags']
        if first_parent:
            args.append('--first-parent')
        args.append(sha)
        result = self._git(args, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def add_describe_version(self, revision: Revision) -> Revision:
        """Annotate a revision with descriptive names derived from tags."""
        extra = {}
        version = self.describe(revision.sha1)
        if version:
            extra[GIT_DESCRIBE_CHANGE_VERSION] = [version]
        first_parent = self.describe(revision.sha1, first_parent=True)
        if first_parent:
            extra[GIT_DESCRIBE_FIRST_PARENT] = [first_parent]
        if not extra:
            self.logger.debug(f'No tags found to describe {revision.sha1}')
            return revision
        return revision.with_labels(extra)

    def merge_tree(self, base: str, other: str) -> str:
        """Merge ``other`` into ``base`` without a work tree, returning the tree SHA.

        Raises:
            RepoError: If the merge has conflicts
        """
        result = self._git(['merge-tree', '--write-tree', base, other], check=False)
        if result.returncode != 0:
            raise RepoError(
                f'Cannot merge {other} into {base}: '
                f'{(result.stdout or result.stderr).strip()}'
            )
        return result.stdout.splitlines()[0].strip()

    def checkout(self, treeish: str, workdir: str) -> None:
        """Write the contents of ``treeish`` into ``workdir``."""
        Path(workdir).mkdir(parents=True, exist_ok=True)
        with self.lock:
            self._git(['--work-tree', workdir, 'checkout', '-f', treeish, '--', '.'])


class RepositoryCache:
    """Hands out one shared repository handle per remote URL."""

    def __init__(self, storage_dir: str, git_binary: str = 'git', timeout: int = 3600):
        self.storage_dir = Path(storage_dir)
        self.git_binary = git_binary
        self.timeout = timeout
        self._repositories: Dict[str, GitRepository] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _directory_name(url: str) -> str:
        without_credentials = _CREDENTIALS_PATTERN.sub(r'\1', url)
        stripped = re.sub(r'^[a-z]+://', '', without_credentials.lower())
        return re.sub(r'[^a-z0-9._-]', '_', stripped.rstrip('/'))

    def cached_bare_repo_for_url(self, url: str) -> GitRepository:
        key = self._directory_name(url)
        with self._lock:
            repository = self._repositories.get(key)
            if repository is None:
                repository = GitRepository(
                    str(self.storage_dir / key),
                    git_binary=self.git_binary,
                    timeout=self.timeout,
                ).init()
                self._repositories[key] = repository
            return repository
