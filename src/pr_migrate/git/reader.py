"""Generic history reader over a git repository."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from ..exceptions import RepoError
from ..models.revision import Baseline, Change, ChangesResponse, EmptyReason, Revision
from .repository import GitLogEntry, GitRepository

_LABEL_LINE = re.compile(r'^(?P<key>[\w-]+)(?::|=) ?(?P<value>.*)$')
_GLOB_CHARS = set('*?[')

VISIT_PAGE_SIZE = 200


def glob_to_regex(pattern: str) -> 're.Pattern[str]':
    """Compile a path glob where ``*`` stays within one directory level.

    ``**/`` matches zero or more leading directories and a trailing ``**``
    matches everything below. Character classes follow ``fnmatch``.

    Args:
        pattern: Glob relative to the repository root

    Returns:
        Compiled regular expression anchored at both ends
    """
    parts = []
    i, n = 0, len(pattern)
    while i < n:
        if pattern.startswith('**/', i):
            parts.append('(?:.*/)?')
            i += 3
        elif pattern.startswith('**', i):
            parts.append('.*')
            i += 2
        elif pattern[i] == '*':
            parts.append('[^/]*')
            i += 1
        elif pattern[i] == '?':
            parts.append('[^/]')
            i += 1
        elif pattern[i] == '[':
            end = pattern.find(']', i + 2)
            if end == -1:
                parts.append(re.escape('['))
                i += 1
            else:
                members = pattern[i + 1:end].replace('\\', '\\\\')
                if members.startswith('!'):
                    members = '^' + members[1:]
                elif members.startswith('^'):
                    members = '\\' + members
                parts.append(f'[{members}]')
                i = end + 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile(''.join(parts) + r'\Z')


class PathFilter:
    """Include/exclude glob patterns selecting the origin files of a migration."""

    def __init__(self, include: Sequence[str] = ('**',), exclude: Sequence[str] = ()):
        if not include:
            raise ValueError('PathFilter needs at least one include pattern')
        self.include = tuple(include)
        self.exclude = tuple(exclude)
        self._include_re = [glob_to_regex(pattern) for pattern in self.include]
        self._exclude_re = [glob_to_regex(pattern) for pattern in self.exclude]

    def matches(self, path: str) -> bool:
        if any(regex.match(path) for regex in self._exclude_re):
            return False
        return any(regex.match(path) for regex in self._include_re)

    @property
    def roots(self) -> List[str]:
        """Directory prefixes before the first wildcard of each include pattern."""
        roots = []
        for pattern in self.include:
            segments = []
            for segment in pattern.split('/'):
                if _GLOB_CHARS & set(segment):
                    break
                segments.append(segment)
            else:
                # A literal file path: its directory is the root
                segments = segments[:-1]
            root = '/'.join(segments)
            if root not in roots:
                roots.append(root)
        return roots

    @property
    def covers_all(self) -> bool:
        return not self.exclude and '**' in self.include

    def __repr__(self) -> str:
        return f'PathFilter(include={list(self.include)}, exclude={list(self.exclude)})'


class AuthoringMode(str, Enum):
    """How commit authors are carried into the destination."""

    PASS_THRU = 'PASS_THRU'
    OVERWRITE = 'OVERWRITE'
    ALLOWED = 'ALLOWED'


@dataclass(frozen=True)
class Authoring:
    """Author mapping for migrated changes."""

    default_author: str
    mode: AuthoringMode = AuthoringMode.PASS_THRU
    allowlist: Tuple[str, ...] = field(default_factory=tuple)

    def resolve(self, author: str, email: str) -> str:
        if self.mode == AuthoringMode.OVERWRITE:
            return self.default_author
        if self.mode == AuthoringMode.ALLOWED and email not in self.allowlist:
            return self.default_author
        return author


def parse_message_labels(message: str) -> Dict[str, List[str]]:
    """Parse ``Key: value`` / ``Key=value`` labels from the last paragraph."""
    paragraphs = [p for p in message.strip().split('\n\n') if p.strip()]
    if not paragraphs:
        return {}
    labels: Dict[str, List[str]] = {}
    for line in paragraphs[-1].splitlines():
        match = _LABEL_LINE.match(line.strip())
        if match:
            labels.setdefault(match.group('key'), []).append(match.group('value'))
    return labels


ChangeVisitor = Callable[[Change], bool]


class Reader(ABC):
    """Read-side operations a migration needs from an origin."""

    @abstractmethod
    def find_baseline(self, start: Revision, label: str) -> Optional[Baseline]:
        """Find the closest ancestor carrying ``label``."""

    @abstractmethod
    def find_baselines_without_label(self, start: Revision, limit: int) -> List[Revision]:
        """Find up to ``limit`` ancestors touching the origin files."""

    @abstractmethod
    def changes(self, from_ref: Optional[Revision], to_ref: Revision) -> ChangesResponse:
        """List the changes after ``from_ref`` up to ``to_ref``, oldest first."""

    @abstractmethod
    def change(self, ref: Revision) -> Change:
        """Describe a single commit."""

    @abstractmethod
    def show_diff(self, from_ref: Revision, to_ref: Revision) -> str:
        """Return the textual diff between two revisions."""

    @abstractmethod
    def checkout(self, revision: Revision, workdir: str) -> None:
        """Write the files of ``revision`` into ``workdir``."""


class GitReader(Reader):
    """Reader backed by a local git repository."""

    def __init__(
        self,
        repository: GitRepository,
        path_filter: PathFilter,
        authoring: Optional[Authoring] = None,
        first_parent: bool = True,
        rebase_ref: Optional[str] = None,
        url: Optional[str] = None,
    ):
        """Initialize git reader.

        Args:
            repository: Repository holding the fetched history
            path_filter: Origin files of the migration
            authoring: Author mapping, authors pass through if omitted
            first_parent: Follow only first parents when listing changes
            rebase_ref: Ref to rebase checkouts onto, if any
            url: Origin URL recorded on produced revisions
        """
        self.repository = repository
        self.path_filter = path_filter
        self.authoring = authoring
        self.first_parent = first_parent
        self.rebase_ref = rebase_ref
        self.url = url
        self.logger = logger.bind(component='GitReader')

    def _touches_origin_files(self, entry: GitLogEntry) -> bool:
        if self.path_filter.covers_all:
            return True
        return any(self.path_filter.matches(path) for path in entry.files or ())

    def _to_change(self, entry: GitLogEntry, revision: Optional[Revision] = None) -> Change:
        if revision is None:
            revision = Revision(sha1=entry.sha1, url=self.url)
        author = f'{entry.author_name} <{entry.author_email}>'
        if self.authoring is not None:
            author = self.authoring.resolve(author, entry.author_email)
        return Change(
            revision=revision,
            author=author,
            message=entry.body,
            date=entry.author_date,
            labels=parse_message_labels(entry.body),
            changed_files=entry.files,
            parents=entry.parents,
        )

    def visit_changes(self, start: Revision, visitor: ChangeVisitor) -> None:
        """Walk history from ``start`` (inclusive), newest first.

        The walk stops when the visitor returns False or history runs out.
        """
        skip = 0
        while True:
            entries = self.repository.log(
                start.sha1,
                limit=VISIT_PAGE_SIZE,
                first_parent=self.first_parent,
                include_files=True,
                skip=skip,
            )
            for entry in entries:
                if not visitor(self._to_change(entry)):
                    return
            if len(entries) < VISIT_PAGE_SIZE:
                return
            skip += len(entries)

    def find_baseline(self, start: Revision, label: str) -> Optional[Baseline]:
        found: List[Baseline] = []

        def visit(change: Change) -> bool:
            values = change.labels.get(label)
            if values:
                found.append(Baseline(values[0], change.revision))
                return False
            return True

        self.visit_changes(start, visit)
        return found[0] if found else None

    def baselines_without_label(
        self, start: Revision, limit: int, skip_first: bool
    ) -> List[Revision]:
        """Collect up to ``limit`` ancestors that touch the origin files."""
        if limit < 1:
            raise ValueError('limit must be at least 1')
        result: List[Revision] = []
        pending_skip = skip_first

        def visit(change: Change) -> bool:
            nonlocal pending_skip
            if pending_skip:
                pending_skip = False
                return True
            if self.path_filter.covers_all or any(
                self.path_filter.matches(path) for path in change.changed_files or ()
            ):
                result.append(change.revision)
            return len(result) < limit

        self.visit_changes(start, visit)
        return result

    def find_baselines_without_label(self, start: Revision, limit: int) -> List[Revision]:
        return self.baselines_without_label(start, limit, skip_first=True)

    def changes(self, from_ref: Optional[Revision], to_ref: Revision) -> ChangesResponse:
        exclude: Tuple[str, ...] = ()
        if from_ref is not None:
            if from_ref.sha1 == to_ref.sha1 or self.repository.is_ancestor(
                to_ref.sha1, from_ref.sha1
            ):
                return ChangesResponse.no_changes(EmptyReason.TO_IS_ANCESTOR)
            exclude = (from_ref.sha1,)

        entries = self.repository.log(
            to_ref.sha1,
            first_parent=self.first_parent,
            exclude=exclude,
            include_files=True,
        )
        selected = [entry for entry in reversed(entries) if self._touches_origin_files(entry)]
        self.logger.debug(
            f'{len(selected)} of {len(entries)} commits up to {to_ref.sha1} '
            f'touch {self.path_filter}'
        )
        if not selected:
            return ChangesResponse.no_changes(EmptyReason.NO_CHANGES)
        return ChangesResponse.for_changes(self._to_change(entry) for entry in selected)

    def change(self, ref: Revision) -> Change:
        entries = self.repository.log(ref.sha1, limit=1, include_files=True)
        if not entries:
            raise RepoError(f'No commit found for {ref}')
        return self._to_change(entries[0], revision=ref)

    def show_diff(self, from_ref: Revision, to_ref: Revision) -> str:
        return self.repository.show_diff(from_ref.sha1, to_ref.sha1)

    def checkout(self, revision: Revision, workdir: str, rebase: bool = True) -> None:
        treeish = revision.sha1
        if rebase and self.rebase_ref:
            base = self.repository.resolve_reference(self.rebase_ref)
            treeish = self.repository.merge_tree(base, revision.sha1)
            self.logger.info(f'Rebased {revision.sha1} onto {self.rebase_ref} ({base})')
        self.repository.checkout(treeish, workdir)
