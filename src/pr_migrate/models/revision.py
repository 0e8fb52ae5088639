"""Revision and change models produced by the origin."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

LabelEntries = Tuple[Tuple[str, Tuple[str, ...]], ...]


class LabelMultimap:
    """Ordered multi-valued label builder.

    Keys keep their first insertion position and each key may carry several
    values. Adding an empty value list does not create the key.
    """

    def __init__(self):
        self._entries: Dict[str, List[str]] = {}

    def put(self, key: str, value: str) -> 'LabelMultimap':
        self._entries.setdefault(key, []).append(value)
        return self

    def put_all(self, key: str, values: Iterable[str]) -> 'LabelMultimap':
        for value in values:
            self.put(key, value)
        return self

    def merge(self, other: Mapping[str, Sequence[str]]) -> 'LabelMultimap':
        for key, values in other.items():
            self.put_all(key, values)
        return self

    def build(self) -> LabelEntries:
        return tuple((key, tuple(values)) for key, values in self._entries.items())


@dataclass(frozen=True)
class Revision:
    """Immutable pointer to a commit plus its migration metadata."""

    sha1: str
    reference: Optional[str] = None
    labels: LabelEntries = ()
    url: Optional[str] = None

    def associated_labels(self) -> Dict[str, List[str]]:
        """Return a copy of the labels as an ordered dict of value lists."""
        return {key: list(values) for key, values in self.labels}

    def associated_label(self, key: str) -> List[str]:
        for label_key, values in self.labels:
            if label_key == key:
                return list(values)
        return []

    def has_label(self, key: str) -> bool:
        return any(label_key == key for label_key, _ in self.labels)

    def with_labels(self, extra: Mapping[str, Sequence[str]]) -> 'Revision':
        """Return a copy with ``extra`` values appended to the label map."""
        labels = LabelMultimap().merge(self.associated_labels()).merge(extra)
        return replace(self, labels=labels.build())

    def __str__(self) -> str:
        if self.reference:
            return f'{self.reference} ({self.sha1})'
        return self.sha1


@dataclass(frozen=True)
class Baseline:
    """A previously migrated revision found in the origin history."""

    baseline: str
    origin_revision: Revision


@dataclass(frozen=True)
class Change:
    """A single commit as seen by a migration."""

    revision: Revision
    author: str
    message: str
    date: datetime
    labels: Dict[str, List[str]] = field(default_factory=dict)
    changed_files: Optional[Tuple[str, ...]] = None
    parents: Tuple[str, ...] = ()


class EmptyReason(str, Enum):
    """Why a change listing came back empty."""

    NO_CHANGES = 'no_changes'
    TO_IS_ANCESTOR = 'to_is_ancestor'

@dataclass(frozen=True)
class ChangesResponse:
    """Result of listing the changes between two revisions."""

    changes: Tuple[Change, ...] = ()
    empty_reason: Optional[EmptyReason] = None

    @classmethod
    def for_changes(cls, changes: Iterable[Change]) -> 'ChangesResponse':
        changes = tuple(changes)
        if not changes:
            raise ValueError('Use ChangesResponse.no_changes() for an empty result')
        return cls(changes=changes)

    @classmethod
    def no_changes(cls, reason: EmptyReason) -> 'ChangesResponse':
        return cls(empty_reason=reason)

    @property
    def is_empty(self) -> bool:
        return not self.changes
