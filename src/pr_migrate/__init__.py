"""pr-migrate

Resolves GitHub pull request references into immutable, fully labeled
revisions that are safe to migrate, or rejects them with a precise reason.
"""

__version__ = '0.1.0'

from .exceptions import (
    CannotResolveRevisionError,
    EmptyChangeError,
    MigrationError,
    RepoError,
    ValidationError,
)
from .origin import GitHubPrOrigin

__all__ = [
    'CannotResolveRevisionError',
    'EmptyChangeError',
    'GitHubPrOrigin',
    'MigrationError',
    'RepoError',
    'ValidationError',
]
