"""Git repository access."""

from .reader import Authoring, AuthoringMode, GitReader, PathFilter, Reader
from .repository import GitRepository, RepositoryCache

__all__ = [
    'Authoring',
    'AuthoringMode',
    'GitReader',
    'PathFilter',
    'Reader',
    'GitRepository',
    'RepositoryCache',
]
