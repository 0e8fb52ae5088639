"""Error taxonomy for pull request resolution.

Callers treat ``EmptyChangeError`` as "skip this change" and continue with
other work. Every other ``MigrationError`` aborts the resolution.
"""


class MigrationError(Exception):
    """Base class for all resolution errors."""

    pass


class ValidationError(MigrationError):
    """Malformed reference, cross-project reference or impossible configuration."""

    pass


class RepoError(MigrationError):
    """Failure reported by the git repository or the hosting API."""

    pass


class CannotResolveRevisionError(RepoError):
    """The reference is well formed but no commit or pull request matches it."""

    pass


class EmptyChangeError(MigrationError):
    """The pull request is not eligible for migration right now."""

    pass
