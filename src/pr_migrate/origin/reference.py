"""Turn user supplied text into a pull request reference."""

from typing import Optional

from ..api.host import GitHubHost, maybe_parse_pr_from_head_ref
from ..exceptions import CannotResolveRevisionError, ValidationError
from ..git.repository import COMPLETE_SHA1_PATTERN
from ..models.reference import (
    BaselineCommit,
    HeadRefPath,
    PullRequestNumber,
    PullRequestReference,
    PullRequestUrl,
    Sha1,
)

ACCEPTED_FORMATS = (
    "'https://github.com/project/pull/1234', 'refs/pull/1234/head' or '1234'"
)


class ReferenceResolver:
    """Parses a reference string in a fixed order of accepted formats."""

    def __init__(self, host: GitHubHost, project: str, sha_lookup_enabled: bool):
        """Initialize resolver.

        Args:
            host: Host naming rules
            project: ``owner/name`` of the configured origin repository
            sha_lookup_enabled: Whether a commit SHA may name an open pull
                request (only when status or check-run gating is configured)
        """
        self.host = host
        self.project = project
        self.sha_lookup_enabled = sha_lookup_enabled

    def parse(self, reference: Optional[str]) -> PullRequestReference:
        """Parse ``reference``.

        Raises:
            ValidationError: For a missing reference or a pull request URL of
                another project
            CannotResolveRevisionError: If no accepted format matches
        """
        if reference is None or not reference.strip():
            raise ValidationError(
                "A pull request reference is required. For example: 'pr-migrate resolve 12345'"
            )
        reference = reference.strip()

        if self.sha_lookup_enabled and COMPLETE_SHA1_PATTERN.match(reference):
            return Sha1(sha=reference.lower())

        pr_url = self.host.maybe_parse_pr_url(reference)
        if pr_url is not None:
            if pr_url.project != self.project:
                raise ValidationError(
                    f"Project name should be '{self.project}' but it is "
                    f"'{pr_url.project}' instead"
                )
            return PullRequestUrl(project=pr_url.project, number=pr_url.pr_number)

        if reference.isdigit() and reference.isascii():
            return PullRequestNumber(number=int(reference))

        head_ref_number = maybe_parse_pr_from_head_ref(reference)
        if head_ref_number is not None:
            return HeadRefPath(number=head_ref_number)

        first_token = reference.split()[0]
        if COMPLETE_SHA1_PATTERN.match(first_token):
            return BaselineCommit(sha=first_token.lower())

        raise CannotResolveRevisionError(
            f"'{reference}' is not a valid reference for a GitHub Pull Request. "
            f'Valid formats:{ACCEPTED_FORMATS}'
        )
