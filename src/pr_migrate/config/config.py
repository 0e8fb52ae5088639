"""Configuration management for pr-migrate."""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..api.host import GitHubHost
from ..models.policy import ReviewState, StateFilter
from ..models.pull_request import AuthorAssociation

DEFAULT_REVIEW_APPROVERS: Tuple[AuthorAssociation, ...] = (
    AuthorAssociation.COLLABORATOR,
    AuthorAssociation.MEMBER,
    AuthorAssociation.OWNER,
)


def _unique(values: Iterable[Any]) -> Tuple[Any, ...]:
    """Drop duplicates, keeping the first occurrence order."""
    return tuple(dict.fromkeys(values))


def _split_env_list(value: Optional[str]) -> Optional[list]:
    if value is None:
        return None
    return [item.strip() for item in value.split(',') if item.strip()]


class GitHubInstanceConfig(BaseModel):
    """Configuration for a GitHub instance."""

    model_config = ConfigDict(extra='forbid')

    url: str = Field(default='https://github.com', description='GitHub web URL')
    api_url: str = Field(
        default='https://api.github.com', description='GitHub REST API URL'
    )
    token: Optional[str] = Field(default=None, description='Personal access token')
    timeout: int = Field(default=30, description='Request timeout in seconds')
    rate_limit_per_second: float = Field(
        default=10.0, description='API requests per second limit'
    )

    @field_validator('url', 'api_url')
    @classmethod
    def validate_url(cls, v):
        """Validate GitHub URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError('Timeout must be positive')
        return v

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Validate rate limit is positive."""
        if v <= 0:
            raise ValueError('Rate limit must be positive')
        return v

    @property
    def host(self) -> GitHubHost:
        return GitHubHost.from_url(self.url)


class GatingConfig(BaseModel):
    """Eligibility rules a pull request must satisfy before migration."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    required_labels: Tuple[str, ...] = Field(
        default=(), description='Labels the pull request must carry'
    )
    retryable_labels: Tuple[str, ...] = Field(
        default=(),
        description='Required labels that may still be added by automation',
    )
    required_status_context_names: Tuple[str, ...] = Field(
        default=(), description='Commit status contexts that must be successful'
    )
    required_check_runs: Tuple[str, ...] = Field(
        default=(), description='Check runs that must conclude successfully'
    )
    review_state: Optional[ReviewState] = Field(
        default=None, description='Review requirement'
    )
    review_approvers: Tuple[AuthorAssociation, ...] = Field(
        default=DEFAULT_REVIEW_APPROVERS,
        description='Author associations whose reviews count as approvals',
    )
    branch: Optional[str] = Field(
        default=None, description='Only migrate pull requests targeting this branch'
    )
    state: StateFilter = Field(
        default=StateFilter.OPEN, description='Required open/closed state'
    )
    force_import: bool = Field(
        default=False, description='Skip every eligibility check'
    )

    @field_validator(
        'required_labels',
        'retryable_labels',
        'required_status_context_names',
        'required_check_runs',
        'review_approvers',
    )
    @classmethod
    def validate_unique(cls, v):
        return _unique(v)

    @model_validator(mode='after')
    def validate_consistency(self) -> 'GatingConfig':
        """Reject combinations that can never be satisfied or are ignored."""
        not_required = [
            label for label in self.retryable_labels if label not in self.required_labels
        ]
        if not_required:
            raise ValueError(
                f'retryable_labels must be a subset of required_labels. '
                f'Not required: {", ".join(not_required)}'
            )
        if not self.review_approvers:
            raise ValueError('review_approvers cannot be empty')
        if self.review_state is None and set(self.review_approvers) != set(
            DEFAULT_REVIEW_APPROVERS
        ):
            raise ValueError('review_approvers requires review_state to be set')
        return self

    @property
    def sha_lookup_enabled(self) -> bool:
        """A commit SHA can name a pull request only when CI gating is set."""
        return bool(self.required_status_context_names or self.required_check_runs)

    def with_overrides(
        self,
        force_import: Optional[bool] = None,
        required_labels: Optional[Iterable[str]] = None,
        retryable_labels: Optional[Iterable[str]] = None,
    ) -> 'GatingConfig':
        """Return a validated copy with per-run overrides applied."""
        data = self.model_dump()
        if force_import is not None:
            data['force_import'] = force_import
        if required_labels is not None:
            data['required_labels'] = tuple(required_labels)
            if retryable_labels is None:
                data['retryable_labels'] = tuple(
                    label
                    for label in self.retryable_labels
                    if label in data['required_labels']
                )
        if retryable_labels is not None:
            data['retryable_labels'] = tuple(retryable_labels)
        return GatingConfig(**data)


class OriginConfig(BaseModel):
    """Pull request origin configuration."""

    model_config = ConfigDict(extra='forbid')

    url: str = Field(..., description='GitHub repository URL')
    use_merge: bool = Field(
        default=False, description='Migrate the merge commit instead of the head'
    )
    baseline_from_branch: bool = Field(
        default=False, description='Find the baseline from the base branch history'
    )
    first_parent: bool = Field(
        default=True, description='Follow only first parents when listing changes'
    )
    partial_fetch: bool = Field(default=False, description='Fetch without blobs')
    describe_version: bool = Field(
        default=False, description='Annotate revisions with git describe output'
    )
    gating: GatingConfig = Field(
        default_factory=GatingConfig, description='Eligibility rules'
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(('http://', 'https://', 'git@', 'ssh://')):
            raise ValueError('Origin URL must be an http(s) or ssh repository URL')
        return v.rstrip('/')


class GitConfig(BaseModel):
    """Git operations configuration."""

    model_config = ConfigDict(extra='forbid')

    repo_storage_dir: str = Field(
        default_factory=lambda: str(Path.home() / '.cache' / 'pr-migrate' / 'repos'),
        description='Directory holding the cached bare repositories',
    )
    git_binary: str = Field(default='git', description='Git executable')
    timeout: int = Field(
        default=3600, description='Git operation timeout in seconds (default: 1 hour)'
    )

    @field_validator('repo_storage_dir')
    @classmethod
    def validate_repo_storage_dir(cls, v):
        if not Path(v).expanduser().is_absolute():
            raise ValueError('repo_storage_dir must be an absolute path')
        return str(Path(v).expanduser())

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError('Git timeout must be positive')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra='forbid')

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: Optional[str] = Field(default=None, description='Log format')

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for pr-migrate."""

    model_config = ConfigDict(extra='forbid')

    github: GitHubInstanceConfig = Field(
        default_factory=GitHubInstanceConfig, description='GitHub instance'
    )
    origin: OriginConfig = Field(..., description='Pull request origin')
    git: GitConfig = Field(default_factory=GitConfig, description='Git settings')
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    @model_validator(mode='after')
    def validate_origin_host(self) -> 'Config':
        """The origin repository must live on the configured GitHub host."""
        host = self.github.host
        if not host.is_github_url(self.origin.url):
            raise ValueError(
                f"Origin url '{self.origin.url}' is not a repository on {host.host}"
            )
        return self

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError(f'Configuration file is not a mapping: {config_path}')

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        load_dotenv()

        config_data = {
            'github': {
                'url': os.getenv('GITHUB_URL'),
                'api_url': os.getenv('GITHUB_API_URL'),
                'token': os.getenv('GITHUB_TOKEN'),
            },
            'origin': {
                'url': os.getenv('PR_ORIGIN_URL'),
                'use_merge': os.getenv('PR_ORIGIN_USE_MERGE', 'false').lower()
                == 'true',
                'baseline_from_branch': os.getenv(
                    'PR_ORIGIN_BASELINE_FROM_BRANCH', 'false'
                ).lower()
                == 'true',
                'gating': {
                    'required_labels': _split_env_list(
                        os.getenv('PR_REQUIRED_LABELS')
                    ),
                    'retryable_labels': _split_env_list(
                        os.getenv('PR_RETRYABLE_LABELS')
                    ),
                    'required_status_context_names': _split_env_list(
                        os.getenv('PR_REQUIRED_STATUS_CONTEXTS')
                    ),
                    'required_check_runs': _split_env_list(
                        os.getenv('PR_REQUIRED_CHECK_RUNS')
                    ),
                    'review_state': os.getenv('PR_REVIEW_STATE'),
                    'branch': os.getenv('PR_BRANCH'),
                    'state': os.getenv('PR_STATE'),
                    'force_import': os.getenv('PR_FORCE_IMPORT', 'false').lower()
                    == 'true',
                },
            },
            'git': {
                'repo_storage_dir': os.getenv('GIT_REPO_STORAGE_DIR'),
                'timeout': int(os.getenv('GIT_TIMEOUT', 3600)),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(
                self.model_dump(mode='json', exclude_none=True),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'github': {
                'url': 'https://github.com',
                'api_url': 'https://api.github.com',
                'token': 'your-github-personal-access-token',
                'timeout': 30,
            },
            'origin': {
                'url': 'https://github.com/your-org/your-repo',
                'use_merge': False,
                'baseline_from_branch': False,
                'describe_version': False,
                'gating': {
                    'required_labels': ['ready-to-migrate'],
                    'retryable_labels': [],
                    'required_status_context_names': [],
                    'required_check_runs': [],
                    'review_state': 'HEAD_COMMIT_APPROVED',
                    'review_approvers': ['COLLABORATOR', 'MEMBER', 'OWNER'],
                    'branch': 'main',
                    'state': 'OPEN',
                },
            },
            'git': {
                'repo_storage_dir': '/tmp/pr-migrate/repos',
                'timeout': 3600,
            },
            'logging': {
                'level': 'INFO',
                'file': 'pr-migrate.log',
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )
