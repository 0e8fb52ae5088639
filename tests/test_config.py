"""Tests for configuration management."""

import pytest
import os

import yaml

from pr_migrate.config.config import (
    Config,
    GatingConfig,
    GitConfig,
    GitHubInstanceConfig,
    LoggingConfig,
)
from pr_migrate.models.policy import ReviewState, StateFilter
from pr_migrate.models.pull_request import AuthorAssociation

from conftest import ORIGIN_URL


class TestGitHubInstanceConfig:
    """Test GitHub instance configuration."""

    def test_defaults(self):
        """Test public GitHub defaults."""
        config = GitHubInstanceConfig()

        assert config.url == 'https://github.com'
        assert config.api_url == 'https://api.github.com'
        assert config.token is None
        assert config.host.host == 'github.com'

    def test_url_validation(self):
        """Test URL validation."""
        config = GitHubInstanceConfig(url='https://github.example.com/')
        assert config.url == 'https://github.example.com'

        with pytest.raises(ValueError):
            GitHubInstanceConfig(url='github.com')

    def test_positive_limits(self):
        """Test timeouts and rate limits must be positive."""
        with pytest.raises(ValueError):
            GitHubInstanceConfig(timeout=0)
        with pytest.raises(ValueError):
            GitHubInstanceConfig(rate_limit_per_second=-1)


class TestGatingConfig:
    """Test eligibility rule validation."""

    def test_defaults(self):
        """Test the default rules only require an open pull request."""
        config = GatingConfig()

        assert config.state == StateFilter.OPEN
        assert config.review_state is None
        assert config.force_import is False
        assert config.sha_lookup_enabled is False

    def test_duplicates_removed(self):
        """Test duplicate names are dropped in order."""
        config = GatingConfig(required_labels=['b', 'a', 'b'])

        assert config.required_labels == ('b', 'a')

    def test_retryable_must_be_required(self):
        """Test retryable labels are a subset of required labels."""
        with pytest.raises(ValueError) as exc_info:
            GatingConfig(required_labels=['a'], retryable_labels=['a', 'b'])

        assert 'Not required: b' in str(exc_info.value)

    def test_approvers_need_review_state(self):
        """Test custom approvers without a review policy are rejected."""
        with pytest.raises(ValueError):
            GatingConfig(review_approvers=['OWNER'])

        config = GatingConfig(review_state='ANY', review_approvers=['OWNER'])
        assert config.review_approvers == (AuthorAssociation.OWNER,)

    def test_empty_approvers(self):
        """Test approvers cannot be empty."""
        with pytest.raises(ValueError):
            GatingConfig(review_state='ANY', review_approvers=[])

    def test_sha_lookup_enabled(self):
        """Test CI gating enables commit lookups."""
        assert GatingConfig(required_check_runs=['lint']).sha_lookup_enabled
        assert GatingConfig(required_status_context_names=['ci']).sha_lookup_enabled

    def test_frozen(self):
        """Test the rules are immutable."""
        config = GatingConfig()

        with pytest.raises(ValueError):
            config.force_import = True

    def test_with_overrides(self):
        """Test per-run overrides."""
        config = GatingConfig(
            required_labels=['a', 'b'], retryable_labels=['b'], branch='main'
        )

        overridden = config.with_overrides(force_import=True, required_labels=['b', 'c'])

        assert overridden.force_import is True
        assert overridden.required_labels == ('b', 'c')
        assert overridden.retryable_labels == ('b',)
        assert overridden.branch == 'main'
        assert config.force_import is False

    def test_with_overrides_validates(self):
        """Test overrides go through validation."""
        with pytest.raises(ValueError):
            GatingConfig().with_overrides(retryable_labels=['x'])


class TestGitConfig:
    """Test git configuration."""

    def test_relative_storage_rejected(self):
        """Test the storage directory must be absolute."""
        with pytest.raises(ValueError):
            GitConfig(repo_storage_dir='relative/path')

    def test_home_expanded(self):
        """Test ~ is expanded."""
        config = GitConfig(repo_storage_dir='~/repos')

        assert os.path.isabs(config.repo_storage_dir)


class TestLoggingConfig:
    """Test logging configuration."""

    def test_level_normalized(self):
        """Test the level is upper-cased."""
        assert LoggingConfig(level='debug').level == 'DEBUG'

    def test_invalid_level(self):
        """Test unknown levels are rejected."""
        with pytest.raises(ValueError):
            LoggingConfig(level='LOUD')


class TestConfig:
    """Test main configuration class."""

    def test_config_from_dict(self):
        """Test configuration creation from dictionary."""
        config = Config(
            origin={
                'url': ORIGIN_URL,
                'use_merge': True,
                'gating': {'review_state': 'HEAD_COMMIT_APPROVED', 'state': 'ALL'},
            }
        )

        assert config.origin.use_merge is True
        assert config.origin.gating.review_state == ReviewState.HEAD_COMMIT_APPROVED
        assert config.origin.gating.state == StateFilter.ALL

    def test_origin_on_other_host(self):
        """Test the origin must live on the configured host."""
        with pytest.raises(ValueError):
            Config(origin={'url': 'https://gitlab.com/google/example'})

    def test_unknown_keys_rejected(self):
        """Test typos in the configuration are reported."""
        with pytest.raises(ValueError):
            Config(origin={'url': ORIGIN_URL, 'use_merged': True})

    def test_config_from_file(self, tmp_path):
        """Test configuration loading from YAML file."""
        config_file = tmp_path / 'config.yaml'
        config_file.write_text(
            f"""
github:
  token: secret
origin:
  url: {ORIGIN_URL}
  gating:
    required_labels: [ready]
    branch: main
""",
            encoding='utf-8',
        )

        config = Config.from_file(str(config_file))

        assert config.github.token == 'secret'
        assert config.origin.gating.required_labels == ('ready',)
        assert config.origin.gating.branch == 'main'

    def test_config_from_missing_file(self, tmp_path):
        """Test a missing file is reported."""
        with pytest.raises(FileNotFoundError):
            Config.from_file(str(tmp_path / 'missing.yaml'))

    def test_config_from_env(self, monkeypatch, tmp_path):
        """Test configuration loading from environment variables."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv('PR_ORIGIN_URL', ORIGIN_URL)
        monkeypatch.setenv('PR_ORIGIN_USE_MERGE', 'true')
        monkeypatch.setenv('PR_REQUIRED_LABELS', 'ready, lgtm')
        monkeypatch.setenv('PR_RETRYABLE_LABELS', 'lgtm')
        monkeypatch.setenv('PR_REVIEW_STATE', 'ANY')
        monkeypatch.setenv('GIT_REPO_STORAGE_DIR', str(tmp_path))

        config = Config.from_env()

        assert config.origin.url == ORIGIN_URL
        assert config.origin.use_merge is True
        assert config.origin.gating.required_labels == ('ready', 'lgtm')
        assert config.origin.gating.retryable_labels == ('lgtm',)
        assert config.origin.gating.review_state == ReviewState.ANY
        assert config.git.repo_storage_dir == str(tmp_path)

    def test_round_trip_file(self, tmp_path):
        """Test a saved configuration loads back."""
        config = Config(
            origin={'url': ORIGIN_URL, 'gating': {'required_check_runs': ['lint']}},
            git={'repo_storage_dir': str(tmp_path)},
        )
        path = tmp_path / 'saved.yaml'

        config.to_file(str(path))

        assert Config.from_file(str(path)) == config

    def test_create_template(self, tmp_path):
        """Test the template is a valid configuration."""
        path = tmp_path / 'template.yaml'

        Config.create_template(str(path))

        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f)
        assert data['origin']['url'] == 'https://github.com/your-org/your-repo'
        assert Config(**data).origin.gating.branch == 'main'
