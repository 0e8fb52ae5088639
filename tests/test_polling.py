"""Tests for the bounded poll primitive."""

from unittest.mock import Mock

import pytest

from pr_migrate.utils.polling import poll


class TestPoll:
    """Test poll."""

    def setup_method(self):
        """Set up test fixtures."""
        self.sleeper = Mock()

    def test_done_on_first_attempt(self):
        """Test no sleep happens when the first result is accepted."""
        fetch = Mock(return_value='ready')

        result = poll(fetch, lambda r: r == 'ready', sleeper=self.sleeper)

        assert result == 'ready'
        assert fetch.call_count == 1
        self.sleeper.assert_not_called()

    def test_retries_until_done(self):
        """Test polling stops at the first accepted result."""
        fetch = Mock(side_effect=['a', 'b', 'c'])

        result = poll(fetch, lambda r: r == 'b', attempts=3, delay=2.0, sleeper=self.sleeper)

        assert result == 'b'
        assert fetch.call_count == 2
        self.sleeper.assert_called_once_with(2.0)

    def test_exhausted_returns_last_result(self):
        """Test the last observation is returned and no sleep follows it."""
        fetch = Mock(side_effect=[1, 2, 3])

        result = poll(fetch, lambda r: False, attempts=3, delay=0.5, sleeper=self.sleeper)

        assert result == 3
        assert fetch.call_count == 3
        assert self.sleeper.call_count == 2

    def test_invalid_attempts(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValueError):
            poll(Mock(), lambda r: True, attempts=0, sleeper=self.sleeper)
