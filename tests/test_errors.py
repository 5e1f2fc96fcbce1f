"""Tests for errors.py: error messages and exception hierarchy."""

import pytest


class TestInsufficientDataError:
    """Test InsufficientDataError."""

    def test_message_and_attributes(self):
        """The message names the analysis and both counts."""
        from animovement.errors import InsufficientDataError

        error = InsufficientDataError("window sweep", 20, 50)
        assert str(error) == "window sweep needs at least 50 samples, got 20."
        assert error.n_available == 20
        assert error.n_required == 50

    def test_hint_is_appended(self):
        """A hint adds a HOW line."""
        from animovement.errors import InsufficientDataError

        error = InsufficientDataError("HMM fit", 1, 2, hint="Provide a longer track.")
        assert "HOW: Provide a longer track." in str(error)

    def test_is_value_error(self):
        """Existing ValueError handlers catch it."""
        from animovement.errors import InsufficientDataError

        with pytest.raises(ValueError):
            raise InsufficientDataError("x", 0, 1)


class TestWarnings:
    """Test warning categories."""

    def test_warning_categories(self):
        """Both warnings are UserWarnings so default filters show them."""
        from animovement.errors import ConvergenceWarning, IncompleteRowsWarning

        assert issubclass(ConvergenceWarning, UserWarning)
        assert issubclass(IncompleteRowsWarning, UserWarning)

    def test_errors_are_distinct(self):
        """Configuration and data errors can be told apart."""
        from animovement.errors import ConfigurationError, InsufficientDataError

        assert not issubclass(ConfigurationError, InsufficientDataError)
        assert not issubclass(InsufficientDataError, ConfigurationError)
