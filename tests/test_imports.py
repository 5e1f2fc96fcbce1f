"""Tests for the public import surface and package-level logging setup."""

import logging

import pytest


def test_version():
    """The package exposes a version string."""
    import animovement

    assert isinstance(animovement.__version__, str)


@pytest.mark.parametrize(
    "name",
    [
        "ConfigurationError",
        "ConvergenceWarning",
        "IncompleteRowsWarning",
        "InsufficientDataError",
        "ProjectionConfig",
        "TrackColumns",
    ],
)
def test_top_level_exports(name):
    """Configuration and error types are importable from the top level."""
    import animovement

    assert name in animovement.__all__
    assert hasattr(animovement, name)


@pytest.mark.parametrize(
    "module", ["animovement.behavior", "animovement.io", "animovement.stats"]
)
def test_subpackage_all_is_importable(module):
    """Every name in a subpackage's __all__ exists."""
    import importlib

    package = importlib.import_module(module)
    for name in package.__all__:
        assert hasattr(package, name), f"{module}.{name} is listed but missing"


def test_null_handler_installed():
    """Importing the package never configures logging for the caller."""
    import animovement  # noqa: F401

    handlers = logging.getLogger("animovement").handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)


def test_module_loggers_are_children():
    """Module loggers propagate to the package logger."""
    from animovement.behavior import bcpa, fpt, hmm
    from animovement.io import tracks

    for module in (bcpa, fpt, hmm, tracks):
        assert module.logger.name.startswith("animovement.")
