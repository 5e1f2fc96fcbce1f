"""Shared test fixtures for the animovement test suite.

Fixture Naming Convention
=========================

**Track fixtures** describe the movement they contain:
    - straight_track: one individual moving along a straight line
    - two_individual_track: two individuals, projected, for grouping tests

**File fixtures** end in ``_file`` and write into ``tmp_path``:
    - movebank_file: Movebank-style TSV with one malformed row

**Model fixtures** hold HMM parameters or simulated data:
    - two_state_params: well separated "encamped" / "exploratory" states
    - two_state_data: (step, angle, states) simulated from two_state_params
"""

import os

import numpy as np
import pandas as pd
import pytest
from hypothesis import Phase, Verbosity, settings

# =============================================================================
# Hypothesis Configuration for Performance
# =============================================================================
# Register Hypothesis profiles for different testing scenarios:
# - "ci": Fast profile for CI pipelines (fewer examples, no deadline)
# - "dev": Standard development profile (moderate examples)
# - "thorough": Full property testing (many examples, for pre-release)

settings.register_profile(
    "ci",
    max_examples=10,
    deadline=None,  # Disable deadline in CI (variable performance)
    suppress_health_check=[],
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
    verbosity=Verbosity.quiet,
)

settings.register_profile(
    "dev",
    max_examples=25,
    deadline=5000,  # 5 second deadline
    verbosity=Verbosity.normal,
)

settings.register_profile(
    "thorough",
    max_examples=100,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Load profile based on environment variable (default to "dev")
# Set HYPOTHESIS_PROFILE=ci in CI environments for faster tests
_profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
settings.load_profile(_profile)

# =============================================================================
# Test Configuration Constants
# =============================================================================

STRAIGHT_SPEED = 250.0  # metres per hour
N_STRAIGHT = 10


# =============================================================================
# Track fixtures
# =============================================================================


@pytest.fixture
def straight_track() -> pd.DataFrame:
    """Ten hourly fixes along the x axis at constant speed."""
    times = pd.date_range("2020-01-01", periods=N_STRAIGHT, freq="h")
    return pd.DataFrame(
        {
            "individual_id": "A",
            "tag_id": "T1",
            "timestamp": times,
            "x": np.arange(N_STRAIGHT) * STRAIGHT_SPEED,
            "y": np.zeros(N_STRAIGHT),
        }
    )


@pytest.fixture
def two_individual_track() -> pd.DataFrame:
    """Two individuals with five fixes each, sorted by individual and time."""
    times = pd.date_range("2020-01-01", periods=5, freq="2h")
    a = pd.DataFrame(
        {
            "individual_id": "A",
            "tag_id": "T1",
            "timestamp": times,
            "x": [0.0, 10.0, 20.0, 30.0, 40.0],
            "y": [0.0, 0.0, 0.0, 0.0, 0.0],
        }
    )
    b = pd.DataFrame(
        {
            "individual_id": "B",
            "tag_id": "T2",
            "timestamp": times,
            "x": [1000.0, 1000.0, 1000.0, 1000.0, 1000.0],
            "y": [0.0, 5.0, 10.0, 5.0, 0.0],
        }
    )
    return pd.concat([a, b], ignore_index=True)


# =============================================================================
# File fixtures
# =============================================================================


@pytest.fixture
def movebank_file(tmp_path):
    """Movebank-style TSV: two individuals, unsorted, one row missing latitude."""
    raw = pd.DataFrame(
        {
            "event-id": [1, 2, 3, 4, 5, 6],
            "timestamp": [
                "2020-01-01 02:00:00",
                "2020-01-01 00:00:00",
                "2020-01-01 01:00:00",
                "2020-01-01 00:00:00",
                "2020-01-01 01:00:00",
                "2020-01-01 02:00:00",
            ],
            "location-long": [15.02, 15.00, 15.01, 14.50, 14.51, 14.52],
            "location-lat": [45.00, 45.00, None, 44.00, 44.01, 44.02],
            "individual-local-identifier": ["B", "B", "B", "A", "A", "A"],
            "tag-local-identifier": ["t2", "t2", "t2", "t1", "t1", "t1"],
        }
    )
    path = tmp_path / "tracks.tsv"
    raw.to_csv(path, sep="\t", index=False)
    return path


# =============================================================================
# Model fixtures
# =============================================================================


@pytest.fixture
def two_state_params():
    """Two well separated states with sticky transitions."""
    from animovement.behavior.hmm import HMMParameters

    return HMMParameters(
        step_mean=[50.0, 800.0],
        step_sd=[30.0, 300.0],
        angle_mean=[np.pi, 0.0],
        angle_concentration=[0.5, 5.0],
        beta=[[-2.5, -2.5]],
    )


@pytest.fixture
def two_state_data(two_state_params):
    """Simulated (step, angle, states) with 400 observations."""
    from animovement.behavior.hmm import simulate_hmm

    return simulate_hmm(two_state_params, 400, rng=42)
