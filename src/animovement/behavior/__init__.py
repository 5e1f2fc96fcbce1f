"""
Movement behavior analysis.

This module provides path metrics and the three behavioral segmentation
methods: First Passage Time, Hidden Markov Models and Behavioral Change
Point Analysis.

Submodules
----------
trajectory : Step lengths, turning angles, speed, NSD, step tables
fpt : First passage time and log-variance curves
hmm : Gamma / von Mises hidden Markov models
bcpa : Behavioral change point analysis (window sweep)
"""

from animovement.behavior.bcpa import (
    ChangePointSummary,
    WindowSweepResult,
    cluster_breakpoints,
    window_sweep,
)
from animovement.behavior.fpt import FPTResult, first_passage_time, fpt_by_individual
from animovement.behavior.hmm import (
    HMMFitResult,
    HMMParameters,
    compare_models,
    fit_hmm,
    simulate_hmm,
    state_probabilities,
    viterbi,
)
from animovement.behavior.trajectory import (
    compute_absolute_angles,
    compute_step_lengths,
    compute_steps,
    compute_turn_angles,
    net_squared_displacement,
    track_summary,
    velocity_persistence,
)

__all__ = [  # noqa: RUF022
    # trajectory module
    "compute_absolute_angles",
    "compute_step_lengths",
    "compute_steps",
    "compute_turn_angles",
    "net_squared_displacement",
    "track_summary",
    "velocity_persistence",
    # fpt module
    "FPTResult",
    "first_passage_time",
    "fpt_by_individual",
    # hmm module
    "HMMFitResult",
    "HMMParameters",
    "compare_models",
    "fit_hmm",
    "simulate_hmm",
    "state_probabilities",
    "viterbi",
    # bcpa module
    "ChangePointSummary",
    "WindowSweepResult",
    "cluster_breakpoints",
    "window_sweep",
]
