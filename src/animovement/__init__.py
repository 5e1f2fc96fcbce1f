"""Behavioral segmentation of GPS animal tracks.

**animovement** loads Movebank-style tracking data, reprojects it to a planar
metric coordinate system, derives step lengths and turning angles, and runs
three segmentation analyses: First Passage Time (FPT), gamma / von Mises
Hidden Markov Models (HMM) and Behavioral Change Point Analysis (BCPA).

Top-Level Exports
-----------------
ProjectionConfig, TrackColumns : Configuration for loading tracks
ConfigurationError, InsufficientDataError : Error types
ConvergenceWarning, IncompleteRowsWarning : Warning types

Submodule Organization
----------------------
io : Reading, reprojecting and writing track tables

    >>> from animovement.io import read_track, project_track

behavior : Path metrics and segmentation

    >>> from animovement.behavior.trajectory import compute_steps
    >>> from animovement.behavior.fpt import first_passage_time
    >>> from animovement.behavior.hmm import fit_hmm, HMMParameters
    >>> from animovement.behavior.bcpa import window_sweep

stats : Circular statistics helpers

    >>> from animovement.stats import wrap_angle

Common Usage
------------
Load, project and derive steps::

    >>> from animovement import ProjectionConfig
    >>> from animovement.io import read_track
    >>> from animovement.behavior.trajectory import compute_steps
    >>> track = read_track(
    ...     "tracks.tsv", projection=ProjectionConfig(utm_zone=33)
    ... )  # doctest: +SKIP
    >>> steps = compute_steps(track)  # doctest: +SKIP

Every analysis runs synchronously on in-memory tables; results expose
``to_dataframe()`` for inspection or export with
:func:`animovement.io.write_table`.
"""

import logging

from animovement.config import ProjectionConfig, TrackColumns
from animovement.errors import (
    ConfigurationError,
    ConvergenceWarning,
    IncompleteRowsWarning,
    InsufficientDataError,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ConvergenceWarning",
    "IncompleteRowsWarning",
    "InsufficientDataError",
    "ProjectionConfig",
    "TrackColumns",
    "__version__",
]

# Add NullHandler to prevent "No handler found" warnings if user doesn't configure logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
