"""Path metrics for projected GPS tracks.

This module derives the step-level quantities used by every segmentation
method: step lengths, relative and absolute turning angles, time intervals,
speed, velocity persistence and net squared displacement. All metrics are
computed from planar positions in metres, so tracks must be reprojected
(see :func:`animovement.io.project_track`) before use.

Steps and turning angles
------------------------
For positions ``p[0], ..., p[n-1]`` the step ``k`` runs from ``p[k]`` to
``p[k+1]``. Its turning angle is the signed change of heading between step
``k - 1`` and step ``k`` (positive = left turn). The first step has no
previous heading, so its turning angle is NaN; the same holds wherever either
step has zero length.

References
----------
.. [1] Turchin, P. (1998). Quantitative Analysis of Movement. Sinauer.
.. [2] Michelot, T., Langrock, R., & Patterson, T. A. (2016). "moveHMM: an R
       package for the statistical modelling of animal movement data using
       hidden Markov models." Methods in Ecology and Evolution, 7, 1308-1315.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from animovement.stats.circular import circular_mean, mean_resultant_length

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


def _validate_positions(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    positions = np.asarray(positions, dtype=np.float64)
    if positions.ndim != 2 or positions.shape[1] != 2:
        raise ValueError(
            "positions must be a 2D array of shape (n_samples, 2), "
            f"got shape {positions.shape}"
        )
    return positions


def compute_step_lengths(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Compute Euclidean step lengths between consecutive positions.

    Parameters
    ----------
    positions : NDArray[np.float64], shape (n_samples, 2)
        Projected positions (e.g., UTM metres).

    Returns
    -------
    NDArray[np.float64], shape (n_samples - 1,)
        Step lengths in the units of ``positions``. Empty if fewer than two
        positions are given.

    Examples
    --------
    >>> import numpy as np
    >>> positions = np.array([[0.0, 0.0], [3.0, 4.0], [3.0, 4.0]])
    >>> compute_step_lengths(positions)
    array([5., 0.])
    """
    positions = _validate_positions(positions)
    if len(positions) < 2:
        return np.array([], dtype=np.float64)
    return np.linalg.norm(np.diff(positions, axis=0), axis=1)


def compute_absolute_angles(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Compute the heading of each step, counter-clockwise from the +x axis.

    Unlike turning angles, headings depend on the orientation of the
    coordinate system.

    Parameters
    ----------
    positions : NDArray[np.float64], shape (n_samples, 2)
        Projected positions.

    Returns
    -------
    NDArray[np.float64], shape (n_samples - 1,)
        Headings in radians on [-π, π]. NaN for zero-length steps.
    """
    positions = _validate_positions(positions)
    if len(positions) < 2:
        return np.array([], dtype=np.float64)
    vectors = np.diff(positions, axis=0)
    headings = np.arctan2(vectors[:, 1], vectors[:, 0])
    headings[np.all(vectors == 0, axis=1)] = np.nan
    return headings


def compute_turn_angles(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Compute relative turning angles, aligned with steps.

    Parameters
    ----------
    positions : NDArray[np.float64], shape (n_samples, 2)
        Projected positions.

    Returns
    -------
    NDArray[np.float64], shape (n_samples - 1,)
        Turning angle of each step relative to the previous step, in radians
        on [-π, π]. Positive values are left (counter-clockwise) turns. The
        first entry is always NaN; entries where the current or previous
        step has zero length are NaN.

    Notes
    -----
    The angle between consecutive movement vectors :math:`v_{k-1}, v_k` is

    .. math::

        \\theta_k = \\text{atan2}(v_{k-1} \\times v_k, v_{k-1} \\cdot v_k)

    which depends only on relative geometry and is therefore invariant to
    rotating or translating the whole track.

    Examples
    --------
    >>> import numpy as np
    >>> positions = np.array([[0.0, 0.0], [10.0, 0.0], [10.0, 10.0]])
    >>> angles = compute_turn_angles(positions)
    >>> bool(np.isnan(angles[0])), bool(np.isclose(angles[1], np.pi / 2))
    (True, True)
    """
    positions = _validate_positions(positions)
    if len(positions) < 2:
        return np.array([], dtype=np.float64)

    vectors = np.diff(positions, axis=0)
    angles = np.full(len(vectors), np.nan, dtype=np.float64)
    if len(vectors) < 2:
        return angles

    previous, current = vectors[:-1], vectors[1:]
    cross = previous[:, 0] * current[:, 1] - previous[:, 1] * current[:, 0]
    dot = np.sum(previous * current, axis=1)
    turns = np.arctan2(cross, dot)

    stationary = np.all(vectors == 0, axis=1)
    turns[stationary[:-1] | stationary[1:]] = np.nan
    angles[1:] = turns
    return angles


def net_squared_displacement(positions: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Squared distance from the first position to every position.

    Parameters
    ----------
    positions : NDArray[np.float64], shape (n_samples, 2)
        Projected positions.

    Returns
    -------
    NDArray[np.float64], shape (n_samples,)
        Net squared displacement. The first value is exactly zero.
    """
    positions = _validate_positions(positions)
    if len(positions) == 0:
        return np.array([], dtype=np.float64)
    offsets = positions - positions[0]
    return np.sum(offsets**2, axis=1)


def velocity_persistence(
    step_lengths: NDArray[np.float64],
    turn_angles: NDArray[np.float64],
    dt: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Velocity persistence ``speed * cos(turning angle)``.

    This is the default response for behavioral change point analysis: it is
    large for fast, directed movement and near zero or negative for slow or
    tortuous movement.

    Parameters
    ----------
    step_lengths, turn_angles, dt : NDArray[np.float64], shape (n_steps,)
        Step lengths, turning angles (radians) and step durations.

    Returns
    -------
    NDArray[np.float64], shape (n_steps,)
        Velocity persistence. NaN where the angle is undefined or dt is zero.
    """
    step_lengths = np.asarray(step_lengths, dtype=np.float64)
    turn_angles = np.asarray(turn_angles, dtype=np.float64)
    dt = np.asarray(dt, dtype=np.float64)
    if not (step_lengths.shape == turn_angles.shape == dt.shape):
        raise ValueError(
            "step_lengths, turn_angles and dt must have the same shape, got "
            f"{step_lengths.shape}, {turn_angles.shape} and {dt.shape}"
        )
    with np.errstate(divide="ignore", invalid="ignore"):
        speed = np.where(dt > 0, step_lengths / dt, np.nan)
    return speed * np.cos(turn_angles)


def compute_steps(
    track: pd.DataFrame,
    *,
    x: str = "x",
    y: str = "y",
) -> pd.DataFrame:
    """
    Build the per-fix step table for every individual in a track.

    Each row corresponds to one fix and describes the step that starts at
    that fix. The last fix of each individual therefore has NaN step metrics,
    and the first fix has a NaN turning angle. Steps never span two
    individuals.

    Parameters
    ----------
    track : pd.DataFrame
        Projected track table with ``individual_id``, ``timestamp`` and
        coordinate columns, sorted by individual and time.
    x, y : str, default "x", "y"
        Names of the projected coordinate columns.

    Returns
    -------
    pd.DataFrame
        Columns ``individual_id``, ``timestamp``, ``x``, ``y``, ``step``
        (metres), ``angle`` (radians), ``abs_angle`` (radians), ``dt``
        (hours), ``speed`` (metres per hour), ``persistence``
        (``speed * cos(angle)``) and ``nsd`` (square metres).

    Raises
    ------
    ValueError
        If required columns are missing or timestamps decrease within an
        individual.
    """
    missing = [c for c in ("individual_id", "timestamp", x, y) if c not in track]
    if missing:
        raise ValueError(
            f"Missing required columns: {missing}.\n"
            "  HOW: Project the track first with project_track(track, projection)."
        )

    frames = []
    for individual_id, group in track.groupby("individual_id", sort=False):
        times = pd.to_datetime(group["timestamp"])
        if (times.diff().dropna() < pd.Timedelta(0)).any():
            raise ValueError(
                f"Timestamps decrease within individual {individual_id!r}.\n"
                "  HOW: Sort the track with sort_track(track)."
            )
        positions = group[[x, y]].to_numpy(dtype=np.float64)
        n = len(positions)

        step = np.full(n, np.nan)
        angle = np.full(n, np.nan)
        abs_angle = np.full(n, np.nan)
        dt = np.full(n, np.nan)
        if n >= 2:
            step[:-1] = compute_step_lengths(positions)
            angle[:-1] = compute_turn_angles(positions)
            abs_angle[:-1] = compute_absolute_angles(positions)
            seconds = times.diff().dt.total_seconds().to_numpy()[1:]
            dt[:-1] = seconds / SECONDS_PER_HOUR

        with np.errstate(divide="ignore", invalid="ignore"):
            speed = np.where(dt > 0, step / dt, np.nan)

        frames.append(
            pd.DataFrame(
                {
                    "individual_id": individual_id,
                    "timestamp": times.reset_index(drop=True),
                    "x": positions[:, 0],
                    "y": positions[:, 1],
                    "step": step,
                    "angle": angle,
                    "abs_angle": abs_angle,
                    "dt": dt,
                    "speed": speed,
                    "persistence": velocity_persistence(step, angle, dt),
                    "nsd": net_squared_displacement(positions),
                }
            )
        )
        logger.debug(
            "Computed %d steps for individual %r", max(n - 1, 0), individual_id
        )

    if not frames:
        return pd.DataFrame(
            columns=[
                "individual_id", "timestamp", "x", "y", "step", "angle",
                "abs_angle", "dt", "speed", "persistence", "nsd",
            ]
        )
    return pd.concat(frames, ignore_index=True)


def track_summary(
    track: pd.DataFrame,
    *,
    x: str = "x",
    y: str = "y",
) -> pd.DataFrame:
    """
    Summarize the sampling and overall direction of each individual.

    Parameters
    ----------
    track : pd.DataFrame
        Track table with ``individual_id`` and ``timestamp``.
    x, y : str, default "x", "y"
        Names of the projected coordinate columns. Direction statistics are
        NaN when the track has not been projected.

    Returns
    -------
    pd.DataFrame
        One row per individual with ``n_fixes``, ``start``, ``end``,
        ``duration_hours``, ``median_interval_hours``, ``mean_heading``
        (circular mean of step headings, radians) and ``heading_resultant``
        (mean resultant length of step headings, 1 for a straight path).
    """
    projected = x in track and y in track
    rows = []
    for individual_id, group in track.groupby("individual_id", sort=False):
        times = pd.to_datetime(group["timestamp"])
        intervals = times.diff().dropna().dt.total_seconds() / SECONDS_PER_HOUR
        if projected:
            headings = compute_absolute_angles(group[[x, y]].to_numpy(dtype=np.float64))
        else:
            headings = np.array([], dtype=np.float64)
        rows.append(
            {
                "individual_id": individual_id,
                "n_fixes": len(group),
                "start": times.iloc[0],
                "end": times.iloc[-1],
                "duration_hours": (times.iloc[-1] - times.iloc[0]).total_seconds()
                / SECONDS_PER_HOUR,
                "median_interval_hours": float(intervals.median())
                if len(intervals)
                else np.nan,
                "mean_heading": circular_mean(headings),
                "heading_resultant": mean_resultant_length(headings),
            }
        )
    return pd.DataFrame(rows)
