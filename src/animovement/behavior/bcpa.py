"""Behavioral Change Point Analysis (BCPA).

BCPA looks for shifts in the mean, variance and autocorrelation of a scalar
movement response, typically velocity persistence ``speed * cos(angle)``.
A fixed-width window slides along the series; within each window the single
most likely break point is found, and the eight possible models (no change,
or any combination of mean / standard deviation / autocorrelation changing
at the break) are compared by a penalized likelihood. The per-window results
are then summarized either as a smooth parameter profile or as a flat set
of clustered change points with homogeneous phases between them.

Local model
-----------
Within a homogeneous segment the standardized response follows a
continuous-time first-order autoregressive process: the correlation between
consecutive observations separated by ``dt`` is ``rho ** dt``. This handles
irregular sampling.

Tuning
------
``K`` (penalty per parameter), ``window_size``, ``clusterwidth`` and
``threshold`` trade off spurious break points against missed ones. None of
them is chosen automatically.

References
----------
.. [1] Gurarie, E., Andrews, R. D., & Laidre, K. L. (2009). "A novel method
       for identifying behavioural changes in animal movement data."
       Ecology Letters, 12(5), 395-408.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import fminbound

from animovement.errors import InsufficientDataError

logger = logging.getLogger(__name__)

MIN_SEGMENT = 3
_MIN_SIGMA = 1e-8
_MAX_RHO = 1.0 - 1e-6
_LOG_2PI = np.log(2.0 * np.pi)

# (mu differs, sigma differs, rho differs) for models 0-7
MODEL_CHANGES: tuple[tuple[bool, bool, bool], ...] = (
    (False, False, False),
    (True, False, False),
    (False, True, False),
    (False, False, True),
    (True, True, False),
    (True, False, True),
    (False, True, True),
    (True, True, True),
)


# =============================================================================
# Likelihood of a homogeneous segment
# =============================================================================


def bcpa_log_likelihood(
    x: NDArray[np.float64],
    t: NDArray[np.float64],
    mu: float,
    sigma: float,
    rho: float,
) -> float:
    """
    Log-likelihood of a segment under the continuous-time AR(1) model.

    Parameters
    ----------
    x : NDArray[np.float64], shape (n,)
        Response values.
    t : NDArray[np.float64], shape (n,)
        Strictly increasing times.
    mu, sigma : float
        Mean and standard deviation of the response.
    rho : float
        Autocorrelation per unit time, in [0, 1).

    Returns
    -------
    float
        Log-likelihood.

    Notes
    -----
    With :math:`z_i = (x_i - \\mu)/\\sigma` and :math:`r_i = \\rho^{t_i - t_{i-1}}`,

    .. math::

        z_1 \\sim N(0, 1), \\qquad
        z_i \\mid z_{i-1} \\sim N(r_i z_{i-1}, 1 - r_i^2)

    and the Jacobian contributes :math:`-n \\log \\sigma`.
    """
    n = len(x)
    if n == 0:
        return 0.0
    sigma = max(float(sigma), _MIN_SIGMA)
    z = (np.asarray(x, dtype=np.float64) - mu) / sigma
    ll = -0.5 * (_LOG_2PI + z[0] ** 2)
    if n > 1:
        r = rho ** np.diff(t)
        var = np.maximum(1.0 - r**2, 1e-12)
        resid = z[1:] - r * z[:-1]
        ll += float(np.sum(-0.5 * (_LOG_2PI + np.log(var) + resid**2 / var)))
    return float(ll - n * np.log(sigma))


def estimate_rho(
    x: NDArray[np.float64],
    t: NDArray[np.float64],
    mu: float,
    sigma: float,
) -> float:
    """Maximum-likelihood autocorrelation for fixed ``mu`` and ``sigma``."""
    if len(x) < 2:
        return 0.0
    rho = fminbound(
        lambda r: -bcpa_log_likelihood(x, t, mu, sigma, r),
        0.0,
        _MAX_RHO,
        xtol=1e-5,
    )
    return float(rho)


@dataclass(frozen=True)
class SegmentFit:
    """Parameters and log-likelihood of one homogeneous segment."""

    mu: float
    sigma: float
    rho: float
    log_likelihood: float
    n: int


def fit_segment(x: NDArray[np.float64], t: NDArray[np.float64]) -> SegmentFit:
    """Estimate (mu, sigma, rho) of a segment and its maximized log-likelihood."""
    mu = float(np.mean(x))
    sigma = max(float(np.std(x)), _MIN_SIGMA)
    rho = estimate_rho(x, t, mu, sigma)
    return SegmentFit(mu, sigma, rho, bcpa_log_likelihood(x, t, mu, sigma, rho), len(x))


# =============================================================================
# Single window
# =============================================================================


def _candidate_breaks(window_size: int, break_range: float) -> NDArray[np.int64]:
    lo = max(MIN_SEGMENT, int(np.floor((1.0 - break_range) / 2.0 * window_size)))
    hi = min(
        window_size - MIN_SEGMENT,
        int(np.ceil((1.0 + break_range) / 2.0 * window_size)),
    )
    return np.arange(lo, hi + 1, dtype=np.int64)


def best_break(
    x: NDArray[np.float64],
    t: NDArray[np.float64],
    candidates: NDArray[np.int64],
) -> tuple[int, SegmentFit, SegmentFit]:
    """
    Most likely single break among ``candidates``.

    A break at ``b`` splits the window into ``x[:b]`` and ``x[b:]``; each
    candidate is scored by the sum of the two segments' maximized
    log-likelihoods.

    Returns
    -------
    break_index : int
    left, right : SegmentFit
    """
    best: tuple[int, SegmentFit, SegmentFit] | None = None
    best_ll = -np.inf
    for b in candidates:
        left = fit_segment(x[:b], t[:b])
        right = fit_segment(x[b:], t[b:])
        ll = left.log_likelihood + right.log_likelihood
        if ll > best_ll:
            best_ll = ll
            best = (int(b), left, right)
    if best is None:
        raise ValueError("No candidate break points were given")
    return best


def select_model(
    x: NDArray[np.float64],
    t: NDArray[np.float64],
    break_index: int,
    K: float,
    *,
    whole: SegmentFit | None = None,
    left: SegmentFit | None = None,
    right: SegmentFit | None = None,
) -> tuple[int, NDArray[np.float64], NDArray[np.float64]]:
    """
    Choose among the eight change models at a given break.

    Parameters
    ----------
    x, t : NDArray[np.float64]
        Window response and times.
    break_index : int
        Split point (``x[:b]`` / ``x[b:]``).
    K : float
        Penalty per parameter; the criterion is ``-2 LL + K * n_params``.
    whole, left, right : SegmentFit, optional
        Precomputed fits of the whole window and of each side.

    Returns
    -------
    model : int
        Selected model, 0 meaning no change.
    log_likelihoods : NDArray[np.float64], shape (8,)
    criteria : NDArray[np.float64], shape (8,)
    """
    b = break_index
    if whole is None:
        whole = fit_segment(x, t)
    if left is None:
        left = fit_segment(x[:b], t[:b])
    if right is None:
        right = fit_segment(x[b:], t[b:])

    log_likelihoods = np.empty(len(MODEL_CHANGES))
    criteria = np.empty(len(MODEL_CHANGES))
    for m, changes in enumerate(MODEL_CHANGES):
        if m == 0:
            ll = whole.log_likelihood
        else:
            sides = []
            for side in (left, right):
                mu = side.mu if changes[0] else whole.mu
                sigma = side.sigma if changes[1] else whole.sigma
                rho = side.rho if changes[2] else whole.rho
                sides.append((mu, sigma, rho))
            ll = bcpa_log_likelihood(x[:b], t[:b], *sides[0]) + bcpa_log_likelihood(
                x[b:], t[b:], *sides[1]
            )
        n_params = 3 + sum(changes)
        log_likelihoods[m] = ll
        criteria[m] = -2.0 * ll + K * n_params
    return int(np.argmin(criteria)), log_likelihoods, criteria


# =============================================================================
# Sweep and summaries
# =============================================================================


def _to_times(t: ArrayLike | None, n: int) -> NDArray[np.float64]:
    if t is None:
        return np.arange(n, dtype=np.float64)
    values = np.asarray(t)
    if np.issubdtype(values.dtype, np.number):
        return values.astype(np.float64)
    stamps = pd.to_datetime(pd.Series(values))
    return (stamps - stamps.iloc[0]).dt.total_seconds().to_numpy() / 3600.0


@dataclass(frozen=True)
class ChangePointSummary:
    """Flat BCPA summary.

    Attributes
    ----------
    breaks : pd.DataFrame
        One row per retained change point: ``time`` (cluster mean),
        ``size`` (number of supporting windows) and ``model_mode`` (most
        frequent selected model in the cluster).
    phases : pd.DataFrame
        One row per phase between change points: ``start_time``,
        ``end_time``, ``n``, ``mu``, ``sigma`` and ``rho``.
    """

    breaks: pd.DataFrame
    phases: pd.DataFrame

    def to_dataframe(self) -> pd.DataFrame:
        """Phase table, the usual export of a flat summary."""
        return self.phases.copy()


def cluster_breakpoints(
    breakpoints: ArrayLike, clusterwidth: float
) -> tuple[NDArray[np.float64], NDArray[np.int64]]:
    """
    Merge break points that lie within ``clusterwidth`` of each other.

    Sorted break points start a new cluster whenever the gap to the previous
    one exceeds ``clusterwidth``; each cluster is represented by its mean.
    Because representatives of distinct clusters are always more than
    ``clusterwidth`` apart, clustering the representatives again returns
    them unchanged.

    Parameters
    ----------
    breakpoints : array_like
        Break point locations (times or indices).
    clusterwidth : float
        Maximum gap (>= 0) within a cluster.

    Returns
    -------
    centers : NDArray[np.float64]
        Cluster representatives in increasing order.
    sizes : NDArray[np.int64]
        Number of break points per cluster.

    Examples
    --------
    >>> centers, sizes = cluster_breakpoints([10, 11, 12, 40, 41], clusterwidth=2)
    >>> centers.tolist(), sizes.tolist()
    ([11.0, 40.5], [3, 2])
    """
    values, labels = _cluster_labels(breakpoints, clusterwidth)
    if values.size == 0:
        return np.array([], dtype=np.float64), np.array([], dtype=np.int64)
    n_clusters = int(labels[-1]) + 1
    sizes = np.bincount(labels, minlength=n_clusters).astype(np.int64)
    centers = np.array([values[labels == k].mean() for k in range(n_clusters)])
    return centers, sizes


def _cluster_labels(
    breakpoints: ArrayLike, clusterwidth: float
) -> tuple[NDArray[np.float64], NDArray[np.int64]]:
    """Sorted break points and their cluster label."""
    if clusterwidth < 0:
        raise ValueError(f"clusterwidth must be non-negative, got {clusterwidth}")
    values = np.sort(np.asarray(breakpoints, dtype=np.float64).ravel())
    if values.size == 0:
        return values, np.array([], dtype=np.int64)
    labels = np.concatenate([[0], np.cumsum(np.diff(values) > clusterwidth)])
    return values, labels.astype(np.int64)


@dataclass(frozen=True)
class WindowSweepResult:
    """Per-window results of :func:`window_sweep`.

    Attributes
    ----------
    x : NDArray[np.float64]
        Response series used (NaN values removed).
    t : NDArray[np.float64]
        Times of ``x``.
    windows : pd.DataFrame
        One row per window: ``start``, ``end`` (exclusive), ``break_index``,
        ``break_time``, ``mu1``, ``sigma1``, ``rho1``, ``mu2``, ``sigma2``,
        ``rho2``, ``log_likelihood`` and ``model`` (0 = no change).
    window_size, window_step : int
    K : float
    """

    x: NDArray[np.float64] = field(repr=False)
    t: NDArray[np.float64] = field(repr=False)
    windows: pd.DataFrame = field(repr=False)
    window_size: int
    window_step: int
    K: float

    def to_dataframe(self) -> pd.DataFrame:
        """Per-window results table."""
        return self.windows.copy()

    def smooth_summary(self) -> pd.DataFrame:
        """
        Average the window estimates at every point.

        Each window contributes, for every point it covers, the parameters of
        the side of its break the point falls on.

        Returns
        -------
        pd.DataFrame
            One row per point: ``time``, ``x``, ``mu``, ``sigma``, ``rho``,
            ``break_density`` (fraction of covering windows that select a
            change exactly at this point) and ``n_windows``.
        """
        n = len(self.x)
        sums = np.zeros((n, 3))
        counts = np.zeros(n)
        break_counts = np.zeros(n)
        for row in self.windows.itertuples(index=False):
            start, end, b = int(row.start), int(row.end), int(row.break_index)
            sums[start:b] += (row.mu1, row.sigma1, row.rho1)
            sums[b:end] += (row.mu2, row.sigma2, row.rho2)
            counts[start:end] += 1
            if row.model > 0:
                break_counts[b] += 1
        with np.errstate(invalid="ignore", divide="ignore"):
            means = sums / counts[:, np.newaxis]
            density = np.where(counts > 0, break_counts / counts, np.nan)
        return pd.DataFrame(
            {
                "time": self.t,
                "x": self.x,
                "mu": means[:, 0],
                "sigma": means[:, 1],
                "rho": means[:, 2],
                "break_density": density,
                "n_windows": counts.astype(np.int64),
            }
        )

    def change_point_summary(
        self, clusterwidth: float, threshold: int = 1
    ) -> ChangePointSummary:
        """
        Cluster window break points into a reduced set of change points.

        Parameters
        ----------
        clusterwidth : float
            Break times closer than this (in time units of ``t``) are merged.
        threshold : int, default=1
            Minimum number of supporting windows for a cluster to be kept.

        Returns
        -------
        ChangePointSummary
            Retained change points and the phases they delimit.
        """
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        selected = self.windows[self.windows["model"] > 0].sort_values(
            "break_time", kind="mergesort"
        )
        values, labels = _cluster_labels(
            selected["break_time"].to_numpy(dtype=np.float64), clusterwidth
        )
        models = selected["model"].to_numpy(dtype=np.int64)

        rows = []
        n_clusters = int(labels[-1]) + 1 if labels.size else 0
        for k in range(n_clusters):
            members = labels == k
            size = int(members.sum())
            if size < threshold:
                continue
            rows.append(
                {
                    "time": float(values[members].mean()),
                    "size": size,
                    "model_mode": int(np.bincount(models[members]).argmax()),
                }
            )
        breaks = pd.DataFrame(rows, columns=["time", "size", "model_mode"])
        logger.debug(
            "%d of %d break clusters kept at threshold %d",
            len(breaks),
            n_clusters,
            threshold,
        )

        edges = np.concatenate([[-np.inf], breaks["time"].to_numpy(), [np.inf]])
        phase_rows = []
        for lo, hi in zip(edges[:-1], edges[1:], strict=True):
            mask = (self.t >= lo) & (self.t < hi)
            x, t = self.x[mask], self.t[mask]
            if len(x) == 0:
                continue
            if len(x) >= MIN_SEGMENT:
                fit = fit_segment(x, t)
                mu, sigma, rho = fit.mu, fit.sigma, fit.rho
            else:
                mu, sigma, rho = float(np.mean(x)), np.nan, np.nan
            phase_rows.append(
                {
                    "start_time": t[0],
                    "end_time": t[-1],
                    "n": len(x),
                    "mu": mu,
                    "sigma": sigma,
                    "rho": rho,
                }
            )
        phases = pd.DataFrame(
            phase_rows, columns=["start_time", "end_time", "n", "mu", "sigma", "rho"]
        )
        return ChangePointSummary(breaks=breaks, phases=phases)


def window_sweep(
    x: ArrayLike,
    t: ArrayLike | None = None,
    *,
    window_size: int = 50,
    window_step: int = 1,
    K: float = 2.0,
    break_range: float = 0.6,
) -> WindowSweepResult:
    """
    Slide a window along a response series and find one change per window.

    Parameters
    ----------
    x : array_like, shape (n,)
        Response series (e.g. velocity persistence). NaN values are dropped
        together with their times before the sweep.
    t : array_like, shape (n,), optional
        Strictly increasing times (numeric, or datetime-like converted to
        hours). Defaults to ``0, 1, ..., n - 1``.
    window_size : int, default=50
        Number of observations per window.
    window_step : int, default=1
        Shift between consecutive windows.
    K : float, default=2.0
        Penalty per model parameter. ``K = 2`` corresponds to AIC,
        ``K = log(window_size)`` to BIC. Larger values yield fewer change
        points.
    break_range : float, default=0.6
        Central fraction of each window in which breaks are searched; breaks
        near the window edges are excluded.

    Returns
    -------
    WindowSweepResult
        Per-window break points, parameters and selected models.

    Raises
    ------
    InsufficientDataError
        If the series is shorter than ``window_size``.
    ValueError
        If parameters are out of range or times are not strictly increasing.

    Examples
    --------
    >>> import numpy as np
    >>> rng = np.random.default_rng(0)
    >>> x = np.concatenate([rng.normal(0, 1, 60), rng.normal(5, 1, 60)])
    >>> sweep = window_sweep(x, window_size=30, window_step=5)  # doctest: +SKIP
    >>> sweep.change_point_summary(clusterwidth=3).breaks  # doctest: +SKIP
    """
    values = np.asarray(x, dtype=np.float64).ravel()
    times = _to_times(t, len(values))
    if len(times) != len(values):
        raise ValueError(
            f"x and t must have the same length, got {len(values)} and {len(times)}"
        )
    keep = np.isfinite(values) & np.isfinite(times)
    if not np.all(keep):
        logger.info("Dropping %d non-finite response values", int(np.sum(~keep)))
    values, times = values[keep], times[keep]

    if len(values) < window_size:
        raise InsufficientDataError(
            "window sweep",
            len(values),
            window_size,
            hint="Use a smaller window_size or a longer series.",
        )
    if window_size < 2 * MIN_SEGMENT:
        raise ValueError(
            f"window_size must be at least {2 * MIN_SEGMENT}, got {window_size}"
        )
    if window_step < 1:
        raise ValueError(f"window_step must be positive, got {window_step}")
    if not 0 < break_range <= 1:
        raise ValueError(f"break_range must be in (0, 1], got {break_range}")
    if K < 0:
        raise ValueError(f"K must be non-negative, got {K}")
    if np.any(np.diff(times) <= 0):
        raise ValueError("t must be strictly increasing")

    candidates = _candidate_breaks(window_size, break_range)
    if candidates.size == 0:
        raise ValueError(
            f"break_range={break_range} leaves no candidate breaks in a window "
            f"of {window_size}"
        )

    rows = []
    starts = range(0, len(values) - window_size + 1, window_step)
    for start in starts:
        end = start + window_size
        wx, wt = values[start:end], times[start:end]
        b, left, right = best_break(wx, wt, candidates)
        whole = fit_segment(wx, wt)
        model, log_likelihoods, _ = select_model(
            wx, wt, b, K, whole=whole, left=left, right=right
        )
        changes = MODEL_CHANGES[model]
        side1, side2 = (
            tuple(
                getattr(side if changed else whole, name)
                for name, changed in zip(("mu", "sigma", "rho"), changes, strict=True)
            )
            for side in (left, right)
        )
        rows.append(
            {
                "start": start,
                "end": end,
                "break_index": start + b,
                "break_time": wt[b],
                "mu1": side1[0],
                "sigma1": side1[1],
                "rho1": side1[2],
                "mu2": side2[0],
                "sigma2": side2[1],
                "rho2": side2[2],
                "log_likelihood": log_likelihoods[model],
                "model": model,
            }
        )

    windows = pd.DataFrame(rows)
    logger.info(
        "Window sweep: %d windows, %d with a selected change",
        len(windows),
        int((windows["model"] > 0).sum()),
    )
    return WindowSweepResult(
        x=values,
        t=times,
        windows=windows,
        window_size=window_size,
        window_step=window_step,
        K=K,
    )
