"""Hidden Markov Models for step-length / turning-angle sequences.

Each latent state emits a step length from a gamma distribution
(parameterized by mean and standard deviation, with an optional point mass
at zero) and a turning angle from a von Mises distribution. Transitions
between states follow a multinomial-logit model whose linear predictor may
include covariates. Parameters are estimated by direct numerical
maximization of the forward-algorithm likelihood.

Which Function Should I Use?
----------------------------
**Fit a model?**
    ``fit_hmm(step, angle, initial)`` with analyst-chosen starting values.
    The starting values decide which local optimum is found; always check
    ``result.converged`` and compare fits from several starting values.

**Most likely state sequence?**
    ``result.viterbi()`` (or ``viterbi(params, step, angle)``).

**Probability of each state at each step?**
    ``result.state_probabilities()`` (forward-backward).

**Does a covariate on transitions help?**
    Fit both models and call ``compare_models([...])``; lower AIC is
    preferred. The decision remains a judgment call.

Missing data
------------
NaN step lengths or angles contribute a density of one for that component,
so every row still receives a state. This covers the first angle and the
last step of each individual in a step table.

References
----------
.. [1] Zucchini, W., MacDonald, I. L., & Langrock, R. (2016). Hidden Markov
       Models for Time Series: An Introduction Using R (2nd ed.). CRC Press.
.. [2] Michelot, T., Langrock, R., & Patterson, T. A. (2016). "moveHMM."
       Methods in Ecology and Evolution, 7, 1308-1315.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from scipy import optimize, stats
from scipy.special import logsumexp

from animovement.errors import ConvergenceWarning, InsufficientDataError
from animovement.stats.circular import von_mises_logpdf, wrap_angle

logger = logging.getLogger(__name__)

# Working-scale bounds keep every likelihood evaluation finite, including
# degenerate inputs such as perfectly regular steps.
_LOG_CV_BOUNDS = (np.log(1e-3), np.log(10.0))
_LOG_KAPPA_BOUNDS = (np.log(1e-4), np.log(1e3))
_LOGIT_BOUNDS = (-30.0, 30.0)
_BAD_OBJECTIVE = 1e100


# =============================================================================
# Parameters
# =============================================================================


@dataclass(frozen=True)
class HMMParameters:
    """Natural-scale parameters of a gamma / von Mises HMM.

    Parameters
    ----------
    step_mean : array_like, shape (n_states,)
        Mean step length per state (> 0).
    step_sd : array_like, shape (n_states,)
        Standard deviation of step length per state (> 0).
    angle_mean : array_like, shape (n_states,)
        Mean turning angle per state, radians.
    angle_concentration : array_like, shape (n_states,)
        Von Mises concentration per state (>= 0).
    zero_mass : array_like, shape (n_states,), optional
        Probability of a zero step length per state, in [0, 1). Required
        when the data contain zero step lengths.
    beta : array_like, shape (1 + n_covariates, n_states * (n_states - 1)), optional
        Transition coefficients. Row 0 holds intercepts, further rows one
        coefficient per covariate. Column order follows the off-diagonal
        entries of the transition matrix in row-major order. Defaults to
        intercepts of -2 (sticky states) and no covariates.
    delta : array_like, shape (n_states,), optional
        Initial state distribution. Defaults to uniform.

    Examples
    --------
    >>> params = HMMParameters(
    ...     step_mean=[100.0, 1000.0],
    ...     step_sd=[100.0, 1000.0],
    ...     angle_mean=[3.14, 0.0],
    ...     angle_concentration=[1.0, 1.0],
    ... )
    >>> params.n_states
    2
    >>> params.transition_matrices().shape
    (1, 2, 2)
    """

    step_mean: NDArray[np.float64]
    step_sd: NDArray[np.float64]
    angle_mean: NDArray[np.float64]
    angle_concentration: NDArray[np.float64]
    zero_mass: NDArray[np.float64] | None = None
    beta: NDArray[np.float64] | None = None
    delta: NDArray[np.float64] | None = None

    def __post_init__(self) -> None:
        for name in ("step_mean", "step_sd", "angle_mean", "angle_concentration"):
            object.__setattr__(
                self, name, np.atleast_1d(np.asarray(getattr(self, name), dtype=float))
            )
        n_states = len(self.step_mean)
        if n_states < 1:
            raise ValueError("At least one state is required")
        for name in ("step_sd", "angle_mean", "angle_concentration"):
            if getattr(self, name).shape != (n_states,):
                raise ValueError(
                    f"{name} must have shape ({n_states},), "
                    f"got {getattr(self, name).shape}"
                )
        if np.any(self.step_mean <= 0) or np.any(self.step_sd <= 0):
            raise ValueError("step_mean and step_sd must be positive")
        if np.any(self.angle_concentration < 0):
            raise ValueError("angle_concentration must be non-negative")

        if self.zero_mass is not None:
            zero_mass = np.atleast_1d(np.asarray(self.zero_mass, dtype=float))
            if zero_mass.shape != (n_states,):
                raise ValueError(f"zero_mass must have shape ({n_states},)")
            if np.any(zero_mass < 0) or np.any(zero_mass >= 1):
                raise ValueError("zero_mass must be in [0, 1)")
            object.__setattr__(self, "zero_mass", zero_mass)

        n_offdiag = n_states * (n_states - 1)
        if self.beta is None:
            beta = np.full((1, n_offdiag), -2.0)
        else:
            beta = np.asarray(self.beta, dtype=float)
            if beta.ndim == 1:
                beta = beta[np.newaxis, :]
            if beta.ndim != 2 or beta.shape[1] != n_offdiag:
                raise ValueError(
                    f"beta must have shape (1 + n_covariates, {n_offdiag}), "
                    f"got {beta.shape}"
                )
        object.__setattr__(self, "beta", beta)

        if self.delta is None:
            delta = np.full(n_states, 1.0 / n_states)
        else:
            delta = np.asarray(self.delta, dtype=float)
            if delta.shape != (n_states,) or np.any(delta < 0):
                raise ValueError(f"delta must be {n_states} non-negative values")
            if not np.isclose(delta.sum(), 1.0):
                raise ValueError(f"delta must sum to 1, got {delta.sum()}")
        object.__setattr__(self, "delta", delta)

    @property
    def n_states(self) -> int:
        """Number of latent states."""
        return len(self.step_mean)

    @property
    def n_covariates(self) -> int:
        """Number of transition covariates (excluding the intercept)."""
        assert self.beta is not None
        return self.beta.shape[0] - 1

    def transition_matrices(
        self, covariates: NDArray[np.float64] | None = None
    ) -> NDArray[np.float64]:
        """
        Transition probability matrices.

        Parameters
        ----------
        covariates : NDArray[np.float64], shape (n_times, n_covariates), optional
            Covariate values. Required if the model has covariates.

        Returns
        -------
        NDArray[np.float64], shape (n_times, n_states, n_states)
            Row-stochastic matrices; ``n_times`` is 1 without covariates.
        """
        assert self.beta is not None
        design = _design_matrix(covariates, self.n_covariates)
        return _transition_matrices(self.beta, design, self.n_states)

    def stationary_distribution(self) -> NDArray[np.float64]:
        """Stationary distribution of a covariate-free transition matrix."""
        if self.n_covariates:
            raise ValueError(
                "The stationary distribution depends on covariates; "
                "evaluate transition_matrices(covariates) instead."
            )
        gamma = self.transition_matrices()[0]
        n = self.n_states
        system = np.eye(n) - gamma + np.ones((n, n))
        return np.linalg.solve(system.T, np.ones(n))

    def to_dataframe(self) -> pd.DataFrame:
        """State-dependent parameters as a table: one row per state."""
        table = pd.DataFrame(
            {
                "state": np.arange(self.n_states),
                "step_mean": self.step_mean,
                "step_sd": self.step_sd,
                "angle_mean": self.angle_mean,
                "angle_concentration": self.angle_concentration,
            }
        )
        if self.zero_mass is not None:
            table["zero_mass"] = self.zero_mass
        return table


def _design_matrix(
    covariates: NDArray[np.float64] | None, n_covariates: int
) -> NDArray[np.float64]:
    if n_covariates == 0:
        return np.ones((1, 1))
    if covariates is None:
        raise ValueError(
            f"The model has {n_covariates} transition covariate(s); "
            "pass covariates with shape (n_times, n_covariates)."
        )
    covariates = np.asarray(covariates, dtype=float)
    if covariates.ndim == 1:
        covariates = covariates[:, np.newaxis]
    if covariates.shape[1] != n_covariates:
        raise ValueError(
            f"Expected {n_covariates} covariate column(s), got {covariates.shape[1]}"
        )
    if not np.all(np.isfinite(covariates)):
        raise ValueError("covariates must be finite; fill or drop missing values")
    return np.column_stack([np.ones(len(covariates)), covariates])


def _transition_matrices(
    beta: NDArray[np.float64], design: NDArray[np.float64], n_states: int
) -> NDArray[np.float64]:
    eta = design @ beta
    n_times = len(design)
    logits = np.zeros((n_times, n_states, n_states))
    offdiag = ~np.eye(n_states, dtype=bool)
    logits[:, offdiag] = eta
    logits -= logits.max(axis=2, keepdims=True)
    gamma = np.exp(logits)
    return gamma / gamma.sum(axis=2, keepdims=True)


# =============================================================================
# Emission densities and recursions
# =============================================================================


def _log_emissions(
    params: HMMParameters,
    step: NDArray[np.float64],
    angle: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Log emission densities, shape (n_obs, n_states); NaN data contribute 0."""
    n_obs = len(step)
    log_e = np.zeros((n_obs, params.n_states))

    has_step = ~np.isnan(step)
    positive = has_step & (step > 0)
    zero = has_step & (step == 0)
    has_angle = ~np.isnan(angle)
    if np.any(zero) and params.zero_mass is None:
        raise ValueError(
            f"{int(zero.sum())} step lengths are exactly zero.\n"
            "  WHY: The gamma distribution has no mass at zero.\n"
            "  HOW: Use parameters with zero_mass, or remove zero steps."
        )

    for s in range(params.n_states):
        mean, sd = params.step_mean[s], params.step_sd[s]
        shape = (mean / sd) ** 2
        scale = sd**2 / mean
        zero_mass = 0.0 if params.zero_mass is None else params.zero_mass[s]

        log_e[positive, s] += np.log1p(-zero_mass) + stats.gamma.logpdf(
            step[positive], a=shape, scale=scale
        )
        if np.any(zero):
            log_e[zero, s] += np.log(zero_mass) if zero_mass > 0 else -np.inf
        log_e[has_angle, s] += von_mises_logpdf(
            angle[has_angle], params.angle_mean[s], params.angle_concentration[s]
        )
    return log_e


def _sequence_bounds(lengths: Sequence[int] | None, n_obs: int) -> list[tuple[int, int]]:
    if lengths is None:
        return [(0, n_obs)]
    lengths = [int(n) for n in lengths]
    if any(n <= 0 for n in lengths) or sum(lengths) != n_obs:
        raise ValueError(
            f"lengths must be positive and sum to the number of observations "
            f"({n_obs}), got sum {sum(lengths)}"
        )
    ends = np.cumsum(lengths)
    return [(int(end - n), int(end)) for n, end in zip(lengths, ends, strict=True)]


def _gamma_at(gamma: NDArray[np.float64], t: int) -> NDArray[np.float64]:
    return gamma[0] if len(gamma) == 1 else gamma[t]


def _forward_log_likelihood(
    log_e: NDArray[np.float64],
    gamma: NDArray[np.float64],
    delta: NDArray[np.float64],
    bounds: list[tuple[int, int]],
) -> float:
    """Scaled forward algorithm; returns the total log-likelihood."""
    total = 0.0
    for start, end in bounds:
        m = log_e[start].max()
        phi = delta * np.exp(log_e[start] - m)
        norm = phi.sum()
        total += m + np.log(norm)
        phi /= norm
        for t in range(start + 1, end):
            m = log_e[t].max()
            phi = (phi @ _gamma_at(gamma, t - 1)) * np.exp(log_e[t] - m)
            norm = phi.sum()
            total += m + np.log(norm)
            phi /= norm
    return float(total)


def _forward_backward(
    log_e: NDArray[np.float64],
    gamma: NDArray[np.float64],
    delta: NDArray[np.float64],
    bounds: list[tuple[int, int]],
) -> NDArray[np.float64]:
    """Posterior state probabilities, shape (n_obs, n_states)."""
    n_obs, n_states = log_e.shape
    log_gamma = np.log(gamma)
    log_alpha = np.empty((n_obs, n_states))
    log_beta = np.zeros((n_obs, n_states))
    with np.errstate(divide="ignore"):
        log_delta = np.log(delta)
    for start, end in bounds:
        log_alpha[start] = log_delta + log_e[start]
        for t in range(start + 1, end):
            log_alpha[t] = (
                logsumexp(log_alpha[t - 1][:, np.newaxis] + _gamma_at(log_gamma, t - 1), axis=0)
                + log_e[t]
            )
        for t in range(end - 2, start - 1, -1):
            log_beta[t] = logsumexp(
                _gamma_at(log_gamma, t) + (log_e[t + 1] + log_beta[t + 1])[np.newaxis, :],
                axis=1,
            )
    log_post = log_alpha + log_beta
    log_post -= logsumexp(log_post, axis=1, keepdims=True)
    return np.exp(log_post)


def _viterbi(
    log_e: NDArray[np.float64],
    gamma: NDArray[np.float64],
    delta: NDArray[np.float64],
    bounds: list[tuple[int, int]],
) -> NDArray[np.int64]:
    n_obs, n_states = log_e.shape
    log_gamma = np.log(gamma)
    with np.errstate(divide="ignore"):
        log_delta = np.log(delta)
    states = np.empty(n_obs, dtype=np.int64)
    for start, end in bounds:
        n = end - start
        score = np.empty((n, n_states))
        backpointer = np.zeros((n, n_states), dtype=np.int64)
        score[0] = log_delta + log_e[start]
        for k in range(1, n):
            candidates = score[k - 1][:, np.newaxis] + _gamma_at(log_gamma, start + k - 1)
            backpointer[k] = np.argmax(candidates, axis=0)
            score[k] = candidates[backpointer[k], np.arange(n_states)] + log_e[start + k]
        path = np.empty(n, dtype=np.int64)
        path[-1] = int(np.argmax(score[-1]))
        for k in range(n - 1, 0, -1):
            path[k - 1] = backpointer[k, path[k]]
        states[start:end] = path
    return states


def _prepare_observations(
    step: ArrayLike, angle: ArrayLike
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    step = np.asarray(step, dtype=np.float64).ravel()
    angle = np.asarray(angle, dtype=np.float64).ravel()
    if step.shape != angle.shape:
        raise ValueError(
            f"step and angle must have the same length, got {len(step)} and {len(angle)}"
        )
    if np.any(step[~np.isnan(step)] < 0):
        raise ValueError("step lengths must be non-negative")
    if np.any(np.isinf(step)) or np.any(np.isinf(angle)):
        raise ValueError("step and angle must not contain infinite values")
    return step, wrap_angle(angle)


def viterbi(
    params: HMMParameters,
    step: ArrayLike,
    angle: ArrayLike,
    *,
    covariates: NDArray[np.float64] | None = None,
    lengths: Sequence[int] | None = None,
) -> NDArray[np.int64]:
    """
    Most probable state sequence (Viterbi decoding).

    Parameters
    ----------
    params : HMMParameters
        Model parameters.
    step, angle : array_like, shape (n_obs,)
        Step lengths and turning angles; NaN allowed.
    covariates : NDArray[np.float64], shape (n_obs, n_covariates), optional
        Transition covariates, required if the model has any.
    lengths : sequence of int, optional
        Lengths of independent sequences (e.g. individuals), summing to
        ``n_obs``.

    Returns
    -------
    NDArray[np.int64], shape (n_obs,)
        Decoded state for every observation.
    """
    step, angle = _prepare_observations(step, angle)
    bounds = _sequence_bounds(lengths, len(step))
    log_e = _log_emissions(params, step, angle)
    with np.errstate(divide="ignore"):
        return _viterbi(log_e, params.transition_matrices(covariates), params.delta, bounds)


def state_probabilities(
    params: HMMParameters,
    step: ArrayLike,
    angle: ArrayLike,
    *,
    covariates: NDArray[np.float64] | None = None,
    lengths: Sequence[int] | None = None,
) -> NDArray[np.float64]:
    """
    Marginal state probabilities by forward-backward recursion.

    Parameters are as for :func:`viterbi`.

    Returns
    -------
    NDArray[np.float64], shape (n_obs, n_states)
        Each row sums to one.
    """
    step, angle = _prepare_observations(step, angle)
    bounds = _sequence_bounds(lengths, len(step))
    log_e = _log_emissions(params, step, angle)
    with np.errstate(divide="ignore"):
        return _forward_backward(
            log_e, params.transition_matrices(covariates), params.delta, bounds
        )


def log_likelihood(
    params: HMMParameters,
    step: ArrayLike,
    angle: ArrayLike,
    *,
    covariates: NDArray[np.float64] | None = None,
    lengths: Sequence[int] | None = None,
) -> float:
    """Log-likelihood of the observations under ``params`` (forward algorithm)."""
    step, angle = _prepare_observations(step, angle)
    bounds = _sequence_bounds(lengths, len(step))
    with np.errstate(divide="ignore"):
        log_e = _log_emissions(params, step, angle)
        return _forward_log_likelihood(
            log_e, params.transition_matrices(covariates), params.delta, bounds
        )


# =============================================================================
# Working-scale parameterization
# =============================================================================


@dataclass(frozen=True)
class _Layout:
    """Positions of each parameter block in the working vector."""

    n_states: int
    n_beta_rows: int
    estimate_zero_mass: bool
    estimate_angle_mean: bool

    @property
    def sizes(self) -> dict[str, int]:
        n = self.n_states
        return {
            "log_mean": n,
            "log_cv": n,
            "logit_zero_mass": n if self.estimate_zero_mass else 0,
            "angle_mean": n if self.estimate_angle_mean else 0,
            "log_kappa": n,
            "beta": self.n_beta_rows * n * (n - 1),
            "logit_delta": n - 1,
        }

    @property
    def n_parameters(self) -> int:
        return sum(self.sizes.values())

    def split(self, theta: NDArray[np.float64]) -> dict[str, NDArray[np.float64]]:
        blocks = {}
        offset = 0
        for name, size in self.sizes.items():
            blocks[name] = theta[offset : offset + size]
            offset += size
        return blocks

    def bounds(self) -> list[tuple[float | None, float | None]]:
        per_block = {
            "log_mean": (None, None),
            "log_cv": _LOG_CV_BOUNDS,
            "logit_zero_mass": _LOGIT_BOUNDS,
            "angle_mean": (-np.pi, np.pi),
            "log_kappa": _LOG_KAPPA_BOUNDS,
            "beta": _LOGIT_BOUNDS,
            "logit_delta": _LOGIT_BOUNDS,
        }
        result: list[tuple[float | None, float | None]] = []
        for name, size in self.sizes.items():
            result.extend([per_block[name]] * size)
        return result


def _to_working(params: HMMParameters, layout: _Layout) -> NDArray[np.float64]:
    assert params.beta is not None and params.delta is not None
    cv = np.clip(params.step_sd / params.step_mean, *np.exp(_LOG_CV_BOUNDS))
    kappa = np.clip(params.angle_concentration, *np.exp(_LOG_KAPPA_BOUNDS))
    parts = [np.log(params.step_mean), np.log(cv)]
    if layout.estimate_zero_mass:
        zero_mass = params.zero_mass if params.zero_mass is not None else 0.0
        zero_mass = np.clip(zero_mass, 1e-8, 1 - 1e-8)
        parts.append(np.log(zero_mass / (1 - zero_mass)))
    if layout.estimate_angle_mean:
        parts.append(wrap_angle(params.angle_mean))
    parts.append(np.log(kappa))
    parts.append(np.clip(params.beta, *_LOGIT_BOUNDS).ravel())
    delta = np.clip(params.delta, 1e-12, None)
    parts.append(np.clip(np.log(delta[1:] / delta[0]), *_LOGIT_BOUNDS))
    return np.concatenate(parts)


def _from_working(
    theta: NDArray[np.float64], layout: _Layout, template: HMMParameters
) -> HMMParameters:
    blocks = layout.split(theta)
    n = layout.n_states
    mean = np.exp(blocks["log_mean"])
    sd = mean * np.exp(blocks["log_cv"])
    if layout.estimate_zero_mass:
        zero_mass = 1.0 / (1.0 + np.exp(-blocks["logit_zero_mass"]))
    else:
        zero_mass = None
    angle_mean = (
        blocks["angle_mean"] if layout.estimate_angle_mean else template.angle_mean
    )
    beta = blocks["beta"].reshape(layout.n_beta_rows, n * (n - 1))
    logits = np.concatenate([[0.0], blocks["logit_delta"]])
    delta = np.exp(logits - logits.max())
    delta /= delta.sum()
    return HMMParameters(
        step_mean=mean,
        step_sd=sd,
        angle_mean=np.array(angle_mean, dtype=float),
        angle_concentration=np.exp(blocks["log_kappa"]),
        zero_mass=zero_mass,
        beta=beta,
        delta=delta,
    )


# =============================================================================
# Fitting
# =============================================================================


@dataclass(frozen=True)
class HMMFitResult:
    """Fitted HMM with convergence diagnostics.

    A fit that did not converge is still returned; inspect ``converged``,
    ``log_likelihood`` and ``n_iterations`` and refit with different initial
    parameters if needed.

    Attributes
    ----------
    parameters : HMMParameters
        Estimated parameters.
    log_likelihood : float
        Maximized log-likelihood (last value if not converged).
    n_iterations : int
        Optimizer iterations used.
    converged : bool
        Whether the optimizer reported convergence within ``max_iter``.
    message : str
        Optimizer termination message.
    n_parameters : int
        Number of estimated parameters.
    step, angle : NDArray[np.float64]
        Observations the model was fitted to.
    covariates : NDArray[np.float64] or None
        Transition covariates used in the fit.
    lengths : tuple of int
        Lengths of the independent sequences.
    """

    parameters: HMMParameters
    log_likelihood: float
    n_iterations: int
    converged: bool
    message: str
    n_parameters: int
    step: NDArray[np.float64] = field(repr=False)
    angle: NDArray[np.float64] = field(repr=False)
    covariates: NDArray[np.float64] | None = field(default=None, repr=False)
    lengths: tuple[int, ...] = ()

    @property
    def n_observations(self) -> int:
        """Number of observations (rows) the model was fitted to."""
        return len(self.step)

    @property
    def aic(self) -> float:
        """Akaike information criterion, ``-2 LL + 2 k``."""
        return -2.0 * self.log_likelihood + 2.0 * self.n_parameters

    @property
    def bic(self) -> float:
        """Bayesian information criterion, ``-2 LL + k log(n)``."""
        return -2.0 * self.log_likelihood + self.n_parameters * np.log(
            self.n_observations
        )

    def viterbi(self) -> NDArray[np.int64]:
        """Most probable state for every fitted observation."""
        return viterbi(
            self.parameters,
            self.step,
            self.angle,
            covariates=self.covariates,
            lengths=self.lengths or None,
        )

    def state_probabilities(self) -> NDArray[np.float64]:
        """Per-observation state probabilities, shape (n_obs, n_states)."""
        return state_probabilities(
            self.parameters,
            self.step,
            self.angle,
            covariates=self.covariates,
            lengths=self.lengths or None,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Observations with decoded states and state probabilities."""
        probabilities = self.state_probabilities()
        table = pd.DataFrame(
            {"step": self.step, "angle": self.angle, "state": self.viterbi()}
        )
        for s in range(probabilities.shape[1]):
            table[f"p_state_{s}"] = probabilities[:, s]
        return table


def fit_hmm(
    step: ArrayLike,
    angle: ArrayLike,
    initial: HMMParameters,
    *,
    covariates: ArrayLike | None = None,
    lengths: Sequence[int] | None = None,
    estimate_angle_mean: bool = True,
    max_iter: int = 1000,
    tol: float = 1e-8,
) -> HMMFitResult:
    """
    Fit a gamma / von Mises HMM by numerical likelihood maximization.

    Parameters
    ----------
    step : array_like, shape (n_obs,)
        Step lengths (>= 0, NaN allowed).
    angle : array_like, shape (n_obs,)
        Turning angles in radians (NaN allowed).
    initial : HMMParameters
        Starting values. The number of states and, through ``initial.beta``,
        the number of transition covariates are taken from here.
    covariates : array_like, shape (n_obs,) or (n_obs, n_covariates), optional
        Transition covariates. The transition from observation ``t`` to
        ``t + 1`` uses the covariate values at ``t``. If given and
        ``initial.beta`` has only intercepts, covariate coefficients start
        at zero.
    lengths : sequence of int, optional
        Lengths of independent sequences sharing the parameters.
    estimate_angle_mean : bool, default=True
        If False, the angle means of ``initial`` are held fixed.
    max_iter : int, default=1000
        Maximum number of optimizer iterations.
    tol : float, default=1e-8
        Relative tolerance on the objective.

    Returns
    -------
    HMMFitResult
        Fitted parameters and diagnostics.

    Raises
    ------
    InsufficientDataError
        If fewer than two observations have a step length.
    ValueError
        If inputs are inconsistent, or zero step lengths are present but
        ``initial.zero_mass`` is None.

    Warns
    -----
    ConvergenceWarning
        If the optimizer did not converge. The result is still returned.

    Examples
    --------
    >>> import numpy as np
    >>> true = HMMParameters(
    ...     step_mean=[50.0, 500.0], step_sd=[30.0, 200.0],
    ...     angle_mean=[np.pi, 0.0], angle_concentration=[0.5, 3.0],
    ...     beta=[[-2.0, -2.0]],
    ... )
    >>> step, angle, _ = simulate_hmm(true, 300, rng=1)
    >>> fit = fit_hmm(step, angle, true)  # doctest: +SKIP
    >>> fit.converged  # doctest: +SKIP
    True
    """
    step, angle = _prepare_observations(step, angle)
    n_obs = len(step)
    n_with_step = int(np.sum(~np.isnan(step)))
    if n_with_step < 2:
        raise InsufficientDataError(
            "HMM fit", n_with_step, 2, hint="Provide a longer track."
        )
    bounds = _sequence_bounds(lengths, n_obs)

    design_cov: NDArray[np.float64] | None = None
    if covariates is not None:
        design_cov = np.asarray(covariates, dtype=float)
        if design_cov.ndim == 1:
            design_cov = design_cov[:, np.newaxis]
        if len(design_cov) != n_obs:
            raise ValueError(
                f"covariates must have {n_obs} rows, got {len(design_cov)}"
            )
        assert initial.beta is not None
        if initial.n_covariates == 0:
            beta = np.vstack(
                [initial.beta, np.zeros((design_cov.shape[1], initial.beta.shape[1]))]
            )
            initial = HMMParameters(
                step_mean=initial.step_mean,
                step_sd=initial.step_sd,
                angle_mean=initial.angle_mean,
                angle_concentration=initial.angle_concentration,
                zero_mass=initial.zero_mass,
                beta=beta,
                delta=initial.delta,
            )
    design = _design_matrix(design_cov, initial.n_covariates)

    has_zeros = bool(np.any(step == 0))
    if has_zeros and initial.zero_mass is None:
        raise ValueError(
            f"{int(np.sum(step == 0))} step lengths are exactly zero.\n"
            "  WHY: The gamma distribution has no mass at zero.\n"
            "  HOW: Pass zero_mass starting values in the initial parameters."
        )
    if not has_zeros and initial.zero_mass is not None:
        logger.info("No zero step lengths; zero-mass parameters are not estimated")

    assert initial.beta is not None
    layout = _Layout(
        n_states=initial.n_states,
        n_beta_rows=initial.beta.shape[0],
        estimate_zero_mass=has_zeros,
        estimate_angle_mean=estimate_angle_mean,
    )

    def objective(theta: NDArray[np.float64]) -> float:
        params = _from_working(theta, layout, initial)
        gamma = _transition_matrices(params.beta, design, params.n_states)
        with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
            log_e = _log_emissions(params, step, angle)
            value = -_forward_log_likelihood(log_e, gamma, params.delta, bounds)
        return value if np.isfinite(value) else _BAD_OBJECTIVE

    theta0 = _to_working(initial, layout)
    logger.debug(
        "Fitting %d-state HMM to %d observations (%d parameters)",
        layout.n_states,
        n_obs,
        layout.n_parameters,
    )
    result = optimize.minimize(
        objective,
        theta0,
        method="L-BFGS-B",
        bounds=layout.bounds(),
        options={"maxiter": max_iter, "ftol": tol},
    )

    fitted = _from_working(result.x, layout, initial)
    log_lik = -float(result.fun)
    converged = bool(result.success) and result.nit < max_iter
    message = str(result.message)
    if not converged:
        warnings.warn(
            f"HMM fit did not converge after {result.nit} iterations "
            f"(log-likelihood {log_lik:.3f}): {message}. "
            "Try different initial parameters.",
            ConvergenceWarning,
            stacklevel=2,
        )
        logger.warning("HMM fit did not converge: %s", message)
    else:
        logger.info(
            "HMM converged in %d iterations, log-likelihood %.3f", result.nit, log_lik
        )

    return HMMFitResult(
        parameters=fitted,
        log_likelihood=log_lik,
        n_iterations=int(result.nit),
        converged=converged,
        message=message,
        n_parameters=layout.n_parameters,
        step=step,
        angle=angle,
        covariates=design_cov,
        lengths=tuple(end - start for start, end in bounds),
    )


def compare_models(
    models: Mapping[str, HMMFitResult] | Sequence[HMMFitResult],
) -> pd.DataFrame:
    """
    Compare fitted models by information criterion.

    Parameters
    ----------
    models : mapping of name to HMMFitResult, or sequence of HMMFitResult
        Fitted models. Sequences are named ``model_0``, ``model_1``, ...

    Returns
    -------
    pd.DataFrame
        One row per model with ``log_likelihood``, ``n_parameters``,
        ``aic``, ``bic``, ``delta_aic`` and ``converged``, sorted by AIC
        (lower is preferred).

    Notes
    -----
    No significance test is performed; the comparison informs, but does
    not replace, the analyst's choice.
    """
    if isinstance(models, Mapping):
        items: list[tuple[str, Any]] = list(models.items())
    else:
        items = [(f"model_{i}", model) for i, model in enumerate(models)]
    if not items:
        raise ValueError("At least one model is required")
    n_obs = {model.n_observations for _, model in items}
    if len(n_obs) > 1:
        warnings.warn(
            f"Models were fitted to different numbers of observations {sorted(n_obs)}; "
            "information criteria are not comparable.",
            stacklevel=2,
        )
    table = pd.DataFrame(
        {
            "model": [name for name, _ in items],
            "log_likelihood": [m.log_likelihood for _, m in items],
            "n_parameters": [m.n_parameters for _, m in items],
            "aic": [m.aic for _, m in items],
            "bic": [m.bic for _, m in items],
            "converged": [m.converged for _, m in items],
        }
    )
    table["delta_aic"] = table["aic"] - table["aic"].min()
    return table.sort_values("aic", kind="mergesort").reset_index(drop=True)


def simulate_hmm(
    params: HMMParameters,
    n_steps: int,
    *,
    covariates: NDArray[np.float64] | None = None,
    rng: np.random.Generator | int | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.int64]]:
    """
    Simulate step lengths, turning angles and states from an HMM.

    Parameters
    ----------
    params : HMMParameters
        Model to simulate from.
    n_steps : int
        Number of observations.
    covariates : NDArray[np.float64], shape (n_steps, n_covariates), optional
        Required if the model has transition covariates.
    rng : Generator or int, optional
        Random generator or seed.

    Returns
    -------
    step : NDArray[np.float64], shape (n_steps,)
    angle : NDArray[np.float64], shape (n_steps,)
    states : NDArray[np.int64], shape (n_steps,)
    """
    if n_steps < 1:
        raise ValueError(f"n_steps must be positive, got {n_steps}")
    generator = np.random.default_rng(rng)
    if covariates is not None and len(covariates) != n_steps:
        raise ValueError(f"covariates must have {n_steps} rows")
    gamma = params.transition_matrices(covariates)

    states = np.empty(n_steps, dtype=np.int64)
    states[0] = generator.choice(params.n_states, p=params.delta)
    for t in range(1, n_steps):
        states[t] = generator.choice(params.n_states, p=_gamma_at(gamma, t - 1)[states[t - 1]])

    mean = params.step_mean[states]
    sd = params.step_sd[states]
    step = generator.gamma(shape=(mean / sd) ** 2, scale=sd**2 / mean)
    if params.zero_mass is not None:
        step[generator.random(n_steps) < params.zero_mass[states]] = 0.0
    angle = wrap_angle(
        generator.vonmises(
            params.angle_mean[states], params.angle_concentration[states]
        )
    )
    return step, angle, states
