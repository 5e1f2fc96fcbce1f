"""
Circular statistics helpers for turning angles.

Angle Units
-----------
All functions work in radians. Turning angles are represented on
[-π, π], matching the convention of the trajectory module.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import i0e

__all__ = [
    "circular_mean",
    "mean_resultant_length",
    "von_mises_logpdf",
    "wrap_angle",
]


def wrap_angle(angles: ArrayLike) -> NDArray[np.float64]:
    """
    Wrap angles to [-π, π].

    Parameters
    ----------
    angles : array_like
        Angles in radians.

    Returns
    -------
    NDArray[np.float64]
        Wrapped angles. NaN is preserved.

    Examples
    --------
    >>> import numpy as np
    >>> bool(np.isclose(wrap_angle(3 * np.pi / 2), -np.pi / 2))
    True
    """
    angles = np.asarray(angles, dtype=np.float64)
    return np.arctan2(np.sin(angles), np.cos(angles))


def circular_mean(angles: ArrayLike) -> float:
    """Mean direction of ``angles`` in [-π, π], ignoring NaN.

    Returns NaN for empty input or a zero-length resultant.
    """
    angles = np.asarray(angles, dtype=np.float64).ravel()
    angles = angles[~np.isnan(angles)]
    if angles.size == 0:
        return np.nan
    s, c = np.sin(angles).sum(), np.cos(angles).sum()
    if np.hypot(s, c) == 0:
        return np.nan
    return float(np.arctan2(s, c))


def mean_resultant_length(angles: ArrayLike) -> float:
    """Mean resultant length R in [0, 1], ignoring NaN."""
    angles = np.asarray(angles, dtype=np.float64).ravel()
    angles = angles[~np.isnan(angles)]
    if angles.size == 0:
        return np.nan
    return float(np.hypot(np.cos(angles).mean(), np.sin(angles).mean()))


def von_mises_logpdf(
    angles: ArrayLike, mean: float, concentration: float
) -> NDArray[np.float64]:
    """
    Log density of the von Mises distribution on [-π, π].

    Parameters
    ----------
    angles : array_like
        Angles in radians.
    mean : float
        Mean direction in radians.
    concentration : float
        Concentration κ ≥ 0. κ = 0 is the uniform circular distribution.

    Returns
    -------
    NDArray[np.float64]
        Log densities, same shape as ``angles``.

    Notes
    -----
    Uses the exponentially scaled Bessel function ``i0e`` so that large
    concentrations do not overflow:

    .. math::

        \\log f(\\theta) = \\kappa(\\cos(\\theta - \\mu) - 1)
        - \\log(2\\pi I_0^{e}(\\kappa))
    """
    if concentration < 0:
        raise ValueError(f"concentration must be non-negative, got {concentration}")
    angles = np.asarray(angles, dtype=np.float64)
    return concentration * (np.cos(angles - mean) - 1.0) - np.log(
        2.0 * np.pi * i0e(concentration)
    )
