"""
Statistical methods.

Submodules
----------
circular : Angle wrapping, circular mean, von Mises density

Imports
-------
>>> from animovement.stats import wrap_angle, von_mises_logpdf
"""

from animovement.stats.circular import (
    circular_mean,
    mean_resultant_length,
    von_mises_logpdf,
    wrap_angle,
)

__all__ = [
    "circular_mean",
    "mean_resultant_length",
    "von_mises_logpdf",
    "wrap_angle",
]
