"""Exception and warning types raised by animovement.

All errors subclass the builtin exception a caller would naturally catch
(``ValueError`` for bad inputs), so code that already handles ``ValueError``
keeps working. Warnings are used for data-quality notices that must be
surfaced without stopping the analysis.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when external configuration is unsupported or ambiguous.

    Typical causes are projection metadata that cannot be turned into a
    planar metric coordinate reference system (UTM zone outside 1-60, an
    unknown ellipsoid, both an EPSG code and a UTM zone given) and input
    tables missing a configured column.

    See Also
    --------
    animovement.config.ProjectionConfig : Projection parameters
    animovement.config.TrackColumns : Input column mapping
    """

    pass


class InsufficientDataError(ValueError):
    """Raised when an analysis is asked for more data than is available.

    Rather than returning a truncated or empty result, analyses raise this
    error so the analyst can choose a smaller window, a different
    individual, or a longer track.

    Parameters
    ----------
    what : str
        Short description of the analysis that needed the data
        (e.g., ``"window sweep"``).
    n_available : int
        Number of usable samples that were provided.
    n_required : int
        Minimum number of samples the analysis needs.
    hint : str, optional
        Suggested fix appended to the message.

    Attributes
    ----------
    n_available : int
    n_required : int

    Examples
    --------
    >>> from animovement.errors import InsufficientDataError
    >>> raise InsufficientDataError("window sweep", 20, 50)
    Traceback (most recent call last):
        ...
    animovement.errors.InsufficientDataError: window sweep needs at least 50 samples, got 20.
    """

    def __init__(
        self, what: str, n_available: int, n_required: int, hint: str = ""
    ) -> None:
        message = f"{what} needs at least {n_required} samples, got {n_available}."
        if hint:
            message += f"\n  HOW: {hint}"
        super().__init__(message)
        self.n_available = n_available
        self.n_required = n_required


class ConvergenceWarning(UserWarning):
    """Issued when a numerical fit stops before meeting its convergence criterion.

    The fit result is still returned; inspect its ``converged``,
    ``log_likelihood`` and ``n_iterations`` attributes and decide whether to
    refit with different starting values.
    """


class IncompleteRowsWarning(UserWarning):
    """Issued when input rows with missing required fields are dropped."""
