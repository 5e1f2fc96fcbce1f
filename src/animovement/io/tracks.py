"""Reading, validating and reprojecting GPS track tables.

A track table is a :class:`pandas.DataFrame` with the canonical columns
``individual_id``, ``tag_id``, ``timestamp``, ``longitude`` and ``latitude``
(see :data:`TRACK_COLUMNS`), sorted by individual and time. After
:func:`project_track` it also carries planar ``x`` and ``y`` columns in
metres, which every distance-based analysis uses.

Typical use
-----------
>>> from animovement.config import ProjectionConfig
>>> from animovement.io import read_track
>>> track = read_track(
...     "buffalo.tsv", projection=ProjectionConfig(utm_zone=36, hemisphere="south")
... )  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import warnings
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from animovement.config import MOVEBANK_COLUMNS, ProjectionConfig, TrackColumns
from animovement.errors import ConfigurationError, IncompleteRowsWarning

logger = logging.getLogger(__name__)

TRACK_COLUMNS = ("individual_id", "tag_id", "timestamp", "longitude", "latitude")
REQUIRED_FIELDS = ("individual_id", "timestamp", "longitude", "latitude")
GEOGRAPHIC_CRS = "EPSG:4326"


def read_track(
    path: str | os.PathLike[str],
    *,
    columns: TrackColumns = MOVEBANK_COLUMNS,
    sep: str = "\t",
    projection: ProjectionConfig | None = None,
) -> pd.DataFrame:
    """
    Read a delimited track file into a canonical track table.

    Parameters
    ----------
    path : str or PathLike
        Path to the delimited text file.
    columns : TrackColumns, optional
        Mapping from input column names to track fields. Defaults to the
        Movebank export names.
    sep : str, default="\\t"
        Field delimiter.
    projection : ProjectionConfig, optional
        If given, the table is reprojected and gains ``x``/``y`` columns.

    Returns
    -------
    pd.DataFrame
        Track table with incomplete rows removed, sorted by
        ``individual_id`` then ``timestamp``.

    Raises
    ------
    ConfigurationError
        If a configured column is missing from the file.

    Warns
    -----
    IncompleteRowsWarning
        If rows with missing or malformed required fields were dropped.
    """
    path = Path(path)
    raw = pd.read_csv(path, sep=sep, low_memory=False)
    logger.debug("Read %d rows from %s", len(raw), path)
    track = standardize_track(raw, columns=columns)
    if projection is not None:
        track = project_track(track, projection)
    return track


def standardize_track(
    raw: pd.DataFrame,
    *,
    columns: TrackColumns = MOVEBANK_COLUMNS,
) -> pd.DataFrame:
    """
    Rename, coerce and filter a raw table into a canonical track table.

    Timestamps and coordinates that cannot be parsed, and coordinates outside
    the valid geographic range, are treated as missing. Rows missing any
    required field are dropped and counted.

    Parameters
    ----------
    raw : pd.DataFrame
        Table with the columns named in ``columns``.
    columns : TrackColumns, optional
        Input column mapping.

    Returns
    -------
    pd.DataFrame
        Canonical track table.

    Raises
    ------
    ConfigurationError
        If a configured column is missing.
    """
    rename = columns.as_rename_map()
    missing = [name for name in rename if name not in raw.columns]
    if missing:
        raise ConfigurationError(
            f"Missing required columns: {missing}.\n"
            f"  Available columns: {list(raw.columns)}\n"
            "  HOW: Pass a TrackColumns mapping that matches the file header."
        )

    track = raw[list(rename)].rename(columns=rename)
    track = track.loc[:, list(TRACK_COLUMNS)].copy()
    track["timestamp"] = pd.to_datetime(track["timestamp"], errors="coerce")
    track["longitude"] = pd.to_numeric(track["longitude"], errors="coerce")
    track["latitude"] = pd.to_numeric(track["latitude"], errors="coerce")

    out_of_range = (track["longitude"].abs() > 180) | (track["latitude"].abs() > 90)
    track.loc[out_of_range, ["longitude", "latitude"]] = np.nan

    track = drop_incomplete_rows(track)
    return sort_track(track)


def drop_incomplete_rows(
    track: pd.DataFrame,
    fields: tuple[str, ...] = REQUIRED_FIELDS,
) -> pd.DataFrame:
    """
    Drop rows with a missing value in any of ``fields``.

    Parameters
    ----------
    track : pd.DataFrame
        Track table.
    fields : tuple of str
        Columns that must be present for a row to be kept.

    Returns
    -------
    pd.DataFrame
        Copy of ``track`` without incomplete rows.

    Warns
    -----
    IncompleteRowsWarning
        With the number of dropped rows, if any were dropped.
    """
    incomplete = track[list(fields)].isna().any(axis=1)
    n_dropped = int(incomplete.sum())
    if n_dropped:
        counts = track.loc[incomplete, list(fields)].isna().sum()
        detail = ", ".join(f"{name}={int(n)}" for name, n in counts.items() if n)
        warnings.warn(
            f"Dropped {n_dropped} of {len(track)} rows with missing values "
            f"({detail}).",
            IncompleteRowsWarning,
            stacklevel=2,
        )
        logger.info("Dropped %d incomplete rows (%s)", n_dropped, detail)
    return track.loc[~incomplete].copy()


def sort_track(track: pd.DataFrame) -> pd.DataFrame:
    """Sort by individual then timestamp so times are non-decreasing per individual."""
    return track.sort_values(
        ["individual_id", "timestamp"], kind="mergesort"
    ).reset_index(drop=True)


def project_track(track: pd.DataFrame, projection: ProjectionConfig) -> pd.DataFrame:
    """
    Reproject geographic coordinates to a planar metric system.

    Parameters
    ----------
    track : pd.DataFrame
        Track table with ``longitude``/``latitude`` in WGS84 degrees.
    projection : ProjectionConfig
        Target projection.

    Returns
    -------
    pd.DataFrame
        Copy of ``track`` with ``x`` and ``y`` columns in metres.

    Raises
    ------
    ConfigurationError
        If the projection cannot be built.
    ValueError
        If the track has missing coordinates.
    """
    from pyproj import Transformer

    if track[["longitude", "latitude"]].isna().any(axis=None):
        raise ValueError(
            "Cannot project a track with missing coordinates.\n"
            "  HOW: Call drop_incomplete_rows(track) first."
        )

    crs = projection.to_crs()
    transformer = Transformer.from_crs(GEOGRAPHIC_CRS, crs, always_xy=True)
    x, y = transformer.transform(
        track["longitude"].to_numpy(dtype=np.float64),
        track["latitude"].to_numpy(dtype=np.float64),
    )
    projected = track.copy()
    projected["x"] = np.asarray(x, dtype=np.float64)
    projected["y"] = np.asarray(y, dtype=np.float64)
    logger.debug("Projected %d fixes to %s", len(projected), crs.name)
    return projected


def write_table(table: Any, path: str | os.PathLike[str]) -> Path:
    """
    Write an analysis result table to CSV.

    Parameters
    ----------
    table : pd.DataFrame or object with ``to_dataframe()``
        Table to write. Result objects are converted with ``to_dataframe()``.
    path : str or PathLike
        Output file path. Parent directories are created.

    Returns
    -------
    Path
        The written path.
    """
    if not isinstance(table, pd.DataFrame):
        to_dataframe = getattr(table, "to_dataframe", None)
        if to_dataframe is None:
            raise TypeError(
                f"Expected pd.DataFrame or an object with to_dataframe(), "
                f"got {type(table).__name__}."
            )
        table = to_dataframe()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False)
    logger.debug("Wrote %d rows to %s", len(table), path)
    return path
