"""
Input/Output utilities.

This module reads GPS track files into canonical track tables, reprojects
them to a planar metric coordinate system, and writes result tables.

Submodules
----------
tracks : read_track, standardize_track, project_track, write_table
"""

from animovement.io.tracks import (
    TRACK_COLUMNS,
    drop_incomplete_rows,
    project_track,
    read_track,
    sort_track,
    standardize_track,
    write_table,
)

__all__ = [
    "TRACK_COLUMNS",
    "drop_incomplete_rows",
    "project_track",
    "read_track",
    "sort_track",
    "standardize_track",
    "write_table",
]
