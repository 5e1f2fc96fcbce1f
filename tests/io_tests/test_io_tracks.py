"""Tests for io/tracks.py: reading, cleaning, reprojecting and writing tracks."""

import warnings

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose


class TestReadTrack:
    """Test read_track on Movebank-style files."""

    def test_incomplete_row_is_dropped_with_warning(self, movebank_file):
        """A row missing latitude is dropped and reported."""
        from animovement.errors import IncompleteRowsWarning
        from animovement.io import read_track

        with pytest.warns(IncompleteRowsWarning, match="Dropped 1 of 6 rows"):
            track = read_track(movebank_file)
        assert len(track) == 5
        assert not track[["timestamp", "longitude", "latitude"]].isna().any(axis=None)

    def test_sorted_by_individual_and_time(self, movebank_file):
        """Rows are grouped by individual with non-decreasing times."""
        from animovement.io import read_track

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            track = read_track(movebank_file)
        assert list(track["individual_id"]) == ["A", "A", "A", "B", "B"]
        for _, group in track.groupby("individual_id"):
            assert group["timestamp"].is_monotonic_increasing

    def test_canonical_columns(self, movebank_file):
        """Input columns are renamed and extra columns dropped."""
        from animovement.io import TRACK_COLUMNS, read_track

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            track = read_track(movebank_file)
        assert tuple(track.columns) == TRACK_COLUMNS
        assert pd.api.types.is_datetime64_any_dtype(track["timestamp"])

    def test_projection_adds_planar_coordinates(self, movebank_file):
        """With a projection the table gains x and y in metres."""
        from animovement import ProjectionConfig
        from animovement.io import read_track

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            track = read_track(movebank_file, projection=ProjectionConfig(utm_zone=33))
        assert {"x", "y"} <= set(track.columns)
        # 0.01 degree in both directions at 44 N is roughly 1.4 km
        a = track[track["individual_id"] == "A"]
        step = np.hypot(np.diff(a["x"]), np.diff(a["y"]))
        assert np.all((step > 1000) & (step < 2000))

    def test_custom_columns(self, tmp_path):
        """A TrackColumns mapping adapts to other file layouts."""
        from animovement import TrackColumns
        from animovement.io import read_track

        path = tmp_path / "custom.csv"
        pd.DataFrame(
            {
                "time": ["2020-01-01 00:00", "2020-01-01 01:00"],
                "lon": [10.0, 10.1],
                "lat": [50.0, 50.0],
                "animal": ["x1", "x1"],
                "tag": ["g", "g"],
            }
        ).to_csv(path, index=False)
        columns = TrackColumns(
            timestamp="time",
            longitude="lon",
            latitude="lat",
            individual_id="animal",
            tag_id="tag",
        )
        track = read_track(path, columns=columns, sep=",")
        assert len(track) == 2
        assert list(track["individual_id"]) == ["x1", "x1"]


class TestStandardizeTrack:
    """Test standardize_track and drop_incomplete_rows."""

    def _raw(self, **overrides):
        values = {
            "timestamp": ["2020-01-01 00:00", "2020-01-01 01:00", "2020-01-01 02:00"],
            "location-long": [10.0, 10.1, 10.2],
            "location-lat": [50.0, 50.0, 50.0],
            "individual-local-identifier": ["a", "a", "a"],
            "tag-local-identifier": ["t", "t", "t"],
        }
        values.update(overrides)
        return pd.DataFrame(values)

    def test_missing_column_raises_configuration_error(self):
        """A configured column absent from the table is a configuration error."""
        from animovement.errors import ConfigurationError
        from animovement.io import standardize_track

        with pytest.raises(ConfigurationError, match="location-lat"):
            standardize_track(self._raw().drop(columns=["location-lat"]))

    def test_out_of_range_coordinates_are_dropped(self):
        """Longitudes beyond 180 degrees are treated as missing."""
        from animovement.errors import IncompleteRowsWarning
        from animovement.io import standardize_track

        raw = self._raw(**{"location-long": [10.0, 999.0, 10.2]})
        with pytest.warns(IncompleteRowsWarning, match="longitude=1"):
            track = standardize_track(raw)
        assert len(track) == 2

    def test_unparseable_timestamp_is_dropped(self):
        """Malformed timestamps are treated as missing."""
        from animovement.errors import IncompleteRowsWarning
        from animovement.io import standardize_track

        raw = self._raw(timestamp=["2020-01-01 00:00", "not a time", "2020-01-01 02:00"])
        with pytest.warns(IncompleteRowsWarning, match="timestamp=1"):
            track = standardize_track(raw)
        assert len(track) == 2

    def test_complete_table_does_not_warn(self):
        """Nothing is reported when nothing is dropped."""
        from animovement.io import standardize_track

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            track = standardize_track(self._raw())
        assert len(track) == 3

    def test_drop_incomplete_rows_custom_fields(self):
        """Only the listed fields are required."""
        from animovement.io import drop_incomplete_rows

        table = pd.DataFrame({"a": [1.0, np.nan], "b": [np.nan, np.nan]})
        with pytest.warns(UserWarning):
            kept = drop_incomplete_rows(table, fields=("a",))
        assert len(kept) == 1


class TestProjectTrack:
    """Test project_track."""

    def test_central_meridian_on_equator(self):
        """The central meridian of a UTM zone maps to the false easting."""
        from animovement import ProjectionConfig
        from animovement.io import project_track

        track = pd.DataFrame({"longitude": [15.0], "latitude": [0.0]})
        projected = project_track(track, ProjectionConfig(utm_zone=33))
        assert_allclose(projected["x"], 500000.0, atol=1e-3)
        assert_allclose(projected["y"], 0.0, atol=1e-3)

    def test_southern_hemisphere_false_northing(self):
        """Southern zones add a false northing of 10,000 km."""
        from animovement import ProjectionConfig
        from animovement.io import project_track

        track = pd.DataFrame({"longitude": [15.0], "latitude": [-10.0]})
        projected = project_track(
            track, ProjectionConfig(utm_zone=33, hemisphere="south")
        )
        assert 8.0e6 < projected["y"].iloc[0] < 9.0e6

    def test_epsg_matches_utm_parameters(self):
        """EPSG 32633 and zone 33 north give the same coordinates."""
        from animovement import ProjectionConfig
        from animovement.io import project_track

        track = pd.DataFrame({"longitude": [14.3, 15.7], "latitude": [45.2, 46.1]})
        by_zone = project_track(track, ProjectionConfig(utm_zone=33))
        by_epsg = project_track(track, ProjectionConfig(epsg=32633))
        assert_allclose(by_zone[["x", "y"]], by_epsg[["x", "y"]], atol=1e-3)

    def test_missing_coordinates_raise(self):
        """Incomplete rows must be dropped before projecting."""
        from animovement import ProjectionConfig
        from animovement.io import project_track

        track = pd.DataFrame({"longitude": [15.0, np.nan], "latitude": [0.0, 1.0]})
        with pytest.raises(ValueError, match="drop_incomplete_rows"):
            project_track(track, ProjectionConfig(utm_zone=33))

    def test_input_is_not_modified(self):
        """Projection returns a new table."""
        from animovement import ProjectionConfig
        from animovement.io import project_track

        track = pd.DataFrame({"longitude": [15.0], "latitude": [0.0]})
        project_track(track, ProjectionConfig(utm_zone=33))
        assert "x" not in track.columns


class TestWriteTable:
    """Test write_table."""

    def test_writes_dataframe(self, tmp_path):
        """A DataFrame is written as CSV into a new directory."""
        from animovement.io import write_table

        table = pd.DataFrame({"a": [1, 2], "b": [3.0, 4.0]})
        path = write_table(table, tmp_path / "out" / "table.csv")
        assert path.exists()
        pd.testing.assert_frame_equal(pd.read_csv(path), table)

    def test_writes_result_objects(self, tmp_path):
        """Result objects are converted with to_dataframe()."""
        from animovement.behavior.fpt import first_passage_time
        from animovement.io import write_table

        positions = np.column_stack([np.arange(10.0), np.zeros(10)])
        result = first_passage_time(positions, np.arange(10.0), radii=[1.5, 2.5])
        path = write_table(result, tmp_path / "fpt.csv")
        written = pd.read_csv(path)
        assert list(written["radius"]) == [1.5, 2.5]

    def test_rejects_other_objects(self, tmp_path):
        """Only tables and result objects can be written."""
        from animovement.io import write_table

        with pytest.raises(TypeError, match="to_dataframe"):
            write_table([1, 2, 3], tmp_path / "x.csv")
