"""Tests for config.py: projection settings and input column mapping."""

import dataclasses

import pytest


class TestProjectionConfig:
    """Test ProjectionConfig validation and CRS construction."""

    def test_utm_zone(self):
        """A UTM zone builds a projected metric CRS."""
        from animovement.config import ProjectionConfig

        crs = ProjectionConfig(utm_zone=36, hemisphere="south").to_crs()
        assert crs.is_projected
        assert {axis.unit_name for axis in crs.axis_info} <= {"metre", "meter"}

    def test_epsg(self):
        """A projected EPSG code is accepted."""
        from animovement.config import ProjectionConfig

        assert ProjectionConfig(epsg=32633).to_crs().to_epsg() == 32633

    def test_other_ellipsoid(self):
        """Any PROJ ellipsoid name is accepted."""
        from animovement.config import ProjectionConfig

        assert ProjectionConfig(utm_zone=10, ellipsoid="GRS80").to_crs().is_projected

    @pytest.mark.parametrize("zone", [0, 61, -5])
    def test_zone_out_of_range(self, zone):
        """UTM zones run from 1 to 60."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="utm_zone"):
            ProjectionConfig(utm_zone=zone)

    @pytest.mark.parametrize("zone", [33.0, "33", True])
    def test_zone_must_be_integer(self, zone):
        """Non-integer zones are rejected."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="integer"):
            ProjectionConfig(utm_zone=zone)

    def test_bad_hemisphere(self):
        """Hemisphere is north or south."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="hemisphere"):
            ProjectionConfig(utm_zone=33, hemisphere="east")

    def test_unknown_ellipsoid(self):
        """Unknown ellipsoid names are rejected before any transformation."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="ellipsoid"):
            ProjectionConfig(utm_zone=33, ellipsoid="not-an-ellipsoid")

    def test_ambiguous(self):
        """EPSG and UTM parameters cannot both be given."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="Ambiguous"):
            ProjectionConfig(utm_zone=33, epsg=32633)

    def test_missing(self):
        """A projection must be specified."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="No projection"):
            ProjectionConfig()

    def test_geographic_epsg_rejected(self):
        """Degrees are not a planar metric system."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="not a projected"):
            ProjectionConfig(epsg=4326).to_crs()

    def test_non_metric_epsg_rejected(self):
        """Projected systems in feet are rejected."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="non-metric"):
            ProjectionConfig(epsg=2264).to_crs()

    def test_unknown_epsg(self):
        """Codes unknown to PROJ are configuration errors."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="Unknown EPSG"):
            ProjectionConfig(epsg=999999).to_crs()

    def test_configuration_error_is_value_error(self):
        """Callers catching ValueError also catch configuration errors."""
        from animovement.config import ProjectionConfig

        with pytest.raises(ValueError):
            ProjectionConfig(utm_zone=99)

    def test_from_mapping(self):
        """Settings can come from a plain mapping."""
        from animovement.config import ProjectionConfig

        config = ProjectionConfig.from_mapping({"utm_zone": 33, "hemisphere": "south"})
        assert config == ProjectionConfig(utm_zone=33, hemisphere="south")

    def test_from_mapping_unknown_key(self):
        """Misspelled settings are reported."""
        from animovement.config import ProjectionConfig
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="utm_zoen"):
            ProjectionConfig.from_mapping({"utm_zoen": 33})

    def test_frozen(self):
        """Configurations are immutable."""
        from animovement.config import ProjectionConfig

        config = ProjectionConfig(utm_zone=33)
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.utm_zone = 34


class TestTrackColumns:
    """Test TrackColumns."""

    def test_movebank_defaults(self):
        """Defaults follow the Movebank export."""
        from animovement.config import MOVEBANK_COLUMNS

        rename = MOVEBANK_COLUMNS.as_rename_map()
        assert rename["location-long"] == "longitude"
        assert rename["location-lat"] == "latitude"
        assert rename["individual-local-identifier"] == "individual_id"

    def test_duplicate_names(self):
        """Two fields cannot read the same column."""
        from animovement.config import TrackColumns
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="distinct"):
            TrackColumns(longitude="coord", latitude="coord")

    def test_empty_name(self):
        """Column names must be non-empty."""
        from animovement.config import TrackColumns
        from animovement.errors import ConfigurationError

        with pytest.raises(ConfigurationError, match="non-empty"):
            TrackColumns(timestamp="")
