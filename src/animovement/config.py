"""Configuration objects for track loading and reprojection.

Projection parameters are external configuration: they are supplied by the
analyst (usually from the study metadata) and are never inferred from the
data. Both classes validate eagerly and raise
:class:`~animovement.errors.ConfigurationError` so a bad configuration fails
before any file is read.

Examples
--------
>>> from animovement.config import ProjectionConfig
>>> config = ProjectionConfig(utm_zone=33, hemisphere="north")
>>> config.to_crs().is_projected
True
>>> ProjectionConfig(epsg=32633).to_crs().to_epsg()
32633
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Literal

from animovement.errors import ConfigurationError

if TYPE_CHECKING:
    import pyproj

_METRIC_UNITS = {"metre", "meter", "m"}


@dataclass(frozen=True)
class ProjectionConfig:
    """Planar metric projection used before any distance computation.

    Exactly one of ``epsg`` or ``utm_zone`` must be given.

    Parameters
    ----------
    utm_zone : int, optional
        UTM zone number in [1, 60].
    hemisphere : {"north", "south"}, default="north"
        Hemisphere of the UTM zone. Ignored when ``epsg`` is given.
    ellipsoid : str, default="WGS84"
        PROJ ellipsoid name (e.g. ``"WGS84"``, ``"GRS80"``, ``"intl"``).
        Ignored when ``epsg`` is given.
    epsg : int, optional
        EPSG code of a projected CRS with metre units.

    Raises
    ------
    ConfigurationError
        If the parameters are missing, out of range, or ambiguous.
    """

    utm_zone: int | None = None
    hemisphere: Literal["north", "south"] = "north"
    ellipsoid: str = "WGS84"
    epsg: int | None = None

    def __post_init__(self) -> None:
        if self.epsg is not None and self.utm_zone is not None:
            raise ConfigurationError(
                f"Ambiguous projection: both epsg={self.epsg} and "
                f"utm_zone={self.utm_zone} were given.\n"
                "  HOW: Pass either an EPSG code or UTM zone parameters, not both."
            )
        if self.epsg is None and self.utm_zone is None:
            raise ConfigurationError(
                "No projection given.\n"
                "  WHY: Distances are computed in a planar metric system.\n"
                "  HOW: Pass utm_zone=<1-60> (with hemisphere) or epsg=<code>."
            )
        if self.utm_zone is not None:
            if isinstance(self.utm_zone, bool) or not isinstance(self.utm_zone, int):
                raise ConfigurationError(
                    f"utm_zone must be an integer, got {self.utm_zone!r}."
                )
            if not 1 <= self.utm_zone <= 60:
                raise ConfigurationError(
                    f"utm_zone must be in [1, 60], got {self.utm_zone}."
                )
            if self.hemisphere not in ("north", "south"):
                raise ConfigurationError(
                    f"hemisphere must be 'north' or 'south', got {self.hemisphere!r}."
                )
            from pyproj.list import get_ellps_map

            if self.ellipsoid not in get_ellps_map():
                raise ConfigurationError(
                    f"Unknown ellipsoid {self.ellipsoid!r}.\n"
                    "  HOW: Use a PROJ ellipsoid name such as 'WGS84' or 'GRS80'."
                )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> ProjectionConfig:
        """Build a config from a plain mapping (e.g. a parsed settings file).

        Parameters
        ----------
        mapping : Mapping[str, Any]
            Keys must be a subset of the dataclass fields.

        Returns
        -------
        ProjectionConfig

        Raises
        ------
        ConfigurationError
            If the mapping contains unknown keys or invalid values.
        """
        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - allowed)
        if unknown:
            raise ConfigurationError(
                f"Unknown projection settings: {unknown}. "
                f"Allowed keys: {sorted(allowed)}."
            )
        return cls(**dict(mapping))

    def to_crs(self) -> pyproj.CRS:
        """Return the target coordinate reference system.

        Returns
        -------
        pyproj.CRS
            A projected CRS whose axes are in metres.

        Raises
        ------
        ConfigurationError
            If the EPSG code is unknown, geographic, or not metric.
        """
        import pyproj
        from pyproj.exceptions import CRSError

        if self.epsg is not None:
            try:
                crs = pyproj.CRS.from_epsg(self.epsg)
            except CRSError as e:
                raise ConfigurationError(f"Unknown EPSG code {self.epsg}.") from e
        else:
            crs = pyproj.CRS.from_dict(
                {
                    "proj": "utm",
                    "zone": self.utm_zone,
                    "south": self.hemisphere == "south",
                    "ellps": self.ellipsoid,
                    "units": "m",
                }
            )

        if not crs.is_projected:
            raise ConfigurationError(
                f"CRS {crs.name!r} is not a projected coordinate system.\n"
                "  WHY: Step lengths and passage radii must be in metres.\n"
                "  HOW: Use a UTM zone or a projected EPSG code."
            )
        units = {axis.unit_name.lower() for axis in crs.axis_info}
        if not units <= _METRIC_UNITS:
            raise ConfigurationError(
                f"CRS {crs.name!r} has non-metric axis units {sorted(units)}."
            )
        return crs


@dataclass(frozen=True)
class TrackColumns:
    """Names of the input columns holding each required field.

    Defaults follow the Movebank export format.

    Parameters
    ----------
    timestamp : str
    longitude : str
    latitude : str
    individual_id : str
    tag_id : str
    """

    timestamp: str = "timestamp"
    longitude: str = "location-long"
    latitude: str = "location-lat"
    individual_id: str = "individual-local-identifier"
    tag_id: str = "tag-local-identifier"

    def __post_init__(self) -> None:
        names = [getattr(self, f.name) for f in fields(self)]
        if any(not isinstance(name, str) or not name for name in names):
            raise ConfigurationError(
                f"Column names must be non-empty strings, got {names}."
            )
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Column names must be distinct, got {names}.")

    def as_rename_map(self) -> dict[str, str]:
        """Map input column names to the canonical track column names."""
        return {getattr(self, f.name): f.name for f in fields(self)}


MOVEBANK_COLUMNS = TrackColumns()
