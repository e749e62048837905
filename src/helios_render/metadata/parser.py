"""
Metadata Parser
===============

Typed, fallback-aware access to one image's calibration header.

The parser turns raw World Coordinate System tags into the quantities the
renderer needs: solar radius, distance to the sun, texture scale, offsets
and rotation center. Nothing is cached; a Header is immutable and every
value is cheap to re-derive.

Header Tags Consumed:
    DATE_OBS, DSUN_OBS, DSUN, SOLAR_R, NAXIS1, NAXIS2,
    CDELT1, CDELT2, CRPIX1, CRPIX2, CRVAL1, CRVAL2

Radius Fallback Chain (first success wins):
    1. atan2(1, distance_to_sun) in arcsec        (needs DSUN_OBS or DSUN)
    2. CDELT1 * SOLAR_R                           (needs CDELT1 and SOLAR_R)
    3. atan2(1, analytic Earth-Sun distance)      (needs a date only)

Design Rules:
    - Required tags raise MissingTagError, never default silently
    - Optional tags log a warning when the default is used
    - Reference pixels use the CRPIX - 0.5 convention

Example:
    parser = MetadataParser(header)
    parser.scale()
    parser.gl_offset_x()
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Optional, Tuple

from helios_render.metadata.distance import (
    SOLAR_RADIUS_M,
    datetime_to_millis,
    earth_distance,
)
from helios_render.models.header import Header


logger = logging.getLogger(__name__)


# Relates the on-model hemisphere size to the image framing
SCALE_DIVISOR = 4.0
ARCSEC_PER_DEGREE = 3600.0


class MetadataError(Exception):
    """Base class for header interpretation failures."""
    pass


class MissingTagError(MetadataError):
    """Raised when a required header tag is absent or not numeric."""

    def __init__(self, tag: str, value: Optional[str] = None) -> None:
        self.tag = tag
        self.value = value
        if value is None:
            message = f"Required header tag {tag} is missing"
        else:
            message = f"Header tag {tag} is not numeric: {value!r}"
        super().__init__(message)


class MissingDateError(MetadataError):
    """Raised when no observation date is available."""
    pass


class MetadataComputationError(MetadataError):
    """Raised when every fallback for a derived value has failed."""
    pass


def parse_date(value: str) -> datetime:
    """
    Parse a Helioviewer style UTC timestamp.

    The first six integer groups are read as year, month, day, hour,
    minute and second. Fractional seconds and zone suffixes are ignored;
    the result is always UTC.

    Args:
        value: e.g. "2024-05-10T12:00:09.350Z" or "2024/05/10 12:00:09"

    Returns:
        Timezone-aware UTC datetime

    Raises:
        ValueError: If fewer than six integer groups are present
    """
    numbers = [int(n) for n in re.findall(r"\d+", value)]
    if len(numbers) < 6:
        raise ValueError(f"Unrecognized date: {value!r}")
    year, month, day, hour, minute, second = numbers[:6]
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


class MetadataParser:
    """
    Derived view over a Header.

    Attributes:
        header: The wrapped calibration header
    """

    def __init__(self, header: Header) -> None:
        self.header = header

    def __repr__(self) -> str:
        return f"MetadataParser({self.header!r})"

    # -------------------------------------------------------------------------
    # Tag access
    # -------------------------------------------------------------------------

    def _lookup(self, tag: str) -> Optional[float]:
        """Numeric value of a tag, None if absent. Raises on non-numeric."""
        raw = self.header.get(tag)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            raise MissingTagError(tag, raw)

    def get_required(self, tag: str) -> float:
        """
        Numeric value of a required tag.

        Raises:
            MissingTagError: If the tag is absent or not numeric
        """
        value = self._lookup(tag)
        if value is None:
            raise MissingTagError(tag)
        return value

    def get_optional(self, tag: str, default: float) -> float:
        """Numeric value of a tag, or default (with a warning) if unusable."""
        try:
            value = self._lookup(tag)
        except MissingTagError as e:
            logger.warning(f"{e}, using default {default}")
            return default
        if value is None:
            logger.warning(f"Header tag {tag} is missing, using default {default}")
            return default
        return value

    # -------------------------------------------------------------------------
    # Basic quantities
    # -------------------------------------------------------------------------

    def date(self) -> datetime:
        """
        Observation time.

        Returns the externally supplied override when present,
        otherwise parses DATE_OBS.

        Raises:
            MissingDateError: If neither is available or DATE_OBS is invalid
        """
        if self.header.timestamp is not None:
            return self.header.timestamp
        raw = self.header.get("DATE_OBS")
        if raw is None:
            raise MissingDateError("Header has no DATE_OBS and no timestamp override")
        try:
            return parse_date(raw)
        except ValueError as e:
            raise MissingDateError(f"DATE_OBS is not a valid date: {e}")

    def width(self) -> float:
        return self.get_required("NAXIS1")

    def height(self) -> float:
        return self.get_required("NAXIS2")

    def radius_in_pixels(self) -> float:
        """Apparent solar radius in pixels (SOLAR_R)."""
        return self.get_required("SOLAR_R")

    def distance_to_sun(self) -> float:
        """
        Observer distance to the sun in solar radii.

        DSUN_OBS is preferred when present, numeric and nonzero, DSUN otherwise.

        Raises:
            MissingTagError: If neither tag is usable
        """
        try:
            dsun_obs = self._lookup("DSUN_OBS")
        except MissingTagError as e:
            logger.warning(f"{e}, falling back to DSUN")
            dsun_obs = None
        if dsun_obs:
            return dsun_obs / SOLAR_RADIUS_M
        return self.get_required("DSUN") / SOLAR_RADIUS_M

    def radius_in_arcsec(self) -> float:
        """
        Apparent solar radius in arcseconds, via the three tier fallback.

        A tier yielding a non-positive radius counts as failed.

        Raises:
            MetadataComputationError: If all tiers fail
        """
        try:
            radius = math.degrees(math.atan2(1, self.distance_to_sun())) * ARCSEC_PER_DEGREE
            if radius > 0:
                return radius
            logger.debug(f"Radius from observer distance is not positive: {radius}")
        except MissingTagError as e:
            logger.debug(f"Radius from observer distance unavailable: {e}")

        try:
            radius = self.get_required("CDELT1") * self.radius_in_pixels()
            if radius > 0:
                return radius
            logger.debug(f"Radius from SOLAR_R is not positive: {radius}")
        except MissingTagError as e:
            logger.debug(f"Radius from SOLAR_R unavailable: {e}")

        try:
            when = self.date()
        except MissingDateError as e:
            raise MetadataComputationError(
                f"Cannot compute solar radius, no distance, pixel radius or date: {e}"
            ) from e

        logger.warning(
            f"Header has no observer distance or pixel radius, "
            f"assuming Earth-Sun distance at {when.isoformat()}"
        )
        distance = earth_distance(datetime_to_millis(when))
        return math.degrees(math.atan2(1, distance)) * ARCSEC_PER_DEGREE

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def scale(self) -> float:
        """
        Texture scale for the hemisphere model.

        Raises:
            MetadataComputationError: If CDELT1 is zero
        """
        cdelt1 = self.get_required("CDELT1")
        if cdelt1 == 0:
            raise MetadataComputationError("Cannot compute scale, CDELT1 is zero")
        radius_pixels = self.radius_in_arcsec() / cdelt1
        return min(self.width(), self.height()) / (SCALE_DIVISOR * radius_pixels)

    def _arcsec_to_solrad(self, arcsec: float) -> float:
        return arcsec / self.radius_in_arcsec()

    @staticmethod
    def _pixel_to_arcsec(pixel: float, ref_pixel: float, ref_value: float, delta: float) -> float:
        return (pixel - ref_pixel) * delta + ref_value

    def _pixel_to_solrad(self, pixel: float, ref_pixel: float, ref_value: float, delta: float) -> float:
        return self._arcsec_to_solrad(self._pixel_to_arcsec(pixel, ref_pixel, ref_value, delta))

    def _scene_offset(self, axis: int, dimension: float) -> float:
        ref_pixel = self.get_required(f"CRPIX{axis}") - 0.5
        ref_value = self.get_required(f"CRVAL{axis}")
        delta = self.get_required(f"CDELT{axis}")
        return (
            self._pixel_to_solrad(ref_pixel, ref_pixel, ref_value, delta)
            - self._pixel_to_solrad(ref_pixel, dimension / 2, 0, delta)
        )

    def scene_offset_x(self) -> float:
        """Horizontal plane position in solar radii."""
        return self._scene_offset(1, self.width())

    def scene_offset_y(self) -> float:
        """Vertical plane position in solar radii."""
        return self._scene_offset(2, self.height())

    def _gl_offset(self, axis: int, dimension: float) -> float:
        ref_pixel = self.get_required(f"CRPIX{axis}")
        ref_value = self.get_required(f"CRVAL{axis}")
        delta = self.get_required(f"CDELT{axis}")
        return (ref_pixel - 0.5) / dimension - ref_value / (delta * dimension)

    def gl_offset_x(self) -> float:
        """Horizontal texture offset for the hemisphere model, uv units."""
        return self._gl_offset(1, self.width())

    def gl_offset_y(self) -> float:
        """Vertical texture offset for the hemisphere model, uv units."""
        return self._gl_offset(2, self.height())

    def center_of_rotation(self) -> Tuple[float, float]:
        """Rotation center in uv units."""
        return (
            (self.get_required("CRPIX1") - 0.5) / self.width(),
            (self.get_required("CRPIX2") - 0.5) / self.height(),
        )
