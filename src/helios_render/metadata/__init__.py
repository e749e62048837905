"""
Metadata Module
===============

Interpretation of observatory calibration headers.

Components:
    - earth_distance: Analytic Earth-Sun distance in solar radii
    - MetadataParser: Typed header accessors with fallback chains
    - MissingTagError, MissingDateError, MetadataComputationError:
      failures raised by the parser (all MetadataError subclasses)
"""

from helios_render.metadata.distance import (
    MEAN_EARTH_DISTANCE_SOLRAD,
    SOLAR_RADIUS_M,
    earth_distance,
    earth_distance_at,
)
from helios_render.metadata.parser import (
    MetadataComputationError,
    MetadataError,
    MetadataParser,
    MissingDateError,
    MissingTagError,
    parse_date,
)

__all__ = [
    "MEAN_EARTH_DISTANCE_SOLRAD",
    "SOLAR_RADIUS_M",
    "earth_distance",
    "earth_distance_at",
    "MetadataParser",
    "MetadataError",
    "MissingTagError",
    "MissingDateError",
    "MetadataComputationError",
    "parse_date",
]
