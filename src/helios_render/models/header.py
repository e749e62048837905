"""
Image Header
============

Immutable calibration header for one observatory image.

A Header is the raw tag -> string mapping that accompanies an image
(FITS/JP2 World Coordinate System fields such as NAXIS1, CDELT1, CRPIX1,
DSUN_OBS). It is never interpreted here; see
helios_render.metadata.parser.MetadataParser for typed access.

Design Rules:
    - Tags are stored verbatim as strings
    - The mapping is read-only once constructed
    - An optional timestamp override replaces DATE_OBS when present
"""

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional


def normalize_tag(tag: str) -> str:
    """Normalize a FITS keyword to the form used as a Header key."""
    return tag.strip().upper().replace("-", "_")


@dataclass(frozen=True, slots=True)
class Header:
    """
    Calibration metadata for a single image.

    Attributes:
        tags: Read-only mapping of normalized tag name to raw string value
        timestamp: Externally supplied observation time. When set it takes
            precedence over the DATE_OBS tag.
    """

    tags: Mapping[str, str]
    timestamp: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "tags",
            MappingProxyType({normalize_tag(k): str(v) for k, v in self.tags.items()}),
        )

    def get(self, tag: str) -> Optional[str]:
        """Raw value for a tag, or None if absent."""
        return self.tags.get(normalize_tag(tag))

    def __contains__(self, tag: str) -> bool:
        return normalize_tag(tag) in self.tags

    def __len__(self) -> int:
        return len(self.tags)

    def __repr__(self) -> str:
        return f"Header(tags={len(self.tags)}, timestamp={self.timestamp})"
