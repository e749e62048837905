"""
Source Classification
=====================

Maps a Helioviewer source id to the geometry its images are drawn on.

Coronagraphs image the corona around an occulted disk; their images are
drawn on a flat plane. Everything else is solar disk imagery and is
mapped onto the hemisphere model.

See https://api.helioviewer.org/docs/v2/appendix/data_sources.html
"""

from typing import FrozenSet

from helios_render.models.render import GeometryClass


PLANE_SOURCES: FrozenSet[int] = frozenset({
    4,   # SOHO LASCO C2
    5,   # SOHO LASCO C3
    28,  # STEREO-A COR1
    29,  # STEREO-A COR2
    30,  # STEREO-B COR1
    31,  # STEREO-B COR2
})


def classify(source_id: int) -> GeometryClass:
    """Geometry class for a source id. Unknown ids are spheres."""
    if source_id in PLANE_SOURCES:
        return GeometryClass.PLANE
    return GeometryClass.SPHERE


def is_plane_source(source_id: int) -> bool:
    return classify(source_id) is GeometryClass.PLANE
