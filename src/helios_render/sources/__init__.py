"""
Sources Module
==============

Image catalogues that populate frame stores.

Components:
    - ImageSource: Protocol of the fetch collaborator
    - HelioviewerClient: Helioviewer HTTP API implementation
    - FetchError: Raised when a catalogue cannot deliver
"""

from helios_render.sources.base import ImageSource
from helios_render.sources.helioviewer import (
    FetchError,
    HelioviewerClient,
    parse_header_xml,
    parse_image_record,
)

__all__ = [
    "ImageSource",
    "HelioviewerClient",
    "FetchError",
    "parse_header_xml",
    "parse_image_record",
]
