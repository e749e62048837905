"""
Earth-Sun Distance
==================

Analytic Earth-Sun distance used as the last-resort fallback when an image
header carries no observer distance and no pixel radius.

The series is the low-order solar theory used by JHelioviewer
(Sun.getEarthDistance): mean anomaly, eccentricity and equation of
center are evaluated as polynomials in Julian centuries since JD 2415020,
then the radius vector follows from the ellipse equation.

Formulas:
    M = 358.47583 + 35999.04975 T - 0.000150 T^2 - 0.0000033 T^3   (deg)
    e = 0.01675104 - 0.0000418 T - 0.000000126 T^2
    C = (1.919460 - 0.004789 T - 0.000014 T^2) sin M
        + (0.020094 - 0.000100 T) sin 2M + 0.000293 sin 3M
    r = 1.0000002 (1 - e^2) / (1 + e cos(M + C))                     (AU)

Note:
    This is a coarse approximation. It is good enough to size a texture
    on a model but must not be used where sub-arcsecond geometry matters.
"""

from datetime import datetime, timezone
from typing import Union

import numpy as np


# =============================================================================
# Constants
# =============================================================================

# Julian date of the MJD origin
DJM0 = 2400000.5
UNIX_EPOCH_MJD = 2440587.5 - DJM0
# Reference epoch of the series (JD 1900 January 0.5)
EPOCH_1900_JD = 2415020.0
DAY_IN_MILLIS = 86_400_000.0
JULIAN_CENTURY_DAYS = 36525.0

# Photospheric solar radius, IAU 2015 Resolution B3
SOLAR_RADIUS_KM = 695_700.0
SOLAR_RADIUS_M = SOLAR_RADIUS_KM * 1e3
MEAN_EARTH_DISTANCE_M = 149_597_870_700.0
MEAN_EARTH_DISTANCE_SOLRAD = MEAN_EARTH_DISTANCE_M / SOLAR_RADIUS_M

ArrayLike = Union[float, np.ndarray]


def milli_to_mjd(millis: ArrayLike) -> ArrayLike:
    """Convert unix epoch milliseconds to a Modified Julian Date."""
    return UNIX_EPOCH_MJD + np.asarray(millis, dtype=np.float64) / DAY_IN_MILLIS


def mjd_to_centuries(mjd: ArrayLike, epoch_jd: float = EPOCH_1900_JD) -> ArrayLike:
    """Julian centuries elapsed between epoch_jd and the given MJD."""
    return (DJM0 - epoch_jd + mjd) / JULIAN_CENTURY_DAYS


def datetime_to_millis(value: datetime) -> float:
    """Unix epoch milliseconds of a datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp() * 1000.0


def earth_distance(epoch_millis: ArrayLike) -> ArrayLike:
    """
    Earth-Sun distance in solar radii.

    Args:
        epoch_millis: Unix epoch milliseconds, scalar or numpy array

    Returns:
        Distance in solar radius units. A float for scalar input,
        an ndarray of the same shape for array input.
    """
    t = mjd_to_centuries(milli_to_mjd(epoch_millis))

    mean_anomaly = 358.47583 + 35999.04975 * t - 0.000150 * t**2 - 0.0000033 * t**3
    eccentricity = 0.01675104 - 0.0000418 * t - 0.000000126 * t**2

    m = np.radians(mean_anomaly)
    center = (
        (1.919460 - 0.004789 * t - 0.000014 * t**2) * np.sin(m)
        + (0.020094 - 0.000100 * t) * np.sin(2 * m)
        + 0.000293 * np.sin(3 * m)
    )
    true_anomaly = np.radians(mean_anomaly + center)

    distance_au = (
        1.0000002 * (1 - eccentricity**2) / (1 + eccentricity * np.cos(true_anomaly))
    )
    distance = distance_au * MEAN_EARTH_DISTANCE_SOLRAD

    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def earth_distance_at(when: datetime) -> float:
    """Earth-Sun distance in solar radii at a datetime."""
    return earth_distance(datetime_to_millis(when))
