"""
Coordinate utilities.

Great-circle distance between WGS84 points, and the planar
translate/scale/rotate transform used to relocate imported tracklogs.
The transform treats longitude as x and latitude as y, which is only
reasonable over small areas.
"""

import math
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from fieldlog.models.imports import TransformOptions
from fieldlog.models.tracklog import GeoPoint

EARTH_RADIUS_M = 6371000  # Earth's mean radius in meters


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(lat2 - lat1)
    dlon = np.radians(lon2 - lon1)

    a = np.sin(dlat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return float(EARTH_RADIUS_M * c)


def haversine_distances(
    lat: NDArray[np.float64],
    lon: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Per-segment great-circle distances along a polyline.

    Args:
        lat: Latitude array in degrees
        lon: Longitude array in degrees

    Returns:
        Array of len(lat) - 1 distances in meters
    """
    lat_rad = np.radians(np.asarray(lat, dtype=np.float64))
    lon_rad = np.radians(np.asarray(lon, dtype=np.float64))
    if len(lat_rad) < 2:
        return np.zeros(0, dtype=np.float64)

    dlat = np.diff(lat_rad)
    dlon = np.diff(lon_rad)

    a = np.sin(dlat/2)**2 + np.cos(lat_rad[:-1]) * np.cos(lat_rad[1:]) * np.sin(dlon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return EARTH_RADIUS_M * c


def transform_location(
    location: Optional[GeoPoint],
    transform: TransformOptions,
) -> Optional[GeoPoint]:
    """
    Translate, scale and rotate a location.

    Scale and rotation pivot on transform.center, evaluated after the
    translation. A missing location passes through as None.
    """
    if location is None:
        return None

    lat = location.lat
    lng = location.lng

    if transform.translate is not None:
        lat += transform.translate.lat
        lng += transform.translate.lng

    center = transform.pivot

    if transform.scale:
        lat = center.lat + (lat - center.lat) * transform.scale
        lng = center.lng + (lng - center.lng) * transform.scale

    if transform.rotate:
        angle = transform.rotate * math.pi / 180
        dx = lng - center.lng
        dy = lat - center.lat
        lng = center.lng + dx * math.cos(angle) - dy * math.sin(angle)
        lat = center.lat + dx * math.sin(angle) + dy * math.cos(angle)

    return GeoPoint(lat=lat, lng=lng)


def transform_locations(
    lat: NDArray[np.float64],
    lng: NDArray[np.float64],
    transform: TransformOptions,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Vectorized transform_location for whole tracks.

    Returns:
        Tuple of (lat, lng) arrays
    """
    lat = np.array(lat, dtype=np.float64)
    lng = np.array(lng, dtype=np.float64)

    if transform.translate is not None:
        lat = lat + transform.translate.lat
        lng = lng + transform.translate.lng

    center = transform.pivot

    if transform.scale:
        lat = center.lat + (lat - center.lat) * transform.scale
        lng = center.lng + (lng - center.lng) * transform.scale

    if transform.rotate:
        angle = np.radians(transform.rotate)
        dx = lng - center.lng
        dy = lat - center.lat
        lng = center.lng + dx * np.cos(angle) - dy * np.sin(angle)
        lat = center.lat + dx * np.sin(angle) + dy * np.cos(angle)

    return lat, lng
