# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Geofence domain logic.

Pure point-in-boundary checks for report coordinates. A boundary is a list of
polygons, each polygon a list of rings (ring 0 is the outer ring, the others
are holes), each ring a sequence of (lng, lat) pairs.

Points lying exactly on an edge are not special-cased: they are inside or
outside depending on how the ray crossing count falls.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

Coordinate = Tuple[float, float]
Ring = Sequence[Coordinate]
Polygon = Sequence[Ring]
Boundary = Sequence[Polygon]

MIN_RING_POINTS = 3


@dataclass
class BoundaryCheck:
    """Result of a boundary sanity check."""
    usable: bool
    reason: Optional[str] = None


def is_valid_coordinate(latitude: Any, longitude: Any) -> bool:
    """Check that latitude and longitude are finite numbers within WGS84 range."""
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        return False
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return False
    # NaN fails both comparisons
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def point_in_ring(lng: float, lat: float, ring: Ring) -> bool:
    """
    Ray casting test for a single ring.

    Casts a horizontal ray from the point and counts edge crossings; an odd
    count means the point is inside. The closing edge is taken from the last
    vertex back to the first, so explicitly closed rings work as well.

    Args:
        lng: Longitude of the point (x)
        lat: Latitude of the point (y)
        ring: Sequence of (lng, lat) vertices

    Returns:
        True if the point is inside the ring
    """
    inside = False
    count = len(ring)
    j = count - 1

    for i in range(count):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]

        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                inside = not inside
        j = i

    return inside


def point_in_polygon(lng: float, lat: float, polygon: Polygon) -> bool:
    """Inside the outer ring and outside every hole."""
    if not polygon:
        return False

    if not point_in_ring(lng, lat, polygon[0]):
        return False

    for hole in polygon[1:]:
        if point_in_ring(lng, lat, hole):
            return False

    return True


def is_inside(point: Coordinate, boundary: Boundary) -> bool:
    """
    Check if a (lng, lat) point falls inside a multi-polygon boundary.

    Args:
        point: (lng, lat) pair
        boundary: List of polygons with holes

    Returns:
        True if the point is inside at least one polygon
    """
    lng, lat = point[0], point[1]
    return any(point_in_polygon(lng, lat, polygon) for polygon in boundary)


def validate_boundary(boundary: Optional[Boundary]) -> BoundaryCheck:
    """
    Check that a boundary can be used for containment tests.

    An empty boundary, an empty polygon or a ring with fewer than three
    vertices makes the validator unavailable.
    """
    if not boundary:
        return BoundaryCheck(usable=False, reason="Boundary has no polygons")

    for polygon_index, polygon in enumerate(boundary):
        if not polygon:
            return BoundaryCheck(usable=False, reason=f"Polygon {polygon_index} has no rings")

        for ring_index, ring in enumerate(polygon):
            if len(ring) < MIN_RING_POINTS:
                return BoundaryCheck(
                    usable=False,
                    reason=f"Ring {ring_index} of polygon {polygon_index} has fewer than {MIN_RING_POINTS} points"
                )

    return BoundaryCheck(usable=True)


def _to_ring(raw_ring: List[Any]) -> List[Coordinate]:
    return [(float(position[0]), float(position[1])) for position in raw_ring]


def _geometry_polygons(geometry: Dict[str, Any]) -> List[List[List[Coordinate]]]:
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geometry_type == "Polygon":
        return [[_to_ring(ring) for ring in coordinates]]
    if geometry_type == "MultiPolygon":
        return [[_to_ring(ring) for ring in polygon] for polygon in coordinates]
    if geometry_type == "GeometryCollection":
        polygons = []
        for child in geometry.get("geometries") or []:
            polygons.extend(_geometry_polygons(child))
        return polygons

    raise ValueError(f"Unsupported geometry type: {geometry_type}")


def boundary_from_geojson(data: Dict[str, Any]) -> List[List[List[Coordinate]]]:
    """
    Convert a GeoJSON document into a boundary.

    Accepts a FeatureCollection, a Feature or a bare Polygon / MultiPolygon
    geometry. Features without geometry are skipped.

    Raises:
        ValueError: If the document or a geometry type is not supported
    """
    if not isinstance(data, dict):
        raise ValueError("GeoJSON document must be an object")

    document_type = data.get("type")

    if document_type == "FeatureCollection":
        polygons = []
        for feature in data.get("features") or []:
            if feature.get("geometry"):
                polygons.extend(_geometry_polygons(feature["geometry"]))
        return polygons

    if document_type == "Feature":
        geometry = data.get("geometry")
        return _geometry_polygons(geometry) if geometry else []

    return _geometry_polygons(data)
