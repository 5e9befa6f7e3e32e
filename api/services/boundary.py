# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Municipal boundary service.

Loads the boundary GeoJSON once and answers containment queries. When the
boundary cannot be loaded or is malformed the service is permissive: every
point is accepted and a warning is logged.
"""

import json
import logging
from typing import List, Optional

from opentelemetry import trace

from domain.geofence import (
    Boundary,
    boundary_from_geojson,
    is_inside,
    is_valid_coordinate,
    validate_boundary,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class BoundaryService:
    """Containment checks against the municipal boundary."""

    def __init__(self, boundary: Optional[Boundary] = None, source: str = "memory"):
        self.source = source
        self._boundary: List = list(boundary or [])
        check = validate_boundary(self._boundary)
        self._available = check.usable
        self._unavailable_reason = check.reason

        if self._available:
            logger.info(
                "Boundary loaded",
                extra={"source": source, "polygons": len(self._boundary)}
            )
        else:
            logger.warning(
                "Boundary unavailable, accepting all coordinates",
                extra={"source": source, "reason": check.reason}
            )

    @classmethod
    def from_file(cls, path: str) -> "BoundaryService":
        """Build the service from a GeoJSON file; failures leave it permissive."""
        try:
            with open(path, "r", encoding="utf-8") as handle:
                boundary = boundary_from_geojson(json.load(handle))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load boundary from {path}: {e}")
            boundary = []
        return cls(boundary, source=path)

    @property
    def available(self) -> bool:
        return self._available

    def contains(self, latitude: float, longitude: float) -> bool:
        """
        Check a coordinate against the boundary.

        Returns:
            True if the point is inside, or if the boundary is unavailable.
            Coordinates outside WGS84 range are never accepted.
        """
        with tracer.start_as_current_span("boundary.contains") as span:
            span.set_attributes({"geo.latitude": latitude, "geo.longitude": longitude})

            if not is_valid_coordinate(latitude, longitude):
                span.set_attribute("boundary.inside", False)
                return False

            if not self._available:
                logger.warning(
                    "Boundary check skipped, validator unavailable",
                    extra={"source": self.source, "reason": self._unavailable_reason}
                )
                span.set_attribute("boundary.available", False)
                return True

            inside = is_inside((longitude, latitude), self._boundary)
            span.set_attribute("boundary.inside", inside)
            return inside

    def health_check(self) -> dict:
        return {
            'status': 'healthy' if self._available else 'degraded',
            'source': self.source,
            'polygons': len(self._boundary)
        }
