"""Distance calculation and geofence checks."""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from attendchain.utils.validators import Validator

logger = logging.getLogger(__name__)


@dataclass
class GeofenceResult:
    """Outcome of a geofence check."""
    is_inside: bool
    distance_meters: Optional[float]   # None when a coordinate was unusable
    radius_meters: float
    buffer_meters: float

    @property
    def effective_radius_meters(self) -> float:
        return self.radius_meters + self.buffer_meters


class GeoService:
    """Service for great-circle distance and geofence verification."""

    EARTH_RADIUS_METERS = 6371000

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters (Haversine).

        Raises ValueError if any coordinate is not a finite number within
        [-90, 90] latitude / [-180, 180] longitude.
        """
        if not (Validator.validate_coordinates(lat1, lon1)
                and Validator.validate_coordinates(lat2, lon2)):
            raise ValueError(f'Invalid coordinates: ({lat1}, {lon1}) -> ({lat2}, {lon2})')

        lat1_rad = math.radians(float(lat1))
        lat2_rad = math.radians(float(lat2))
        delta_lat = math.radians(float(lat2) - float(lat1))
        delta_lon = math.radians(float(lon2) - float(lon1))

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon / 2) ** 2)
        # Rounding can push a a hair past 1 for antipodal points
        a = min(1.0, max(0.0, a))
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return GeoService.EARTH_RADIUS_METERS * c

    @staticmethod
    def verify_location(user_lat: float, user_lng: float,
                        origin_lat: float, origin_lng: float,
                        radius_meters: float, buffer_meters: float = 10) -> GeofenceResult:
        """Verify if a user is within ``radius_meters + buffer_meters`` of an origin.

        Unusable coordinates never raise here; they are reported as outside
        the fence with no distance.
        """
        try:
            distance = GeoService.calculate_distance(user_lat, user_lng, origin_lat, origin_lng)
        except ValueError:
            logger.warning('Geofence check received invalid coordinates', exc_info=True)
            return GeofenceResult(
                is_inside=False,
                distance_meters=None,
                radius_meters=radius_meters,
                buffer_meters=buffer_meters
            )

        return GeofenceResult(
            is_inside=distance <= radius_meters + buffer_meters,
            distance_meters=distance,
            radius_meters=radius_meters,
            buffer_meters=buffer_meters
        )

    @staticmethod
    def describe_location(latitude: float, longitude: float) -> str:
        """Display label for a coordinate pair."""
        return f'Location: {latitude:.6f}, {longitude:.6f}'
