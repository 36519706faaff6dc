"""Geolocation adapter.

Positions are captured on the student's or teacher's device and posted with
the request. Providers wrap whatever the device reported; ``acquire_location``
bounds the lookup so a stalled provider fails with a timeout instead of
holding the request open.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional

from attendchain.utils.errors import LocationTimeoutError, LocationUnavailableError
from attendchain.utils.validators import Validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    """A device position fix."""
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None


class LocationProvider:
    """Source of the caller's current position."""

    def get_current_location(self) -> Location:
        raise NotImplementedError


class ReportedLocationProvider(LocationProvider):
    """Position (or failure) reported by the client device."""

    ERROR_MESSAGES = {
        'PERMISSION_DENIED': 'Location permission denied. Please enable location services in your browser settings.',
        'UNAVAILABLE': 'Location information is unavailable. Please try again in a different area.',
        'TIMEOUT': 'Location request timed out. Please check your connection and try again.',
    }

    def __init__(self, latitude: Any = None, longitude: Any = None,
                 accuracy: Any = None, error: Optional[str] = None):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy
        self.error = error.upper() if isinstance(error, str) else None

    @classmethod
    def from_payload(cls, data: Dict) -> 'ReportedLocationProvider':
        return cls(
            latitude=data.get('latitude'),
            longitude=data.get('longitude'),
            accuracy=data.get('accuracy'),
            error=data.get('location_error')
        )

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def get_current_location(self) -> Location:
        if self.error == 'TIMEOUT':
            raise LocationTimeoutError(self.ERROR_MESSAGES['TIMEOUT'])
        if self.error == 'PERMISSION_DENIED':
            raise LocationUnavailableError(
                self.ERROR_MESSAGES['PERMISSION_DENIED'],
                reason=LocationUnavailableError.PERMISSION_DENIED
            )
        if self.error or not self.has_position:
            raise LocationUnavailableError(self.ERROR_MESSAGES['UNAVAILABLE'])

        if not Validator.validate_coordinates(self.latitude, self.longitude):
            raise LocationUnavailableError('Reported location is not a valid coordinate')

        accuracy = None
        if self.accuracy is not None:
            try:
                accuracy = float(self.accuracy)
            except (TypeError, ValueError):
                accuracy = None

        return Location(float(self.latitude), float(self.longitude), accuracy)


def acquire_location(provider: LocationProvider, timeout_seconds: float) -> Location:
    """Resolve a provider, failing with LocationTimeoutError after ``timeout_seconds``.

    Each lookup gets its own worker, so a provider that never returns only
    strands its own thread and cannot starve later lookups.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='location')
    future = executor.submit(provider.get_current_location)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError:
        future.cancel()
        logger.warning('Location lookup exceeded %ss', timeout_seconds)
        raise LocationTimeoutError()
    finally:
        executor.shutdown(wait=False)
