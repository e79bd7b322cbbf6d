"""Domain model for GPS location samples."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LocationSample:
    """Immutable GPS snapshot, or the reason no fix is available."""

    latitude: float | None = None
    longitude: float | None = None
    accuracy: float | None = None
    captured_at: datetime | None = None
    error_reason: str | None = None

    def __post_init__(self) -> None:
        has_lat = self.latitude is not None
        has_lon = self.longitude is not None
        if has_lat != has_lon:
            raise ValueError("latitude and longitude must be provided together")
        if not has_lat and not self.error_reason:
            raise ValueError("a location without coordinates needs an error reason")
        if self.latitude is not None and not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if self.longitude is not None and not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    @classmethod
    def fix(
        cls,
        latitude: float,
        longitude: float,
        accuracy: float | None = None,
        captured_at: datetime | None = None,
    ) -> "LocationSample":
        """Build a sample for a successful GPS fix."""
        return cls(
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            captured_at=captured_at,
        )

    @classmethod
    def unavailable(
        cls, reason: str, captured_at: datetime | None = None
    ) -> "LocationSample":
        """Build a sample describing why no fix is available."""
        return cls(error_reason=reason, captured_at=captured_at)

    @property
    def has_coordinates(self) -> bool:
        """Return whether the sample carries a usable fix."""
        return self.latitude is not None and self.longitude is not None
