"""Location provider polling a JSON GPS endpoint."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from inspection_camera.domain.location import LocationSample
from inspection_camera.services.location import LocationProvider


@dataclass
class HttpxLocationProvider(LocationProvider):
    """Reads fixes from an HTTP endpoint returning latitude/longitude JSON.

    Accepted payload: `{"latitude": .., "longitude": .., "accuracy": ..}` or
    `{"error": "reason"}` when the device has no fix.
    """

    location_url: str
    http_client: httpx.AsyncClient
    timeout: float = 5.0

    @classmethod
    def create(cls, location_url: str) -> "HttpxLocationProvider":
        """Create a provider with a managed httpx session."""
        return cls(location_url=location_url, http_client=httpx.AsyncClient())

    async def fetch(self) -> LocationSample:
        """Fetch the current fix."""
        response = await self.http_client.get(self.location_url, timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        now = datetime.now(tz=UTC)
        latitude = payload.get("latitude")
        longitude = payload.get("longitude")
        if latitude is None or longitude is None:
            reason = str(payload.get("error") or "Localização não disponível")
            return LocationSample.unavailable(reason, captured_at=now)
        accuracy = payload.get("accuracy")
        return LocationSample.fix(
            latitude=float(latitude),
            longitude=float(longitude),
            accuracy=float(accuracy) if accuracy is not None else None,
            captured_at=now,
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
