"""Latest-location tracking and background polling."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from inspection_camera.domain.location import LocationSample

logger = logging.getLogger(__name__)

NO_FIX_REASON = "GPS INDISPONÍVEL"
PROVIDER_ERROR_REASON = "Localização não disponível"


class LocationProvider(Protocol):
    """Source of fresh location fixes (device GPS, browser, gpsd...)."""

    async def fetch(self) -> LocationSample:
        """Return a new sample; may raise if the device fails."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class LocationTracker:
    """Holds the most recent location sample pushed by a consumer.

    A missing or stale sample is reported as unavailable so that capture is
    never blocked waiting for GPS.
    """

    max_age: timedelta | None = timedelta(seconds=60)
    clock: Callable[[], datetime] = _utcnow
    _sample: LocationSample | None = field(default=None, init=False)
    _received_at: datetime | None = field(default=None, init=False)

    def update(self, sample: LocationSample) -> None:
        """Replace the current sample."""
        self._sample = sample
        self._received_at = self.clock()

    def latest(self) -> LocationSample:
        """Return the current sample, or an unavailable one."""
        if self._sample is None or self._received_at is None:
            return LocationSample.unavailable(NO_FIX_REASON)
        if self.max_age is not None and self.clock() - self._received_at > self.max_age:
            return LocationSample.unavailable(NO_FIX_REASON)
        return self._sample


@dataclass
class LocationPoller:
    """Background task feeding a tracker from a provider at a fixed interval."""

    provider: LocationProvider
    tracker: LocationTracker
    interval_seconds: float = 30.0
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> LocationSample:
        """Fetch one sample and push it into the tracker."""
        try:
            sample = await self.provider.fetch()
        except Exception:
            logger.exception("Location provider failed")
            sample = LocationSample.unavailable(PROVIDER_ERROR_REASON)
        self.tracker.update(sample)
        return sample

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the polling task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval_seconds)
