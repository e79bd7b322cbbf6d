"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from inspection_camera.adapters.directory_export_sink import DirectoryExportSink
from inspection_camera.adapters.http_location_provider import HttpxLocationProvider
from inspection_camera.adapters.snapshot_frame_source import (
    HttpxSnapshotFrameSource,
)
from inspection_camera.config import Settings
from inspection_camera.services.archive import ArchiveStore, InMemoryArchiveStore
from inspection_camera.services.export import (
    ExportQueue,
    FixedDelayPacing,
    NoPacing,
    PacingPolicy,
)
from inspection_camera.services.location import LocationPoller, LocationTracker
from inspection_camera.services.sessions import SessionLifecycle
from inspection_camera.services.stamping import StampRenderer, StampService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    location_tracker: LocationTracker
    stamp_service: StampService
    archive: ArchiveStore
    session: SessionLifecycle
    export_queue: ExportQueue | None
    location_poller: LocationPoller | None
    close_resources: Callable[[], Awaitable[None]]


def build_pacing(delay_seconds: float) -> PacingPolicy:
    """Return the pacing policy for a configured delay."""
    if delay_seconds > 0:
        return FixedDelayPacing(delay_seconds)
    return NoPacing()


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    renderer = StampRenderer(
        company_label=resolved_settings.company_label,
        quality=resolved_settings.jpeg_quality,
        timezone=resolved_settings.zone(),
        date_format=resolved_settings.date_format,
        time_format=resolved_settings.time_format,
        unavailable_label=resolved_settings.gps_unavailable_label,
        font_path=resolved_settings.font_path,
        bold_font_path=resolved_settings.bold_font_path,
        logo_path=resolved_settings.logo_path,
    )
    stamp_service = StampService(renderer)
    archive = InMemoryArchiveStore()
    max_age = resolved_settings.location_max_age_seconds
    location_tracker = LocationTracker(
        max_age=timedelta(seconds=max_age) if max_age is not None else None
    )

    frame_source = None
    if resolved_settings.camera_snapshot_url:
        frame_source = HttpxSnapshotFrameSource.create(
            resolved_settings.camera_snapshot_url
        )

    location_provider = None
    location_poller = None
    if resolved_settings.location_url:
        location_provider = HttpxLocationProvider.create(resolved_settings.location_url)
        location_poller = LocationPoller(
            provider=location_provider,
            tracker=location_tracker,
            interval_seconds=resolved_settings.location_poll_seconds,
        )

    export_queue = None
    if resolved_settings.export_directory:
        export_queue = ExportQueue(
            sink=DirectoryExportSink(Path(resolved_settings.export_directory)),
            pacing=build_pacing(resolved_settings.export_delay_seconds),
        )

    session = SessionLifecycle(
        stamp_service=stamp_service,
        archive=archive,
        location_source=location_tracker,
        frame_source=frame_source,
        export_queue=export_queue,
        mode=resolved_settings.identification_mode,
    )

    async def close_resources() -> None:
        if location_poller is not None:
            await location_poller.stop()
        if location_provider is not None:
            await location_provider.close()
        if frame_source is not None:
            await frame_source.close()

    return AppContainer(
        settings=resolved_settings,
        location_tracker=location_tracker,
        stamp_service=stamp_service,
        archive=archive,
        session=session,
        export_queue=export_queue,
        location_poller=location_poller,
        close_resources=close_resources,
    )
